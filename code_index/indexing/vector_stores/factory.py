import logging

from .base import VectorStore
from .faiss_store import FaissVectorStore
from .qdrant_store import QdrantVectorStore
from ...config import VECTOR_STORE_BACKEND
from ...exceptions import ConfigurationError

_BACKENDS = {
    'qdrant': QdrantVectorStore,
    'faiss': FaissVectorStore,
}


def make_vector_store(backend: str = None, **kwargs) -> VectorStore:
    """
    Create a vector store backend

    Args:
        backend: 'qdrant' or 'faiss' (uses VECTOR_STORE_BACKEND if None)
        **kwargs: Backend-specific configuration (url, location, path, ...)
    """
    backend = (backend or VECTOR_STORE_BACKEND).lower()
    store_class = _BACKENDS.get(backend)
    if store_class is None:
        raise ConfigurationError(
            f"Unsupported vector store backend: {backend}. "
            f"Use one of: {', '.join(sorted(_BACKENDS))}"
        )

    logging.getLogger(__name__).info(f"Using {backend} vector store")
    return store_class(**kwargs)
