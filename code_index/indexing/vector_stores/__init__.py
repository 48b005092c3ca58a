"""
Vector store backends and the batched upserter.
"""

from .base import VectorStore
from .qdrant_store import QdrantVectorStore
from .faiss_store import FaissVectorStore
from .factory import make_vector_store
from .upserter import VectorStoreUpserter

__all__ = [
    'VectorStore',
    'QdrantVectorStore',
    'FaissVectorStore',
    'make_vector_store',
    'VectorStoreUpserter'
]
