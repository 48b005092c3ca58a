"""
Abstract base class for embedding providers.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any
import numpy as np
from enum import Enum

from ...models import Chunk


class EmbeddingProvider(Enum):
    """Supported embedding providers"""
    OPENAI = "openai"


class BaseEmbeddingProvider(ABC):
    """
    Abstract base class for embedding providers.

    A provider performs exactly one request per ``embed_batch`` call. Batching,
    concurrency and retries are the embedding generator's business.
    """

    def __init__(self, model_name: str, **kwargs):
        """
        Initialize the embedding provider

        Args:
            model_name: Name of the embedding model
            **kwargs: Provider-specific configuration
        """
        self.model_name = model_name
        self.config = kwargs
        self._dimension = None

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the provider (setup client, validate model, etc.)"""
        pass

    @abstractmethod
    def get_embedding_dimension(self) -> int:
        """Get the dimension of the embedding model"""
        pass

    @abstractmethod
    def embed_batch(self, texts: List[str]) -> List[np.ndarray]:
        """
        Generate embeddings for a list of texts in a single request

        Args:
            texts: List of texts to embed

        Returns:
            One vector per text, in input order

        Raises:
            TransportError: on transient failures that may be retried
            ProviderError: on failures that retrying cannot fix
        """
        pass

    def embed_query(self, query: str) -> np.ndarray:
        """Generate embedding for a single query"""
        return self.embed_batch([query])[0]

    def create_embedding_text(self, chunk: Chunk) -> str:
        """Create enriched text for embedding (can be overridden)"""
        context_parts = [
            f"File: {chunk.file_path}",
            f"Language: {chunk.language}",
            f"Kind: {chunk.kind.value}",
        ]

        if chunk.parent_path:
            context_parts.append(f"Scope: {'.'.join(chunk.parent_path)}")

        if chunk.name:
            context_parts.append(f"Name: {chunk.name}")

        context = " | ".join(context_parts)

        return f"{context}\n\n{chunk.snippet}"

    @abstractmethod
    def get_provider_info(self) -> Dict[str, Any]:
        """Get information about the provider"""
        pass

    def validate_model(self) -> bool:
        """Validate if the model is supported (can be overridden)"""
        return True
