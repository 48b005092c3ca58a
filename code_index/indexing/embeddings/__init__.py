"""
Embedding providers.
"""

from .base_provider import BaseEmbeddingProvider, EmbeddingProvider
from .openai_provider import OpenAIEmbeddingProvider
from .provider_factory import EmbeddingProviderFactory

__all__ = [
    'BaseEmbeddingProvider',
    'EmbeddingProvider',
    'OpenAIEmbeddingProvider',
    'EmbeddingProviderFactory'
]
