"""
Factory for creating embedding providers.
"""

from typing import Dict, Type
import logging

from .base_provider import BaseEmbeddingProvider, EmbeddingProvider
from .openai_provider import OpenAIEmbeddingProvider
from ...config import get_openai_api_key
from ...exceptions import ConfigurationError


class EmbeddingProviderFactory:
    """Factory for creating embedding providers"""

    _providers: Dict[EmbeddingProvider, Type[BaseEmbeddingProvider]] = {
        EmbeddingProvider.OPENAI: OpenAIEmbeddingProvider,
    }

    @classmethod
    def create_provider(cls, provider_type: str, model_name: str, **kwargs) -> BaseEmbeddingProvider:
        """
        Create an embedding provider

        Args:
            provider_type: Type of provider ('openai')
            model_name: Name of the embedding model
            **kwargs: Provider-specific configuration

        Returns:
            Initialized embedding provider
        """
        logger = logging.getLogger(__name__)

        try:
            provider_enum = EmbeddingProvider(provider_type.lower())
        except ValueError:
            raise ConfigurationError(f"Unsupported provider type: {provider_type}") from None

        provider_class = cls._providers.get(provider_enum)
        if not provider_class:
            raise ConfigurationError(f"No implementation found for provider: {provider_type}")

        if provider_enum == EmbeddingProvider.OPENAI:
            kwargs['api_key'] = kwargs.get('api_key') or get_openai_api_key()

        provider = provider_class(model_name, **kwargs)
        provider.initialize()

        logger.info(f"Created {provider_type} provider with model {model_name}")
        return provider
