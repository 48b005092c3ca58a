"""
OpenAI embedding provider implementation.
"""

import logging
from typing import List, Dict, Any
import numpy as np

import openai
from openai import OpenAI

from .base_provider import BaseEmbeddingProvider
from ...config import EMBEDDING_MODELS, EMBEDDING_REQUEST_TIMEOUT, get_openai_api_base
from ...exceptions import ConfigurationError, ProviderError, TransportError


class OpenAIEmbeddingProvider(BaseEmbeddingProvider):
    """OpenAI (or OpenAI-compatible) embedding provider"""

    SUPPORTED_MODELS = EMBEDDING_MODELS

    def __init__(self, model_name: str, api_key: str = None, base_url: str = None,
                 dimension: int = None, **kwargs):
        super().__init__(model_name, **kwargs)
        self.api_key = api_key
        self.base_url = base_url or get_openai_api_base()
        self.timeout = kwargs.get('timeout', EMBEDDING_REQUEST_TIMEOUT)
        self.client = None
        self._dimension = dimension
        self.logger = logging.getLogger(__name__)

    def initialize(self) -> None:
        """Initialize OpenAI client"""
        if not self.validate_model():
            raise ConfigurationError(
                f"Unsupported OpenAI model: {self.model_name}. "
                f"Pass an explicit dimension for models served by a compatible API."
            )

        # the SDK's own retries are disabled, the embedding generator retries batches itself
        self.client = OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        )

        if self._dimension is None:
            self._dimension = self.SUPPORTED_MODELS[self.model_name]

    def get_embedding_dimension(self) -> int:
        """Get the dimension of the embedding model"""
        if self._dimension is None:
            self._dimension = self.SUPPORTED_MODELS.get(self.model_name, 1536)
        return self._dimension

    def embed_batch(self, texts: List[str]) -> List[np.ndarray]:
        """Generate embeddings for one batch of texts using the OpenAI API"""
        if not self.client:
            self.initialize()

        self.logger.debug(f"Requesting {len(texts)} embeddings from {self.model_name}")

        try:
            response = self.client.embeddings.create(
                input=texts,
                model=self.model_name
            )
        except (openai.RateLimitError, openai.APIConnectionError, openai.InternalServerError) as e:
            raise TransportError(e) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError,
                openai.BadRequestError, openai.NotFoundError) as e:
            raise ProviderError(f"OpenAI rejected the embedding request: {e}") from e
        except openai.APIStatusError as e:
            if e.status_code >= 500 or e.status_code in (408, 409):
                raise TransportError(e) from e
            raise ProviderError(f"OpenAI API error: {e}") from e

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(texts):
            raise TransportError(
                None,
                f"OpenAI returned {len(data)} embeddings for {len(texts)} inputs"
            )

        return [np.array(item.embedding, dtype=np.float32) for item in data]

    def validate_model(self) -> bool:
        """Known models, or any model when the dimension is given explicitly"""
        return self.model_name in self.SUPPORTED_MODELS or self._dimension is not None

    def get_provider_info(self) -> Dict[str, Any]:
        """Get information about the provider"""
        return {
            'provider': 'openai',
            'model': self.model_name,
            'dimension': self.get_embedding_dimension(),
            'base_url': self.base_url,
            'timeout': self.timeout,
            'supported_models': list(self.SUPPORTED_MODELS.keys())
        }
