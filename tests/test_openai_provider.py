from types import SimpleNamespace

import httpx
import numpy as np
import openai
import pytest

from code_index.exceptions import ConfigurationError, ProviderError, TransportError
from code_index.indexing.embeddings import EmbeddingProviderFactory, OpenAIEmbeddingProvider

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


@pytest.fixture
def provider():
    provider = OpenAIEmbeddingProvider("text-embedding-3-small", api_key="sk-test")
    provider.initialize()
    return provider


def _raise(error):
    def create(**kwargs):
        raise error
    return create


class TestOpenAIEmbeddingProvider:
    def test_results_are_returned_in_input_order(self, provider, monkeypatch):
        response = SimpleNamespace(data=[
            SimpleNamespace(index=1, embedding=[0.0, 1.0]),
            SimpleNamespace(index=0, embedding=[1.0, 0.0]),
        ])
        monkeypatch.setattr(provider.client.embeddings, "create", lambda **kwargs: response)

        vectors = provider.embed_batch(["first", "second"])

        assert [vector.tolist() for vector in vectors] == [[1.0, 0.0], [0.0, 1.0]]
        assert vectors[0].dtype == np.float32

    @pytest.mark.parametrize("error", [
        openai.RateLimitError("slow down", response=httpx.Response(429, request=REQUEST), body=None),
        openai.APIConnectionError(request=REQUEST),
        openai.InternalServerError("oops", response=httpx.Response(500, request=REQUEST), body=None),
    ])
    def test_transient_errors(self, provider, monkeypatch, error):
        monkeypatch.setattr(provider.client.embeddings, "create", _raise(error))

        with pytest.raises(TransportError):
            provider.embed_batch(["text"])

    @pytest.mark.parametrize("error", [
        openai.AuthenticationError("bad key", response=httpx.Response(401, request=REQUEST), body=None),
        openai.BadRequestError("too long", response=httpx.Response(400, request=REQUEST), body=None),
    ])
    def test_permanent_errors(self, provider, monkeypatch, error):
        monkeypatch.setattr(provider.client.embeddings, "create", _raise(error))

        with pytest.raises(ProviderError):
            provider.embed_batch(["text"])

    def test_short_response_is_transient(self, provider, monkeypatch):
        response = SimpleNamespace(data=[SimpleNamespace(index=0, embedding=[1.0])])
        monkeypatch.setattr(provider.client.embeddings, "create", lambda **kwargs: response)

        with pytest.raises(TransportError):
            provider.embed_batch(["a", "b"])

    def test_model_dimensions(self):
        assert OpenAIEmbeddingProvider("text-embedding-3-large", api_key="sk").get_embedding_dimension() == 3072

    def test_unknown_model_needs_explicit_dimension(self):
        with pytest.raises(ConfigurationError):
            OpenAIEmbeddingProvider("custom-model", api_key="sk").initialize()

        custom = OpenAIEmbeddingProvider("custom-model", api_key="sk", dimension=768)
        custom.initialize()
        assert custom.get_embedding_dimension() == 768


class TestProviderFactory:
    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            EmbeddingProviderFactory.create_provider("word2vec", "any")

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ConfigurationError):
            EmbeddingProviderFactory.create_provider("openai", "text-embedding-3-small")

    def test_creates_openai_provider(self):
        provider = EmbeddingProviderFactory.create_provider("openai", "text-embedding-3-small", api_key="sk-test")

        assert isinstance(provider, OpenAIEmbeddingProvider)
        assert provider.get_provider_info()["dimension"] == 1536
