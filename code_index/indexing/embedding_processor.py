"""
Embedding generation for reconciled chunks.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List

from ..models import Chunk
from .embeddings import EmbeddingProviderFactory, BaseEmbeddingProvider
from .retry import RetryPolicy, retry_call
from ..config import (
    DEFAULT_EMBEDDING_MODEL, DEFAULT_EMBEDDING_PROVIDER, EMBEDDING_BATCH_SIZE, EMBEDDING_MAX_WORKERS
)
from ..exceptions import CodeIndexError, DimensionMismatchError, EmbeddingError


class EmbeddingGenerator:
    """
    Attaches embeddings to chunks that do not carry one yet.

    Chunks that already have a vector are never sent again, so running the
    generator on its own output is a no-op. Pending chunks are grouped into
    batches which run concurrently on a bounded thread pool; every batch is
    retried on transient failures. When a batch fails for good the vectors of
    the batches that succeeded stay attached and the first failure is raised
    once all batches have finished.
    """

    def __init__(self, provider: BaseEmbeddingProvider, batch_size: int = None,
                 max_workers: int = None, retry_policy: RetryPolicy = None):
        """
        Initialize the embedding generator

        Args:
            provider: Embedding provider performing the requests
            batch_size: Number of chunks per request
            max_workers: Maximum number of requests in flight
            retry_policy: Backoff policy applied to every batch
        """
        self.provider = provider
        self.batch_size = batch_size or EMBEDDING_BATCH_SIZE
        self.max_workers = max_workers or EMBEDDING_MAX_WORKERS
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = logging.getLogger(__name__)

        if self.batch_size < 1 or self.max_workers < 1:
            raise ValueError("batch_size and max_workers must be positive")

    @classmethod
    def from_provider(cls, provider_type: str = None, model_name: str = None,
                      batch_size: int = None, max_workers: int = None,
                      retry_policy: RetryPolicy = None, **kwargs) -> 'EmbeddingGenerator':
        """Create a generator together with its provider"""
        provider = EmbeddingProviderFactory.create_provider(
            provider_type or DEFAULT_EMBEDDING_PROVIDER,
            model_name or DEFAULT_EMBEDDING_MODEL,
            **kwargs
        )
        return cls(provider, batch_size=batch_size, max_workers=max_workers, retry_policy=retry_policy)

    @property
    def model_name(self) -> str:
        return self.provider.model_name

    def get_embedding_dimension(self) -> int:
        """Get the dimension of the embedding model"""
        return self.provider.get_embedding_dimension()

    def pending_chunks(self, chunks: List[Chunk]) -> List[Chunk]:
        """Chunks still lacking a vector; blank snippets are never embedded"""
        return [
            chunk for chunk in chunks
            if chunk.embedding is None and chunk.snippet.strip()
        ]

    def embed(self, chunks: List[Chunk]) -> List[Chunk]:
        """
        Attach embeddings to every chunk that lacks one.

        Args:
            chunks: Chunks, possibly from many files

        Returns:
            The same list, with vectors attached in place

        Raises:
            EmbeddingError: if a batch fails after all retries or for a
                non-retryable reason
            DimensionMismatchError: if the provider returns vectors of the
                wrong size
        """
        pending = self.pending_chunks(chunks)
        if not pending:
            self.logger.info("All chunks already have embeddings. Skipping generation.")
            return chunks

        batches = [
            pending[i:i + self.batch_size]
            for i in range(0, len(pending), self.batch_size)
        ]
        self.logger.info(
            f"Generating embeddings for {len(pending)} of {len(chunks)} chunks "
            f"in {len(batches)} batches using {self.model_name}"
        )

        errors: List[CodeIndexError] = []
        embedded = 0
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(batches))) as executor:
            futures = {
                executor.submit(self._embed_batch, index, batch): (index, batch)
                for index, batch in enumerate(batches)
            }
            for future in as_completed(futures):
                index, batch = futures[future]
                try:
                    vectors = future.result()
                except (EmbeddingError, DimensionMismatchError) as e:
                    self.logger.error(f"Embedding batch {index + 1}/{len(batches)} failed: {e}")
                    errors.append(e)
                    continue

                for chunk, vector in zip(batch, vectors):
                    chunk.embedding = vector
                embedded += len(batch)

        self.logger.info(f"Successfully generated {embedded} embeddings")

        if errors:
            errors.sort(key=lambda error: getattr(error, 'batch_index', None) or 0)
            self.logger.error(
                f"{len(errors)} of {len(batches)} embedding batches failed; "
                f"{embedded} chunks kept their new vectors"
            )
            raise errors[0]

        return chunks

    def _embed_batch(self, index: int, batch: List[Chunk]) -> List[List[float]]:
        texts = [self.provider.create_embedding_text(chunk) for chunk in batch]

        try:
            vectors = retry_call(
                lambda: self.provider.embed_batch(texts),
                self.retry_policy,
                describe=f"Embedding batch {index}",
            )
        except Exception as e:
            # exhausted retries, provider refusals and unmapped client errors
            raise EmbeddingError(batch, e, batch_index=index) from e

        if len(vectors) != len(batch):
            raise EmbeddingError(
                batch, f"provider returned {len(vectors)} vectors for {len(batch)} inputs",
                batch_index=index
            )

        dimension = self.get_embedding_dimension()
        result = []
        for vector in vectors:
            values = [float(value) for value in vector]
            if len(values) != dimension:
                raise DimensionMismatchError(dimension, len(values))
            result.append(values)
        return result

    def embed_query(self, query: str) -> List[float]:
        """
        Embed a search query.

        No retries happen here: a timeout or transport failure is raised to
        the caller, who decides whether to try again.
        """
        vector = self.provider.embed_query(query)
        return [float(value) for value in vector]

    def get_provider_info(self) -> dict:
        """Get information about the current provider"""
        return self.provider.get_provider_info()

