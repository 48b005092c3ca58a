"""
Batched, retried writes of embedded chunks into a vector store.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List

from .base import VectorStore
from ..retry import RetryPolicy, retry_call
from ...models import Chunk, CollectionDescriptor, DistanceMetric, Point
from ...config import UPSERT_BATCH_SIZE, UPSERT_MAX_WORKERS
from ...exceptions import ConfigurationError, DimensionMismatchError, UpsertError


class VectorStoreUpserter:
    """Creates collections on demand and writes chunks as points keyed by their stable id"""

    def __init__(self, store: VectorStore, batch_size: int = None, max_workers: int = None,
                 retry_policy: RetryPolicy = None):
        self.store = store
        self.batch_size = batch_size or UPSERT_BATCH_SIZE
        self.max_workers = max_workers or UPSERT_MAX_WORKERS
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = logging.getLogger(__name__)

        if self.batch_size < 1 or self.max_workers < 1:
            raise ValueError("batch_size and max_workers must be positive")

    def ensure_collection(self, name: str, dimension: int,
                          distance_metric: DistanceMetric = DistanceMetric.COSINE) -> CollectionDescriptor:
        """
        Create the collection if it is missing, otherwise check its vector shape.

        Raises:
            DimensionMismatchError: the collection exists with another dimension
            ConfigurationError: the collection exists with another distance metric
        """
        existing = retry_call(
            lambda: self.store.get_collection(name),
            self.retry_policy,
            describe=f"Looking up collection '{name}'",
        )

        if existing is None:
            descriptor = CollectionDescriptor(name, dimension, distance_metric)
            retry_call(
                lambda: self.store.create_collection(descriptor),
                self.retry_policy,
                describe=f"Creating collection '{name}'",
            )
            self.logger.info(f"Collection '{name}' created with {dimension} dimensions")
            return descriptor

        if existing.vector_dimension != dimension:
            raise DimensionMismatchError(existing.vector_dimension, dimension, name)
        if existing.distance_metric != distance_metric:
            raise ConfigurationError(
                f"Collection '{name}' uses {existing.distance_metric.value} distance, "
                f"not {distance_metric.value}"
            )
        return existing

    def recreate_collection(self, descriptor: CollectionDescriptor) -> CollectionDescriptor:
        """Drop the collection if present and create it empty"""
        if self.store.get_collection(descriptor.name) is not None:
            self.logger.warning(f"Dropping existing collection '{descriptor.name}'")
            retry_call(
                lambda: self.store.delete_collection(descriptor.name),
                self.retry_policy,
                describe=f"Deleting collection '{descriptor.name}'",
            )
        retry_call(
            lambda: self.store.create_collection(descriptor),
            self.retry_policy,
            describe=f"Creating collection '{descriptor.name}'",
        )
        return descriptor

    def upsert(self, collection: str, chunks: List[Chunk],
               distance_metric: DistanceMetric = DistanceMetric.COSINE) -> int:
        """
        Write embedded chunks into a collection, creating it when needed.

        Nothing is written unless every chunk carries a vector of the
        collection's dimension. Batches run concurrently; a batch that keeps
        failing after its retries, or that the store rejects outright, is
        reported as ``UpsertError`` once the other batches have finished.

        Returns:
            Number of points written
        """
        if not chunks:
            self.logger.warning("No chunks to upsert")
            return 0

        missing = [chunk for chunk in chunks if chunk.embedding is None]
        if missing:
            raise ConfigurationError(
                f"{len(missing)} chunks have no embedding (first: {missing[0].name!r} "
                f"in {missing[0].file_path}); generate embeddings before upserting"
            )

        dimension = len(chunks[0].embedding)
        for chunk in chunks:
            if len(chunk.embedding) != dimension:
                raise DimensionMismatchError(dimension, len(chunk.embedding), collection)

        self.ensure_collection(collection, dimension, distance_metric)

        points = [Point.from_chunk(chunk) for chunk in chunks]
        batches = [
            points[i:i + self.batch_size]
            for i in range(0, len(points), self.batch_size)
        ]
        self.logger.info(f"Uploading {len(points)} points to '{collection}' in {len(batches)} batches")

        errors: List[UpsertError] = []
        written = 0
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(batches))) as executor:
            futures = {
                executor.submit(self._write_batch, collection, index, batch): (index, batch)
                for index, batch in enumerate(batches)
            }
            for future in as_completed(futures):
                index, batch = futures[future]
                try:
                    future.result()
                except UpsertError as e:
                    errors.append(e)
                    continue
                written += len(batch)
                self.logger.debug(f"Uploaded batch {index + 1}/{len(batches)}")

        if errors:
            errors.sort(key=lambda error: error.batch_index)
            self.logger.error(
                f"{len(errors)} of {len(batches)} upsert batches failed; {written} points written"
            )
            raise errors[0]

        self.logger.info(f"Successfully saved {written} points to collection '{collection}'")
        return written

    def _write_batch(self, collection: str, index: int, batch: List[Point]) -> None:
        try:
            retry_call(
                lambda: self.store.upsert_points(collection, batch),
                self.retry_policy,
                describe=f"Upsert batch {index}",
            )
        except Exception as e:
            # exhausted retries and rejected requests alike fail only this batch
            raise UpsertError(index, e) from e
