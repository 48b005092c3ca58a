"""
Qdrant vector database backend.
"""

import logging
import threading
from contextlib import nullcontext
from typing import Callable, List, Optional, TypeVar

from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.models import Distance, PointStruct, VectorParams

from .base import VectorStore
from ...models import CollectionDescriptor, DistanceMetric, Point, SearchHit
from ...config import QDRANT_TIMEOUT, QDRANT_URL, get_qdrant_api_key
from ...exceptions import ConfigurationError, StoreError, TransportError

T = TypeVar('T')

logger = logging.getLogger(__name__)

_TO_QDRANT = {
    DistanceMetric.COSINE: Distance.COSINE,
    DistanceMetric.DOT: Distance.DOT,
    DistanceMetric.EUCLID: Distance.EUCLID,
}
_FROM_QDRANT = {value: key for key, value in _TO_QDRANT.items()}


class QdrantVectorStore(VectorStore):
    """
    Vector store backed by a Qdrant server or Qdrant's embedded local mode.

    Pass ``location=":memory:"`` or ``path=...`` for the embedded engine;
    otherwise ``url`` (default ``QDRANT_URL``) points at a server. Network
    failures and 5xx/429 responses surface as ``TransportError``; any other
    rejected request surfaces as ``StoreError``.
    """

    def __init__(self, url: str = None, location: str = None, path: str = None,
                 api_key: str = None, timeout: int = None, client: QdrantClient = None):
        self.timeout = timeout or QDRANT_TIMEOUT
        self.is_local = client is None and (location is not None or path is not None)

        if client is not None:
            self.client = client
        elif location is not None:
            self.client = QdrantClient(location=location)
        elif path is not None:
            self.client = QdrantClient(path=path)
        else:
            self.url = url or QDRANT_URL
            self.client = QdrantClient(
                url=self.url,
                api_key=api_key or get_qdrant_api_key(),
                timeout=self.timeout,
            )

        # the embedded engine mutates plain numpy arrays and is not safe for concurrent writers
        self._lock = threading.Lock() if self.is_local else None

    def _call(self, describe: str, operation: Callable[[], T]) -> T:
        guard = self._lock if self._lock is not None else nullcontext()
        try:
            with guard:
                return operation()
        except ResponseHandlingException as e:
            raise TransportError(e, f"Qdrant {describe} failed: {e}") from e
        except UnexpectedResponse as e:
            if e.status_code is None or e.status_code >= 500 or e.status_code == 429:
                raise TransportError(e, f"Qdrant {describe} failed: {e}") from e
            raise StoreError(e, f"Qdrant {describe} rejected: {e}") from e
        except ValueError as e:
            # local mode reports missing collections and bad vectors this way
            raise StoreError(e, f"Qdrant {describe} rejected: {e}") from e

    def get_collection(self, name: str) -> Optional[CollectionDescriptor]:
        if not self._call("collection lookup", lambda: self.client.collection_exists(name)):
            return None

        info = self._call("collection lookup", lambda: self.client.get_collection(name))
        params = info.config.params.vectors
        if not isinstance(params, VectorParams):
            raise ConfigurationError(
                f"Collection '{name}' uses named vectors, which code_index does not manage"
            )
        return CollectionDescriptor(
            name=name,
            vector_dimension=params.size,
            distance_metric=_FROM_QDRANT.get(params.distance, DistanceMetric.COSINE),
        )

    def create_collection(self, descriptor: CollectionDescriptor) -> None:
        self._call("collection creation", lambda: self.client.create_collection(
            collection_name=descriptor.name,
            vectors_config=VectorParams(
                size=descriptor.vector_dimension,
                distance=_TO_QDRANT[descriptor.distance_metric],
            ),
        ))
        logger.info(
            f"Created collection '{descriptor.name}' "
            f"({descriptor.vector_dimension} dims, {descriptor.distance_metric.value})"
        )

    def delete_collection(self, name: str) -> None:
        self._call("collection deletion", lambda: self.client.delete_collection(collection_name=name))
        logger.info(f"Deleted collection '{name}'")

    def upsert_points(self, name: str, points: List[Point]) -> None:
        if not points:
            return
        structs = [
            PointStruct(id=point.id, vector=point.vector, payload=point.payload)
            for point in points
        ]
        self._call("upsert", lambda: self.client.upsert(collection_name=name, points=structs, wait=True))
        logger.debug(f"Upserted {len(structs)} points into '{name}'")

    def search(self, name: str, vector: List[float], top_k: int) -> List[SearchHit]:
        descriptor = self.get_collection(name)
        negate = descriptor is not None and descriptor.distance_metric == DistanceMetric.EUCLID

        response = self._call("search", lambda: self.client.query_points(
            collection_name=name,
            query=vector,
            limit=top_k,
            with_payload=True,
            with_vectors=False,
        ))

        hits = []
        for point in response.points:
            score = float(point.score)
            hits.append(SearchHit(
                score=-score if negate else score,
                payload=dict(point.payload or {}),
                point_id=str(point.id),
            ))
        return hits

    def count(self, name: str) -> int:
        result = self._call("count", lambda: self.client.count(collection_name=name, exact=True))
        return result.count
