import logging
import os
import pickle
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

import faiss
import numpy as np

from .base import VectorStore
from ...models import CollectionDescriptor, DistanceMetric, Point, SearchHit
from ...exceptions import CollectionNotFoundError, DimensionMismatchError


def _faiss_id(point_id: str) -> int:
    """Map a uuid string onto a non-negative int64"""
    return uuid.UUID(point_id).int >> 65


@dataclass
class _Collection:
    descriptor: CollectionDescriptor
    index: Any
    payloads: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    point_ids: Dict[int, str] = field(default_factory=dict)


class FaissVectorStore(VectorStore):
    """
    In-process FAISS vector storage, one ``IndexIDMap2`` per collection.

    Cosine collections store normalised vectors in an inner-product index.
    Euclidean scores are reported as negated L2 distances.
    """

    def __init__(self, path: str = None):
        self.path = path
        self.collections: Dict[str, _Collection] = {}
        self._lock = threading.RLock()
        self.logger = logging.getLogger(__name__)

        if path and os.path.isdir(path):
            self.load(path)

    @staticmethod
    def _new_index(descriptor: CollectionDescriptor):
        if descriptor.distance_metric == DistanceMetric.EUCLID:
            flat = faiss.IndexFlatL2(descriptor.vector_dimension)
        else:
            flat = faiss.IndexFlatIP(descriptor.vector_dimension)
        return faiss.IndexIDMap2(flat)

    @staticmethod
    def _prepare(vectors: np.ndarray, metric: DistanceMetric) -> np.ndarray:
        vectors = np.asarray(vectors, dtype='float32')
        if metric == DistanceMetric.COSINE:
            norms = np.linalg.norm(vectors, axis=1, keepdims=True)
            norms[norms == 0] = 1.0
            vectors = vectors / norms
        return np.ascontiguousarray(vectors, dtype='float32')

    def _require(self, name: str) -> _Collection:
        collection = self.collections.get(name)
        if collection is None:
            raise CollectionNotFoundError(name)
        return collection

    def get_collection(self, name: str) -> Optional[CollectionDescriptor]:
        with self._lock:
            collection = self.collections.get(name)
            return collection.descriptor if collection else None

    def create_collection(self, descriptor: CollectionDescriptor) -> None:
        with self._lock:
            self.collections[descriptor.name] = _Collection(
                descriptor=descriptor,
                index=self._new_index(descriptor),
            )
        self.logger.info(f"Created FAISS collection '{descriptor.name}'")

    def delete_collection(self, name: str) -> None:
        with self._lock:
            self.collections.pop(name, None)

    def upsert_points(self, name: str, points: List[Point]) -> None:
        if not points:
            return

        with self._lock:
            collection = self._require(name)
            dimension = collection.descriptor.vector_dimension

            # later duplicates of an id win, as in a sequence of single upserts
            latest: Dict[int, Point] = {}
            for point in points:
                if len(point.vector) != dimension:
                    raise DimensionMismatchError(dimension, len(point.vector), name)
                latest[_faiss_id(point.id)] = point

            ids = np.array(list(latest.keys()), dtype='int64')
            vectors = self._prepare(
                [point.vector for point in latest.values()],
                collection.descriptor.distance_metric
            )

            collection.index.remove_ids(ids)
            collection.index.add_with_ids(vectors, ids)
            for faiss_id, point in latest.items():
                collection.payloads[faiss_id] = dict(point.payload)
                collection.point_ids[faiss_id] = point.id

        self.logger.debug(f"Added {len(latest)} points to FAISS collection '{name}'")

    def search(self, name: str, vector: List[float], top_k: int) -> List[SearchHit]:
        with self._lock:
            collection = self._require(name)
            if collection.index.ntotal == 0 or top_k <= 0:
                return []

            metric = collection.descriptor.distance_metric
            query = self._prepare([vector], metric)
            scores, indices = collection.index.search(query, min(top_k, collection.index.ntotal))

            results = []
            for score, idx in zip(scores[0], indices[0]):
                if idx < 0:
                    continue
                value = float(score)
                if metric == DistanceMetric.EUCLID:
                    value = -float(np.sqrt(max(value, 0.0)))
                results.append(SearchHit(
                    score=value,
                    payload=dict(collection.payloads[int(idx)]),
                    point_id=collection.point_ids[int(idx)],
                ))
            return results

    def count(self, name: str) -> int:
        with self._lock:
            return int(self._require(name).index.ntotal)

    def save(self, path: str = None):
        """Save every collection under a directory"""
        path = path or self.path
        if not path:
            raise ValueError("No directory given to save the FAISS store to")
        os.makedirs(path, exist_ok=True)

        with self._lock:
            for name, collection in self.collections.items():
                base = os.path.join(path, name)
                faiss.write_index(collection.index, f"{base}.faiss")
                with open(f"{base}.meta", 'wb') as f:
                    pickle.dump({
                        'name': name,
                        'vector_dimension': collection.descriptor.vector_dimension,
                        'distance_metric': collection.descriptor.distance_metric.value,
                        'payloads': collection.payloads,
                        'point_ids': collection.point_ids,
                    }, f)
        self.logger.info(f"FAISS store saved to {path}")

    def load(self, path: str):
        """Load every collection found in a directory"""
        loaded = {}
        for entry in sorted(os.listdir(path)):
            if not entry.endswith('.meta'):
                continue
            base = os.path.join(path, entry[:-len('.meta')])
            with open(f"{base}.meta", 'rb') as f:
                meta = pickle.load(f)
            descriptor = CollectionDescriptor(
                name=meta['name'],
                vector_dimension=meta['vector_dimension'],
                distance_metric=DistanceMetric(meta['distance_metric']),
            )
            loaded[descriptor.name] = _Collection(
                descriptor=descriptor,
                index=faiss.read_index(f"{base}.faiss"),
                payloads=meta['payloads'],
                point_ids=meta['point_ids'],
            )

        with self._lock:
            self.collections.update(loaded)
        self.logger.info(f"FAISS store loaded {len(loaded)} collections from {path}")

    def get_stats(self) -> dict:
        """Get statistics about the vector store"""
        with self._lock:
            return {
                name: {
                    'dimension': collection.descriptor.vector_dimension,
                    'distance_metric': collection.descriptor.distance_metric.value,
                    'index_size': collection.index.ntotal,
                }
                for name, collection in self.collections.items()
            }
