"""
Abstract base class for vector stores.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ...models import CollectionDescriptor, Point, SearchHit


class VectorStore(ABC):
    """
    Minimal collection-oriented vector store.

    Scores returned by ``search`` always grow with similarity, whatever the
    collection's distance metric.
    """

    @abstractmethod
    def get_collection(self, name: str) -> Optional[CollectionDescriptor]:
        """Descriptor of an existing collection, or None when it is absent"""
        pass

    @abstractmethod
    def create_collection(self, descriptor: CollectionDescriptor) -> None:
        pass

    @abstractmethod
    def delete_collection(self, name: str) -> None:
        pass

    @abstractmethod
    def upsert_points(self, name: str, points: List[Point]) -> None:
        """Insert or overwrite points by id"""
        pass

    @abstractmethod
    def search(self, name: str, vector: List[float], top_k: int) -> List[SearchHit]:
        pass

    @abstractmethod
    def count(self, name: str) -> int:
        pass

    def collection_exists(self, name: str) -> bool:
        return self.get_collection(name) is not None
