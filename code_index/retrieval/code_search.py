from typing import List, Dict, Any
import logging

from ..indexing.vector_stores import VectorStore
from ..indexing.embedding_processor import EmbeddingGenerator
from ..models import SearchHit
from ..config import DEFAULT_SEARCH_K
from ..exceptions import CollectionNotFoundError, DimensionMismatchError


class QueryEngine:
    """Pure semantic search over an indexed collection"""

    def __init__(self, vector_store: VectorStore, embedding_generator: EmbeddingGenerator):
        """
        Initialize the query engine

        Args:
            vector_store: Store holding the indexed collections
            embedding_generator: Generator used to embed queries with the indexing model
        """
        self.vector_store = vector_store
        self.embedding_generator = embedding_generator
        self.logger = logging.getLogger(__name__)

    def query(self, collection: str, text: str, top_k: int = None) -> List[SearchHit]:
        """
        Find the chunks closest to a natural-language or code query

        Args:
            collection: Collection to search
            text: Query text
            top_k: Number of results to return (uses config default if None)

        Returns:
            Hits ordered by non-increasing score

        Raises:
            CollectionNotFoundError: if the collection does not exist
            DimensionMismatchError: if the query model and the collection disagree
            TransportError: on network failures, which are not retried here
        """
        if top_k is None:
            top_k = DEFAULT_SEARCH_K
        if top_k < 1:
            raise ValueError(f"top_k must be positive, got {top_k}")

        descriptor = self.vector_store.get_collection(collection)
        if descriptor is None:
            raise CollectionNotFoundError(collection)

        self.logger.info(f"Searching '{collection}' for: {text}")
        vector = self.embedding_generator.embed_query(text)
        if len(vector) != descriptor.vector_dimension:
            raise DimensionMismatchError(descriptor.vector_dimension, len(vector), collection)

        hits = self.vector_store.search(collection, vector, top_k)
        # sorted() is stable, ties keep the store's order
        hits = sorted(hits, key=lambda hit: hit.score, reverse=True)

        self.logger.info(f"Found {len(hits)} results")
        return hits

    def search_similar_code(self, collection: str, query: str, k: int = None) -> List[Dict[str, Any]]:
        """
        Search and flatten hits into plain dictionaries

        Returns:
            List of formatted results with similarity scores
        """
        formatted_results = []
        for hit in self.query(collection, query, k):
            payload = hit.payload
            line_range = payload.get('line_range') or [0, 0]
            formatted_results.append({
                'content': payload.get('snippet', ''),
                'score': hit.score,
                'file_path': payload.get('file_path'),
                'language': payload.get('language'),
                'kind': payload.get('kind'),
                'name': payload.get('name'),
                'line_range': f"{line_range[0]}-{line_range[1]}",
                'metadata': payload,
            })
        return formatted_results

    def search_by_language(self, collection: str, query: str, language: str, k: int = None) -> List[Dict[str, Any]]:
        """
        Search for chunks written in one language

        Args:
            collection: Collection to search
            query: Search query
            language: Language tag (e.g. 'python', 'rust')
            k: Number of results to return (uses config default if None)
        """
        if k is None:
            k = DEFAULT_SEARCH_K
        all_results = self.search_similar_code(collection, query, k * 3)

        filtered_results = [
            result for result in all_results
            if result['language'] == language
        ]

        return filtered_results[:k]
