"""
Indexing components for building code embeddings and vector indices.
"""

from .file_processor import FileProcessor
from .extraction import EntityExtractor, GrammarRegistry
from .chunk_reconciler import ChunkReconciler
from .embedding_processor import EmbeddingGenerator
from .vector_stores import VectorStore, VectorStoreUpserter, make_vector_store
from .retry import RetryPolicy
from .index_builder import IndexBuilder

from .embeddings import EmbeddingProviderFactory, BaseEmbeddingProvider

__all__ = [
    'FileProcessor',
    'EntityExtractor',
    'GrammarRegistry',
    'ChunkReconciler',
    'EmbeddingGenerator',
    'VectorStore',
    'VectorStoreUpserter',
    'make_vector_store',
    'RetryPolicy',
    'IndexBuilder',
    'EmbeddingProviderFactory',
    'BaseEmbeddingProvider'
]
