"""
Retrieval components for searching indexed code.
"""

from .code_search import QueryEngine

__all__ = [
    'QueryEngine'
]
