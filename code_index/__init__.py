"""
Code Index - syntax-aware chunking, embedding and vector indexing of source code.
"""

__version__ = "0.1.0"

from .models import (
    EntityKind, Granularity, DistanceMetric, CodeEntity, Chunk,
    CollectionDescriptor, Point, SearchHit, FileFailure, IndexingReport
)
from .exceptions import CodeIndexError

__all__ = [
    'EntityKind',
    'Granularity',
    'DistanceMetric',
    'CodeEntity',
    'Chunk',
    'CollectionDescriptor',
    'Point',
    'SearchHit',
    'FileFailure',
    'IndexingReport',
    'CodeIndexError'
]
