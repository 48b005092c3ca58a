import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any, Tuple

from .exceptions import ConfigurationError


class EntityKind(Enum):
    """Semantic category of an extracted entity"""
    FUNCTION = "function"
    TYPE = "type"
    IMPORT = "import"
    CONSTANT = "constant"
    VARIABLE = "variable"
    OTHER = "other"

    def is_declarative(self) -> bool:
        """Kinds that fine granularity is allowed to merge"""
        return self in (EntityKind.IMPORT, EntityKind.CONSTANT, EntityKind.VARIABLE)


class Granularity(Enum):
    """How aggressively consecutive chunks are merged"""
    FINE = "fine"
    MEDIUM = "medium"
    COARSE = "coarse"

    @classmethod
    def parse(cls, value) -> 'Granularity':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Invalid granularity level: {value}. Use fine, medium, or coarse."
            ) from None


class DistanceMetric(Enum):
    COSINE = "cosine"
    DOT = "dot"
    EUCLID = "euclid"


@dataclass(frozen=True)
class CodeEntity:
    """One semantically meaningful unit extracted from a source file"""
    kind: EntityKind
    name: str
    language: str
    file_path: str
    byte_range: Tuple[int, int]
    line_range: Tuple[int, int]
    snippet: str
    parent_path: Tuple[str, ...] = ()
    signature: str = ""
    docstring: Optional[str] = None
    embedding: Optional[List[float]] = None


@dataclass
class Chunk:
    """The unit that is embedded and stored, derived from one or more entities"""
    kind: EntityKind
    name: str
    language: str
    file_path: str
    byte_range: Tuple[int, int]
    line_range: Tuple[int, int]
    snippet: str
    parent_path: Tuple[str, ...] = ()
    signature: str = ""
    docstring: Optional[str] = None
    source_entity_count: int = 1
    part_index: Optional[int] = None
    part_count: Optional[int] = None
    member_kinds: Tuple[EntityKind, ...] = ()
    embedding: Optional[List[float]] = None

    @classmethod
    def from_entity(cls, entity: CodeEntity) -> 'Chunk':
        return cls(
            kind=entity.kind,
            name=entity.name,
            language=entity.language,
            file_path=entity.file_path,
            byte_range=entity.byte_range,
            line_range=entity.line_range,
            snippet=entity.snippet,
            parent_path=tuple(entity.parent_path),
            signature=entity.signature,
            docstring=entity.docstring,
            member_kinds=(entity.kind,),
            embedding=list(entity.embedding) if entity.embedding is not None else None,
        )

    @property
    def size(self) -> int:
        return len(self.snippet)

    @property
    def is_fragment(self) -> bool:
        return self.part_index is not None

    @property
    def point_id(self) -> str:
        """Deterministic id derived from position, so re-indexing reproduces it"""
        start, end = self.byte_range
        key = f"{self.language}:{self.file_path}:{start}-{end}"
        return str(uuid.uuid5(uuid.NAMESPACE_URL, key))

    def to_payload(self) -> Dict[str, Any]:
        """Every field except the vector, in JSON-friendly form"""
        return {
            'kind': self.kind.value,
            'name': self.name,
            'language': self.language,
            'file_path': self.file_path,
            'byte_range': list(self.byte_range),
            'line_range': list(self.line_range),
            'snippet': self.snippet,
            'parent_path': list(self.parent_path),
            'signature': self.signature,
            'docstring': self.docstring,
            'source_entity_count': self.source_entity_count,
            'part_index': self.part_index,
            'part_count': self.part_count,
            'member_kinds': [kind.value for kind in self.member_kinds],
        }


@dataclass(frozen=True)
class CollectionDescriptor:
    name: str
    vector_dimension: int
    distance_metric: DistanceMetric = DistanceMetric.COSINE


@dataclass
class Point:
    """Persisted form of a chunk"""
    id: str
    vector: List[float]
    payload: Dict[str, Any]

    @classmethod
    def from_chunk(cls, chunk: Chunk) -> 'Point':
        if chunk.embedding is None:
            raise ValueError(f"Chunk {chunk.name!r} in {chunk.file_path} has no embedding")
        return cls(id=chunk.point_id, vector=list(chunk.embedding), payload=chunk.to_payload())


@dataclass
class SearchHit:
    score: float
    payload: Dict[str, Any]
    point_id: Optional[str] = None


@dataclass
class FileFailure:
    """A recoverable per-file failure collected during a run"""
    file_path: str
    stage: str
    reason: str


@dataclass
class IndexingReport:
    """Outcome of a pipeline run"""
    total_files: int = 0
    processed_files: int = 0
    total_entities: int = 0
    total_chunks: int = 0
    embedded_chunks: int = 0
    upserted_points: int = 0
    failures: List[FileFailure] = field(default_factory=list)
    stage_error: Optional[str] = None
    output_file: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.stage_error is None

    def summary(self) -> Dict[str, Any]:
        return {
            'total_files': self.total_files,
            'processed_files': self.processed_files,
            'failed_files': len(self.failures),
            'total_entities': self.total_entities,
            'total_chunks': self.total_chunks,
            'embedded_chunks': self.embedded_chunks,
            'upserted_points': self.upserted_points,
            'stage_error': self.stage_error,
        }
