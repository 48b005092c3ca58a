"""
JSON intermediate form between pipeline stages.

The document is ``{"format_version": 1, "chunks": [...]}``; every record holds
the chunk's payload fields plus the optional embedding.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from ..models import Chunk, EntityKind
from ..exceptions import SerializationError

FORMAT_VERSION = 1

logger = logging.getLogger(__name__)


def chunk_to_record(chunk: Chunk) -> Dict[str, Any]:
    record = chunk.to_payload()
    record['embedding'] = list(chunk.embedding) if chunk.embedding is not None else None
    return record


def chunk_from_record(record: Dict[str, Any]) -> Chunk:
    try:
        embedding = record.get('embedding')
        return Chunk(
            kind=EntityKind(record['kind']),
            name=record['name'],
            language=record['language'],
            file_path=record['file_path'],
            byte_range=tuple(record['byte_range']),
            line_range=tuple(record['line_range']),
            snippet=record['snippet'],
            parent_path=tuple(record.get('parent_path') or ()),
            signature=record.get('signature') or "",
            docstring=record.get('docstring'),
            source_entity_count=record.get('source_entity_count', 1),
            part_index=record.get('part_index'),
            part_count=record.get('part_count'),
            member_kinds=tuple(EntityKind(kind) for kind in record.get('member_kinds') or ()),
            embedding=[float(value) for value in embedding] if embedding is not None else None,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise SerializationError(f"Malformed chunk record: {e}") from e


def chunks_to_json(chunks: List[Chunk]) -> str:
    document = {
        'format_version': FORMAT_VERSION,
        'chunks': [chunk_to_record(chunk) for chunk in chunks],
    }
    return json.dumps(document, ensure_ascii=False)


def chunks_from_json(text: str) -> List[Chunk]:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid chunk document: {e}") from e

    if not isinstance(document, dict):
        raise SerializationError("Chunk document must be a JSON object")

    version = document.get('format_version')
    if version != FORMAT_VERSION:
        raise SerializationError(f"Unsupported chunk format version: {version!r}")

    records = document.get('chunks')
    if not isinstance(records, list):
        raise SerializationError("Chunk document has no 'chunks' list")

    return [chunk_from_record(record) for record in records]


def save_chunks(chunks: List[Chunk], path: Union[str, Path]) -> Path:
    """Write chunks to a JSON file, creating parent directories"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(chunks_to_json(chunks), encoding='utf-8')
    logger.info(f"Saved {len(chunks)} chunks to {path}")
    return path


def load_chunks(path: Union[str, Path]) -> List[Chunk]:
    """Read chunks written by ``save_chunks``"""
    path = Path(path)
    chunks = chunks_from_json(path.read_text(encoding='utf-8'))
    logger.info(f"Loaded {len(chunks)} chunks from {path}")
    return chunks
