"""
Chunk reconciliation: reshapes a file's entities into chunks that respect the
configured snippet size and merge granularity.

Reconciliation runs in two phases. Entities larger than ``max_snippet_size``
are split into line-aligned fragments, then a single left-to-right pass merges
consecutive chunks according to the granularity. Both phases are pure
functions over ordered sequences, so every file can be reconciled on its own.
"""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Union
import logging

from ..config import validate_chunking_config
from ..models import Chunk, CodeEntity, EntityKind, Granularity

logger = logging.getLogger(__name__)


def split_entity(entity: Union[CodeEntity, Chunk], max_size: Optional[int]) -> List[Chunk]:
    """
    Split an entity into fragments of at most ``max_size`` characters.

    Whole lines are packed into a fragment until the next line would overflow
    it. A line longer than ``max_size`` on its own is cut hard at the limit.
    The fragments' snippets concatenate to the original snippet and their
    byte ranges partition the original range.
    """
    chunk = entity if isinstance(entity, Chunk) else Chunk.from_entity(entity)
    if max_size is None or chunk.size <= max_size:
        return [chunk]

    pieces = _partition_text(chunk.snippet, max_size)
    part_count = len(pieces)
    start_byte = chunk.byte_range[0]
    line = chunk.line_range[0]

    fragments = []
    for part_index, piece in enumerate(pieces):
        byte_length = len(piece.encode('utf-8'))
        newlines = piece.count('\n')
        last_line = line + newlines - (1 if piece.endswith('\n') else 0)
        label = f"[part {part_index + 1}/{part_count}]"
        fragments.append(replace(
            chunk,
            name=f"{chunk.name} {label}" if chunk.name else label,
            byte_range=(start_byte, start_byte + byte_length),
            line_range=(line, max(line, last_line)),
            snippet=piece,
            source_entity_count=1,
            part_index=part_index,
            part_count=part_count,
            embedding=None,
        ))
        start_byte += byte_length
        line += newlines

    return fragments


def _partition_text(text: str, max_size: int) -> List[str]:
    pieces: List[str] = []
    current: List[str] = []
    current_size = 0

    for line in text.splitlines(keepends=True):
        if len(line) > max_size:
            if current:
                pieces.append(''.join(current))
            cut = 0
            while len(line) - cut > max_size:
                pieces.append(line[cut:cut + max_size])
                cut += max_size
            current = [line[cut:]] if cut < len(line) else []
            current_size = len(line) - cut
        elif current and current_size + len(line) > max_size:
            pieces.append(''.join(current))
            current = [line]
            current_size = len(line)
        else:
            current.append(line)
            current_size += len(line)

    if current:
        pieces.append(''.join(current))
    return pieces


def merge_bound(granularity: Granularity, max_snippet_size: Optional[int]) -> Optional[int]:
    """Upper size of a merged chunk under a granularity, None meaning unbounded"""
    if max_snippet_size is None:
        return None
    if granularity == Granularity.MEDIUM:
        return max_snippet_size // 2
    return max_snippet_size


def merge_chunks(chunks: Iterable[Chunk], granularity: Granularity,
                 bound: Optional[int]) -> List[Chunk]:
    """
    Fold an ordered chunk sequence into its merged form.

    A chunk joins the accumulation buffer when its kind is eligible under the
    granularity, it starts exactly where the buffer ends and the combined
    snippet stays within ``bound``. Anything else flushes the buffer. Under
    fine granularity an ineligible chunk is emitted on its own and nothing is
    merged across it.
    """
    merged: List[Chunk] = []
    buffer: List[Chunk] = []
    buffer_size = 0

    for chunk in chunks:
        if granularity == Granularity.FINE and not chunk.kind.is_declarative():
            if buffer:
                merged.append(combine_chunks(buffer))
                buffer, buffer_size = [], 0
            merged.append(chunk)
            continue

        fits = bound is None or buffer_size + chunk.size <= bound
        if buffer and fits and _adjacent(buffer[-1], chunk):
            buffer.append(chunk)
            buffer_size += chunk.size
        else:
            if buffer:
                merged.append(combine_chunks(buffer))
            buffer, buffer_size = [chunk], chunk.size

    if buffer:
        merged.append(combine_chunks(buffer))
    return merged


def _adjacent(previous: Chunk, following: Chunk) -> bool:
    return (previous.file_path == following.file_path
            and previous.byte_range[1] == following.byte_range[0])


def combine_chunks(members: Sequence[Chunk]) -> Chunk:
    """Build one chunk spanning adjacent members; a single member is returned as is"""
    if len(members) == 1:
        return members[0]

    first, last = members[0], members[-1]
    kinds = {member.kind for member in members}
    kind = first.kind if len(kinds) == 1 else EntityKind.OTHER
    start_line, end_line = first.line_range[0], last.line_range[1]

    return Chunk(
        kind=kind,
        name=f"Merged {kind.value} [lines {start_line}-{end_line}]",
        language=first.language,
        file_path=first.file_path,
        byte_range=(first.byte_range[0], last.byte_range[1]),
        line_range=(start_line, end_line),
        snippet=''.join(member.snippet for member in members),
        parent_path=_common_scope([member.parent_path for member in members]),
        signature='\n'.join(member.signature for member in members if member.signature),
        docstring=next((member.docstring for member in members if member.docstring), None),
        source_entity_count=sum(member.source_entity_count for member in members),
        member_kinds=tuple(kind for member in members for kind in member.member_kinds),
    )


def _common_scope(scopes: List[Sequence[str]]) -> tuple:
    common = []
    for names in zip(*scopes):
        if len(set(names)) != 1:
            break
        common.append(names[0])
    return tuple(common)


class ChunkReconciler:
    """
    Applies the split and merge phases to one file's entities.

    Configuration is validated on construction so that an unusable setting
    fails before any file is processed.
    """

    def __init__(self, max_snippet_size: Optional[int] = None,
                 granularity: Union[Granularity, str] = Granularity.FINE):
        self.granularity = Granularity.parse(granularity)
        self.max_snippet_size = max_snippet_size
        validate_chunking_config(self.granularity, max_snippet_size)
        self.bound = merge_bound(self.granularity, max_snippet_size)
        self.logger = logging.getLogger(__name__)

        if self.granularity == Granularity.FINE and max_snippet_size is None:
            self.logger.warning(
                "Fine granularity without max_snippet_size: consecutive imports, "
                "constants and variables are merged without a size limit"
            )

    def split(self, entities: Iterable[Union[CodeEntity, Chunk]]) -> List[Chunk]:
        chunks: List[Chunk] = []
        for entity in entities:
            chunks.extend(split_entity(entity, self.max_snippet_size))
        return chunks

    def merge(self, chunks: Iterable[Chunk]) -> List[Chunk]:
        return merge_chunks(chunks, self.granularity, self.bound)

    def reconcile(self, entities: Iterable[Union[CodeEntity, Chunk]]) -> List[Chunk]:
        """Split oversized entities, then merge per granularity"""
        return self.merge(self.split(entities))


def chunk_statistics(chunks: Sequence[Chunk], max_snippet_size: Optional[int] = None) -> Dict[str, float]:
    """Size profile of a chunk sequence, logged after a parse run"""
    sizes = [chunk.size for chunk in chunks]
    return {
        'total_chunks': len(chunks),
        'avg_size': sum(sizes) / len(sizes) if sizes else 0,
        'max_size': max(sizes) if sizes else 0,
        'min_size': min(sizes) if sizes else 0,
        'merged_chunks': sum(1 for chunk in chunks if chunk.source_entity_count > 1),
        'fragments': sum(1 for chunk in chunks if chunk.is_fragment),
        'oversized_chunks': (
            sum(1 for size in sizes if size > max_snippet_size) if max_snippet_size else 0
        ),
    }
