"""
Entity extraction: walks a file's syntax tree and produces CodeEntity records
in source order.
"""

import bisect
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union
import logging

from tree_sitter import Node

from .base_grammar import Grammar
from .grammar_registry import GrammarRegistry
from ..file_processor import FileProcessor
from ...exceptions import ParseError
from ...models import CodeEntity, EntityKind


@dataclass
class _Anchor:
    """Raw declaration span before the gaps between declarations are absorbed"""
    start: int
    end: int
    kind: EntityKind
    name: str
    parent_path: Tuple[str, ...]
    signature: str = ""
    docstring: Optional[str] = None


class EntityExtractor:
    """
    Turns one source file into an ordered list of CodeEntity values.

    Declarations recognised by the language taxonomy become entities. The
    text between them (comments, attributes, blank lines) is absorbed into
    the neighbouring entities so that the entities of a file tile it: the
    remainder of the line a declaration ends on stays with it, everything
    after that belongs to the next declaration.
    """

    def __init__(self, registry: type = GrammarRegistry):
        self.registry = registry
        self.logger = logging.getLogger(__name__)

    def extract(self, file_path: Union[str, Path], language: str, source_text: str) -> List[CodeEntity]:
        """
        Extract entities from source text.

        Args:
            file_path: Path recorded on every entity
            language: Language tag understood by the grammar registry
            source_text: Full file content

        Returns:
            Entities in ascending byte order

        Raises:
            ParseError: if the grammar cannot parse the text
            UnsupportedLanguageError: if no grammar handles the language
        """
        file_path = str(file_path)
        grammar = self.registry.for_language(language)
        source = source_text.encode('utf-8')
        tree = grammar.parse(source, file_path)

        anchors: List[_Anchor] = []
        self._collect(grammar, tree.root_node, source, (), anchors, nested=False)

        if not anchors:
            if not source_text.strip():
                return []
            anchors.append(_Anchor(0, len(source), EntityKind.OTHER, Path(file_path).name, ()))

        entities = self._tile(anchors, source, grammar.name, file_path)
        self.logger.debug(f"Extracted {len(entities)} entities from {file_path}")
        return entities

    def extract_file(self, file_path: Union[str, Path], display_path: str = None) -> List[CodeEntity]:
        """Read a file from disk and extract its entities"""
        path = Path(file_path)
        language = self.registry.language_for_path(path)
        content = FileProcessor.read_file_content(path)
        if content is None:
            raise ParseError(str(path), "could not read or decode file")
        return self.extract(display_path or str(path), language, content)

    def _collect(self, grammar: Grammar, parent: Node, source: bytes,
                 scope: Tuple[str, ...], anchors: List[_Anchor], nested: bool):
        for child in parent.named_children:
            if grammar.is_comment(child):
                continue

            inner = grammar.unwrap(child)
            kind = grammar.classify(inner, nested)
            if kind is None and inner is not child:
                kind = grammar.classify(child, nested)
            if kind is None:
                if nested:
                    continue
                kind = EntityKind.OTHER

            name = grammar.entity_name(inner, source)
            anchor = _Anchor(
                start=child.start_byte,
                end=child.end_byte,
                kind=kind,
                name=name,
                parent_path=scope,
                signature=grammar.signature(inner, source),
                docstring=grammar.docstring(child, source),
            )
            anchors.append(anchor)

            body = grammar.container_body(inner)
            if body is None:
                continue

            first_member = len(anchors)
            self._collect(grammar, body, source, scope + (name,), anchors, nested=True)
            if len(anchors) > first_member:
                # the container keeps its header, the members own the rest
                anchor.end = anchors[first_member].start
                anchors[-1].end = max(anchors[-1].end, child.end_byte)

    def _tile(self, anchors: List[_Anchor], source: bytes, language: str, file_path: str) -> List[CodeEntity]:
        bounds = [[anchor.start, anchor.end] for anchor in anchors]
        bounds[0][0] = 0
        for i in range(1, len(bounds)):
            prev_end = bounds[i - 1][1]
            start = max(bounds[i][0], prev_end)
            gap = source[prev_end:start]
            newline = gap.find(b'\n')
            boundary = prev_end + newline + 1 if newline >= 0 else prev_end
            bounds[i - 1][1] = boundary
            bounds[i][0] = boundary
        bounds[-1][1] = len(source)

        newlines = [i for i, byte in enumerate(source) if byte == 0x0A]

        def line_of(offset: int) -> int:
            return bisect.bisect_left(newlines, offset) + 1

        entities = []
        for anchor, (start, end) in zip(anchors, bounds):
            entities.append(CodeEntity(
                kind=anchor.kind,
                name=anchor.name,
                language=language,
                file_path=file_path,
                byte_range=(start, end),
                line_range=(line_of(start), line_of(max(start, end - 1))),
                snippet=source[start:end].decode('utf-8'),
                parent_path=anchor.parent_path,
                signature=anchor.signature,
                docstring=anchor.docstring,
            ))
        return entities
