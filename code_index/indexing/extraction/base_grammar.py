"""
Abstract base class for language grammars.

A grammar couples a tree-sitter parser with the entity taxonomy of its
language: which node types are declarations, which ones contain nested
declarations and which ones merely wrap another declaration.
"""

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional
import logging

from tree_sitter import Language as TSLanguage, Node, Parser, Tree
import tree_sitter_language_pack

from ...exceptions import ParseError, UnsupportedLanguageError
from ...models import EntityKind


class Language(Enum):
    """Languages with a registered grammar"""
    PYTHON = "python"
    RUST = "rust"
    TYPESCRIPT = "typescript"
    TSX = "tsx"
    JAVASCRIPT = "javascript"


@dataclass(frozen=True)
class EntityTaxonomy:
    """Node types that produce entities for one language"""
    declarations: Dict[str, EntityKind]
    containers: Dict[str, str] = field(default_factory=dict)  # node type -> body field
    wrappers: Dict[str, str] = field(default_factory=dict)  # node type -> inner field
    comments: FrozenSet[str] = frozenset({"comment"})


class Grammar(ABC):
    """Parser capability plus entity taxonomy for a single language"""

    language: Language
    extensions: List[str] = []
    taxonomy: EntityTaxonomy

    SIGNATURE_MAX_CHARS = 300

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._ts_language: Optional[TSLanguage] = None

    @property
    def name(self) -> str:
        return self.language.value

    @property
    def entity_taxonomy(self) -> EntityTaxonomy:
        return self.taxonomy

    def _load_language(self) -> TSLanguage:
        if self._ts_language is None:
            try:
                self._ts_language = tree_sitter_language_pack.get_language(self.name)
            except Exception as e:
                self.logger.error(f"Could not load tree-sitter grammar for {self.name}: {e}")
                raise UnsupportedLanguageError(self.name) from e
        return self._ts_language

    def parse(self, source: bytes, file_path: str = "<memory>") -> Tree:
        """
        Parse source bytes into a syntax tree.

        A fresh parser is created per call, parsers are not shared between
        worker threads.

        Raises:
            ParseError: if the tree contains syntax errors
        """
        parser = Parser(self._load_language())
        try:
            tree = parser.parse(source)
        except Exception as e:
            raise ParseError(file_path, e) from e

        if tree is None:
            raise ParseError(file_path, "parser returned no tree")
        if tree.root_node.has_error:
            raise ParseError(file_path, self._describe_error(tree.root_node))
        return tree

    def _describe_error(self, root: Node) -> str:
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "ERROR" or node.is_missing:
                line, column = node.start_point
                return f"syntax error near line {line + 1}, column {column + 1}"
            stack.extend(reversed([child for child in node.children if child.has_error]))
        return "syntax error"

    # Taxonomy hooks, overridden where a language needs more than a table lookup

    def is_comment(self, node: Node) -> bool:
        return node.type in self.taxonomy.comments

    def unwrap(self, node: Node) -> Node:
        """Return the declaration inside wrapper nodes such as decorators or exports"""
        inner_field = self.taxonomy.wrappers.get(node.type)
        if inner_field is None:
            return node
        inner = node.child_by_field_name(inner_field)
        return self.unwrap(inner) if inner is not None else node

    def classify(self, node: Node, nested: bool = False) -> Optional[EntityKind]:
        """Entity kind for a declaration node, or None when it is not one"""
        return self.taxonomy.declarations.get(node.type)

    def container_body(self, node: Node) -> Optional[Node]:
        body_field = self.taxonomy.containers.get(node.type)
        if body_field is None:
            return None
        return node.child_by_field_name(body_field)

    def entity_name(self, node: Node, source: bytes) -> str:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            return node_text(name_node, source)
        return ""

    def signature(self, node: Node, source: bytes) -> str:
        """Declaration header: everything before the body, or the first line"""
        body = node.child_by_field_name("body")
        if body is not None and body.start_byte > node.start_byte:
            header = source[node.start_byte:body.start_byte]
        else:
            header = source[node.start_byte:node.end_byte].split(b"\n", 1)[0]
        text = " ".join(header.decode("utf-8", errors="replace").split())
        return text[:self.SIGNATURE_MAX_CHARS]

    def docstring(self, node: Node, source: bytes) -> Optional[str]:
        return None


def node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def leading_comments(node: Node, source: bytes, prefixes, skip=("attribute_item",)) -> Optional[str]:
    """Collect the contiguous block of doc comments right above a node"""
    lines = []
    sibling = node.prev_named_sibling
    expected_row = node.start_point[0]
    while sibling is not None and sibling.type in skip:
        expected_row = sibling.start_point[0]
        sibling = sibling.prev_named_sibling
    while sibling is not None and sibling.type in ("comment", "line_comment", "block_comment"):
        if sibling.end_point[0] < expected_row - 1:
            break
        text = node_text(sibling, source).strip()
        if not text.startswith(tuple(prefixes)):
            break
        lines.insert(0, text)
        expected_row = sibling.start_point[0]
        sibling = sibling.prev_named_sibling
    if not lines:
        return None
    return "\n".join(lines)
