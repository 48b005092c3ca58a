"""
Python grammar and entity taxonomy.
"""

from typing import Optional

from tree_sitter import Node

from .base_grammar import Grammar, Language, EntityTaxonomy, node_text
from ...models import EntityKind


class PythonGrammar(Grammar):
    """Python declarations: imports, functions, classes and module-level assignments"""

    language = Language.PYTHON
    extensions = ['.py', '.pyi', '.pyx']
    taxonomy = EntityTaxonomy(
        declarations={
            'import_statement': EntityKind.IMPORT,
            'import_from_statement': EntityKind.IMPORT,
            'future_import_statement': EntityKind.IMPORT,
            'function_definition': EntityKind.FUNCTION,
            'class_definition': EntityKind.TYPE,
            'type_alias_statement': EntityKind.TYPE,
        },
        containers={'class_definition': 'body'},
        wrappers={'decorated_definition': 'definition'},
    )

    def classify(self, node: Node, nested: bool = False) -> Optional[EntityKind]:
        kind = super().classify(node, nested)
        if kind is not None:
            return kind

        assignment = self._assignment(node)
        if assignment is None:
            return None
        if nested:
            return EntityKind.VARIABLE
        target = assignment.child_by_field_name('left')
        if target is not None and target.type == 'identifier':
            name = target.text.decode('utf-8', errors='replace') if target.text else ''
            if name.isupper():
                return EntityKind.CONSTANT
        return EntityKind.VARIABLE

    def entity_name(self, node: Node, source: bytes) -> str:
        assignment = self._assignment(node)
        if assignment is not None:
            target = assignment.child_by_field_name('left')
            return node_text(target, source) if target is not None else ''
        if node.type == 'type_alias_statement':
            left = node.child_by_field_name('left')
            return node_text(left, source) if left is not None else ''
        return super().entity_name(node, source)

    def docstring(self, node: Node, source: bytes) -> Optional[str]:
        body = self.unwrap(node).child_by_field_name('body')
        if body is None or not body.named_children:
            return None
        first = body.named_children[0]
        if first.type != 'expression_statement' or not first.named_children:
            return None
        literal = first.named_children[0]
        if literal.type != 'string':
            return None
        text = node_text(literal, source)
        return text.strip('"\'').strip() or None

    @staticmethod
    def _assignment(node: Node) -> Optional[Node]:
        if node.type != 'expression_statement' or not node.named_children:
            return None
        child = node.named_children[0]
        if child.type == 'assignment':
            return child
        return None
