"""
TypeScript, TSX and JavaScript grammars.

The three languages share one taxonomy; JavaScript simply never produces the
type-only node kinds.
"""

from typing import Optional

from tree_sitter import Node

from .base_grammar import Grammar, Language, EntityTaxonomy, node_text, leading_comments
from ...models import EntityKind


FUNCTION_VALUES = {'arrow_function', 'function_expression', 'function', 'generator_function'}

ECMASCRIPT_TAXONOMY = EntityTaxonomy(
    declarations={
        'import_statement': EntityKind.IMPORT,
        'function_declaration': EntityKind.FUNCTION,
        'generator_function_declaration': EntityKind.FUNCTION,
        'function_signature': EntityKind.FUNCTION,
        'class_declaration': EntityKind.TYPE,
        'abstract_class_declaration': EntityKind.TYPE,
        'interface_declaration': EntityKind.TYPE,
        'type_alias_declaration': EntityKind.TYPE,
        'enum_declaration': EntityKind.TYPE,
        # class members
        'method_definition': EntityKind.FUNCTION,
        'method_signature': EntityKind.FUNCTION,
        'abstract_method_signature': EntityKind.FUNCTION,
        'public_field_definition': EntityKind.VARIABLE,
        'field_definition': EntityKind.VARIABLE,
    },
    containers={
        'class_declaration': 'body',
        'abstract_class_declaration': 'body',
    },
    wrappers={'export_statement': 'declaration'},
)


class TypeScriptGrammar(Grammar):
    """TypeScript declarations, classes are containers for their members"""

    language = Language.TYPESCRIPT
    extensions = ['.ts', '.mts', '.cts']
    taxonomy = ECMASCRIPT_TAXONOMY

    def classify(self, node: Node, nested: bool = False) -> Optional[EntityKind]:
        kind = super().classify(node, nested)
        if kind is not None:
            return kind

        if node.type in ('lexical_declaration', 'variable_declaration'):
            return self._classify_variables(node)

        if node.type == 'export_statement':
            # re-export without a declaration: `export { a } from './a'`
            if node.child_by_field_name('source') is not None:
                return EntityKind.IMPORT
            return EntityKind.OTHER
        return None

    def _classify_variables(self, node: Node) -> EntityKind:
        declarator = self._first_declarator(node)
        if declarator is not None:
            value = declarator.child_by_field_name('value')
            if value is not None and value.type in FUNCTION_VALUES:
                return EntityKind.FUNCTION
        keyword = node.children[0].type if node.children else ''
        if node.type == 'lexical_declaration' and keyword == 'const':
            return EntityKind.CONSTANT
        return EntityKind.VARIABLE

    def entity_name(self, node: Node, source: bytes) -> str:
        if node.type in ('lexical_declaration', 'variable_declaration'):
            declarator = self._first_declarator(node)
            if declarator is not None:
                name_node = declarator.child_by_field_name('name')
                if name_node is not None:
                    return node_text(name_node, source)
            return ''
        if node.type == 'import_statement':
            source_node = node.child_by_field_name('source')
            return node_text(source_node, source).strip('\'"') if source_node is not None else ''
        return super().entity_name(node, source)

    def docstring(self, node: Node, source: bytes) -> Optional[str]:
        return leading_comments(node, source, ('/**',), skip=('decorator',))

    @staticmethod
    def _first_declarator(node: Node) -> Optional[Node]:
        for child in node.named_children:
            if child.type == 'variable_declarator':
                return child
        return None


class TSXGrammar(TypeScriptGrammar):
    language = Language.TSX
    extensions = ['.tsx']


class JavaScriptGrammar(TypeScriptGrammar):
    language = Language.JAVASCRIPT
    extensions = ['.js', '.jsx', '.mjs', '.cjs']
