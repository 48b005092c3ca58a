"""
Rust grammar and entity taxonomy.
"""

from typing import Optional

from tree_sitter import Node

from .base_grammar import Grammar, Language, EntityTaxonomy, node_text, leading_comments
from ...models import EntityKind


class RustGrammar(Grammar):
    """Rust items; impl, trait and mod blocks are containers for their members"""

    language = Language.RUST
    extensions = ['.rs']
    taxonomy = EntityTaxonomy(
        declarations={
            'use_declaration': EntityKind.IMPORT,
            'extern_crate_declaration': EntityKind.IMPORT,
            'function_item': EntityKind.FUNCTION,
            'function_signature_item': EntityKind.FUNCTION,
            'macro_definition': EntityKind.FUNCTION,
            'struct_item': EntityKind.TYPE,
            'enum_item': EntityKind.TYPE,
            'union_item': EntityKind.TYPE,
            'type_item': EntityKind.TYPE,
            'associated_type': EntityKind.TYPE,
            'trait_item': EntityKind.TYPE,
            'impl_item': EntityKind.TYPE,
            'mod_item': EntityKind.TYPE,
            'const_item': EntityKind.CONSTANT,
            'static_item': EntityKind.VARIABLE,
        },
        containers={
            'impl_item': 'body',
            'trait_item': 'body',
            'mod_item': 'body',
        },
        comments=frozenset({'line_comment', 'block_comment', 'attribute_item', 'inner_attribute_item'}),
    )

    DOC_PREFIXES = ('///', '//!', '/**', '/*!')

    def entity_name(self, node: Node, source: bytes) -> str:
        if node.type == 'impl_item':
            type_node = node.child_by_field_name('type')
            trait_node = node.child_by_field_name('trait')
            type_name = node_text(type_node, source) if type_node is not None else 'anonymous'
            if trait_node is not None:
                return f"impl {node_text(trait_node, source)} for {type_name}"
            return f"impl {type_name}"
        return super().entity_name(node, source)

    def docstring(self, node: Node, source: bytes) -> Optional[str]:
        return leading_comments(node, source, self.DOC_PREFIXES)
