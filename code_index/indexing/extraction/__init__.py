"""
Syntax-tree based entity extraction.
"""

from .base_grammar import Grammar, EntityTaxonomy, Language
from .grammar_registry import GrammarRegistry
from .entity_extractor import EntityExtractor

__all__ = [
    'Grammar',
    'EntityTaxonomy',
    'Language',
    'GrammarRegistry',
    'EntityExtractor'
]
