"""
Registry resolving languages and file extensions to grammars.
"""

import threading
from pathlib import Path
from typing import Dict, List, Optional, Union
import logging

from .base_grammar import Grammar, Language
from .python_grammar import PythonGrammar
from .rust_grammar import RustGrammar
from .typescript_grammar import TypeScriptGrammar, TSXGrammar, JavaScriptGrammar
from ...exceptions import UnsupportedLanguageError


class GrammarRegistry:
    """
    Read-only lookup table from language tags and extensions to grammars.

    The table is built once, on first use, and never changes afterwards, so
    worker threads can share it freely.
    """

    _grammar_classes = (
        PythonGrammar,
        RustGrammar,
        TypeScriptGrammar,
        TSXGrammar,
        JavaScriptGrammar,
    )

    _by_language: Optional[Dict[str, Grammar]] = None
    _by_extension: Optional[Dict[str, Grammar]] = None
    _lock = threading.Lock()

    @classmethod
    def _ensure_built(cls):
        if cls._by_language is not None:
            return
        with cls._lock:
            if cls._by_language is not None:
                return
            by_language: Dict[str, Grammar] = {}
            by_extension: Dict[str, Grammar] = {}
            for grammar_class in cls._grammar_classes:
                grammar = grammar_class()
                by_language[grammar.name] = grammar
                for extension in grammar.extensions:
                    by_extension[extension.lstrip('.').lower()] = grammar
            # aliases accepted from configuration and serialized chunks
            by_language['ts'] = by_language[Language.TYPESCRIPT.value]
            by_language['js'] = by_language[Language.JAVASCRIPT.value]
            by_language['jsx'] = by_language[Language.JAVASCRIPT.value]
            by_language['py'] = by_language[Language.PYTHON.value]
            by_language['rs'] = by_language[Language.RUST.value]
            cls._by_extension = by_extension
            cls._by_language = by_language
            logging.getLogger(__name__).debug(
                f"Grammar registry built with {len(by_extension)} extensions"
            )

    @classmethod
    def for_language(cls, language: Union[str, Language]) -> Grammar:
        """Get the grammar for a language tag"""
        cls._ensure_built()
        tag = language.value if isinstance(language, Language) else str(language).lower()
        grammar = cls._by_language.get(tag)
        if grammar is None:
            raise UnsupportedLanguageError(tag)
        return grammar

    @classmethod
    def for_path(cls, file_path: Union[str, Path]) -> Grammar:
        """Get the grammar for a file based on its extension"""
        cls._ensure_built()
        extension = Path(file_path).suffix.lstrip('.').lower()
        grammar = cls._by_extension.get(extension)
        if grammar is None:
            raise UnsupportedLanguageError(extension or '<none>', file_path=str(file_path))
        return grammar

    @classmethod
    def language_for_path(cls, file_path: Union[str, Path]) -> str:
        return cls.for_path(file_path).name

    @classmethod
    def supported_extensions(cls) -> List[str]:
        cls._ensure_built()
        return sorted(f".{ext}" for ext in cls._by_extension)

    @classmethod
    def is_supported(cls, file_path: Union[str, Path]) -> bool:
        cls._ensure_built()
        return Path(file_path).suffix.lstrip('.').lower() in cls._by_extension
