"""
Tests for syntax-tree entity extraction across the registered grammars.
"""
import textwrap

import pytest

from code_index.exceptions import ParseError, UnsupportedLanguageError
from code_index.indexing.extraction import EntityExtractor, GrammarRegistry
from code_index.models import EntityKind


PYTHON_SOURCE = textwrap.dedent('''\
    import os
    import sys

    MAX_SIZE = 10
    counter = 0


    @decorator
    def foo(a, b):
        """Add things."""
        return a + b


    class Bar:
        """A bar."""

        x = 1

        def method(self):
            return self.x
''')

RUST_SOURCE = textwrap.dedent('''\
    use std::fmt;

    /// A point.
    #[derive(Debug)]
    pub struct Point {
        x: i32,
    }

    impl Point {
        pub fn new() -> Self {
            Point { x: 0 }
        }
    }

    const LIMIT: usize = 3;
''')

TYPESCRIPT_SOURCE = textwrap.dedent('''\
    import { a } from './a';

    /** Greets. */
    export function greet(name: string): string {
      return `hi ${name}`;
    }

    export const LIMIT = 3;

    export class Greeter {
      private count = 0;

      hello(): void {
        this.count += 1;
      }
    }

    const handler = () => 1;
''')


def _assert_tiles(entities, source):
    encoded = source.encode("utf-8")
    assert "".join(entity.snippet for entity in entities) == source
    assert entities[0].byte_range[0] == 0
    assert entities[-1].byte_range[1] == len(encoded)
    for previous, following in zip(entities, entities[1:]):
        assert previous.byte_range[1] == following.byte_range[0]
    for entity in entities:
        start, end = entity.byte_range
        assert encoded[start:end].decode("utf-8") == entity.snippet


@pytest.fixture(scope="module")
def extractor():
    return EntityExtractor()


class TestPythonExtraction:
    def test_kinds_names_and_scopes(self, extractor):
        entities = extractor.extract("pkg/mod.py", "python", PYTHON_SOURCE)

        assert [entity.kind for entity in entities[:2]] == [EntityKind.IMPORT, EntityKind.IMPORT]
        summary = [(entity.kind, entity.name, entity.parent_path) for entity in entities[2:]]
        assert summary == [
            (EntityKind.CONSTANT, "MAX_SIZE", ()),
            (EntityKind.VARIABLE, "counter", ()),
            (EntityKind.FUNCTION, "foo", ()),
            (EntityKind.TYPE, "Bar", ()),
            (EntityKind.VARIABLE, "x", ("Bar",)),
            (EntityKind.FUNCTION, "method", ("Bar",)),
        ]
        _assert_tiles(entities, PYTHON_SOURCE)

    def test_decorated_function_keeps_decorator_and_docstring(self, extractor):
        entities = extractor.extract("pkg/mod.py", "python", PYTHON_SOURCE)
        foo = next(entity for entity in entities if entity.name == "foo")

        assert "@decorator" in foo.snippet
        assert foo.docstring == "Add things."
        assert foo.signature.startswith("def foo(a, b)")
        assert foo.language == "python"
        assert foo.file_path == "pkg/mod.py"

    def test_line_ranges(self, extractor):
        entities = extractor.extract("pkg/mod.py", "python", PYTHON_SOURCE)

        assert entities[0].line_range == (1, 1)
        assert entities[-1].line_range[1] == PYTHON_SOURCE.count("\n")

    def test_comment_only_file_becomes_one_entity(self, extractor):
        source = "# nothing to see here\n"
        entities = extractor.extract("notes.py", "python", source)

        assert len(entities) == 1
        assert entities[0].kind == EntityKind.OTHER
        assert entities[0].snippet == source

    def test_empty_file_has_no_entities(self, extractor):
        assert extractor.extract("empty.py", "python", "") == []

    def test_syntax_error_raises_parse_error(self, extractor):
        with pytest.raises(ParseError) as info:
            extractor.extract("broken.py", "python", "def broken(:\n    pass\n")
        assert info.value.file_path == "broken.py"

    def test_extract_file_reads_from_disk(self, extractor, tmp_path):
        path = tmp_path / "mod.py"
        path.write_text(PYTHON_SOURCE, encoding="utf-8")

        entities = extractor.extract_file(path, "mod.py")

        assert entities[0].file_path == "mod.py"
        _assert_tiles(entities, PYTHON_SOURCE)


class TestRustExtraction:
    def test_items_and_impl_members(self, extractor):
        entities = extractor.extract("src/lib.rs", "rust", RUST_SOURCE)

        assert entities[0].kind == EntityKind.IMPORT
        summary = [(entity.kind, entity.name, entity.parent_path) for entity in entities[1:]]
        assert summary == [
            (EntityKind.TYPE, "Point", ()),
            (EntityKind.TYPE, "impl Point", ()),
            (EntityKind.FUNCTION, "new", ("impl Point",)),
            (EntityKind.CONSTANT, "LIMIT", ()),
        ]
        _assert_tiles(entities, RUST_SOURCE)

    def test_doc_comment_and_attribute_belong_to_item(self, extractor):
        entities = extractor.extract("src/lib.rs", "rust", RUST_SOURCE)
        point = entities[1]

        assert "/// A point.\n#[derive(Debug)]\npub struct Point" in point.snippet
        assert point.docstring is not None and "A point." in point.docstring


class TestTypeScriptExtraction:
    def test_declarations_and_class_members(self, extractor):
        entities = extractor.extract("web/greet.ts", "typescript", TYPESCRIPT_SOURCE)

        summary = [(entity.kind, entity.name, entity.parent_path) for entity in entities]
        assert summary == [
            (EntityKind.IMPORT, "./a", ()),
            (EntityKind.FUNCTION, "greet", ()),
            (EntityKind.CONSTANT, "LIMIT", ()),
            (EntityKind.TYPE, "Greeter", ()),
            (EntityKind.VARIABLE, "count", ("Greeter",)),
            (EntityKind.FUNCTION, "hello", ("Greeter",)),
            (EntityKind.FUNCTION, "handler", ()),
        ]
        _assert_tiles(entities, TYPESCRIPT_SOURCE)

    def test_jsdoc_is_captured(self, extractor):
        entities = extractor.extract("web/greet.ts", "typescript", TYPESCRIPT_SOURCE)
        greet = entities[1]

        assert greet.docstring == "/** Greets. */"
        assert "/** Greets. */\nexport function greet" in greet.snippet

    def test_javascript_shares_the_taxonomy(self, extractor):
        source = "const add = (a, b) => a + b;\nlet total = 0;\n"
        entities = extractor.extract("util.js", "javascript", source)

        assert [(entity.kind, entity.name) for entity in entities] == [
            (EntityKind.FUNCTION, "add"),
            (EntityKind.VARIABLE, "total"),
        ]


class TestGrammarRegistry:
    @pytest.mark.parametrize("path,language", [
        ("a.py", "python"),
        ("b.rs", "rust"),
        ("c.ts", "typescript"),
        ("d.tsx", "tsx"),
        ("e.mjs", "javascript"),
    ])
    def test_extension_lookup(self, path, language):
        assert GrammarRegistry.language_for_path(path) == language

    def test_aliases(self):
        assert GrammarRegistry.for_language("ts") is GrammarRegistry.for_language("typescript")

    def test_unknown_extension(self):
        assert not GrammarRegistry.is_supported("README.md")
        with pytest.raises(UnsupportedLanguageError):
            GrammarRegistry.for_path("README.md")

    def test_unknown_language(self, extractor):
        with pytest.raises(UnsupportedLanguageError):
            extractor.extract("main.cob", "cobol", "DISPLAY 'HI'.")

    def test_grammar_exposes_its_taxonomy(self):
        taxonomy = GrammarRegistry.for_language("rust").entity_taxonomy

        assert taxonomy.containers["impl_item"] == "body"
        assert taxonomy.declarations["use_declaration"] == EntityKind.IMPORT
        assert ".rs" in GrammarRegistry.supported_extensions()
