import textwrap

import pytest

from code_index.exceptions import ConfigurationError
from code_index.indexing.chunk_reconciler import (
    ChunkReconciler, chunk_statistics, merge_bound, split_entity
)
from code_index.indexing.extraction import EntityExtractor
from code_index.models import EntityKind, Granularity

from conftest import make_entity


def _imports_then_function():
    first = make_entity(EntityKind.IMPORT, "import os\n", 0, name="os", line=1)
    second = make_entity(EntityKind.IMPORT, "import re\n", 10, name="re", line=2)
    body = "def f():\n" + "    x = 1\n" * 29 + "\n"
    assert len(body) == 300
    function = make_entity(EntityKind.FUNCTION, body, 20, name="f", line=3)
    return [first, second, function]


SAMPLE_MODULE = textwrap.dedent('''\
    import os
    import sys
    from typing import List

    MAX_RETRIES = 3
    DEFAULT_NAME = "sample"


    def load(path):
        """Read a file."""
        with open(path) as handle:
            return handle.read()


    class Registry:
        """Keeps things."""

        items = []

        def add(self, item):
            self.items.append(item)
            return len(self.items)

        def clear(self):
            self.items = []


    def main():
        registry = Registry()
        for name in os.listdir("."):
            registry.add(load(name))
        print(registry.items, file=sys.stderr)


    if __name__ == "__main__":
        main()
''')


class TestMergeScenarios:
    def test_fine_merges_only_declarations(self):
        chunks = ChunkReconciler(500, Granularity.FINE).reconcile(_imports_then_function())

        assert [chunk.size for chunk in chunks] == [20, 300]
        assert chunks[0].kind == EntityKind.IMPORT
        assert chunks[0].source_entity_count == 2
        assert chunks[0].member_kinds == (EntityKind.IMPORT, EntityKind.IMPORT)
        assert chunks[1].kind == EntityKind.FUNCTION
        assert chunks[1].source_entity_count == 1

    def test_coarse_merges_everything_within_bound(self):
        chunks = ChunkReconciler(500, Granularity.COARSE).reconcile(_imports_then_function())

        assert len(chunks) == 1
        assert chunks[0].size == 320
        assert chunks[0].byte_range == (0, 320)
        assert chunks[0].kind == EntityKind.OTHER
        assert chunks[0].member_kinds == (EntityKind.IMPORT, EntityKind.IMPORT, EntityKind.FUNCTION)

    def test_medium_uses_half_the_bound(self):
        chunks = ChunkReconciler(500, Granularity.MEDIUM).reconcile(_imports_then_function())

        assert merge_bound(Granularity.MEDIUM, 500) == 250
        assert [chunk.size for chunk in chunks] == [20, 300]

    def test_fine_never_merges_across_a_function(self):
        entities = _imports_then_function()
        trailing = make_entity(EntityKind.IMPORT, "import io\n", 320, name="io", line=33)
        chunks = ChunkReconciler(500, Granularity.FINE).reconcile(entities + [trailing])

        assert [chunk.size for chunk in chunks] == [20, 300, 10]

    def test_non_adjacent_chunks_are_not_merged(self):
        first = make_entity(EntityKind.IMPORT, "import os\n", 0)
        distant = make_entity(EntityKind.IMPORT, "import re\n", 50)
        chunks = ChunkReconciler(500, Granularity.COARSE).reconcile([first, distant])

        assert len(chunks) == 2

    def test_fine_without_bound_merges_all_declarations(self):
        entities = [
            make_entity(EntityKind.CONSTANT, f"C{i} = {i}\n", i * 7, line=i + 1)
            for i in range(10)
        ]
        chunks = ChunkReconciler(None, Granularity.FINE).reconcile(entities)

        assert len(chunks) == 1
        assert chunks[0].source_entity_count == 10


class TestSplit:
    def test_split_scenario(self):
        lines = ["x" * 99 + "\n" for _ in range(12)]
        snippet = "".join(lines)
        assert len(snippet) == 1200
        entity = make_entity(EntityKind.FUNCTION, snippet, 40, name="big", line=5)

        chunks = ChunkReconciler(500, Granularity.FINE).reconcile([entity])

        assert [chunk.part_index for chunk in chunks] == [0, 1, 2]
        assert all(chunk.part_count == 3 for chunk in chunks)
        assert all(chunk.size <= 500 for chunk in chunks)
        assert "".join(chunk.snippet for chunk in chunks) == snippet
        assert chunks[0].byte_range[0] == 40
        assert chunks[-1].byte_range[1] == 1240
        assert chunks[0].line_range == (5, 9)
        assert chunks[1].line_range == (10, 14)
        assert chunks[2].line_range == (15, 16)
        assert chunks[1].name == "big [part 2/3]"

    def test_over_long_line_is_cut_hard(self):
        snippet = "a" * 1100 + "\nshort\n"
        entity = make_entity(EntityKind.CONSTANT, snippet, 0)

        fragments = split_entity(entity, 500)

        assert [fragment.size for fragment in fragments] == [500, 500, 107]
        assert "".join(fragment.snippet for fragment in fragments) == snippet

    def test_small_entity_is_untouched(self):
        entity = make_entity(EntityKind.FUNCTION, "def f():\n    pass\n", 0, name="f")
        fragments = split_entity(entity, 500)

        assert len(fragments) == 1
        assert fragments[0].part_index is None
        assert fragments[0].name == "f"

    def test_multibyte_text_keeps_byte_ranges_contiguous(self):
        snippet = "s = 'é'\n" * 40
        entity = make_entity(EntityKind.VARIABLE, snippet, 0)

        fragments = split_entity(entity, 50)

        assert all(fragment.size <= 50 for fragment in fragments)
        for previous, following in zip(fragments, fragments[1:]):
            assert previous.byte_range[1] == following.byte_range[0]
        assert fragments[-1].byte_range[1] == len(snippet.encode("utf-8"))


class TestInvariants:
    @pytest.mark.parametrize("granularity", list(Granularity))
    @pytest.mark.parametrize("max_size", [40, 120, 400, 5000])
    def test_coverage_size_and_order(self, granularity, max_size):
        entities = EntityExtractor().extract("sample.py", "python", SAMPLE_MODULE)
        chunks = ChunkReconciler(max_size, granularity).reconcile(entities)

        assert "".join(chunk.snippet for chunk in chunks) == SAMPLE_MODULE
        assert chunks[0].byte_range[0] == entities[0].byte_range[0]
        assert chunks[-1].byte_range[1] == entities[-1].byte_range[1]
        for previous, following in zip(chunks, chunks[1:]):
            assert previous.byte_range[1] == following.byte_range[0]
        assert all(chunk.size <= max_size for chunk in chunks)

    def test_statistics(self):
        chunks = ChunkReconciler(500, Granularity.FINE).reconcile(_imports_then_function())
        stats = chunk_statistics(chunks, 500)

        assert stats["total_chunks"] == 2
        assert stats["merged_chunks"] == 1
        assert stats["max_size"] == 300
        assert stats["oversized_chunks"] == 0


class TestConfiguration:
    @pytest.mark.parametrize("granularity", ["medium", "coarse"])
    def test_merging_granularities_need_a_bound(self, granularity):
        with pytest.raises(ConfigurationError):
            ChunkReconciler(None, granularity)

    @pytest.mark.parametrize("size", [0, -10])
    def test_non_positive_size_is_rejected(self, size):
        with pytest.raises(ConfigurationError):
            ChunkReconciler(size, Granularity.FINE)

    def test_unknown_granularity(self):
        with pytest.raises(ConfigurationError):
            ChunkReconciler(100, "huge")

    def test_granularity_parse_is_case_insensitive(self):
        assert Granularity.parse(" Coarse ") == Granularity.COARSE
