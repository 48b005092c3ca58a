import pytest

from code_index.exceptions import CollectionNotFoundError, DimensionMismatchError
from code_index.indexing.embedding_processor import EmbeddingGenerator
from code_index.indexing.vector_stores import QdrantVectorStore, VectorStoreUpserter
from code_index.models import CollectionDescriptor, SearchHit
from code_index.retrieval import QueryEngine

from conftest import FakeEmbeddingProvider, make_chunk


@pytest.fixture
def populated(fake_provider, fast_retry):
    store = QdrantVectorStore(location=":memory:")
    generator = EmbeddingGenerator(fake_provider, retry_policy=fast_retry)
    chunks = [make_chunk(i) for i in range(12)]
    generator.embed(chunks)
    VectorStoreUpserter(store, retry_policy=fast_retry).upsert("code", chunks)
    return store, generator, chunks


class StaticStore:
    """Returns canned hits in a fixed order"""

    def __init__(self, hits, dimension=8):
        self.hits = hits
        self.dimension = dimension
        self.searches = []

    def get_collection(self, name):
        return CollectionDescriptor(name, self.dimension)

    def search(self, name, vector, top_k):
        self.searches.append((name, top_k))
        return list(self.hits[:top_k])


class TestQueryEngine:
    def test_results_are_ordered_by_score(self, populated):
        store, generator, _ = populated

        hits = QueryEngine(store, generator).query("code", "function returning a number", top_k=5)

        assert len(hits) == 5
        scores = [hit.score for hit in hits]
        assert all(first >= second for first, second in zip(scores, scores[1:]))

    def test_exact_snippet_query_finds_its_chunk(self, populated, fake_provider):
        store, generator, chunks = populated
        target = chunks[4]
        query = fake_provider.create_embedding_text(target)

        hits = QueryEngine(store, generator).query("code", query, top_k=3)

        assert hits[0].point_id == target.point_id
        assert hits[0].payload["file_path"] == target.file_path

    def test_ties_keep_store_order(self, fake_provider):
        hits = [
            SearchHit(0.5, {"name": "a"}),
            SearchHit(0.9, {"name": "b"}),
            SearchHit(0.5, {"name": "c"}),
            SearchHit(0.5, {"name": "d"}),
        ]
        engine = QueryEngine(StaticStore(hits), EmbeddingGenerator(fake_provider))

        result = engine.query("code", "anything", top_k=4)

        assert [hit.payload["name"] for hit in result] == ["b", "a", "c", "d"]
        assert [hit.payload["name"] for hit in hits] == ["a", "b", "c", "d"]

    def test_missing_collection(self, fake_provider):
        store = QdrantVectorStore(location=":memory:")

        with pytest.raises(CollectionNotFoundError):
            QueryEngine(store, EmbeddingGenerator(fake_provider)).query("missing", "x")

        assert fake_provider.calls == []

    def test_query_model_must_match_collection(self, populated):
        store, _, _ = populated
        other_model = EmbeddingGenerator(FakeEmbeddingProvider(dimension=4))

        with pytest.raises(DimensionMismatchError):
            QueryEngine(store, other_model).query("code", "x")

    def test_formatted_results(self, populated):
        store, generator, _ = populated

        results = QueryEngine(store, generator).search_similar_code("code", "function", k=2)

        assert len(results) == 2
        assert {"content", "score", "file_path", "language", "kind", "name", "line_range"} <= set(results[0])
        assert results[0]["language"] == "python"

    def test_filter_by_language(self, populated):
        store, generator, _ = populated

        assert QueryEngine(store, generator).search_by_language("code", "function", "rust", k=3) == []

    @pytest.mark.parametrize("top_k", [0, -1])
    def test_top_k_must_be_positive(self, fake_provider, top_k):
        engine = QueryEngine(StaticStore([]), EmbeddingGenerator(fake_provider))

        with pytest.raises(ValueError):
            engine.query("code", "x", top_k=top_k)
