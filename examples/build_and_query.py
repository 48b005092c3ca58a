"""
Example usage of Code Index.

This example shows how to:
1. Build an index from your codebase into a Qdrant collection
2. Perform semantic search against it
3. Inspect files that could not be parsed
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from code_index.config import configure_logging, get_data_dir
from code_index.indexing import IndexBuilder
from code_index.retrieval import QueryEngine


def build_index_example(target_directory: str, collection: str):
    """Example of building an index from a codebase"""
    print("=== Building Index ===")

    builder = IndexBuilder(max_snippet_size=2000, granularity="medium")
    print(f"- Embedding provider: {builder.embedding_generator.get_provider_info()}")

    output_file = Path(get_data_dir()) / f"{collection}.chunks.json"
    report = builder.build_index(target_directory, collection, output_file=output_file)

    print(f"- Files processed: {report.processed_files}/{report.total_files}")
    print(f"- Entities extracted: {report.total_entities}")
    print(f"- Chunks created: {report.total_chunks}")
    print(f"- Points written: {report.upserted_points}")
    print(f"- Chunks saved to: {output_file}")

    for failure in report.failures:
        print(f"  skipped {failure.file_path}: {failure.reason}")

    if not report.succeeded:
        print(f"Index build failed: {report.stage_error}")

    return builder, report


def semantic_search_example(builder: IndexBuilder, collection: str):
    """Example of pure semantic search"""
    print("\n=== Semantic Search ===")

    engine = QueryEngine(builder.get_vector_store(), builder.embedding_generator)

    query = "retry a request with exponential backoff"
    results = engine.search_similar_code(collection, query, k=5)

    print(f"Search Query: {query}")
    print(f"Found {len(results)} results:")

    for i, result in enumerate(results, 1):
        print(f"\n--- Result {i} (Score: {result['score']:.3f}) ---")
        print(f"File: {result['file_path']}")
        print(f"Lines: {result['line_range']}")
        print(f"Kind: {result['kind']} {result['name']}")
        print(f"Content Preview: {result['content'][:200]}...")


def main():
    """Main example function"""
    configure_logging()

    target_directory = sys.argv[1] if len(sys.argv) > 1 else str(Path(__file__).parent.parent / "code_index")
    collection = sys.argv[2] if len(sys.argv) > 2 else "code_index_example"

    print("Code Index - Build and Query Example")
    print("=" * 60)

    builder, report = build_index_example(target_directory, collection)
    if report.succeeded:
        semantic_search_example(builder, collection)


if __name__ == "__main__":
    main()
