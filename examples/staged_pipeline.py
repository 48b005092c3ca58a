"""
Run the indexing stages one at a time through the intermediate JSON file.

1. Parse a directory into chunks and save them
2. Embed the saved chunks (re-running skips chunks that already have vectors)
3. Upsert the embedded chunks into a local FAISS store

Usage: python staged_pipeline.py <directory> [granularity] [max_snippet_size]
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from code_index.config import configure_logging, get_data_dir, get_indices_dir
from code_index.indexing import IndexBuilder, make_vector_store
from code_index.indexing.chunk_reconciler import chunk_statistics


def main():
    configure_logging()

    if len(sys.argv) < 2:
        print(__doc__)
        return

    target_directory = sys.argv[1]
    granularity = sys.argv[2] if len(sys.argv) > 2 else "fine"
    max_snippet_size = int(sys.argv[3]) if len(sys.argv) > 3 else 1500

    data_dir = Path(get_data_dir())
    chunks_file = data_dir / "chunks.json"
    embedded_file = data_dir / "chunks.embedded.json"

    store = make_vector_store("faiss")
    builder = IndexBuilder(
        max_snippet_size=max_snippet_size,
        granularity=granularity,
        vector_store=store,
    )

    chunks = builder.parse_directory(target_directory, output_file=chunks_file)
    stats = chunk_statistics(chunks, max_snippet_size)
    print(f"Parsed {stats['total_chunks']} chunks (avg {stats['avg_size']:.0f} chars) -> {chunks_file}")
    for failure in builder.last_report.failures:
        print(f"  skipped {failure.file_path}: {failure.reason}")

    builder.generate_embeddings(chunks_file, output_file=embedded_file)
    print(f"Embeddings written to {embedded_file}")

    written = builder.upsert_embeddings("code", embedded_file)
    store.save(get_indices_dir())
    print(f"Stored {written} points in {get_indices_dir()}")
    for name, stats in store.get_stats().items():
        print(f"  {name}: {stats['index_size']} vectors, {stats['dimension']} dims, {stats['distance_metric']}")


if __name__ == "__main__":
    main()
