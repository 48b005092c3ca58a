import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .file_processor import FileProcessor
from .extraction import EntityExtractor
from .chunk_reconciler import ChunkReconciler, chunk_statistics
from .chunk_serializer import load_chunks, save_chunks
from .embedding_processor import EmbeddingGenerator
from .retry import RetryPolicy
from .vector_stores import VectorStore, VectorStoreUpserter, make_vector_store
from ..models import Chunk, FileFailure, Granularity, IndexingReport
from ..config import DEFAULT_GRANULARITY, DEFAULT_MAX_SNIPPET_SIZE
from ..exceptions import CodeIndexError, ParseError, UnsupportedLanguageError

ChunkSource = Union[List[Chunk], str, Path]


class IndexBuilder:
    """Main orchestrator: files -> entities -> chunks -> embeddings -> vector store"""

    def __init__(self, max_snippet_size: Optional[int] = DEFAULT_MAX_SNIPPET_SIZE,
                 granularity: Union[Granularity, str] = DEFAULT_GRANULARITY,
                 embedding_generator: EmbeddingGenerator = None,
                 vector_store: VectorStore = None,
                 excluded_dirs: List[str] = None,
                 included_extensions: List[str] = None,
                 max_workers: int = None,
                 upsert_batch_size: int = None,
                 upsert_max_workers: int = None,
                 retry_policy: RetryPolicy = None,
                 embedding_provider: str = None,
                 embedding_model: str = None):
        """
        Initialize the Index Builder

        Args:
            max_snippet_size: Upper bound on chunk size in characters (None for unbounded)
            granularity: 'fine', 'medium' or 'coarse'
            embedding_generator: Generator to use (created from config on first use if None)
            vector_store: Vector store to write to (created from config on first use if None)
            excluded_dirs: Directory names skipped during discovery
            included_extensions: File extensions considered for indexing
            max_workers: Parallel file workers (defaults to the CPU count)
            upsert_batch_size: Points per upsert request
            upsert_max_workers: Upsert requests in flight
            retry_policy: Backoff policy for embedding and upsert requests
            embedding_provider: Provider name used when no generator is given
            embedding_model: Model name used when no generator is given
        """
        self.logger = logging.getLogger(__name__)

        # fails here, before any file is touched
        self.reconciler = ChunkReconciler(max_snippet_size, granularity)
        self.extractor = EntityExtractor()

        self.excluded_dirs = excluded_dirs
        self.included_extensions = included_extensions
        self.max_workers = max_workers or os.cpu_count() or 1
        self.retry_policy = retry_policy or RetryPolicy()
        self.upsert_batch_size = upsert_batch_size
        self.upsert_max_workers = upsert_max_workers
        self.embedding_provider = embedding_provider
        self.embedding_model = embedding_model

        self._embedding_generator = embedding_generator
        self._vector_store = vector_store
        self._upserter: Optional[VectorStoreUpserter] = None

        self.last_report: Optional[IndexingReport] = None

    @property
    def embedding_generator(self) -> EmbeddingGenerator:
        if self._embedding_generator is None:
            self._embedding_generator = EmbeddingGenerator.from_provider(
                self.embedding_provider, self.embedding_model, retry_policy=self.retry_policy
            )
        return self._embedding_generator

    @property
    def vector_store(self) -> VectorStore:
        if self._vector_store is None:
            self._vector_store = make_vector_store()
        return self._vector_store

    @property
    def upserter(self) -> VectorStoreUpserter:
        if self._upserter is None:
            self._upserter = VectorStoreUpserter(
                self.vector_store,
                batch_size=self.upsert_batch_size,
                max_workers=self.upsert_max_workers,
                retry_policy=self.retry_policy,
            )
        return self._upserter

    def get_vector_store(self) -> VectorStore:
        """Get the vector store (for use by retrieval components)"""
        return self.vector_store

    def parse_directory(self, root: Union[str, Path], output_file: Union[str, Path] = None) -> List[Chunk]:
        """
        Extract and reconcile every supported file under ``root``.

        Files that cannot be read or parsed are recorded in ``last_report``
        and skipped.
        """
        report = IndexingReport(output_file=str(output_file) if output_file else None)
        self.last_report = report

        chunks = self._parse(root, report)
        if output_file:
            save_chunks(chunks, output_file)
        return chunks

    def _parse(self, root: Union[str, Path], report: IndexingReport) -> List[Chunk]:
        self.logger.info(f"Parsing source files under {root}")
        file_processor = FileProcessor(root, self.excluded_dirs, self.included_extensions)
        files = file_processor.discover_files()
        report.total_files = len(files)

        if not files:
            self.logger.warning(f"No supported files found under {root}")
            return []

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(files))) as executor:
            futures = [
                executor.submit(self._process_file, path, file_processor.relative_path(path))
                for path in files
            ]

            all_chunks: List[Chunk] = []
            for path, future in zip(files, futures):
                display_path = file_processor.relative_path(path)
                try:
                    entity_count, chunks = future.result()
                except (ParseError, UnsupportedLanguageError, OSError) as e:
                    self.logger.warning(f"Skipping {display_path}: {e}")
                    report.failures.append(FileFailure(display_path, 'parse', str(e)))
                    continue

                report.processed_files += 1
                report.total_entities += entity_count
                all_chunks.extend(chunks)

        report.total_chunks = len(all_chunks)
        stats = chunk_statistics(all_chunks, self.reconciler.max_snippet_size)
        self.logger.info(
            f"Created {len(all_chunks)} chunks from {report.processed_files}/{len(files)} files "
            f"(avg size {stats['avg_size']:.0f}, {stats['merged_chunks']} merged, "
            f"{stats['fragments']} fragments)"
        )
        return all_chunks

    def _process_file(self, path: Path, display_path: str) -> Tuple[int, List[Chunk]]:
        self.logger.debug(f"Processing {display_path}")
        entities = self.extractor.extract_file(path, display_path)
        return len(entities), self.reconciler.reconcile(entities)

    def _resolve_chunks(self, source: ChunkSource) -> List[Chunk]:
        if isinstance(source, (str, Path)):
            return load_chunks(source)
        return source

    def generate_embeddings(self, chunks: ChunkSource, output_file: Union[str, Path] = None) -> List[Chunk]:
        """
        Attach embeddings to chunks given directly or as an intermediate file.

        When ``output_file`` is given it is written even if embedding fails,
        so vectors that were obtained are not lost.
        """
        chunks = self._resolve_chunks(chunks)
        try:
            self.embedding_generator.embed(chunks)
        finally:
            if output_file:
                save_chunks(chunks, output_file)
        return chunks

    def upsert_embeddings(self, collection: str, chunks: ChunkSource) -> int:
        """Write embedded chunks into a collection; returns the number of points"""
        chunks = self._resolve_chunks(chunks)
        storable = [
            chunk for chunk in chunks
            if chunk.embedding is not None or chunk.snippet.strip()
        ]
        return self.upserter.upsert(collection, storable)

    def build_index(self, root: Union[str, Path], collection: str,
                    output_file: Union[str, Path] = None) -> IndexingReport:
        """Run parse, embed and upsert in memory and report the outcome"""
        self.logger.info("Starting index build...")
        report = IndexingReport(output_file=str(output_file) if output_file else None)
        self.last_report = report

        chunks: List[Chunk] = []
        stage = 'parse'
        try:
            chunks = self._parse(root, report)

            stage = 'embed'
            self.embedding_generator.embed(chunks)
            embedded = [chunk for chunk in chunks if chunk.embedding is not None]
            report.embedded_chunks = len(embedded)

            stage = 'upsert'
            report.upserted_points = self.upserter.upsert(collection, embedded)
        except CodeIndexError as e:
            report.stage_error = f"{stage}: {e}"
            report.embedded_chunks = sum(1 for chunk in chunks if chunk.embedding is not None)
            self.logger.error(f"Index build stopped during {stage} stage: {e}")
        finally:
            if output_file:
                save_chunks(chunks, output_file)

        if report.succeeded:
            self.logger.info("Index build completed!")
        self.logger.info(f"Index build summary: {report.summary()}")
        return report
