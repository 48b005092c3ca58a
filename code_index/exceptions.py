"""
Error taxonomy shared by every indexing stage.
"""

from typing import Any, Optional, Sequence


class CodeIndexError(Exception):
    """Base class for all errors raised by code_index"""


class ConfigurationError(CodeIndexError):
    """Invalid settings, reported before any file is processed"""


class ParseError(CodeIndexError):
    """A single file could not be parsed into an AST"""

    def __init__(self, file_path: str, cause: Any):
        self.file_path = str(file_path)
        self.cause = cause
        super().__init__(f"Failed to parse {self.file_path}: {cause}")


class UnsupportedLanguageError(CodeIndexError):
    """No grammar is registered for a language tag or file extension"""

    def __init__(self, language: str, file_path: Optional[str] = None):
        self.language = language
        self.file_path = str(file_path) if file_path is not None else None
        message = f"Unsupported language: {language!r}"
        if self.file_path:
            message += f" ({self.file_path})"
        super().__init__(message)


class TransportError(CodeIndexError):
    """Transient network or provider failure; safe to retry"""

    def __init__(self, cause: Any, message: str = None):
        self.cause = cause
        super().__init__(message or f"Transient transport failure: {cause}")


class ProviderError(CodeIndexError):
    """Non-retryable provider failure (authentication, unknown model, bad request)"""


class EmbeddingError(CodeIndexError):
    """An embedding batch failed for good"""

    def __init__(self, batch: Sequence[Any], cause: Any, batch_index: Optional[int] = None):
        self.batch = list(batch)
        self.cause = cause
        self.batch_index = batch_index
        where = f"batch {batch_index}" if batch_index is not None else "batch"
        super().__init__(f"Embedding {where} of {len(self.batch)} chunks failed: {cause}")


class DimensionMismatchError(CodeIndexError):
    """Vector dimension does not match the collection or the model"""

    def __init__(self, expected: int, actual: int, collection: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        self.collection = collection
        target = f"collection '{collection}'" if collection else "expected shape"
        super().__init__(
            f"Dimension mismatch for {target}: expected {expected}, got {actual}"
        )


class UpsertError(CodeIndexError):
    """An upsert batch failed after all retries"""

    def __init__(self, batch_index: int, cause: Any):
        self.batch_index = batch_index
        self.cause = cause
        super().__init__(f"Upsert batch {batch_index} failed: {cause}")


class StoreError(CodeIndexError):
    """Non-retryable vector store failure (bad request, rejected payload)"""

    def __init__(self, cause: Any, message: str = None):
        self.cause = cause
        super().__init__(message or f"Vector store rejected the request: {cause}")


class CollectionNotFoundError(CodeIndexError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Collection '{name}' does not exist")


class SerializationError(CodeIndexError):
    """The persisted chunk file is malformed or of an unknown version"""
