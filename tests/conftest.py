import hashlib
import sys
import threading
from pathlib import Path
from typing import List

import numpy as np
import pytest

# Ensure repository root is on sys.path so `import code_index` works without installing
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from code_index.exceptions import ProviderError, TransportError
from code_index.indexing.embeddings import BaseEmbeddingProvider
from code_index.indexing.retry import RetryPolicy
from code_index.models import Chunk, CodeEntity, EntityKind


class FakeEmbeddingProvider(BaseEmbeddingProvider):
    """Deterministic provider recording every batch it is asked to embed"""

    def __init__(self, dimension: int = 8, model_name: str = "fake-embedding"):
        super().__init__(model_name)
        self.dimension = dimension
        self.calls: List[List[str]] = []
        self._lock = threading.Lock()

    def initialize(self) -> None:
        pass

    def get_embedding_dimension(self) -> int:
        return self.dimension

    def vector_for(self, text: str) -> np.ndarray:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        values = [((digest[i % len(digest)] + i) % 251) / 251.0 + 0.01 for i in range(self.dimension)]
        return np.array(values, dtype=np.float32)

    def embed_batch(self, texts):
        with self._lock:
            self.calls.append(list(texts))
        self.before_embed(texts)
        return [self.vector_for(text) for text in texts]

    def before_embed(self, texts):
        pass

    def get_provider_info(self):
        return {"provider": "fake", "model": self.model_name, "dimension": self.dimension}

    @property
    def embedded_texts(self) -> List[str]:
        return [text for call in self.calls for text in call]


class FlakyProvider(FakeEmbeddingProvider):
    """Raises TransportError for the first ``transient_failures`` calls"""

    def __init__(self, transient_failures: int = 0, poison: str = None, **kwargs):
        super().__init__(**kwargs)
        self.transient_failures = transient_failures
        self.poison = poison

    def before_embed(self, texts):
        if self.poison and any(self.poison in text for text in texts):
            raise TransportError(ConnectionError("connection reset"))
        with self._lock:
            if self.transient_failures > 0:
                self.transient_failures -= 1
                raise TransportError(TimeoutError("read timeout"))


class RejectingProvider(FakeEmbeddingProvider):
    def before_embed(self, texts):
        raise ProviderError("invalid api key")


@pytest.fixture
def fake_provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def fast_retry():
    return RetryPolicy(max_attempts=3, base_delay=0, max_delay=0, jitter=0)


def make_entity(kind: EntityKind, snippet: str, start: int, name: str = "",
                file_path: str = "src/module.py", line: int = 1) -> CodeEntity:
    end_line = line + max(snippet.count("\n") - (1 if snippet.endswith("\n") else 0), 0)
    return CodeEntity(
        kind=kind,
        name=name or kind.value,
        language="python",
        file_path=file_path,
        byte_range=(start, start + len(snippet.encode("utf-8"))),
        line_range=(line, end_line),
        snippet=snippet,
    )


def make_chunk(index: int, dimension: int = None, file_path: str = "src/module.py",
               vector: List[float] = None) -> Chunk:
    snippet = f"def function_{index}():\n    return {index}\n"
    chunk = Chunk(
        kind=EntityKind.FUNCTION,
        name=f"function_{index}",
        language="python",
        file_path=file_path,
        byte_range=(index * 100, index * 100 + len(snippet)),
        line_range=(index * 3 + 1, index * 3 + 2),
        snippet=snippet,
        member_kinds=(EntityKind.FUNCTION,),
    )
    if vector is not None:
        chunk.embedding = list(vector)
    elif dimension is not None:
        chunk.embedding = [((index + 1) * (i + 1)) % 17 / 17.0 + 0.05 for i in range(dimension)]
    return chunk
