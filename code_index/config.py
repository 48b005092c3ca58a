"""
Configuration settings for the code indexing system.
"""

import os
import logging
from typing import List, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .models import Granularity

load_dotenv()

# Embedding configuration
DEFAULT_EMBEDDING_MODEL = os.getenv('DEFAULT_EMBEDDING_MODEL', 'text-embedding-3-small')
DEFAULT_EMBEDDING_PROVIDER = os.getenv('DEFAULT_EMBEDDING_PROVIDER', 'openai')

EMBEDDING_MODELS = {
    'text-embedding-3-small': 1536,
    'text-embedding-3-large': 3072,
    'text-embedding-ada-002': 1536
}

DEFAULT_EXCLUDED_DIRS: List[str] = os.getenv(
    'EXCLUDED_DIRS',
    '__pycache__,.git,.pytest_cache,node_modules,.venv,venv,.env,dist,build,target,.next,.idea,.vscode'
).split(',')

DEFAULT_INCLUDED_EXTENSIONS: List[str] = os.getenv(
    'INCLUDED_EXTENSIONS',
    '.py,.pyi,.rs,.ts,.tsx,.js,.jsx,.mjs,.cjs'
).split(',')

# Chunk reconciliation
DEFAULT_MAX_SNIPPET_SIZE: Optional[int] = (
    int(os.getenv('DEFAULT_MAX_SNIPPET_SIZE')) if os.getenv('DEFAULT_MAX_SNIPPET_SIZE') else None
)
DEFAULT_GRANULARITY = os.getenv('DEFAULT_GRANULARITY', 'fine')

# Embedding requests
EMBEDDING_BATCH_SIZE = int(os.getenv('EMBEDDING_BATCH_SIZE', '100'))
EMBEDDING_MAX_WORKERS = int(os.getenv('EMBEDDING_MAX_WORKERS', '10'))
EMBEDDING_REQUEST_TIMEOUT = float(os.getenv('EMBEDDING_REQUEST_TIMEOUT', '60'))

# Retry policy shared by the write path
RETRY_MAX_ATTEMPTS = int(os.getenv('RETRY_MAX_ATTEMPTS', '5'))
RETRY_BASE_DELAY = float(os.getenv('RETRY_BASE_DELAY', '1.0'))
RETRY_MAX_DELAY = float(os.getenv('RETRY_MAX_DELAY', '60.0'))
RETRY_JITTER = float(os.getenv('RETRY_JITTER', '0.5'))

# Vector store
VECTOR_STORE_BACKEND = os.getenv('VECTOR_STORE_BACKEND', 'qdrant')
QDRANT_URL = os.getenv('QDRANT_URL', 'http://localhost:6333')
QDRANT_TIMEOUT = int(os.getenv('QDRANT_TIMEOUT', '30'))
UPSERT_BATCH_SIZE = int(os.getenv('UPSERT_BATCH_SIZE', '100'))
UPSERT_MAX_WORKERS = int(os.getenv('UPSERT_MAX_WORKERS', '4'))

DEFAULT_SEARCH_K = int(os.getenv('DEFAULT_SEARCH_K', '10'))

DEFAULT_LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


def get_openai_api_key() -> str:
    """Get OpenAI API key from environment variable."""
    api_key = os.getenv('OPENAI_API_KEY', '')
    if not api_key:
        raise ConfigurationError(
            "OPENAI_API_KEY environment variable is required. "
            "Please set it in your .env file or environment."
        )
    return api_key


def get_openai_api_base() -> Optional[str]:
    """Base URL override for OpenAI-compatible embedding endpoints."""
    return os.getenv('OPENAI_API_BASE') or None


def get_qdrant_api_key() -> Optional[str]:
    return os.getenv('QDRANT_API_KEY') or None


def get_data_dir() -> str:
    """Get data directory path from environment or use default."""
    return os.getenv('CODE_INDEX_DATA_DIR', './data')


def get_indices_dir() -> str:
    """Get directory used by the local FAISS backend."""
    return os.getenv('CODE_INDEX_INDICES_DIR', os.path.join(get_data_dir(), 'indices'))


def validate_chunking_config(granularity: Granularity, max_snippet_size: Optional[int]) -> None:
    """
    Reject chunking settings that cannot be honoured.

    Medium and Coarse granularity derive their merge bound from
    ``max_snippet_size`` so it has to be set for them.
    """
    if max_snippet_size is not None and max_snippet_size <= 0:
        raise ConfigurationError(f"max_snippet_size must be positive, got {max_snippet_size}")

    if granularity in (Granularity.MEDIUM, Granularity.COARSE) and max_snippet_size is None:
        raise ConfigurationError(
            f"Granularity '{granularity.value}' requires max_snippet_size to be set"
        )

    if granularity == Granularity.MEDIUM and max_snippet_size < 2:
        raise ConfigurationError("Granularity 'medium' needs max_snippet_size of at least 2")


def configure_logging(level: str = None):
    """Apply the configured log level to the root logger."""
    logging.basicConfig(
        level=getattr(logging, (level or DEFAULT_LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
