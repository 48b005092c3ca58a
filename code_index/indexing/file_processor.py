import os
from pathlib import Path
from typing import List, Optional
import logging

from ..config import DEFAULT_EXCLUDED_DIRS, DEFAULT_INCLUDED_EXTENSIONS

logger = logging.getLogger(__name__)


class FileProcessor:
    """Handles file discovery and content reading"""

    ENCODINGS = ['utf-8', 'latin-1']

    def __init__(self, root_path: str, excluded_dirs: List[str] = None, included_extensions: List[str] = None):
        self.root_path = Path(root_path)
        self.excluded_dirs = set(excluded_dirs if excluded_dirs is not None else DEFAULT_EXCLUDED_DIRS)
        extensions = included_extensions if included_extensions is not None else DEFAULT_INCLUDED_EXTENSIONS
        self.included_extensions = {
            ext if ext.startswith('.') else f'.{ext}' for ext in extensions if ext
        }
        self.logger = logging.getLogger(__name__)

    def discover_files(self) -> List[Path]:
        """Recursively discover all relevant files, sorted by path"""
        if not self.root_path.is_dir():
            raise NotADirectoryError(f"Not a directory: {self.root_path}")

        discovered_files = []

        for root, dirs, files in os.walk(self.root_path):
            dirs[:] = sorted(d for d in dirs if d not in self.excluded_dirs)

            for file in files:
                file_path = Path(root) / file
                if file_path.suffix in self.included_extensions:
                    discovered_files.append(file_path)

        discovered_files.sort()
        self.logger.info(f"Discovered {len(discovered_files)} files under {self.root_path}")
        return discovered_files

    def relative_path(self, file_path: Path) -> str:
        """Stable, root-relative path used as the file identity in chunks"""
        try:
            return Path(file_path).relative_to(self.root_path).as_posix()
        except ValueError:
            return Path(file_path).as_posix()

    @classmethod
    def read_file_content(cls, file_path: Path) -> Optional[str]:
        """Read file content with encoding handling"""
        for encoding in cls.ENCODINGS:
            try:
                with open(file_path, 'r', encoding=encoding) as f:
                    return f.read()
            except UnicodeDecodeError:
                continue
            except OSError as e:
                logger.error(f"Error reading {file_path}: {e}")
                return None

        logger.error(f"Could not decode {file_path} with any encoding")
        return None
