"""Cached reading of YAML documents (workflow definitions, template schemas)."""

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from cachetools import TTLCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _CachedDocument:
    content: dict[str, Any]
    # (st_mtime_ns, st_size) at parse time
    signature: tuple[int, int]


def _file_signature(path: Path) -> tuple[int, int]:
    stat = os.stat(path)
    return stat.st_mtime_ns, stat.st_size


class YAMLLoader:
    """Parses YAML mappings, reusing a parse while the file is unchanged.

    Entries expire after ``cache_ttl`` seconds even when the file on disk has
    not changed, and an entry whose file changed size or mtime is reparsed.
    """

    def __init__(self, cache_ttl: int = 300, max_cache_size: int = 100):
        self.cache_ttl = cache_ttl
        self.max_cache_size = max_cache_size
        self._documents: TTLCache[str, _CachedDocument] = TTLCache(maxsize=max_cache_size, ttl=cache_ttl)
        self._lock = threading.RLock()

    @staticmethod
    def _cache_key(file_path: str | Path) -> str:
        return str(Path(file_path).expanduser().resolve())

    def load_yaml(self, file_path: str | Path) -> dict[str, Any]:
        """Return the mapping stored in a YAML file.

        An empty document is an empty mapping.

        Raises:
            FileNotFoundError: If file does not exist
            ValueError: If the path is not a file, cannot be decoded, or holds a non-mapping
            yaml.YAMLError: If the document is not valid YAML
        """
        key = self._cache_key(file_path)
        path = Path(key)
        if not path.exists():
            raise FileNotFoundError(f"YAML file not found: {path}")
        if not path.is_file():
            raise ValueError(f"Path is not a file: {path}")

        signature = _file_signature(path)
        with self._lock:
            cached = self._documents.get(key)
        if cached is not None and cached.signature == signature:
            return cached.content

        content = self._parse(path)
        with self._lock:
            self._documents[key] = _CachedDocument(content=content, signature=signature)
        logger.debug(f"Parsed YAML document {path}")
        return content

    @staticmethod
    def _parse(path: Path) -> dict[str, Any]:
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ValueError(f"{path} is not UTF-8 text: {e}") from e

        document = yaml.safe_load(text)
        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ValueError(f"YAML file must contain a mapping, got {type(document).__name__}: {path}")
        return document

    def invalidate_cache(self, file_path: str | Path | None = None) -> int:
        """Forget one parsed file, or all of them when no path is given.

        Returns:
            How many entries were dropped
        """
        with self._lock:
            if file_path is None:
                dropped = len(self._documents)
                self._documents.clear()
                return dropped
            return 1 if self._documents.pop(self._cache_key(file_path), None) is not None else 0

    def get_cache_stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "cache_size": len(self._documents),
                "max_cache_size": self.max_cache_size,
                "cache_ttl": self.cache_ttl,
            }
