"""
Content-hash cache for export verification.

Cache records are keyed per absolute file path and carry the content hash
they were computed from. A record is only valid while the live file still
hashes to that value. The cache is advisory: every failure to read or
write it degrades to recomputation.

Usage:
    cache = FileSystemCache(".taskwave/ast-cache")
    cache.set(cache_key(path), CacheRecord(file=str(path), file_hash=h, result={...}))
    record = cache.get(cache_key(path))
"""

import hashlib
import json
import os
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from taskwave.core.exceptions import CacheError


def cache_key(path: str | Path) -> str:
    """Derive the cache key for a file from its absolute path."""
    absolute = str(Path(path).resolve())
    return hashlib.sha256(absolute.encode("utf-8")).hexdigest()[:32]


def content_hash(data: bytes) -> str:
    """Hash file contents."""
    return hashlib.sha256(data).hexdigest()


@dataclass
class CacheRecord:
    """Single cache entry with metadata."""

    file: str
    file_hash: str
    result: dict[str, Any]
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """Convert record to dictionary."""
        return {
            "file": self.file,
            "hash": self.file_hash,
            "timestamp": self.created_at,
            "result": self.result,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CacheRecord":
        """
        Rebuild a record from stored data.

        Raises:
            CacheError: If the data is not a well-formed record.
        """
        if not isinstance(data, dict):
            raise CacheError("Cache record is not an object")
        try:
            record = cls(
                file=str(data["file"]),
                file_hash=str(data["hash"]),
                result=data["result"],
                created_at=float(data.get("timestamp", 0.0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CacheError(f"Malformed cache record: {e}") from e
        if not isinstance(record.result, dict):
            raise CacheError("Cache record result is not an object")
        return record


class VerificationCache(ABC):
    """Storage interface for verification cache records."""

    @abstractmethod
    def get(self, key: str) -> CacheRecord | None:
        """Get a record, or None if absent or unreadable."""

    @abstractmethod
    def set(self, key: str, record: CacheRecord) -> bool:
        """Store a record. Returns False if it could not be written."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a record. Returns True if one was removed."""

    @abstractmethod
    def clear(self) -> int:
        """Delete every record. Returns the number removed."""


class MemoryCache(VerificationCache):
    """
    In-memory cache, mainly for tests and embedding.

    Usage:
        cache = MemoryCache()
        verifier = ExportVerifier(cache=cache)
    """

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> CacheRecord | None:
        """Get a record from memory."""
        data = self._records.get(key)
        if data is None:
            self.misses += 1
            return None
        try:
            record = CacheRecord.from_dict(data)
        except CacheError as e:
            logger.warning(f"Discarding corrupt cache record {key}: {e}")
            self.misses += 1
            return None
        self.hits += 1
        return record

    def set(self, key: str, record: CacheRecord) -> bool:
        """Store a serialized copy so callers cannot mutate cached state."""
        self._records[key] = json.loads(json.dumps(record.to_dict()))
        return True

    def delete(self, key: str) -> bool:
        """Delete key from memory."""
        return self._records.pop(key, None) is not None

    def clear(self) -> int:
        """Clear entire cache."""
        count = len(self._records)
        self._records.clear()
        return count

    def __len__(self) -> int:
        return len(self._records)


class FileSystemCache(VerificationCache):
    """
    Directory of JSON cache records, one file per source file.

    The directory may be deleted at any time without affecting correctness.
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self.cache_dir = Path(cache_dir)

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def get(self, key: str) -> CacheRecord | None:
        """Read a record from disk; unreadable records count as misses."""
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CacheRecord.from_dict(data)
        except (OSError, json.JSONDecodeError, CacheError) as e:
            logger.warning(f"Ignoring unreadable cache record {path}: {e}")
            return None

    def set(self, key: str, record: CacheRecord) -> bool:
        """Write a record atomically; failures are logged and reported as False."""
        path = self._path(key)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(record.to_dict(), f)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.warning(f"Could not write cache record {path}: {e}")
            return False
        return True

    def delete(self, key: str) -> bool:
        """Delete a record file."""
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Could not delete cache record {path}: {e}")
            return False
        return True

    def clear(self) -> int:
        """Delete every record file in the cache directory."""
        if not self.cache_dir.is_dir():
            return 0
        removed = 0
        for path in self.cache_dir.glob("*.json"):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Could not delete cache record {path}: {e}")
        logger.info(f"Cleared {removed} cache records from {self.cache_dir}")
        return removed
