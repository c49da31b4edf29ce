"""
Durable local key-value storage.

Values are opaque strings. The file store keeps one file per key and
replaces it atomically, so a crash mid-write leaves the previous value.
"""

import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional


class KeyValueStore(ABC):
    """Abstract local key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Overwrite the value stored under key."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key. No-op when absent."""
        pass


_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore(KeyValueStore):
    """One file per key under a directory."""

    def __init__(self, directory: Path):
        self._directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid cache key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        self._directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store for tests. fail_writes simulates a full disk."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})
        self.fail_writes = False
        self.writes = 0

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        if self.fail_writes:
            raise OSError("storage unavailable")
        self.writes += 1
        self.data[key] = value

    def remove(self, key):
        self.data.pop(key, None)
