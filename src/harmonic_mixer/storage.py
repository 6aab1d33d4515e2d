"""Key-value storage adapters for persisting the random cache.

The random source treats storage as a single-slot key: read once at startup,
overwritten after every consumption. Any adapter failure degrades to
in-memory caching; storage errors are logged, never raised to callers.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


class CacheStorage(ABC):
    """String key-value storage capability."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent or unreadable."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store a value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete a value if present."""


class NullStorage(CacheStorage):
    """Storage that remembers nothing. Default when no backing is supplied."""

    def get_item(self, key: str) -> Optional[str]:
        return None

    def set_item(self, key: str, value: str) -> None:
        pass

    def remove_item(self, key: str) -> None:
        pass


class MemoryStorage(CacheStorage):
    """Dictionary-backed storage, handy for tests and for sharing between sources."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStorage(CacheStorage):
    """Storage backed by a single JSON object on disk.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash mid-write leaves the previous contents intact.

    Example:
        >>> storage = JsonFileStorage("~/.cache/harmonic-mixer/random.json")
        >>> storage.set_item("qrng-cache", "a4f8b2c1")
        >>> storage.get_item("qrng-cache")
        'a4f8b2c1'
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def get_item(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _read(self) -> Dict[str, object]:
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable cache storage {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring cache storage {self.path}: expected a JSON object")
            return {}
        return data

    def _write(self, data: Dict[str, object]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle)
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.warning(f"Could not persist cache storage {self.path}: {e}")
