"""Key-value persistence slots for the diary collection.

The store only needs two operations: read a string by key, and write a
string by key. ``JSONFileStorage`` keeps one file per key under a data
directory and writes atomically (temp file in the same directory, then
rename), so a crash mid-write never leaves a half-written collection.
``InMemoryStorage`` is the substitute used in tests.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

from musicdiary.exceptions import StorageWriteError

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.\-]+$")


class KeyValueStorage(Protocol):
    """Contract for a persistence slot."""

    def get(self, key: str) -> str | None:
        """Return the stored string, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store the string. Raises StorageWriteError on failure."""
        ...


class InMemoryStorage:
    """Dict-backed storage for tests and ephemeral sessions.

    Attributes:
        writes: Number of successful ``set`` calls.
        fail_writes: When True, every ``set`` raises StorageWriteError.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self.writes = 0
        self.fail_writes = False

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageWriteError(key, "Storage quota exceeded")
        self._data[key] = value
        self.writes += 1


class JSONFileStorage:
    """File-backed storage: one ``<key>.json`` file per key.

    Args:
        data_dir: Directory holding the slot files. Created on first write.
    """

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = Path(data_dir).expanduser()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: str) -> Path:
        """Return the file path for a storage key."""
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            # Unreadable is treated like corrupt content by the caller.
            self._logger.warning(f"Failed to read {path.name}: {type(e).__name__}")
            return ""

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self._data_dir, suffix=".tmp", prefix=f".{key}_")
        except OSError as e:
            raise StorageWriteError(key, original_error=e) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            Path(temp_path).replace(path)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            raise StorageWriteError(key, original_error=e) from e

        self._logger.debug(f"Wrote {len(value)} bytes to {path.name}")
