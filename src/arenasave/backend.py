"""Raw key/value storage for save text.

Backends know nothing about slots, versions or compression. They store text
under string keys and report absence as ``None``.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

from .errors import BackendUnavailable
from .utils.fs import atomic_write_text, ensure_dir

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueBackend(ABC):
    """Abstract interface for string-keyed text storage."""

    @abstractmethod
    def put(self, key: str, text: str) -> None:
        """Store ``text`` under ``key``, replacing any previous value."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the text stored under ``key`` or None if absent."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove ``key``. Removing an absent key is a no-op."""

    @abstractmethod
    def keys_with_prefix(self, prefix: str) -> Iterator[str]:
        """Yield every stored key starting with ``prefix``."""

    def items_with_prefix(self, prefix: str) -> Iterator[Tuple[str, str]]:
        for key in self.keys_with_prefix(prefix):
            value = self.get(key)
            if value is not None:
                yield key, value


class InMemoryBackend(KeyValueBackend):
    """Test/embedding backend that holds data in memory only."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def put(self, key: str, text: str) -> None:
        self._data[key] = text

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys_with_prefix(self, prefix: str) -> Iterator[str]:
        # Snapshot the key list so callers may remove while iterating
        for key in list(self._data):
            if key.startswith(prefix):
                yield key

    def __len__(self) -> int:
        return len(self._data)


class FileBackend(KeyValueBackend):
    """Filesystem-backed storage: one file per key inside ``root``.

    Writes are atomic (temporary file + replace), so a key holds either its old
    or its new value, never a partial one. Any OS-level failure surfaces as
    :class:`BackendUnavailable`.
    """

    SUFFIX = ".sav"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        try:
            ensure_dir(self.root)
        except OSError as exc:
            raise BackendUnavailable(f"Cannot create save directory {self.root}: {exc}") from exc

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Unsupported storage key: {key!r}")
        return self.root / f"{key}{self.SUFFIX}"

    def put(self, key: str, text: str) -> None:
        path = self._path(key)
        try:
            atomic_write_text(path, text)
        except OSError as exc:
            logger.error("Failed to write %s: %s", path, exc)
            raise BackendUnavailable(f"Cannot write {path}: {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to read %s: %s", path, exc)
            raise BackendUnavailable(f"Cannot read {path}: {exc}") from exc

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise BackendUnavailable(f"Cannot remove {path}: {exc}") from exc

    def keys_with_prefix(self, prefix: str) -> Iterator[str]:
        try:
            names = sorted(p.name for p in self.root.iterdir() if p.is_file())
        except OSError as exc:
            raise BackendUnavailable(f"Cannot list {self.root}: {exc}") from exc
        for name in names:
            if not name.endswith(self.SUFFIX):
                continue
            key = name[: -len(self.SUFFIX)]
            if key.startswith(prefix):
                yield key
