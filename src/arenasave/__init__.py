"""
Legends Arena save store.

This package provides local, versioned persistence for game-progress records:
- Key/value backends (in-memory and one-file-per-key on disk)
- A transport codec with optional gzip compression
- Schema versioning with stepwise migrations and default templates
- Per-slot backups with FIFO rotation and restore
- The SlotStore facade and dot-path access over record payloads

Game screens and rules treat record payloads as opaque trees and compose these
services through an explicitly constructed SlotStore.
"""
from importlib.metadata import PackageNotFoundError, version

from .accessor import PathAccessor
from .backend import FileBackend, InMemoryBackend, KeyValueBackend
from .backups import LATEST, MAX_BACKUPS, BackupEntry, BackupRotator
from .config import StoreConfig
from .errors import (
    BackendUnavailable,
    ConfigError,
    DecodeFailure,
    InvalidSlotError,
    MigrationFailure,
    SaveError,
    ValidationFailure,
)
from .keys import KeyScheme
from .migrations import SchemaMigrator, build_default_migrator
from .record import SaveRecord, SlotMetadata
from .schema import CURRENT_VERSION, SchemaVersion
from .store import ExportBundle, LoadResult, LoadStatus, SlotStore, SlotSummary, StorageInfo

try:
    __version__ = version("legends-arena-saves")
except PackageNotFoundError:  # pragma: no cover - during tests without packaging
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    "CURRENT_VERSION",
    "LATEST",
    "MAX_BACKUPS",
    "BackendUnavailable",
    "BackupEntry",
    "BackupRotator",
    "ConfigError",
    "DecodeFailure",
    "ExportBundle",
    "FileBackend",
    "InMemoryBackend",
    "InvalidSlotError",
    "KeyScheme",
    "KeyValueBackend",
    "LoadResult",
    "LoadStatus",
    "MigrationFailure",
    "PathAccessor",
    "SaveError",
    "SaveRecord",
    "SchemaMigrator",
    "SchemaVersion",
    "SlotMetadata",
    "SlotStore",
    "SlotSummary",
    "StorageInfo",
    "StoreConfig",
    "ValidationFailure",
    "build_default_migrator",
]
