"""Slot-level save store.

:class:`SlotStore` is the facade the rest of the game talks to. It combines a
key/value backend, the transport codec, the schema migrator and the backup
rotator, and it absorbs the expected failure classes (backend unavailable,
undecodable bytes, structurally invalid records, failed migrations) so callers
only ever see a record, ``None`` or a boolean.
"""
from __future__ import annotations

import asyncio
import enum
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from . import codec
from .backend import FileBackend, KeyValueBackend
from .backups import LATEST, BackupEntry, BackupRotator, Clock
from .config import StoreConfig
from .errors import (
    BackendUnavailable,
    DecodeFailure,
    InvalidSlotError,
    MigrationFailure,
    ValidationFailure,
)
from .migrations import SchemaMigrator, build_default_migrator
from .record import SaveRecord, SlotMetadata
from .schema import CURRENT_VERSION, LAST_SAVED_AT_KEY, METADATA_KEY, VERSION_KEY, now_ms, structural_errors
from .utils.fs import atomic_write_text

logger = logging.getLogger(__name__)


class LoadStatus(enum.Enum):
    LOADED = "loaded"
    DEFAULTED = "defaulted"  # stored data was unusable; default template substituted
    MISSING = "missing"
    CORRUPTED = "corrupted"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class LoadResult:
    status: LoadStatus
    record: Optional[SaveRecord] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class SlotSummary:
    slot: int
    exists: bool
    corrupted: bool = False
    player_name: Optional[str] = None
    level: Optional[int] = None
    gold: Optional[int] = None
    version: Optional[str] = None
    last_played: Optional[datetime] = None
    compressed: bool = False
    size_kb: float = 0.0
    backup_count: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class ExportBundle:
    filename: str
    text: str


@dataclass(frozen=True)
class StorageInfo:
    total_kb: float
    saves_kb: float
    backups_kb: float


def _ms_to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


class SlotStore:
    """Versioned, backed-up persistence for a fixed range of save slots."""

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        config: Optional[StoreConfig] = None,
        migrator: Optional[SchemaMigrator] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.backend = backend
        self.config = config or StoreConfig()
        self.keys = self.config.keys
        self.clock = clock or now_ms
        self.migrator = migrator or build_default_migrator()
        self.backups = BackupRotator(backend, self.keys, self.config.max_backups, self.clock)

    @classmethod
    def open(cls, config: Optional[StoreConfig] = None, **kwargs: Any) -> "SlotStore":
        """Create a store over a :class:`FileBackend` in the configured data directory."""
        config = config or StoreConfig.load()
        backend = FileBackend(config.resolved_data_dir())
        return cls(backend, config=config, **kwargs)

    # Slots

    @property
    def slots(self) -> range:
        return range(1, self.config.max_slots + 1)

    def check_slot(self, slot: Any) -> int:
        if isinstance(slot, bool) or not isinstance(slot, int) or slot not in self.slots:
            raise InvalidSlotError(slot, self.config.max_slots)
        return slot

    def has_save(self, slot: int) -> bool:
        self.check_slot(slot)
        try:
            return self.backend.get(self.keys.primary_key(slot)) is not None
        except BackendUnavailable:
            return False

    def new_record(self, slot: int = 1) -> SaveRecord:
        return SaveRecord.new(slot=slot, clock_ms=self.clock())

    # Save / load

    def save(self, record: SaveRecord, slot: int = 1, compress: Optional[bool] = None) -> bool:
        """Back up the slot's current record, then write ``record`` over it.

        The primary key is not touched until the backup write has completed.
        On success the record's envelope (version, last saved time, slot
        metadata) is updated in place.
        """
        self.check_slot(slot)
        use_compression = self.config.compress if compress is None else bool(compress)
        stamp = int(self.clock())
        doc = record.to_document()
        doc[VERSION_KEY] = str(CURRENT_VERSION)
        doc[LAST_SAVED_AT_KEY] = stamp
        try:
            json.dumps(doc)
        except (TypeError, ValueError) as exc:
            logger.error("Save to slot %s failed: record is not serializable (%s)", slot, exc)
            return False

        try:
            self.backups.create_backup(slot)
            metadata = SlotMetadata(
                slot=slot, compressed=use_compression, backup_count=self.backups.backup_count(slot)
            )
            doc[METADATA_KEY] = metadata.to_dict()
            text = json.dumps(doc, ensure_ascii=False)
            transport = codec.encode(text, use_compression)
            self.backend.put(self.keys.primary_key(slot), transport)
        except BackendUnavailable as exc:
            logger.error("Save to slot %s failed: %s", slot, exc)
            return False

        record.schema_version = str(CURRENT_VERSION)
        record.last_saved_at = stamp
        record.metadata = metadata
        if use_compression:
            logger.info(
                "Save compressed: %sKB -> %sKB (%.0f%%)",
                codec.size_kb(text),
                codec.size_kb(transport),
                codec.compression_ratio(text, transport) * 100,
            )
        else:
            logger.info("Save stored: %sKB", codec.size_kb(text))
        logger.info("Game saved to slot %s", slot)
        return True

    def _read_document(self, slot: int) -> Optional[Dict[str, Any]]:
        """Return the stored document, None when the slot is empty.

        Raises BackendUnavailable or DecodeFailure.
        """
        raw = self.backend.get(self.keys.primary_key(slot))
        if raw is None:
            return None
        result = codec.decode_transport(raw)
        if not result.ok:
            raise DecodeFailure(f"Slot {slot} holds neither plain nor compressed JSON")
        if not isinstance(result.data, dict):
            raise DecodeFailure(f"Slot {slot} holds JSON {type(result.data).__name__}, not an object")
        return result.data

    @staticmethod
    def validate(document: Any) -> None:
        problems = structural_errors(document)
        if problems:
            raise ValidationFailure("; ".join(problems))

    def load_status(self, slot: int = 1) -> LoadResult:
        """Load a slot and report how the result was obtained."""
        self.check_slot(slot)
        try:
            document = self._read_document(slot)
        except BackendUnavailable as exc:
            logger.error("Load of slot %s failed: %s", slot, exc)
            return LoadResult(LoadStatus.UNAVAILABLE)
        except DecodeFailure as exc:
            logger.error("Save in slot %s is corrupted: %s", slot, exc)
            return LoadResult(LoadStatus.CORRUPTED)
        if document is None:
            logger.info("No save found in slot %s", slot)
            return LoadResult(LoadStatus.MISSING)

        try:
            self.validate(document)
            migrated = self.migrator.migrate(document)
        except ValidationFailure as exc:
            logger.warning("Invalid save data in slot %s, using defaults: %s", slot, exc)
            return LoadResult(LoadStatus.DEFAULTED, self.new_record(slot))
        except MigrationFailure as exc:
            logger.error("Migration of slot %s failed, using defaults: %s", slot, exc)
            return LoadResult(LoadStatus.DEFAULTED, self.new_record(slot))
        return LoadResult(LoadStatus.LOADED, SaveRecord.from_document(migrated))

    def load(self, slot: int = 1) -> Optional[SaveRecord]:
        """Return the slot's record; None when the slot is empty, corrupted or unreadable."""
        return self.load_status(slot).record

    # Slot management

    def delete_slot(self, slot: int) -> bool:
        self.check_slot(slot)
        try:
            self.backend.remove(self.keys.primary_key(slot))
            removed = self.backups.delete_backups(slot)
        except BackendUnavailable as exc:
            logger.error("Delete of slot %s failed: %s", slot, exc)
            return False
        logger.info("Save slot %s deleted (%s backups removed)", slot, removed)
        return True

    def copy_slot(self, source: int, target: int) -> bool:
        self.check_slot(source)
        self.check_slot(target)
        record = self.load(source)
        if record is None:
            logger.warning("Copy failed: slot %s has no loadable save", source)
            return False
        record.metadata.slot = target
        if not self.save(record, target):
            return False
        logger.info("Save copied from slot %s to slot %s", source, target)
        return True

    def _summarize(self, slot: int) -> SlotSummary:
        try:
            raw = self.backend.get(self.keys.primary_key(slot))
            if raw is None:
                return SlotSummary(slot=slot, exists=False)
            backup_count = self.backups.backup_count(slot)
        except BackendUnavailable as exc:
            logger.error("Cannot inspect slot %s: %s", slot, exc)
            return SlotSummary(slot=slot, exists=False, error=str(exc))

        result = codec.decode_transport(raw)
        doc = result.data
        if not result.ok or not isinstance(doc, dict):
            return SlotSummary(slot=slot, exists=True, corrupted=True, size_kb=codec.size_kb(raw))

        profile = doc.get("profile") if isinstance(doc.get("profile"), dict) else {}
        metadata = SlotMetadata.from_dict(doc.get(METADATA_KEY))
        level = profile.get("level")
        gold = profile.get("gold")
        return SlotSummary(
            slot=slot,
            exists=True,
            player_name=str(profile.get("name") or "Unknown"),
            level=level if isinstance(level, int) and not isinstance(level, bool) else 1,
            gold=gold if isinstance(gold, int) and not isinstance(gold, bool) else 0,
            version=str(doc.get(VERSION_KEY)) if doc.get(VERSION_KEY) else None,
            last_played=_ms_to_datetime(doc.get(LAST_SAVED_AT_KEY)),
            compressed=metadata.compressed,
            size_kb=codec.size_kb(raw),
            backup_count=backup_count,
        )

    def list_slots(self) -> List[SlotSummary]:
        return [self._summarize(slot) for slot in self.slots]

    # Backups

    def list_backups(self, slot: int) -> List[BackupEntry]:
        self.check_slot(slot)
        try:
            return self.backups.list_backups(slot)
        except BackendUnavailable as exc:
            logger.error("Cannot list backups of slot %s: %s", slot, exc)
            return []

    def restore_backup(self, slot: int, timestamp: Optional[int] = LATEST) -> bool:
        self.check_slot(slot)
        try:
            return self.backups.restore_backup(slot, timestamp)
        except BackendUnavailable as exc:
            logger.error("Backup restore for slot %s failed: %s", slot, exc)
            return False

    # Export / import

    def export_filename(self, slot: int) -> str:
        day = datetime.fromtimestamp(self.clock() / 1000, tz=timezone.utc).date().isoformat()
        return f"{self.keys.primary_prefix}_slot{slot}_{day}.json"

    def export_save(self, slot: int = 1) -> Optional[ExportBundle]:
        """Pretty-printed JSON of the slot's (migrated) record, with a dated filename."""
        record = self.load(slot)
        if record is None:
            logger.warning("Nothing to export from slot %s", slot)
            return None
        text = json.dumps(record.to_document(), indent=2, ensure_ascii=False)
        return ExportBundle(filename=self.export_filename(slot), text=text)

    def export_to_file(self, slot: int, directory: Union[str, Path]) -> Optional[Path]:
        bundle = self.export_save(slot)
        if bundle is None:
            return None
        path = Path(directory) / bundle.filename
        try:
            atomic_write_text(path, bundle.text)
        except OSError as exc:
            logger.error("Export of slot %s to %s failed: %s", slot, path, exc)
            return None
        logger.info("Save exported to %s", path)
        return path

    def import_text(self, text: str, slot: int = 1) -> bool:
        """Validate, migrate and save externally supplied record text into ``slot``.

        Unlike :meth:`load`, a structurally invalid import is rejected instead of
        being replaced by defaults.
        """
        self.check_slot(slot)
        result = codec.decode_transport(text)
        if not result.ok or not isinstance(result.data, dict):
            logger.error("Import parsing failed: not a JSON object")
            return False
        try:
            self.validate(result.data)
            migrated = self.migrator.migrate(result.data)
        except ValidationFailure as exc:
            logger.error("Invalid save data: %s", exc)
            return False
        except MigrationFailure as exc:
            logger.error("Import migration failed: %s", exc)
            return False

        record = SaveRecord.from_document(migrated)
        record.metadata.slot = slot
        if not self.save(record, slot, compress=True):
            return False
        logger.info("Save imported into slot %s", slot)
        return True

    async def import_file(self, path: Union[str, Path], slot: int = 1) -> bool:
        """Read ``path`` off the event loop, then import it like :meth:`import_text`."""
        self.check_slot(slot)
        try:
            text = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("File read failed for %s: %s", path, exc)
            return False
        return self.import_text(text, slot)

    # Diagnostics

    def storage_info(self) -> StorageInfo:
        saves = backups = total = 0.0
        for key, value in self.backend.items_with_prefix(""):
            size = codec.size_kb(value)
            total += size
            if key.startswith(self.keys.primary_prefix + "_"):
                saves += size
            elif key.startswith(self.keys.backup_prefix + "_"):
                backups += size
        return StorageInfo(total_kb=round(total, 2), saves_kb=round(saves, 2), backups_kb=round(backups, 2))
