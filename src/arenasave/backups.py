from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from . import codec
from .backend import KeyValueBackend
from .keys import KeyScheme
from .schema import now_ms

logger = logging.getLogger(__name__)

MAX_BACKUPS = 5
LATEST: Optional[int] = None

Clock = Callable[[], int]


@dataclass(frozen=True)
class BackupEntry:
    """A stored snapshot of one slot's primary record.

    Display fields are parsed on a best-effort basis; an unreadable snapshot
    is still listed (and restorable) with ``readable=False``.
    """

    slot: int
    timestamp: int
    key: str
    data: str
    version: str = "Unknown"
    player_name: str = "Unknown"
    level: Optional[int] = None
    readable: bool = False

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)

    @property
    def size_kb(self) -> float:
        return codec.size_kb(self.data)


def _describe(slot: int, timestamp: int, key: str, data: str) -> BackupEntry:
    result = codec.decode_transport(data)
    doc = result.data
    if not result.ok or not isinstance(doc, dict):
        return BackupEntry(slot=slot, timestamp=timestamp, key=key, data=data)
    profile = doc.get("profile") if isinstance(doc.get("profile"), dict) else {}
    level = profile.get("level", 1)
    return BackupEntry(
        slot=slot,
        timestamp=timestamp,
        key=key,
        data=data,
        version=str(doc.get("version") or "Unknown"),
        player_name=str(profile.get("name") or "Unknown"),
        level=level if isinstance(level, int) and not isinstance(level, bool) else 1,
        readable=True,
    )


class BackupRotator:
    """Keeps up to ``max_backups`` timestamped snapshots per slot.

    Eviction is strict FIFO on the timestamp encoded in the backup key, so the
    oldest snapshot always goes first regardless of how often it was read.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        keys: Optional[KeyScheme] = None,
        max_backups: int = MAX_BACKUPS,
        clock: Optional[Clock] = None,
    ) -> None:
        if max_backups < 1:
            raise ValueError("max_backups must be at least 1")
        self.backend = backend
        self.keys = keys or KeyScheme()
        self.max_backups = max_backups
        self.clock = clock or now_ms

    def _timestamps(self, slot: int) -> List[int]:
        stamps = []
        for key in self.backend.keys_with_prefix(self.keys.backup_slot_prefix(slot)):
            stamp = self.keys.parse_backup_timestamp(key, slot)
            if stamp is None:
                logger.warning("Ignoring malformed backup key %s", key)
                continue
            stamps.append(stamp)
        return sorted(stamps)

    def backup_count(self, slot: int) -> int:
        return len(self._timestamps(slot))

    def create_backup(self, slot: int) -> Optional[BackupEntry]:
        """Snapshot the slot's current primary text; None when there is nothing to back up."""
        current = self.backend.get(self.keys.primary_key(slot))
        if current is None:
            return None

        stamps = self._timestamps(slot)
        newest = stamps[-1] if stamps else None
        while len(stamps) >= self.max_backups:
            oldest = stamps.pop(0)
            self.backend.remove(self.keys.backup_key(slot, oldest))
            logger.info("Evicted oldest backup of slot %s (%s)", slot, oldest)

        stamp = int(self.clock())
        if newest is not None and stamp <= newest:
            stamp = newest + 1
        key = self.keys.backup_key(slot, stamp)
        self.backend.put(key, current)
        logger.info("Backup created: %s", key)
        return _describe(slot, stamp, key, current)

    def list_backups(self, slot: int) -> List[BackupEntry]:
        """All backups of ``slot``, newest first."""
        entries = []
        for stamp in reversed(self._timestamps(slot)):
            key = self.keys.backup_key(slot, stamp)
            data = self.backend.get(key)
            if data is None:
                continue
            entries.append(_describe(slot, stamp, key, data))
        return entries

    def restore_backup(self, slot: int, timestamp: Optional[int] = LATEST) -> bool:
        """Copy a backup over the slot's primary key.

        ``timestamp`` of None (or 0) picks the newest backup. Returns False and
        leaves the primary untouched when no matching backup exists.
        """
        stamps = self._timestamps(slot)
        if not stamps:
            logger.warning("No backups found for slot %s", slot)
            return False
        chosen = stamps[-1] if not timestamp else int(timestamp)
        if chosen not in stamps:
            logger.warning("Backup %s not found for slot %s", timestamp, slot)
            return False
        data = self.backend.get(self.keys.backup_key(slot, chosen))
        if data is None:
            logger.warning("Backup %s of slot %s vanished before restore", chosen, slot)
            return False
        self.backend.put(self.keys.primary_key(slot), data)
        logger.info("Restored slot %s from backup %s", slot, chosen)
        return True

    def delete_backups(self, slot: int) -> int:
        removed = 0
        for key in list(self.backend.keys_with_prefix(self.keys.backup_slot_prefix(slot))):
            self.backend.remove(key)
            removed += 1
        return removed
