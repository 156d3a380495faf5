from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_PRIMARY_PREFIX = "legends_arena_save"
DEFAULT_BACKUP_PREFIX = "legends_arena_backup"


@dataclass(frozen=True)
class KeyScheme:
    """Key layout for primary records and their backups.

    Primary: ``<primary_prefix>_slot<N>``
    Backup:  ``<backup_prefix>_slot<N>_<timestamp>``

    Backup keys are decoded by stripping the exact per-slot prefix and
    requiring a purely numeric remainder, so underscores inside the prefixes
    never shift the timestamp position.
    """

    primary_prefix: str = DEFAULT_PRIMARY_PREFIX
    backup_prefix: str = DEFAULT_BACKUP_PREFIX

    def __post_init__(self) -> None:
        if not self.primary_prefix or not self.backup_prefix:
            raise ValueError("Key prefixes must be non-empty")
        a, b = self.primary_prefix + "_", self.backup_prefix + "_"
        if a.startswith(b) or b.startswith(a):
            raise ValueError(
                f"Key prefixes overlap: {self.primary_prefix!r} / {self.backup_prefix!r}"
            )

    def primary_key(self, slot: int) -> str:
        return f"{self.primary_prefix}_slot{slot}"

    def backup_slot_prefix(self, slot: int) -> str:
        return f"{self.backup_prefix}_slot{slot}_"

    def backup_key(self, slot: int, timestamp: int) -> str:
        return f"{self.backup_slot_prefix(slot)}{int(timestamp)}"

    def parse_backup_timestamp(self, key: str, slot: int) -> Optional[int]:
        """Return the timestamp encoded in ``key`` or None if it is not a backup of ``slot``."""
        prefix = self.backup_slot_prefix(slot)
        if not key.startswith(prefix):
            return None
        rest = key[len(prefix):]
        if not (rest.isascii() and rest.isdigit()):
            return None
        return int(rest)

    def all_prefixes(self) -> tuple[str, str]:
        return self.primary_prefix, self.backup_prefix
