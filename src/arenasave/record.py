from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .schema import (
    CREATED_AT_KEY,
    CURRENT_VERSION,
    ENVELOPE_KEYS,
    LAST_SAVED_AT_KEY,
    METADATA_KEY,
    VERSION_KEY,
    document_template,
    now_ms,
)


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


@dataclass
class SlotMetadata:
    slot: int = 1
    compressed: bool = False
    backup_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"slot": self.slot, "compressed": self.compressed, "backupCount": self.backup_count}

    @staticmethod
    def from_dict(data: Optional[Mapping[str, Any]]) -> "SlotMetadata":
        data = data if isinstance(data, Mapping) else {}
        return SlotMetadata(
            slot=_as_int(data.get("slot"), 1),
            compressed=bool(data.get("compressed", False)),
            backup_count=_as_int(data.get("backupCount"), 0),
        )


@dataclass
class SaveRecord:
    """One slot's full versioned state.

    ``payload`` is the game's free-form tree (profile, stats, inventory, story,
    ...). On the wire the payload sub-trees sit at top level next to the
    envelope keys, which is the layout older exports use.
    """

    payload: Dict[str, Any] = field(default_factory=dict)
    schema_version: str = str(CURRENT_VERSION)
    created_at: int = field(default_factory=now_ms)
    last_saved_at: int = field(default_factory=now_ms)
    metadata: SlotMetadata = field(default_factory=SlotMetadata)

    @classmethod
    def new(cls, slot: int = 1, clock_ms: Optional[int] = None) -> "SaveRecord":
        return cls.from_document(document_template(slot=slot, clock_ms=clock_ms))

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            VERSION_KEY: self.schema_version,
            CREATED_AT_KEY: self.created_at,
            LAST_SAVED_AT_KEY: self.last_saved_at,
            METADATA_KEY: self.metadata.to_dict(),
        }
        for key, value in self.payload.items():
            if key not in ENVELOPE_KEYS:
                doc[key] = deepcopy(value)
        return doc

    @staticmethod
    def from_document(data: Mapping[str, Any]) -> "SaveRecord":
        stamp = now_ms()
        created = _as_int(data.get(CREATED_AT_KEY), stamp)
        return SaveRecord(
            payload={k: deepcopy(v) for k, v in data.items() if k not in ENVELOPE_KEYS},
            schema_version=str(data.get(VERSION_KEY) or CURRENT_VERSION),
            created_at=created,
            last_saved_at=_as_int(data.get(LAST_SAVED_AT_KEY), created),
            metadata=SlotMetadata.from_dict(data.get(METADATA_KEY)),
        )

    def copy(self) -> "SaveRecord":
        return SaveRecord.from_document(self.to_document())

    # Convenience accessors used by summaries and listings

    @property
    def profile(self) -> Dict[str, Any]:
        profile = self.payload.get("profile")
        return profile if isinstance(profile, dict) else {}

    @property
    def player_name(self) -> str:
        return str(self.profile.get("name") or "Unknown")

    @property
    def level(self) -> int:
        return _as_int(self.profile.get("level"), 1) or 1
