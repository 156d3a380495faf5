from __future__ import annotations

import logging
from copy import deepcopy
from numbers import Number
from typing import Any, List, Optional

from .schema import ENVELOPE_KEYS
from .store import LoadStatus, SlotStore
from .tree import set_path, split_path, walk

logger = logging.getLogger(__name__)

# story and storyProgress hold the same tree; writes to one are mirrored to the other
STORY_ALIAS_MAP = {"story": "storyProgress", "storyProgress": "story"}


class PathAccessor:
    """Dot-path reads and writes over a slot's payload.

    ``set`` and ``increment`` persist the whole record through
    :meth:`SlotStore.save`, so every write also rotates a backup.
    """

    def __init__(self, store: SlotStore) -> None:
        self.store = store

    @staticmethod
    def _writable_segments(path: str) -> List[str]:
        segments = split_path(path)
        if segments[0] in ENVELOPE_KEYS:
            raise ValueError(f"{segments[0]!r} is managed by the store and cannot be addressed")
        return segments

    @staticmethod
    def mirror_path(segments: List[str]) -> Optional[List[str]]:
        alias = STORY_ALIAS_MAP.get(segments[0])
        if alias is None:
            return None
        return [alias, *segments[1:]]

    def get(self, path: str, slot: int = 1, default: Any = None) -> Any:
        # envelope keys never appear in the payload, so they read as absent
        segments = split_path(path)
        record = self.store.load(slot)
        if record is None:
            return default
        found, value = walk(record.payload, segments)
        return deepcopy(value) if found else default

    def set(self, path: str, value: Any, slot: int = 1) -> bool:
        segments = self._writable_segments(path)
        result = self.store.load_status(slot)
        record = result.record
        if record is None:
            if result.status is LoadStatus.UNAVAILABLE:
                return False
            logger.info("Creating new profile for first save in slot %s", slot)
            record = self.store.new_record(slot)

        set_path(record.payload, ".".join(segments), value)
        mirrored = self.mirror_path(segments)
        if mirrored is not None:
            set_path(record.payload, ".".join(mirrored), deepcopy(value))
        return self.store.save(record, slot)

    def update(self, path: str, value: Any, slot: int = 1) -> bool:
        return self.set(path, value, slot)

    def increment(self, path: str, amount: Number = 1, slot: int = 1) -> bool:
        self._writable_segments(path)
        current = self.get(path, slot)
        if current is None:
            current = 0
        if isinstance(current, bool) or not isinstance(current, Number):
            raise TypeError(f"Cannot increment non-numeric value at {path!r}: {current!r}")
        return self.set(path, current + amount, slot)
