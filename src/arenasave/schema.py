"""Versioned save schema: version triples, default templates and defaulting.

The default record is defined once per schema milestone. Older milestones are
kept because each migration step deep-merges its output against the template
that was current at that release.
"""
from __future__ import annotations

import logging
import random
import string
import time
from copy import deepcopy
from typing import Any, Dict, Mapping, NamedTuple, Optional

from jsonschema import Draft202012Validator

from .errors import MigrationFailure

logger = logging.getLogger(__name__)

# Envelope keys on the flat wire document; every other top-level key is payload
VERSION_KEY = "version"
CREATED_AT_KEY = "createdAt"
LAST_SAVED_AT_KEY = "lastSavedAt"
METADATA_KEY = "saveMetadata"
ENVELOPE_KEYS = (VERSION_KEY, CREATED_AT_KEY, LAST_SAVED_AT_KEY, METADATA_KEY)

STORY_ALIASES = ("story", "storyProgress")


class SchemaVersion(NamedTuple):
    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, value: Any) -> "SchemaVersion":
        """Parse ``"M.m.p"``; missing trailing parts count as zero."""
        if isinstance(value, SchemaVersion):
            return value
        if not isinstance(value, str) or not value.strip():
            raise MigrationFailure(f"Unparseable schema version: {value!r}")
        parts = value.strip().split(".")
        if len(parts) > 3:
            raise MigrationFailure(f"Unparseable schema version: {value!r}")
        try:
            numbers = [int(p) for p in parts]
        except ValueError as exc:
            raise MigrationFailure(f"Unparseable schema version: {value!r}") from exc
        if any(n < 0 for n in numbers):
            raise MigrationFailure(f"Unparseable schema version: {value!r}")
        numbers += [0] * (3 - len(numbers))
        return cls(*numbers)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


V4_1_0 = SchemaVersion(4, 1, 0)
V4_2_0 = SchemaVersion(4, 2, 0)
CURRENT_VERSION = SchemaVersion(4, 10, 2)


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_profile_id(clock_ms: Optional[int] = None) -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{clock_ms if clock_ms is not None else now_ms()}-{suffix}"


def _story_template_410() -> Dict[str, Any]:
    return {
        "unlockedRegions": ["tutorial"],
        "unlockedMissions": ["tutorial_1"],
        "completedMissions": [],
        "currentMission": None,
        "missionStars": {},
    }


def _payload_template_410() -> Dict[str, Any]:
    return {
        "profile": {
            "name": "Player",
            "level": 1,
            "xp": 0,
            "xpToNextLevel": 100,
            "gold": 100,
            "characterCreated": False,
            "character": None,
        },
        "stats": {
            "totalWins": 0,
            "totalLosses": 0,
            "totalDraws": 0,
            "winStreak": 0,
            "bestStreak": 0,
            "totalDamageDealt": 0,
            "totalDamageTaken": 0,
            "totalFightsPlayed": 0,
            "tournamentsWon": 0,
            "tournamentsPlayed": 0,
            "criticalHits": 0,
            "skillsUsed": 0,
            "itemsUsed": 0,
            "totalGoldEarned": 0,
            "totalGoldSpent": 0,
        },
        "equipped": {"weapon": None, "armor": None, "accessory": None},
        "inventory": {
            "equipment": [],
            "consumables": {"health_potion": 3, "mana_potion": 3},
        },
        "equipmentDurability": {},
        "unlocks": {"fighters": [], "skills": [], "achievements": []},
        "settings": {
            "difficulty": "normal",
            "autoScroll": True,
            "soundEnabled": True,
            "darkMode": False,
        },
        "story": _story_template_410(),
        "storyProgress": _story_template_410(),
        "marketplace": {
            "lastRefresh": None,
            "currentInventory": [],
            "purchaseHistory": [],
        },
    }


def _payload_template_current() -> Dict[str, Any]:
    payload = _payload_template_410()
    payload["profile"].update({"maxHealth": 100, "class": "BALANCED"})
    payload["stats"].update(
        {
            "bossesDefeated": 0,
            "survivalMissionsCompleted": 0,
            "marketplacePurchases": 0,
            "itemsSold": 0,
            "itemsRepaired": 0,
        }
    )
    payload["settings"].update(
        {"showPerformanceMonitor": False, "soundVolume": 0.3, "autoBattle": False}
    )
    return payload


_PAYLOAD_TEMPLATES = {
    V4_1_0: _payload_template_410,
    V4_2_0: _payload_template_410,
    CURRENT_VERSION: _payload_template_current,
}


def payload_template(version: SchemaVersion = CURRENT_VERSION) -> Dict[str, Any]:
    """Return a fresh copy of the payload template for a schema milestone.

    Versions between milestones use the newest milestone not above them.
    """
    eligible = [v for v in _PAYLOAD_TEMPLATES if v <= version]
    milestone = max(eligible) if eligible else min(_PAYLOAD_TEMPLATES)
    return _PAYLOAD_TEMPLATES[milestone]()


def document_template(
    version: SchemaVersion = CURRENT_VERSION, *, slot: int = 1, clock_ms: Optional[int] = None
) -> Dict[str, Any]:
    """Full wire document (envelope + payload) for a brand new save."""
    stamp = clock_ms if clock_ms is not None else now_ms()
    doc: Dict[str, Any] = {
        VERSION_KEY: str(version),
        CREATED_AT_KEY: stamp,
        LAST_SAVED_AT_KEY: stamp,
        METADATA_KEY: {"slot": slot, "compressed": False, "backupCount": 0},
    }
    doc.update(payload_template(version))
    doc["profile"]["id"] = generate_profile_id(stamp)
    return doc


def deep_merge_defaults(existing: Any, template: Any) -> Any:
    """Fill leaves missing from ``existing`` with values from ``template``.

    Existing values always win. Only mappings are merged recursively; lists and
    scalars are leaves. Neither input is mutated.
    """
    if not isinstance(existing, Mapping) or not isinstance(template, Mapping):
        return deepcopy(existing)
    merged: Dict[str, Any] = {k: deepcopy(v) for k, v in existing.items()}
    for key, default in template.items():
        if key not in merged:
            merged[key] = deepcopy(default)
        elif isinstance(merged[key], Mapping) and isinstance(default, Mapping):
            merged[key] = deep_merge_defaults(merged[key], default)
    return merged


# Structural presence checks only; payload content is never validated.
RECORD_STRUCTURE_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": [VERSION_KEY, "profile", "stats"],
    "properties": {
        VERSION_KEY: {"type": "string", "minLength": 1},
        "profile": {"type": "object"},
        "stats": {"type": "object"},
    },
}

_structure_validator = Draft202012Validator(RECORD_STRUCTURE_SCHEMA)


def structural_errors(document: Any) -> list[str]:
    """Return human readable structural problems; empty when the document is usable."""
    problems = []
    for err in sorted(_structure_validator.iter_errors(document), key=lambda e: [str(p) for p in e.absolute_path]):
        where = ".".join(str(p) for p in err.absolute_path) or "root"
        problems.append(f"{where}: {err.message}")
    return problems


def is_structurally_valid(document: Any) -> bool:
    return _structure_validator.is_valid(document)
