"""Stepwise schema migrations for save documents.

Each step upgrades a wire document to one schema milestone. After a step runs,
its output is deep-merged against that milestone's default template so fields
introduced by the release are always present. Steps run strictly in ascending
order and only when their target is above the document's version, which makes
``migrate`` idempotent.
"""
from __future__ import annotations

import logging
import re
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping

from .errors import MigrationFailure
from .schema import (
    CURRENT_VERSION,
    METADATA_KEY,
    STORY_ALIASES,
    V4_1_0,
    V4_2_0,
    VERSION_KEY,
    SchemaVersion,
    deep_merge_defaults,
    generate_profile_id,
    payload_template,
)

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
MigrationStep = Callable[[Document], Document]

_COMPLETED_KEY = re.compile(r"^completed[A-Z]")


@dataclass(frozen=True)
class RegisteredStep:
    target: SchemaVersion
    func: MigrationStep
    name: str


def milestone_defaults(version: SchemaVersion) -> Document:
    """Template a document is merged against after reaching ``version``."""
    template = payload_template(version)
    template[METADATA_KEY] = {"slot": 1, "compressed": False, "backupCount": 0}
    return template


def normalize_completed(tree: Any) -> Any:
    """Convert ``completed*`` maps of ``id -> bool`` into lists of the true ids.

    Applies at any depth. Returns a new tree; the input is left untouched.
    """
    if isinstance(tree, list):
        return [normalize_completed(v) for v in tree]
    if not isinstance(tree, Mapping):
        return tree
    out: Dict[str, Any] = {}
    for key, value in tree.items():
        if (
            isinstance(key, str)
            and _COMPLETED_KEY.match(key)
            and isinstance(value, Mapping)
            and all(isinstance(flag, bool) for flag in value.values())
        ):
            out[key] = [item_id for item_id, done in value.items() if done is True]
            logger.info("Converted %s from object to array", key)
        else:
            out[key] = normalize_completed(value)
    return out


class SchemaMigrator:
    """Ordered registry of upgrade steps."""

    def __init__(self, current: SchemaVersion = CURRENT_VERSION) -> None:
        self.current = current
        self._steps: Dict[SchemaVersion, RegisteredStep] = {}

    def register(self, target: Any) -> Callable[[MigrationStep], MigrationStep]:
        version = SchemaVersion.parse(target)
        if version > self.current:
            raise ValueError(f"Step target {version} is newer than current schema {self.current}")

        def decorator(func: MigrationStep) -> MigrationStep:
            if version in self._steps:
                raise ValueError(f"A migration to {version} is already registered")
            self._steps[version] = RegisteredStep(version, func, getattr(func, "__name__", str(version)))
            return func

        return decorator

    @property
    def steps(self) -> List[RegisteredStep]:
        return [self._steps[v] for v in sorted(self._steps)]

    def version_of(self, document: Mapping[str, Any]) -> SchemaVersion:
        return SchemaVersion.parse(document.get(VERSION_KEY))

    def needs_migration(self, document: Mapping[str, Any]) -> bool:
        return self.version_of(document) != self.current

    def pending_steps(self, version: SchemaVersion) -> List[RegisteredStep]:
        return [step for step in self.steps if step.target > version]

    def migrate(self, document: Mapping[str, Any]) -> Document:
        """Return an upgraded copy of ``document`` stamped with the current version.

        Raises MigrationFailure when the version is unreadable or a step fails.
        """
        version = self.version_of(document)
        data: Document = deepcopy(dict(document))

        if version > self.current:
            logger.warning(
                "Save schema %s is newer than supported %s; keeping data and filling defaults",
                version,
                self.current,
            )
            data = deep_merge_defaults(data, milestone_defaults(self.current))
        else:
            pending = self.pending_steps(version)
            for step in pending:
                logger.info("Migrating save from %s to %s", data.get(VERSION_KEY), step.target)
                try:
                    upgraded = step.func(deepcopy(data))
                except MigrationFailure:
                    raise
                except Exception as exc:  # noqa: BLE001 broad but wrapped
                    raise MigrationFailure(f"Migration {step.name} to {step.target} failed: {exc}") from exc
                if not isinstance(upgraded, Mapping):
                    raise MigrationFailure(f"Migration {step.name} returned {type(upgraded).__name__}")
                data = deep_merge_defaults(upgraded, milestone_defaults(step.target))
                data[VERSION_KEY] = str(step.target)

            if pending:
                data = normalize_completed(data)

        data[VERSION_KEY] = str(self.current)
        return data


def _story_source(doc: Document) -> Dict[str, Any]:
    for alias in STORY_ALIASES:
        candidate = doc.get(alias)
        if isinstance(candidate, Mapping) and candidate:
            return dict(candidate)
    return {}


def _pick(source: Mapping[str, Any], key: str, default: Any) -> Any:
    value = source.get(key)
    return default if value is None else value


def migrate_to_410(doc: Document) -> Document:
    """Unify ``story``/``storyProgress`` into one tree mirrored under both aliases."""
    source = _story_source(doc)
    story = dict(source)
    story["unlockedRegions"] = _pick(source, "unlockedRegions", ["tutorial"])
    story["unlockedMissions"] = _pick(source, "unlockedMissions", ["tutorial_1"])
    story["completedMissions"] = normalize_completed(
        {"completedMissions": _pick(source, "completedMissions", [])}
    )["completedMissions"]
    story["currentMission"] = source.get("currentMission")
    story["missionStars"] = _pick(source, "missionStars", {})

    progress = doc.get("storyProgress")
    if isinstance(progress, Mapping) and progress.get("missionStars"):
        story["missionStars"] = progress["missionStars"]

    doc["story"] = story
    doc["storyProgress"] = deepcopy(story)
    return doc


def migrate_to_420(doc: Document) -> Document:
    """Ensure ``completedMissions`` is a list under both story aliases."""
    for alias in STORY_ALIASES:
        tree = doc.get(alias)
        if isinstance(tree, Mapping) and "completedMissions" in tree:
            doc[alias] = normalize_completed(tree)
    return doc


def migrate_to_current(doc: Document) -> Document:
    """Fields added up to the current release come from the template; only ids need minting."""
    profile = doc.get("profile")
    if isinstance(profile, dict) and not profile.get("id"):
        profile["id"] = generate_profile_id()
    return doc


def build_default_migrator(current: SchemaVersion = CURRENT_VERSION) -> SchemaMigrator:
    migrator = SchemaMigrator(current)
    migrator.register(V4_1_0)(migrate_to_410)
    migrator.register(V4_2_0)(migrate_to_420)
    migrator.register(current)(migrate_to_current)
    return migrator
