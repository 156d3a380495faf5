from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from platformdirs import PlatformDirs

from .errors import ConfigError
from .keys import DEFAULT_BACKUP_PREFIX, DEFAULT_PRIMARY_PREFIX, KeyScheme

logger = logging.getLogger(__name__)

APP_NAME = "LegendsArena"

# Environment variable overrides (useful for tests and power users)
ENV_DATA_DIR = "ARENASAVE_DATA_DIR"
ENV_CONFIG_FILE = "ARENASAVE_CONFIG"


def default_data_dir() -> Path:
    """Platform-specific save directory, honouring ARENASAVE_DATA_DIR."""
    override = os.getenv(ENV_DATA_DIR)
    if override:
        return Path(override).expanduser().resolve()
    dirs = PlatformDirs(appname=APP_NAME, appauthor=False)
    return Path(dirs.user_data_dir) / "saves"


@dataclass
class StoreConfig:
    """
    Save store configuration with sensible defaults.

    You can override any value from a YAML file, e.g.::

        primary_prefix: legends_arena_save
        backup_prefix: legends_arena_backup
        max_backups: 5
        max_slots: 3
        compress: true
        data_dir: ~/Games/legends
    """

    primary_prefix: str = DEFAULT_PRIMARY_PREFIX
    backup_prefix: str = DEFAULT_BACKUP_PREFIX
    max_backups: int = 5
    max_slots: int = 3
    compress: bool = True
    data_dir: Optional[Path] = field(default=None)

    def __post_init__(self) -> None:
        if not isinstance(self.max_backups, int) or isinstance(self.max_backups, bool) or self.max_backups < 1:
            raise ConfigError(f"max_backups must be a positive integer, got {self.max_backups!r}")
        if not isinstance(self.max_slots, int) or isinstance(self.max_slots, bool) or self.max_slots < 1:
            raise ConfigError(f"max_slots must be a positive integer, got {self.max_slots!r}")
        if not isinstance(self.compress, bool):
            raise ConfigError(f"compress must be a boolean, got {self.compress!r}")
        try:
            KeyScheme(self.primary_prefix, self.backup_prefix)
        except (TypeError, ValueError) as exc:
            raise ConfigError(str(exc)) from exc
        if self.data_dir is not None:
            self.data_dir = Path(self.data_dir).expanduser()

    @property
    def keys(self) -> KeyScheme:
        return KeyScheme(self.primary_prefix, self.backup_prefix)

    def resolved_data_dir(self) -> Path:
        if self.data_dir is not None:
            return self.data_dir
        return default_data_dir()

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data["data_dir"] = str(self.data_dir) if self.data_dir is not None else None
        return data

    @staticmethod
    def _load_yaml(path: Path) -> Dict[str, Any]:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreConfig":
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        merged = {**dataclasses.asdict(cls()), **{k: v for k, v in data.items() if k in known}}
        return cls(**merged)

    @classmethod
    def load(cls, user_path: Optional[Path] = None) -> "StoreConfig":
        """Load defaults, overlaid by a YAML file if one is given or named by ARENASAVE_CONFIG."""
        if user_path is None and os.getenv(ENV_CONFIG_FILE):
            user_path = Path(os.environ[ENV_CONFIG_FILE])

        user_data: Dict[str, Any] = {}
        if user_path is not None:
            path = Path(user_path).expanduser()
            if path.exists():
                user_data = cls._load_yaml(path)
                logger.info("Loaded store config from %s", path)
            else:
                logger.warning("Store config file not found: %s", path)

        config = cls.from_dict(user_data)
        logger.debug("Store config: %s", config)
        return config

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        logger.info("Saved store config to %s", path)
