import logging
from pathlib import Path

import pytest

from arenasave.config import ENV_CONFIG_FILE, ENV_DATA_DIR, StoreConfig, default_data_dir
from arenasave.errors import ConfigError
from arenasave.logging_config import LOG_LEVEL_ENV, resolve_level


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(ENV_DATA_DIR, raising=False)
    monkeypatch.delenv(ENV_CONFIG_FILE, raising=False)


def test_defaults():
    cfg = StoreConfig.load()
    assert cfg.primary_prefix == "legends_arena_save"
    assert cfg.backup_prefix == "legends_arena_backup"
    assert cfg.max_backups == 5
    assert cfg.max_slots == 3
    assert cfg.compress is True
    assert cfg.keys.primary_key(1) == "legends_arena_save_slot1"


def test_yaml_overrides(tmp_path: Path):
    path = tmp_path / "store.yaml"
    path.write_text("max_backups: 2\ncompress: false\ndata_dir: " + str(tmp_path / "d") + "\n", encoding="utf-8")
    cfg = StoreConfig.load(path)
    assert cfg.max_backups == 2
    assert cfg.compress is False
    assert cfg.max_slots == 3
    assert cfg.resolved_data_dir() == tmp_path / "d"


def test_env_config_path(tmp_path: Path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text("max_slots: 5\n", encoding="utf-8")
    monkeypatch.setenv(ENV_CONFIG_FILE, str(path))
    assert StoreConfig.load().max_slots == 5


def test_missing_file_falls_back_to_defaults(tmp_path: Path, caplog):
    with caplog.at_level(logging.WARNING):
        cfg = StoreConfig.load(tmp_path / "nope.yaml")
    assert cfg == StoreConfig()
    assert "not found" in caplog.text


def test_unknown_keys_are_ignored_with_warning(caplog):
    with caplog.at_level(logging.WARNING):
        cfg = StoreConfig.from_dict({"max_backups": 3, "colour": "blue"})
    assert cfg.max_backups == 3
    assert "colour" in caplog.text


@pytest.mark.parametrize(
    "text",
    ["max_backups: [oops\n", "- just\n- a list\n"],
)
def test_bad_yaml_raises_config_error(tmp_path: Path, text):
    path = tmp_path / "bad.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        StoreConfig.load(path)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_backups": 0},
        {"max_slots": -1},
        {"max_backups": True},
        {"compress": "yes"},
        {"primary_prefix": "save", "backup_prefix": "save"},
        {"backup_prefix": ""},
    ],
)
def test_invalid_values_raise_config_error(kwargs):
    with pytest.raises(ConfigError):
        StoreConfig(**kwargs)


def test_save_and_reload(tmp_path: Path):
    cfg = StoreConfig(max_backups=4, data_dir=tmp_path / "saves")
    path = tmp_path / "cfg" / "store.yaml"
    cfg.save(path)
    assert StoreConfig.load(path) == cfg


def test_data_dir_env_override(tmp_path: Path, monkeypatch):
    monkeypatch.setenv(ENV_DATA_DIR, str(tmp_path / "override"))
    assert default_data_dir() == (tmp_path / "override").resolve()
    # the environment only replaces the default; an explicit data_dir wins
    assert StoreConfig().resolved_data_dir() == (tmp_path / "override").resolve()
    assert StoreConfig(data_dir=tmp_path / "x").resolved_data_dir() == tmp_path / "x"


def test_platform_default_data_dir():
    path = default_data_dir()
    assert path.name == "saves"
    assert "LegendsArena" in str(path)


def test_log_level_resolution(monkeypatch):
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
    assert resolve_level(logging.WARNING) == logging.WARNING
    assert resolve_level(logging.WARNING, debug=True) == logging.DEBUG

    monkeypatch.setenv(LOG_LEVEL_ENV, "error")
    assert resolve_level(logging.WARNING, debug=True) == logging.ERROR

    monkeypatch.setenv(LOG_LEVEL_ENV, "chatty")
    assert resolve_level(logging.INFO) == logging.INFO
