import json
from pathlib import Path

import pytest

from arenasave.cli import build_parser, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("ARENASAVE_DATA_DIR", raising=False)
    monkeypatch.delenv("ARENASAVE_CONFIG", raising=False)


@pytest.fixture
def run(tmp_path: Path, capsys):
    data_dir = tmp_path / "saves"

    def _run(*argv):
        code = main(["--data-dir", str(data_dir), *argv])
        return code, capsys.readouterr().out

    return _run


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_slots_on_empty_store(run):
    code, out = run("slots")
    assert code == 0
    assert out.splitlines() == ["[1] empty", "[2] empty", "[3] empty"]


def test_set_show_and_incr(run):
    assert run("set", "1", "profile.name", "Ayla")[0] == 0
    assert run("set", "1", "profile.gold", "40")[0] == 0

    code, out = run("show", "1", "profile.name")
    assert code == 0
    assert json.loads(out) == "Ayla"

    code, out = run("incr", "1", "profile.gold", "2")
    assert code == 0
    assert out.strip() == "42"

    code, out = run("show", "1")
    assert code == 0
    doc = json.loads(out)
    assert doc["profile"]["gold"] == 42
    assert doc["version"] == "4.10.2"

    code, out = run("slots")
    assert out.splitlines()[0].startswith("[1] Ayla lvl 1 gold 42 v4.10.2")


def test_show_empty_slot_fails(run):
    code, out = run("show", "2")
    assert code == 1
    assert "no loadable save" in out


def test_incr_non_numeric_reports_error(run):
    run("set", "1", "profile.name", "Ayla")
    code, out = run("incr", "1", "profile.name")
    assert code == 1
    assert out.startswith("ERROR:")


def test_invalid_slot_reports_error(run):
    code, out = run("show", "7")
    assert code == 1
    assert "between 1 and 3" in out


def test_backups_and_restore(run):
    assert run("restore", "1")[0] == 1

    run("set", "1", "profile.gold", "1")
    run("set", "1", "profile.gold", "2")
    code, out = run("backups", "1")
    assert code == 0
    assert len(out.splitlines()) == 1

    assert run("restore", "1")[0] == 0
    assert json.loads(run("show", "1", "profile.gold")[1]) == 1


def test_copy_and_delete(run):
    run("set", "1", "profile.name", "Ayla")
    assert run("copy", "1", "3")[0] == 0
    assert json.loads(run("show", "3", "profile.name")[1]) == "Ayla"

    assert run("delete", "1")[0] == 0
    assert run("show", "1")[0] == 1
    assert run("copy", "1", "2")[0] == 1


def test_export_and_import(run, tmp_path: Path):
    run("set", "1", "profile.name", "Ayla")
    out_dir = tmp_path / "exports"
    code, out = run("export", "1", str(out_dir))
    assert code == 0
    exported = Path(out.strip())
    assert exported.parent == out_dir
    assert exported.name.startswith("legends_arena_save_slot1_")

    assert run("import", str(exported), "2")[0] == 0
    assert json.loads(run("show", "2", "profile.name")[1]) == "Ayla"

    bad = tmp_path / "bad.json"
    bad.write_text("{broken", encoding="utf-8")
    assert run("import", str(bad), "3")[0] == 1


def test_data_dir_flag_wins_over_environment(run, tmp_path: Path, monkeypatch):
    monkeypatch.setenv("ARENASAVE_DATA_DIR", str(tmp_path / "elsewhere"))
    run("set", "1", "profile.name", "Ayla")
    assert (tmp_path / "saves" / "legends_arena_save_slot1.sav").exists()
    assert not (tmp_path / "elsewhere").exists()
