from pathlib import Path

import pytest

from arenasave.backend import FileBackend, InMemoryBackend
from arenasave.errors import BackendUnavailable


@pytest.fixture(params=["memory", "file"])
def any_backend(request, tmp_path: Path):
    if request.param == "memory":
        return InMemoryBackend()
    return FileBackend(tmp_path / "saves")


def test_put_get_remove(any_backend):
    assert any_backend.get("legends_arena_save_slot1") is None

    any_backend.put("legends_arena_save_slot1", '{"a": 1}')
    assert any_backend.get("legends_arena_save_slot1") == '{"a": 1}'

    any_backend.put("legends_arena_save_slot1", '{"a": 2}')
    assert any_backend.get("legends_arena_save_slot1") == '{"a": 2}'

    any_backend.remove("legends_arena_save_slot1")
    assert any_backend.get("legends_arena_save_slot1") is None


def test_remove_missing_key_is_noop(any_backend):
    any_backend.remove("never_written")
    assert list(any_backend.keys_with_prefix("")) == []


def test_keys_with_prefix_filters(any_backend):
    any_backend.put("legends_arena_save_slot1", "x")
    any_backend.put("legends_arena_backup_slot1_100", "y")
    any_backend.put("legends_arena_backup_slot1_200", "z")
    any_backend.put("legends_arena_backup_slot2_300", "w")

    keys = sorted(any_backend.keys_with_prefix("legends_arena_backup_slot1_"))
    assert keys == ["legends_arena_backup_slot1_100", "legends_arena_backup_slot1_200"]
    assert dict(any_backend.items_with_prefix("legends_arena_save")) == {"legends_arena_save_slot1": "x"}


def test_in_memory_prefix_scan_tolerates_removal():
    b = InMemoryBackend({"k_1": "a", "k_2": "b", "other": "c"})
    for key in b.keys_with_prefix("k_"):
        b.remove(key)
    assert len(b) == 1


def test_file_backend_persists_across_instances(tmp_path: Path):
    root = tmp_path / "saves"
    FileBackend(root).put("legends_arena_save_slot2", "hello")

    again = FileBackend(root)
    assert again.get("legends_arena_save_slot2") == "hello"
    assert (root / "legends_arena_save_slot2.sav").exists()
    # No temp files left behind by the atomic write
    assert [p.name for p in root.iterdir()] == ["legends_arena_save_slot2.sav"]


def test_file_backend_rejects_unsafe_keys(tmp_path: Path):
    b = FileBackend(tmp_path)
    with pytest.raises(ValueError):
        b.put("../escape", "x")
    with pytest.raises(ValueError):
        b.get("a/b")


def test_file_backend_ignores_foreign_files(tmp_path: Path):
    (tmp_path / "notes.txt").write_text("hi", encoding="utf-8")
    b = FileBackend(tmp_path)
    b.put("legends_arena_save_slot1", "x")
    assert list(b.keys_with_prefix("")) == ["legends_arena_save_slot1"]


def test_file_backend_unreadable_root_raises_backend_unavailable(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("i am a file", encoding="utf-8")
    with pytest.raises(BackendUnavailable):
        FileBackend(blocker / "saves")
