import pytest

from arenasave.keys import KeyScheme
from arenasave.tree import get_path, set_path, split_path, walk


def test_default_key_layout():
    keys = KeyScheme()
    assert keys.primary_key(2) == "legends_arena_save_slot2"
    assert keys.backup_key(2, 1700000000000) == "legends_arena_backup_slot2_1700000000000"
    assert keys.parse_backup_timestamp("legends_arena_backup_slot2_1700000000000", 2) == 1700000000000


def test_backup_timestamp_parsing_is_prefix_based():
    keys = KeyScheme("my_game_save", "my_game_bak_v2")
    key = keys.backup_key(1, 42)
    assert key == "my_game_bak_v2_slot1_42"
    assert keys.parse_backup_timestamp(key, 1) == 42
    # another slot, or trailing junk, is not a backup of slot 1
    assert keys.parse_backup_timestamp("my_game_bak_v2_slot11_42", 1) is None
    assert keys.parse_backup_timestamp("my_game_bak_v2_slot1_42x", 1) is None
    assert keys.parse_backup_timestamp("my_game_bak_v2_slot1_", 1) is None


def test_overlapping_prefixes_rejected():
    with pytest.raises(ValueError):
        KeyScheme("save", "save")
    with pytest.raises(ValueError):
        KeyScheme("", "backup")


def test_split_path_rejects_empty_segments():
    assert split_path("profile.gold") == ["profile", "gold"]
    for bad in ["", "profile..gold", ".gold", "gold."]:
        with pytest.raises(ValueError):
            split_path(bad)


def test_get_path_on_dicts_and_lists():
    tree = {"inventory": {"equipment": [{"id": "sword"}, {"id": "bow"}]}, "profile": {"gold": 0}}
    assert get_path(tree, "inventory.equipment.1.id") == "bow"
    assert get_path(tree, "inventory.equipment.5.id", "none") == "none"
    assert get_path(tree, "profile.gold") == 0
    assert get_path(tree, "profile.gold.deeper") is None
    assert walk(tree, ["missing"]) == (False, None)


def test_set_path_creates_intermediates_and_replaces_scalars():
    tree = {"profile": {"gold": 5}}
    set_path(tree, "unlocks.fighters", ["zara"])
    assert tree["unlocks"] == {"fighters": ["zara"]}

    set_path(tree, "profile.gold.bank", 10)
    assert tree["profile"]["gold"] == {"bank": 10}


def test_set_path_into_lists():
    tree = {"items": [{"qty": 1}, 3]}
    set_path(tree, "items.0.qty", 2)
    set_path(tree, "items.1", 4)
    assert tree["items"] == [{"qty": 2}, 4]

    with pytest.raises(TypeError):
        set_path(tree, "items.7", 1)
    with pytest.raises(TypeError):
        set_path(tree, "items.name.x", 1)
