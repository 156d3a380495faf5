from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

from .accessor import PathAccessor
from .config import StoreConfig
from .errors import SaveError
from .logging_config import configure_logging
from .store import SlotStore

logger = logging.getLogger(__name__)


def _open_store(args: argparse.Namespace) -> SlotStore:
    config = StoreConfig.load(user_path=args.config)
    if args.data_dir is not None:
        config.data_dir = args.data_dir
    return SlotStore.open(config)


def _parse_value(raw: str) -> Any:
    """Interpret a CLI value as JSON, falling back to a plain string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _number(raw: str) -> float:
    try:
        return int(raw)
    except ValueError:
        return float(raw)


def _cmd_slots(store: SlotStore, args: argparse.Namespace) -> int:
    for s in store.list_slots():
        if not s.exists:
            print(f"[{s.slot}] empty" + (f" ({s.error})" if s.error else ""))
        elif s.corrupted:
            print(f"[{s.slot}] CORRUPTED ({s.size_kb}KB)")
        else:
            played = s.last_played.isoformat(timespec="seconds") if s.last_played else "?"
            print(
                f"[{s.slot}] {s.player_name} lvl {s.level} gold {s.gold} v{s.version} "
                f"last played {played} {s.size_kb}KB backups {s.backup_count}"
            )
    return 0


def _cmd_show(store: SlotStore, args: argparse.Namespace) -> int:
    if args.path:
        value = PathAccessor(store).get(args.path, args.slot)
        print(json.dumps(value, indent=2, ensure_ascii=False))
        return 0
    bundle = store.export_save(args.slot)
    if bundle is None:
        print(f"Slot {args.slot} has no loadable save")
        return 1
    print(bundle.text)
    return 0


def _cmd_set(store: SlotStore, args: argparse.Namespace) -> int:
    ok = PathAccessor(store).set(args.path, _parse_value(args.value), args.slot)
    return 0 if ok else 1


def _cmd_incr(store: SlotStore, args: argparse.Namespace) -> int:
    accessor = PathAccessor(store)
    try:
        ok = accessor.increment(args.path, args.amount, args.slot)
    except TypeError as exc:
        print(f"ERROR: {exc}")
        return 1
    if ok:
        print(accessor.get(args.path, args.slot))
    return 0 if ok else 1


def _cmd_backups(store: SlotStore, args: argparse.Namespace) -> int:
    entries = store.list_backups(args.slot)
    if not entries:
        print(f"Slot {args.slot} has no backups")
    for b in entries:
        level = b.level if b.level is not None else "?"
        print(f"{b.timestamp}  {b.date.isoformat(timespec='seconds')}  {b.player_name} lvl {level} v{b.version} {b.size_kb}KB")
    return 0


def _cmd_restore(store: SlotStore, args: argparse.Namespace) -> int:
    return 0 if store.restore_backup(args.slot, args.timestamp) else 1


def _cmd_delete(store: SlotStore, args: argparse.Namespace) -> int:
    return 0 if store.delete_slot(args.slot) else 1


def _cmd_copy(store: SlotStore, args: argparse.Namespace) -> int:
    return 0 if store.copy_slot(args.source, args.target) else 1


def _cmd_export(store: SlotStore, args: argparse.Namespace) -> int:
    path = store.export_to_file(args.slot, args.directory)
    if path is None:
        return 1
    print(path)
    return 0


def _cmd_import(store: SlotStore, args: argparse.Namespace) -> int:
    ok = asyncio.run(store.import_file(args.file, args.slot))
    return 0 if ok else 1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="arenasave", description="Legends Arena save slot tools")
    p.add_argument("--data-dir", type=Path, default=None, help="Directory holding save files")
    p.add_argument("--config", type=Path, default=None, help="Path to a YAML store config file")
    p.add_argument("--debug", action="store_true", help="Enable verbose debug logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("slots", help="List save slots")
    s.set_defaults(func=_cmd_slots)

    s = sub.add_parser("show", help="Print a slot's record or one value in it")
    s.add_argument("slot", type=int)
    s.add_argument("path", nargs="?", default=None, help="Dot path inside the payload, e.g. profile.level")
    s.set_defaults(func=_cmd_show)

    s = sub.add_parser("set", help="Set a value (parsed as JSON when possible)")
    s.add_argument("slot", type=int)
    s.add_argument("path")
    s.add_argument("value")
    s.set_defaults(func=_cmd_set)

    s = sub.add_parser("incr", help="Increment a numeric value")
    s.add_argument("slot", type=int)
    s.add_argument("path")
    s.add_argument("amount", nargs="?", type=_number, default=1)
    s.set_defaults(func=_cmd_incr)

    s = sub.add_parser("backups", help="List backups of a slot, newest first")
    s.add_argument("slot", type=int)
    s.set_defaults(func=_cmd_backups)

    s = sub.add_parser("restore", help="Restore a backup over a slot")
    s.add_argument("slot", type=int)
    s.add_argument("timestamp", nargs="?", type=int, default=None, help="Backup timestamp (default: latest)")
    s.set_defaults(func=_cmd_restore)

    s = sub.add_parser("delete", help="Delete a slot and all of its backups")
    s.add_argument("slot", type=int)
    s.set_defaults(func=_cmd_delete)

    s = sub.add_parser("copy", help="Copy a slot into another")
    s.add_argument("source", type=int)
    s.add_argument("target", type=int)
    s.set_defaults(func=_cmd_copy)

    s = sub.add_parser("export", help="Write a slot to a dated JSON file")
    s.add_argument("slot", type=int)
    s.add_argument("directory", nargs="?", type=Path, default=Path("."))
    s.set_defaults(func=_cmd_export)

    s = sub.add_parser("import", help="Import a JSON save file into a slot")
    s.add_argument("file", type=Path)
    s.add_argument("slot", type=int)
    s.set_defaults(func=_cmd_import)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = configure_logging(default_level=logging.WARNING, debug=args.debug)
    logger.debug("Log level %s", logging.getLevelName(level))
    try:
        store = _open_store(args)
        return args.func(store, args)
    except (SaveError, ValueError) as exc:
        print(f"ERROR: {exc}")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
