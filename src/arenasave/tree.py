"""Dot-path addressing over JSON-like trees.

A tree node is a mapping, a list, or a scalar. Path segments index mappings by
key and lists by decimal position. Every read and write goes through
:func:`walk` so both sides agree on how a path resolves.
"""
from __future__ import annotations

from typing import Any, List, MutableMapping, Optional, Tuple

_MISSING = object()


def split_path(path: str) -> List[str]:
    if not isinstance(path, str) or not path:
        raise ValueError("Path must be a non-empty string")
    segments = path.split(".")
    if any(not s for s in segments):
        raise ValueError(f"Path contains an empty segment: {path!r}")
    return segments


def _child(node: Any, segment: str) -> Any:
    if isinstance(node, dict):
        return node.get(segment, _MISSING)
    if isinstance(node, list) and segment.isascii() and segment.isdigit():
        index = int(segment)
        return node[index] if index < len(node) else _MISSING
    return _MISSING


def walk(
    node: Any,
    segments: List[str],
    *,
    create: bool = False,
) -> Tuple[bool, Any]:
    """Follow ``segments`` from ``node``.

    Returns ``(found, value)``. With ``create=True`` every segment is resolved
    to a mapping, creating it (or replacing a non-container) as needed; the
    caller then owns the final container.
    """
    current = node
    for segment in segments:
        nxt = _child(current, segment)
        if create and not isinstance(nxt, (dict, list)):
            if not isinstance(current, dict):
                raise TypeError(f"Cannot create {segment!r} inside {type(current).__name__}")
            nxt = {}
            current[segment] = nxt
        if nxt is _MISSING:
            return False, None
        current = nxt
    return True, current


def get_path(tree: Any, path: str, default: Optional[Any] = None) -> Any:
    found, value = walk(tree, split_path(path))
    return value if found else default


def set_path(tree: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Assign ``value`` at ``path``, creating intermediate mappings."""
    segments = split_path(path)
    _, parent = walk(tree, segments[:-1], create=True)
    leaf = segments[-1]
    if isinstance(parent, list) and leaf.isascii() and leaf.isdigit() and int(leaf) < len(parent):
        parent[int(leaf)] = value
    elif isinstance(parent, dict):
        parent[leaf] = value
    else:
        raise TypeError(f"Cannot assign {leaf!r} inside {type(parent).__name__}")
