"""Shared helpers for render backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from reachviz.dumps import DumpIndex, serialize_key
from reachviz.models import NodeKeyModel, NodeValueModel
from reachviz.utils import fold

MAX_DEPTH = 32

# Errors first when a node carries both.
_SEV_ORDER = {"ERROR": 0, "INFO": 1}


def sev_order(severity: str) -> int:
    return _SEV_ORDER.get(severity, 2)


def key_label(key: NodeKeyModel, code: bool = True) -> str:
    ty = fold(key.ty, 50)
    if code:
        ty = f"`{ty}`"
    return f"alloc {key.alloc_id}, offset {key.offset}, {ty}"


def sorted_messages(value: NodeValueModel) -> list[tuple[str, str]]:
    """(severity, message) pairs, errors first, insertion order within a severity."""
    indexed = sorted(enumerate(value.messages), key=lambda p: (sev_order(p[1].severity), p[0]))
    return [(m.severity, m.message) for _, m in indexed]


@dataclass
class TreeRow:
    depth: int
    key: NodeKeyModel
    value: NodeValueModel | None    # None when the key has no node
    loop: bool = False              # already on the current path
    seen: bool = False              # expanded earlier in the same frame
    truncated: bool = False         # children cut by the depth limit


def walk_frame(
    index: DumpIndex, roots: list[NodeKeyModel], max_depth: int = MAX_DEPTH,
) -> Iterator[TreeRow]:
    """Depth-first rows for one frame.

    Each node is expanded at most once per frame, so the row count stays
    linear in the number of edges. A later occurrence of an expanded node
    yields a ``seen`` row; an occurrence on its own ancestor path yields a
    ``loop`` row.
    """
    expanded: set[str] = set()
    stack: list[tuple[NodeKeyModel, int, tuple[str, ...]]] = [(k, 0, ()) for k in reversed(roots)]
    while stack:
        key, depth, path = stack.pop()
        serialized = serialize_key(key)
        if serialized in path:
            yield TreeRow(depth, key, index.value(key), loop=True)
            continue
        value = index.value(key)
        if value is None:
            yield TreeRow(depth, key, None)
            continue
        if serialized in expanded:
            yield TreeRow(depth, key, value, seen=True)
            continue
        if depth >= max_depth:
            yield TreeRow(depth, key, value, truncated=True)
            continue
        expanded.add(serialized)
        yield TreeRow(depth, key, value)
        child_path = path + (serialized,)
        for child in reversed(index.children(key)):
            stack.append((child, depth + 1, child_path))


def latin1(text: str) -> str:
    """Sanitize text for latin-1 PDF core fonts."""
    text = text.replace("\u2026", "...").replace("\u2014", "-")
    return text.encode("latin-1", errors="replace").decode("latin-1")
