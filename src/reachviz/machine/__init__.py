"""Interpreter-side collaborators and the in-memory snapshot machine."""

from __future__ import annotations

from reachviz.machine.interfaces import FrameView, LayoutError, LocalSlot, Machine
from reachviz.machine.snapshot import SnapshotError, SnapshotMachine, load_snapshot

__all__ = [
    "FrameView",
    "LayoutError",
    "LocalSlot",
    "Machine",
    "SnapshotError",
    "SnapshotMachine",
    "load_snapshot",
]
