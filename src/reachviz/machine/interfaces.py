"""Protocols for the interpreter-side collaborators.

The traversal only ever reads through these. An implementation must be
safe to query about freed or unknown allocations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from reachviz.layout import TypeLayout


class LayoutError(LookupError):
    """The layout provider cannot produce a layout for a type."""


class MemoryReader(Protocol):
    def allocation_exists(self, alloc_id: int) -> bool: ...

    def read_bytes(self, alloc_id: int) -> bytes:
        """Full current contents of a live allocation."""
        ...


class LayoutProvider(Protocol):
    def layout_of(self, ty: str) -> TypeLayout:
        """Return the layout for a type label or raise LayoutError."""
        ...


class AddressTable(Protocol):
    def address_entries(self) -> Iterable[tuple[int, int]]:
        """(base address, allocation id) for every live allocation."""
        ...


@dataclass
class LocalSlot:
    name: str
    alloc_id: int | None = None   # None when the value is immediate
    offset: int = 0
    ty: str | None = None         # None when the type could not be resolved


@dataclass
class FrameView:
    name: str
    locals: list[LocalSlot] = field(default_factory=list)


class StackEnumerator(Protocol):
    def active_frames(self) -> Iterable[FrameView]: ...


class Machine(MemoryReader, LayoutProvider, AddressTable, StackEnumerator, Protocol):
    """A suspended interpreter exposing everything a traversal needs."""
