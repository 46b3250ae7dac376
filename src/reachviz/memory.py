"""Byte-level reads and address resolution.

All reads are bounds-checked: a read that would run past the end of the
allocation returns None instead of raising, and the caller turns that into
a diagnostic on the node being decoded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Literal

log = logging.getLogger(__name__)

ByteOrder = Literal["little", "big"]


@dataclass(frozen=True)
class DecodeOptions:
    """Machine parameters the decoder cannot learn from type layouts."""
    pointer_size: int = 8
    byteorder: ByteOrder = "little"
    slice_length_offset: int = 8  # length word of a fat slice pointer, past the address


def read_uint(data: bytes, offset: int, width: int, byteorder: ByteOrder = "little") -> int | None:
    """Decode an unsigned integer of ``width`` bytes at ``offset``, or None on a short read."""
    if offset < 0 or width <= 0 or offset + width > len(data):
        return None
    return int.from_bytes(data[offset:offset + width], byteorder, signed=False)


def read_int(data: bytes, offset: int, width: int, byteorder: ByteOrder = "little") -> int | None:
    """Decode a two's complement signed integer, or None on a short read."""
    if offset < 0 or width <= 0 or offset + width > len(data):
        return None
    return int.from_bytes(data[offset:offset + width], byteorder, signed=True)


def short_read_message(offset: int, width: int, available: int) -> str:
    return f"short read: wanted {width} bytes at offset {offset}, allocation holds {available}"


class AddressResolver:
    """Maps raw addresses to (allocation, offset) via the live address table.

    Only exact matches on an allocation's base address resolve; an address
    pointing into the middle of an allocation does not. The scan is linear.
    """

    def __init__(self, table: Iterable[tuple[int, int]]) -> None:
        self._table: list[tuple[int, int]] = list(table)
        log.debug("address table: %s", [(hex(a), alloc) for a, alloc in self._table])

    def resolve(self, address: int) -> tuple[int, int] | None:
        found: int | None = None
        for base, alloc_id in self._table:
            if base == address:
                found = alloc_id  # last entry wins
        if found is None:
            return None
        return found, 0

    def live_allocations(self) -> list[int]:
        """Allocation ids present in the table, first-seen order, de-duplicated."""
        seen: dict[int, None] = {}
        for _, alloc_id in self._table:
            seen.setdefault(alloc_id, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self._table)
