"""Per-shape decoding policy.

The decoder looks at one node at a time. It appends diagnostics to the
node's value and returns the locations the builder should visit next; it
never recurses and never raises for a per-node problem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import assert_never

from reachviz.graph.nodes import NodeValue
from reachviz.layout import (
    Closure,
    Enum,
    LayoutMismatch,
    RawPointer,
    Reference,
    Scalar,
    Slice,
    Struct,
    Tuple,
    TypeLayout,
    Unsupported,
    memory_order_offsets,
)
from reachviz.machine.interfaces import LayoutError, LayoutProvider
from reachviz.memory import (
    AddressResolver,
    DecodeOptions,
    read_int,
    read_uint,
    short_read_message,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChildTarget:
    alloc_id: int
    offset: int
    layout: TypeLayout


class TypeDecoder:
    """Decides how to read a node from its shape and reads it."""

    def __init__(
        self,
        layouts: LayoutProvider,
        resolver: AddressResolver,
        options: DecodeOptions | None = None,
    ) -> None:
        self.layouts = layouts
        self.resolver = resolver
        self.options = options or DecodeOptions()

    def decode(
        self,
        alloc_id: int,
        offset: int,
        layout: TypeLayout,
        data: bytes | None,
        value: NodeValue,
    ) -> list[ChildTarget]:
        """Decode one node.

        Args:
            alloc_id: Allocation the node lives in.
            offset: Byte offset of the node inside that allocation.
            layout: The node's type layout.
            data: Current allocation contents, None if the allocation is gone.
            value: Receives the node's diagnostics.

        Returns:
            Child locations in the order they should be visited.
        """
        shape = layout.shape
        if isinstance(shape, Scalar):
            return []
        if isinstance(shape, RawPointer):
            return self._decode_thin_pointer(offset, shape.pointee, data, value)
        if isinstance(shape, Reference):
            if not shape.field_offsets:
                value.log_error("unknown fields layout")
                return []
            if shape.is_fat:
                return self._decode_fat_reference(offset, shape, data, value)
            return self._decode_thin_pointer(offset + shape.field_offsets[0], shape.pointee, data, value)
        if isinstance(shape, Struct):
            return self._decode_struct(alloc_id, offset, shape, value)
        if isinstance(shape, Enum):
            self._decode_enum(offset, shape, data, value)
            return []
        if isinstance(shape, Closure):
            value.log_info(f"def_id: {shape.def_id}")
            value.log_info(f"generic_args: {shape.generic_args}")
            value.log_info("captured variables are not decoded")
            return []
        if isinstance(shape, Tuple):
            if shape.fields:
                value.log_error(f"tuple with {len(shape.fields)} fields is not decoded: ({', '.join(shape.fields)})")
            return []
        if isinstance(shape, Slice):
            value.log_error(f"unsized slice of {shape.element} reached without a length")
            return []
        if isinstance(shape, Unsupported):
            value.log_error(f"unsupported shape: {shape.description}")
            return []
        assert_never(shape)

    # ── Pointers ─────────────────────────────────────────────────────────

    def _decode_thin_pointer(
        self, offset: int, pointee: str, data: bytes | None, value: NodeValue,
    ) -> list[ChildTarget]:
        address = self._read_address(offset, data, value)
        if address is None:
            return []
        resolved = self._resolve(address, value)
        if resolved is None:
            return []
        target = self._layout(pointee, "pointee", value)
        if target is None:
            return []
        return [ChildTarget(resolved[0], resolved[1], target)]

    def _decode_fat_reference(
        self, offset: int, shape: Reference, data: bytes | None, value: NodeValue,
    ) -> list[ChildTarget]:
        pointee = self._layout(shape.pointee, "pointee", value)
        if pointee is None:
            return []
        if not isinstance(pointee.shape, Slice):
            value.log_error(f"unsupported fat reference to {pointee.ty}")
            return []

        address_offset = offset + shape.field_offsets[0]
        address = self._read_address(address_offset, data, value)
        if address is None:
            return []
        resolved = self._resolve(address, value)
        if resolved is None:
            return []

        length_offset = address_offset + self.options.slice_length_offset
        # _read_address already proved data is not None
        length = read_uint(data, length_offset, self.options.pointer_size, self.options.byteorder)
        if length is None:
            value.log_error(short_read_message(length_offset, self.options.pointer_size, len(data)))
            return []

        value.log_info(f"slice element: {pointee.shape.element}")
        value.log_info(f"address: {address:#x}, length: {length}")

        element = self._layout(pointee.shape.element, "slice element", value)
        if element is None:
            return []
        return [ChildTarget(resolved[0], resolved[1], element)]

    def _read_address(self, offset: int, data: bytes | None, value: NodeValue) -> int | None:
        if data is None:
            value.log_error("alloc is null")
            return None
        address = read_uint(data, offset, self.options.pointer_size, self.options.byteorder)
        if address is None:
            value.log_error(short_read_message(offset, self.options.pointer_size, len(data)))
        return address

    def _resolve(self, address: int, value: NodeValue) -> tuple[int, int] | None:
        resolved = self.resolver.resolve(address)
        if resolved is None:
            value.log_error(f"cannot find offset for address {address:#x} in address table")
        return resolved

    # ── Aggregates ───────────────────────────────────────────────────────

    def _decode_struct(
        self, alloc_id: int, offset: int, shape: Struct, value: NodeValue,
    ) -> list[ChildTarget]:
        if shape.offsets is None or shape.memory_index is None:
            value.log_error("unknown fields layout")
            return []
        try:
            field_offsets = memory_order_offsets(shape.offsets, shape.memory_index)
        except LayoutMismatch as exc:
            value.log_error(f"unexpected fields layout: {exc}")
            return []
        if len(field_offsets) != len(shape.fields):
            value.log_error(
                f"struct declares {len(shape.fields)} fields but layout has {len(field_offsets)}"
            )
            return []

        children: list[ChildTarget] = []
        for fld, field_offset in zip(shape.fields, field_offsets):
            fld_layout = self._layout(fld.ty, f"field {fld.name}", value)
            if fld_layout is None:
                continue  # siblings still decode
            children.append(ChildTarget(alloc_id, offset + field_offset, fld_layout))
        return children

    def _decode_enum(self, offset: int, shape: Enum, data: bytes | None, value: NodeValue) -> None:
        tag = shape.tag
        if tag is None:
            value.log_error("unexpected enum layout: no tag for a multi-variant type")
            return
        value.log_info(f"variants: {', '.join(shape.variants)}")
        value.log_info(f"tag field: offset {tag.offset}, width {tag.width}, signed {tag.signed}")
        if tag.primitive != "int":
            value.log_error(f"unexpected tag type: {tag.primitive}")
            return
        if data is None:
            value.log_error("alloc is null")
            return
        if tag.width != 1:
            value.log_error(f"not yet implemented for {tag.width}-byte tag (signed = {tag.signed})")
            return

        tag_offset = offset + tag.offset
        reader = read_int if tag.signed else read_uint
        raw = reader(data, tag_offset, 1, self.options.byteorder)
        if raw is None:
            value.log_error(short_read_message(tag_offset, 1, len(data)))
            return
        value.log_info(f"tag: {raw}")
        # TODO: map the raw tag through the provider's tag encoding once it exposes niche ranges
        value.log_error("variant decoding is not implemented")

    # ── Layout lookup ────────────────────────────────────────────────────

    def _layout(self, ty: str, what: str, value: NodeValue) -> TypeLayout | None:
        try:
            return self.layouts.layout_of(ty)
        except LayoutError as exc:
            log.debug("layout lookup failed for %s", ty, exc_info=True)
            value.log_error(f"no layout for {what} ({ty}): {exc}")
            return None
