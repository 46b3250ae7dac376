"""In-memory machine built from a snapshot description.

A snapshot file (YAML or JSON) lists type layouts, allocations with their
bytes and base addresses, and the active frames with their locals:

    types:
      i32: {kind: scalar, scalar: int, size: 4}
      "*i32": {kind: raw_pointer, pointee: i32}
    allocations:
      - {id: 1, address: 0x1000, bytes: "2a 00 00 00"}
      - {id: 2, bytes: "00 10 00 00 00 00 00 00"}
    frames:
      - name: main
        locals:
          - {name: p, alloc: 2, type: "*i32"}

SnapshotMachine can also be assembled in code, which is how the tests
describe memory states.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Iterable, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from reachviz.layout import (
    Closure,
    Enum,
    RawPointer,
    Reference,
    Scalar,
    ScalarKind,
    Shape,
    Slice,
    Struct,
    StructField,
    Tag,
    Tuple,
    TypeLayout,
    Unsupported,
)
from reachviz.machine.interfaces import FrameView, LayoutError, LocalSlot

log = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """A snapshot file is unreadable or malformed."""


# ── File schema ─────────────────────────────────────────────────────────────

class _Spec(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")
    size: int = 0


class ScalarSpec(_Spec):
    kind: Literal["scalar"]
    scalar: ScalarKind = "int"


class RawPointerSpec(_Spec):
    kind: Literal["raw_pointer"]
    pointee: str
    size: int = 8


class ReferenceSpec(_Spec):
    kind: Literal["reference"]
    pointee: str
    field_offsets: list[int] = Field(default_factory=lambda: [0], min_length=1)
    size: int = 8


class SliceSpec(_Spec):
    kind: Literal["slice"]
    element: str


class FieldSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    name: str
    ty: str = Field(alias="type")


class StructSpec(_Spec):
    kind: Literal["struct"]
    fields: list[FieldSpec] = Field(default_factory=list)
    offsets: list[int] | None = None
    memory_index: list[int] | None = None


class TagSpec(BaseModel):
    offset: int = 0
    width: int = 1
    signed: bool = False
    primitive: Literal["int", "float", "pointer"] = "int"


class EnumSpec(_Spec):
    kind: Literal["enum"]
    variants: list[str] = Field(default_factory=list)
    tag: TagSpec | None = None


class ClosureSpec(_Spec):
    kind: Literal["closure"]
    def_id: str
    generic_args: str = ""


class TupleSpec(_Spec):
    kind: Literal["tuple"]
    fields: list[str] = Field(default_factory=list)


class UnsupportedSpec(_Spec):
    kind: Literal["unsupported"]
    description: str


TypeSpec = Annotated[
    Union[
        ScalarSpec, RawPointerSpec, ReferenceSpec, SliceSpec, StructSpec,
        EnumSpec, ClosureSpec, TupleSpec, UnsupportedSpec,
    ],
    Field(discriminator="kind"),
]


class AllocationSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    id: int
    address: int | None = None
    data: str | list[int] = Field(default="", alias="bytes")
    live: bool = True

    @field_validator("data")
    @classmethod
    def _check_bytes(cls, v: str | list[int]) -> str | list[int]:
        if isinstance(v, str):
            bytes.fromhex(v)  # raises ValueError on bad hex
        elif any(not 0 <= b <= 255 for b in v):
            raise ValueError("byte values must be in 0..255")
        return v

    def raw(self) -> bytes:
        if isinstance(self.data, str):
            return bytes.fromhex(self.data)
        return bytes(self.data)


class SlotSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    name: str
    alloc: int | None = None
    offset: int = 0
    ty: str | None = Field(default=None, alias="type")


class FrameSpec(BaseModel):
    name: str
    locals: list[SlotSpec] = Field(default_factory=list)


class SnapshotFile(BaseModel):
    types: dict[str, TypeSpec] = Field(default_factory=dict)
    allocations: list[AllocationSpec] = Field(default_factory=list)
    frames: list[FrameSpec] = Field(default_factory=list)


def _shape_from_spec(spec: TypeSpec) -> Shape:
    if isinstance(spec, ScalarSpec):
        return Scalar(spec.scalar)
    if isinstance(spec, RawPointerSpec):
        return RawPointer(spec.pointee)
    if isinstance(spec, ReferenceSpec):
        return Reference(spec.pointee, tuple(spec.field_offsets))
    if isinstance(spec, SliceSpec):
        return Slice(spec.element)
    if isinstance(spec, StructSpec):
        return Struct(
            fields=tuple(StructField(f.name, f.ty) for f in spec.fields),
            offsets=tuple(spec.offsets) if spec.offsets is not None else None,
            memory_index=tuple(spec.memory_index) if spec.memory_index is not None else None,
        )
    if isinstance(spec, EnumSpec):
        tag = None
        if spec.tag is not None:
            tag = Tag(spec.tag.offset, spec.tag.width, spec.tag.signed, spec.tag.primitive)
        return Enum(tuple(spec.variants), tag)
    if isinstance(spec, ClosureSpec):
        return Closure(spec.def_id, spec.generic_args)
    if isinstance(spec, TupleSpec):
        return Tuple(tuple(spec.fields))
    return Unsupported(spec.description)


# ── Machine ─────────────────────────────────────────────────────────────────

class SnapshotMachine:
    """A frozen interpreter state held entirely in memory."""

    def __init__(self) -> None:
        self._layouts: dict[str, TypeLayout] = {}
        self._allocations: dict[int, bytearray] = {}
        self._addresses: list[tuple[int, int]] = []
        self._frames: list[FrameView] = []

    # ── Assembly ─────────────────────────────────────────────────────────

    def add_type(self, ty: str, shape: Shape, size: int = 0) -> SnapshotMachine:
        self._layouts[ty] = TypeLayout(ty=ty, shape=shape, size=size)
        return self

    def add_allocation(self, alloc_id: int, data: bytes, address: int | None = None) -> SnapshotMachine:
        self._allocations[alloc_id] = bytearray(data)
        if address is not None:
            self._addresses.append((address, alloc_id))
        return self

    def free(self, alloc_id: int) -> SnapshotMachine:
        """Drop an allocation and its address table entries."""
        self._allocations.pop(alloc_id, None)
        self._addresses = [(a, i) for a, i in self._addresses if i != alloc_id]
        return self

    def add_frame(self, name: str, slots: Iterable[LocalSlot] = ()) -> SnapshotMachine:
        self._frames.append(FrameView(name=name, locals=list(slots)))
        return self

    # ── Machine protocol ─────────────────────────────────────────────────

    def allocation_exists(self, alloc_id: int) -> bool:
        return alloc_id in self._allocations

    def read_bytes(self, alloc_id: int) -> bytes:
        data = self._allocations.get(alloc_id)
        return bytes(data) if data is not None else b""

    def layout_of(self, ty: str) -> TypeLayout:
        layout = self._layouts.get(ty)
        if layout is None:
            raise LayoutError(f"unknown type {ty!r}")
        return layout

    def address_entries(self) -> list[tuple[int, int]]:
        return list(self._addresses)

    def active_frames(self) -> list[FrameView]:
        return list(self._frames)

    # ── Loading ──────────────────────────────────────────────────────────

    @classmethod
    def from_spec(cls, spec: SnapshotFile) -> SnapshotMachine:
        machine = cls()
        for ty, type_spec in spec.types.items():
            machine.add_type(ty, _shape_from_spec(type_spec), type_spec.size)
        for alloc in spec.allocations:
            if not alloc.live:
                log.debug("allocation %d is freed, leaving it out", alloc.id)
                continue
            machine.add_allocation(alloc.id, alloc.raw(), alloc.address)
        for frame in spec.frames:
            machine.add_frame(frame.name, [
                LocalSlot(name=s.name, alloc_id=s.alloc, offset=s.offset, ty=s.ty)
                for s in frame.locals
            ])
        return machine


def load_snapshot(path: Path) -> SnapshotMachine:
    """Read a YAML or JSON snapshot file into a SnapshotMachine.

    Raises:
        SnapshotError: the file cannot be read, parsed or validated.
    """
    try:
        raw = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise SnapshotError(f"cannot read snapshot {path}: {exc}") from exc
    try:
        spec = SnapshotFile.model_validate(raw or {})
    except ValidationError as exc:
        raise SnapshotError(f"invalid snapshot {path}: {exc}") from exc
    log.info(
        "Loaded snapshot %s: %d types, %d allocations, %d frames",
        path, len(spec.types), len(spec.allocations), len(spec.frames),
    )
    return SnapshotMachine.from_spec(spec)
