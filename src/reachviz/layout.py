"""Type shapes as reported by a layout provider.

Every type the decoder can meet is one of a closed set of shapes. The
decoder dispatches on the shape class and ends with ``assert_never`` so a
new shape cannot be added without a decoding policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union


ScalarKind = Literal["bool", "char", "int", "uint", "never"]


@dataclass(frozen=True)
class Scalar:
    """A terminal value: booleans, characters, integers, the never type."""
    kind: ScalarKind = "int"


@dataclass(frozen=True)
class RawPointer:
    pointee: str  # type label of the pointed-to value


@dataclass(frozen=True)
class Reference:
    """A reference. One field offset means a thin pointer, more means fat."""
    pointee: str
    field_offsets: tuple[int, ...] = (0,)

    @property
    def is_fat(self) -> bool:
        return len(self.field_offsets) > 1


@dataclass(frozen=True)
class Slice:
    """An unsized contiguous sequence; only reachable behind a fat reference."""
    element: str


@dataclass(frozen=True)
class StructField:
    name: str
    ty: str


@dataclass(frozen=True)
class Struct:
    """A single-variant aggregate.

    ``fields`` are in declaration order. ``offsets`` is indexed by storage
    position and ``memory_index[i]`` is the storage position of field ``i``.
    Either may be None when the provider has no arbitrary field layout.
    """
    fields: tuple[StructField, ...] = ()
    offsets: tuple[int, ...] | None = None
    memory_index: tuple[int, ...] | None = None


@dataclass(frozen=True)
class Tag:
    offset: int                 # byte offset of the tag inside the enum
    width: int                  # bytes
    signed: bool = False
    primitive: Literal["int", "float", "pointer"] = "int"


@dataclass(frozen=True)
class Enum:
    variants: tuple[str, ...] = ()
    tag: Tag | None = None      # None for single-variant layouts


@dataclass(frozen=True)
class Closure:
    def_id: str
    generic_args: str = ""


@dataclass(frozen=True)
class Tuple:
    fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class Unsupported:
    description: str


Shape = Union[Scalar, RawPointer, Reference, Slice, Struct, Enum, Closure, Tuple, Unsupported]


@dataclass(frozen=True)
class TypeLayout:
    """A type label together with its size and shape."""
    ty: str
    shape: Shape
    size: int = 0


class LayoutMismatch(ValueError):
    """The struct offsets and memory permutation do not fit together."""


def memory_order_offsets(
    offsets: tuple[int, ...],
    memory_index: tuple[int, ...],
) -> list[int]:
    """Return the true byte offset of each declared field.

    Field ``i`` lives at storage position ``memory_index[i]``, so its offset
    is ``offsets[memory_index[i]]``.
    """
    if len(offsets) != len(memory_index):
        raise LayoutMismatch(
            f"{len(offsets)} offsets but {len(memory_index)} memory positions"
        )
    result: list[int] = []
    owner: dict[int, int] = {}  # storage position -> field already placed there
    for field_idx, position in enumerate(memory_index):
        if not 0 <= position < len(offsets):
            raise LayoutMismatch(
                f"field {field_idx} stored at position {position}, "
                f"only {len(offsets)} positions exist"
            )
        if position in owner:
            raise LayoutMismatch(
                f"fields {owner[position]} and {field_idx} share position {position}"
            )
        owner[position] = field_idx
        result.append(offsets[position])
    return result
