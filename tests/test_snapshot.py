"""Tests for the snapshot file format and SnapshotMachine."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from reachviz.layout import Enum, RawPointer, Reference, Scalar, Struct, StructField, Tag
from reachviz.machine.interfaces import LayoutError
from reachviz.machine.snapshot import SnapshotError, SnapshotMachine, load_snapshot

EXAMPLE = Path(__file__).parent.parent / "examples" / "linked_ring" / "snapshot.yaml"


class TestLoadSnapshot:
    def test_example_loads(self):
        machine = load_snapshot(EXAMPLE)
        assert machine.layout_of("Node").shape == Struct(
            fields=(StructField("next", "*Node"), StructField("value", "i32")),
            offsets=(0, 8),
            memory_index=(0, 1),
        )
        assert machine.layout_of("*Node").shape == RawPointer("Node")
        assert machine.layout_of("&[u8]").shape == Reference("[u8]", (0, 8))
        assert machine.layout_of("Option<u8>").shape == Enum(("None", "Some"), Tag(offset=0, width=1))
        assert machine.layout_of("i32").size == 4

    def test_hex_addresses_and_bytes(self):
        machine = load_snapshot(EXAMPLE)
        assert (0x1000, 1) in machine.address_entries()
        assert machine.read_bytes(4) == b"hi!"

    def test_freed_allocation_left_out(self):
        machine = load_snapshot(EXAMPLE)
        assert not machine.allocation_exists(8)
        assert all(alloc != 8 for _, alloc in machine.address_entries())

    def test_frames_and_slots(self):
        frames = load_snapshot(EXAMPLE).active_frames()
        assert [f.name for f in frames] == ["main", "helper"]
        tmp = next(s for s in frames[0].locals if s.name == "tmp")
        assert tmp.alloc_id is None
        assert tmp.ty == "i32"

    def test_json_file(self, tmp_path: Path):
        path = tmp_path / "snap.json"
        path.write_text(json.dumps({
            "types": {"u8": {"kind": "scalar", "scalar": "uint", "size": 1}},
            "allocations": [{"id": 1, "bytes": [1, 2, 3]}],
            "frames": [{"name": "main", "locals": [{"name": "x", "alloc": 1, "type": "u8"}]}],
        }))
        machine = load_snapshot(path)
        assert machine.read_bytes(1) == b"\x01\x02\x03"
        assert machine.layout_of("u8").shape == Scalar("uint")

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        machine = load_snapshot(path)
        assert machine.active_frames() == []

    @pytest.mark.parametrize("body", [
        "allocations: [{id: 1, bytes: 'zz'}]",
        "allocations: [{id: 1, bytes: [256]}]",
        "types: {T: {kind: pointer, pointee: U}}",
        "types: {T: {kind: scalar, colour: red}}",
        "types: {R: {kind: reference, pointee: T, field_offsets: []}}",
        "frames: [{locals: []}]",
        "types: [: bad",
    ])
    def test_invalid(self, tmp_path: Path, body: str):
        path = tmp_path / "bad.yaml"
        path.write_text(body)
        with pytest.raises(SnapshotError):
            load_snapshot(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(SnapshotError, match="cannot read"):
            load_snapshot(tmp_path / "nope.yaml")


class TestSnapshotMachine:
    def test_unknown_type(self):
        with pytest.raises(LayoutError, match="Ghost"):
            SnapshotMachine().layout_of("Ghost")

    def test_read_unknown_allocation_is_empty(self):
        machine = SnapshotMachine()
        assert not machine.allocation_exists(1)
        assert machine.read_bytes(1) == b""

    def test_free_drops_address_entries(self):
        machine = SnapshotMachine().add_allocation(1, b"\0", address=0x10).add_allocation(2, b"\0", address=0x20)
        machine.free(1)
        assert machine.address_entries() == [(0x20, 2)]
        assert not machine.allocation_exists(1)
