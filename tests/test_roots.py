"""Tests for root enumeration over active frames."""

from __future__ import annotations

import logging

from reachviz.builder import GraphBuilder
from reachviz.decoder import TypeDecoder
from reachviz.graph.nodes import NodeKey, TreeNode
from reachviz.layout import Scalar
from reachviz.machine.interfaces import LocalSlot
from reachviz.machine.snapshot import SnapshotMachine
from reachviz.memory import AddressResolver
from reachviz.roots import enumerate_roots


def run(machine: SnapshotMachine):
    builder = GraphBuilder(machine, TypeDecoder(machine, AddressResolver(machine.address_entries())))
    top = TreeNode()
    frames = enumerate_roots(machine, machine, builder, top)
    return frames, builder.graph, top


def base_machine() -> SnapshotMachine:
    return (
        SnapshotMachine()
        .add_type("i32", Scalar("int"), 4)
        .add_allocation(1, b"\x01\x00\x00\x00")
        .add_allocation(2, b"\x02\x00\x00\x00")
    )


class TestEnumerateRoots:
    def test_frames_in_reported_order(self):
        machine = (
            base_machine()
            .add_frame("outer", [LocalSlot("a", alloc_id=1, ty="i32")])
            .add_frame("inner", [LocalSlot("b", alloc_id=2, ty="i32")])
        )
        frames, graph, top = run(machine)
        assert [f.name for f in frames] == ["outer", "inner"]
        assert [f.nodes for f in graph.frames] == [[NodeKey(1, 0, "i32")], [NodeKey(2, 0, "i32")]]
        assert [child.alloc_id for child in top.children] == [1, 2]

    def test_slot_order_within_frame(self):
        machine = base_machine().add_frame("main", [
            LocalSlot("b", alloc_id=2, ty="i32"),
            LocalSlot("a", alloc_id=1, ty="i32"),
        ])
        frames, _, _ = run(machine)
        assert frames[0].nodes == [NodeKey(2, 0, "i32"), NodeKey(1, 0, "i32")]

    def test_slot_offset_used_for_root(self):
        machine = base_machine().add_frame("main", [LocalSlot("x", alloc_id=1, offset=2, ty="i32")])
        frames, _, _ = run(machine)
        assert frames[0].nodes == [NodeKey(1, 2, "i32")]

    def test_immediate_value_skipped(self, caplog):
        machine = base_machine().add_frame("main", [
            LocalSlot("tmp", alloc_id=None, ty="i32"),
            LocalSlot("a", alloc_id=1, ty="i32"),
        ])
        with caplog.at_level(logging.INFO, logger="reachviz.roots"):
            frames, graph, _ = run(machine)
        assert frames[0].nodes == [NodeKey(1, 0, "i32")]
        assert len(graph) == 1
        assert "tmp" in caplog.text

    def test_missing_type_skipped(self):
        machine = base_machine().add_frame("main", [LocalSlot("x", alloc_id=1, ty=None)])
        frames, graph, top = run(machine)
        assert frames[0].nodes == []
        assert len(graph) == 0
        assert top.children == []

    def test_unknown_layout_skipped(self):
        machine = base_machine().add_frame("main", [
            LocalSlot("g", alloc_id=1, ty="Ghost"),
            LocalSlot("a", alloc_id=2, ty="i32"),
        ])
        frames, _, _ = run(machine)
        assert frames[0].nodes == [NodeKey(2, 0, "i32")]

    def test_empty_frame_still_recorded(self):
        machine = base_machine().add_frame("empty")
        frames, graph, _ = run(machine)
        assert len(graph.frames) == 1
        assert graph.frames[0].nodes == []

    def test_no_frames(self):
        frames, graph, top = run(base_machine())
        assert frames == []
        assert graph.frames == []
        assert top.children == []
