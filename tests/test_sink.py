"""Tests for dump ids, the directory sink and dump_state()."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from reachviz.layout import Scalar
from reachviz.machine.interfaces import LocalSlot
from reachviz.machine.snapshot import SnapshotMachine
from reachviz.models import DumpData, TreeNodeModel
from reachviz.service import dump_state
from reachviz.sink import DirectoryDumpSink, DumpCounter, DumpError, DumpId


def small_machine() -> SnapshotMachine:
    return (
        SnapshotMachine()
        .add_type("i32", Scalar("int"), 4)
        .add_allocation(1, b"\x2a\x00\x00\x00", address=0x1000)
        .add_frame("main", [LocalSlot("x", alloc_id=1, ty="i32")])
    )


class FailingSink:
    def write(self, kind, model, dump_id):
        raise PermissionError("read-only filesystem")


class DataFailingSink(DirectoryDumpSink):
    def write(self, kind, model, dump_id):
        if kind == "data":
            raise OSError("disk full")
        return super().write(kind, model, dump_id)


class TestDumpCounter:
    def test_monotonic(self):
        counter = DumpCounter()
        assert [counter.next().counter for _ in range(3)] == [0, 1, 2]

    def test_start_and_reset(self):
        counter = DumpCounter(start=10)
        counter.next()
        counter.next()
        counter.reset()
        assert counter.next().counter == 10

    def test_unique_across_threads(self):
        counter = DumpCounter()
        seen: list[int] = []
        lock = threading.Lock()

        def worker():
            for _ in range(100):
                n = counter.next().counter
                with lock:
                    seen.append(n)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sorted(seen) == list(range(800))

    def test_filename(self):
        dump_id = DumpId(counter=7, timestamp_ms=1700000000123)
        assert dump_id.filename("data") == "data_1700000000123_000007.json"
        assert dump_id.filename("tree") == "tree_1700000000123_000007.json"


class TestDirectoryDumpSink:
    def test_creates_root(self, tmp_path: Path):
        root = tmp_path / "nested" / "dumps"
        sink = DirectoryDumpSink(root)
        path = sink.write("tree", TreeNodeModel(), DumpId(0, 1))
        assert path == root / "tree_1_000000.json"
        assert TreeNodeModel.model_validate_json(path.read_text()) == TreeNodeModel()


class TestDumpState:
    def test_writes_both_encodings(self, tmp_path: Path):
        result = dump_state(small_machine(), DirectoryDumpSink(tmp_path), DumpCounter())
        assert result.tree_path.name.startswith("tree_")
        assert result.data_path.name.startswith("data_")
        assert result.tree_path.name.endswith("_000000.json")

        data = DumpData.model_validate_json(result.data_path.read_text())
        assert len(data.nodes) == 1
        assert data.allocs == [1]
        tree = TreeNodeModel.model_validate_json(result.tree_path.read_text())
        assert tree.children[0].ty == "i32"

    def test_shared_timestamp_and_counter(self, tmp_path: Path):
        result = dump_state(small_machine(), DirectoryDumpSink(tmp_path), DumpCounter())
        assert result.tree_path.name[len("tree"):] == result.data_path.name[len("data"):]

    def test_successive_dumps_unique(self, tmp_path: Path):
        counter = DumpCounter()
        sink = DirectoryDumpSink(tmp_path)
        first = dump_state(small_machine(), sink, counter)
        second = dump_state(small_machine(), sink, counter)
        assert first.data_path != second.data_path
        assert second.dump_id.counter == first.dump_id.counter + 1
        assert len(list(tmp_path.iterdir())) == 4

    def test_sink_failure_raises_dump_error(self):
        with pytest.raises(DumpError, match="read-only filesystem"):
            dump_state(small_machine(), FailingSink(), DumpCounter())

    def test_data_failure_removes_tree_file(self, tmp_path: Path):
        with pytest.raises(DumpError, match="disk full"):
            dump_state(small_machine(), DataFailingSink(tmp_path), DumpCounter())
        assert list(tmp_path.iterdir()) == []
