"""Tests for shape helpers and field offset de-permutation."""

from __future__ import annotations

import pytest

from reachviz.layout import LayoutMismatch, Reference, memory_order_offsets


class TestMemoryOrderOffsets:
    def test_identity(self):
        assert memory_order_offsets((0, 8), (0, 1)) == [0, 8]

    def test_two_fields_swapped(self):
        # {a: u8, b: u32} with b stored first: a sits at position 1, b at 0
        offsets = (0, 4)
        memory_index = (1, 0)
        true_offsets = memory_order_offsets(offsets, memory_index)
        assert true_offsets[0] == offsets[1] == 4
        assert true_offsets[1] == offsets[0] == 0

    def test_three_field_rotation(self):
        assert memory_order_offsets((0, 4, 8), (2, 0, 1)) == [8, 0, 4]

    def test_empty(self):
        assert memory_order_offsets((), ()) == []

    def test_length_mismatch(self):
        with pytest.raises(LayoutMismatch):
            memory_order_offsets((0, 4), (0,))

    def test_position_out_of_range(self):
        with pytest.raises(LayoutMismatch, match="position 5"):
            memory_order_offsets((0, 4), (0, 5))

    def test_duplicate_position(self):
        with pytest.raises(LayoutMismatch, match="fields 0 and 1 share position 0"):
            memory_order_offsets((0, 4), (0, 0))


class TestReference:
    def test_thin(self):
        assert not Reference("T").is_fat

    def test_fat(self):
        assert Reference("[u8]", (0, 8)).is_fat
