"""Shared utilities for reachviz."""

from __future__ import annotations


def hex_bytes(data: bytes | list[int]) -> str:
    """Space separated upper-case hex, e.g. ``"2A 00 FF"``."""
    return " ".join(f"{b:02X}" for b in data)


def fold(text: str, max_len: int = 80) -> str:
    """Truncate ``text`` to ``max_len`` characters, marking the cut."""
    if len(text) <= max_len:
        return text
    return text[:max_len] + f"… (+{len(text) - max_len} chars)"
