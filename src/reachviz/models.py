"""Pydantic models for the two dump encodings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, computed_field


# ── Flat form (data_*.json) ─────────────────────────────────────────────────

class NodeKeyModel(BaseModel):
    alloc_id: int
    offset: int
    ty: str


class MessageModel(BaseModel):
    severity: Literal["INFO", "ERROR"]
    message: str


class NodeValueModel(BaseModel):
    alloc_bytes: list[int] = Field(default_factory=list)
    messages: list[MessageModel] = Field(default_factory=list)


class FrameModel(BaseModel):
    name: str = ""
    nodes: list[NodeKeyModel] = Field(default_factory=list)


class DumpData(BaseModel):
    # Pairs rather than a mapping: JSON object keys cannot be structured
    nodes: list[tuple[NodeKeyModel, NodeValueModel]] = Field(default_factory=list)
    edges: list[tuple[NodeKeyModel, NodeKeyModel]] = Field(default_factory=list)
    frames: list[FrameModel] = Field(default_factory=list)
    allocs: list[int] = Field(default_factory=list)  # live allocations at dump time

    @computed_field
    @property
    def error_count(self) -> int:
        return sum(
            1 for _, value in self.nodes for m in value.messages if m.severity == "ERROR"
        )


# ── Tree form (tree_*.json) ─────────────────────────────────────────────────

class TreeNodeModel(BaseModel):
    alloc_id: int | None = None
    ty: str = ""
    offset: int = 0
    info_messages: list[str] = Field(default_factory=list)
    error_messages: list[str] = Field(default_factory=list)
    children: list[TreeNodeModel] = Field(default_factory=list)
