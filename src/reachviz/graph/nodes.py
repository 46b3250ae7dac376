"""Node keys, node values and tree nodes: plain records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


class Severity(str, Enum):
    INFO = "INFO"
    ERROR = "ERROR"


class NodeKey(NamedTuple):
    alloc_id: int
    offset: int
    ty: str


@dataclass(frozen=True)
class Message:
    severity: Severity
    message: str


@dataclass
class NodeValue:
    alloc_bytes: bytes = b""
    messages: list[Message] = field(default_factory=list)

    def log_info(self, message: str) -> None:
        self.messages.append(Message(Severity.INFO, message))

    def log_error(self, message: str) -> None:
        self.messages.append(Message(Severity.ERROR, message))

    @property
    def errors(self) -> list[str]:
        return [m.message for m in self.messages if m.severity is Severity.ERROR]

    @property
    def infos(self) -> list[str]:
        return [m.message for m in self.messages if m.severity is Severity.INFO]


@dataclass
class TreeNode:
    alloc_id: int | None = None
    ty: str = ""
    offset: int = 0
    info_messages: list[str] = field(default_factory=list)
    error_messages: list[str] = field(default_factory=list)
    children: list[TreeNode] = field(default_factory=list)


@dataclass
class Frame:
    name: str = ""
    nodes: list[NodeKey] = field(default_factory=list)  # root keys, slot order
