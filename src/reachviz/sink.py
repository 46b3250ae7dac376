"""Dump identifiers and persistence of encoded graphs."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

from pydantic import BaseModel

log = logging.getLogger(__name__)

DumpKind = Literal["tree", "data"]

DEFAULT_DUMP_DIR = Path(".local/dumps")


class DumpError(RuntimeError):
    """A finished graph could not be persisted."""


@dataclass(frozen=True)
class DumpId:
    counter: int
    timestamp_ms: int

    def filename(self, kind: DumpKind) -> str:
        return f"{kind}_{self.timestamp_ms}_{self.counter:06}.json"


class DumpCounter:
    """Process-wide source of unique dump ids.

    Construct one explicitly and share it between traversals; ``reset`` is
    for teardown between test runs.
    """

    def __init__(self, start: int = 0) -> None:
        self._start = start
        self._next = start
        self._lock = threading.Lock()

    def next(self) -> DumpId:
        with self._lock:
            counter = self._next
            self._next += 1
        return DumpId(counter=counter, timestamp_ms=time.time_ns() // 1_000_000)

    def reset(self) -> None:
        with self._lock:
            self._next = self._start


class DumpSink(Protocol):
    def write(self, kind: DumpKind, model: BaseModel, dump_id: DumpId) -> Path:
        """Persist one encoding; raise OSError on failure."""
        ...


class DirectoryDumpSink:
    """Writes each encoding as a JSON file under ``root``."""

    def __init__(self, root: Path = DEFAULT_DUMP_DIR) -> None:
        self.root = root

    def write(self, kind: DumpKind, model: BaseModel, dump_id: DumpId) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.root / dump_id.filename(kind)
        path.write_text(model.model_dump_json())
        log.info("wrote %s dump to %s", kind, path)
        return path
