"""Browsing stored dumps: listing, safe loading, and an indexed view."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from reachviz.models import DumpData, FrameModel, NodeKeyModel, NodeValueModel

log = logging.getLogger(__name__)


@dataclass
class DumpFile:
    filename: str   # relative to the dump root, POSIX separators
    size: int


def serialize_key(key: NodeKeyModel) -> str:
    """Stable string form of a node key: ``[alloc_id, offset, ty]`` as JSON."""
    return json.dumps([key.alloc_id, key.offset, key.ty])


def list_dumps(root: Path) -> list[DumpFile]:
    """Every file under ``root`` with its size, sorted by name."""
    files: list[DumpFile] = []
    for item in root.rglob("*"):
        if not item.is_file():
            continue
        try:
            size = item.stat().st_size
        except OSError:
            log.debug("cannot stat %s", item, exc_info=True)
            continue
        files.append(DumpFile(filename=item.relative_to(root).as_posix(), size=size))
    files.sort(key=lambda f: f.filename)
    return files


def resolve_dump_path(root: Path, filename: str) -> Path:
    """Join ``filename`` onto ``root``, refusing anything that escapes it."""
    root = root.resolve()
    path = (root / filename).resolve()
    if not path.is_relative_to(root) or path == root:
        raise ValueError(f"invalid dump filename: {filename!r}")
    return path


def load_dump(root: Path, filename: str) -> DumpData:
    """Load a flat dump stored under ``root``.

    Raises:
        ValueError: the filename escapes ``root`` or the file is not a flat dump.
        OSError: the file cannot be read.
    """
    path = resolve_dump_path(root, filename)
    try:
        return DumpData.model_validate_json(path.read_text())
    except ValidationError as exc:
        raise ValueError(f"{filename} is not a flat dump: {exc}") from exc


@dataclass
class DumpIndex:
    """A flat dump with nodes and outgoing edges keyed by serialized key."""
    nodes: dict[str, NodeValueModel] = field(default_factory=dict)
    edges: dict[str, list[NodeKeyModel]] = field(default_factory=dict)
    frames: list[FrameModel] = field(default_factory=list)
    allocs: list[int] = field(default_factory=list)

    @classmethod
    def from_dump(cls, data: DumpData) -> DumpIndex:
        index = cls(frames=list(data.frames), allocs=list(data.allocs))
        for key, value in data.nodes:
            index.nodes[serialize_key(key)] = value
        for src, dst in data.edges:
            index.edges.setdefault(serialize_key(src), []).append(dst)
        return index

    def children(self, key: NodeKeyModel) -> list[NodeKeyModel]:
        return self.edges.get(serialize_key(key), [])

    def value(self, key: NodeKeyModel) -> NodeValueModel | None:
        return self.nodes.get(serialize_key(key))

    def reachable_allocs(self) -> set[int]:
        """Live allocations that at least one node lives in."""
        live = set(self.allocs)
        return {json.loads(k)[0] for k in self.nodes} & live
