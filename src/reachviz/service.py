"""
reachviz traversal entrypoint.

Usage:
    from reachviz.service import traverse, dump_state
    from reachviz.sink import DirectoryDumpSink, DumpCounter

    graph = traverse(machine)
    # graph.tree: nested TreeNode rooted at an anonymous node, one child per root
    # graph.data: ReachabilityGraph with nodes, edges, frames

    result = dump_state(machine, DirectoryDumpSink(Path(".local/dumps")), DumpCounter())
    # result.tree_path / result.data_path: the two JSON files written

The machine must stay suspended for the whole call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from reachviz.builder import GraphBuilder
from reachviz.decoder import TypeDecoder
from reachviz.encoder import encode_flat, encode_tree
from reachviz.graph.graph import ReachabilityGraph
from reachviz.graph.nodes import TreeNode
from reachviz.machine.interfaces import Machine
from reachviz.memory import AddressResolver, DecodeOptions
from reachviz.models import DumpData
from reachviz.roots import enumerate_roots
from reachviz.sink import DumpCounter, DumpError, DumpId, DumpSink

log = logging.getLogger(__name__)


@dataclass
class Graph:
    """Both encodings of one traversal."""
    tree: TreeNode
    data: ReachabilityGraph


@dataclass
class DumpResult:
    dump_id: DumpId
    tree_path: Path
    data_path: Path
    data: DumpData


def traverse(machine: Machine, options: DecodeOptions | None = None) -> Graph:
    """Build the reachability graph of every active frame's locals."""
    resolver = AddressResolver(machine.address_entries())
    builder = GraphBuilder(machine, TypeDecoder(machine, resolver, options))
    builder.graph.allocs = resolver.live_allocations()

    top = TreeNode()
    frames = enumerate_roots(machine, machine, builder, top)

    log.info(
        "Reachability graph built: %d nodes, %d edges, %d roots in %d frames",
        len(builder.graph), len(builder.graph.all_edges()),
        sum(len(f.nodes) for f in frames), len(frames),
    )
    return Graph(tree=top, data=builder.graph)


def dump_state(
    machine: Machine,
    sink: DumpSink,
    counter: DumpCounter,
    options: DecodeOptions | None = None,
) -> DumpResult:
    """Traverse and hand both encodings to ``sink``.

    Raises:
        DumpError: the sink could not persist an encoding.
    """
    graph = traverse(machine, options)
    dump_id = counter.next()
    tree_model = encode_tree(graph.tree)
    data_model = encode_flat(graph.data)

    try:
        tree_path = sink.write("tree", tree_model, dump_id)
    except OSError as exc:
        raise DumpError(f"failed to persist dump {dump_id.counter:06}: {exc}") from exc
    try:
        data_path = sink.write("data", data_model, dump_id)
    except OSError as exc:
        # A tree without its data file is not a dump
        try:
            tree_path.unlink(missing_ok=True)
        except OSError:
            log.warning("could not remove partial dump %s", tree_path, exc_info=True)
        raise DumpError(f"failed to persist dump {dump_id.counter:06}: {exc}") from exc

    return DumpResult(dump_id=dump_id, tree_path=tree_path, data_path=data_path, data=data_model)
