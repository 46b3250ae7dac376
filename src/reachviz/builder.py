"""Graph builder: memoized depth-first walk from one root location.

One GraphBuilder is owned by exactly one traversal. Its node map doubles
as the visited set: a node is recorded before any of its children are
decoded, so a pointer cycle leads back to an existing node and stops.

The walk keeps its own stack of pending children instead of recursing, so
a long linked structure cannot hit the interpreter recursion limit. The
order in which nodes are expanded is the same as a recursive walk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from reachviz.decoder import TypeDecoder
from reachviz.graph.graph import ReachabilityGraph
from reachviz.graph.nodes import NodeKey, NodeValue, TreeNode
from reachviz.layout import TypeLayout
from reachviz.machine.interfaces import MemoryReader

log = logging.getLogger(__name__)


class Visit(str, Enum):
    NEW = "new"
    ALREADY_VISITED = "already_visited"


@dataclass
class _Pending:
    parent: NodeKey | None
    siblings: list[TreeNode]  # tree children list the new node is appended to
    alloc_id: int
    offset: int
    layout: TypeLayout


class GraphBuilder:
    """Builds both graph encodings for one traversal."""

    def __init__(self, memory: MemoryReader, decoder: TypeDecoder) -> None:
        self.memory = memory
        self.decoder = decoder
        self.graph = ReachabilityGraph()

    def visit(self, key: NodeKey) -> Visit:
        """Mark ``key`` visited; report whether it was seen before."""
        if self.graph.has_node(key):
            return Visit.ALREADY_VISITED
        self.graph.add_node(key, NodeValue())
        return Visit.NEW

    def build(self, alloc_id: int, offset: int, layout: TypeLayout) -> tuple[NodeKey, TreeNode]:
        """Walk everything reachable from one root location.

        Returns:
            The root's node key and its tree node. If the root was already
            reached from an earlier root, the tree node is a leaf stub.
        """
        holder: list[TreeNode] = []
        stack: list[_Pending] = [_Pending(None, holder, alloc_id, offset, layout)]

        while stack:
            item = stack.pop()
            key = NodeKey(item.alloc_id, item.offset, item.layout.ty)
            tree_node = TreeNode(alloc_id=item.alloc_id, ty=key.ty, offset=item.offset)
            item.siblings.append(tree_node)

            # Every parent gets its edge, even when the child is already known
            if item.parent is not None:
                self.graph.add_edge(item.parent, key)
            if self.visit(key) is Visit.ALREADY_VISITED:
                continue

            value = self.graph.get_node(key)
            data = self._read(item.alloc_id)
            if data is not None:
                value.alloc_bytes = data

            children = self.decoder.decode(item.alloc_id, item.offset, item.layout, data, value)
            tree_node.info_messages = value.infos
            tree_node.error_messages = value.errors
            if value.errors:
                log.debug("%s: %s", key, "; ".join(value.errors))

            for child in reversed(children):
                stack.append(_Pending(key, tree_node.children, child.alloc_id, child.offset, child.layout))

        return NodeKey(alloc_id, offset, layout.ty), holder[0]

    def _read(self, alloc_id: int) -> bytes | None:
        if not self.memory.allocation_exists(alloc_id):
            return None
        return bytes(self.memory.read_bytes(alloc_id))
