"""Turn a finished traversal into its wire models."""

from __future__ import annotations

from reachviz.graph.graph import ReachabilityGraph
from reachviz.graph.nodes import NodeKey, NodeValue, TreeNode
from reachviz.models import (
    DumpData,
    FrameModel,
    MessageModel,
    NodeKeyModel,
    NodeValueModel,
    TreeNodeModel,
)


def encode_key(key: NodeKey) -> NodeKeyModel:
    return NodeKeyModel(alloc_id=key.alloc_id, offset=key.offset, ty=key.ty)


def decode_key(model: NodeKeyModel) -> NodeKey:
    return NodeKey(model.alloc_id, model.offset, model.ty)


def encode_value(value: NodeValue) -> NodeValueModel:
    return NodeValueModel(
        alloc_bytes=list(value.alloc_bytes),
        messages=[MessageModel(severity=m.severity.value, message=m.message) for m in value.messages],
    )


def encode_tree(node: TreeNode) -> TreeNodeModel:
    """Nested encoding; revisited locations stay leaf stubs."""
    return TreeNodeModel(
        alloc_id=node.alloc_id,
        ty=node.ty,
        offset=node.offset,
        info_messages=list(node.info_messages),
        error_messages=list(node.error_messages),
        children=[encode_tree(child) for child in node.children],
    )


def encode_flat(graph: ReachabilityGraph) -> DumpData:
    """Deduplicated encoding: nodes in visit order, edges sorted by key."""
    return DumpData(
        nodes=[(encode_key(key), encode_value(value)) for key, value in graph.all_nodes()],
        edges=[(encode_key(src), encode_key(dst)) for src, dst in sorted(graph.all_edges())],
        frames=[
            FrameModel(name=frame.name, nodes=[encode_key(k) for k in frame.nodes])
            for frame in graph.frames
        ],
        allocs=list(graph.allocs),
    )
