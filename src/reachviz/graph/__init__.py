"""Graph model for reachviz.

Provides:
    ReachabilityGraph: flat node map, edge set, frame list
    NodeKey, NodeValue, TreeNode, Frame: the records it holds
"""

from __future__ import annotations

from reachviz.graph.graph import ReachabilityGraph
from reachviz.graph.nodes import Frame, Message, NodeKey, NodeValue, Severity, TreeNode

__all__ = [
    "Frame",
    "Message",
    "NodeKey",
    "NodeValue",
    "ReachabilityGraph",
    "Severity",
    "TreeNode",
]
