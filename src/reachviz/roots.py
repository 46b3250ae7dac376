"""Root enumeration: one traversal per addressable local of every active frame."""

from __future__ import annotations

import logging

from reachviz.builder import GraphBuilder
from reachviz.graph.nodes import Frame, TreeNode
from reachviz.machine.interfaces import LayoutError, LayoutProvider, StackEnumerator

log = logging.getLogger(__name__)


def enumerate_roots(
    stack: StackEnumerator,
    layouts: LayoutProvider,
    builder: GraphBuilder,
    top: TreeNode,
) -> list[Frame]:
    """Start a traversal at each local that has a memory location and a type.

    Locals without either are skipped; that is routine (immediate values,
    unresolved generics) and only logged. Root tree nodes are appended to
    ``top`` and each frame record is added to the builder's graph.
    """
    frames: list[Frame] = []
    for frame_view in stack.active_frames():
        frame = Frame(name=frame_view.name)
        for slot in frame_view.locals:
            if slot.alloc_id is None:
                log.info("%s: skipping %s, no allocation (immediate value)", frame_view.name, slot.name)
                continue
            if slot.ty is None:
                log.info("%s: skipping %s, type not available", frame_view.name, slot.name)
                continue
            try:
                layout = layouts.layout_of(slot.ty)
            except LayoutError as exc:
                log.info("%s: skipping %s, no layout for %s: %s", frame_view.name, slot.name, slot.ty, exc)
                continue

            key, root_node = builder.build(slot.alloc_id, slot.offset, layout)
            frame.nodes.append(key)
            top.children.append(root_node)

        builder.graph.add_frame(frame)
        frames.append(frame)
    return frames
