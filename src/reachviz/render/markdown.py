"""Render a flat dump as a Markdown report."""

from __future__ import annotations

from reachviz.dumps import DumpIndex
from reachviz.models import DumpData
from reachviz.render._helpers import MAX_DEPTH, key_label, sorted_messages, walk_frame
from reachviz.utils import fold, hex_bytes


def render_markdown(data: DumpData, title: str = "Reachability dump", max_depth: int = MAX_DEPTH) -> str:
    """Produce a Markdown report: summary, then one nested list per frame.

    A shared node is expanded under the first parent that reaches it and
    shown as ``(see above)`` afterwards; a node already on the current
    path is shown as ``(loop)``.
    """
    index = DumpIndex.from_dump(data)
    sections: list[str] = [f"# {title}\n"]

    # ── Summary ──────────────────────────────────────────────────────────
    reachable = index.reachable_allocs()
    sections.append("\n".join([
        f"- **Nodes**: {len(data.nodes)}",
        f"- **Edges**: {len(data.edges)}",
        f"- **Frames**: {len(data.frames)}",
        f"- **Errors**: {data.error_count}",
        f"- **Allocations reachable**: {len(reachable)}/{len(index.allocs)}",
    ]) + "\n")

    unreachable = [a for a in index.allocs if a not in reachable]
    if unreachable:
        sections.append(
            "Unreachable allocations: " + ", ".join(f"`{a}`" for a in unreachable) + "\n"
        )

    # ── Frames ───────────────────────────────────────────────────────────
    for i, frame in enumerate(data.frames):
        sections.append(f"## Frame {i}: {frame.name or '(anonymous)'}\n")
        if not frame.nodes:
            sections.append("_No addressable locals._\n")
            continue
        lines: list[str] = []
        for row in walk_frame(index, frame.nodes, max_depth):
            indent = "  " * row.depth
            if row.loop:
                lines.append(f"{indent}- (loop) {key_label(row.key)}")
                continue
            if row.value is None:
                lines.append(f"{indent}- (missing) {key_label(row.key)}")
                continue
            if row.seen:
                lines.append(f"{indent}- (see above) {key_label(row.key)}")
                continue
            lines.append(f"{indent}- {key_label(row.key)}")
            if row.truncated:
                lines.append(f"{indent}  - …")
                continue
            if row.value.alloc_bytes:
                lines.append(f"{indent}  - bytes: `{fold(hex_bytes(row.value.alloc_bytes))}`")
            for severity, message in sorted_messages(row.value):
                lines.append(f"{indent}  - {severity}: {fold(message)}")
        sections.append("\n".join(lines) + "\n")

    return "\n".join(sections)
