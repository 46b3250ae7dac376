"""Render a flat dump as a PDF report.

Uses fpdf2 drawing primitives with the built-in core fonts.
Install via: pip install reachviz[pdf]
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

from reachviz.dumps import DumpIndex
from reachviz.models import DumpData
from reachviz.render._helpers import (
    MAX_DEPTH,
    key_label,
    latin1,
    sorted_messages,
    walk_frame,
)
from reachviz.utils import fold, hex_bytes


# ── Color palette ──────────────────────────────────────────────────────────

_SEV_COLORS: dict[str, tuple[tuple[int, int, int], tuple[int, int, int]]] = {
    # severity -> (text_rgb, bg_rgb)
    "ERROR": ((185, 28, 28), (254, 226, 226)),
    "INFO":  ((75, 85, 99), (229, 231, 235)),
}

_BODY = (30, 30, 30)
_MUTED = (100, 100, 100)
_DIVIDER = (200, 200, 200)

_INDENT_MM = 5
_MAX_INDENT_LEVELS = 20   # keeps deep chains on the page


def render_pdf(data: DumpData, output_path: Path, title: str = "Reachability dump", max_depth: int = MAX_DEPTH) -> None:
    """Render the dump to a PDF file."""
    try:
        from fpdf import FPDF
        from fpdf.enums import XPos, YPos
    except ImportError:
        raise ImportError(
            "PDF output requires 'fpdf2'. "
            "Install it with: pip install reachviz[pdf]"
        )

    pdf = _DumpReportPDF(data, title, max_depth, FPDF, XPos, YPos)
    pdf.render()
    pdf.output(str(output_path))


class _DumpReportPDF:
    """Builds a PDF from a flat dump using fpdf2 drawing primitives."""

    def __init__(self, data: DumpData, title: str, max_depth: int, fpdf_cls, xpos_enum, ypos_enum):
        self._data = data
        self._index = DumpIndex.from_dump(data)
        self._title = title
        self._max_depth = max_depth
        self._XPos = xpos_enum
        self._YPos = ypos_enum
        self._date = date.today().isoformat()

        self._pdf = fpdf_cls()
        self._pdf.set_auto_page_break(auto=True, margin=20)
        self._pdf.set_margins(15, 20, 15)
        self._content_w = 180  # 210 - 15 - 15

    def output(self, path: str) -> None:
        self._pdf.output(path)

    # ── Drawing helpers ────────────────────────────────────────────────

    def _safe(self, text: str) -> str:
        return latin1(str(text))

    def _line(self, text: str, indent: float = 0, size: float = 8.5, style: str = "",
              color: tuple[int, int, int] = _BODY) -> None:
        self._pdf.set_font("Helvetica", style, size)
        self._pdf.set_text_color(*color)
        self._pdf.set_x(15 + indent)
        self._pdf.multi_cell(
            self._content_w - indent, 4.2, self._safe(text),
            new_x=self._XPos.LMARGIN, new_y=self._YPos.NEXT,
        )

    def _divider(self) -> None:
        y = self._pdf.get_y() + 2
        self._pdf.set_draw_color(*_DIVIDER)
        self._pdf.line(15, y, 195, y)
        self._pdf.set_y(y + 4)

    def _heading(self, text: str) -> None:
        self._pdf.ln(6)
        self._pdf.set_font("Helvetica", "B", 13)
        self._pdf.set_text_color(*_BODY)
        self._pdf.cell(self._content_w, 7, self._safe(text), new_x=self._XPos.LMARGIN, new_y=self._YPos.NEXT)
        self._pdf.ln(1)

    def _kv(self, key: str, value: str) -> None:
        self._pdf.set_font("Helvetica", "B", 9)
        self._pdf.set_text_color(*_BODY)
        kw = self._pdf.get_string_width(key + ": ") + 2
        self._pdf.cell(kw, 4.5, self._safe(key + ":"), new_x=self._XPos.RIGHT, new_y=self._YPos.TOP)
        self._pdf.set_font("Helvetica", "", 9)
        self._pdf.multi_cell(self._content_w - kw, 4.5, self._safe(value), new_x=self._XPos.LMARGIN, new_y=self._YPos.NEXT)

    def _message(self, severity: str, message: str, indent: float) -> None:
        """A severity pill followed by the message text."""
        text_c, bg_c = _SEV_COLORS.get(severity, _SEV_COLORS["INFO"])
        self._pdf.set_font("Helvetica", "B", 6.5)
        w = self._pdf.get_string_width(severity) + 4
        x = 15 + indent
        y = self._pdf.get_y()
        self._pdf.set_fill_color(*bg_c)
        self._pdf.set_draw_color(*bg_c)
        self._pdf.rect(x, y + 0.2, w, 3.8, style="FD")
        self._pdf.set_text_color(*text_c)
        self._pdf.set_xy(x, y)
        self._pdf.cell(w, 4.2, severity, align="C", new_x=self._XPos.RIGHT, new_y=self._YPos.TOP)
        self._line(fold(message), indent=indent + w + 2, color=text_c if severity == "ERROR" else _BODY)

    # ── Main render ────────────────────────────────────────────────────

    def render(self) -> None:
        self._pdf.add_page()
        self._render_title()
        self._render_summary()
        for i, frame in enumerate(self._data.frames):
            self._render_frame(i, frame.name, frame.nodes)

    def _render_title(self) -> None:
        self._pdf.set_font("Helvetica", "B", 18)
        self._pdf.set_text_color(*_BODY)
        self._pdf.cell(self._content_w, 9, self._safe(self._title), new_x=self._XPos.LMARGIN, new_y=self._YPos.NEXT)
        self._pdf.set_font("Helvetica", "", 9)
        self._pdf.set_text_color(*_MUTED)
        self._pdf.cell(self._content_w, 5, self._date, new_x=self._XPos.LMARGIN, new_y=self._YPos.NEXT)
        self._divider()

    def _render_summary(self) -> None:
        reachable = self._index.reachable_allocs()
        allocs = self._index.allocs
        self._kv("Nodes", str(len(self._data.nodes)))
        self._kv("Edges", str(len(self._data.edges)))
        self._kv("Frames", str(len(self._data.frames)))
        self._kv("Errors", str(self._data.error_count))
        self._kv("Allocations reachable", f"{len(reachable)}/{len(allocs)}")
        unreachable = [str(a) for a in allocs if a not in reachable]
        if unreachable:
            self._kv("Unreachable allocations", ", ".join(unreachable))

    def _render_frame(self, i: int, name: str, roots) -> None:
        self._heading(f"Frame {i}: {name or '(anonymous)'}")
        if not roots:
            self._line("No addressable locals.", color=_MUTED, style="I")
            return
        for row in walk_frame(self._index, roots, self._max_depth):
            indent = min(row.depth, _MAX_INDENT_LEVELS) * _INDENT_MM
            label = key_label(row.key, code=False)
            if row.loop:
                self._line(f"(loop) {label}", indent, color=_MUTED)
                continue
            if row.value is None:
                self._line(f"(missing) {label}", indent, color=_MUTED)
                continue
            if row.seen:
                self._line(f"(see above) {label}", indent, color=_MUTED)
                continue
            self._line(label, indent, style="B")
            if row.truncated:
                self._line("...", indent + _INDENT_MM, color=_MUTED)
                continue
            if row.value.alloc_bytes:
                self._line(f"bytes: {fold(hex_bytes(row.value.alloc_bytes))}", indent + _INDENT_MM,
                           size=7.5, color=_MUTED)
            for severity, message in sorted_messages(row.value):
                self._message(severity, message, indent + _INDENT_MM)
