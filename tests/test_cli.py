"""Tests for the reachviz command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from reachviz.cli import main

EXAMPLE = Path(__file__).parent.parent / "examples" / "linked_ring" / "snapshot.yaml"


class TestDump:
    def test_summary(self, tmp_path: Path):
        result = CliRunner().invoke(main, ["dump", str(EXAMPLE), "--dump-dir", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "Tree dump written to" in result.output
        assert "13 nodes, 8 edges, 2 frames, 2 errors" in result.output
        names = sorted(p.name for p in tmp_path.iterdir())
        assert names[0].startswith("data_") and names[1].startswith("tree_")

    def test_dump_dir_from_env(self, tmp_path: Path):
        runner = CliRunner(env={"REACHVIZ_DUMP_DIR": str(tmp_path / "env-dumps")})
        result = runner.invoke(main, ["dump", str(EXAMPLE)])
        assert result.exit_code == 0, result.output
        assert len(list((tmp_path / "env-dumps").iterdir())) == 2

    def test_json_output(self, tmp_path: Path):
        result = CliRunner().invoke(main, ["dump", str(EXAMPLE), "--dump-dir", str(tmp_path), "-f", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert len(data["nodes"]) == 13

    def test_markdown_output(self, tmp_path: Path):
        result = CliRunner().invoke(main, ["dump", str(EXAMPLE), "--dump-dir", str(tmp_path), "-f", "md"])
        assert result.exit_code == 0, result.output
        assert "# Reachability dump: snapshot.yaml" in result.output
        assert "(loop)" in result.output

    def test_invalid_snapshot(self, tmp_path: Path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("types: {T: {kind: nope}}")
        result = CliRunner().invoke(main, ["dump", str(bad), "--dump-dir", str(tmp_path / "d")])
        assert result.exit_code == 1
        assert "invalid snapshot" in result.output


class TestListAndShow:
    def _dump(self, root: Path) -> str:
        CliRunner().invoke(main, ["dump", str(EXAMPLE), "--dump-dir", str(root)])
        return next(p.name for p in root.iterdir() if p.name.startswith("data_"))

    def test_list(self, tmp_path: Path):
        name = self._dump(tmp_path)
        result = CliRunner().invoke(main, ["list", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert name in result.output
        assert len(result.output.strip().splitlines()) == 2

    def test_show_markdown(self, tmp_path: Path):
        name = self._dump(tmp_path)
        result = CliRunner().invoke(main, ["show", str(tmp_path), name])
        assert result.exit_code == 0, result.output
        assert "## Frame 0: main" in result.output
        assert "- **Allocations reachable**: 3/3" in result.output

    def test_show_json(self, tmp_path: Path):
        name = self._dump(tmp_path)
        result = CliRunner().invoke(main, ["show", str(tmp_path), name, "-f", "json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["error_count"] == 2

    def test_show_rejects_escape(self, tmp_path: Path):
        result = CliRunner().invoke(main, ["show", str(tmp_path), "../etc/passwd"])
        assert result.exit_code == 1
        assert "invalid dump filename" in result.output

    def test_show_missing(self, tmp_path: Path):
        result = CliRunner().invoke(main, ["show", str(tmp_path), "nope.json"])
        assert result.exit_code == 1

    def test_show_markdown_to_file(self, tmp_path: Path):
        name = self._dump(tmp_path)
        out = tmp_path / "report.md"
        result = CliRunner().invoke(main, ["show", str(tmp_path), name, "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert "Report written to" in result.output
        assert out.read_text().startswith("# Reachability dump: ")

    def test_show_pdf(self, tmp_path: Path):
        pytest.importorskip("fpdf")
        name = self._dump(tmp_path)
        out = tmp_path / "report.pdf"
        result = CliRunner().invoke(main, ["show", str(tmp_path), name, "-f", "pdf", "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert out.read_bytes().startswith(b"%PDF")
