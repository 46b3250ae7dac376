"""CLI entry point for reachviz."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from reachviz import __version__
from reachviz.dumps import list_dumps, load_dump
from reachviz.machine.snapshot import SnapshotError, load_snapshot
from reachviz.models import DumpData
from reachviz.service import dump_state
from reachviz.sink import DEFAULT_DUMP_DIR, DirectoryDumpSink, DumpCounter, DumpError


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose logging.")
@click.version_option(version=__version__)
def main(verbose: bool) -> None:
    """Build and browse reachability graphs of suspended interpreter memory."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s %(levelname)s: %(message)s",
    )


@main.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--dump-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_DUMP_DIR,
    envvar="REACHVIZ_DUMP_DIR",
    show_default=True,
    help="Directory the tree and data dumps are written to.",
)
@click.option(
    "-f", "--format", "fmt",
    type=click.Choice(["summary", "md", "json"], case_sensitive=False),
    default="summary",
    help="What to print after dumping (default: summary).",
)
def dump(snapshot: Path, dump_dir: Path, fmt: str) -> None:
    """Traverse a machine SNAPSHOT and write both graph encodings."""
    try:
        machine = load_snapshot(snapshot)
        result = dump_state(machine, DirectoryDumpSink(dump_dir), DumpCounter())
    except (SnapshotError, DumpError) as exc:
        raise click.ClickException(str(exc)) from exc

    if fmt == "json":
        click.echo(result.data.model_dump_json(indent=2))
    elif fmt == "md":
        click.echo(_markdown(result.data, snapshot.name))
    else:
        click.echo(f"Tree dump written to {result.tree_path}")
        click.echo(f"Data dump written to {result.data_path}")
        click.echo(
            f"{len(result.data.nodes)} nodes, {len(result.data.edges)} edges, "
            f"{len(result.data.frames)} frames, {result.data.error_count} errors"
        )


@main.command(name="list")
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path), envvar="REACHVIZ_ROOT")
def list_command(root: Path) -> None:
    """List dump files under ROOT with their sizes."""
    for f in list_dumps(root):
        click.echo(f"{f.size:>10}  {f.filename}")


@main.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path), envvar="REACHVIZ_ROOT")
@click.argument("filename")
@click.option(
    "-f", "--format", "fmt",
    type=click.Choice(["md", "json", "pdf"], case_sensitive=False),
    default="md",
    help="Output format (default: md).",
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file path. Defaults to stdout for md/json, or dump.pdf for pdf.",
)
def show(root: Path, filename: str, fmt: str, output: Path | None) -> None:
    """Render the flat dump FILENAME stored under ROOT."""
    try:
        data = load_dump(root, filename)
    except (ValueError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc

    if fmt == "pdf":
        _output_pdf(data, filename, output)
    elif fmt == "json":
        _emit(json.dumps(data.model_dump(), indent=2), output)
    else:
        _emit(_markdown(data, filename), output)


def _markdown(data: DumpData, name: str) -> str:
    from reachviz.render.markdown import render_markdown
    return render_markdown(data, title=f"Reachability dump: {name}")


def _output_pdf(data: DumpData, name: str, output: Path | None) -> None:
    from reachviz.render.pdf import render_pdf
    dest = output or Path("dump.pdf")
    try:
        render_pdf(data, dest, title=f"Reachability dump: {name}")
    except (ImportError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"PDF report written to {dest}")


def _emit(text: str, output: Path | None) -> None:
    if output:
        output.write_text(text)
        click.echo(f"Report written to {output}")
    else:
        click.echo(text)


if __name__ == "__main__":
    main()
