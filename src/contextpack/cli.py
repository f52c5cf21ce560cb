"""Command line for inspecting assembled context, graphs and rankings."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from .assembler import ContextAssembler
from .config import ContextSettings, load_settings
from .errors import ConfigError
from .graph import build_reverse_dependency_graph
from .records import EditorContext, FileHandle
from .scanner import scan_workspace

APP_HELP = "Assemble bounded project context documents."
DEFAULT_CONFIG_NAME = "contextpack.yaml"

app = typer.Typer(help=APP_HELP)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_settings(config: Optional[str]) -> ContextSettings:
    """Load settings, falling back to defaults when no default file exists."""
    try:
        if config is None:
            return load_settings(Path(DEFAULT_CONFIG_NAME), missing_ok=True)
        return load_settings(Path(config))
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


def _resolve_root(root: Path) -> Path:
    resolved = root.resolve()
    if not resolved.is_dir():
        raise typer.BadParameter(f"Workspace root is not a directory: {root}")
    return resolved


def _editor_for(root: Path, active: Optional[str], request: Optional[str]) -> EditorContext | None:
    if not active:
        return None
    active_path = Path(active)
    if not active_path.is_absolute():
        active_path = root / active_path
    return EditorContext(file=FileHandle(active_path), instruction=request)


@app.command()
def build(
    root: Path = typer.Argument(Path("."), help="Workspace root to assemble context for."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML settings file.",
    ),
    active: Optional[str] = typer.Option(
        None,
        "--active",
        "-a",
        help="Active file, absolute or relative to the root.",
    ),
    request: Optional[str] = typer.Option(
        None,
        "--request",
        "-r",
        help="User request named in the document header.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the document to this file instead of stdout.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Assemble the context document for a workspace."""
    _configure_logging(verbose)
    settings = _load_settings(config)
    workspace = _resolve_root(root)

    assembler = ContextAssembler(settings)
    result = assembler.assemble(
        workspace,
        editor=_editor_for(workspace, active, request),
        user_request=request,
    )
    if output is not None:
        output.write_text(result.text, encoding="utf-8")
        typer.echo(
            f"Wrote {len(result.text)} chars covering {len(result.files)} file(s) to {output}"
        )
    else:
        typer.echo(result.text)
    if result.skipped_files:
        typer.echo(f"Skipped {result.skipped_files} file(s) due to the size limit.", err=True)


@app.command()
def graph(
    root: Path = typer.Argument(Path("."), help="Workspace root to scan."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML settings file.",
    ),
    reverse: bool = typer.Option(
        False,
        "--reverse",
        help="Print importers per file instead of imports.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Print the project import graph as JSON."""
    _configure_logging(verbose)
    settings = _load_settings(config)
    workspace = _resolve_root(root)

    files = scan_workspace(workspace, settings.scan)
    dependencies = ContextAssembler(settings).dependency_graph(workspace, files)
    if reverse:
        dependencies = build_reverse_dependency_graph(dependencies)
    typer.echo(json.dumps(dependencies, indent=2, sort_keys=True))


@app.command()
def rank(
    root: Path = typer.Argument(Path("."), help="Workspace root to scan."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML settings file.",
    ),
    active: Optional[str] = typer.Option(
        None,
        "--active",
        "-a",
        help="Active file, absolute or relative to the root.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Print the ranked files with their scores and matched signals."""
    _configure_logging(verbose)
    settings = _load_settings(config)
    workspace = _resolve_root(root)

    files = scan_workspace(workspace, settings.scan)
    if not files:
        typer.echo("No candidate files found.")
        return
    editor = _editor_for(workspace, active, None)
    ranked = ContextAssembler(settings).rank(workspace, files, editor=editor)
    for entry in ranked:
        signals = ", ".join(entry.signals) if entry.signals else "-"
        typer.echo(f"{entry.score:8.1f}  {entry.path}  [{signals}]")


if __name__ == "__main__":
    app()
