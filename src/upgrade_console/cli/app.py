"""Typer application for upgrade-console."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from upgrade_console import __version__
from upgrade_console.cli import commands
from upgrade_console.cli.helpers import CliState, configure_logging, console, resolve_project_dir

app = typer.Typer(
    name="upgrade-console",
    help="Run application upgrade wizards, each in its own isolated process",
    add_completion=False,
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"upgrade-console {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    project_dir: Optional[Path] = typer.Option(
        None,
        "--project-dir",
        help="Application root (defaults to the nearest directory containing .upgrade-console/)",
        file_okay=False,
    ),
    debug: bool = typer.Option(False, "--debug", help="Log debug output to stderr"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Resolve the project and configure logging for every command."""
    configure_logging(debug)
    ctx.obj = CliState(project_dir=resolve_project_dir(project_dir), debug=debug)


app.command(name="check-extension-constraints")(commands.check_extension_constraints)
app.command(name="upgrade:list")(commands.list_wizards)
app.command(name="upgrade:wizard")(commands.wizard)
app.command(name="upgrade:all")(commands.upgrade_all)
app.command(name="upgrade:subprocess", hidden=True)(commands.sub_process)


def main() -> None:
    app()


__all__ = ["app", "main"]
