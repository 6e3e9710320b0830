"""check-extension-constraints command."""

from __future__ import annotations

from typing import List, Optional

import typer
from rich.markup import escape

from upgrade_console.cli.helpers import build_orchestrator, console, fail, get_state
from upgrade_console.cli.render import render_constraint_report
from upgrade_console.errors import UpgradeConsoleError


def check_extension_constraints(
    ctx: typer.Context,
    extension_keys: Optional[List[str]] = typer.Argument(
        None, help="Extension keys to check. Separate multiple keys with commas."
    ),
    app_version: Optional[str] = typer.Option(
        None,
        "--app-version",
        "--typo3-version",
        help="Version to check against. Defaults to application.version from the config.",
    ),
) -> None:
    """Check the application version constraints of third party extensions.

    Most useful before switching to a new application version: every third
    party extension's declared range is checked against the given version.
    The check relies on those declarations being correct.
    """
    keys = [
        key.strip()
        for chunk in extension_keys or []
        for key in chunk.split(",")
        if key.strip()
    ]

    try:
        orchestrator = build_orchestrator(get_state(ctx))
        report = orchestrator.check_extension_constraints(keys, app_version)
    except UpgradeConsoleError as exc:
        fail(str(exc))

    for key in report.missing_keys:
        console.print(f'[yellow]Warning:[/yellow] Extension "{escape(key)}" is not found in the system')

    render_constraint_report(console, report, orchestrator.config.application.name)
    if not report.passed:
        raise typer.Exit(1)


__all__ = ["check_extension_constraints"]
