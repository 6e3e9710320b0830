"""Upgrade wizard commands: upgrade:list, upgrade:wizard, upgrade:all.

All wizard work happens in worker processes; ``upgrade:subprocess`` is the
hidden entry point those workers run.
"""

from __future__ import annotations

import os
import sys
from typing import List, Optional

import typer

from upgrade_console.cli.helpers import build_orchestrator, console, fail, get_state
from upgrade_console.cli.render import render_result_line, render_results, render_wizard_list
from upgrade_console.errors import UpgradeConsoleError
from upgrade_console.upgrade.arguments import parse_namespaced_arguments, parse_wizard_arguments
from upgrade_console.upgrade.handling import serve_request
from upgrade_console.upgrade.orchestrator import UpgradeOrchestrator


def _orchestrator(ctx: typer.Context) -> UpgradeOrchestrator:
    try:
        return build_orchestrator(get_state(ctx))
    except UpgradeConsoleError as exc:
        fail(str(exc))


def list_wizards(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show each wizard's description, not only its title"
    ),
    all_wizards: bool = typer.Option(
        False, "--all", help="Also list wizards already marked as done"
    ),
) -> None:
    """List upgrade wizards.

    Examples:
        upgrade-console upgrade:list
        upgrade-console upgrade:list --all --verbose
    """
    orchestrator = _orchestrator(ctx)
    try:
        listing = orchestrator.list_wizards()
    except UpgradeConsoleError as exc:
        fail(str(exc))

    console.print("[yellow]Wizards scheduled for execution:[/yellow]")
    render_wizard_list(console, listing.scheduled, verbose)

    if all_wizards:
        console.print()
        console.print("[yellow]Wizards marked as done:[/yellow]")
        render_wizard_list(console, listing.done, verbose)


def wizard(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Identifier of the wizard to execute"),
    arguments: Optional[List[str]] = typer.Argument(
        None,
        help="Wizard arguments as key=value or identifier[key]=value, e.g. myWizard[install]=0",
    ),
    force: bool = typer.Option(
        False, "--force", help="Execute even if the wizard is marked as done"
    ),
) -> None:
    """Execute a single upgrade wizard."""
    try:
        wizard_arguments = parse_wizard_arguments(identifier, arguments or [])
    except ValueError as exc:
        fail(str(exc))

    orchestrator = _orchestrator(ctx)
    try:
        result = orchestrator.execute_wizard(identifier, wizard_arguments, force=force)
    except UpgradeConsoleError as exc:
        fail(str(exc))

    render_results(console, [result])
    if not result.succeeded:
        raise typer.Exit(1)


def upgrade_all(
    ctx: typer.Context,
    arguments: Optional[List[str]] = typer.Argument(
        None,
        help="Wizard arguments prefixed with the identifier, e.g. myWizard[install]=0; separate multiple with commas",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show a full report including all wizard output"
    ),
) -> None:
    """Execute all upgrade wizards that are scheduled for execution.

    Wizards run one at a time in registry order. The first failure stops
    the whole pass.
    """
    try:
        wizard_arguments = parse_namespaced_arguments(arguments or [])
    except ValueError as exc:
        fail(str(exc))

    orchestrator = _orchestrator(ctx)
    application = orchestrator.config.application

    console.print()
    console.print(f"[italic]Initiating {application.name} upgrade[/italic]")
    console.print()

    try:
        report = orchestrator.execute_all(
            wizard_arguments,
            on_result=lambda _wizard, result: render_result_line(console, result),
        )
    except UpgradeConsoleError as exc:
        fail(str(exc))

    if not report.succeeded:
        console.print()
        console.print("[bold red]Upgrade failed.[/bold red] Remaining wizards were not executed.")
        render_results(console, [r for r in report.results if not r.succeeded])
        raise typer.Exit(1)

    console.print()
    console.print(
        f"[bold green]Successfully upgraded {application.name} to version "
        f"{application.version or 'unknown'}[/bold green]"
    )

    if verbose:
        console.print()
        console.print("[yellow]Upgrade report:[/yellow]")
        if report.results:
            render_results(console, report.results)
        else:
            console.print("  [dim]No wizards were scheduled.[/dim]")


def sub_process(
    ctx: typer.Context,
    operation: str = typer.Argument(..., help="Worker operation name"),
) -> None:
    """Run one worker operation; request frame on stdin, response frame on stdout.

    The response goes out on a private duplicate of the stdout descriptor.
    Descriptor 1 itself is pointed at stderr before any wizard code runs, so
    output written straight to the descriptor never lands in front of the
    frame.
    """
    state = get_state(ctx)
    request = sys.stdin.buffer.read()

    sys.stdout.flush()
    stdout_fd = sys.stdout.fileno()
    response_fd = os.dup(stdout_fd)
    os.dup2(sys.stderr.fileno(), stdout_fd)

    response = serve_request(state.project_dir, operation, request)
    sys.stdout.flush()
    with os.fdopen(response_fd, "wb") as channel:
        channel.write(response)


__all__ = ["list_wizards", "wizard", "upgrade_all", "sub_process"]
