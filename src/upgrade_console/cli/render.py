"""Rendering of wizard listings, wizard results and constraint reports."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from upgrade_console.upgrade.models import Wizard, WizardExecutionResult, WizardStatus
from upgrade_console.upgrade.orchestrator import ConstraintReport


def render_wizard_list(console: Console, wizards: list[Wizard], verbose: bool = False) -> None:
    if not wizards:
        console.print("  [dim]None[/dim]")
        return

    table = Table(show_lines=verbose, header_style="bold cyan")
    table.add_column("Identifier", style="bright_white", no_wrap=True)
    table.add_column("Title")
    if verbose:
        table.add_column("Description", style="dim")

    for wizard in wizards:
        row = [escape(wizard.identifier), escape(wizard.title)]
        if verbose:
            row.append(escape(wizard.description))
        table.add_row(*row)
    console.print(table)


def render_result_line(console: Console, result: WizardExecutionResult) -> None:
    identifier = escape(result.identifier)
    if result.status is WizardStatus.DONE:
        console.print(f'  [green]✓[/green] Successfully executed upgrade wizard "{identifier}"')
    elif result.status is WizardStatus.SKIPPED:
        console.print(f'  [dim]○[/dim] Skipped upgrade wizard "{identifier}" (already done)')
    else:
        reason = (result.error or {}).get("message") or "unknown error"
        console.print(f'  [red]✗[/red] Upgrade wizard "{identifier}" failed: {escape(str(reason))}')


def render_results(console: Console, results: list[WizardExecutionResult]) -> None:
    """Render each result with its messages and, for crashes, worker stderr."""
    for result in results:
        render_result_line(console, result)
        for message in result.messages:
            console.print(f"    [dim]{escape(message)}[/dim]")
        details = (result.error or {}).get("details") or {}
        stderr = details.get("stderr")
        if stderr:
            console.print("    [red]Worker output:[/red]")
            for line in str(stderr).rstrip().splitlines():
                console.print(f"    [dim]{escape(line)}[/dim]")


def render_constraint_report(console: Console, report: ConstraintReport, application_name: str) -> None:
    for warning in report.warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")
    for outcome in report.failures:
        console.print(f"[red]Error:[/red] {escape(outcome.message)}")
    if report.passed:
        console.print(
            f"[green]All third party extensions claim to be compatible with "
            f"{escape(application_name)} version {escape(report.target_version)}[/green]"
        )
