"""Shared state and helpers for CLI commands."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from upgrade_console.config import UpgradeConsoleConfig, load_config, locate_project_root
from upgrade_console.extensions.registry import ExtensionRegistry
from upgrade_console.upgrade.orchestrator import UpgradeOrchestrator
from upgrade_console.upgrade.runner import SubprocessRunner

console = Console(soft_wrap=True)


@dataclass
class CliState:
    """Options given to the top-level callback."""

    project_dir: Path
    debug: bool = False


def configure_logging(debug: bool) -> None:
    """Log to stderr; stdout is reserved for command output and worker frames."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def resolve_project_dir(project_dir: Path | None) -> Path:
    if project_dir is not None:
        return project_dir.resolve()
    return locate_project_root() or Path.cwd().resolve()


def get_state(ctx: typer.Context) -> CliState:
    state = ctx.find_root().obj
    if isinstance(state, CliState):
        return state
    return CliState(project_dir=resolve_project_dir(None))


def build_orchestrator(state: CliState, config: UpgradeConsoleConfig | None = None) -> UpgradeOrchestrator:
    """Wire an orchestrator for the project selected on the command line."""
    config = config or load_config(state.project_dir)
    runner = SubprocessRunner(
        state.project_dir,
        python=config.subprocess.python,
        timeout=config.subprocess.timeout,
        debug=state.debug,
    )
    extensions = ExtensionRegistry.scan(state.project_dir, config.extensions)
    return UpgradeOrchestrator(runner, config=config, extensions=extensions)


def fail(message: str) -> NoReturn:
    """Print an error line and exit non-zero."""
    console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


__all__ = [
    "console",
    "CliState",
    "configure_logging",
    "resolve_project_dir",
    "get_state",
    "build_orchestrator",
    "fail",
]
