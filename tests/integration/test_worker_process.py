"""End-to-end tests that spawn real worker processes.

Each test lays out a host project with its own wizard module, then drives
the orchestrator exactly as the CLI does.
"""

from __future__ import annotations

import os
import textwrap
from pathlib import Path

import pytest
from typer.testing import CliRunner

from upgrade_console.cli.app import app
from upgrade_console.cli.helpers import CliState, build_orchestrator
from upgrade_console.upgrade.models import WizardStatus
from upgrade_console.upgrade.state import YamlWizardStateStore

from tests.upgrade_console.builders import write_yaml

pytestmark = pytest.mark.integration

HOST_WIZARDS = '''
import os
import subprocess
import sys
import time

from upgrade_console.errors import WizardExecutionError
from upgrade_console.upgrade import UpgradeWizard, WizardOutput, WizardRegistry


@WizardRegistry.register
class First(UpgradeWizard):
    identifier = "first"
    title = "First step"

    def execute(self, context, arguments):
        print("first ran with", sorted(arguments.items()))
        os.environ["HOST_UPGRADE_TOUCHED"] = "1"
        return WizardOutput(messages=["first finished"])


@WizardRegistry.register
class Second(UpgradeWizard):
    identifier = "second"
    title = "Second step"

    def execute(self, context, arguments):
        mode = arguments.get("mode", "ok")
        if mode == "exit":
            os._exit(3)
        if mode == "raise":
            raise RuntimeError("unexpected host failure")
        if mode == "refuse":
            raise WizardExecutionError("database is read-only")
        if mode == "sleep":
            time.sleep(30)
        if mode == "shell":
            subprocess.run([sys.executable, "-c", "print('tool output')"], check=True)
            os.write(1, b"raw descriptor write\\n")
            sys.__stdout__.write("interpreter stdout\\n")
            sys.__stdout__.flush()
        return WizardOutput(messages=["second finished"])
'''


@pytest.fixture()
def host_project(tmp_path: Path) -> Path:
    project_dir = tmp_path / "host"
    project_dir.mkdir()
    (project_dir / "host_wizards.py").write_text(textwrap.dedent(HOST_WIZARDS), encoding="utf-8")
    write_yaml(
        project_dir / ".upgrade-console" / "config.yaml",
        {
            "application": {"name": "Host", "version": "2.0.0"},
            "wizards": {"modules": ["host_wizards"]},
            "subprocess": {"timeout": 20},
        },
    )
    return project_dir


def _orchestrator(project_dir: Path):
    return build_orchestrator(CliState(project_dir=project_dir))


def test_listing_comes_from_bootstrapped_worker(host_project: Path) -> None:
    listing = _orchestrator(host_project).list_wizards()

    assert [w.identifier for w in listing.scheduled] == ["importLegacyDoneList", "first", "second"]
    assert listing.done == []


def test_execute_all_marks_every_wizard_done(host_project: Path) -> None:
    report = _orchestrator(host_project).execute_all({"first": {"batch": "5"}})

    assert report.succeeded is True
    assert [r.identifier for r in report.results] == ["importLegacyDoneList", "first", "second"]
    first = report.results[1]
    assert first.messages == ["first finished", "first ran with [('batch', '5')]"]
    store = YamlWizardStateStore.for_project(host_project)
    assert sorted(store.done_identifiers()) == ["first", "importLegacyDoneList", "second"]
    assert _orchestrator(host_project).list_wizards().scheduled == []


def test_wizard_side_effects_stay_in_the_worker(host_project: Path) -> None:
    result = _orchestrator(host_project).execute_wizard("first")

    assert result.status is WizardStatus.DONE
    assert "HOST_UPGRADE_TOUCHED" not in os.environ


def test_hard_exit_is_reported_as_crash(host_project: Path) -> None:
    result = _orchestrator(host_project).execute_wizard("second", {"mode": "exit"})

    assert result.status is WizardStatus.FAILED
    assert result.error["type"] == "ChildCrashed"
    assert result.error["details"]["returncode"] == 3
    assert YamlWizardStateStore.for_project(host_project).is_done("second") is False


def test_uncaught_exception_is_reported_with_traceback(host_project: Path) -> None:
    result = _orchestrator(host_project).execute_wizard("second", {"mode": "raise"})

    assert result.status is WizardStatus.FAILED
    assert result.error["type"] == "ChildCrashed"
    assert "unexpected host failure" in result.error["details"]["stderr"]


def test_logical_failure_is_not_a_crash(host_project: Path) -> None:
    result = _orchestrator(host_project).execute_wizard("second", {"mode": "refuse"})

    assert result.status is WizardStatus.FAILED
    assert result.error["type"] == "WizardExecutionError"
    assert result.error["message"] == "database is read-only"


def test_timeout_kills_the_worker(host_project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UPGRADE_CONSOLE_TIMEOUT", "2")

    result = _orchestrator(host_project).execute_wizard("second", {"mode": "sleep"})

    assert result.status is WizardStatus.FAILED
    assert "timed out" in result.error["message"]


def test_upgrade_all_command_stops_at_crash(host_project: Path) -> None:
    result = CliRunner().invoke(
        app, ["--project-dir", str(host_project), "upgrade:all", "second[mode]=exit"]
    )

    assert result.exit_code == 1
    assert 'Successfully executed upgrade wizard "first"' in result.output
    assert "Upgrade failed." in result.output
    store = YamlWizardStateStore.for_project(host_project)
    assert store.is_done("first") is True
    assert store.is_done("second") is False


def test_output_written_to_the_stdout_descriptor_is_not_in_the_frame(host_project: Path) -> None:
    result = _orchestrator(host_project).execute_wizard("second", {"mode": "shell"})

    assert result.status is WizardStatus.DONE, result.error
    assert result.messages == ["second finished"]
    assert YamlWizardStateStore.for_project(host_project).is_done("second") is True
