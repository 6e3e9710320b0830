"""Tests for SubprocessRunner with a mocked child process."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from upgrade_console.errors import (
    ChildCrashed,
    LaunchError,
    ProtocolError,
    UnknownIdentifierError,
)
from upgrade_console.upgrade.models import WizardExecutionResult, WizardStatus
from upgrade_console.upgrade.orchestrator import UpgradeOrchestrator
from upgrade_console.upgrade.protocol import (
    SubProcessOperation,
    decode_frame,
    encode_frame,
    make_error_response,
    make_response,
)
from upgrade_console.upgrade.runner import SubprocessRunner


def _process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    process = MagicMock()
    process.communicate.return_value = (stdout, stderr)
    process.returncode = returncode
    return process


@pytest.fixture()
def popen():
    with patch("upgrade_console.upgrade.runner.subprocess.Popen") as mock_popen:
        yield mock_popen


class TestBuildCommand:
    def test_defaults_to_current_interpreter(self, tmp_path: Path) -> None:
        runner = SubprocessRunner(tmp_path)

        assert runner.build_command(SubProcessOperation.LIST_WIZARDS) == [
            sys.executable,
            "-m",
            "upgrade_console",
            "--project-dir",
            str(tmp_path),
            "upgrade:subprocess",
            "listWizards",
        ]

    def test_debug_and_custom_interpreter(self, tmp_path: Path) -> None:
        runner = SubprocessRunner(tmp_path, python="/opt/py/bin/python", debug=True)

        command = runner.build_command(SubProcessOperation.EXECUTE_WIZARD)

        assert command[0] == "/opt/py/bin/python"
        assert command[-3:] == ["--debug", "upgrade:subprocess", "executeWizard"]


class TestRun:
    def test_success_returns_result(self, tmp_path: Path, popen: MagicMock) -> None:
        popen.return_value = _process(stdout=encode_frame(make_response({"scheduled": [], "done": []})))

        result = SubprocessRunner(tmp_path, timeout=5).run(SubProcessOperation.LIST_WIZARDS)

        assert result == {"scheduled": [], "done": []}
        process = popen.return_value
        request, = process.communicate.call_args.args
        assert decode_frame(request)["operation"] == "listWizards"
        assert process.communicate.call_args.kwargs == {"timeout": 5}
        assert popen.call_args.kwargs["cwd"] == tmp_path

    def test_request_carries_arguments(self, tmp_path: Path, popen: MagicMock) -> None:
        popen.return_value = _process(stdout=encode_frame(make_response(None)))

        SubprocessRunner(tmp_path).run(SubProcessOperation.EXECUTE_WIZARD, {"identifier": "a"})

        request, = popen.return_value.communicate.call_args.args
        assert decode_frame(request)["arguments"] == {"identifier": "a"}

    def test_undecodable_argument_reaches_the_worker(self, tmp_path: Path, popen: MagicMock) -> None:
        done = WizardExecutionResult("a", WizardStatus.DONE, messages=["ok"])
        popen.return_value = _process(stdout=encode_frame(make_response(done.to_dict())))
        orchestrator = UpgradeOrchestrator(SubprocessRunner(tmp_path))

        result = orchestrator.execute_wizard("a", {"path": "caf\udce9"})

        assert result.status is WizardStatus.DONE
        request, = popen.return_value.communicate.call_args.args
        assert decode_frame(request)["arguments"]["arguments"] == {"path": "caf\udce9"}

    def test_reported_error_is_reraised(self, tmp_path: Path, popen: MagicMock) -> None:
        error = UnknownIdentifierError("wizard", "ghost", 'No upgrade wizard found with identifier "ghost"')
        popen.return_value = _process(stdout=encode_frame(make_error_response(error)))

        with pytest.raises(UnknownIdentifierError) as exc_info:
            SubprocessRunner(tmp_path).run(SubProcessOperation.EXECUTE_WIZARD, {"identifier": "ghost"})

        assert exc_info.value.identifier == "ghost"

    def test_launch_failure(self, tmp_path: Path, popen: MagicMock) -> None:
        popen.side_effect = FileNotFoundError("no such file")

        with pytest.raises(LaunchError, match="/missing/python"):
            SubprocessRunner(tmp_path, python="/missing/python").run(SubProcessOperation.LIST_WIZARDS)

    def test_non_zero_exit_is_a_crash(self, tmp_path: Path, popen: MagicMock) -> None:
        popen.return_value = _process(stderr=b"Traceback: boom\n", returncode=1)

        with pytest.raises(ChildCrashed) as exc_info:
            SubprocessRunner(tmp_path).run(SubProcessOperation.EXECUTE_WIZARD, {"identifier": "a"})

        assert exc_info.value.returncode == 1
        assert "boom" in exc_info.value.stderr
        assert "exited with code 1" in str(exc_info.value)

    def test_crash_stderr_is_truncated(self, tmp_path: Path, popen: MagicMock) -> None:
        popen.return_value = _process(stderr=b"x" * 50_000 + b"END", returncode=139)

        with pytest.raises(ChildCrashed) as exc_info:
            SubprocessRunner(tmp_path).run(SubProcessOperation.LIST_WIZARDS)

        assert exc_info.value.stderr.endswith("END")
        assert len(exc_info.value.stderr) < 50_000

    def test_timeout_kills_child(self, tmp_path: Path, popen: MagicMock) -> None:
        process = MagicMock()
        process.communicate.side_effect = [
            subprocess.TimeoutExpired(cmd="worker", timeout=0.5),
            (b"", b"partial output"),
        ]
        process.returncode = -9
        popen.return_value = process

        with pytest.raises(ChildCrashed, match="timed out") as exc_info:
            SubprocessRunner(tmp_path, timeout=0.5).run(SubProcessOperation.LIST_WIZARDS)

        process.kill.assert_called_once_with()
        assert exc_info.value.returncode == -9
        assert exc_info.value.stderr == "partial output"

    def test_interrupt_kills_child(self, tmp_path: Path, popen: MagicMock) -> None:
        process = MagicMock()
        process.communicate.side_effect = [KeyboardInterrupt(), (b"", b"")]
        popen.return_value = process

        with pytest.raises(ChildCrashed, match="interrupted"):
            SubprocessRunner(tmp_path).run(SubProcessOperation.LIST_WIZARDS)

        process.kill.assert_called_once_with()

    def test_garbage_stdout_is_a_protocol_error(self, tmp_path: Path, popen: MagicMock) -> None:
        popen.return_value = _process(stdout=b"Warning: something printed\n")

        with pytest.raises(ProtocolError, match="Unreadable response"):
            SubprocessRunner(tmp_path).run(SubProcessOperation.LIST_WIZARDS)

    def test_empty_stdout_is_a_protocol_error(self, tmp_path: Path, popen: MagicMock) -> None:
        popen.return_value = _process(stdout=b"")

        with pytest.raises(ProtocolError):
            SubprocessRunner(tmp_path).run(SubProcessOperation.LIST_WIZARDS)


class TestChildEnvironment:
    def test_package_root_is_prepended_to_pythonpath(self, tmp_path: Path, popen: MagicMock) -> None:
        popen.return_value = _process(stdout=encode_frame(make_response(None)))

        SubprocessRunner(tmp_path, env={"PYTHONPATH": "/host/lib", "HOME": "/home/u"}).run(
            SubProcessOperation.LIST_WIZARDS
        )

        env = popen.call_args.kwargs["env"]
        package_root, existing = env["PYTHONPATH"].split(os.pathsep)
        assert (Path(package_root) / "upgrade_console" / "__init__.py").is_file()
        assert existing == "/host/lib"
        assert env["HOME"] == "/home/u"
