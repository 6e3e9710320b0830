"""Run worker operations in a separate, fully bootstrapped Python process.

Each call spawns a fresh ``python -m upgrade_console upgrade:subprocess``
child, writes one request frame to its stdin and reads one response frame
from its stdout. Wizard crashes, interpreter-level failures and global
state mutations stay inside the child.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Any

from upgrade_console.errors import ChildCrashed, LaunchError, ProtocolError

from .protocol import SubProcessOperation, decode_frame, encode_frame, make_request, unwrap_response

logger = logging.getLogger(__name__)

SUBPROCESS_COMMAND = "upgrade:subprocess"

# Cap on stderr carried inside ChildCrashed.
_STDERR_LIMIT = 20_000


def _tail(text: str) -> str:
    return text if len(text) <= _STDERR_LIMIT else "..." + text[-_STDERR_LIMIT:]


class SubprocessRunner:
    """Synchronous request/response calls into a worker process."""

    def __init__(
        self,
        project_dir: Path,
        *,
        python: str | None = None,
        timeout: float | None = None,
        debug: bool = False,
        env: dict[str, str] | None = None,
    ):
        self.project_dir = project_dir
        self.python = python or sys.executable
        self.timeout = timeout
        self.debug = debug
        self.env = env

    def build_command(self, operation: SubProcessOperation) -> list[str]:
        command = [self.python, "-m", "upgrade_console", "--project-dir", str(self.project_dir)]
        if self.debug:
            command.append("--debug")
        command.extend([SUBPROCESS_COMMAND, operation.value])
        return command

    def run(self, operation: SubProcessOperation, arguments: dict[str, Any] | None = None) -> Any:
        """Execute *operation* in a child process and return its result.

        Blocks until the child exits or the timeout elapses.

        Raises:
            LaunchError: If the child process cannot be started.
            ChildCrashed: If the child exits non-zero, times out or is
                interrupted before answering.
            ProtocolError: If the request cannot be encoded or the response
                cannot be decoded.
            UnknownIdentifierError, WizardExecutionError: When the child
                reports one of these in a failure envelope.
        """
        request = encode_frame(make_request(operation, arguments))
        command = self.build_command(operation)
        logger.debug("Launching worker: %s", " ".join(command))

        try:
            process = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self.project_dir,
                env=self._child_env(),
            )
        except OSError as exc:
            raise LaunchError(f"Could not start worker process {self.python}: {exc}") from exc

        try:
            stdout, stderr = process.communicate(request, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            _, stderr = process.communicate()
            logger.warning("Worker %s timed out after %ss", operation.value, self.timeout)
            raise ChildCrashed(
                f"Worker operation {operation.value} timed out after {self.timeout} seconds",
                returncode=process.returncode,
                stderr=_tail(stderr.decode("utf-8", errors="replace")),
            ) from None
        except KeyboardInterrupt:
            process.kill()
            process.communicate()
            logger.warning("Worker %s interrupted", operation.value)
            raise ChildCrashed(
                f"Worker operation {operation.value} was interrupted",
                returncode=process.returncode,
            ) from None

        stderr_text = stderr.decode("utf-8", errors="replace")
        logger.debug("Worker %s exited with %s", operation.value, process.returncode)
        if process.returncode != 0:
            raise ChildCrashed(
                f"Worker operation {operation.value} exited with code {process.returncode}",
                returncode=process.returncode,
                stderr=_tail(stderr_text),
            )

        try:
            response = decode_frame(stdout)
        except ProtocolError as exc:
            raise ProtocolError(f"Unreadable response from worker {operation.value}: {exc}") from exc
        return unwrap_response(response)

    def _child_env(self) -> dict[str, str]:
        env = dict(os.environ if self.env is None else self.env)
        # The child must import the same upgrade_console as the parent.
        package_root = str(Path(__file__).resolve().parents[2])
        existing = env.get("PYTHONPATH")
        env["PYTHONPATH"] = package_root if not existing else os.pathsep.join([package_root, existing])
        return env


__all__ = ["SUBPROCESS_COMMAND", "SubprocessRunner"]
