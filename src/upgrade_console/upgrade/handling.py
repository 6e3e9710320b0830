"""Worker-side operations, executed inside a fully bootstrapped child process.

The parent never imports wizard code paths that mutate state; it asks the
worker through :class:`~upgrade_console.upgrade.runner.SubprocessRunner`,
which lands in :func:`serve_request` below.
"""

from __future__ import annotations

import io
import logging
from contextlib import redirect_stdout
from pathlib import Path
from typing import Any, Callable

from upgrade_console.bootstrap import ApplicationContext, bootstrap
from upgrade_console.errors import ProtocolError, UpgradeConsoleError, WizardExecutionError

from .models import WizardExecutionRequest, WizardExecutionResult, WizardStatus
from .protocol import (
    SubProcessOperation,
    decode_frame,
    encode_frame,
    make_error_response,
    make_response,
    parse_request,
)
from .registry import WizardRegistry

logger = logging.getLogger(__name__)


class UpgradeHandling:
    """Wizard operations against a bootstrapped application context."""

    def __init__(self, context: ApplicationContext):
        self.context = context

    def list_wizards(self) -> dict[str, Any]:
        return WizardRegistry.list_wizards(self.context.store).to_dict()

    def execute_wizard(self, request: WizardExecutionRequest) -> dict[str, Any]:
        """Run one wizard and persist its done flag on success.

        Unknown identifiers raise. Exceptions other than
        :class:`WizardExecutionError` are not caught here; they take the
        worker down and surface in the parent as a crash.
        """
        identifier = request.identifier
        wizard = WizardRegistry.get(identifier)
        store = self.context.store

        if not request.force and store.is_done(identifier):
            logger.info("Wizard %s is already done, skipping", identifier)
            return WizardExecutionResult(
                identifier,
                WizardStatus.SKIPPED,
                messages=[f'Upgrade wizard "{identifier}" was skipped because it is marked as done.'],
            ).to_dict()

        captured = io.StringIO()
        messages: list[str] = []
        try:
            # Printed wizard output becomes result messages.
            with redirect_stdout(captured):
                if not wizard.is_necessary(self.context):
                    success = True
                    messages.append(
                        f'Upgrade wizard "{identifier}" had nothing to do and was marked as done.'
                    )
                else:
                    logger.info("Executing wizard %s", identifier)
                    output = wizard.execute(self.context, dict(request.arguments))
                    success = output.success
                    messages.extend(output.messages)
        except WizardExecutionError as exc:
            if exc.identifier is None:
                exc.identifier = identifier
            return WizardExecutionResult.failed(
                identifier, exc.to_payload(), messages + _captured_lines(captured)
            ).to_dict()

        messages.extend(_captured_lines(captured))
        if not success:
            error = WizardExecutionError(f'Upgrade wizard "{identifier}" failed', identifier)
            return WizardExecutionResult.failed(identifier, error.to_payload(), messages).to_dict()

        store.mark_done(identifier)
        return WizardExecutionResult(identifier, WizardStatus.DONE, messages=messages).to_dict()


def _captured_lines(buffer: io.StringIO) -> list[str]:
    return [line for line in buffer.getvalue().splitlines() if line.strip()]


def _handle_list_wizards(handling: UpgradeHandling, arguments: dict[str, Any]) -> Any:
    return handling.list_wizards()


def _handle_execute_wizard(handling: UpgradeHandling, arguments: dict[str, Any]) -> Any:
    try:
        request = WizardExecutionRequest.from_dict(arguments)
    except (KeyError, ValueError) as exc:
        raise ProtocolError(f"Malformed executeWizard arguments: {exc}") from exc
    return handling.execute_wizard(request)


OPERATION_HANDLERS: dict[SubProcessOperation, Callable[[UpgradeHandling, dict[str, Any]], Any]] = {
    SubProcessOperation.LIST_WIZARDS: _handle_list_wizards,
    SubProcessOperation.EXECUTE_WIZARD: _handle_execute_wizard,
}


def serve_request(
    project_dir: Path,
    operation_name: str,
    request: bytes,
    context_factory: Callable[[Path], ApplicationContext] = bootstrap,
) -> bytes:
    """Handle one framed request and return the framed response.

    Errors from this package are reported inside a failure envelope. Any
    other exception propagates so the worker exits non-zero.
    """
    try:
        operation = SubProcessOperation.parse(operation_name)
        arguments = parse_request(decode_frame(request), operation)
        handling = UpgradeHandling(context_factory(project_dir))
        result = OPERATION_HANDLERS[operation](handling, arguments)
        return encode_frame(make_response(result))
    except UpgradeConsoleError as exc:
        logger.debug("Worker operation %s failed: %s", operation_name, exc)
        return encode_frame(make_error_response(exc))


__all__ = ["UpgradeHandling", "OPERATION_HANDLERS", "serve_request"]
