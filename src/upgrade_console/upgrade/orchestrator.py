"""Parent-side upgrade driver.

Every wizard operation goes through a runner (normally
:class:`~upgrade_console.upgrade.runner.SubprocessRunner`), so the
orchestrating process never runs wizard code itself. Constraint checks only
read extension manifests and run in-process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Protocol

from upgrade_console.config import UpgradeConsoleConfig
from upgrade_console.errors import (
    ConfigError,
    ProtocolError,
    SubprocessError,
    UnknownIdentifierError,
    UpgradeConsoleError,
    WizardExecutionError,
)
from upgrade_console.extensions.constraints import ConstraintCheckOutcome, match_constraints
from upgrade_console.extensions.models import Extension
from upgrade_console.extensions.registry import ExtensionRegistry

from .models import (
    Wizard,
    WizardExecutionRequest,
    WizardExecutionResult,
    WizardListing,
)
from .protocol import SubProcessOperation
from .sequence import FailurePolicy, run_sequence

logger = logging.getLogger(__name__)


class OperationRunner(Protocol):
    def run(self, operation: SubProcessOperation, arguments: dict[str, Any] | None = None) -> Any: ...


@dataclass
class UpgradeRunReport:
    """Results of one "run all" pass, in execution order."""

    results: list[WizardExecutionResult] = field(default_factory=list)
    stopped_early: bool = False

    @property
    def succeeded(self) -> bool:
        return all(result.succeeded for result in self.results)

    @property
    def failed_result(self) -> WizardExecutionResult | None:
        return next((r for r in self.results if not r.succeeded), None)


@dataclass
class ConstraintReport:
    """Aggregated constraint check over all checked extensions."""

    target_version: str
    outcomes: list[ConstraintCheckOutcome] = field(default_factory=list)
    missing_keys: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(outcome.satisfied for outcome in self.outcomes)

    @property
    def failures(self) -> list[ConstraintCheckOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.satisfied]

    @property
    def warnings(self) -> list[str]:
        return [outcome.warning for outcome in self.outcomes if outcome.warning]


class UpgradeOrchestrator:
    """Compute scheduled wizards, run them in order and check extensions."""

    def __init__(
        self,
        runner: OperationRunner,
        config: UpgradeConsoleConfig | None = None,
        extensions: ExtensionRegistry | None = None,
    ):
        self.runner = runner
        self.config = config or UpgradeConsoleConfig()
        self.extensions = extensions or ExtensionRegistry()

    def list_wizards(self) -> WizardListing:
        """Read the current wizard listing from a fresh worker."""
        payload = self.runner.run(SubProcessOperation.LIST_WIZARDS)
        try:
            return WizardListing.from_dict(payload)
        except (AttributeError, KeyError, TypeError) as exc:
            raise ProtocolError(f"Malformed wizard listing from worker: {exc}") from exc

    def execute_wizard(
        self,
        identifier: str,
        arguments: dict[str, Any] | None = None,
        force: bool = False,
    ) -> WizardExecutionResult:
        """Run exactly one wizard in a worker and return its result.

        Process-boundary failures and logical wizard failures become a
        ``failed`` result.

        Raises:
            UnknownIdentifierError: If no wizard has this identifier.
        """
        request = WizardExecutionRequest(identifier, dict(arguments or {}), force)
        try:
            payload = self.runner.run(SubProcessOperation.EXECUTE_WIZARD, request.to_dict())
            return WizardExecutionResult.from_dict(payload)
        except (SubprocessError, WizardExecutionError) as exc:
            logger.error("Wizard %s failed: %s", identifier, exc)
            return WizardExecutionResult.failed(identifier, exc.to_payload())
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            error = ProtocolError(f"Malformed wizard result from worker: {exc}")
            return WizardExecutionResult.failed(identifier, error.to_payload())

    def _pending_wizards(self, attempted: set[str]) -> Iterator[Wizard]:
        # Re-list before every step: a wizard may schedule further wizards.
        while True:
            listing = self.list_wizards()
            candidate = next(
                (w for w in listing.scheduled if w.identifier not in attempted), None
            )
            if candidate is None:
                return
            attempted.add(candidate.identifier)
            yield candidate

    def execute_all(
        self,
        arguments: dict[str, dict[str, Any]] | None = None,
        on_result: Callable[[Wizard, WizardExecutionResult], None] | None = None,
    ) -> UpgradeRunReport:
        """Run every scheduled wizard in registry order, stopping at the first failure.

        If re-listing fails after some wizards already ran, the report ends
        with a failed ``listWizards`` entry instead of raising.

        Args:
            arguments: Per-wizard arguments keyed by wizard identifier.
            on_result: Called after each wizard with its listing entry and result.

        Raises:
            UpgradeConsoleError: If the first listing fails.
        """
        arguments = arguments or {}
        attempted: set[str] = set()
        results: list[WizardExecutionResult] = []

        def _step(wizard: Wizard) -> WizardExecutionResult:
            try:
                result = self.execute_wizard(wizard.identifier, arguments.get(wizard.identifier, {}))
            except UnknownIdentifierError as exc:
                result = WizardExecutionResult.failed(wizard.identifier, exc.to_payload())
            results.append(result)
            if on_result is not None:
                on_result(wizard, result)
            return result

        try:
            sequence = run_sequence(
                self._pending_wizards(attempted),
                _step,
                FailurePolicy.FAIL_FAST,
                is_ok=lambda result: result.succeeded,
            )
        except UpgradeConsoleError as exc:
            if not results:
                raise
            logger.error("Listing wizards failed after %s: %s", results[-1].identifier, exc)
            operation = SubProcessOperation.LIST_WIZARDS.value
            results.append(WizardExecutionResult.failed(operation, exc.to_payload()))
            return UpgradeRunReport(results=results, stopped_early=True)
        return UpgradeRunReport(results=results, stopped_early=sequence.stopped_early)

    def check_extension_constraints(
        self,
        extension_keys: list[str] | None = None,
        target_version: str | None = None,
    ) -> ConstraintReport:
        """Check third-party extensions against *target_version*.

        Unknown keys are recorded in ``missing_keys`` and skipped. Every
        checked extension is evaluated even after a failure.

        Raises:
            ConfigError: If no target version is given or configured.
        """
        target = target_version or self.config.application.version
        if not target:
            raise ConfigError(
                "No target version given and application.version is not configured"
            )

        report = ConstraintReport(target_version=target)
        if extension_keys:
            candidates: list[Extension] = []
            for key in extension_keys:
                try:
                    candidates.append(self.extensions.get(key))
                except UnknownIdentifierError as exc:
                    logger.debug("%s", exc)
                    report.missing_keys.append(key)
        else:
            candidates = self.extensions.get_active()

        marker = self.config.extensions.third_party_marker
        third_party = [ext for ext in candidates if ext.is_third_party(marker)]

        sequence = run_sequence(
            third_party,
            lambda ext: match_constraints(
                ext,
                target,
                constraint_name=self.config.application.constraint,
                application_name=self.config.application.name,
            ),
            FailurePolicy.COLLECT_ALL,
            is_ok=lambda outcome: outcome.satisfied,
        )
        report.outcomes = [step.outcome for step in sequence.steps]  # type: ignore[misc]
        return report


__all__ = ["OperationRunner", "UpgradeRunReport", "ConstraintReport", "UpgradeOrchestrator"]
