"""Run a sequence of steps under an explicit failure policy.

Wizard passes stop at the first failure because later wizards may depend on
earlier ones. Constraint checks keep going so every incompatible extension
is reported in one run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Callable, Generic, Iterable, TypeVar

from upgrade_console.errors import UpgradeConsoleError

T = TypeVar("T")
R = TypeVar("R")


class FailurePolicy(StrEnum):
    FAIL_FAST = "fail_fast"
    COLLECT_ALL = "collect_all"


@dataclass(frozen=True)
class StepRecord(Generic[T, R]):
    item: T
    outcome: R | UpgradeConsoleError
    ok: bool


@dataclass
class SequenceOutcome(Generic[T, R]):
    steps: list[StepRecord[T, R]] = field(default_factory=list)
    stopped_early: bool = False

    @property
    def failed(self) -> list[StepRecord[T, R]]:
        return [step for step in self.steps if not step.ok]

    @property
    def succeeded(self) -> bool:
        return not self.failed

    @property
    def outcomes(self) -> list[R | UpgradeConsoleError]:
        return [step.outcome for step in self.steps]


def run_sequence(
    items: Iterable[T],
    step: Callable[[T], R],
    policy: FailurePolicy,
    *,
    is_ok: Callable[[R], bool] = bool,
) -> SequenceOutcome[T, R]:
    """Apply *step* to each item in order.

    A step fails when ``is_ok(outcome)`` is false or when it raises an
    :class:`UpgradeConsoleError`; other exceptions propagate. *items* is
    consumed lazily, so under ``FAIL_FAST`` nothing after the failing item
    is ever pulled from it.
    """
    outcome: SequenceOutcome[T, R] = SequenceOutcome()
    for item in items:
        try:
            result: R | UpgradeConsoleError = step(item)
            ok = is_ok(result)  # type: ignore[arg-type]
        except UpgradeConsoleError as exc:
            result, ok = exc, False
        outcome.steps.append(StepRecord(item, result, ok))
        if not ok and policy is FailurePolicy.FAIL_FAST:
            outcome.stopped_early = True
            break
    return outcome


__all__ = ["FailurePolicy", "StepRecord", "SequenceOutcome", "run_sequence"]
