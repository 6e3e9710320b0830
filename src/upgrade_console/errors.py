"""Exception hierarchy for upgrade orchestration.

Errors that may cross the process boundary between the orchestrator and the
wizard worker serialise to a ``{"type", "message", "details"}`` payload and
are rebuilt by name on the receiving side.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .extensions.constraints import ConstraintCheckOutcome


class UpgradeConsoleError(Exception):
    """Base exception for upgrade console errors."""

    def details(self) -> dict[str, Any]:
        return {}

    def to_payload(self) -> dict[str, Any]:
        """Serialise this error for transport to the other process."""
        return {
            "type": type(self).__name__,
            "message": str(self),
            "details": self.details(),
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "UpgradeConsoleError":
        return cls(str(payload.get("message", "")))


class ConfigError(UpgradeConsoleError):
    """Raised when the project configuration is missing or invalid."""


class UnknownIdentifierError(UpgradeConsoleError):
    """A requested extension, wizard or operation does not exist."""

    def __init__(self, kind: str, identifier: str, message: str | None = None):
        self.kind = kind
        self.identifier = identifier
        super().__init__(message or f'{kind.capitalize()} "{identifier}" does not exist')

    def details(self) -> dict[str, Any]:
        return {"kind": self.kind, "identifier": self.identifier}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "UnknownIdentifierError":
        details = payload.get("details") or {}
        return cls(
            str(details.get("kind", "identifier")),
            str(details.get("identifier", "")),
            message=str(payload.get("message", "")) or None,
        )


class ConstraintViolation(UpgradeConsoleError):
    """An extension's declared version range excludes the target version."""

    def __init__(self, outcome: "ConstraintCheckOutcome"):
        self.outcome = outcome
        super().__init__(outcome.message)


class WizardExecutionError(UpgradeConsoleError):
    """A wizard signalled a logical failure (as opposed to crashing)."""

    def __init__(self, message: str, identifier: str | None = None):
        self.identifier = identifier
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {"identifier": self.identifier} if self.identifier else {}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "WizardExecutionError":
        details = payload.get("details") or {}
        return cls(str(payload.get("message", "")), identifier=details.get("identifier"))


class SubprocessError(UpgradeConsoleError):
    """Base class for failures at the worker process boundary."""


class LaunchError(SubprocessError):
    """The worker process could not be started."""


class ChildCrashed(SubprocessError):
    """The worker exited non-zero, was killed, or never produced a response."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {"returncode": self.returncode, "stderr": self.stderr}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ChildCrashed":
        details = payload.get("details") or {}
        return cls(
            str(payload.get("message", "")),
            returncode=details.get("returncode"),
            stderr=str(details.get("stderr") or ""),
        )


class ProtocolError(SubprocessError):
    """A frame or envelope could not be encoded or decoded."""


# Errors the worker is allowed to report back inside a failure envelope.
TRANSPORTABLE_ERRORS: dict[str, type[UpgradeConsoleError]] = {
    cls.__name__: cls
    for cls in (
        UpgradeConsoleError,
        ConfigError,
        UnknownIdentifierError,
        WizardExecutionError,
        ChildCrashed,
        ProtocolError,
    )
}


def error_from_payload(payload: Any) -> UpgradeConsoleError:
    """Rebuild an exception from a transported error payload.

    Unknown or malformed payloads become :class:`ChildCrashed` so the caller
    always receives a subprocess-boundary failure it knows how to treat.
    """
    if not isinstance(payload, dict):
        return ChildCrashed(f"Worker reported an unreadable error: {payload!r}")
    error_cls = TRANSPORTABLE_ERRORS.get(str(payload.get("type")))
    if error_cls is None:
        return ChildCrashed(
            f"Worker reported unexpected error {payload.get('type')}: {payload.get('message', '')}"
        )
    return error_cls.from_payload(payload)


__all__ = [
    "UpgradeConsoleError",
    "ConfigError",
    "UnknownIdentifierError",
    "ConstraintViolation",
    "WizardExecutionError",
    "SubprocessError",
    "LaunchError",
    "ChildCrashed",
    "ProtocolError",
    "TRANSPORTABLE_ERRORS",
    "error_from_payload",
]
