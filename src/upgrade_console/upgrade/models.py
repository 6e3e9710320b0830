"""Wizard data types shared by the orchestrator and the worker process.

Every type here converts to and from plain dicts so it can travel through
the wire codec in :mod:`upgrade_console.upgrade.protocol`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class WizardStatus(StrEnum):
    """Terminal states of one wizard invocation."""

    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class Wizard:
    """A registered wizard and its persisted completion flag."""

    identifier: str
    title: str
    description: str = ""
    done: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "title": self.title,
            "description": self.description,
            "done": self.done,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Wizard:
        return cls(
            identifier=data["identifier"],
            title=data.get("title") or data["identifier"],
            description=data.get("description", ""),
            done=bool(data.get("done", False)),
        )


@dataclass(frozen=True)
class WizardListing:
    """Wizards split by status, each list in registry declaration order."""

    scheduled: list[Wizard] = field(default_factory=list)
    done: list[Wizard] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scheduled": [w.to_dict() for w in self.scheduled],
            "done": [w.to_dict() for w in self.done],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WizardListing:
        return cls(
            scheduled=[Wizard.from_dict(w) for w in data.get("scheduled", [])],
            done=[Wizard.from_dict(w) for w in data.get("done", [])],
        )


@dataclass(frozen=True)
class WizardExecutionRequest:
    """Arguments for running one wizard inside the worker."""

    identifier: str
    arguments: dict[str, Any] = field(default_factory=dict)
    force: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "arguments": dict(self.arguments),
            "force": self.force,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WizardExecutionRequest:
        arguments = data.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise ValueError("Wizard arguments must be a mapping")
        return cls(
            identifier=str(data["identifier"]),
            arguments=arguments,
            force=bool(data.get("force", False)),
        )


@dataclass(frozen=True)
class WizardExecutionResult:
    """Outcome of one wizard invocation. Immutable once produced."""

    identifier: str
    status: WizardStatus
    messages: list[str] = field(default_factory=list)
    error: dict[str, Any] | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is not WizardStatus.FAILED

    @property
    def message(self) -> str:
        return "\n".join(self.messages)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "identifier": self.identifier,
            "status": self.status.value,
            "messages": list(self.messages),
        }
        if self.error is not None:
            d["error"] = dict(self.error)
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WizardExecutionResult:
        return cls(
            identifier=data["identifier"],
            status=WizardStatus(data["status"]),
            messages=[str(m) for m in data.get("messages", [])],
            error=data.get("error"),
        )

    @classmethod
    def failed(
        cls, identifier: str, error: dict[str, Any], messages: list[str] | None = None
    ) -> WizardExecutionResult:
        return cls(identifier, WizardStatus.FAILED, messages=list(messages or []), error=error)


@dataclass
class WizardOutput:
    """What a wizard's ``execute`` returns."""

    success: bool = True
    messages: list[str] = field(default_factory=list)


__all__ = [
    "WizardStatus",
    "Wizard",
    "WizardListing",
    "WizardExecutionRequest",
    "WizardExecutionResult",
    "WizardOutput",
]
