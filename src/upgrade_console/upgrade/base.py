"""Base class for upgrade wizards."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

from .models import WizardOutput

if TYPE_CHECKING:
    from upgrade_console.bootstrap import ApplicationContext


class UpgradeWizard(ABC):
    """A single upgrade step of the host application.

    Subclasses set ``identifier`` (unique and stable across releases),
    ``title`` and optionally ``description``, and register themselves with
    :meth:`WizardRegistry.register <upgrade_console.upgrade.registry.WizardRegistry.register>`.

    Wizards always run inside the worker process. They may mutate global
    state or crash; neither affects the orchestrating process. A logical
    failure is reported by returning ``WizardOutput(success=False)`` or by
    raising :class:`~upgrade_console.errors.WizardExecutionError`.
    """

    identifier: ClassVar[str] = ""
    title: ClassVar[str] = ""
    description: ClassVar[str] = ""

    def is_necessary(self, context: "ApplicationContext") -> bool:
        """Return False when there is nothing to migrate.

        A wizard that is not necessary is marked done without running.
        """
        return True

    @abstractmethod
    def execute(self, context: "ApplicationContext", arguments: dict[str, Any]) -> WizardOutput:
        """Perform the upgrade step and report what was done."""
        ...
