"""Wizard registry for the upgrade system."""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Dict, List, Type

from upgrade_console.errors import UnknownIdentifierError

from .models import Wizard, WizardListing

if TYPE_CHECKING:
    from .base import UpgradeWizard
    from .state import WizardStateStore

logger = logging.getLogger(__name__)


class WizardRegistry:
    """Registry of all available wizards, in declaration order."""

    _wizards: Dict[str, Type["UpgradeWizard"]] = {}

    @classmethod
    def register(cls, wizard_class: Type["UpgradeWizard"]) -> Type["UpgradeWizard"]:
        """Decorator to register a wizard class.

        Args:
            wizard_class: The wizard class to register

        Returns:
            The same wizard class (for decorator use)

        Raises:
            ValueError: If identifier is not set or already taken by
                another class
        """
        identifier = wizard_class.identifier
        if not identifier:
            raise ValueError(f"Wizard {wizard_class.__name__} must have an identifier")
        existing = cls._wizards.get(identifier)
        if existing is not None and existing is not wizard_class:
            raise ValueError(
                f"Wizard identifier {identifier!r} is already registered by {existing.__name__}"
            )
        cls._wizards[identifier] = wizard_class
        return wizard_class

    @classmethod
    def get_all(cls) -> List["UpgradeWizard"]:
        """Get all wizards as instances, in registration order."""
        return [wizard_class() for wizard_class in cls._wizards.values()]

    @classmethod
    def get(cls, identifier: str) -> "UpgradeWizard":
        """Get a specific wizard by identifier.

        Raises:
            UnknownIdentifierError: If no wizard has this identifier
        """
        wizard_class = cls._wizards.get(identifier)
        if wizard_class is None:
            raise UnknownIdentifierError(
                "wizard", identifier, f'No upgrade wizard found with identifier "{identifier}"'
            )
        return wizard_class()

    @classmethod
    def list_wizards(cls, store: "WizardStateStore") -> WizardListing:
        """Split registered wizards into scheduled and done.

        Both lists keep registration order, so repeated listings against an
        unchanged store are identical.
        """
        scheduled: list[Wizard] = []
        done: list[Wizard] = []
        for wizard in cls.get_all():
            is_done = store.is_done(wizard.identifier)
            entry = Wizard(
                identifier=wizard.identifier,
                title=wizard.title or wizard.identifier,
                description=wizard.description,
                done=is_done,
            )
            (done if is_done else scheduled).append(entry)
        return WizardListing(scheduled=scheduled, done=done)

    @classmethod
    def clear(cls) -> None:
        """Clear all registered wizards (for testing)."""
        cls._wizards.clear()


def load_wizard_modules(module_names: list[str]) -> None:
    """Import host modules so their ``@WizardRegistry.register`` calls run.

    The built-in wizards are always loaded first. Import errors propagate:
    a host whose wizards cannot be loaded is not a fully initialized
    application.
    """
    from upgrade_console.upgrade import wizards  # noqa: F401

    for name in module_names:
        logger.debug("Importing wizard module %s", name)
        importlib.import_module(name)
