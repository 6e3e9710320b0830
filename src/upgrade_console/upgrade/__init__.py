"""Upgrade wizard system: registry, state, wire protocol and orchestration."""

from __future__ import annotations

from .base import UpgradeWizard
from .models import (
    Wizard,
    WizardExecutionRequest,
    WizardExecutionResult,
    WizardListing,
    WizardOutput,
    WizardStatus,
)
from .registry import WizardRegistry
from .state import WizardStateStore, YamlWizardStateStore

__all__ = [
    "UpgradeWizard",
    "Wizard",
    "WizardExecutionRequest",
    "WizardExecutionResult",
    "WizardListing",
    "WizardOutput",
    "WizardStatus",
    "WizardRegistry",
    "WizardStateStore",
    "YamlWizardStateStore",
]
