"""Initialisation of the host application context.

The worker process calls :func:`bootstrap` before dispatching any operation,
so wizards always see a fully initialised context: configuration loaded,
extensions scanned and every wizard module imported.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

from upgrade_console.config import UpgradeConsoleConfig, load_config
from upgrade_console.extensions.registry import ExtensionRegistry
from upgrade_console.upgrade.registry import load_wizard_modules
from upgrade_console.upgrade.state import WizardStateStore, YamlWizardStateStore

logger = logging.getLogger(__name__)


@dataclass
class ApplicationContext:
    """Everything a wizard may touch while it runs."""

    project_dir: Path
    config: UpgradeConsoleConfig
    store: WizardStateStore
    extensions: ExtensionRegistry = field(default_factory=ExtensionRegistry)


def bootstrap(project_dir: Path, config: UpgradeConsoleConfig | None = None) -> ApplicationContext:
    """Build the application context for *project_dir*.

    Wizard modules named in the configuration are resolved with the project
    directory on ``sys.path``, the way the host application would import
    its own code.
    """
    project_dir = project_dir.resolve()
    config = config or load_config(project_dir)

    project_path = str(project_dir)
    if config.wizards.modules and project_path not in sys.path:
        sys.path.insert(0, project_path)
    load_wizard_modules(config.wizards.modules)

    context = ApplicationContext(
        project_dir=project_dir,
        config=config,
        store=YamlWizardStateStore.for_project(project_dir),
        extensions=ExtensionRegistry.scan(project_dir, config.extensions),
    )
    logger.debug("Bootstrapped %s at %s", config.application.name, project_dir)
    return context
