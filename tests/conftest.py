from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

# Register built-in wizards before any registry snapshot is taken.
import upgrade_console.upgrade.wizards  # noqa: F401
from upgrade_console.bootstrap import ApplicationContext
from upgrade_console.config import load_config
from upgrade_console.extensions.registry import ExtensionRegistry
from upgrade_console.upgrade.registry import WizardRegistry
from upgrade_console.upgrade.state import YamlWizardStateStore

from tests.upgrade_console.builders import write_yaml


@pytest.fixture(autouse=True)
def isolated_wizard_registry() -> Iterator[None]:
    """Give each test an empty wizard registry and restore it afterwards."""
    original = dict(WizardRegistry._wizards)
    WizardRegistry.clear()
    yield
    WizardRegistry._wizards.clear()
    WizardRegistry._wizards.update(original)


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    project_dir = tmp_path / "app"
    write_yaml(
        project_dir / ".upgrade-console" / "config.yaml",
        {
            "application": {"name": "MyApp", "version": "11.5.0"},
            "extensions": {"paths": ["vendor/core", "ext"], "third_party_marker": "ext"},
        },
    )
    return project_dir


@pytest.fixture()
def context(project: Path) -> ApplicationContext:
    config = load_config(project, environ={})
    return ApplicationContext(
        project_dir=project,
        config=config,
        store=YamlWizardStateStore.for_project(project),
        extensions=ExtensionRegistry.scan(project, config.extensions),
    )
