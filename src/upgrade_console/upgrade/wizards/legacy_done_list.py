"""Wizard: import done flags from the legacy ``done.json`` list.

Older installations remembered finished wizards in
``.upgrade-console/done.json``, either as a JSON list of identifiers or as
an object mapping identifiers to booleans. This wizard copies those flags
into the state store and retires the old file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from upgrade_console.config import config_dir
from upgrade_console.errors import WizardExecutionError

from ..base import UpgradeWizard
from ..models import WizardOutput
from ..registry import WizardRegistry

if TYPE_CHECKING:
    from upgrade_console.bootstrap import ApplicationContext

logger = logging.getLogger(__name__)

LEGACY_FILENAME = "done.json"
RETIRED_SUFFIX = ".migrated"


def legacy_done_path(project_dir: Path) -> Path:
    return config_dir(project_dir) / LEGACY_FILENAME


def read_legacy_identifiers(path: Path) -> list[str]:
    """Return identifiers flagged as done in a legacy file.

    Raises:
        WizardExecutionError: If the file is not valid JSON or has an
            unexpected shape.
    """
    try:
        payload = json.loads(path.read_text(encoding="utf-8-sig"))
    except (OSError, json.JSONDecodeError) as exc:
        raise WizardExecutionError(f"Cannot read legacy wizard list {path.name}: {exc}") from exc

    if isinstance(payload, list):
        return [str(item) for item in payload if isinstance(item, str) and item.strip()]
    if isinstance(payload, dict):
        return [str(key) for key, value in payload.items() if value is True]
    raise WizardExecutionError(
        f"Legacy wizard list {path.name} must be a JSON list or object, got {type(payload).__name__}"
    )


@WizardRegistry.register
class ImportLegacyDoneListWizard(UpgradeWizard):
    """Copy legacy done flags into the state store."""

    identifier = "importLegacyDoneList"
    title = "Import done flags from the legacy done.json list"
    description = (
        "Reads .upgrade-console/done.json written by older releases, marks every "
        "listed wizard as done and renames the file to done.json.migrated. "
        "Pass keep=1 to leave the legacy file in place."
    )

    def is_necessary(self, context: "ApplicationContext") -> bool:
        return legacy_done_path(context.project_dir).exists()

    def execute(self, context: "ApplicationContext", arguments: dict[str, Any]) -> WizardOutput:
        path = legacy_done_path(context.project_dir)
        identifiers = read_legacy_identifiers(path)

        output = WizardOutput(success=True)
        already_done = 0
        for identifier in identifiers:
            if context.store.is_done(identifier):
                already_done += 1
                continue
            context.store.mark_done(identifier)
            output.messages.append(f"Marked {identifier} as done")

        if already_done:
            output.messages.append(f"{already_done} wizard(s) were already marked as done")

        if str(arguments.get("keep", "0")).strip().lower() in {"1", "true", "yes"}:
            output.messages.append(f"Kept {path.name}")
            return output

        retired = path.with_name(path.name + RETIRED_SUFFIX)
        path.replace(retired)
        logger.info("Retired legacy wizard list %s", path)
        output.messages.append(f"Moved {path.name} -> {retired.name}")
        return output
