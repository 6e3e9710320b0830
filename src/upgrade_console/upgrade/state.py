"""Persisted "wizard is done" flags.

The orchestration core only talks to :class:`WizardStateStore`. The default
backend keeps the flags in ``.upgrade-console/state.yaml``::

    wizards:
      migrateUserSettings:
        done: true
        done_at: '2026-01-05T10:12:00+00:00'
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from upgrade_console.config import config_dir
from upgrade_console.errors import UpgradeConsoleError

STATE_FILENAME = "state.yaml"


class StateStoreError(UpgradeConsoleError):
    """Raised when the state file is unreadable."""


@runtime_checkable
class WizardStateStore(Protocol):
    """Key-value contract for wizard completion flags."""

    def is_done(self, identifier: str) -> bool: ...

    def mark_done(self, identifier: str) -> None: ...


class YamlWizardStateStore:
    """Wizard flags stored in a YAML file, written atomically."""

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def for_project(cls, project_dir: Path) -> "YamlWizardStateStore":
        return cls(config_dir(project_dir) / STATE_FILENAME)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        yaml = YAML()
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = yaml.load(handle) or {}
        except (OSError, YAMLError) as exc:
            raise StateStoreError(f"Failed to read wizard state {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise StateStoreError(f"Wizard state {self.path} must contain a mapping")
        return payload

    def _entries(self, payload: dict[str, Any]) -> dict[str, Any]:
        wizards = payload.get("wizards")
        return wizards if isinstance(wizards, dict) else {}

    def done_identifiers(self) -> list[str]:
        return [
            identifier
            for identifier, entry in self._entries(self._load()).items()
            if isinstance(entry, dict) and entry.get("done")
        ]

    def is_done(self, identifier: str) -> bool:
        return identifier in self.done_identifiers()

    def mark_done(self, identifier: str) -> None:
        """Set the done flag for *identifier*, preserving other entries."""
        payload = self._load()
        wizards = payload.get("wizards")
        if not isinstance(wizards, dict):
            wizards = {}
            payload["wizards"] = wizards
        wizards[identifier] = {
            "done": True,
            "done_at": datetime.now(timezone.utc).isoformat(),
        }
        self._write(payload)

    def _write(self, payload: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        yaml = YAML()
        # Temp file in the same directory keeps os.replace on one filesystem.
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{STATE_FILENAME}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                yaml.dump(payload, handle)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


__all__ = ["STATE_FILENAME", "StateStoreError", "WizardStateStore", "YamlWizardStateStore"]
