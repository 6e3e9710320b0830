"""Project-scoped configuration in .upgrade-console/config.yaml."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from upgrade_console.errors import ConfigError

CONFIG_DIRNAME = ".upgrade-console"
CONFIG_FILENAME = "config.yaml"

TIMEOUT_ENV = "UPGRADE_CONSOLE_TIMEOUT"
PYTHON_ENV = "UPGRADE_CONSOLE_PYTHON"


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


@dataclass(slots=True)
class ApplicationSettings:
    """The host application being upgraded."""

    name: str = "application"
    version: str | None = None
    constraint: str = "application"

    @classmethod
    def from_dict(cls, data: Any) -> "ApplicationSettings":
        if not isinstance(data, dict):
            return cls()
        return cls(
            name=_str_or_none(data.get("name")) or "application",
            version=_str_or_none(data.get("version")),
            constraint=_str_or_none(data.get("constraint")) or "application",
        )


@dataclass(slots=True)
class ExtensionSettings:
    """Where extension manifests live and which of them are third-party."""

    paths: list[str] = field(default_factory=lambda: ["ext"])
    third_party_marker: str = "ext"

    @classmethod
    def from_dict(cls, data: Any) -> "ExtensionSettings":
        if not isinstance(data, dict):
            return cls()
        paths = _str_list(data.get("paths")) if "paths" in data else ["ext"]
        return cls(
            paths=paths,
            third_party_marker=_str_or_none(data.get("third_party_marker")) or "ext",
        )


@dataclass(slots=True)
class WizardSettings:
    """Modules imported inside the worker to register host wizards."""

    modules: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "WizardSettings":
        if not isinstance(data, dict):
            return cls()
        return cls(modules=_str_list(data.get("modules")))


@dataclass(slots=True)
class SubprocessSettings:
    """How the worker process is launched."""

    timeout: float | None = None
    python: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "SubprocessSettings":
        if not isinstance(data, dict):
            return cls()
        return cls(
            timeout=_parse_timeout(data.get("timeout")),
            python=_str_or_none(data.get("python")),
        )


def _parse_timeout(value: Any) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"subprocess.timeout must be a number of seconds, got {value!r}") from exc
    if timeout <= 0:
        raise ConfigError(f"subprocess.timeout must be positive, got {value!r}")
    return timeout


@dataclass(slots=True)
class UpgradeConsoleConfig:
    """Configuration stored inside .upgrade-console/config.yaml."""

    application: ApplicationSettings = field(default_factory=ApplicationSettings)
    extensions: ExtensionSettings = field(default_factory=ExtensionSettings)
    wizards: WizardSettings = field(default_factory=WizardSettings)
    subprocess: SubprocessSettings = field(default_factory=SubprocessSettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "UpgradeConsoleConfig":
        if not isinstance(data, dict):
            return cls()
        return cls(
            application=ApplicationSettings.from_dict(data.get("application")),
            extensions=ExtensionSettings.from_dict(data.get("extensions")),
            wizards=WizardSettings.from_dict(data.get("wizards")),
            subprocess=SubprocessSettings.from_dict(data.get("subprocess")),
        )

    def apply_environment(self, environ: dict[str, str] | None = None) -> "UpgradeConsoleConfig":
        """Apply ``UPGRADE_CONSOLE_*`` environment overrides in place."""
        env = os.environ if environ is None else environ
        if TIMEOUT_ENV in env:
            self.subprocess.timeout = _parse_timeout(env[TIMEOUT_ENV])
        if python := _str_or_none(env.get(PYTHON_ENV)):
            self.subprocess.python = python
        return self


def config_dir(project_dir: Path) -> Path:
    return project_dir / CONFIG_DIRNAME


def config_path(project_dir: Path) -> Path:
    return config_dir(project_dir) / CONFIG_FILENAME


def locate_project_root(start: Path | None = None) -> Path | None:
    """Return the nearest ancestor of *start* holding a .upgrade-console/ dir."""
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / CONFIG_DIRNAME).is_dir():
            return candidate
    return None


def load_config(project_dir: Path, environ: dict[str, str] | None = None) -> UpgradeConsoleConfig:
    """Load configuration for *project_dir*.

    A missing file yields the defaults. Environment overrides are applied on
    top of the file contents.

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    path = config_path(project_dir)
    payload: Any = {}
    if path.exists():
        yaml = YAML(typ="safe")
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = yaml.load(handle) or {}
        except (OSError, YAMLError) as exc:
            raise ConfigError(f"Failed to parse {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")
    return UpgradeConsoleConfig.from_dict(payload).apply_environment(environ)


__all__ = [
    "ApplicationSettings",
    "ExtensionSettings",
    "WizardSettings",
    "SubprocessSettings",
    "UpgradeConsoleConfig",
    "config_dir",
    "config_path",
    "locate_project_root",
    "load_config",
]
