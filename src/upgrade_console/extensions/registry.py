"""Discovery of installed extensions from manifest files."""

from __future__ import annotations

import logging
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from upgrade_console.config import ExtensionSettings
from upgrade_console.errors import UnknownIdentifierError

from .models import Extension

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "extension.yaml"


class ExtensionRegistry:
    """Installed extensions, keyed by extension key.

    Extensions are discovered by scanning each configured directory for
    ``*/extension.yaml``. Later paths win when two manifests declare the
    same key.
    """

    def __init__(self, extensions: list[Extension] | None = None):
        self._extensions: dict[str, Extension] = {}
        for extension in extensions or []:
            self._extensions[extension.key] = extension

    @classmethod
    def scan(cls, project_dir: Path, settings: ExtensionSettings) -> "ExtensionRegistry":
        """Build a registry from the manifests below *project_dir*."""
        found: list[Extension] = []
        for relative in settings.paths:
            base = project_dir / relative
            if not base.is_dir():
                logger.debug("Extension path %s does not exist, skipping", base)
                continue
            for manifest in sorted(base.glob(f"*/{MANIFEST_FILENAME}")):
                extension = _load_manifest(manifest, project_dir)
                if extension is not None:
                    found.append(extension)
        return cls(found)

    def get(self, key: str) -> Extension:
        """Return the extension registered under *key*.

        Raises:
            UnknownIdentifierError: If no such extension is installed.
        """
        try:
            return self._extensions[key]
        except KeyError:
            raise UnknownIdentifierError(
                "extension", key, f'Extension "{key}" is not found in the system'
            ) from None

    def get_all(self) -> list[Extension]:
        return sorted(self._extensions.values(), key=lambda ext: ext.key)

    def get_active(self) -> list[Extension]:
        return [ext for ext in self.get_all() if ext.active]

    def __contains__(self, key: object) -> bool:
        return key in self._extensions

    def __len__(self) -> int:
        return len(self._extensions)


def _load_manifest(manifest: Path, root: Path) -> Extension | None:
    yaml = YAML(typ="safe")
    try:
        with manifest.open("r", encoding="utf-8") as handle:
            data = yaml.load(handle) or {}
    except (OSError, YAMLError) as exc:
        logger.warning("Ignoring unreadable extension manifest %s: %s", manifest, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring extension manifest %s: not a mapping", manifest)
        return None
    return Extension.from_manifest(manifest.parent, data, root)
