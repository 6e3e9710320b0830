"""Extension metadata as read from ``extension.yaml`` manifests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any


@dataclass(frozen=True)
class Extension:
    """An installed extension of the host application. Read-only."""

    key: str
    path: Path
    version: str | None = None
    title: str | None = None
    active: bool = True
    constraints: dict[str, str] = field(default_factory=dict)
    root: Path | None = None

    def constraint_for(self, name: str) -> str | None:
        """Return the declared version range for dependency *name*, if any."""
        value = self.constraints.get(name)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def is_third_party(self, marker: str) -> bool:
        """Return True when the extension lives below the *marker* directory.

        The marker is matched as a contiguous run of path components, so
        ``ext`` matches ``/srv/app/ext/news`` but not ``/srv/app/next/news``.
        When ``root`` is set only the components below it are considered.
        """
        marker_parts = PurePath(marker).parts
        if not marker_parts:
            return False
        parts = self.path.parts
        if self.root is not None and self.path.is_relative_to(self.root):
            parts = self.path.relative_to(self.root).parts
        width = len(marker_parts)
        return any(
            parts[index : index + width] == marker_parts
            for index in range(len(parts) - width + 1)
        )

    @classmethod
    def from_manifest(
        cls, path: Path, data: dict[str, Any], root: Path | None = None
    ) -> "Extension":
        constraints = data.get("constraints")
        if not isinstance(constraints, dict):
            constraints = {}
        version = data.get("version")
        title = data.get("title")
        return cls(
            key=str(data.get("key") or path.name),
            path=path,
            version=str(version) if version is not None else None,
            title=str(title) if title is not None else None,
            active=bool(data.get("active", True)),
            root=root,
            constraints={
                str(name): str(value)
                for name, value in constraints.items()
                if value is not None
            },
        )
