"""Version constraint checks for installed extensions.

Two constraint syntaxes are understood:

- PEP 440 specifier sets, e.g. ``>=10.4,<=11.5.99``
- the legacy range syntax ``LOWER-UPPER``, e.g. ``10.4.0-11.5.99``, where an
  empty bound or ``0.0.0`` leaves that side of the range open

Evaluation never raises. Constraints that cannot be parsed are treated as
satisfied and reported through :attr:`ConstraintCheckOutcome.warning`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from upgrade_console.errors import ConstraintViolation

from .models import Extension

_OPERATOR_CHARS = re.compile(r"[<>=!~]")
_UNBOUNDED = Version("0.0.0")


@dataclass(frozen=True)
class ConstraintCheckOutcome:
    """Result of checking one extension against a target version."""

    extension_key: str
    satisfied: bool
    message: str = ""
    warning: str = ""

    def raise_for_status(self) -> None:
        """Raise :class:`ConstraintViolation` when not satisfied."""
        if not self.satisfied:
            raise ConstraintViolation(self)


@dataclass(frozen=True)
class VersionRange:
    """A parsed version constraint."""

    lower: Version | None = None
    upper: Version | None = None
    specifier: SpecifierSet | None = None

    def contains(self, version: Version) -> bool:
        if self.specifier is not None:
            return self.specifier.contains(version, prereleases=True)
        if self.lower is not None and version < self.lower:
            return False
        if self.upper is not None and version > self.upper:
            return False
        return True

    def describe(self) -> str:
        if self.specifier is not None:
            return str(self.specifier)
        lower = str(self.lower) if self.lower is not None else "*"
        upper = str(self.upper) if self.upper is not None else "*"
        return f"{lower} - {upper}"


def _parse_bound(text: str) -> Version | None:
    text = text.strip()
    if not text or text == "*":
        return None
    version = Version(text)
    return None if version == _UNBOUNDED else version


def parse_version_range(constraint: str) -> VersionRange | None:
    """Parse *constraint* into a :class:`VersionRange`.

    Returns None when the constraint cannot be parsed.
    """
    text = constraint.strip()
    if not text or text == "*":
        return VersionRange()
    try:
        if _OPERATOR_CHARS.search(text):
            return VersionRange(specifier=SpecifierSet(text))
        lower, separator, upper = text.partition("-")
        if not separator:
            # A single version is a minimum.
            return VersionRange(lower=_parse_bound(lower))
        return VersionRange(lower=_parse_bound(lower), upper=_parse_bound(upper))
    except (InvalidSpecifier, InvalidVersion):
        return None


def match_constraints(
    extension: Extension,
    target_version: str,
    *,
    constraint_name: str = "application",
    application_name: str | None = None,
) -> ConstraintCheckOutcome:
    """Check the declared *constraint_name* range of *extension*.

    Args:
        extension: The extension whose manifest constraints are checked.
        target_version: Host version the extension must be compatible with.
        constraint_name: Key of the host dependency inside the manifest.
        application_name: Display name for messages (defaults to the key).

    Returns:
        A satisfied outcome with an empty message, or an unsatisfied one
        naming the extension, the declared range and the target version.
    """
    name = application_name or constraint_name
    declared = extension.constraint_for(constraint_name)
    if declared is None:
        return ConstraintCheckOutcome(extension.key, satisfied=True)

    version_range = parse_version_range(declared)
    if version_range is None:
        return ConstraintCheckOutcome(
            extension.key,
            satisfied=True,
            warning=(
                f'Extension "{extension.key}" declares an unparsable {name} '
                f'constraint "{declared}"; assuming it is compatible'
            ),
        )

    try:
        target = Version(target_version)
    except InvalidVersion:
        return ConstraintCheckOutcome(
            extension.key,
            satisfied=True,
            warning=f'Cannot compare "{extension.key}" against unparsable {name} version "{target_version}"',
        )

    if version_range.contains(target):
        return ConstraintCheckOutcome(extension.key, satisfied=True)
    return ConstraintCheckOutcome(
        extension.key,
        satisfied=False,
        message=(
            f'"{extension.key}" requires {name} versions {version_range.describe()}. '
            f'It is not compatible with {name} version "{target_version}"'
        ),
    )


__all__ = [
    "ConstraintCheckOutcome",
    "VersionRange",
    "parse_version_range",
    "match_constraints",
]
