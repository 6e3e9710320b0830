"""Parsing of wizard arguments given on the command line.

Aggregate runs take arguments namespaced by wizard identifier, e.g.
``compatibilityExtension[install]=0``. A single wizard run also accepts the
flat form ``install=0``.
"""

from __future__ import annotations

import re

_NAMESPACED = re.compile(r"^(?P<identifier>[^\[\]=\s]+)\[(?P<key>[^\[\]]+)\]=(?P<value>.*)$", re.DOTALL)
_FLAT = re.compile(r"^(?P<key>[^\[\]=\s]+)=(?P<value>.*)$", re.DOTALL)


def _split(raw: list[str]) -> list[str]:
    entries: list[str] = []
    for chunk in raw:
        entries.extend(part.strip() for part in chunk.split(",") if part.strip())
    return entries


def parse_namespaced_arguments(raw: list[str]) -> dict[str, dict[str, str]]:
    """Group ``identifier[key]=value`` entries by identifier.

    Entries may also be separated by commas inside one argument.

    Raises:
        ValueError: If an entry is not in namespaced form.
    """
    grouped: dict[str, dict[str, str]] = {}
    for entry in _split(raw):
        match = _NAMESPACED.match(entry)
        if match is None:
            raise ValueError(
                f'Invalid wizard argument "{entry}", expected identifier[key]=value'
            )
        grouped.setdefault(match["identifier"], {})[match["key"]] = match["value"]
    return grouped


def parse_wizard_arguments(identifier: str, raw: list[str]) -> dict[str, str]:
    """Build the flat argument mapping for one wizard.

    Raises:
        ValueError: If an entry is malformed or namespaced for another wizard.
    """
    arguments: dict[str, str] = {}
    for entry in _split(raw):
        namespaced = _NAMESPACED.match(entry)
        if namespaced is not None:
            if namespaced["identifier"] != identifier:
                raise ValueError(
                    f'Argument "{entry}" belongs to wizard "{namespaced["identifier"]}", not "{identifier}"'
                )
            arguments[namespaced["key"]] = namespaced["value"]
            continue
        flat = _FLAT.match(entry)
        if flat is None:
            raise ValueError(f'Invalid wizard argument "{entry}", expected key=value')
        arguments[flat["key"]] = flat["value"]
    return arguments


__all__ = ["parse_namespaced_arguments", "parse_wizard_arguments"]
