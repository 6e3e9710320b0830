"""Installed extension metadata and version constraint checks."""

from __future__ import annotations

from .constraints import ConstraintCheckOutcome, match_constraints, parse_version_range
from .models import Extension
from .registry import ExtensionRegistry

__all__ = [
    "ConstraintCheckOutcome",
    "Extension",
    "ExtensionRegistry",
    "match_constraints",
    "parse_version_range",
]
