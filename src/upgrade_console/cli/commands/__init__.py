"""CLI command modules for upgrade-console."""

from .extensions import check_extension_constraints
from .upgrade import list_wizards, sub_process, upgrade_all, wizard

__all__ = [
    "check_extension_constraints",
    "list_wizards",
    "wizard",
    "upgrade_all",
    "sub_process",
]
