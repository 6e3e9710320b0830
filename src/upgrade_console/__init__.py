"""Upgrade Console - run host application upgrade wizards in isolated processes.

Usage:
    upgrade-console check-extension-constraints --app-version 11.5.0
    upgrade-console upgrade:list --all
    upgrade-console upgrade:wizard <identifier> --force
    upgrade-console upgrade:all --verbose
"""

from __future__ import annotations

__version__ = "1.0.0"

__all__ = ["__version__"]
