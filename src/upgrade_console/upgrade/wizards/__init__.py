"""Built-in wizards. Importing this package registers them."""

from __future__ import annotations

from . import legacy_done_list  # noqa: F401
