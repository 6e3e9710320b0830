"""Command line interface for upgrade-console."""
