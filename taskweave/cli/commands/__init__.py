"""CLI commands package."""

from taskweave.cli.commands import config, run, skill

__all__ = ["config", "run", "skill"]
