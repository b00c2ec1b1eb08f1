"""
CLI package for taskweave.

Provides a rich command-line interface using Typer.
"""

from taskweave.cli.app import app, main

__all__ = ["app", "main"]
