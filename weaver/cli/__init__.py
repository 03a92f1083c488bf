"""CLI application setup using Typer.

Provides the command-line interface for Weaver.
"""

from weaver.cli.main import app

__all__ = ["app"]
