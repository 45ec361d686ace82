"""CLI application setup using Typer.

Provides the command-line interface for portal operations.
"""

from mapping_portal.cli.main import app

__all__ = ["app"]
