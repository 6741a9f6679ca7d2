"""x402-scaffold CLI.

Command-line interface for creating projects from x402 templates.
"""

from scaffolding import __version__

from cli.x402scaffold.cli import app, main

__all__ = ["__version__", "app", "main"]
