"""CLI command modules for panel-cli.

Each module provides one command; ``register_commands`` attaches them all
to the root Typer app.
"""

from __future__ import annotations

import typer

from . import upgrade as upgrade_module


def register_commands(app: typer.Typer) -> None:
    """Attach all panel-cli commands to *app*."""
    app.command("upgrade")(upgrade_module.upgrade)


__all__ = ["register_commands"]
