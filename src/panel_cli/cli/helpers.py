"""Shared console, banner and logging setup for the panel CLI."""

from __future__ import annotations

import logging

from rich.align import Align
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

console = Console()
err_console = Console(stderr=True)

BANNER = r"""
                             __
    ____  ____ _____  ___   / /
   / __ \/ __ `/ __ \/ _ \ / /
  / /_/ / /_/ / / / /  __// /
 / .___/\__,_/_/ /_/\___//_/
/_/
"""

TAGLINE = "panel-cli - upgrade and maintain an installed panel"


def show_banner() -> None:
    """Display the ASCII art banner."""
    banner_lines = BANNER.strip("\n").split("\n")
    colors = ["bright_blue", "blue", "cyan", "bright_cyan", "white", "bright_white"]

    styled_banner = Text()
    for i, line in enumerate(banner_lines):
        styled_banner.append(line + "\n", style=colors[i % len(colors)])

    console.print(Align.center(styled_banner))
    console.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
    console.print()


def configure_logging(verbose: bool = False) -> None:
    """Route ``panel_cli`` log records to stderr through Rich."""
    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger("panel_cli")
    for existing in list(logger.handlers):
        if isinstance(existing, RichHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
