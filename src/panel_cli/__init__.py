"""
panel-cli - operational tooling for an installed panel.

Usage:
    panel upgrade
    panel upgrade --release 1.11.5
    panel upgrade --skip-download --user nginx
"""

import sys

import typer
from rich.align import Align
from typer.core import TyperGroup

from panel_cli.cli.helpers import console, show_banner

__version__ = "0.1.0"


class BannerGroup(TyperGroup):
    """Custom group that shows banner before help."""

    def format_help(self, ctx, formatter):
        show_banner()
        super().format_help(ctx, formatter)


app = typer.Typer(
    name="panel",
    help="Operational tooling for an installed panel",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
)


@app.callback()
def callback(ctx: typer.Context):
    """Show banner when no subcommand is provided."""
    if ctx.invoked_subcommand is None and "--help" not in sys.argv and "-h" not in sys.argv:
        show_banner()
        console.print(Align.center("[dim]Run 'panel --help' for usage information[/dim]"))
        console.print()


from panel_cli.cli.commands import register_commands  # noqa: E402

register_commands(app)


def main():
    app()


if __name__ == "__main__":
    main()
