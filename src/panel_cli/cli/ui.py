"""Reusable UI helpers for panel CLI interactions."""

from __future__ import annotations

from typing import Optional, Sequence

import readchar
import typer
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

OTHER_OPTION = "other..."

# status -> (symbol, label style)
_STATUS_STYLES = {
    "pending": ("[green dim]○[/green dim]", "bright_black"),
    "done": ("[green]●[/green]", "white"),
    "error": ("[red]●[/red]", "white"),
    "skipped": ("[yellow]○[/yellow]", "bright_black"),
}


class StepTracker:
    """Track the state of each upgrade step and render it as a Rich tree."""

    def __init__(self, title: str):
        self.title = title
        self.steps: list[dict[str, str]] = []

    def add(self, key: str, label: str, detail: str = "") -> None:
        if self._find(key) is None:
            self.steps.append({"key": key, "label": label, "status": "pending", "detail": detail})

    def complete(self, key: str, detail: str = "") -> None:
        self._update(key, "done", detail)

    def error(self, key: str, detail: str = "") -> None:
        self._update(key, "error", detail)

    def skip(self, key: str, detail: str = "") -> None:
        self._update(key, "skipped", detail)

    def _find(self, key: str) -> dict[str, str] | None:
        return next((step for step in self.steps if step["key"] == key), None)

    def _update(self, key: str, status: str, detail: str) -> None:
        step = self._find(key)
        if step is None:
            step = {"key": key, "label": key, "status": status, "detail": ""}
            self.steps.append(step)
        step["status"] = status
        if detail:
            step["detail"] = detail

    def render(self) -> Tree:
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self.steps:
            symbol, style = _STATUS_STYLES.get(step["status"], (" ", "white"))
            line = f"{symbol} [{style}]{escape(step['label'])}[/{style}]"
            detail = step["detail"].strip()
            if detail:
                line += f" [bright_black]({escape(detail)})[/bright_black]"
            tree.add(line, highlight=False)
        return tree


def get_key() -> str:
    """Read one keypress and map navigation keys to names."""
    key = readchar.readkey()
    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt

    named = {
        readchar.key.UP: "up",
        readchar.key.CTRL_P: "up",
        readchar.key.DOWN: "down",
        readchar.key.CTRL_N: "down",
        readchar.key.ENTER: "enter",
        readchar.key.ESC: "escape",
    }
    return named.get(key, key)


def select_with_arrows(
    options: Sequence[str],
    prompt_text: str = "Select an option",
    default: str | None = None,
    console: Console | None = None,
) -> str:
    """Let the operator pick one of *options* with the arrow keys.

    Escape or Ctrl+C abort the command with exit status 1.
    """
    console = console or Console()
    choices = list(options)
    index = choices.index(default) if default in choices else 0

    def render() -> Panel:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", width=3)
        table.add_column(style="white")
        for i, choice in enumerate(choices):
            table.add_row("▶" if i == index else " ", f"[cyan]{escape(choice)}[/cyan]")
        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/dim]")
        return Panel(table, title=f"[bold]{prompt_text}[/bold]", border_style="cyan", padding=(1, 2))

    console.print()
    with Live(render(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            try:
                key = get_key()
            except KeyboardInterrupt:
                key = "escape"

            if key == "enter":
                return choices[index]
            if key == "escape":
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)
            if key == "up":
                index = (index - 1) % len(choices)
            elif key == "down":
                index = (index + 1) % len(choices)
            live.update(render(), refresh=True)


class ConsolePrompter:
    """Prompter backed by the operator's terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def confirm(self, question: str, default: bool = False) -> bool:
        return typer.confirm(question, default=default)

    def choose(self, question: str, options: Sequence[str]) -> str:
        """Pick one of *options* with the arrow keys, or type any other value."""
        self.console.print(question)
        choice = select_with_arrows(
            [*options, OTHER_OPTION],
            prompt_text="Select an option",
            console=self.console,
        )
        if choice != OTHER_OPTION:
            return choice
        return typer.prompt("Value").strip()
