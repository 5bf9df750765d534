"""Progress reporting for upgrade runs."""

from __future__ import annotations

from typing import Protocol

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from .models import OutputLine, UpgradeStep

TRACE_PREFIX = "$upgrader> "


class ProgressReporter(Protocol):
    """Receives progress events from the runner, in order."""

    def start(self, total: int) -> None: ...

    def trace(self, step: UpgradeStep) -> None: ...

    def line(self, line: OutputLine) -> None: ...

    def advance(self) -> None: ...

    def finish(self) -> None: ...


class NullProgressReporter:
    """Reporter that discards everything."""

    def start(self, total: int) -> None:
        pass

    def trace(self, step: UpgradeStep) -> None:
        pass

    def line(self, line: OutputLine) -> None:
        pass

    def advance(self) -> None:
        pass

    def finish(self) -> None:
        pass


class RichProgressReporter:
    """Progress bar with step output scrolling above it."""

    def __init__(self, console: Console):
        self.console = console
        self._progress: Progress | None = None
        self._task = None

    def start(self, total: int) -> None:
        self._progress = Progress(
            TextColumn("[cyan]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
        )
        self._task = self._progress.add_task("Upgrading", total=total)
        self._progress.start()

    def trace(self, step: UpgradeStep) -> None:
        if self._progress is not None:
            self._progress.update(self._task, description=step.name)
        self.console.print(f"[dim]{escape(TRACE_PREFIX + step.command)}[/dim]", highlight=False)

    def line(self, line: OutputLine) -> None:
        text = escape(line.text)
        if line.is_error:
            self.console.print(f"[red]{text}[/red]", highlight=False)
        else:
            self.console.print(text, highlight=False)

    def advance(self) -> None:
        if self._progress is not None:
            self._progress.advance(self._task)

    def finish(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
