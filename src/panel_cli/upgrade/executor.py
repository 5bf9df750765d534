"""Subprocess execution with tagged, streamed output.

The executor spawns exactly one process per call and blocks until it exits.
Both pipes are drained by reader threads into a queue so that the caller's
``on_line`` callback is always invoked on the calling thread, in arrival
order.
"""

from __future__ import annotations

import logging
import queue
import shlex
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Callable, Protocol, Sequence

from .models import OutputLine, OutputStream

logger = logging.getLogger(__name__)

Command = Sequence[str] | str
LineCallback = Callable[[OutputLine], None]

# Exit status reported when the command could not be started at all.
SPAWN_FAILURE_STATUS = 127


@dataclass
class ExecResult:
    """Exit status plus every line the process wrote, tagged by stream."""

    exit_status: int
    lines: list[OutputLine] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.exit_status == 0


class Executor(Protocol):
    """Runs external commands on behalf of upgrade steps."""

    def run(
        self,
        command: Command,
        *,
        cwd: Path | None = None,
        shell: bool = False,
        on_line: LineCallback | None = None,
    ) -> ExecResult: ...


def format_command(command: Command) -> str:
    """Render a command the way an operator would type it."""
    if isinstance(command, str):
        return command
    return shlex.join(command)


def _pump(pipe: IO[str], stream: OutputStream, sink: "queue.Queue[OutputLine | None]") -> None:
    try:
        for raw in iter(pipe.readline, ""):
            sink.put(OutputLine(stream, raw.rstrip("\r\n")))
    finally:
        pipe.close()
        sink.put(None)


class SubprocessExecutor:
    """Executor backed by :mod:`subprocess`."""

    def __init__(self, env: dict[str, str] | None = None):
        self.env = env

    def run(
        self,
        command: Command,
        *,
        cwd: Path | None = None,
        shell: bool = False,
        on_line: LineCallback | None = None,
    ) -> ExecResult:
        logger.debug("Running %s (cwd=%s, shell=%s)", format_command(command), cwd, shell)
        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                shell=shell,
                env=self.env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as exc:
            logger.debug("Could not start %s: %s", format_command(command), exc)
            line = OutputLine(OutputStream.STDERR, f"{format_command(command)}: {exc}")
            if on_line is not None:
                on_line(line)
            return ExecResult(SPAWN_FAILURE_STATUS, [line])

        if process.stdout is None or process.stderr is None:
            process.kill()
            raise RuntimeError(f"Output pipes were not opened for {format_command(command)}")
        sink: "queue.Queue[OutputLine | None]" = queue.Queue()
        readers = [
            threading.Thread(target=_pump, args=(process.stdout, OutputStream.STDOUT, sink), daemon=True),
            threading.Thread(target=_pump, args=(process.stderr, OutputStream.STDERR, sink), daemon=True),
        ]
        for reader in readers:
            reader.start()

        lines: list[OutputLine] = []
        open_pipes = len(readers)
        while open_pipes:
            item = sink.get()
            if item is None:
                open_pipes -= 1
                continue
            lines.append(item)
            if on_line is not None:
                on_line(item)

        for reader in readers:
            reader.join()
        exit_status = process.wait()
        logger.debug("%s exited with %s", format_command(command), exit_status)
        return ExecResult(exit_status, lines)
