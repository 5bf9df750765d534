"""Execution context handed to every upgrade step action.

The framework console is bootstrapped once, partway through a run: after
dependencies are installed, the freshly unpacked code
is what later framework sub-commands must run against. Before that point,
``artisan()`` runs against the installation as it was when the run began.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from .errors import ContextBootstrapError
from .executor import Executor, ExecResult
from .models import OutputLine

logger = logging.getLogger(__name__)

ARTISAN_SCRIPT = "artisan"


class FrameworkConsole:
    """The panel's ``artisan`` console, run with a given PHP binary."""

    def __init__(
        self,
        install_path: Path,
        executor: Executor,
        *,
        php_binary: str = "php",
    ):
        self.install_path = install_path
        self.executor = executor
        self.php_binary = php_binary

    def command(self, *args: str) -> list[str]:
        return [self.php_binary, ARTISAN_SCRIPT, *args]

    def call(self, *args: str, on_line: Callable[[OutputLine], None] | None = None) -> ExecResult:
        return self.executor.run(self.command(*args), cwd=self.install_path, on_line=on_line)


class ExecutionContext:
    """Everything a step action may touch during one run."""

    def __init__(
        self,
        install_path: Path,
        executor: Executor,
        *,
        php_binary: str = "php",
        emit: Callable[[OutputLine], None] | None = None,
    ):
        self.install_path = install_path
        self.executor = executor
        self.php_binary = php_binary
        self._emit = emit
        self._framework: FrameworkConsole | None = None
        self._installed: FrameworkConsole | None = None

    @property
    def framework(self) -> FrameworkConsole | None:
        """The bootstrapped console, or ``None`` before :meth:`bootstrap`."""
        return self._framework

    @property
    def bootstrapped(self) -> bool:
        return self._framework is not None

    def bind_output(self, emit: Callable[[OutputLine], None] | None) -> None:
        self._emit = emit

    def emit(self, line: OutputLine) -> None:
        if self._emit is not None:
            self._emit(line)

    def bootstrap(self) -> FrameworkConsole:
        """Build the framework console for the upgraded code. Idempotent."""
        if self._framework is not None:
            return self._framework

        if not (self.install_path / ARTISAN_SCRIPT).is_file():
            raise ContextBootstrapError(
                f"No {ARTISAN_SCRIPT} entry point found in {self.install_path}; is this a panel installation?"
            )
        self._framework = FrameworkConsole(self.install_path, self.executor, php_binary=self.php_binary)
        logger.info("Framework console bootstrapped in %s", self.install_path)
        return self._framework

    def artisan(self, *args: str) -> ExecResult:
        """Run a framework sub-command, streaming its output through :meth:`emit`."""
        console = self._framework
        if console is None:
            if self._installed is None:
                self._installed = FrameworkConsole(
                    self.install_path, self.executor, php_binary=self.php_binary
                )
            console = self._installed
        return console.call(*args, on_line=self.emit)

    def run(self, command: list[str] | str, *, shell: bool = False) -> ExecResult:
        """Run an external command in the installation directory."""
        return self.executor.run(command, cwd=self.install_path, shell=shell, on_line=self.emit)
