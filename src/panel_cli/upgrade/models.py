"""Data model for the panel upgrade runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterator

if TYPE_CHECKING:
    from .context import ExecutionContext
    from .errors import StepFailure
    from .executor import ExecResult


class OutputStream(StrEnum):
    """Which pipe an output line came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class OutputLine:
    """One line of output produced by an external action."""

    stream: OutputStream
    text: str

    @property
    def is_error(self) -> bool:
        return self.stream == OutputStream.STDERR


@dataclass
class StepOutcome:
    """Result reported by a step action."""

    success: bool
    exit_code: int = 0
    lines: list[OutputLine] = field(default_factory=list)
    detail: str = ""

    @classmethod
    def ok(cls, lines: list[OutputLine] | None = None, detail: str = "") -> "StepOutcome":
        return cls(success=True, exit_code=0, lines=list(lines or []), detail=detail)

    @classmethod
    def failed(
        cls,
        detail: str,
        *,
        exit_code: int = 1,
        lines: list[OutputLine] | None = None,
    ) -> "StepOutcome":
        return cls(success=False, exit_code=exit_code, lines=list(lines or []), detail=detail)

    @classmethod
    def from_exec(cls, result: "ExecResult") -> "StepOutcome":
        """Translate an executor result; any non-zero exit status is a failure."""
        if result.exit_status == 0:
            return cls.ok(result.lines)
        return cls.failed(
            f"exited with status {result.exit_status}",
            exit_code=result.exit_status,
            lines=result.lines,
        )

    @property
    def error_lines(self) -> list[OutputLine]:
        return [line for line in self.lines if line.is_error]


@dataclass(frozen=True)
class RunConfiguration:
    """Resolved inputs for one upgrade invocation.

    Produced by the CLI layer (flags, prompts, panel environment) and never
    mutated by the runner.
    """

    install_path: Path
    url: str
    user: str
    skip_download: bool = False
    environment: str = "production"
    debug: bool = False

    @property
    def optimize_dependencies(self) -> bool:
        """Production installs without debug get an optimized, no-dev install."""
        return self.environment == "production" and not self.debug


StepAction = Callable[["ExecutionContext"], StepOutcome]


@dataclass(frozen=True)
class UpgradeStep:
    """A named, ordered unit of upgrade work."""

    key: str
    name: str
    command: str
    action: StepAction
    skippable: bool = False
    bootstraps_context: bool = False


@dataclass(frozen=True)
class UpgradePlan:
    """The resolved, ordered steps for one run."""

    steps: tuple[UpgradeStep, ...]

    def __iter__(self) -> Iterator[UpgradeStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __contains__(self, key: object) -> bool:
        return key in self.keys

    @property
    def total(self) -> int:
        return len(self.steps)

    @property
    def keys(self) -> list[str]:
        return [step.key for step in self.steps]


class RunStatus(StrEnum):
    """Per-run state machine: NOT_STARTED -> RUNNING -> {COMPLETED, FAILED}."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunResult:
    """Final outcome of executing (or declining to execute) a plan."""

    status: RunStatus
    total: int
    progress: int = 0
    completed_steps: list[str] = field(default_factory=list)
    failure: "StepFailure | None" = None
    error_output: list[OutputLine] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status == RunStatus.NOT_STARTED

    @property
    def exit_code(self) -> int:
        if self.status != RunStatus.FAILED:
            return 0
        if self.failure is not None and self.failure.outcome.exit_code:
            return self.failure.outcome.exit_code
        return 1

    def raise_for_status(self) -> None:
        """Re-raise the recorded step failure, if any."""
        if self.failure is not None:
            raise self.failure
