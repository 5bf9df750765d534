"""Panel upgrade system: an ordered, fail-fast runner over upgrade steps."""

from __future__ import annotations

from .collaborators import Collaborators
from .context import ExecutionContext, FrameworkConsole
from .errors import ArchiveDownloadError, ContextBootstrapError, StepFailure, UpgradeError
from .executor import ExecResult, Executor, SubprocessExecutor
from .models import (
    OutputLine,
    OutputStream,
    RunConfiguration,
    RunResult,
    RunStatus,
    StepOutcome,
    UpgradePlan,
    UpgradeStep,
)
from .plan import build_plan, resolve_download_url
from .runner import UpgradeRunner

__all__ = [
    "ArchiveDownloadError",
    "Collaborators",
    "ContextBootstrapError",
    "ExecResult",
    "ExecutionContext",
    "Executor",
    "FrameworkConsole",
    "OutputLine",
    "OutputStream",
    "RunConfiguration",
    "RunResult",
    "RunStatus",
    "StepFailure",
    "StepOutcome",
    "SubprocessExecutor",
    "UpgradeError",
    "UpgradePlan",
    "UpgradeRunner",
    "UpgradeStep",
    "build_plan",
    "resolve_download_url",
]
