"""Sequential runner for upgrade plans."""

from __future__ import annotations

import logging

from .collaborators import Collaborators
from .context import ExecutionContext
from .errors import ContextBootstrapError, StepFailure
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
from .plan import build_plan
from .progress import NullProgressReporter, ProgressReporter
from .prompts import Prompter

logger = logging.getLogger(__name__)

FINAL_CONFIRMATION = "Are you sure you want to run the upgrade process for your Panel?"


class UpgradeRunner:
    """Execute an :class:`UpgradePlan` to completion or first failure.

    Steps run strictly in plan order and each one blocks until its external
    action returns. A failed step ends the run; nothing after it is invoked
    and nothing before it is undone.
    """

    def __init__(
        self,
        context: ExecutionContext,
        *,
        prompter: Prompter | None = None,
        reporter: ProgressReporter | None = None,
        collaborators: Collaborators | None = None,
    ):
        self.context = context
        self.prompter = prompter
        self.reporter = reporter or NullProgressReporter()
        self.collaborators = collaborators
        self._status = RunStatus.NOT_STARTED
        self._error_output: list[OutputLine] = []

    @property
    def status(self) -> RunStatus:
        return self._status

    def build_plan(self, config: RunConfiguration) -> UpgradePlan:
        return build_plan(config, self.collaborators)

    def confirm(self, question: str = FINAL_CONFIRMATION) -> bool:
        if self.prompter is None:
            return True
        return self.prompter.confirm(question, default=False)

    def execute(self, plan: UpgradePlan, *, interactive: bool) -> RunResult:
        """Ask for the final confirmation when interactive, then :meth:`run`."""
        if interactive and not self.confirm():
            logger.info("Upgrade declined by operator; no steps invoked")
            return RunResult(status=RunStatus.NOT_STARTED, total=plan.total)
        return self.run(plan)

    def run(self, plan: UpgradePlan) -> RunResult:
        if self._status != RunStatus.NOT_STARTED:
            raise RuntimeError(f"UpgradeRunner can only run once (status: {self._status})")

        self._status = RunStatus.RUNNING
        result = RunResult(status=RunStatus.RUNNING, total=plan.total)
        self.context.bind_output(self._forward)
        self.reporter.start(plan.total)
        try:
            for step in plan:
                failure = self._run_step(step)
                if failure is not None:
                    self._status = RunStatus.FAILED
                    result.failure = failure
                    logger.info("Step %s failed: %s", step.key, failure.detail or failure)
                    break
                result.completed_steps.append(step.key)
                result.progress += 1
                self.reporter.advance()
            else:
                self._status = RunStatus.COMPLETED
        finally:
            self.reporter.finish()
            self.context.bind_output(None)

        result.status = self._status
        result.error_output = list(self._error_output)
        return result

    def _run_step(self, step: UpgradeStep) -> StepFailure | None:
        logger.info("Running step %s: %s", step.key, step.command)
        self.reporter.trace(step)

        try:
            outcome = step.action(self.context)
        except StepFailure as exc:
            return exc

        if not outcome.success:
            return StepFailure(step.key, step.name, outcome)

        if step.bootstraps_context:
            try:
                self.context.bootstrap()
            except ContextBootstrapError as exc:
                line = OutputLine(OutputStream.STDERR, str(exc))
                self._forward(line)
                return StepFailure(step.key, step.name, StepOutcome.failed(str(exc), lines=[line]))

        logger.debug("Step %s finished", step.key)
        return None

    def _forward(self, line: OutputLine) -> None:
        if line.is_error:
            self._error_output.append(line)
        self.reporter.line(line)
