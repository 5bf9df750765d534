"""Tests for UpgradeRunner sequencing, failure handling and progress."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from panel_cli.upgrade import (
    Collaborators,
    ExecutionContext,
    RunConfiguration,
    RunStatus,
    StepFailure,
    StepOutcome,
    UpgradePlan,
    UpgradeRunner,
    UpgradeStep,
)
from panel_cli.upgrade.models import OutputLine, OutputStream
from panel_cli.upgrade.runner import FINAL_CONFIRMATION


def _stub_plan(calls: list[str], fail_at: str | None = None, keys=("one", "two", "three", "four")) -> UpgradePlan:
    def make_action(key: str):
        def action(ctx):
            calls.append(key)
            if key == fail_at:
                ctx.emit(OutputLine(OutputStream.STDERR, f"{key} broke"))
                return StepOutcome.failed(f"{key} broke", exit_code=3)
            ctx.emit(OutputLine(OutputStream.STDOUT, f"{key} ok"))
            return StepOutcome.ok()

        return action

    return UpgradePlan(
        tuple(UpgradeStep(key=key, name=key.title(), command=f"run {key}", action=make_action(key)) for key in keys)
    )


@pytest.fixture
def context(panel_dir: Path, executor) -> ExecutionContext:
    return ExecutionContext(panel_dir, executor)


# =============================================================================
# Sequencing
# =============================================================================


def test_all_steps_succeed(context, reporter):
    calls: list[str] = []
    runner = UpgradeRunner(context, reporter=reporter)

    result = runner.run(_stub_plan(calls))

    assert result.status == RunStatus.COMPLETED
    assert result.success
    assert result.exit_code == 0
    assert calls == ["one", "two", "three", "four"]
    assert result.completed_steps == calls
    assert result.progress == result.total == 4
    assert reporter.total == 4
    assert reporter.advanced == 4
    assert runner.status == RunStatus.COMPLETED


def test_events_are_reported_in_step_order(context, reporter):
    runner = UpgradeRunner(context, reporter=reporter)

    runner.run(_stub_plan([], keys=("one", "two")))

    assert reporter.events == [
        ("start", 2),
        ("trace", "one"),
        ("line", "stdout", "one ok"),
        ("advance",),
        ("trace", "two"),
        ("line", "stdout", "two ok"),
        ("advance",),
        ("finish",),
    ]


def test_failure_halts_run(context, reporter):
    calls: list[str] = []
    runner = UpgradeRunner(context, reporter=reporter)

    result = runner.run(_stub_plan(calls, fail_at="two"))

    assert result.status == RunStatus.FAILED
    assert not result.success
    assert calls == ["one", "two"]
    assert result.completed_steps == ["one"]
    assert result.progress == 1
    assert reporter.advanced == 1
    assert result.failure is not None
    assert result.failure.step == "two"
    assert result.exit_code == 3
    assert [line.text for line in result.error_output] == ["two broke"]
    assert reporter.events[-1] == ("finish",)


def test_raise_for_status_reraises_failure(context):
    result = UpgradeRunner(context).run(_stub_plan([], fail_at="one"))

    with pytest.raises(StepFailure, match="One failed"):
        result.raise_for_status()


def test_action_raising_step_failure_fails_run(context):
    calls: list[str] = []

    def explode(ctx):
        calls.append("boom")
        raise StepFailure("boom", "Boom", StepOutcome.failed("exploded", exit_code=9))

    plan = UpgradePlan(
        (
            UpgradeStep("boom", "Boom", "boom", explode),
            UpgradeStep("after", "After", "after", lambda ctx: calls.append("after") or StepOutcome.ok()),
        )
    )

    result = UpgradeRunner(context).run(plan)

    assert result.status == RunStatus.FAILED
    assert calls == ["boom"]
    assert result.exit_code == 9


def test_unexpected_exceptions_propagate(context, reporter):
    def crash(ctx):
        raise KeyboardInterrupt

    plan = UpgradePlan((UpgradeStep("crash", "Crash", "crash", crash),))

    with pytest.raises(KeyboardInterrupt):
        UpgradeRunner(context, reporter=reporter).run(plan)
    assert reporter.events[-1] == ("finish",)


def test_runner_only_runs_once(context):
    runner = UpgradeRunner(context)
    runner.run(_stub_plan([]))

    with pytest.raises(RuntimeError):
        runner.run(_stub_plan([]))


# =============================================================================
# Confirmation
# =============================================================================


def test_declining_confirmation_invokes_nothing(context, make_prompter, reporter):
    calls: list[str] = []
    prompter = make_prompter(confirms=[False])
    runner = UpgradeRunner(context, prompter=prompter, reporter=reporter)

    result = runner.execute(_stub_plan(calls), interactive=True)

    assert result.status == RunStatus.NOT_STARTED
    assert result.cancelled
    assert result.exit_code == 0
    assert calls == []
    assert reporter.events == []
    assert prompter.questions == [FINAL_CONFIRMATION]


def test_accepting_confirmation_runs_plan(context, make_prompter):
    calls: list[str] = []
    runner = UpgradeRunner(context, prompter=make_prompter(confirms=[True]))

    result = runner.execute(_stub_plan(calls), interactive=True)

    assert result.success
    assert len(calls) == 4


def test_non_interactive_execution_does_not_prompt(context, make_prompter):
    prompter = make_prompter(confirms=[False])
    runner = UpgradeRunner(context, prompter=prompter)

    result = runner.execute(_stub_plan([]), interactive=False)

    assert result.success
    assert prompter.questions == []


# =============================================================================
# Full plan against recorded collaborators
# =============================================================================


def test_example_upgrade_completes(panel_dir, executor, fetcher, reporter):
    config = RunConfiguration(
        install_path=panel_dir,
        url="https://example.test/panel.tar.gz",
        user="nginx",
        skip_download=False,
    )
    collaborators = Collaborators(fetcher=fetcher)
    runner = UpgradeRunner(ExecutionContext(panel_dir, executor), reporter=reporter, collaborators=collaborators)

    plan = runner.build_plan(config)
    result = runner.run(plan)

    assert plan.keys == [
        "download",
        "maintenance-on",
        "permissions",
        "dependencies",
        "view-cache",
        "config-cache",
        "migrate",
        "ownership",
        "workers",
        "maintenance-off",
    ]
    assert result.status == RunStatus.COMPLETED
    assert reporter.advanced == 10
    assert result.progress == 10
    assert fetcher.urls == ["https://example.test/panel.tar.gz"]
    assert executor.commands == [
        "php artisan down",
        "chmod -R 755 storage bootstrap/cache",
        "composer install --no-ansi --optimize-autoloader --no-dev",
        "php artisan view:clear",
        "php artisan config:clear",
        "php artisan migrate --seed --force",
        "chown -R nginx:nginx *",
        "php artisan queue:restart",
        "php artisan up",
    ]
    assert all(call["cwd"] == panel_dir for call in executor.calls)
    assert [call["shell"] for call in executor.calls if call["command"] == "chown -R nginx:nginx *"] == [True]


def test_failed_migration_leaves_later_steps_untouched(panel_dir, make_executor):
    executor = make_executor(
        failures={"migrate": 1},
        outputs={"migrate": [OutputLine(OutputStream.STDERR, "SQLSTATE[HY000] [2002] Connection refused")]},
    )
    config = RunConfiguration(install_path=panel_dir, url="", user="www-data", skip_download=True)
    runner = UpgradeRunner(ExecutionContext(panel_dir, executor))

    result = runner.run(runner.build_plan(config))

    assert result.status == RunStatus.FAILED
    assert result.failure.step == "migrate"
    assert executor.commands[-1] == "php artisan migrate --seed --force"
    assert "php artisan up" not in executor.commands
    assert result.progress == 5
    assert [line.text for line in result.failure.outcome.error_lines] == [
        "SQLSTATE[HY000] [2002] Connection refused"
    ]


def test_context_is_bootstrapped_after_dependencies(panel_dir, executor):
    context = ExecutionContext(panel_dir, executor)
    seen: dict[str, bool] = {}

    config = RunConfiguration(install_path=panel_dir, url="", user="www-data", skip_download=True)
    runner = UpgradeRunner(context)
    plan = runner.build_plan(config)
    def observe(step: UpgradeStep):
        def action(ctx):
            seen[step.key] = ctx.bootstrapped
            return step.action(ctx)

        return dataclasses.replace(step, action=action)

    instrumented = UpgradePlan(tuple(observe(step) for step in plan))

    result = runner.run(instrumented)

    assert result.success
    assert seen["maintenance-on"] is False
    assert seen["dependencies"] is False
    assert seen["view-cache"] is True
    assert seen["maintenance-off"] is True


def test_missing_artisan_after_install_fails_dependency_step(panel_dir, executor):
    (panel_dir / "artisan").unlink()
    config = RunConfiguration(install_path=panel_dir, url="", user="www-data", skip_download=True)
    runner = UpgradeRunner(ExecutionContext(panel_dir, executor))

    result = runner.run(runner.build_plan(config))

    assert result.status == RunStatus.FAILED
    assert result.failure.step == "dependencies"
    assert "artisan" in result.failure.detail
    assert executor.commands[-1].startswith("composer install")
    assert result.error_output and "artisan" in result.error_output[0].text
