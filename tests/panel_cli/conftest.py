"""Shared fixtures and test doubles for panel_cli tests."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pytest

from panel_cli.upgrade.executor import ExecResult, format_command
from panel_cli.upgrade.models import OutputLine, OutputStream, StepOutcome


class RecordingExecutor:
    """Executor double that records every command instead of running it.

    ``failures`` maps a command substring to the exit status it should
    report; ``outputs`` maps a command substring to the lines it emits.
    """

    def __init__(
        self,
        failures: dict[str, int] | None = None,
        outputs: dict[str, list[OutputLine]] | None = None,
    ):
        self.failures = failures or {}
        self.outputs = outputs or {}
        self.commands: list[str] = []
        self.calls: list[dict] = []

    def run(self, command, *, cwd=None, shell=False, on_line=None) -> ExecResult:
        rendered = format_command(command)
        self.commands.append(rendered)
        self.calls.append({"command": command, "cwd": cwd, "shell": shell})

        lines: list[OutputLine] = []
        for needle, emitted in self.outputs.items():
            if needle in rendered:
                lines.extend(emitted)
        for line in lines:
            if on_line is not None:
                on_line(line)

        status = next((code for needle, code in self.failures.items() if needle in rendered), 0)
        return ExecResult(status, lines)


class ScriptedPrompter:
    """Prompter double answering from pre-scripted queues."""

    def __init__(self, confirms: Sequence[bool] = (), choices: Sequence[str] = ()):
        self.confirms = list(confirms)
        self.choices = list(choices)
        self.questions: list[str] = []

    def confirm(self, question: str, default: bool = False) -> bool:
        self.questions.append(question)
        if self.confirms:
            return self.confirms.pop(0)
        return default

    def choose(self, question: str, options: Sequence[str]) -> str:
        self.questions.append(question)
        if self.choices:
            return self.choices.pop(0)
        return options[0]


class RecordingReporter:
    """ProgressReporter double that records events in order."""

    def __init__(self):
        self.events: list[tuple] = []
        self.total: int | None = None
        self.advanced = 0

    def start(self, total: int) -> None:
        self.total = total
        self.events.append(("start", total))

    def trace(self, step) -> None:
        self.events.append(("trace", step.key))

    def line(self, line: OutputLine) -> None:
        self.events.append(("line", line.stream.value, line.text))

    def advance(self) -> None:
        self.advanced += 1
        self.events.append(("advance",))

    def finish(self) -> None:
        self.events.append(("finish",))


class FakeFetcher:
    """Archive fetcher double recording the URLs it was asked for."""

    def __init__(self, success: bool = True):
        self.success = success
        self.urls: list[str] = []

    def fetch(self, ctx, url: str) -> StepOutcome:
        self.urls.append(url)
        if self.success:
            line = OutputLine(OutputStream.STDOUT, f"x fetched {url}")
            ctx.emit(line)
            return StepOutcome.ok([line])
        line = OutputLine(OutputStream.STDERR, "curl: (22) The requested URL returned error: 404")
        ctx.emit(line)
        return StepOutcome.failed("download failed", exit_code=22, lines=[line])


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point settings at an empty config dir and clear overrides."""
    home = tmp_path / "panel-cli-home"
    monkeypatch.setenv("PANEL_CLI_HOME", str(home))
    for var in (
        "PANEL_CLI_DOWNLOAD_TEMPLATE",
        "PANEL_CLI_DEFAULT_USER",
        "PANEL_CLI_PHP",
        "PANEL_CLI_COMPOSER",
    ):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def panel_dir(tmp_path: Path) -> Path:
    """Create a minimal installed panel layout."""
    root = tmp_path / "panel"
    (root / "public").mkdir(parents=True)
    (root / "storage").mkdir()
    (root / "bootstrap" / "cache").mkdir(parents=True)
    (root / "artisan").write_text("#!/usr/bin/env php\n<?php\n", encoding="utf-8")
    (root / ".env").write_text("APP_ENV=production\nAPP_DEBUG=false\n", encoding="utf-8")
    return root


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def make_executor():
    """Factory for executors with scripted failures and output."""
    return RecordingExecutor


@pytest.fixture
def make_prompter():
    """Factory for prompters with scripted answers."""
    return ScriptedPrompter


@pytest.fixture
def make_fetcher():
    return FakeFetcher
