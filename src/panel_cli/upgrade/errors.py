"""Exceptions raised by the upgrade system."""

from __future__ import annotations

from .models import StepOutcome


class UpgradeError(Exception):
    """Base exception for upgrade errors."""


class StepFailure(UpgradeError):
    """An upgrade step's external action reported failure."""

    def __init__(self, step: str, name: str, outcome: StepOutcome):
        self.step = step
        self.name = name
        self.outcome = outcome
        super().__init__(f"{name} failed (exit {outcome.exit_code})")

    @property
    def detail(self) -> str:
        return self.outcome.detail


class ContextBootstrapError(UpgradeError):
    """The framework console could not be bootstrapped after installing dependencies."""


class ArchiveDownloadError(UpgradeError):
    """The release archive could not be downloaded or unpacked."""
