"""CLI helpers exposed for other modules."""

from .ui import ConsolePrompter, StepTracker, select_with_arrows

__all__ = ["ConsolePrompter", "StepTracker", "select_with_arrows"]
