"""Operator prompting and non-interactive detection."""

from __future__ import annotations

import logging
import os
import sys
from typing import Protocol, Sequence

logger = logging.getLogger(__name__)

_CI_ENV_VARS = [
    "CI",
    "GITHUB_ACTIONS",
    "JENKINS_HOME",
    "GITLAB_CI",
    "CIRCLECI",
    "TRAVIS",
    "BUILDKITE",
]


class Prompter(Protocol):
    """Asks the operator questions."""

    def confirm(self, question: str, default: bool = False) -> bool: ...

    def choose(self, question: str, options: Sequence[str]) -> str: ...


def is_interactive() -> bool:
    """Detect if running in an interactive terminal.

    Checks:
    1. sys.stdin.isatty() -- True if connected to a terminal
    2. CI environment variables (CI, GITHUB_ACTIONS, JENKINS_HOME, etc.)
    """
    if not sys.stdin.isatty():
        return False

    for var in _CI_ENV_VARS:
        if os.getenv(var):
            logger.debug("Non-interactive: %s is set", var)
            return False

    return True
