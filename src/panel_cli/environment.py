"""Inspection of an installed panel: its ``.env`` and its web-server user."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

DEFAULT_WEBSERVER_USER = "www-data"
WEBSERVER_USER_CHOICES = ("www-data", "apache", "nginx")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class PanelEnvironment:
    """The subset of the panel's environment the upgrade cares about."""

    app_env: str = "production"
    app_debug: bool = False


def _is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().strip("()").lower() in _TRUTHY


def read_panel_environment(install_path: Path) -> PanelEnvironment:
    """Read ``APP_ENV`` and ``APP_DEBUG`` from the panel's ``.env``.

    A missing file yields the defaults (production, debug off), matching how
    the panel itself behaves without an ``.env``.
    """
    env_file = install_path / ".env"
    if not env_file.is_file():
        logger.debug("No .env found at %s, assuming production", env_file)
        return PanelEnvironment()

    values = dotenv_values(env_file)
    app_env = (values.get("APP_ENV") or "production").strip() or "production"
    environment = PanelEnvironment(app_env=app_env, app_debug=_is_truthy(values.get("APP_DEBUG")))
    logger.debug("Panel environment: %s", environment)
    return environment


def detect_webserver_user(install_path: Path, default: str = DEFAULT_WEBSERVER_USER) -> str:
    """Return the name of the user owning ``public/``, or *default*."""
    public_dir = install_path / "public"
    try:
        owner_uid = public_dir.stat().st_uid
    except OSError:
        return default

    if sys.platform == "win32":
        return default

    import pwd

    try:
        return pwd.getpwuid(owner_uid).pw_name or default
    except KeyError:
        logger.debug("uid %s owning %s has no passwd entry", owner_uid, public_dir)
        return default


def running_as_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0
