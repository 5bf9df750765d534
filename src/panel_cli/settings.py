"""User settings for panel-cli.

Settings resolve in three layers, later layers winning:

1. Built-in defaults
2. ``~/.panel-cli/config.toml`` (``[upgrade]`` table)
3. ``PANEL_CLI_*`` environment variables

``PANEL_CLI_HOME`` relocates the configuration directory.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import toml  # type: ignore[import-untyped]

from panel_cli.environment import DEFAULT_WEBSERVER_USER

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_TEMPLATE = "https://github.com/pterodactyl/panel/releases/%s/panel.tar.gz"

_ENV_OVERRIDES = {
    "PANEL_CLI_DOWNLOAD_TEMPLATE": "download_template",
    "PANEL_CLI_DEFAULT_USER": "default_user",
    "PANEL_CLI_PHP": "php_binary",
    "PANEL_CLI_COMPOSER": "composer_binary",
}


class SettingsError(ValueError):
    """The settings file exists but cannot be used."""


def get_config_dir() -> Path:
    if env_home := os.environ.get("PANEL_CLI_HOME"):
        return Path(env_home)
    return Path.home() / ".panel-cli"


@dataclass(frozen=True)
class UpgraderSettings:
    download_template: str = DEFAULT_DOWNLOAD_TEMPLATE
    default_user: str = DEFAULT_WEBSERVER_USER
    php_binary: str = "php"
    composer_binary: str = "composer"

    @classmethod
    def load(cls, config_file: Path | None = None) -> "UpgraderSettings":
        """Load settings from *config_file* (default location if omitted) and the environment."""
        if config_file is None:
            config_file = get_config_dir() / "config.toml"

        settings = cls()
        if config_file.exists():
            settings = replace(settings, **_read_upgrade_table(config_file))

        overrides = {
            field_name: value
            for env_var, field_name in _ENV_OVERRIDES.items()
            if (value := os.environ.get(env_var, "").strip())
        }
        if overrides:
            logger.debug("Settings overridden from environment: %s", sorted(overrides))
            settings = replace(settings, **overrides)

        try:
            settings.download_template % "latest/download"
        except (TypeError, ValueError) as exc:
            raise SettingsError(
                f"download_template must contain exactly one '%s' and escape any other '%' as '%%': "
                f"{settings.download_template!r} ({exc})"
            ) from exc
        return settings


def _read_upgrade_table(config_file: Path) -> dict[str, str]:
    try:
        config: dict[str, Any] = toml.load(config_file)
    except (OSError, toml.TomlDecodeError) as exc:
        raise SettingsError(f"Cannot read {config_file}: {exc}") from exc

    section = config.get("upgrade")
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise SettingsError(f"[upgrade] in {config_file} must be a table")

    known = set(_ENV_OVERRIDES.values())
    values: dict[str, str] = {}
    for key, value in section.items():
        if key not in known:
            logger.warning("Ignoring unknown setting upgrade.%s in %s", key, config_file)
            continue
        if not isinstance(value, str):
            raise SettingsError(f"upgrade.{key} in {config_file} must be a string")
        values[key] = value
    return values
