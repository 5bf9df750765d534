"""Build the ordered upgrade plan for one run."""

from __future__ import annotations

from panel_cli.settings import DEFAULT_DOWNLOAD_TEMPLATE

from .collaborators import (
    MIGRATE_ARGS,
    Collaborators,
    chmod_command,
    chown_command,
    composer_command,
    fetch_command,
)
from .executor import format_command
from .models import RunConfiguration, UpgradePlan, UpgradeStep


def resolve_download_url(
    url: str | None = None,
    release: str | None = None,
    template: str = DEFAULT_DOWNLOAD_TEMPLATE,
) -> str:
    """Return the archive location for this run.

    An explicit *url* always wins. Otherwise *release* pins the download to
    ``download/v<release>``; without it the latest release is used.
    """
    if url:
        return url
    if release:
        return template % f"download/v{release.removeprefix('v')}"
    return template % "latest/download"


def build_plan(config: RunConfiguration, collaborators: Collaborators | None = None) -> UpgradePlan:
    """Construct the fixed, ordered step list for *config*.

    Ten steps, or nine when ``config.skip_download`` drops the (only
    skippable) download step.
    """
    c = collaborators or Collaborators.default()
    optimize = config.optimize_dependencies

    def artisan(*args: str) -> str:
        return format_command([c.php_binary, "artisan", *args])

    steps = [
        UpgradeStep(
            key="download",
            name="Download and unpack archive",
            command=fetch_command(config.url),
            action=lambda ctx: c.fetcher.fetch(ctx, config.url),
            skippable=True,
        ),
        UpgradeStep(
            key="maintenance-on",
            name="Enter maintenance mode",
            command=artisan("down"),
            action=c.maintenance.enter,
        ),
        UpgradeStep(
            key="permissions",
            name="Fix storage permissions",
            command=format_command(chmod_command()),
            action=c.permissions.apply,
        ),
        UpgradeStep(
            key="dependencies",
            name="Install dependencies",
            command=format_command(composer_command(c.composer_binary, optimize=optimize)),
            action=lambda ctx: c.dependencies.install(ctx, optimize=optimize),
            bootstraps_context=True,
        ),
        UpgradeStep(
            key="view-cache",
            name="Clear view cache",
            command=artisan("view:clear"),
            action=c.caches.clear_views,
        ),
        UpgradeStep(
            key="config-cache",
            name="Clear config cache",
            command=artisan("config:clear"),
            action=c.caches.clear_config,
        ),
        UpgradeStep(
            key="migrate",
            name="Migrate and seed database",
            command=artisan(*MIGRATE_ARGS),
            action=c.migrations.migrate,
        ),
        UpgradeStep(
            key="ownership",
            name="Restore file ownership",
            command=chown_command(config.user),
            action=lambda ctx: c.ownership.chown(ctx, config.user),
        ),
        UpgradeStep(
            key="workers",
            name="Restart queue workers",
            command=artisan("queue:restart"),
            action=c.workers.restart,
        ),
        UpgradeStep(
            key="maintenance-off",
            name="Exit maintenance mode",
            command=artisan("up"),
            action=c.maintenance.exit,
        ),
    ]

    if config.skip_download:
        steps = [step for step in steps if not step.skippable]
    return UpgradePlan(tuple(steps))
