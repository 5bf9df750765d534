"""External collaborators consumed by upgrade steps.

Each collaborator is a narrow interface; the default implementations shell
out through the :class:`ExecutionContext` (and therefore its executor) or,
for framework sub-commands, through the panel's ``artisan`` console.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from typing import Protocol

from .context import ExecutionContext
from .download import HttpArchiveFetcher
from .models import StepOutcome

WRITABLE_DIRECTORIES = ("storage", "bootstrap/cache")
WRITABLE_MODE = "755"


class ArchiveFetcher(Protocol):
    def fetch(self, ctx: ExecutionContext, url: str) -> StepOutcome: ...


class MaintenanceToggler(Protocol):
    def enter(self, ctx: ExecutionContext) -> StepOutcome: ...

    def exit(self, ctx: ExecutionContext) -> StepOutcome: ...


class PermissionSetter(Protocol):
    def apply(self, ctx: ExecutionContext) -> StepOutcome: ...


class DependencyInstaller(Protocol):
    def install(self, ctx: ExecutionContext, *, optimize: bool) -> StepOutcome: ...


class CacheClearer(Protocol):
    def clear_views(self, ctx: ExecutionContext) -> StepOutcome: ...

    def clear_config(self, ctx: ExecutionContext) -> StepOutcome: ...


class MigrationRunner(Protocol):
    def migrate(self, ctx: ExecutionContext) -> StepOutcome: ...


class OwnershipSetter(Protocol):
    def chown(self, ctx: ExecutionContext, user: str) -> StepOutcome: ...


class WorkerRestarter(Protocol):
    def restart(self, ctx: ExecutionContext) -> StepOutcome: ...


# --------------------------------------------------------------------------- #
# Command builders, shared by the collaborators and the plan's trace lines
# --------------------------------------------------------------------------- #


def fetch_command(url: str) -> str:
    return f'curl -L "{url}" | tar -xzv'


def chmod_command() -> list[str]:
    return ["chmod", "-R", WRITABLE_MODE, *WRITABLE_DIRECTORIES]


def composer_command(composer_binary: str = "composer", *, optimize: bool) -> list[str]:
    command = [composer_binary, "install", "--no-ansi"]
    if optimize:
        command += ["--optimize-autoloader", "--no-dev"]
    return command


def chown_command(user: str) -> str:
    owner = shlex.quote(f"{user}:{user}")
    return f"chown -R {owner} *"


MIGRATE_ARGS = ("migrate", "--seed", "--force")


# --------------------------------------------------------------------------- #
# Default implementations
# --------------------------------------------------------------------------- #


class ArtisanMaintenance:
    def enter(self, ctx: ExecutionContext) -> StepOutcome:
        return StepOutcome.from_exec(ctx.artisan("down"))

    def exit(self, ctx: ExecutionContext) -> StepOutcome:
        return StepOutcome.from_exec(ctx.artisan("up"))


class ChmodPermissions:
    def apply(self, ctx: ExecutionContext) -> StepOutcome:
        return StepOutcome.from_exec(ctx.run(chmod_command()))


class ComposerInstaller:
    def __init__(self, composer_binary: str = "composer"):
        self.composer_binary = composer_binary

    def install(self, ctx: ExecutionContext, *, optimize: bool) -> StepOutcome:
        return StepOutcome.from_exec(ctx.run(composer_command(self.composer_binary, optimize=optimize)))


class ArtisanCaches:
    def clear_views(self, ctx: ExecutionContext) -> StepOutcome:
        return StepOutcome.from_exec(ctx.artisan("view:clear"))

    def clear_config(self, ctx: ExecutionContext) -> StepOutcome:
        return StepOutcome.from_exec(ctx.artisan("config:clear"))


class ArtisanMigrations:
    def migrate(self, ctx: ExecutionContext) -> StepOutcome:
        return StepOutcome.from_exec(ctx.artisan(*MIGRATE_ARGS))


class ChownOwnership:
    def chown(self, ctx: ExecutionContext, user: str) -> StepOutcome:
        # Through the shell so that ``*`` expands like it does for an operator.
        return StepOutcome.from_exec(ctx.run(chown_command(user), shell=True))


class ArtisanQueueRestarter:
    def restart(self, ctx: ExecutionContext) -> StepOutcome:
        return StepOutcome.from_exec(ctx.artisan("queue:restart"))


@dataclass
class Collaborators:
    """The set of collaborators one plan's steps delegate to."""

    fetcher: ArchiveFetcher = field(default_factory=HttpArchiveFetcher)
    maintenance: MaintenanceToggler = field(default_factory=ArtisanMaintenance)
    permissions: PermissionSetter = field(default_factory=ChmodPermissions)
    dependencies: DependencyInstaller = field(default_factory=ComposerInstaller)
    caches: CacheClearer = field(default_factory=ArtisanCaches)
    migrations: MigrationRunner = field(default_factory=ArtisanMigrations)
    ownership: OwnershipSetter = field(default_factory=ChownOwnership)
    workers: WorkerRestarter = field(default_factory=ArtisanQueueRestarter)
    composer_binary: str = "composer"
    php_binary: str = "php"

    @classmethod
    def default(cls, *, composer_binary: str = "composer", php_binary: str = "php") -> "Collaborators":
        return cls(
            dependencies=ComposerInstaller(composer_binary),
            composer_binary=composer_binary,
            php_binary=php_binary,
        )
