"""Upgrade command implementation for the panel CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.panel import Panel

from panel_cli.cli.helpers import configure_logging, console, show_banner
from panel_cli.cli.ui import ConsolePrompter, StepTracker
from panel_cli.environment import (
    WEBSERVER_USER_CHOICES,
    detect_webserver_user,
    read_panel_environment,
    running_as_root,
)
from panel_cli.settings import SettingsError, UpgraderSettings
from panel_cli.upgrade import (
    Collaborators,
    ExecutionContext,
    RunConfiguration,
    RunResult,
    SubprocessExecutor,
    UpgradePlan,
    UpgradeRunner,
    resolve_download_url,
)
from panel_cli.upgrade.progress import RichProgressReporter
from panel_cli.upgrade.prompts import Prompter, is_interactive

INTEGRITY_WARNING = (
    "This command does not verify the integrity of downloaded assets. Please ensure that you "
    "trust the download source before continuing. If you do not wish to download an archive, "
    "please indicate that using the --skip-download flag, or answering \"no\" to the question below."
)
DOWNLOAD_QUESTION = "Would you like to download and unpack the archive files for the latest version?"
USER_QUESTION = (
    "Please enter the name of the user running your webserver process. This varies from system "
    "to system, but is generally \"www-data\", \"nginx\", or \"apache\"."
)
MAX_ERROR_LINES = 20


def _make_prompter() -> Prompter:
    return ConsolePrompter(console)


def _make_collaborators(settings: UpgraderSettings) -> Collaborators:
    return Collaborators.default(
        composer_binary=settings.composer_binary,
        php_binary=settings.php_binary,
    )


def _resolve_user(
    prompter: Prompter,
    install_path: Path,
    explicit_user: str | None,
    default_user: str,
    interactive: bool,
) -> str:
    if explicit_user:
        return explicit_user
    if not interactive:
        return default_user

    detected = detect_webserver_user(install_path, default_user)
    if prompter.confirm(f"Your webserver user has been detected as [{detected}]: is this correct?", default=True):
        return detected
    chosen = prompter.choose(USER_QUESTION, list(WEBSERVER_USER_CHOICES))
    return chosen or detected


def _render_plan(plan: UpgradePlan, result: RunResult | None = None) -> None:
    tracker = StepTracker("Upgrade Plan")
    for step in plan:
        tracker.add(step.key, step.name, step.command)

    if result is not None:
        for key in result.completed_steps:
            tracker.complete(key)
        if result.failure is not None:
            tracker.error(result.failure.step, result.failure.detail)
        reached = set(result.completed_steps)
        if result.failure is not None:
            reached.add(result.failure.step)
        for step in plan:
            if step.key not in reached:
                tracker.skip(step.key, "not run")

    console.print(tracker.render())


def _print_failure(plan: UpgradePlan, result: RunResult) -> None:
    failure = result.failure
    if failure is None:
        return

    error_lines = [line.text for line in failure.outcome.error_lines]
    if not error_lines:
        error_lines = [line.text for line in result.error_output]
    if not error_lines and failure.detail:
        error_lines = [failure.detail]

    console.print()
    _render_plan(plan, result)
    console.print()
    body = "\n".join(escape(text) for text in error_lines[-MAX_ERROR_LINES:]) or "(no error output)"
    console.print(
        Panel(
            body,
            title=f"[bold]{escape(str(failure))}[/bold]",
            border_style="red",
        )
    )
    console.print(
        f"[bold red]Upgrade failed[/bold red] at step {result.progress + 1} of {result.total}. "
        "The panel may still be in maintenance mode; earlier steps were not rolled back."
    )


def upgrade(
    user: Optional[str] = typer.Option(
        None, "--user", help="The user that PHP runs under. All files will be owned by this user."
    ),
    url: Optional[str] = typer.Option(None, "--url", help="The specific archive to download."),
    release: Optional[str] = typer.Option(
        None, "--release", help="A specific panel version to download. Leave blank to use latest."
    ),
    skip_download: bool = typer.Option(
        False, "--skip-download", help="If set no archive will be downloaded."
    ),
    path: Path = typer.Option(
        Path("."),
        "--path",
        help="Panel installation directory (defaults to the current directory)",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    no_interaction: bool = typer.Option(
        False, "--no-interaction", "-n", help="Do not ask any interactive question"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the upgrade plan without running it"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Download a new panel release and run the standard upgrade commands.

    The panel is placed in maintenance mode while dependencies are installed,
    caches are cleared and the database is migrated, and is brought back up
    once every step has succeeded.

    Examples:
        panel upgrade                          # Upgrade to the latest release
        panel upgrade --release 1.11.5         # Upgrade to a specific release
        panel upgrade --skip-download -n       # Re-run the upgrade steps only
    """
    configure_logging(verbose)
    show_banner()

    try:
        settings = UpgraderSettings.load()
    except SettingsError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    install_path = path.resolve()
    download_url = resolve_download_url(url, release, settings.download_template)
    interactive = not no_interaction and is_interactive()
    prompter = _make_prompter()

    if not skip_download:
        console.print(Panel(INTEGRITY_WARNING, title="[bold]Warning[/bold]", border_style="yellow"))
        console.print("[yellow]Download Source (set with --url=):[/yellow]")
        console.print(download_url, highlight=False, soft_wrap=True)
        console.print()

    if interactive and not skip_download:
        skip_download = not prompter.confirm(DOWNLOAD_QUESTION, default=True)

    owner = _resolve_user(prompter, install_path, user, settings.default_user, interactive)
    panel_environment = read_panel_environment(install_path)

    config = RunConfiguration(
        install_path=install_path,
        url=download_url,
        user=owner,
        skip_download=skip_download,
        environment=panel_environment.app_env,
        debug=panel_environment.app_debug,
    )

    context = ExecutionContext(install_path, SubprocessExecutor(), php_binary=settings.php_binary)
    runner = UpgradeRunner(
        context,
        prompter=prompter,
        reporter=RichProgressReporter(console),
        collaborators=_make_collaborators(settings),
    )
    plan = runner.build_plan(config)

    if dry_run:
        _render_plan(plan)
        console.print()
        console.print(Panel("[yellow]DRY RUN[/yellow] - No changes were made", border_style="yellow"))
        return

    if not running_as_root():
        console.print(
            "[yellow]Warning:[/yellow] not running as root; changing file ownership to "
            f"[bold]{escape(owner)}[/bold] will likely fail."
        )

    try:
        result = runner.execute(plan, interactive=interactive)
    except KeyboardInterrupt:
        console.print("\n[yellow]Upgrade interrupted.[/yellow] The panel may still be in maintenance mode.")
        raise typer.Exit(130)

    if result.cancelled:
        console.print("[yellow]Upgrade cancelled.[/yellow]")
        return

    if not result.success:
        _print_failure(plan, result)
        raise typer.Exit(result.exit_code)

    console.print()
    console.print("[bold green]Finished running upgrade.[/bold green]")
