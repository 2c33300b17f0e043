"""
sitesync CLI - template synchronization commands.

Provides the CLI interface to TemplateSyncService: inspect the backlog,
apply it, and work through conflicts.
"""

from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from sitesync.cli.errors import (
    ExitCode,
    print_batch_halted_error,
    print_dirty_working_tree_error,
    print_error,
    print_git_error,
    print_no_halted_batch_error,
    print_no_template_error,
    print_not_git_repo_error,
)
from sitesync.core.config import SiteSyncConfig, load_config
from sitesync.core.git import GitError
from sitesync.core.sync import (
    BatchHaltedError,
    BatchReport,
    DirtyWorkingTreeError,
    NoHaltedBatchError,
    NotARepositoryError,
    ResolutionStrategy,
    SyncError,
    SyncStatus,
    TemplateCommit,
    TemplateRemoteMissingError,
    TemplateSyncService,
)

console = Console()


def _build_service(
    url: str | None = None,
    branch: str | None = None,
    remote: str | None = None,
) -> TemplateSyncService:
    """Load config for the current directory and apply command-line overrides."""
    project_dir = Path.cwd()
    config: SiteSyncConfig = load_config(project_dir)
    template = config.template.model_copy(
        update={
            k: v
            for k, v in {"url": url, "branch": branch, "remote_name": remote}.items()
            if v is not None
        }
    )
    config = config.model_copy(update={"template": template})
    return TemplateSyncService(project_dir=project_dir, config=config)


def _fail(exc: Exception, service: TemplateSyncService | None = None) -> NoReturn:
    """Print a friendly message for a known failure and exit."""
    if isinstance(exc, GitError):
        print_git_error(exc.diagnostic)
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    if isinstance(exc, NotARepositoryError):
        print_not_git_repo_error()
    elif isinstance(exc, TemplateRemoteMissingError):
        name = service.config.template.remote_name if service else "template"
        print_no_template_error(name)
    elif isinstance(exc, DirtyWorkingTreeError):
        print_dirty_working_tree_error()
    elif isinstance(exc, BatchHaltedError):
        print_batch_halted_error()
    elif isinstance(exc, NoHaltedBatchError):
        print_no_halted_batch_error()
    else:
        print_error(str(exc))
    raise typer.Exit(ExitCode.USER_ERROR)


def _print_backlog(commits: list[TemplateCommit], title: str) -> None:
    table = Table(title=title)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Commit", style="cyan")
    table.add_column("Date")
    table.add_column("Author")
    table.add_column("Summary")
    table.add_column("Files", justify="right")
    table.add_column("+/-", justify="right")

    for i, commit in enumerate(commits, start=1):
        table.add_row(
            str(i),
            commit.short_hash,
            commit.date.isoformat(),
            commit.author,
            commit.summary[:60],
            str(len(commit.files_changed)),
            f"[green]+{commit.additions}[/green] [red]-{commit.deletions}[/red]",
        )

    console.print(table)


def _print_report(report: BatchReport) -> None:
    """Print a batch report and exit non-zero if it halted."""
    for result in report.results:
        if result.status == SyncStatus.SUCCESS:
            console.print(f"[green]✓[/green] {result.summary()}")

    halted = report.halted_on
    if halted is None:
        if report.results:
            console.print(f"[green]✓[/green] Site is up to date ({report.summary()})")
        else:
            console.print("[green]✓[/green] Already up to date with template")
        return

    if halted.status == SyncStatus.CONFLICT:
        console.print(f"[yellow]⚠[/yellow]  {halted.summary()}")
        for path in halted.conflicts:
            console.print(f"    [yellow]{path}[/yellow]")
        if report.pending:
            console.print(f"[dim]{len(report.pending)} commit(s) waiting[/dim]")
        console.print(
            "\n[dim]→ Resolve with [bold]sitesync resolve PATH --ours|--theirs[/bold], "
            "then [bold]sitesync continue[/bold] (or [bold]sitesync abort[/bold])[/dim]"
        )
        raise typer.Exit(ExitCode.CONFLICT)

    console.print(f"[red]✗[/red] {halted.summary()}")
    console.print(
        "\n[dim]→ Run [bold]sitesync abort[/bold] to clear the failed cherry-pick[/dim]"
    )
    if report.rollback_tag:
        console.print(
            f"[dim]→ Then [bold]sitesync rollback restore {report.rollback_tag}[/bold] "
            "to also drop the commits applied so far[/dim]"
        )
    raise typer.Exit(ExitCode.GENERAL_ERROR)


def status(
    fetch: bool = typer.Option(
        False,
        "--fetch",
        "-f",
        help="Fetch the template before comparing",
    ),
) -> None:
    """
    Show how far the site is behind its template.

    Examples:
        sitesync status            # Compare against the last fetch
        sitesync status --fetch    # Fetch first
    """
    service = _build_service()
    overview = service.get_status(fetch=fetch)

    table = Table(title="Template Sync", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Branch", overview.branch)
    table.add_row(
        "Template remote",
        overview.remote_name if overview.remote_configured else "[red]not configured[/red]",
    )
    table.add_row("Tracking", overview.remote_ref)
    table.add_row("Commits behind", str(overview.commits_behind))
    tree_state = "clean" if overview.working_tree_clean else "[yellow]dirty[/yellow]"
    table.add_row("Working tree", tree_state)
    if overview.batch_halted:
        table.add_row("Batch", "[yellow]halted on a conflict[/yellow]")
    console.print(table)

    if overview.batch_halted:
        console.print("\n[dim]→ Run [bold]sitesync continue[/bold] after resolving[/dim]")
    elif overview.commits_behind:
        console.print(
            "\n[dim]→ Run [bold]sitesync apply[/bold] to pick up template changes[/dim]"
        )


def backlog(
    url: str | None = typer.Option(None, "--url", help="Template repository URL"),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Template branch"),
    no_fetch: bool = typer.Option(False, "--no-fetch", help="Use already-fetched refs"),
) -> None:
    """
    List template commits the site has not picked up yet.

    Examples:
        sitesync backlog
        sitesync backlog --url https://github.com/acme/site-template.git
    """
    service = _build_service(url=url, branch=branch)
    try:
        commits = service.prepare(fetch=not no_fetch)
    except (SyncError, GitError) as e:
        _fail(e, service)

    if not commits:
        console.print("[green]✓[/green] Already up to date with template")
        return

    _print_backlog(commits, f"Template Backlog ({len(commits)} commits)")


def apply(
    url: str | None = typer.Option(None, "--url", help="Template repository URL"),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Template branch"),
    no_fetch: bool = typer.Option(False, "--no-fetch", help="Use already-fetched refs"),
) -> None:
    """
    Apply the template backlog to the site.

    Tags HEAD as a rollback point, then cherry-picks template commits
    oldest first. Stops at the first conflict.

    Examples:
        sitesync apply
        sitesync apply --branch next
    """
    service = _build_service(url=url, branch=branch)
    try:
        report = service.start(fetch=not no_fetch)
    except (SyncError, GitError) as e:
        _fail(e, service)

    if report.rollback_tag:
        console.print(f"[green]✓[/green] Rollback point created: {report.rollback_tag}")
    _print_report(report)


def resolve(
    paths: list[str] = typer.Argument(None, help="Conflicted paths (default: all)"),
    ours: bool = typer.Option(False, "--ours", help="Keep the site's version"),
    theirs: bool = typer.Option(False, "--theirs", help="Take the template's version"),
) -> None:
    """
    Resolve conflicted paths by taking one side, then stage them.

    Examples:
        sitesync resolve --theirs                  # Every conflicted path
        sitesync resolve src/layout.astro --ours   # One path
    """
    if ours == theirs:
        print_error("Choose exactly one of --ours or --theirs")
        raise typer.Exit(ExitCode.USER_ERROR)
    strategy = ResolutionStrategy.OURS if ours else ResolutionStrategy.THEIRS

    service = _build_service()
    targets = paths or service.conflicts()
    if not targets:
        console.print("[blue]No conflicted paths[/blue]")
        return

    try:
        service.resolve(targets, strategy)
    except (SyncError, GitError) as e:
        _fail(e, service)

    for path in targets:
        console.print(f"[green]✓[/green] {path} ({strategy.value})")
    console.print("\n[dim]→ Run [bold]sitesync continue[/bold] to carry on[/dim]")


def continue_batch() -> None:
    """
    Continue the halted cherry-pick and apply the rest of the backlog.

    Run after every conflicted path has been resolved and staged.

    Examples:
        sitesync resolve --theirs
        sitesync continue
    """
    service = _build_service()
    try:
        report = service.resume()
    except (SyncError, GitError) as e:
        _fail(e, service)

    _print_report(report)


def abort(
    restore: bool = typer.Option(
        False,
        "--restore",
        help="Also reset the branch to the batch's rollback tag",
    ),
) -> None:
    """
    Abandon the halted batch.

    Examples:
        sitesync abort             # Drop the in-progress cherry-pick
        sitesync abort --restore   # And return to the pre-sync state
    """
    service = _build_service()
    try:
        tag = service.abort(restore=restore)
    except GitError as e:
        _fail(e, service)

    console.print("[green]✓[/green] Aborted")
    if tag:
        console.print(f"[green]✓[/green] Restored {tag}")


def conflicts() -> None:
    """List paths currently left unmerged."""
    service = _build_service()
    paths = service.conflicts()
    if not paths:
        console.print("[blue]No conflicted paths[/blue]")
        return
    for path in paths:
        console.print(path)


def show_config() -> None:
    """Show the effective configuration."""
    config = load_config(Path.cwd())
    console.print_json(config.model_dump_json())
