"""
sitesync CLI - rollback tag commands.

Lists the pre-sync tags created before each batch and resets the site to
one of them.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from sitesync.cli.errors import ExitCode, print_error, print_git_error
from sitesync.core.git import GitError
from sitesync.core.sync import TemplateSyncService

console = Console()
app = typer.Typer(
    name="rollback",
    help="List and restore pre-sync rollback points",
    no_args_is_help=True,
)


@app.command(name="list")
def list_tags() -> None:
    """
    List rollback tags, newest first.

    Examples:
        sitesync rollback list
    """
    service = TemplateSyncService(project_dir=Path.cwd())
    try:
        tags = service.list_rollback_tags()
    except GitError as e:
        print_git_error(e.diagnostic)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if not tags:
        console.print("[blue]No rollback tags[/blue]")
        return

    table = Table(title=f"Rollback Tags ({len(tags)})")
    table.add_column("Tag", style="cyan")
    table.add_column("Created")
    for tag in tags:
        created = tag.created_at
        table.add_row(tag.name, created.strftime("%Y-%m-%d %H:%M:%S") if created else "-")
    console.print(table)


@app.command()
def restore(
    tag: str | None = typer.Argument(None, help="Tag to restore (default: newest)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """
    Hard-reset the current branch to a rollback tag.

    Uncommitted changes and commits made since the tag are discarded.

    Examples:
        sitesync rollback restore
        sitesync rollback restore pre-sync-2025-11-08-153022 --yes
    """
    service = TemplateSyncService(project_dir=Path.cwd())

    try:
        if tag is None:
            latest = service.rollback.latest_rollback_tag()
            if latest is None:
                print_error("No rollback tags found")
                raise typer.Exit(ExitCode.USER_ERROR)
            tag = latest.name

        if not yes and not typer.confirm(f"Reset the current branch to {tag}?"):
            raise typer.Exit(ExitCode.SUCCESS)

        service.restore(tag)
    except GitError as e:
        print_git_error(e.diagnostic)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]✓[/green] Restored {tag}")
