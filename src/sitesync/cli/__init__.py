"""
sitesync CLI - Main application entry point.

Builds the Typer app and wires in the sync, conflict and rollback commands.
"""

import logging

import typer
from rich.console import Console

from sitesync import __version__
from sitesync.cli import rollback, sync
from sitesync.core.config.env import load_layered_env

PANEL_SYNC = "Sync with the Template"
PANEL_CONFLICTS = "Work through Conflicts"
PANEL_INFO = "Inspect"

app = typer.Typer(
    name="sitesync",
    help="Keep a site repository aligned with its upstream template",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    sitesync - replay template commits onto your site.

    Quick Start:
        1. sitesync backlog --url https://github.com/<owner>/<template>.git
        2. sitesync apply
        3. sitesync resolve --theirs && sitesync continue   # on conflict

    Every apply tags HEAD first (pre-sync-YYYY-MM-DD-HHMMSS) so you can
    always get back with `sitesync rollback restore`.
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    ctx.obj = {"debug": debug}


# =============================================================================
# Sync with the Template
# =============================================================================

app.command(name="status", rich_help_panel=PANEL_SYNC)(sync.status)
app.command(name="backlog", rich_help_panel=PANEL_SYNC)(sync.backlog)
app.command(name="apply", rich_help_panel=PANEL_SYNC)(sync.apply)
app.add_typer(rollback.app, name="rollback", rich_help_panel=PANEL_SYNC)


# =============================================================================
# Work through Conflicts
# =============================================================================

app.command(name="conflicts", rich_help_panel=PANEL_CONFLICTS)(sync.conflicts)
app.command(name="resolve", rich_help_panel=PANEL_CONFLICTS)(sync.resolve)
app.command(name="continue", rich_help_panel=PANEL_CONFLICTS)(sync.continue_batch)
app.command(name="abort", rich_help_panel=PANEL_CONFLICTS)(sync.abort)


# =============================================================================
# Inspect
# =============================================================================

app.command(name="config", rich_help_panel=PANEL_INFO)(sync.show_config)


@app.command(rich_help_panel=PANEL_INFO)
def version() -> None:
    """Show sitesync version and exit."""
    console.print(f"sitesync version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
