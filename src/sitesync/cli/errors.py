"""
Exit codes and error output for the sitesync CLI.

Every failure is printed as a problem line, an optional dimmed reason, and
an optional suggested next command.
"""

from enum import IntEnum

from rich.console import Console

console = Console()


class ExitCode(IntEnum):
    """Process exit status of a sitesync command."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    """Git itself failed."""

    USER_ERROR = 2
    """A precondition the user can fix: no repo, no remote, dirty tree."""

    CONFLICT = 3
    """A template commit conflicted and needs resolving."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a failure with optional context and a suggested fix.

    Args:
        problem: One line saying what failed
        reason: Why, when it is not obvious
        solution: Command or action that gets the user unstuck
    """
    console.print(f"[red]Error:[/red] {problem}")
    if reason:
        console.print(f"[dim]{reason}[/dim]")
    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_git_error(diagnostic: str) -> None:
    print_error("Git command failed", reason=diagnostic)


def print_not_git_repo_error() -> None:
    print_error(
        "Not a git repository",
        reason="sitesync replays template commits onto a git checkout",
        solution="cd to your site's repository root",
    )


def print_no_template_error(remote_name: str) -> None:
    print_error(
        f"Template remote '{remote_name}' is not configured",
        reason="No template URL was given and the remote does not exist yet",
        solution="sitesync apply --url https://github.com/<owner>/<template>.git",
    )


def print_dirty_working_tree_error() -> None:
    print_error(
        "Uncommitted changes detected",
        reason="Cherry-picking onto a dirty working tree can lose your changes",
        solution="commit or stash them first",
    )


def print_no_halted_batch_error() -> None:
    print_error("No sync batch is waiting on a conflict", solution="sitesync apply")


def print_batch_halted_error() -> None:
    print_error(
        "A sync batch is halted on a conflict",
        reason="Finish or abandon it before starting another",
        solution="sitesync continue  # or sitesync abort",
    )


__all__ = [
    "ExitCode",
    "print_batch_halted_error",
    "print_dirty_working_tree_error",
    "print_error",
    "print_git_error",
    "print_no_halted_batch_error",
    "print_no_template_error",
    "print_not_git_repo_error",
]
