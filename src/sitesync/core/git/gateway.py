"""
Git command gateway.

The only place in sitesync that crosses the process boundary. Commands are
composed as shell command lines (``git cherry-pick "<hash>"``), so every value
interpolated into one must pass through :func:`quote_arg` first.

Example:
    >>> gateway = GitGateway(project_dir=Path("."))
    >>> gateway.run(f"tag {quote_arg('pre-sync-2025-11-08-153022')}")
    ''
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Exception raised when a git operation fails."""

    def __init__(
        self,
        message: str,
        command: str | None = None,
        stderr: str = "",
        returncode: int | None = None,
        *,
        timed_out: bool = False,
    ):
        super().__init__(message)
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
        self.timed_out = timed_out

    @property
    def diagnostic(self) -> str:
        """Raw backend output for operator inspection, falling back to the message."""
        return self.stderr or str(self)


def escape_shell_arg(value: str) -> str:
    """
    Escape a value for use inside a double-quoted shell word.

    Replacement order matters: backslashes first, so later escapes are not
    doubled.

    Example:
        >>> escape_shell_arg('a "b" $c')
        'a \\\\"b\\\\" \\\\$c'
    """
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("`", "\\`")
        .replace("$", "\\$")
        .replace("\n", "\\n")
    )


def quote_arg(value: str) -> str:
    """Escape a value and wrap it in double quotes."""
    return f'"{escape_shell_arg(value)}"'


class GitGateway:
    """
    Runs git subcommands against a working repository.

    Args:
        project_dir: Root of the repository (defaults to cwd).
        executable: Name or path of the git executable.
        timeout: Per-call timeout in seconds; ``None`` waits indefinitely.
    """

    def __init__(
        self,
        project_dir: Path | None = None,
        executable: str = "git",
        timeout: float | None = None,
    ) -> None:
        self.project_dir = (project_dir or Path.cwd()).resolve()
        self.executable = executable
        self.timeout = timeout

    def run(self, args: str) -> str:
        """
        Run a git command and return its stdout.

        Args:
            args: Subcommand and arguments, already quoted, without the
                executable prefix.

        Returns:
            Command stdout as string (trailing whitespace stripped).

        Raises:
            GitError: On non-zero exit, timeout, or missing executable.
        """
        cmd = f"{self.executable} {args}"

        logger.debug("Running git command: %s", cmd)

        # Never open an editor for cherry-pick --continue and friends
        env = {**os.environ, "GIT_EDITOR": "true"}

        try:
            result = subprocess.run(
                cmd,
                shell=True,
                cwd=self.project_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=env,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(
                f"Git command timed out after {self.timeout}s: {cmd}",
                command=cmd,
                timed_out=True,
            ) from e
        except FileNotFoundError as e:
            raise GitError(f"Cannot run git in {self.project_dir}", command=cmd) from e

        if result.returncode != 0:
            stderr = result.stderr.strip() if result.stderr else ""
            # Cherry-pick reports CONFLICT lines on stdout
            if not stderr and result.stdout:
                stderr = result.stdout.strip()
            raise GitError(
                f"Git command failed: {cmd}",
                command=cmd,
                stderr=stderr,
                returncode=result.returncode,
            )

        return result.stdout.rstrip() if result.stdout else ""

    def is_git_repo(self) -> bool:
        """Check if the project directory is inside a git work tree."""
        try:
            self.run("rev-parse --git-dir")
            return True
        except GitError:
            return False

    def is_clean(self) -> bool:
        """
        Check whether the working tree has no uncommitted changes.

        Returns False when the status query itself fails.
        """
        try:
            return self.run("status --porcelain").strip() == ""
        except GitError:
            return False

    def current_branch(self) -> str:
        """Return the checked-out branch name, or "unknown" if it can't be read."""
        try:
            return self.run("branch --show-current").strip() or "unknown"
        except GitError:
            return "unknown"
