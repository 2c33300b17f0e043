"""
Remote tracking for the upstream template repository.

Makes sure the template remote is registered and fetched, and computes the
backlog of template commits the site has not picked up yet.
"""

from __future__ import annotations

import logging

from sitesync.core.git import GitError, GitGateway, quote_arg
from sitesync.core.sync.log_parser import LOG_PRETTY_FORMAT, parse_commit_log
from sitesync.core.sync.models import TemplateCommit

logger = logging.getLogger(__name__)


class RemoteTracker:
    """
    Tracks a named upstream remote.

    Example:
        >>> tracker = RemoteTracker(GitGateway())
        >>> tracker.ensure_remote("template", "https://github.com/acme/site-template.git")
        >>> tracker.fetch_remote("template", "main")
        >>> backlog = tracker.compute_backlog("HEAD", "template/main")
    """

    def __init__(self, gateway: GitGateway) -> None:
        self.gateway = gateway

    def list_remotes(self) -> list[str]:
        """Return configured remote names. Raises GitError on failure."""
        output = self.gateway.run("remote")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def has_remote(self, name: str) -> bool:
        """
        Check whether a remote with exactly this name is configured.

        Never raises: a failing backend reports no remote.
        """
        try:
            return name in self.list_remotes()
        except GitError as e:
            logger.debug("Could not list remotes: %s", e.diagnostic)
            return False

    def ensure_remote(self, name: str, url: str) -> bool:
        """
        Register ``url`` under ``name`` unless that remote already exists.

        Returns:
            True if the remote was added, False if it was already configured.

        Raises:
            GitError: If ``remote add`` fails.
        """
        if self.has_remote(name):
            logger.info("Remote %s already configured", name)
            return False

        self.gateway.run(f"remote add {quote_arg(name)} {quote_arg(url)}")
        logger.info("Added remote %s -> %s", name, url)
        return True

    def fetch_remote(self, name: str, branch: str) -> None:
        """
        Fetch ``branch`` from ``name`` into its remote-tracking ref.

        Raises:
            GitError: If the fetch fails. A stale backlog is worse than a
                visible failure, so this is never swallowed.
        """
        self.gateway.run(f"fetch {quote_arg(name)} {quote_arg(branch)}")
        logger.info("Fetched %s/%s", name, branch)

    def compute_backlog(self, local_ref: str, remote_ref: str) -> list[TemplateCommit]:
        """
        List commits reachable from ``remote_ref`` but not from ``local_ref``.

        Args:
            local_ref: Site ref (exclusive end of the range), usually HEAD.
            remote_ref: Template tracking ref, e.g. ``template/main``.

        Returns:
            Commits oldest first, the order they must be applied in;
            empty when up to date.

        Raises:
            GitError: If the log command fails.
        """
        output = self.gateway.run(
            f"log {quote_arg(f'{local_ref}..{remote_ref}')} "
            f"--pretty=format:{quote_arg(LOG_PRETTY_FORMAT)} --date=short --numstat --reverse"
        )
        if not output.strip():
            logger.info("%s is up to date with %s", local_ref, remote_ref)
            return []

        commits = parse_commit_log(output)
        logger.info("%s is %d commit(s) behind %s", local_ref, len(commits), remote_ref)
        return commits

    def is_behind(self, local_ref: str, remote_ref: str) -> bool:
        """True if ``remote_ref`` has commits ``local_ref`` lacks."""
        return bool(self.compute_backlog(local_ref, remote_ref))
