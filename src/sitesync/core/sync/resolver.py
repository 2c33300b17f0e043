"""Conflict resolution by taking one side wholesale."""

from __future__ import annotations

import logging

from sitesync.core.git import GitGateway, quote_arg
from sitesync.core.sync.models import ResolutionStrategy

logger = logging.getLogger(__name__)


class ConflictResolver:
    """
    Resolves conflicted paths during a halted cherry-pick.

    ``ours`` keeps the site's version, ``theirs`` takes the template's.
    Only meaningful while a cherry-pick is stopped on a conflict; otherwise
    git reports there is nothing to resolve and GitError is raised.
    """

    def __init__(self, gateway: GitGateway) -> None:
        self.gateway = gateway

    def resolve_conflict(self, path: str, strategy: ResolutionStrategy | str) -> None:
        """
        Check out one side of ``path`` and stage it.

        Raises:
            ValueError: If ``strategy`` is not "ours" or "theirs".
            GitError: If checkout or add fails.
        """
        strategy = ResolutionStrategy(strategy)
        quoted = quote_arg(path)
        self.gateway.run(f"checkout {strategy.checkout_flag} {quoted}")
        self.gateway.run(f"add {quoted}")
        logger.info("Resolved %s using %s", path, strategy.value)

    def resolve_all(self, paths: list[str], strategy: ResolutionStrategy | str) -> None:
        for path in paths:
            self.resolve_conflict(path, strategy)

    def continue_cherry_pick(self) -> None:
        """
        Resume the halted cherry-pick once every conflicted path is staged.

        Raises:
            GitError: If git refuses to continue.
        """
        self.gateway.run("cherry-pick --continue")
        logger.info("Continued cherry-pick")
