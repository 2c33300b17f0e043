"""
Rollback tags.

Before a batch touches the site, a ``pre-sync-YYYY-MM-DD-HHMMSS`` tag is
created at HEAD so the pre-sync state can be restored by hand or with
:meth:`RollbackTagManager.restore`.

Names have one-second resolution. Two batches started within the same
second produce the same name, and git's "already exists" error is raised
to the caller rather than skipped.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sitesync.core.git import GitGateway, quote_arg
from sitesync.core.sync.models import ROLLBACK_TAG_PREFIX, RollbackTag

logger = logging.getLogger(__name__)


class RollbackTagManager:
    """Creates, lists and restores pre-sync tags."""

    def __init__(self, gateway: GitGateway) -> None:
        self.gateway = gateway

    def create_rollback_tag(self) -> str:
        """
        Tag the current HEAD as the rollback point for a new batch.

        Returns:
            The tag name.

        Raises:
            GitError: If git cannot create the tag, including when a tag
                with the same name already exists.
        """
        tag = RollbackTag.for_time(datetime.now())
        self.gateway.run(f"tag {quote_arg(tag.name)}")
        logger.info("Rollback point created: %s", tag.name)
        return tag.name

    def list_rollback_tags(self) -> list[RollbackTag]:
        """Return existing rollback tags, newest first."""
        output = self.gateway.run(f"tag --list {quote_arg(ROLLBACK_TAG_PREFIX + '*')}")
        tags = [RollbackTag(name=line.strip()) for line in output.splitlines() if line.strip()]
        # The timestamp format sorts lexically
        return sorted(tags, key=lambda t: t.name, reverse=True)

    def latest_rollback_tag(self) -> RollbackTag | None:
        tags = self.list_rollback_tags()
        return tags[0] if tags else None

    def restore(self, tag_name: str) -> None:
        """
        Hard-reset the current branch to a rollback tag.

        Discards any commits and working tree changes made since the tag.

        Raises:
            GitError: If the tag does not exist or the reset fails.
        """
        self.gateway.run(f"reset --hard {quote_arg(tag_name)}")
        logger.info("Restored working tree to %s", tag_name)
