"""
Template synchronization service.

Ties the remote tracker, cherry-pick batch, rollback tags and conflict
resolver together into the workflow the CLI exposes:

1. ensure the template remote exists and fetch it
2. compute the backlog of template commits the site lacks
3. tag HEAD as the rollback point
4. cherry-pick the backlog in order, halting on the first conflict

A batch halted on a conflict is written to ``.git/sitesync-batch.json`` so the
conflict can be resolved and the batch continued from a later invocation.
"""

from __future__ import annotations

import contextlib
import json
import logging
from pathlib import Path

from sitesync.core.config import SiteSyncConfig, load_config
from sitesync.core.git import GitError, GitGateway
from sitesync.core.sync.cherry_pick import CherryPickBatch, CherryPickOrchestrator
from sitesync.core.sync.models import (
    BatchReport,
    BatchState,
    ResolutionStrategy,
    RollbackTag,
    SyncOverview,
    SyncStatus,
    TemplateCommit,
)
from sitesync.core.sync.remote import RemoteTracker
from sitesync.core.sync.resolver import ConflictResolver
from sitesync.core.sync.rollback import RollbackTagManager

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised when a sync precondition does not hold."""


class NotARepositoryError(SyncError):
    """The project directory is not a git work tree."""


class TemplateRemoteMissingError(SyncError):
    """The template remote is absent and no URL is configured to add it."""


class DirtyWorkingTreeError(SyncError):
    """The working tree has uncommitted changes."""


class BatchHaltedError(SyncError):
    """A previous batch is still halted on a conflict."""


class NoHaltedBatchError(SyncError):
    """There is no halted batch to resolve or continue."""


class TemplateSyncService:
    """
    Keeps a site repository aligned with its upstream template.

    Example:
        >>> service = TemplateSyncService(project_dir=Path("."))
        >>> report = service.start()
        >>> if report.halted_on and report.halted_on.status == SyncStatus.CONFLICT:
        ...     service.resolve(report.halted_on.conflicts, ResolutionStrategy.THEIRS)
        ...     report = service.resume()
    """

    STATE_FILE = ".git/sitesync-batch.json"

    def __init__(
        self,
        project_dir: Path | None = None,
        config: SiteSyncConfig | None = None,
        gateway: GitGateway | None = None,
    ) -> None:
        """
        Initialize the sync service.

        Args:
            project_dir: Root of the site repository (defaults to cwd).
            config: Configuration; loaded from the layered config files if omitted.
            gateway: Git gateway; built from ``config.git`` if omitted.
        """
        self.project_dir = (project_dir or Path.cwd()).resolve()
        self.config = config or load_config(self.project_dir)
        self.gateway = gateway or GitGateway(
            project_dir=self.project_dir,
            executable=self.config.git.executable,
            timeout=self.config.git.timeout_seconds,
        )
        self.tracker = RemoteTracker(self.gateway)
        self.orchestrator = CherryPickOrchestrator(self.gateway)
        self.resolver = ConflictResolver(self.gateway)
        self.rollback = RollbackTagManager(self.gateway)

    @property
    def state_file_path(self) -> Path:
        """Full path to the halted-batch state file."""
        return self.project_dir / self.STATE_FILE

    # ------------------------------------------------------------------
    # Halted batch state
    # ------------------------------------------------------------------

    def load_state(self) -> BatchState | None:
        """Load the halted batch, or None if there is none (or it is unreadable)."""
        if not self.state_file_path.exists():
            return None
        try:
            return BatchState.model_validate_json(self.state_file_path.read_text())
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("Ignoring unreadable batch state: %s", e)
            return None

    def _save_state(self, state: BatchState) -> None:
        """Save batch state atomically."""
        self.state_file_path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = self.state_file_path.with_suffix(".tmp")
        try:
            temp_path.write_text(state.model_dump_json(indent=2))
            temp_path.replace(self.state_file_path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def _clear_state(self) -> None:
        if self.state_file_path.exists():
            self.state_file_path.unlink()

    def _record(self, batch: CherryPickBatch, report: BatchReport) -> None:
        """Persist a conflict halt; forget the batch otherwise."""
        halted = report.halted_on
        if halted is not None and halted.status == SyncStatus.CONFLICT:
            remaining = [c for c in batch.backlog if c.hash in {halted.commit, *report.pending}]
            self._save_state(
                BatchState(
                    rollback_tag=report.rollback_tag,
                    remaining=remaining,
                    conflicts=halted.conflicts,
                )
            )
        else:
            self._clear_state()

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def _require_repo(self) -> None:
        if not self.gateway.is_git_repo():
            raise NotARepositoryError(f"Not a git repository: {self.project_dir}")

    def _session(self, batch: CherryPickBatch) -> contextlib.AbstractContextManager:
        if self.config.sync.auto_abort_on_error:
            return batch.session()
        return contextlib.nullcontext(batch)

    def prepare(self, fetch: bool = True) -> list[TemplateCommit]:
        """
        Make sure the template remote is set up and return the backlog.

        Raises:
            SyncError: If the remote is missing and no URL is configured.
            GitError: If adding, fetching or reading the log fails.
        """
        self._require_repo()
        template = self.config.template

        if template.url:
            self.tracker.ensure_remote(template.remote_name, template.url)
        elif not self.tracker.has_remote(template.remote_name):
            raise TemplateRemoteMissingError(
                f"Remote '{template.remote_name}' is not configured and no template URL is set"
            )

        if fetch:
            self.tracker.fetch_remote(template.remote_name, template.branch)

        return self.tracker.compute_backlog(template.local_ref, template.remote_ref)

    def get_status(self, fetch: bool = False) -> SyncOverview:
        """
        Summarize how far the site is behind the template.

        Backend errors while computing the backlog are logged and reported
        as zero commits behind.
        """
        template = self.config.template
        overview = SyncOverview(
            remote_name=template.remote_name,
            remote_ref=template.remote_ref,
            remote_configured=self.tracker.has_remote(template.remote_name),
            batch_halted=self.load_state() is not None,
            working_tree_clean=self.gateway.is_clean(),
            branch=self.gateway.current_branch(),
        )
        if not overview.remote_configured:
            return overview

        try:
            if fetch:
                self.tracker.fetch_remote(template.remote_name, template.branch)
            overview.commits_behind = len(
                self.tracker.compute_backlog(template.local_ref, template.remote_ref)
            )
        except GitError as e:
            logger.warning("Could not compute backlog: %s", e.diagnostic)
        return overview

    def start(self, fetch: bool = True) -> BatchReport:
        """
        Run a new sync batch.

        Returns:
            BatchReport; ``halted_on`` is set if a commit conflicted or failed.

        Raises:
            SyncError: If a batch is already halted or the working tree is dirty.
            GitError: If fetching, reading the log or creating the rollback tag fails.
        """
        self._require_repo()
        if self.load_state() is not None:
            raise BatchHaltedError(
                "A sync batch is halted on a conflict; continue or abort it first"
            )
        if self.config.sync.require_clean and not self.gateway.is_clean():
            raise DirtyWorkingTreeError("Working tree has uncommitted changes")

        backlog = self.prepare(fetch=fetch)
        if not backlog:
            return BatchReport()

        tag = self.rollback.create_rollback_tag()
        batch = CherryPickBatch(self.orchestrator, backlog, rollback_tag=tag)
        logger.info("Applying %d template commit(s)", len(backlog))

        with self._session(batch):
            report = batch.run()
        self._record(batch, report)
        return report

    def resolve(self, paths: list[str], strategy: ResolutionStrategy | str) -> None:
        """
        Resolve conflicted paths of the halted commit by taking one side.

        Raises:
            SyncError: If no batch is halted on a conflict.
            GitError: If checkout or add fails.
        """
        if self.load_state() is None:
            raise NoHaltedBatchError("No sync batch is halted on a conflict")
        self.resolver.resolve_all(paths, strategy)

    def conflicts(self) -> list[str]:
        """Paths currently unmerged in the working tree."""
        return self.orchestrator.get_conflict_files()

    def resume(self) -> BatchReport:
        """
        Continue the halted commit and apply the rest of the backlog.

        Raises:
            SyncError: If no batch is halted on a conflict.
            GitError: If ``cherry-pick --continue`` fails; the batch stays halted.
        """
        state = self.load_state()
        if state is None or state.halted_on is None:
            raise NoHaltedBatchError("No sync batch is halted on a conflict")

        batch = CherryPickBatch.resuming(
            self.orchestrator,
            state.remaining,
            state.conflicts,
            rollback_tag=state.rollback_tag,
        )
        batch.complete_current()
        with self._session(batch):
            report = batch.run()
        self._record(batch, report)
        return report

    def abort(self, restore: bool = False) -> str | None:
        """
        Abandon the current batch.

        Aborts any in-progress cherry-pick. With ``restore``, also resets the
        branch to the batch's rollback tag (or the newest rollback tag when
        no batch state is recorded).

        Returns:
            The tag restored to, if any.

        Raises:
            GitError: If the reset fails.
        """
        state = self.load_state()
        self.orchestrator.abort_cherry_pick()
        self._clear_state()

        if not restore:
            return None

        tag_name = state.rollback_tag if state else None
        if tag_name is None:
            latest = self.rollback.latest_rollback_tag()
            tag_name = latest.name if latest else None
        if tag_name is None:
            logger.warning("No rollback tag to restore")
            return None

        self.rollback.restore(tag_name)
        return tag_name

    def list_rollback_tags(self) -> list[RollbackTag]:
        return self.rollback.list_rollback_tags()

    def restore(self, tag_name: str) -> None:
        """Reset the site to a rollback tag. Raises GitError if it fails."""
        self.rollback.restore(tag_name)
