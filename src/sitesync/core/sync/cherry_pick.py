"""
Cherry-pick orchestration.

Applies template commits to the site one at a time. A failed cherry-pick is
only classified after the fact: the working tree status is probed, and
unmerged paths make it a conflict; anything else is an error.

Per-commit states::

    PENDING -> APPLYING -> SUCCEEDED
                        -> CONFLICTED -> SUCCEEDED   (resolve + continue)
                        -> FAILED

A batch halts on the first CONFLICTED or FAILED commit and never reorders
or skips ahead.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sitesync.core.git import GitError, GitGateway, quote_arg
from sitesync.core.sync.models import (
    BatchReport,
    CommitState,
    SyncResult,
    SyncStatus,
    TemplateCommit,
)
from sitesync.core.sync.resolver import ConflictResolver

logger = logging.getLogger(__name__)

# Porcelain XY codes for unmerged paths
CONFLICT_MARKERS = ("UU ", "AA ")

_C_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "t": "\t",
    "n": "\n",
    "v": "\v",
    "f": "\f",
    "r": "\r",
    '"': '"',
    "\\": "\\",
}


def unquote_path(raw: str) -> str:
    """
    Undo git's C-style quoting of a path in porcelain output.

    Paths with spaces or special characters are wrapped in double quotes
    with backslash escapes; non-ASCII bytes appear as three-digit octal.
    Unquoted paths are returned as they are.

    Example:
        >>> unquote_path('"my post.md"')
        'my post.md'
    """
    if len(raw) < 2 or not (raw.startswith('"') and raw.endswith('"')):
        return raw

    body = raw[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        octal = body[i + 1 : i + 4]
        if ch != "\\":
            out += ch.encode("utf-8")
            i += 1
        elif len(octal) == 3 and all(c in "01234567" for c in octal):
            out.append(int(octal, 8) & 0xFF)
            i += 4
        elif body[i + 1 : i + 2] in _C_ESCAPES:
            out += _C_ESCAPES[body[i + 1]].encode("utf-8")
            i += 2
        else:
            out += b"\\"
            i += 1
    return out.decode("utf-8", errors="replace")


class CherryPickOrchestrator:
    """Drives single-commit cherry-picks through the git gateway."""

    def __init__(self, gateway: GitGateway) -> None:
        self.gateway = gateway
        self.resolver = ConflictResolver(gateway)

    def get_conflict_files(self) -> list[str]:
        """
        List paths the working tree reports as both modified or both added.

        A failing status query yields an empty list.
        """
        try:
            output = self.gateway.run("status --porcelain")
        except GitError as e:
            logger.debug("Status query failed: %s", e.diagnostic)
            return []

        return [
            unquote_path(line[3:].strip())
            for line in output.splitlines()
            if line.startswith(CONFLICT_MARKERS)
        ]

    def cherry_pick_commit(self, commit_hash: str) -> SyncResult:
        """
        Apply one commit onto the current branch.

        Never raises for backend failures; they are folded into the result.
        Status is probed only after a failure, never before.
        """
        try:
            self.gateway.run(f"cherry-pick {quote_arg(commit_hash)}")
        except GitError as e:
            if e.timed_out:
                logger.error("Cherry-pick of %s timed out", commit_hash[:8])
                return SyncResult.failure(commit_hash, e.diagnostic)

            conflicts = self.get_conflict_files()
            if conflicts:
                logger.warning(
                    "Cherry-pick of %s conflicted in %d file(s)", commit_hash[:8], len(conflicts)
                )
                return SyncResult.conflict(commit_hash, conflicts)

            logger.error("Cherry-pick of %s failed: %s", commit_hash[:8], e.diagnostic)
            return SyncResult.failure(commit_hash, e.diagnostic)

        logger.info("Applied %s", commit_hash[:8])
        return SyncResult.success(commit_hash)

    def abort_cherry_pick(self) -> None:
        """Abort the in-progress cherry-pick. A no-op if none is in progress."""
        try:
            self.gateway.run("cherry-pick --abort")
            logger.info("Aborted cherry-pick in progress")
        except GitError as e:
            logger.debug("Nothing to abort: %s", e.diagnostic)


class CherryPickBatch:
    """
    Applies a backlog in order, halting on the first conflict or error.

    Example:
        >>> batch = CherryPickBatch(orchestrator, backlog)
        >>> report = batch.run()
        >>> if report.halted_on and report.halted_on.status == SyncStatus.CONFLICT:
        ...     resolver.resolve_all(report.halted_on.conflicts, ResolutionStrategy.THEIRS)
        ...     report = batch.resume()
    """

    def __init__(
        self,
        orchestrator: CherryPickOrchestrator,
        backlog: list[TemplateCommit],
        rollback_tag: str | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.backlog = list(backlog)
        self.rollback_tag = rollback_tag
        self.states: dict[str, CommitState] = {c.hash: CommitState.PENDING for c in self.backlog}
        self.results: list[SyncResult] = []
        self._position = 0

    @classmethod
    def resuming(
        cls,
        orchestrator: CherryPickOrchestrator,
        remaining: list[TemplateCommit],
        conflicts: list[str],
        rollback_tag: str | None = None,
    ) -> CherryPickBatch:
        """Rebuild a batch that halted on a conflict with its first commit."""
        batch = cls(orchestrator, remaining, rollback_tag=rollback_tag)
        current = batch.current
        if current is not None:
            batch.states[current.hash] = CommitState.CONFLICTED
            batch.results.append(SyncResult.conflict(current.hash, conflicts))
        return batch

    @property
    def current(self) -> TemplateCommit | None:
        """The commit the batch is on, or None once the backlog is exhausted."""
        if self._position < len(self.backlog):
            return self.backlog[self._position]
        return None

    @property
    def in_progress(self) -> bool:
        """True while a commit is mid-application or halted on a conflict."""
        current = self.current
        return current is not None and self.states[current.hash] in (
            CommitState.APPLYING,
            CommitState.CONFLICTED,
        )

    @property
    def halted(self) -> bool:
        current = self.current
        return current is not None and self.states[current.hash] in (
            CommitState.CONFLICTED,
            CommitState.FAILED,
        )

    def pending(self) -> list[str]:
        return [c.hash for c in self.backlog if self.states[c.hash] == CommitState.PENDING]

    def report(self) -> BatchReport:
        halted_on = self.results[-1] if self.halted and self.results else None
        return BatchReport(
            rollback_tag=self.rollback_tag,
            results=list(self.results),
            halted_on=halted_on,
            pending=self.pending(),
        )

    def run(self) -> BatchReport:
        """
        Apply pending commits in backlog order until done or halted.

        Calling run() while halted returns the current report unchanged.
        """
        while not self.halted and self.current is not None:
            commit = self.current
            self.states[commit.hash] = CommitState.APPLYING
            result = self.orchestrator.cherry_pick_commit(commit.hash)
            self.results.append(result)

            if result.status == SyncStatus.SUCCESS:
                self.states[commit.hash] = CommitState.SUCCEEDED
                self._position += 1
            elif result.status == SyncStatus.CONFLICT:
                self.states[commit.hash] = CommitState.CONFLICTED
            else:
                self.states[commit.hash] = CommitState.FAILED

        return self.report()

    def complete_current(self) -> SyncResult:
        """
        Continue the conflicted commit once its paths are staged.

        Raises:
            RuntimeError: If the batch is not halted on a conflict.
            GitError: If ``cherry-pick --continue`` fails; the commit stays
                CONFLICTED so the caller can resolve more paths or abort.
        """
        commit = self.current
        if commit is None or self.states[commit.hash] != CommitState.CONFLICTED:
            raise RuntimeError("No conflicted commit to continue")

        self.orchestrator.resolver.continue_cherry_pick()
        result = SyncResult.success(commit.hash)
        self.states[commit.hash] = CommitState.SUCCEEDED
        self.results.append(result)
        self._position += 1
        return result

    def resume(self) -> BatchReport:
        """Continue the conflicted commit, then apply the rest of the backlog."""
        self.complete_current()
        return self.run()

    def abort(self) -> None:
        """Discard the in-progress attempt and mark the current commit failed."""
        self.orchestrator.abort_cherry_pick()
        commit = self.current
        if commit is not None and self.states[commit.hash] in (
            CommitState.APPLYING,
            CommitState.CONFLICTED,
        ):
            self.states[commit.hash] = CommitState.FAILED

    @contextmanager
    def session(self) -> Iterator[CherryPickBatch]:
        """
        Own the working tree for the duration of the block.

        If an exception escapes while a cherry-pick is in progress, the
        cherry-pick is aborted before the exception propagates.
        """
        try:
            yield self
        except BaseException:
            if self.in_progress:
                logger.warning("Aborting in-progress cherry-pick during unwind")
                self.abort()
            raise
