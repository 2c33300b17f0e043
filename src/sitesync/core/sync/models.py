"""
Data models for template synchronization.

Defines Pydantic models for upstream commits, per-commit results, rollback
tags, and batch reports. All of them are value objects that live only for
the duration of one sync run.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

ROLLBACK_TAG_PREFIX = "pre-sync-"
ROLLBACK_TAG_FORMAT = "%Y-%m-%d-%H%M%S"


class SyncStatus(str, Enum):
    """Outcome of attempting to apply one commit."""

    SUCCESS = "success"
    CONFLICT = "conflict"
    ERROR = "error"


class CommitState(str, Enum):
    """Lifecycle of a backlog commit inside a cherry-pick batch."""

    PENDING = "pending"
    APPLYING = "applying"
    SUCCEEDED = "succeeded"
    CONFLICTED = "conflicted"
    FAILED = "failed"


class ResolutionStrategy(str, Enum):
    """Which side wins when resolving a conflicted path."""

    OURS = "ours"
    THEIRS = "theirs"

    @property
    def checkout_flag(self) -> str:
        """The ``git checkout`` flag that selects this side."""
        return f"--{self.value}"


class TemplateCommit(BaseModel):
    """
    One upstream commit not yet applied to the site.

    Example:
        >>> commit = TemplateCommit(
        ...     hash="abc123",
        ...     message="Fix header layout",
        ...     author="Jane Doe",
        ...     date=dt.date(2025, 11, 8),
        ...     files_changed=["src/header.astro"],
        ...     additions=5,
        ...     deletions=3,
        ... )
        >>> commit.summary
        'Fix header layout'
    """

    model_config = ConfigDict(frozen=True)

    hash: str = Field(description="Full commit hash")
    message: str = Field(default="", description="Commit subject line")
    author: str = Field(default="", description="Author display name")
    date: dt.date = Field(description="Author date, day granularity")
    files_changed: list[str] = Field(
        default_factory=list,
        description="Paths touched by the commit, in log order",
    )
    additions: int = Field(default=0, ge=0, description="Lines added across all files")
    deletions: int = Field(default=0, ge=0, description="Lines deleted across all files")

    @property
    def short_hash(self) -> str:
        return self.hash[:8]

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        return self.message.splitlines()[0] if self.message else ""


class SyncResult(BaseModel):
    """
    Result of cherry-picking a single commit.

    Exactly one of ``conflicts`` (non-empty) or ``error`` is set for a
    non-success result; neither is set on success.
    """

    status: SyncStatus = Field(description="success, conflict, or error")

    commit: str = Field(description="Hash of the attempted commit")

    conflicts: list[str] = Field(
        default_factory=list,
        description="Paths left unmerged (conflict results only)",
    )

    error: str | None = Field(
        default=None,
        description="Backend diagnostic text (error results only)",
    )

    @model_validator(mode="after")
    def _check_variant(self) -> SyncResult:
        if self.status == SyncStatus.SUCCESS:
            if self.conflicts or self.error is not None:
                raise ValueError("success results carry neither conflicts nor error")
        elif self.status == SyncStatus.CONFLICT:
            if not self.conflicts or self.error is not None:
                raise ValueError("conflict results need conflicts and no error")
        elif self.error is None or self.conflicts:
            raise ValueError("error results need an error and no conflicts")
        return self

    @classmethod
    def success(cls, commit: str) -> SyncResult:
        return cls(status=SyncStatus.SUCCESS, commit=commit)

    @classmethod
    def conflict(cls, commit: str, conflicts: list[str]) -> SyncResult:
        return cls(status=SyncStatus.CONFLICT, commit=commit, conflicts=conflicts)

    @classmethod
    def failure(cls, commit: str, error: str) -> SyncResult:
        return cls(status=SyncStatus.ERROR, commit=commit, error=error)

    @property
    def ok(self) -> bool:
        return self.status == SyncStatus.SUCCESS

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        short = self.commit[:8]
        if self.status == SyncStatus.SUCCESS:
            return f"{short} applied"
        if self.status == SyncStatus.CONFLICT:
            return f"{short} conflicted in {len(self.conflicts)} file(s)"
        return f"{short} failed: {self.error}"


class RollbackTag(BaseModel):
    """An immutable marker for the repository state before a sync batch."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Tag name, pre-sync-YYYY-MM-DD-HHMMSS")

    @classmethod
    def for_time(cls, moment: dt.datetime) -> RollbackTag:
        """Build the tag for a wall-clock time. Same second, same name."""
        return cls(name=f"{ROLLBACK_TAG_PREFIX}{moment.strftime(ROLLBACK_TAG_FORMAT)}")

    @property
    def created_at(self) -> dt.datetime | None:
        """Parse the creation time back out of the name, if it is well formed."""
        try:
            return dt.datetime.strptime(self.name[len(ROLLBACK_TAG_PREFIX):], ROLLBACK_TAG_FORMAT)
        except ValueError:
            return None


class BatchReport(BaseModel):
    """
    Outcome of running (part of) a backlog through the cherry-pick batch.

    ``halted_on`` is set when the batch stopped on a conflict or error;
    ``pending`` lists the hashes that were not attempted yet.
    """

    rollback_tag: str | None = Field(default=None)
    results: list[SyncResult] = Field(default_factory=list)
    halted_on: SyncResult | None = Field(default=None)
    pending: list[str] = Field(default_factory=list)

    @property
    def applied(self) -> list[str]:
        return [r.commit for r in self.results if r.ok]

    @property
    def completed(self) -> bool:
        """True when every backlog commit was applied."""
        return self.halted_on is None and not self.pending

    def summary(self) -> str:
        parts = [f"{len(self.applied)} applied"]
        if self.halted_on is not None:
            parts.append(self.halted_on.summary())
        if self.pending:
            parts.append(f"{len(self.pending)} pending")
        return ", ".join(parts)


class BatchState(BaseModel):
    """
    A halted batch persisted in ``.git/sitesync-batch.json``.

    Lets a later invocation resolve the conflict and continue where the
    batch stopped. The first commit in ``remaining`` is the conflicted one.
    """

    rollback_tag: str | None = Field(default=None)
    remaining: list[TemplateCommit] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)
    started_at: dt.datetime = Field(default_factory=dt.datetime.now)

    @property
    def halted_on(self) -> TemplateCommit | None:
        return self.remaining[0] if self.remaining else None


class SyncOverview(BaseModel):
    """Snapshot of how the site relates to its template."""

    remote_name: str
    remote_ref: str
    remote_configured: bool = False
    commits_behind: int = 0
    batch_halted: bool = False
    working_tree_clean: bool = True
    branch: str = "unknown"

    @property
    def up_to_date(self) -> bool:
        return self.remote_configured and self.commits_behind == 0
