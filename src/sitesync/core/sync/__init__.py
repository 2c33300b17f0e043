"""
Template synchronization engine.

Replays upstream template commits onto a site repository one at a time,
surfacing conflicts for the caller to resolve and tagging a rollback point
before the first commit is applied.

Example:
    >>> from sitesync.core.sync import TemplateSyncService, ResolutionStrategy
    >>> service = TemplateSyncService(project_dir=Path("."))
    >>> report = service.start()
    >>> if report.halted_on and report.halted_on.conflicts:
    ...     service.resolve(report.halted_on.conflicts, ResolutionStrategy.THEIRS)
    ...     report = service.resume()
"""

from sitesync.core.sync.cherry_pick import CherryPickBatch, CherryPickOrchestrator
from sitesync.core.sync.log_parser import parse_commit_log
from sitesync.core.sync.models import (
    BatchReport,
    BatchState,
    CommitState,
    ResolutionStrategy,
    RollbackTag,
    SyncOverview,
    SyncResult,
    SyncStatus,
    TemplateCommit,
)
from sitesync.core.sync.remote import RemoteTracker
from sitesync.core.sync.resolver import ConflictResolver
from sitesync.core.sync.rollback import RollbackTagManager
from sitesync.core.sync.service import (
    BatchHaltedError,
    DirtyWorkingTreeError,
    NoHaltedBatchError,
    NotARepositoryError,
    SyncError,
    TemplateRemoteMissingError,
    TemplateSyncService,
)

__all__ = [
    "BatchHaltedError",
    "BatchReport",
    "BatchState",
    "CherryPickBatch",
    "CherryPickOrchestrator",
    "CommitState",
    "ConflictResolver",
    "DirtyWorkingTreeError",
    "NoHaltedBatchError",
    "NotARepositoryError",
    "RemoteTracker",
    "ResolutionStrategy",
    "RollbackTag",
    "RollbackTagManager",
    "SyncError",
    "SyncOverview",
    "SyncResult",
    "SyncStatus",
    "TemplateCommit",
    "TemplateRemoteMissingError",
    "TemplateSyncService",
    "parse_commit_log",
]
