"""
sitesync - keep a site repository aligned with its upstream template.

Replays template commits onto the site one at a time, surfaces merge
conflicts, and tags a rollback point before anything is changed.
"""

__version__ = "0.1.0"

from sitesync.core.sync.models import SyncResult, SyncStatus, TemplateCommit

__all__ = ["SyncResult", "SyncStatus", "TemplateCommit", "__version__"]
