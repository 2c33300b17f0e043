"""
Parser for ``git log --numstat`` output.

The range log is requested with::

    git log <local>..<remote> --pretty=format:"%H|%s|%an|%ad" --date=short --numstat --reverse

which interleaves one header line per commit with one stat line per file::

    3f2a...|Fix header layout|Jane Doe|2025-11-08
    5\t3\tsrc/components/Header.astro
    -\t-\tpublic/logo.png

Parsing is a fold over lines. Each step takes an immutable accumulator and
returns a new one, so no running totals are shared between commits.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, replace
from functools import reduce
from typing import NamedTuple

from sitesync.core.sync.models import TemplateCommit

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "|"
LOG_PRETTY_FORMAT = "%H|%s|%an|%ad"


@dataclass(frozen=True)
class _PendingCommit:
    """Header fields plus the file stats seen so far for one commit."""

    hash: str
    message: str
    author: str
    date: dt.date
    files: tuple[str, ...] = ()
    additions: int = 0
    deletions: int = 0

    def add_stat(self, additions: int, deletions: int, path: str) -> _PendingCommit:
        return replace(
            self,
            files=self.files + (path,),
            additions=self.additions + additions,
            deletions=self.deletions + deletions,
        )

    def to_commit(self) -> TemplateCommit:
        return TemplateCommit(
            hash=self.hash,
            message=self.message,
            author=self.author,
            date=self.date,
            files_changed=list(self.files),
            additions=self.additions,
            deletions=self.deletions,
        )


class _FoldState(NamedTuple):
    done: tuple[TemplateCommit, ...]
    current: _PendingCommit | None


def _parse_count(token: str) -> int:
    # Binary files report "-" for both counts
    return int(token) if token.isdigit() else 0


def parse_header(line: str) -> _PendingCommit | None:
    """
    Parse a ``hash|subject|author|date`` header.

    Subjects may themselves contain the separator, so the hash is taken from
    the front and author and date from the back.

    Returns:
        A fresh accumulator, or None if the header is malformed.
    """
    parts = line.split(FIELD_SEPARATOR)
    if len(parts) < 4:
        return None

    commit_hash = parts[0].strip()
    author = parts[-2].strip()
    message = FIELD_SEPARATOR.join(parts[1:-2])
    try:
        commit_date = dt.date.fromisoformat(parts[-1].strip())
    except ValueError:
        return None

    if not commit_hash:
        return None

    return _PendingCommit(hash=commit_hash, message=message, author=author, date=commit_date)


def parse_stat(line: str) -> tuple[int, int, str] | None:
    """
    Parse a numstat line into (additions, deletions, path).

    The path is everything after the two count columns, so paths containing
    spaces survive. Returns None for lines with fewer than three tokens.
    """
    parts = line.split(None, 2)
    if len(parts) < 3:
        return None
    return _parse_count(parts[0]), _parse_count(parts[1]), parts[2].strip()


def _step(state: _FoldState, line: str) -> _FoldState:
    if FIELD_SEPARATOR in line:
        header = parse_header(line)
        done = state.done
        if state.current is not None:
            done = done + (state.current.to_commit(),)
        if header is None:
            # Stats up to the next good header belong to the dropped commit
            logger.debug("Skipping malformed log header: %r", line)
        return _FoldState(done, header)

    if not line.strip():
        return state

    if state.current is None:
        logger.debug("Skipping stat line outside any commit: %r", line)
        return state

    stat = parse_stat(line)
    if stat is None:
        logger.debug("Skipping malformed stat line: %r", line)
        return state

    return _FoldState(state.done, state.current.add_stat(*stat))


def parse_commit_log(log_output: str) -> list[TemplateCommit]:
    """
    Parse range-log output into commits, preserving emission order.

    Malformed header or stat lines are skipped; they never abort parsing of
    the rest of the log. Stat lines under a malformed header are dropped with
    it rather than credited to the commit before.

    Args:
        log_output: Raw stdout of the range log command.

    Returns:
        List of TemplateCommit in the order git emitted them.

    Example:
        >>> commits = parse_commit_log("abc|Fix|Jane|2025-11-08\\n5\\t3\\ta.txt")
        >>> commits[0].files_changed, commits[0].additions
        (['a.txt'], 5)
    """
    final = reduce(_step, log_output.splitlines(), _FoldState((), None))
    done = final.done
    if final.current is not None:
        done = done + (final.current.to_commit(),)
    return list(done)
