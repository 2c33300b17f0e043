"""
Tests for CherryPickOrchestrator and CherryPickBatch.

Tests cover:
- Classifying failed cherry-picks as conflicts or errors
- Conflict file detection from porcelain status
- Ordered batch application that halts on the first conflict
- Resolving and continuing a halted batch
- Aborting the in-progress cherry-pick when a session unwinds
"""

from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from sitesync.core.git import GitError, GitGateway
from sitesync.core.sync import (
    CherryPickBatch,
    CherryPickOrchestrator,
    CommitState,
    ConflictResolver,
    RemoteTracker,
    ResolutionStrategy,
    SyncStatus,
    TemplateCommit,
)
from sitesync.core.sync.cherry_pick import unquote_path


def _commit(commit_hash: str) -> TemplateCommit:
    return TemplateCommit(
        hash=commit_hash, message=f"Commit {commit_hash}", date=dt.date(2025, 11, 8)
    )


def _cherry_pick_failed() -> GitError:
    return GitError(
        "Git command failed",
        command="git cherry-pick",
        stderr="error: could not apply abc1234",
        returncode=1,
    )


class TestGetConflictFiles:
    def test_both_modified_and_both_added(self, gateway) -> None:
        gateway.on("status", "UU src/layout.astro\nAA new.md\n M other.txt\n?? scratch\n")

        files = CherryPickOrchestrator(gateway).get_conflict_files()

        assert files == ["src/layout.astro", "new.md"]

    def test_clean_status(self, gateway) -> None:
        gateway.on("status", "")

        assert CherryPickOrchestrator(gateway).get_conflict_files() == []

    def test_status_failure_is_empty(self, gateway) -> None:
        gateway.on("status", _cherry_pick_failed())

        assert CherryPickOrchestrator(gateway).get_conflict_files() == []

    def test_quoted_paths_are_unquoted(self, gateway) -> None:
        gateway.on("status", 'UU "my post.md"\nAA "say \\"hi\\".md"\n')

        files = CherryPickOrchestrator(gateway).get_conflict_files()

        assert files == ["my post.md", 'say "hi".md']


class TestUnquotePath:
    def test_plain_path_unchanged(self) -> None:
        assert unquote_path("src/layout.astro") == "src/layout.astro"

    def test_spaces(self) -> None:
        assert unquote_path('"my post.md"') == "my post.md"

    def test_c_escapes(self) -> None:
        assert unquote_path(r'"a\tb\\c\"d.md"') == 'a\tb\\c"d.md'

    def test_octal_utf8(self) -> None:
        assert unquote_path(r'"caf\303\251.md"') == "caf\u00e9.md"


class TestCherryPickCommit:
    def test_success(self, gateway) -> None:
        result = CherryPickOrchestrator(gateway).cherry_pick_commit("abc1234")

        assert result.status == SyncStatus.SUCCESS
        assert result.commit == "abc1234"
        assert gateway.calls == ['cherry-pick "abc1234"']

    def test_status_not_probed_on_success(self, gateway) -> None:
        CherryPickOrchestrator(gateway).cherry_pick_commit("abc1234")

        assert gateway.commands("status") == []

    def test_conflict(self, gateway) -> None:
        gateway.on("cherry-pick", _cherry_pick_failed())
        gateway.on("status", "UU file.txt\n")

        result = CherryPickOrchestrator(gateway).cherry_pick_commit("abc1234")

        assert result.status == SyncStatus.CONFLICT
        assert result.conflicts == ["file.txt"]
        assert result.error is None

    def test_error_without_conflicts(self, gateway) -> None:
        gateway.on("cherry-pick", _cherry_pick_failed())
        gateway.on("status", "")

        result = CherryPickOrchestrator(gateway).cherry_pick_commit("abc1234")

        assert result.status == SyncStatus.ERROR
        assert result.error == "error: could not apply abc1234"
        assert result.conflicts == []

    def test_timeout_is_error(self, gateway) -> None:
        gateway.on(
            "cherry-pick",
            GitError("Git command timed out after 5s", command="git cherry-pick", timed_out=True),
        )

        result = CherryPickOrchestrator(gateway).cherry_pick_commit("abc1234")

        assert result.status == SyncStatus.ERROR
        assert "timed out" in result.error
        assert gateway.commands("status") == []


class TestAbortCherryPick:
    def test_abort_command(self, gateway) -> None:
        CherryPickOrchestrator(gateway).abort_cherry_pick()

        assert gateway.calls == ["cherry-pick --abort"]

    def test_abort_never_raises(self, gateway) -> None:
        gateway.on("cherry-pick --abort", GitError("no cherry-pick in progress"))

        CherryPickOrchestrator(gateway).abort_cherry_pick()


class TestCherryPickBatch:
    def test_applies_in_order(self, gateway) -> None:
        backlog = [_commit("c1"), _commit("c2"), _commit("c3")]

        report = CherryPickBatch(CherryPickOrchestrator(gateway), backlog).run()

        assert gateway.calls == ['cherry-pick "c1"', 'cherry-pick "c2"', 'cherry-pick "c3"']
        assert report.applied == ["c1", "c2", "c3"]
        assert report.completed

    def test_empty_backlog(self, gateway) -> None:
        report = CherryPickBatch(CherryPickOrchestrator(gateway), []).run()

        assert report.results == []
        assert report.completed
        assert gateway.calls == []

    def test_halts_on_conflict(self, gateway) -> None:
        gateway.on("cherry-pick", "", _cherry_pick_failed())
        gateway.on("status", "UU page.txt\n")
        batch = CherryPickBatch(
            CherryPickOrchestrator(gateway),
            [_commit("c1"), _commit("c2"), _commit("c3")],
            rollback_tag="pre-sync-2025-11-08-153022",
        )

        report = batch.run()

        assert gateway.commands("cherry-pick") == ['cherry-pick "c1"', 'cherry-pick "c2"']
        assert report.halted_on is not None
        assert report.halted_on.commit == "c2"
        assert report.halted_on.conflicts == ["page.txt"]
        assert report.pending == ["c3"]
        assert report.rollback_tag == "pre-sync-2025-11-08-153022"
        assert batch.states == {
            "c1": CommitState.SUCCEEDED,
            "c2": CommitState.CONFLICTED,
            "c3": CommitState.PENDING,
        }

    def test_halts_on_error(self, gateway) -> None:
        gateway.on("cherry-pick", _cherry_pick_failed())
        batch = CherryPickBatch(CherryPickOrchestrator(gateway), [_commit("c1"), _commit("c2")])

        report = batch.run()

        assert report.halted_on.status == SyncStatus.ERROR
        assert report.pending == ["c2"]
        assert batch.states["c1"] == CommitState.FAILED
        assert not batch.in_progress

    def test_run_while_halted_does_nothing(self, gateway) -> None:
        gateway.on("cherry-pick", _cherry_pick_failed())
        gateway.on("status", "UU page.txt\n")
        batch = CherryPickBatch(CherryPickOrchestrator(gateway), [_commit("c1"), _commit("c2")])
        batch.run()
        calls_before = list(gateway.calls)

        report = batch.run()

        assert gateway.calls == calls_before
        assert report.halted_on.commit == "c1"

    def test_resume_continues_then_applies_rest(self, gateway) -> None:
        gateway.on("cherry-pick \"", "", _cherry_pick_failed())
        gateway.on("status", "UU page.txt\n")
        batch = CherryPickBatch(
            CherryPickOrchestrator(gateway),
            [_commit("c1"), _commit("c2"), _commit("c3")],
        )
        batch.run()

        report = batch.resume()

        assert gateway.commands("cherry-pick") == [
            'cherry-pick "c1"',
            'cherry-pick "c2"',
            "cherry-pick --continue",
            'cherry-pick "c3"',
        ]
        assert report.applied == ["c1", "c2", "c3"]
        assert report.completed

    def test_failed_continue_keeps_commit_conflicted(self, gateway) -> None:
        gateway.on("cherry-pick --continue", GitError("you must edit all merge conflicts"))
        gateway.on("cherry-pick \"", _cherry_pick_failed())
        gateway.on("status", "UU page.txt\n")
        batch = CherryPickBatch(CherryPickOrchestrator(gateway), [_commit("c1")])
        batch.run()

        with pytest.raises(GitError):
            batch.complete_current()

        assert batch.states["c1"] == CommitState.CONFLICTED
        assert batch.halted

    def test_complete_without_conflict_raises(self, gateway) -> None:
        batch = CherryPickBatch(CherryPickOrchestrator(gateway), [_commit("c1")])

        with pytest.raises(RuntimeError):
            batch.complete_current()

    def test_resuming_rebuilds_halted_batch(self, gateway) -> None:
        batch = CherryPickBatch.resuming(
            CherryPickOrchestrator(gateway),
            [_commit("c2"), _commit("c3")],
            ["page.txt"],
            rollback_tag="pre-sync-2025-11-08-153022",
        )

        assert batch.halted
        assert batch.report().halted_on.conflicts == ["page.txt"]
        assert batch.pending() == ["c3"]

    def test_abort_marks_current_failed(self, gateway) -> None:
        gateway.on("cherry-pick \"", _cherry_pick_failed())
        gateway.on("status", "UU page.txt\n")
        batch = CherryPickBatch(CherryPickOrchestrator(gateway), [_commit("c1")])
        batch.run()

        batch.abort()

        assert gateway.calls[-1] == "cherry-pick --abort"
        assert batch.states["c1"] == CommitState.FAILED


class TestSession:
    def test_exception_aborts_in_progress_cherry_pick(self, gateway) -> None:
        gateway.on("cherry-pick \"", _cherry_pick_failed())
        gateway.on("status", "UU page.txt\n")
        batch = CherryPickBatch(CherryPickOrchestrator(gateway), [_commit("c1")])

        with pytest.raises(KeyboardInterrupt):
            with batch.session():
                batch.run()
                raise KeyboardInterrupt

        assert "cherry-pick --abort" in gateway.calls

    def test_exception_without_cherry_pick_does_not_abort(self, gateway) -> None:
        batch = CherryPickBatch(CherryPickOrchestrator(gateway), [_commit("c1")])

        with pytest.raises(ValueError):
            with batch.session():
                raise ValueError("boom")

        assert gateway.calls == []

    def test_normal_exit_leaves_conflict_in_place(self, gateway) -> None:
        gateway.on("cherry-pick \"", _cherry_pick_failed())
        gateway.on("status", "UU page.txt\n")
        batch = CherryPickBatch(CherryPickOrchestrator(gateway), [_commit("c1")])

        with batch.session():
            batch.run()

        assert "cherry-pick --abort" not in gateway.calls
        assert batch.halted


class TestAgainstRealRepository:
    """Three template commits where the middle one conflicts with a site edit."""

    def test_conflict_resolve_continue(
        self, site_repo: Path, template_repo: Path, make_commit, run_git
    ) -> None:
        first = make_commit(template_repo, "a.txt", "a\n", "Add a")
        make_commit(template_repo, "page.txt", "title: Welcome\nbody: template\n", "Edit page")
        make_commit(template_repo, "c.txt", "c\n", "Add c")
        make_commit(site_repo, "page.txt", "title: Welcome\nbody: site\n", "Site edit")

        gateway = GitGateway(project_dir=site_repo)
        tracker = RemoteTracker(gateway)
        tracker.ensure_remote("template", str(template_repo))
        tracker.fetch_remote("template", "main")
        backlog = tracker.compute_backlog("HEAD", "template/main")
        assert backlog[0].hash == first

        orchestrator = CherryPickOrchestrator(gateway)
        batch = CherryPickBatch(orchestrator, backlog)
        report = batch.run()

        assert report.applied == [first]
        assert report.halted_on.status == SyncStatus.CONFLICT
        assert report.halted_on.conflicts == ["page.txt"]
        assert len(report.pending) == 1

        ConflictResolver(gateway).resolve_all(report.halted_on.conflicts, ResolutionStrategy.THEIRS)
        report = batch.resume()

        assert report.completed
        assert (site_repo / "page.txt").read_text() == "title: Welcome\nbody: template\n"
        assert (site_repo / "c.txt").exists()
        assert run_git(site_repo, "log", "-1", "--pretty=%s") == "Add c"
