"""Tests for ConflictResolver."""

from __future__ import annotations

import pytest

from sitesync.core.git import GitError
from sitesync.core.sync import ConflictResolver, ResolutionStrategy


class TestResolveConflict:
    def test_theirs(self, gateway) -> None:
        ConflictResolver(gateway).resolve_conflict("src/layout.astro", ResolutionStrategy.THEIRS)

        assert gateway.calls == [
            'checkout --theirs "src/layout.astro"',
            'add "src/layout.astro"',
        ]

    def test_ours_as_string(self, gateway) -> None:
        ConflictResolver(gateway).resolve_conflict("page.txt", "ours")

        assert gateway.calls[0] == 'checkout --ours "page.txt"'

    def test_path_is_escaped(self, gateway) -> None:
        ConflictResolver(gateway).resolve_conflict('a "b" $c.md', "theirs")

        assert gateway.calls[0] == 'checkout --theirs "a \\"b\\" \\$c.md"'

    def test_unknown_strategy(self, gateway) -> None:
        with pytest.raises(ValueError):
            ConflictResolver(gateway).resolve_conflict("page.txt", "both")

        assert gateway.calls == []

    def test_checkout_failure_skips_add(self, gateway) -> None:
        gateway.on("checkout", GitError("error: path 'page.txt' does not have their version"))

        with pytest.raises(GitError):
            ConflictResolver(gateway).resolve_conflict("page.txt", "theirs")

        assert gateway.commands("add") == []


class TestResolveAll:
    def test_every_path(self, gateway) -> None:
        ConflictResolver(gateway).resolve_all(["a.txt", "b.txt"], ResolutionStrategy.OURS)

        assert gateway.commands("add") == ['add "a.txt"', 'add "b.txt"']


class TestContinue:
    def test_continue_command(self, gateway) -> None:
        ConflictResolver(gateway).continue_cherry_pick()

        assert gateway.calls == ["cherry-pick --continue"]

    def test_continue_failure_propagates(self, gateway) -> None:
        gateway.on("cherry-pick --continue", GitError("no cherry-pick in progress"))

        with pytest.raises(GitError):
            ConflictResolver(gateway).continue_cherry_pick()
