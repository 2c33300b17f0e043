"""
Pytest configuration and shared fixtures.

Provides a scripted fake git gateway for unit tests, real temporary
template/site repositories for integration tests, and config isolation.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from sitesync.core.config import clear_cache
from sitesync.core.git import GitError, GitGateway

# ==============================================================================
# Fake Gateway
# ==============================================================================


class FakeGateway(GitGateway):
    """
    GitGateway that records command lines instead of running them.

    Responses are scripted per command prefix and consumed in order; a
    scripted GitError is raised instead of returned. Unscripted commands
    succeed with empty output.

    Example:
        >>> gw = FakeGateway()
        >>> gw.on("cherry-pick", GitError("CONFLICT"))
        >>> gw.on("status --porcelain", "UU file.txt\\n")
    """

    def __init__(self) -> None:
        super().__init__(project_dir=Path("."))
        self.calls: list[str] = []
        self._rules: list[tuple[str, list[str | GitError]]] = []

    def on(self, prefix: str, *responses: str | GitError) -> FakeGateway:
        self._rules.append((prefix, list(responses)))
        return self

    def run(self, args: str) -> str:
        self.calls.append(args)
        for prefix, responses in self._rules:
            if args.startswith(prefix) and responses:
                response = responses.pop(0)
                if isinstance(response, GitError):
                    raise response
                return response
        return ""

    def commands(self, prefix: str) -> list[str]:
        return [c for c in self.calls if c.startswith(prefix)]


@pytest.fixture
def gateway() -> FakeGateway:
    """Provide a fresh scripted gateway."""
    return FakeGateway()


# ==============================================================================
# Config Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config, env overrides and the config cache out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for var in (
        "SITESYNC_TEMPLATE_URL",
        "SITESYNC_TEMPLATE_BRANCH",
        "SITESYNC_REMOTE_NAME",
        "SITESYNC_GIT_TIMEOUT",
        "SITESYNC_REQUIRE_CLEAN",
    ):
        # Set first so teardown also removes values loaded from .env files
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Real Repositories
# ==============================================================================


def git(repo: Path, *args: str) -> str:
    """Run git in ``repo`` and return stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit_file(repo: Path, path: str, content: str, message: str) -> str:
    """Write a file, commit it, and return the new commit hash."""
    target = repo / path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)
    git(repo, "add", path)
    git(repo, "commit", "-m", message)
    return git(repo, "rev-parse", "HEAD")


def _configure_identity(repo: Path) -> None:
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "commit.gpgsign", "false")


@pytest.fixture
def template_repo(tmp_path: Path) -> Path:
    """Create an upstream template repository with two commits on main."""
    repo = tmp_path / "template"
    repo.mkdir()
    git(repo, "init")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    _configure_identity(repo)
    commit_file(repo, "README.md", "# Template\n", "Initial template")
    commit_file(repo, "page.txt", "title: Welcome\nbody: hello\n", "Add page")
    return repo


@pytest.fixture
def site_repo(tmp_path: Path, template_repo: Path) -> Path:
    """Create a site cloned from the template, without a template remote yet."""
    repo = tmp_path / "site"
    subprocess.run(
        ["git", "clone", "--quiet", str(template_repo), str(repo)],
        capture_output=True,
        check=True,
    )
    _configure_identity(repo)
    return repo


@pytest.fixture
def run_git():
    """Provide the ``git(repo, *args)`` helper."""
    return git


@pytest.fixture
def make_commit():
    """Provide the ``commit_file(repo, path, content, message)`` helper."""
    return commit_file
