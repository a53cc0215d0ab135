"""End-to-end tests against a real git repository."""

import asyncio
import shutil
import subprocess

import pytest

from gitflow.commands import CommandContext, build_registry
from gitflow.git.branch import current_branch, list_branches
from gitflow.git.conflict import active_operation, continue_operation, list_conflicted_paths
from gitflow.git.runner import RunOptions
from gitflow.git.status import fetch_status, group_status
from gitflow.lib.config import config_from_mapping
from gitflow.lib.prompts import ScriptedPrompter
from gitflow.lib.types import ErrorKind
from gitflow.workflow.operations import merge

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _git(repo, *args):
    subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True, text=True)


def _commit_file(repo, name, text, message):
    (repo / name).write_text(text)
    _git(repo, "add", name)
    _git(repo, "commit", "-q", "-m", message)


@pytest.fixture
def repo(tmp_path, monkeypatch):
    """A repo on main with a diverged feature branch touching the same line."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    path = tmp_path / "repo"
    path.mkdir()
    _git(path, "init", "-q")
    _git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(path, "config", "user.name", "Test User")
    _git(path, "config", "user.email", "test@example.com")
    _git(path, "config", "commit.gpgsign", "false")
    _git(path, "config", "merge.conflictStyle", "merge")

    _commit_file(path, "f.txt", "start\n", "initial")
    _git(path, "checkout", "-q", "-b", "feature")
    _commit_file(path, "f.txt", "feature\n", "feature change")
    _git(path, "checkout", "-q", "main")
    _commit_file(path, "f.txt", "main\n", "main change")
    return path


class TestReadOnlyViews:
    def test_status_groups(self, repo):
        (repo / "new.txt").write_text("x\n")
        (repo / "f.txt").write_text("edited\n")
        err, entries = asyncio.run(fetch_status(RunOptions(cwd=repo)))
        assert err is None
        groups = group_status(entries)
        assert [e.path for e in groups.unstaged] == ["f.txt"]
        assert [e.path for e in groups.untracked] == ["new.txt"]
        assert groups.staged == ()

    def test_branches(self, repo):
        opts = RunOptions(cwd=repo)
        err, entries = asyncio.run(list_branches(opts))
        assert err is None
        assert [e.name for e in entries] == ["feature", "main"]
        assert [e.name for e in entries if e.is_current] == ["main"]
        assert asyncio.run(current_branch(opts)) == (None, "main")


class TestConflictFlow:
    """Merge, resolve and continue on a real conflict."""

    def test_merge_resolve_continue(self, repo):
        opts = RunOptions(cwd=repo)

        outcome = asyncio.run(merge("feature", opts))
        assert not outcome.success
        assert outcome.conflicts == ("f.txt",)
        assert outcome.error.kind == ErrorKind.CONFLICT
        assert asyncio.run(active_operation(opts)) == (None, "merge")

        ctx = CommandContext(config=config_from_mapping({}), prompter=ScriptedPrompter(), cwd=repo)
        registry = build_registry(ctx)
        result = asyncio.run(registry.dispatch(["resolve", "f.txt", "1", "theirs"]))
        assert result.ok, result.message
        assert (repo / "f.txt").read_text() == "feature\n"
        assert asyncio.run(list_conflicted_paths(opts)) == (None, [])

        err, operation, _ = asyncio.run(continue_operation(opts))
        assert err is None
        assert operation == "merge"
        assert asyncio.run(active_operation(opts)) == (None, None)

    def test_conflicts_command_lists_hunks(self, repo):
        asyncio.run(merge("feature", RunOptions(cwd=repo)))
        ctx = CommandContext(config=config_from_mapping({}), prompter=ScriptedPrompter(), cwd=repo)
        result = asyncio.run(build_registry(ctx).dispatch(["conflicts"]))
        assert result.message == "merge in progress\n  f.txt  (1 hunk)"


class TestCommitCommand:
    def test_commit_staged_file(self, repo):
        _git(repo, "checkout", "-q", "feature")
        (repo / "g.txt").write_text("g\n")
        _git(repo, "add", "g.txt")
        prompter = ScriptedPrompter(confirm_answers=[True], text_answers=["Add g"])
        ctx = CommandContext(config=config_from_mapping({}), prompter=prompter, cwd=repo)
        registry = build_registry(ctx)

        result = asyncio.run(registry.dispatch(["commit"]))
        assert result.ok, result.message

        log = asyncio.run(registry.dispatch(["log"]))
        assert log.message.splitlines()[0].endswith("Add g")
