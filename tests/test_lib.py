"""Tests for gitflow.lib prompts, generation, github and types modules."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gitflow.git.runner import ProcessResult
from gitflow.lib.generation import Generation
from gitflow.lib.github import (
    NOT_AUTHENTICATED_MESSAGE,
    NOT_INSTALLED_MESSAGE,
    GhPrerequisites,
    assign_labels,
    checkout_pr,
    classify_checks,
    close_issue,
    comment_issue,
    comment_pr,
    create_issue,
    create_label,
    create_pr,
    delete_label,
    edit_pr,
    gh_json,
    list_labels,
    list_prs,
    merge_pr,
    review_pr,
    view_issue,
)
from gitflow.lib.prompts import ConsolePrompter, ScriptedPrompter
from gitflow.lib.types import ErrorKind, OpError, command_error


def _result(code=0, stdout="", stderr=""):
    return ProcessResult(exit_code=code, signal=0, stdout=stdout, stderr=stderr)


class TestConsolePrompter:
    """Test ConsolePrompter answer matching."""

    def test_hotkey(self):
        prompter = ConsolePrompter(input_fn=lambda _: "p")
        assert prompter.confirm("Push?", ("&Push", "&Cancel")) == (True, 1)

    def test_label(self):
        prompter = ConsolePrompter(input_fn=lambda _: "Cancel")
        assert prompter.confirm("Push?", ("&Push", "&Cancel")) == (False, 2)

    def test_reprompts_on_unknown_answer(self):
        answers = iter(["maybe", "y"])
        printed = []
        prompter = ConsolePrompter(input_fn=lambda _: next(answers), print_fn=printed.append)
        assert prompter.confirm("Continue?") == (True, 1)
        assert printed == ["Please answer one of: Yes / No"]

    def test_eof_cancels(self):
        def raise_eof(_):
            raise EOFError

        prompter = ConsolePrompter(input_fn=raise_eof)
        assert prompter.confirm("Continue?") == (False, 0)
        assert prompter.prompt("Message:") is None

    def test_prompt_returns_text(self):
        prompter = ConsolePrompter(input_fn=MagicMock(return_value="fix bug"))
        assert prompter.prompt("Commit message:") == "fix bug"
        prompter.input_fn.assert_called_once_with("Commit message: ")

    def test_prompt_default_on_empty_answer(self):
        prompter = ConsolePrompter(input_fn=MagicMock(return_value=""))
        assert prompter.prompt("Amend commit message:", default="Fix parser\n\nBody") == "Fix parser\n\nBody"
        prompter.input_fn.assert_called_once_with("Amend commit message: [Fix parser] ")


class TestScriptedPrompter:
    def test_answers_in_order(self):
        prompter = ScriptedPrompter(confirm_answers=[True, False], text_answers=["msg"])
        assert prompter.confirm("a") == (True, 1)
        assert prompter.confirm("b") == (False, 2)
        assert prompter.prompt("c") == "msg"
        assert prompter.asked == ["a", "b", "c"]

    def test_exhausted(self):
        prompter = ScriptedPrompter()
        assert prompter.confirm("a") == (False, 0)
        assert prompter.prompt("b") is None

    def test_default_confirm(self):
        assert ScriptedPrompter(default_confirm=True).confirm("a") == (True, 1)

    def test_empty_answer_keeps_default(self):
        prompter = ScriptedPrompter(text_answers=["", "new"])
        assert prompter.prompt("a", default="old") == "old"
        assert prompter.prompt("b", default="old") == "new"


class TestGeneration:
    """Test staleness tokens."""

    def test_newer_request_supersedes(self):
        gen = Generation()
        first = gen.advance()
        second = gen.advance()
        assert not gen.is_current(first)
        assert gen.is_current(second)

    def test_guard_drops_stale_result(self):
        gen = Generation()
        token = gen.advance()
        calls = []
        gen.advance()
        assert gen.guard(token, lambda: calls.append("stale")) is None
        assert calls == []

    def test_guard_runs_current(self):
        gen = Generation()
        token = gen.advance()
        assert gen.guard(token, lambda: "rendered") == "rendered"

    def test_concurrent_requests(self):
        gen = Generation()
        rendered = []

        async def request(delay, label):
            token = gen.advance()
            await asyncio.sleep(delay)
            gen.guard(token, lambda: rendered.append(label))

        async def main():
            slow = asyncio.create_task(request(0.05, "slow"))
            await asyncio.sleep(0.01)
            fast = asyncio.create_task(request(0, "fast"))
            await asyncio.gather(slow, fast)

        asyncio.run(main())
        assert rendered == ["fast"]


class TestOpError:
    def test_command_error_kinds(self):
        assert command_error("x").kind == ErrorKind.COMMAND_FAILED
        assert command_error("x", timed_out=True).kind == ErrorKind.TIMED_OUT

    def test_recoverable(self):
        assert OpError(ErrorKind.CONFLICT, "c").recoverable
        assert not OpError(ErrorKind.COMMAND_FAILED, "f").recoverable
        assert str(OpError(ErrorKind.IO_ERROR, "disk full")) == "disk full"


class TestGhPrerequisites:
    """Test cached gh probing."""

    @patch("gitflow.lib.github.shutil.which", return_value=None)
    def test_not_installed(self, mock_which):
        prereq = GhPrerequisites()
        assert prereq.check() == (False, NOT_INSTALLED_MESSAGE)
        assert prereq.ensure() == (False, NOT_INSTALLED_MESSAGE)
        mock_which.assert_called_once()

    @patch("gitflow.lib.github.run_sync")
    @patch("gitflow.lib.github.shutil.which", return_value="/usr/bin/gh")
    def test_not_authenticated(self, mock_which, mock_run):
        mock_run.side_effect = [_result(stdout="gh version 2.40.0"), _result(1, stderr="not logged in")]
        prereq = GhPrerequisites()
        assert prereq.ensure() == (False, NOT_AUTHENTICATED_MESSAGE)
        assert prereq.state.available is True
        assert mock_run.call_args_list[1][0][0] == ["gh", "auth", "status"]

    @patch("gitflow.lib.github.run_sync")
    @patch("gitflow.lib.github.shutil.which", return_value="/usr/bin/gh")
    def test_ready_is_cached(self, mock_which, mock_run):
        mock_run.return_value = _result()
        prereq = GhPrerequisites()
        assert prereq.ensure() == (True, None)
        assert prereq.ensure() == (True, None)
        assert mock_run.call_count == 2


class TestGhJson:
    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_decodes(self, mock_gh):
        mock_gh.return_value = _result(stdout='[{"number": 1}]')
        assert asyncio.run(gh_json(["pr", "list"])) == (None, [{"number": 1}])

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_empty_is_empty_mapping(self, mock_gh):
        mock_gh.return_value = _result(stdout="  \n")
        assert asyncio.run(gh_json(["repo", "view"])) == (None, {})

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_decode_error(self, mock_gh):
        mock_gh.return_value = _result(stdout="not json")
        err, data = asyncio.run(gh_json(["pr", "view", "1"]))
        assert err.startswith("Failed to parse gh JSON output for 'pr view 1'")
        assert data is None

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_command_failure(self, mock_gh):
        mock_gh.return_value = _result(1, stderr="no pull requests found")
        err, _ = asyncio.run(gh_json(["pr", "view", "9"]))
        assert err == "gh pr view 9 failed: no pull requests found"


class TestGhQueries:
    def _ready(self):
        prereq = GhPrerequisites()
        prereq.ensure = MagicMock(return_value=(True, None))
        return prereq

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_list_prs_flags(self, mock_gh):
        mock_gh.return_value = _result(stdout="[]")
        err, prs = asyncio.run(list_prs(self._ready(), state="open", base="main", limit=20))
        assert (err, prs) == (None, [])
        args = mock_gh.call_args[0][0]
        assert args[:3] == ["pr", "list", "--json"]
        assert args[4:] == ["--state", "open", "--base", "main", "--limit", "20"]

    def test_unready_short_circuits(self):
        prereq = GhPrerequisites()
        prereq.ensure = MagicMock(return_value=(False, NOT_INSTALLED_MESSAGE))
        assert asyncio.run(list_prs(prereq)) == (NOT_INSTALLED_MESSAGE, [])

    def test_view_issue_requires_number(self):
        with pytest.raises(ValueError):
            asyncio.run(view_issue(self._ready(), " "))


class TestClassifyChecks:
    """Test statusCheckRollup summaries."""

    def test_no_checks(self):
        assert classify_checks([]).status is None
        assert classify_checks(None).status is None

    def test_all_passing(self):
        summary = classify_checks([{"conclusion": "SUCCESS"}, {"state": "SUCCESS"}])
        assert summary == ("success", 2, 0, 0)

    def test_failure_wins(self):
        summary = classify_checks([{"conclusion": "FAILURE"}, {"conclusion": ""}, {"conclusion": "SUCCESS"}])
        assert summary.status == "failure"
        assert (summary.passed, summary.failed, summary.pending) == (1, 1, 1)

    def test_pending(self):
        assert classify_checks([{"state": "PENDING"}, {"conclusion": "SUCCESS"}]).status == "pending"


def _ready_prereq():
    prereq = GhPrerequisites()
    prereq.ensure = MagicMock(return_value=(True, None))
    return prereq


class TestGhPrActions:
    """Test pull request actions."""

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_create_returns_url(self, mock_gh):
        mock_gh.return_value = _result(stdout="https://github.com/o/r/pull/7\n")
        err, url = asyncio.run(create_pr(
            _ready_prereq(), " Fix parser ", body="Details", base="main",
            draft=True, reviewers=["ada", " ", "grace"], labels="bug",
        ))
        assert (err, url) == (None, "https://github.com/o/r/pull/7")
        assert mock_gh.call_args[0][0] == [
            "pr", "create", "--title", "Fix parser", "--body", "Details",
            "--base", "main", "--draft", "--reviewer", "ada,grace", "--label", "bug",
        ]

    def test_create_requires_title(self):
        with pytest.raises(ValueError):
            asyncio.run(create_pr(_ready_prereq(), "  "))

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_merge_strategy_flag(self, mock_gh):
        mock_gh.return_value = _result(stdout="Merged")
        assert asyncio.run(merge_pr(_ready_prereq(), 12, "squash")) == (None, "Merged")
        assert mock_gh.call_args[0][0] == ["pr", "merge", "12", "--squash"]

    def test_merge_rejects_unknown_strategy(self):
        with pytest.raises(ValueError):
            asyncio.run(merge_pr(_ready_prereq(), 12, "octopus"))

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_checkout_failure(self, mock_gh):
        mock_gh.return_value = _result(1, stderr="no pull requests found for branch")
        err, text = asyncio.run(checkout_pr(_ready_prereq(), "9"))
        assert err == "gh pr checkout failed: no pull requests found for branch"
        assert text == "no pull requests found for branch"

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_comment(self, mock_gh):
        mock_gh.return_value = _result()
        assert asyncio.run(comment_pr(_ready_prereq(), 3, " LGTM ")) == (None, "")
        assert mock_gh.call_args[0][0] == ["pr", "comment", "3", "--body", "LGTM"]

    def test_comment_requires_body(self):
        with pytest.raises(ValueError):
            asyncio.run(comment_pr(_ready_prereq(), 3, ""))

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_review_modes(self, mock_gh):
        mock_gh.return_value = _result()
        asyncio.run(review_pr(_ready_prereq(), 4, "request-changes", "Needs tests"))
        assert mock_gh.call_args[0][0] == [
            "pr", "review", "4", "--request-changes", "--body", "Needs tests",
        ]
        with pytest.raises(ValueError):
            asyncio.run(review_pr(_ready_prereq(), 4, "shrug"))

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_edit_without_changes_is_noop(self, mock_gh):
        assert asyncio.run(edit_pr(_ready_prereq(), 5)) == (None, "Nothing to edit")
        mock_gh.assert_not_awaited()

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_unready_skips_gh(self, mock_gh):
        prereq = GhPrerequisites()
        prereq.ensure = MagicMock(return_value=(False, NOT_AUTHENTICATED_MESSAGE))
        assert asyncio.run(checkout_pr(prereq, 1)) == (NOT_AUTHENTICATED_MESSAGE, "")
        mock_gh.assert_not_awaited()


class TestGhIssueActions:
    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_create(self, mock_gh):
        mock_gh.return_value = _result(stdout="https://github.com/o/r/issues/8")
        err, url = asyncio.run(create_issue(
            _ready_prereq(), "Crash on start", labels=["bug", "p1"], assignees="ada",
        ))
        assert (err, url) == (None, "https://github.com/o/r/issues/8")
        assert mock_gh.call_args[0][0] == [
            "issue", "create", "--title", "Crash on start", "--body", "",
            "--label", "bug,p1", "--assignee", "ada",
        ]

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_comment_and_close(self, mock_gh):
        mock_gh.return_value = _result(stdout="done")
        assert asyncio.run(comment_issue(_ready_prereq(), 8, "Fixed in #7")) == (None, "done")
        assert mock_gh.call_args[0][0] == ["issue", "comment", "8", "--body", "Fixed in #7"]
        assert asyncio.run(close_issue(_ready_prereq(), 8)) == (None, "done")
        assert mock_gh.call_args[0][0] == ["issue", "close", "8"]

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_close_failure(self, mock_gh):
        mock_gh.return_value = _result(1)
        assert asyncio.run(close_issue(_ready_prereq(), 8)) == ("gh issue close failed", "")


class TestGhLabels:
    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_list(self, mock_gh):
        mock_gh.return_value = _result(stdout='[{"name": "bug", "color": "d73a4a"}]')
        assert asyncio.run(list_labels(_ready_prereq())) == (None, [{"name": "bug", "color": "d73a4a"}])

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_create_normalizes_color(self, mock_gh):
        mock_gh.return_value = _result()
        asyncio.run(create_label(_ready_prereq(), "ui", "#A1B2C3", "Interface"))
        assert mock_gh.call_args[0][0] == [
            "label", "create", "ui", "--color", "a1b2c3", "--description", "Interface",
        ]

    def test_create_rejects_bad_color(self):
        with pytest.raises(ValueError):
            asyncio.run(create_label(_ready_prereq(), "ui", "blue"))

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_delete_confirms_non_interactively(self, mock_gh):
        mock_gh.return_value = _result()
        asyncio.run(delete_label(_ready_prereq(), "stale"))
        assert mock_gh.call_args[0][0] == ["label", "delete", "stale", "--yes"]

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_assign_to_pr(self, mock_gh):
        mock_gh.return_value = _result()
        asyncio.run(assign_labels(_ready_prereq(), 7, ["bug", "ui"], kind="pr"))
        assert mock_gh.call_args[0][0] == ["pr", "edit", "7", "--add-label", "bug,ui"]

    @patch("gitflow.lib.github.gh", new_callable=AsyncMock)
    def test_assign_nothing(self, mock_gh):
        assert asyncio.run(assign_labels(_ready_prereq(), 7, [" "])) == (None, "No labels to assign")
        mock_gh.assert_not_awaited()


class TestPackageExports:
    def test_lib_exports(self):
        import gitflow.lib

        assert gitflow.lib.Generation is Generation
        assert gitflow.lib.GhPrerequisites is GhPrerequisites
        assert set(gitflow.lib.__all__) <= set(dir(gitflow.lib))

    def test_git_exports_history_helpers(self):
        import gitflow.git
        from gitflow.git import bisect, reset

        assert gitflow.git.parse_first_bad is bisect.parse_first_bad
        assert gitflow.git.reset_to is reset.reset_to
        assert set(gitflow.git.__all__) <= set(dir(gitflow.git))
