"""Tests for gitflow.workflow orchestrators."""

import asyncio
from unittest.mock import AsyncMock, patch

from gitflow.git.branch import BranchEntry
from gitflow.git.runner import ProcessResult
from gitflow.lib.prompts import ScriptedPrompter
from gitflow.lib.types import ErrorKind
from gitflow.workflow.matchers import (
    MergeKind,
    PhraseMatcher,
    classify_merge_output,
    looks_like_no_upstream,
    parse_conflict_paths,
)
from gitflow.workflow.operations import cherry_pick, format_conflict_message, merge, rebase
from gitflow.workflow.push import STATES, PushFlow, push_with_upstream
from gitflow.workflow.switch import SYMBOLIC_HEAD_MESSAGE, switch_attempts, switch_branch
from gitflow.workflow.upstream import NOT_APPLICABLE, ahead_of_upstream


def _result(code=0, stdout="", stderr="", timed_out=False):
    return ProcessResult(exit_code=code, signal=0, stdout=stdout, stderr=stderr, timed_out=timed_out)


NO_UPSTREAM_OUTPUT = "fatal: The current branch main has no upstream branch."


def _local(name, current=False):
    return BranchEntry(name, f"refs/heads/{name}", False, None, name, current)


def _remote(name):
    remote, short = name.split("/", 1)
    return BranchEntry(name, f"refs/remotes/{name}", True, remote, short, False)


class TestMatchers:
    """Test recoverable-failure recognisers."""

    def test_no_upstream_scenario(self):
        assert looks_like_no_upstream(NO_UPSTREAM_OUTPUT) is True

    def test_case_insensitive(self):
        assert looks_like_no_upstream("Use --SET-UPSTREAM to push") is True

    def test_other_failure(self):
        assert looks_like_no_upstream("! [rejected] main -> main (fetch first)") is False
        assert looks_like_no_upstream(None) is False

    def test_custom_phrases(self):
        matcher = PhraseMatcher.of(["kein upstream-zweig"])
        assert matcher.matches("fatal: Der aktuelle Branch hat KEIN UPSTREAM-ZWEIG.")
        assert not matcher.matches(NO_UPSTREAM_OUTPUT)

    def test_conflict_paths_scenario(self):
        text = (
            "Auto-merging a.txt\n"
            "CONFLICT (content): Merge conflict in a.txt\n"
            "CONFLICT (content): Merge conflict in b.txt\n"
            "CONFLICT (content): Merge conflict in a.txt\n"
            "Automatic merge failed; fix conflicts and then commit the result.\n"
        )
        assert parse_conflict_paths(text) == ["a.txt", "b.txt"]

    def test_conflict_paths_lowercase(self):
        assert parse_conflict_paths("conflict (add/add): Merge conflict in src/x.py") == ["src/x.py"]

    def test_classify_merge(self):
        assert classify_merge_output("Updating a..b\nFast-forward\n x | 1 +") == MergeKind.FAST_FORWARD
        assert classify_merge_output("Already up to date.") == MergeKind.UP_TO_DATE
        assert classify_merge_output("Merge made by the 'ort' strategy.") == MergeKind.MERGE_COMMIT


class TestPushFlow:
    """Test push-with-upstream state machine."""

    def test_states(self):
        assert set(STATES) == {"pushing", "needs_upstream", "pushing_upstream", "done", "failed"}

    @patch("gitflow.workflow.push.git_push", new_callable=AsyncMock)
    def test_plain_success(self, mock_push):
        mock_push.return_value = _result(stderr="To origin\n   a..b  main -> main")
        prompter = ScriptedPrompter()
        outcome = asyncio.run(push_with_upstream(prompter))
        assert outcome.success
        assert outcome.state == "done"
        assert outcome.message == "To origin\n   a..b  main -> main"
        assert prompter.asked == []

    @patch("gitflow.workflow.push.git_push", new_callable=AsyncMock)
    def test_success_without_output(self, mock_push):
        mock_push.return_value = _result()
        outcome = asyncio.run(push_with_upstream(ScriptedPrompter()))
        assert outcome.message == "Push completed"

    @patch("gitflow.workflow.push.push_set_upstream", new_callable=AsyncMock)
    @patch("gitflow.workflow.push.git", new_callable=AsyncMock)
    @patch("gitflow.workflow.push.git_push", new_callable=AsyncMock)
    def test_negotiates_upstream(self, mock_push, mock_git, mock_upstream):
        mock_push.return_value = _result(128, stderr=NO_UPSTREAM_OUTPUT)
        mock_git.return_value = _result(stdout="main\n")
        mock_upstream.return_value = _result(stderr="branch 'main' set up to track 'origin/main'.")
        prompter = ScriptedPrompter(confirm_answers=[True])

        outcome = asyncio.run(PushFlow(prompter).run())

        assert outcome.success
        assert outcome.set_upstream is True
        assert outcome.branch == "main"
        assert outcome.state == "done"
        assert prompter.asked == ["No upstream for 'main'. Push with -u origin main?"]
        mock_upstream.assert_awaited_once_with("origin", "main", None)

    @patch("gitflow.workflow.push.git", new_callable=AsyncMock)
    @patch("gitflow.workflow.push.git_push", new_callable=AsyncMock)
    def test_detached_head_fails_without_prompt(self, mock_push, mock_git):
        mock_push.return_value = _result(128, stderr=NO_UPSTREAM_OUTPUT)
        mock_git.return_value = _result(stdout="HEAD\n")
        prompter = ScriptedPrompter(confirm_answers=[True])

        outcome = asyncio.run(PushFlow(prompter).run())

        assert not outcome.success
        assert outcome.error.kind == ErrorKind.DETACHED_HEAD
        assert outcome.state == "failed"
        assert prompter.asked == []

    @patch("gitflow.workflow.push.push_set_upstream", new_callable=AsyncMock)
    @patch("gitflow.workflow.push.git", new_callable=AsyncMock)
    @patch("gitflow.workflow.push.git_push", new_callable=AsyncMock)
    def test_declined(self, mock_push, mock_git, mock_upstream):
        mock_push.return_value = _result(128, stderr=NO_UPSTREAM_OUTPUT)
        mock_git.return_value = _result(stdout="main\n")

        outcome = asyncio.run(PushFlow(ScriptedPrompter(confirm_answers=[False])).run())

        assert outcome.error.kind == ErrorKind.CANCELLED
        assert outcome.message == "Push cancelled"
        mock_upstream.assert_not_awaited()

    @patch("gitflow.workflow.push.git_push", new_callable=AsyncMock)
    def test_other_failure_is_verbatim(self, mock_push):
        rejected = "! [rejected]        main -> main (non-fast-forward)"
        mock_push.return_value = _result(1, stderr=rejected)
        outcome = asyncio.run(push_with_upstream(ScriptedPrompter()))
        assert outcome.error.kind == ErrorKind.COMMAND_FAILED
        assert outcome.message == rejected
        assert outcome.state == "failed"

    @patch("gitflow.workflow.push.git_push", new_callable=AsyncMock)
    def test_timeout(self, mock_push):
        mock_push.return_value = _result(-1, stderr="Command timed out after 60s", timed_out=True)
        outcome = asyncio.run(push_with_upstream(ScriptedPrompter()))
        assert outcome.error.kind == ErrorKind.TIMED_OUT

    @patch("gitflow.workflow.push.push_set_upstream", new_callable=AsyncMock)
    @patch("gitflow.workflow.push.git", new_callable=AsyncMock)
    @patch("gitflow.workflow.push.git_push", new_callable=AsyncMock)
    def test_upstream_push_failure(self, mock_push, mock_git, mock_upstream):
        mock_push.return_value = _result(128, stderr=NO_UPSTREAM_OUTPUT)
        mock_git.return_value = _result(stdout="main\n")
        mock_upstream.return_value = _result(128, stderr="fatal: 'origin' does not appear to be a git repository")

        outcome = asyncio.run(PushFlow(ScriptedPrompter(confirm_answers=[True]), remote="origin").run())

        assert outcome.state == "failed"
        assert "does not appear" in outcome.message


class TestOperations:
    """Test merge/rebase/cherry-pick conflict detection."""

    @patch("gitflow.workflow.operations.git", new_callable=AsyncMock)
    def test_fast_forward_merge(self, mock_git):
        mock_git.return_value = _result(stdout="Updating 1..2\nFast-forward\n")
        outcome = asyncio.run(merge("feature"))
        assert outcome.success
        assert outcome.merge_kind == MergeKind.FAST_FORWARD
        assert outcome.message.startswith("Fast-forward merge completed")
        assert mock_git.call_args[0][0] == ["merge", "feature"]

    @patch("gitflow.workflow.operations.list_conflicted_paths", new_callable=AsyncMock)
    @patch("gitflow.workflow.operations.git", new_callable=AsyncMock)
    def test_conflicts_from_output(self, mock_git, mock_unmerged):
        mock_git.return_value = _result(
            1,
            stdout=(
                "CONFLICT (content): Merge conflict in a.txt\n"
                "CONFLICT (content): Merge conflict in b.txt\n"
            ),
        )
        outcome = asyncio.run(merge("feature"))
        assert not outcome.success
        assert outcome.conflicts == ("a.txt", "b.txt")
        assert outcome.error.kind == ErrorKind.CONFLICT
        assert outcome.message.startswith("Merge has conflicts.")
        mock_unmerged.assert_not_awaited()

    @patch("gitflow.workflow.operations.list_conflicted_paths", new_callable=AsyncMock)
    @patch("gitflow.workflow.operations.git", new_callable=AsyncMock)
    def test_falls_back_to_unmerged_paths(self, mock_git, mock_unmerged):
        mock_git.return_value = _result(1, stderr="error: could not apply abc123... Change")
        mock_unmerged.return_value = (None, ["src/x.py"])
        outcome = asyncio.run(rebase(["main"]))
        assert outcome.conflicts == ("src/x.py",)
        assert "rebase --continue" in outcome.message
        assert "could not apply" in outcome.message

    @patch("gitflow.workflow.operations.list_conflicted_paths", new_callable=AsyncMock)
    @patch("gitflow.workflow.operations.git", new_callable=AsyncMock)
    def test_generic_failure(self, mock_git, mock_unmerged):
        mock_git.return_value = _result(128, stderr="fatal: bad revision 'nope'")
        mock_unmerged.return_value = (None, [])
        outcome = asyncio.run(cherry_pick("nope"))
        assert outcome.error.kind == ErrorKind.COMMAND_FAILED
        assert outcome.message == "fatal: bad revision 'nope'"
        assert not outcome.has_conflicts

    @patch("gitflow.workflow.operations.list_conflicted_paths", new_callable=AsyncMock)
    @patch("gitflow.workflow.operations.git", new_callable=AsyncMock)
    def test_timeout_skips_conflict_scan(self, mock_git, mock_unmerged):
        mock_git.return_value = _result(-1, stderr="Command timed out after 30s", timed_out=True)
        outcome = asyncio.run(merge("feature"))
        assert outcome.error.kind == ErrorKind.TIMED_OUT
        mock_unmerged.assert_not_awaited()

    @patch("gitflow.workflow.operations.git", new_callable=AsyncMock)
    def test_rebase_abort_passthrough(self, mock_git):
        mock_git.return_value = _result()
        outcome = asyncio.run(rebase(["--abort"]))
        assert outcome.success
        assert outcome.message == "rebase --abort completed"
        assert outcome.merge_kind is None

    def test_format_conflict_message_without_paths(self):
        text = format_conflict_message("cherry-pick", [], "raw")
        assert text == "Cherry-pick has conflicts.\nConflicted files:\n(none)\n\nraw"


class TestSwitchBranch:
    """Test switch fallback chain."""

    def test_remote_attempt_order(self):
        attempts = [args for args, _ in switch_attempts(_remote("origin/feature"))]
        assert attempts == [
            ["switch", "feature"],
            ["switch", "--track", "origin/feature"],
            ["checkout", "-t", "origin/feature"],
        ]

    @patch("gitflow.workflow.switch.git", new_callable=AsyncMock)
    def test_local_switch(self, mock_git):
        mock_git.return_value = _result(stderr="Switched to branch 'dev'")
        err, text = asyncio.run(switch_branch(_local("dev")))
        assert err is None
        assert text == "Switched to branch 'dev'"
        assert mock_git.call_count == 1

    @patch("gitflow.workflow.switch.git", new_callable=AsyncMock)
    def test_local_falls_back_to_checkout(self, mock_git):
        mock_git.side_effect = [_result(129, stderr="unknown command"), _result()]
        err, _ = asyncio.run(switch_branch(_local("dev")))
        assert err is None
        assert mock_git.call_args[0][0] == ["checkout", "dev"]

    @patch("gitflow.workflow.switch.git", new_callable=AsyncMock)
    def test_remote_exhausts_three_attempts(self, mock_git):
        mock_git.return_value = _result(1, stderr="fatal: nope")
        err, text = asyncio.run(switch_branch(_remote("origin/feature")))
        assert mock_git.call_count == 3
        assert err.kind == ErrorKind.COMMAND_FAILED
        assert err.message == "git checkout -t failed: fatal: nope"
        assert text == "fatal: nope"

    @patch("gitflow.workflow.switch.git", new_callable=AsyncMock)
    def test_symbolic_head_rejected(self, mock_git):
        err, _ = asyncio.run(switch_branch(_remote("origin/HEAD")))
        assert err.kind == ErrorKind.SYMBOLIC_HEAD
        assert err.message == SYMBOLIC_HEAD_MESSAGE
        mock_git.assert_not_awaited()


class TestAheadOfUpstream:
    """Test ahead count computation."""

    @patch("gitflow.workflow.upstream.git", new_callable=AsyncMock)
    def test_ahead(self, mock_git):
        mock_git.side_effect = [
            _result(stdout="main\n"),
            _result(stdout="origin/main\n"),
            _result(stdout="3\n"),
        ]
        err, status = asyncio.run(ahead_of_upstream())
        assert err is None
        assert (status.ahead, status.count, status.has_upstream) == (True, 3, True)

    @patch("gitflow.workflow.upstream.git", new_callable=AsyncMock)
    def test_detached(self, mock_git):
        mock_git.return_value = _result(stdout="HEAD\n")
        assert asyncio.run(ahead_of_upstream()) == (None, NOT_APPLICABLE)
        assert mock_git.call_count == 1

    @patch("gitflow.workflow.upstream.git", new_callable=AsyncMock)
    def test_no_upstream_is_not_an_error(self, mock_git):
        mock_git.side_effect = [
            _result(stdout="topic\n"),
            _result(128, stderr="fatal: no upstream configured for branch 'topic'"),
        ]
        err, status = asyncio.run(ahead_of_upstream())
        assert err is None
        assert status.has_upstream is False
        assert status.ahead is False

    @patch("gitflow.workflow.upstream.git", new_callable=AsyncMock)
    def test_other_failure(self, mock_git):
        mock_git.side_effect = [_result(stdout="topic\n"), _result(128, stderr="fatal: corrupt")]
        err, status = asyncio.run(ahead_of_upstream())
        assert err.kind == ErrorKind.COMMAND_FAILED
        assert status is None

    @patch("gitflow.workflow.upstream.git", new_callable=AsyncMock)
    def test_unparseable_count(self, mock_git):
        mock_git.side_effect = [_result(stdout="main\n"), _result(stdout="origin/main\n"), _result(stdout="lots\n")]
        err, _ = asyncio.run(ahead_of_upstream())
        assert err.kind == ErrorKind.PARSE_ERROR
