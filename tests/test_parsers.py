"""Shared contract checks for every CLI output parser."""

from functools import partial

import pytest

from gitflow.git import cherry_pick, rebase
from gitflow.git.blame import parse_blame
from gitflow.git.branch import parse_branch_list, parse_graph
from gitflow.git.conflict import parse_conflict_hunks
from gitflow.git.diff import parse_change_signs, parse_diff
from gitflow.git.log import parse_log
from gitflow.git.reflog import parse_reflog
from gitflow.git.stash import parse_stash
from gitflow.git.status import parse_status
from gitflow.git.tag import parse_tags
from gitflow.git.worktree import parse_worktrees
from gitflow.workflow.matchers import parse_conflict_paths


def _conflict_hunks(text):
    return parse_conflict_hunks(text.splitlines())


LOG_TEXT = "0123456789abcdef\tabc1234 First\nfedcba9876543210\tfed1234 Second\n"

PARSERS = [
    ("status", parse_status, "M  a.txt\n?? b.txt\n"),
    ("diff", parse_diff, "diff --git a/x.py b/x.py\n--- a/x.py\n+++ b/x.py\n@@ -1 +1 @@\n-a\n+b\n"),
    ("change_signs", parse_change_signs, "@@ -1,2 +1,2 @@\n keep\n-old\n+new\n"),
    ("log", parse_log, LOG_TEXT),
    ("branch_list", parse_branch_list, "*\tmain\trefs/heads/main\n \torigin/main\trefs/remotes/origin/main\n"),
    ("graph", parse_graph, "* abc1234 (HEAD -> main) Initial commit\n| * def5678 Fix\n|/\n"),
    ("blame", parse_blame, "1234567890abcdef1234567890abcdef12345678 1 1 1\nauthor Ada\nauthor-time 1700000000\n\tline one\n"),
    ("conflict_hunks", _conflict_hunks, "top\n<<<<<<< HEAD\nours\n=======\ntheirs\n>>>>>>> feature\n"),
    ("stash", parse_stash, "stash@{0}: WIP on main: abc1234 Work\nstash@{1}: On dev: saved\n"),
    ("tags", parse_tags, "v1.1\ttag\tabc123def\tRelease 1.1\nnightly\tcommit\t\tFix crash\n"),
    ("worktrees", parse_worktrees, "worktree /repo\nHEAD 1111111111111111111111111111111111111111\nbranch refs/heads/main\n"),
    ("reflog", parse_reflog, "aaaaaaaaaaaaaaaa\tHEAD@{0}\tcommit: Add feature\n"),
    ("rebase_commits", rebase.parse_commits, "1111111111111111111111111111111111111111\tAdd parser\n"),
    ("cherry_pick_commits", cherry_pick.parse_commits, LOG_TEXT),
    ("cherry_pick_branches", partial(cherry_pick.parse_branches, current="main"), "* main\n  feature\n"),
    ("conflict_paths", parse_conflict_paths, "CONFLICT (content): Merge conflict in a.txt\n"),
]


@pytest.mark.parametrize("parse,sample", [(p, s) for _, p, s in PARSERS], ids=[n for n, _, _ in PARSERS])
class TestParserContract:
    """Every parser maps empty output to [] and gives the same answer twice."""

    def test_empty_input_is_empty_list(self, parse, sample):
        assert parse("") == []

    def test_sample_parses(self, parse, sample):
        assert len(parse(sample)) > 0

    def test_repeatable(self, parse, sample):
        assert parse(sample) == parse(sample)
