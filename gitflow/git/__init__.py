"""Git command wrappers and output parsers for gitflow.

Each module covers one git surface: pure parse functions that turn CLI text
into frozen records, plus async wrappers that run the command.

Return type conventions:
- Parsers take raw text and return a list (empty for empty input), never raise.
- Query wrappers return (error, value): error is None on success.
  Examples: list_branches(), fetch_status(), list_tags()
- Action wrappers return (error, output) with the combined command output.
  Examples: stage_file(), delete_branch(), push_tag()
- remote/commit wrappers return the ProcessResult for callers that branch on
  the output (push with upstream fallback, commit).
Only SpawnError is raised, when git itself can't be started.
"""

from gitflow.git.runner import (
    ProcessResult,
    RunOptions,
    SpawnError,
    error_from_result,
    gh,
    git,
    git_action,
    output,
    run,
    run_sync,
)
from gitflow.git.status import (
    StatusEntry,
    StatusGroups,
    parse_status,
    parse_status_line,
    group_status,
    count_staged,
    fetch_status,
)
from gitflow.git.diff import (
    DiffFile,
    DiffHunk,
    parse_diff,
    parse_hunk_header,
    collect_markers,
    parse_change_signs,
    build_diff_args,
    get_diff,
)
from gitflow.git.log import LogEntry, parse_log, list_log
from gitflow.git.branch import (
    BranchEntry,
    GraphLine,
    parse_branch_list,
    partition_branches,
    parse_graph,
    list_branches,
    current_branch,
)
from gitflow.git.blame import BlameEntry, parse_blame
from gitflow.git.conflict import (
    ConflictHunk,
    parse_conflict_hunks,
    read_conflict_hunks,
    list_conflicted_paths,
)
from gitflow.git.stash import StashEntry, parse_stash
from gitflow.git.tag import TagEntry, parse_tags
from gitflow.git.worktree import WorktreeEntry, parse_worktrees
from gitflow.git.reflog import ReflogEntry, parse_reflog
from gitflow.git.rebase import RebaseEntry, build_todo
from gitflow.git.cherry_pick import list_unique_commits
from gitflow.git.bisect import is_bisecting, parse_first_bad
from gitflow.git.reset import find_merge_base, reset_to

__all__ = [
    # runner
    "ProcessResult",
    "RunOptions",
    "SpawnError",
    "error_from_result",
    "gh",
    "git",
    "git_action",
    "output",
    "run",
    "run_sync",
    # status
    "StatusEntry",
    "StatusGroups",
    "parse_status",
    "parse_status_line",
    "group_status",
    "count_staged",
    "fetch_status",
    # diff
    "DiffFile",
    "DiffHunk",
    "parse_diff",
    "parse_hunk_header",
    "collect_markers",
    "parse_change_signs",
    "build_diff_args",
    "get_diff",
    # log
    "LogEntry",
    "parse_log",
    "list_log",
    # branch
    "BranchEntry",
    "GraphLine",
    "parse_branch_list",
    "partition_branches",
    "parse_graph",
    "list_branches",
    "current_branch",
    # blame
    "BlameEntry",
    "parse_blame",
    # conflict
    "ConflictHunk",
    "parse_conflict_hunks",
    "read_conflict_hunks",
    "list_conflicted_paths",
    # stash / tag / worktree / reflog / rebase
    "StashEntry",
    "parse_stash",
    "TagEntry",
    "parse_tags",
    "WorktreeEntry",
    "parse_worktrees",
    "ReflogEntry",
    "parse_reflog",
    "RebaseEntry",
    "build_todo",
    # cherry-pick / bisect / reset
    "list_unique_commits",
    "is_bisecting",
    "parse_first_bad",
    "find_merge_base",
    "reset_to",
]
