"""Git cherry-pick helpers: source branches and commits not yet on HEAD."""

from gitflow.git.branch import current_branch, list_branches as list_all_branches
from gitflow.git.log import LogEntry, parse_log
from gitflow.git.runner import RunOptions, error_from_result, git, git_action, split_lines

DEFAULT_COUNT = 50


def parse_commits(text: str) -> list[LogEntry]:
    return parse_log(text)


def parse_branches(text: str, current: str | None = None) -> list[str]:
    """
    Parse `git branch` style output into candidate source branches.

    Skips the current branch, symbolic `*/HEAD` refs and detached HEAD rows.
    """
    branches = []
    for line in split_lines(text):
        name = line.strip().removeprefix("* ")
        if not name or name == current:
            continue
        if name.endswith("/HEAD") or name.startswith("(HEAD"):
            continue
        branches.append(name)
    return branches


async def list_branches(opts: RunOptions | None = None) -> tuple[str | None, list[str]]:
    """Branch names that can be cherry-picked from (everything but the current one)."""
    err, current = await current_branch(opts)
    if err:
        return err, []
    err, entries = await list_all_branches(opts)
    if err:
        return err, []
    return None, [
        e.name for e in entries
        if not e.is_current and e.name != current and not e.name.endswith("/HEAD")
    ]


async def list_unique_commits(
    source: str, count: int = DEFAULT_COUNT, opts: RunOptions | None = None
) -> tuple[str | None, list[LogEntry]]:
    """Commits on source whose changes are not already on HEAD."""
    args = [
        "log",
        "--cherry-pick",
        "--right-only",
        "--no-merges",
        "--pretty=format:%H%x09%h %s",
    ]
    if count > 0:
        args.append(f"-n{count}")
    args.append(f"HEAD...{source}")
    result = await git(args, opts)
    if not result.success:
        return error_from_result(result, "log --cherry-pick"), []
    return None, parse_commits(result.stdout)


async def cherry_pick(sha: str, opts: RunOptions | None = None) -> tuple[str | None, str]:
    if not sha:
        raise ValueError("cherry_pick() requires a SHA")
    return await git_action(["cherry-pick", sha], "cherry-pick", opts)
