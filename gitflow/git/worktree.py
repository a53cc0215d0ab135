"""Git worktree operations."""

from dataclasses import dataclass

from gitflow.git.runner import RunOptions, error_from_result, git, git_action


@dataclass(frozen=True)
class WorktreeEntry:
    path: str
    sha: str
    short_sha: str
    branch: str | None
    is_bare: bool
    is_main: bool


def parse_worktrees(text: str) -> list[WorktreeEntry]:
    """
    Parse `git worktree list --porcelain` output.

    Stanzas start with `worktree <path>`; the first stanza is the main
    worktree.
    """
    stanzas: list[dict] = []
    current: dict | None = None

    for line in text.split("\n") if text else []:
        if not line:
            continue
        if line.startswith("worktree "):
            current = {"path": line[len("worktree "):], "sha": "", "branch": None, "bare": False}
            stanzas.append(current)
        elif current is None:
            continue
        elif line.startswith("HEAD "):
            current["sha"] = line[len("HEAD "):]
        elif line.startswith("branch "):
            branch = line[len("branch "):]
            current["branch"] = branch.removeprefix("refs/heads/")
        elif line == "bare":
            current["bare"] = True

    return [
        WorktreeEntry(
            path=s["path"],
            sha=s["sha"],
            short_sha=s["sha"][:7],
            branch=s["branch"],
            is_bare=s["bare"],
            is_main=i == 0,
        )
        for i, s in enumerate(stanzas)
    ]


async def list_worktrees(opts: RunOptions | None = None) -> tuple[str | None, list[WorktreeEntry]]:
    result = await git(["worktree", "list", "--porcelain"], opts)
    if not result.success:
        return error_from_result(result, "worktree list"), []
    return None, parse_worktrees(result.stdout)


async def add_worktree(
    path: str, branch: str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    if not path:
        raise ValueError("add_worktree() requires a path")
    if not branch:
        raise ValueError("add_worktree() requires a branch")
    return await git_action(["worktree", "add", path, branch], "worktree add", opts)


async def remove_worktree(path: str, opts: RunOptions | None = None) -> tuple[str | None, str]:
    if not path:
        raise ValueError("remove_worktree() requires a path")
    return await git_action(["worktree", "remove", path], "worktree remove", opts)
