"""Git stash operations."""

import re
from dataclasses import dataclass

from gitflow.git.runner import RunOptions, error_from_result, git, git_action, split_lines

_STASH_LINE = re.compile(r"^(stash@\{(\d+)\}):\s*(.*)$")


@dataclass(frozen=True)
class StashEntry:
    ref: str
    index: int
    description: str


def parse_stash(text: str) -> list[StashEntry]:
    entries = []
    for line in split_lines(text):
        match = _STASH_LINE.match(line)
        if match:
            entries.append(StashEntry(
                ref=match.group(1), index=int(match.group(2)), description=match.group(3),
            ))
    return entries


def stash_ref(index: int) -> str:
    return f"stash@{{{index}}}"


def output_mentions_no_local_changes(text: str) -> bool:
    return "no local changes to save" in text.lower()


async def list_stashes(opts: RunOptions | None = None) -> tuple[str | None, list[StashEntry]]:
    result = await git(["stash", "list"], opts)
    if not result.success:
        return error_from_result(result, "stash list"), []
    return None, parse_stash(result.stdout)


async def push_stash(
    message: str | None = None, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    args = ["stash", "push"]
    if message:
        args.extend(["-m", message])
    return await git_action(args, "stash push", opts)


async def pop_stash(
    index: int | None = None, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    """Pop the given stash, or the most recent one."""
    args = ["stash", "pop"]
    if index is not None:
        args.append(stash_ref(index))
    return await git_action(args, "stash pop", opts)


async def drop_stash(index: int, opts: RunOptions | None = None) -> tuple[str | None, str]:
    if index is None:
        raise ValueError("drop_stash() requires a stash index")
    return await git_action(["stash", "drop", stash_ref(index)], "stash drop", opts)
