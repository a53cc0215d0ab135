"""Git bisect operations."""

import re

from gitflow.git.log import LogEntry, list_log
from gitflow.git.runner import RunOptions, git, git_action

_FIRST_BAD = re.compile(r"([0-9a-fA-F]+) is the first bad commit")


def parse_first_bad(text: str | None) -> str | None:
    """Extract the culprit SHA from bisect output, if bisect has finished."""
    if not text:
        return None
    match = _FIRST_BAD.search(text)
    return match.group(1) if match else None


async def list_commits(
    count: int = 50, opts: RunOptions | None = None
) -> tuple[str | None, list[LogEntry]]:
    return await list_log(count=count, opts=opts)


async def start(
    bad_sha: str, good_sha: str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    if not bad_sha:
        raise ValueError("start() requires a bad SHA")
    if not good_sha:
        raise ValueError("start() requires a good SHA")
    return await git_action(["bisect", "start", bad_sha, good_sha], "bisect start", opts)


async def good(opts: RunOptions | None = None) -> tuple[str | None, str]:
    return await git_action(["bisect", "good"], "bisect good", opts)


async def bad(opts: RunOptions | None = None) -> tuple[str | None, str]:
    return await git_action(["bisect", "bad"], "bisect bad", opts)


async def reset_bisect(opts: RunOptions | None = None) -> tuple[str | None, str]:
    return await git_action(["bisect", "reset"], "bisect reset", opts)


async def run_script(script_path: str, opts: RunOptions | None = None) -> tuple[str | None, str]:
    """Let git drive the bisect with a test script (exit 0 = good)."""
    if not script_path:
        raise ValueError("run_script() requires a script path")
    return await git_action(["bisect", "run", script_path], "bisect run", opts)


async def is_bisecting(opts: RunOptions | None = None) -> bool:
    result = await git(["bisect", "log"], opts)
    return result.success
