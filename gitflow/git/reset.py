"""Git reset operations."""

import logging

from gitflow.git.log import LogEntry, list_log
from gitflow.git.runner import RunOptions, git, git_action

logger = logging.getLogger(__name__)

MERGE_BASE_CANDIDATES = ("main", "master", "origin/HEAD")


async def list_commits(
    count: int = 50, opts: RunOptions | None = None
) -> tuple[str | None, list[LogEntry]]:
    return await list_log(count=count, opts=opts)


async def find_merge_base(opts: RunOptions | None = None) -> str | None:
    """Merge base of HEAD with the first of main/master/origin/HEAD that resolves."""
    for ref in MERGE_BASE_CANDIDATES:
        result = await git(["merge-base", "HEAD", ref], opts)
        sha = result.stdout.strip()
        if result.success and sha:
            return sha
        logger.debug(f"No merge base with {ref}")
    return None


async def reset_to(sha: str, mode: str, opts: RunOptions | None = None) -> tuple[str | None, str]:
    """Reset HEAD to sha. mode must be "soft" or "hard"."""
    if not sha:
        raise ValueError("reset_to() requires a SHA")
    if mode not in ("soft", "hard"):
        raise ValueError("mode must be 'soft' or 'hard'")
    return await git_action(["reset", f"--{mode}", sha], "reset", opts)
