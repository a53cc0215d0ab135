"""Git reflog operations."""

import re
from dataclasses import dataclass

from gitflow.git.runner import RunOptions, error_from_result, git, git_action, split_lines

DEFAULT_COUNT = 50
RESET_MODES = ("soft", "mixed", "hard")

_REFLOG_LINE = re.compile(r"^([^\t]+)\t([^\t]+)\t(.*)$")
_ACTION = re.compile(r"^(\S+):")


@dataclass(frozen=True)
class ReflogEntry:
    sha: str
    short_sha: str
    selector: str
    action: str
    description: str


def parse_reflog(text: str) -> list[ReflogEntry]:
    """Parse `%H\\t%gd\\t%gs` lines. action is the description up to its first colon."""
    entries = []
    for line in split_lines(text):
        match = _REFLOG_LINE.match(line)
        if not match:
            continue
        sha, selector, description = match.groups()
        action = _ACTION.match(description)
        entries.append(ReflogEntry(
            sha=sha,
            short_sha=sha[:7],
            selector=selector,
            action=action.group(1) if action else "",
            description=description,
        ))
    return entries


async def list_reflog(
    count: int = DEFAULT_COUNT, opts: RunOptions | None = None
) -> tuple[str | None, list[ReflogEntry]]:
    result = await git(["reflog", "show", "--format=%H\t%gd\t%gs", "-n", str(count)], opts)
    if not result.success:
        return error_from_result(result, "reflog show"), []
    return None, parse_reflog(result.stdout)


async def checkout_entry(sha: str, opts: RunOptions | None = None) -> tuple[str | None, str]:
    if not sha or not sha.strip():
        raise ValueError("checkout_entry() requires a sha")
    return await git_action(["checkout", sha], "checkout", opts)


async def reset_to_entry(
    sha: str, mode: str = "mixed", opts: RunOptions | None = None
) -> tuple[str | None, str]:
    if not sha or not sha.strip():
        raise ValueError("reset_to_entry() requires a sha")
    if mode not in RESET_MODES:
        raise ValueError(f"Unknown reset mode: {mode}")
    return await git_action(["reset", f"--{mode}", sha], "reset", opts)
