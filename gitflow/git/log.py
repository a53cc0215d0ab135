"""Git log operations."""

import re
from dataclasses import dataclass

from gitflow.git.runner import RunOptions, error_from_result, git, split_lines

DEFAULT_COUNT = 50
DEFAULT_FORMAT = "%h %s"

_LOG_LINE = re.compile(r"^([0-9a-fA-F]+)\t(.*)$")


@dataclass(frozen=True)
class LogEntry:
    sha: str
    short_sha: str
    summary: str


def parse_log(text: str) -> list[LogEntry]:
    """Parse `<sha>\\t<summary>` lines; other lines are skipped."""
    entries = []
    for line in split_lines(text):
        match = _LOG_LINE.match(line)
        if match:
            sha = match.group(1)
            entries.append(LogEntry(sha=sha, short_sha=sha[:7], summary=match.group(2)))
    return entries


def build_log_args(
    count: int = DEFAULT_COUNT,
    fmt: str = DEFAULT_FORMAT,
    rev_range: str | None = None,
    reverse: bool = False,
) -> list[str]:
    args = ["log"]
    if reverse:
        args.append("--reverse")
    if count > 0:
        args.append(f"-n{count}")
    if rev_range:
        args.append(rev_range)
    args.append(f"--pretty=format:%H%x09{fmt}")
    return args


async def list_log(
    count: int = DEFAULT_COUNT,
    fmt: str = DEFAULT_FORMAT,
    rev_range: str | None = None,
    reverse: bool = False,
    opts: RunOptions | None = None,
) -> tuple[str | None, list[LogEntry]]:
    """
    List commits.

    Args:
        count: Maximum number of commits, 0 for no limit
        fmt: git pretty format for the summary column
        rev_range: Optional revision range (e.g. "main..HEAD")
        reverse: Oldest first
    """
    result = await git(build_log_args(count, fmt, rev_range, reverse), opts)
    if not result.success:
        return error_from_result(result, "log"), []
    return None, parse_log(result.stdout)


async def show_commit(sha: str, opts: RunOptions | None = None) -> tuple[str | None, str]:
    """Return the patch for a single commit."""
    result = await git(["show", "--patch", sha], opts)
    if not result.success:
        return error_from_result(result, "show"), ""
    return None, result.stdout
