"""Git blame parsing (`--line-porcelain`)."""

import re
from dataclasses import dataclass
from datetime import datetime, timezone

from gitflow.git.runner import RunOptions, error_from_result, git

_STANZA_START = re.compile(r"^([0-9a-fA-F]+)\s+\d+\s+(\d+)")


@dataclass(frozen=True)
class BlameEntry:
    sha: str
    short_sha: str
    author: str
    date: str  # YYYY-MM-DD in UTC, empty when author-time is missing
    line_number: int
    content: str
    boundary: bool


def _format_epoch(value: str) -> str:
    try:
        epoch = int(value)
    except ValueError:
        return ""
    if epoch <= 0:
        return ""
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%d")


def parse_blame(text: str) -> list[BlameEntry]:
    """
    Parse `git blame --line-porcelain` output.

    Each stanza starts with `<sha> <orig-line> <final-line> [count]`, followed
    by header lines and ends with the tab-prefixed content line.
    """
    entries: list[BlameEntry] = []
    lines = text.split("\n") if text else []
    i = 0
    while i < len(lines):
        match = _STANZA_START.match(lines[i])
        i += 1
        if not match:
            continue

        sha = match.group(1)
        author = ""
        author_time = ""
        boundary = False
        content = ""
        while i < len(lines):
            header = lines[i]
            i += 1
            if header.startswith("\t"):
                content = header[1:]
                break
            if header.startswith("author "):
                author = header[len("author "):]
            elif header.startswith("author-time "):
                author_time = header[len("author-time "):].strip()
            elif header == "boundary":
                boundary = True

        entries.append(BlameEntry(
            sha=sha,
            short_sha=sha[:7],
            author=author,
            date=_format_epoch(author_time),
            line_number=int(match.group(2)),
            content=content,
            boundary=boundary,
        ))
    return entries


async def blame(
    path: str | None = None, opts: RunOptions | None = None
) -> tuple[str | None, list[BlameEntry]]:
    args = ["blame", "--line-porcelain"]
    if path:
        args.extend(["--", path])
    result = await git(args, opts)
    if not result.success:
        return error_from_result(result, "blame"), []
    return None, parse_blame(result.stdout)
