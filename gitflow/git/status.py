"""Git status operations.

Parses `git status --porcelain=v1` output into StatusEntry records and
provides the stage/unstage/revert commands used by the status view.
"""

import logging
import re
from dataclasses import dataclass

from gitflow.git.runner import RunOptions, error_from_result, git, output, split_lines

logger = logging.getLogger(__name__)

_STATUS_LINE = re.compile(r"^(..) (.+)$")
_RENAME = re.compile(r"^(.*?) -> (.+)$")


@dataclass(frozen=True)
class StatusEntry:
    """One line of porcelain v1 status output."""
    raw_line: str
    index_status: str
    worktree_status: str
    path: str
    original_path: str | None = None
    staged: bool = False
    unstaged: bool = False
    untracked: bool = False
    ignored: bool = False


@dataclass(frozen=True)
class StatusGroups:
    staged: tuple[StatusEntry, ...] = ()
    unstaged: tuple[StatusEntry, ...] = ()
    untracked: tuple[StatusEntry, ...] = ()


def parse_status_line(line: str) -> StatusEntry | None:
    """
    Parse a single porcelain v1 line.

    Returns:
        StatusEntry, or None for blank or malformed lines
    """
    line = line.rstrip("\r")
    if not line.strip():
        return None

    if line.startswith("?? "):
        return StatusEntry(
            raw_line=line, index_status="?", worktree_status="?",
            path=line[3:], untracked=True,
        )
    if line.startswith("!! "):
        return StatusEntry(
            raw_line=line, index_status="!", worktree_status="!",
            path=line[3:], ignored=True,
        )

    match = _STATUS_LINE.match(line)
    if not match:
        return None

    codes, pathspec = match.group(1), match.group(2)
    index_status, worktree_status = codes[0], codes[1]

    path, original = pathspec, None
    rename = _RENAME.match(pathspec)
    if rename:
        original, path = rename.group(1), rename.group(2)

    return StatusEntry(
        raw_line=line,
        index_status=index_status,
        worktree_status=worktree_status,
        path=path,
        original_path=original,
        staged=index_status != " ",
        unstaged=worktree_status != " ",
    )


def parse_status(text: str) -> list[StatusEntry]:
    """Parse porcelain v1 output, skipping lines that don't match."""
    entries = []
    for line in split_lines(text):
        entry = parse_status_line(line)
        if entry is not None:
            entries.append(entry)
    return entries


def group_status(entries: list[StatusEntry]) -> StatusGroups:
    """
    Partition entries into staged/unstaged/untracked buckets.

    Ignored entries are dropped. An entry with both index and worktree
    changes lands in both staged and unstaged. Each bucket is sorted by path.
    """
    staged, unstaged, untracked = [], [], []
    for entry in entries:
        if entry.untracked:
            untracked.append(entry)
            continue
        if entry.ignored:
            continue
        if entry.staged:
            staged.append(entry)
        if entry.unstaged:
            unstaged.append(entry)

    def by_path(e: StatusEntry) -> str:
        return e.path

    return StatusGroups(
        staged=tuple(sorted(staged, key=by_path)),
        unstaged=tuple(sorted(unstaged, key=by_path)),
        untracked=tuple(sorted(untracked, key=by_path)),
    )


def count_staged(groups: StatusGroups) -> int:
    return len(groups.staged)


async def fetch_status(opts: RunOptions | None = None) -> tuple[str | None, list[StatusEntry]]:
    """Run `git status --porcelain=v1` and parse it."""
    result = await git(["status", "--porcelain=v1"], opts)
    if not result.success:
        return error_from_result(result, "status"), []
    return None, parse_status(result.stdout)


async def stage_file(path: str, opts: RunOptions | None = None) -> tuple[str | None, str]:
    result = await git(["add", "--", path], opts)
    if not result.success:
        return error_from_result(result, "add"), output(result)
    return None, output(result)


async def stage_all(opts: RunOptions | None = None) -> tuple[str | None, str]:
    result = await git(["add", "-A"], opts)
    if not result.success:
        return error_from_result(result, "add"), output(result)
    return None, output(result)


async def unstage_file(path: str, opts: RunOptions | None = None) -> tuple[str | None, str]:
    """Unstage a path, falling back to `reset HEAD` on gits without restore."""
    result = await git(["restore", "--staged", "--", path], opts)
    if result.success:
        return None, output(result)

    logger.debug(f"restore --staged failed for {path}, trying reset")
    fallback = await git(["reset", "HEAD", "--", path], opts)
    if not fallback.success:
        return error_from_result(fallback, "reset"), output(fallback)
    return None, output(fallback)


async def unstage_all(opts: RunOptions | None = None) -> tuple[str | None, str]:
    result = await git(["reset", "HEAD"], opts)
    if not result.success:
        return error_from_result(result, "reset"), output(result)
    return None, output(result)


def _is_unknown_pathspec(text: str) -> bool:
    lowered = text.lower()
    return "did not match any file" in lowered or "pathspec" in lowered


async def revert_file(
    path: str, untracked: bool = False, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    """
    Discard all changes to a path.

    Tries `restore --source=HEAD`, then `reset HEAD` + `checkout --` for
    older gits. If checkout fails on an untracked path, or git reports an
    unknown pathspec, the file is removed with `clean -f`.
    """
    result = await git(
        ["restore", "--source=HEAD", "--staged", "--worktree", "--", path], opts
    )
    if result.success:
        return None, output(result)

    # reset result is ignored: checkout decides whether the fallback worked
    await git(["reset", "HEAD", "--", path], opts)
    checkout = await git(["checkout", "--", path], opts)
    if checkout.success:
        return None, output(checkout)

    if not (untracked or _is_unknown_pathspec(output(checkout))):
        return error_from_result(checkout, "checkout --"), output(checkout)

    clean = await git(["clean", "-f", "--", path], opts)
    if not clean.success:
        return error_from_result(clean, "clean -f"), output(clean)
    return None, output(clean)
