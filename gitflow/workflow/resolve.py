"""Conflict hunk resolution on disk.

Every resolution re-reads and re-parses the file before splicing, so it
works against whatever is on disk now rather than a cached view. Two callers
resolving the same file at once is a user error; the last write wins.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from gitflow.git.conflict import ConflictHunk, parse_conflict_hunks, read_lines, write_lines
from gitflow.lib.types import ErrorKind, OpError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Local:
    """Keep our side (between <<<<<<< and =======)."""
    name = "local"


@dataclass(frozen=True)
class Base:
    """Keep the common ancestor (diff3 ||||||| section)."""
    name = "base"


@dataclass(frozen=True)
class Remote:
    """Keep their side (between ======= and >>>>>>>)."""
    name = "remote"


@dataclass(frozen=True)
class Edit:
    """Replace the hunk with caller-supplied lines."""
    lines: tuple[str, ...]
    name = "edit"


Resolution = Local | Base | Remote | Edit

_NAMED = {
    "local": Local(),
    "ours": Local(),
    "base": Base(),
    "remote": Remote(),
    "theirs": Remote(),
}


def parse_resolution(name: str) -> Resolution | None:
    """Map a choice name (local/base/remote, ours/theirs) to a Resolution."""
    return _NAMED.get(name.strip().lower())


def replacement_lines(hunk: ConflictHunk, choice: Resolution) -> list[str] | None:
    """Lines that replace the hunk, or None if the choice doesn't apply to it."""
    if isinstance(choice, Local):
        return list(hunk.local_lines)
    if isinstance(choice, Remote):
        return list(hunk.remote_lines)
    if isinstance(choice, Base):
        return list(hunk.base_lines) if hunk.base_lines else None
    if isinstance(choice, Edit):
        return list(choice.lines)
    raise TypeError(f"Unknown resolution: {choice!r}")


def splice_hunk(lines: list[str], hunk: ConflictHunk, replacement: list[str]) -> list[str]:
    """Replace lines[start_line..end_line] (1-based, inclusive) with replacement."""
    return lines[: hunk.start_line - 1] + replacement + lines[hunk.end_line:]


def resolve_hunk(
    path: Path | str, index: int, choice: Resolution
) -> tuple[list[ConflictHunk], OpError | None]:
    """
    Resolve one conflict hunk in a file.

    Args:
        path: File containing conflict markers
        index: 1-based hunk index in the current file
        choice: Which side to keep, or Edit with replacement lines

    Returns:
        (hunks remaining after the write, error). On error the file is
        untouched and the remaining list reflects what was parsed, if anything.
    """
    err, lines = read_lines(path)
    if err:
        return [], OpError(ErrorKind.IO_ERROR, err)

    hunks = parse_conflict_hunks(lines)
    if index < 1 or index > len(hunks):
        return hunks, OpError(
            ErrorKind.HUNK_NOT_FOUND, f"Conflict hunk {index} not found in '{path}'"
        )

    hunk = hunks[index - 1]
    replacement = replacement_lines(hunk, choice)
    if replacement is None:
        return hunks, OpError(
            ErrorKind.PARSE_ERROR,
            f"Conflict hunk {index} in '{path}' has no base section "
            "(set merge.conflictStyle=diff3 to record it)",
        )

    updated = splice_hunk(lines, hunk, replacement)
    write_err = write_lines(path, updated)
    if write_err:
        return hunks, OpError(ErrorKind.IO_ERROR, write_err)

    remaining = parse_conflict_hunks(updated)
    logger.info(f"[resolve] {path}: hunk {index} -> {choice.name}, {len(remaining)} left")
    return remaining, None


def resolve_all(path: Path | str, choice: Resolution) -> tuple[list[ConflictHunk], OpError | None]:
    """
    Resolve every hunk in a file with the same choice.

    Works from the last hunk to the first so earlier line numbers stay valid
    between writes. Stops at the first error.
    """
    err, hunks = _current_hunks(path)
    if err:
        return [], err

    remaining = hunks
    for index in range(len(hunks), 0, -1):
        remaining, err = resolve_hunk(path, index, choice)
        if err:
            return remaining, err
    return remaining, None


def _current_hunks(path: Path | str) -> tuple[OpError | None, list[ConflictHunk]]:
    err, lines = read_lines(path)
    if err:
        return OpError(ErrorKind.IO_ERROR, err), []
    return None, parse_conflict_hunks(lines)
