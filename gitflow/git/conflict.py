"""Merge conflict discovery and marker parsing.

parse_conflict_hunks() is a small state machine over file lines:

    NONE  -- <<<<<<< -->  LOCAL
    LOCAL -- ||||||| -->  BASE
    LOCAL -- ======= -->  REMOTE
    BASE  -- ======= -->  REMOTE
    REMOTE -- >>>>>>> --> NONE (hunk emitted)

Both the two-way form and diff3 (`|||||||` base section) are accepted.
Line numbers are 1-based.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from gitflow.git.runner import (
    RunOptions,
    error_from_result,
    git,
    git_action,
    output,
    split_lines,
)

logger = logging.getLogger(__name__)

LOCAL_MARKER = "<<<<<<<"
BASE_MARKER = "|||||||"
MIDDLE_MARKER = "======="
REMOTE_MARKER = ">>>>>>>"

VERSION_STAGES = {"base": 1, "local": 2, "remote": 3}

# Marker files under .git that identify an in-progress operation, checked in order
OPERATION_MARKERS = (
    ("rebase", ("rebase-merge", "rebase-apply")),
    ("merge", ("MERGE_HEAD",)),
    ("cherry-pick", ("CHERRY_PICK_HEAD",)),
)

NO_OPERATION_MESSAGE = "No merge, rebase, or cherry-pick in progress"


class _Section(Enum):
    NONE = "none"
    LOCAL = "local"
    BASE = "base"
    REMOTE = "remote"


@dataclass(frozen=True)
class ConflictHunk:
    """A marked conflict region. middle_line is the `=======` line."""
    start_line: int
    middle_line: int
    end_line: int
    local_lines: tuple[str, ...] = ()
    base_lines: tuple[str, ...] = ()
    remote_lines: tuple[str, ...] = ()
    resolved: bool = False
    resolution: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.end_line > 0


@dataclass
class _Builder:
    start_line: int
    middle_line: int = 0
    local: list[str] = field(default_factory=list)
    base: list[str] = field(default_factory=list)
    remote: list[str] = field(default_factory=list)

    def build(self, end_line: int) -> ConflictHunk:
        return ConflictHunk(
            start_line=self.start_line,
            middle_line=self.middle_line if end_line else 0,
            end_line=end_line,
            local_lines=tuple(self.local),
            base_lines=tuple(self.base),
            remote_lines=tuple(self.remote),
        )


def parse_conflict_hunks(lines: list[str], include_partial: bool = False) -> list[ConflictHunk]:
    """
    Find conflict hunks in a file's lines.

    Args:
        lines: File content split into lines (no trailing newlines)
        include_partial: Also return an unterminated trailing hunk, with
            middle_line and end_line set to 0

    Returns:
        Hunks in file order. A `<<<<<<<` inside an open hunk restarts it.
    """
    hunks: list[ConflictHunk] = []
    state = _Section.NONE
    current: _Builder | None = None

    for line_no, line in enumerate(lines, start=1):
        if line.startswith(LOCAL_MARKER):
            if current is not None:
                logger.debug(f"Nested conflict start at line {line_no}, restarting hunk")
            current = _Builder(start_line=line_no)
            state = _Section.LOCAL
        elif current is None:
            continue
        elif line.startswith(BASE_MARKER) and state == _Section.LOCAL:
            state = _Section.BASE
        elif line.startswith(MIDDLE_MARKER) and state in (_Section.LOCAL, _Section.BASE):
            current.middle_line = line_no
            state = _Section.REMOTE
        elif line.startswith(REMOTE_MARKER) and state == _Section.REMOTE:
            hunks.append(current.build(end_line=line_no))
            current = None
            state = _Section.NONE
        elif state == _Section.LOCAL:
            current.local.append(line)
        elif state == _Section.BASE:
            current.base.append(line)
        elif state == _Section.REMOTE:
            current.remote.append(line)

    if current is not None and include_partial:
        hunks.append(current.build(end_line=0))
    return hunks


def read_lines(path: Path | str) -> tuple[str | None, list[str]]:
    """
    Read a text file as lines for conflict editing.

    Returns:
        (error, lines). Files containing NUL bytes are rejected as binary.
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        return f"Could not read '{path}': {e.strerror or e}", []

    if b"\0" in data:
        return f"File '{path}' appears to be binary and cannot be resolved", []

    text = data.decode("utf-8", errors="surrogateescape")
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return None, lines


def write_lines(path: Path | str, lines: list[str]) -> str | None:
    """Write lines back with a trailing newline. Returns an error string on failure."""
    text = "".join(f"{line}\n" for line in lines)
    try:
        Path(path).write_bytes(text.encode("utf-8", errors="surrogateescape"))
    except OSError as e:
        return f"Could not write '{path}': {e.strerror or e}"
    return None


def read_conflict_hunks(path: Path | str) -> tuple[str | None, list[ConflictHunk]]:
    """Parse the conflict hunks currently on disk. A missing file has no hunks."""
    if not path:
        return "Path is required", []
    if not Path(path).is_file():
        return None, []
    err, lines = read_lines(path)
    if err:
        return err, []
    return None, parse_conflict_hunks(lines)


async def list_conflicted_paths(opts: RunOptions | None = None) -> tuple[str | None, list[str]]:
    """Paths git considers unmerged, sorted."""
    result = await git(["diff", "--name-only", "--diff-filter=U"], opts)
    if not result.success:
        return error_from_result(result, "diff --name-only --diff-filter=U"), []
    return None, sorted(line.strip() for line in split_lines(result.stdout))


async def checkout_side(
    path: str, side: str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    """Take the whole file from one side (`ours` or `theirs`)."""
    if side not in ("ours", "theirs"):
        raise ValueError("checkout side must be 'ours' or 'theirs'")
    if not path or not path.strip():
        raise ValueError("checkout_side() requires a path")
    return await git_action(
        ["checkout", f"--{side}", "--", path], f"checkout --{side} -- {path}", opts
    )


async def stage_path(path: str, opts: RunOptions | None = None) -> tuple[str | None, str]:
    if not path or not path.strip():
        raise ValueError("stage_path() requires a path")
    return await git_action(["add", "--", path], f"add -- {path}", opts)


async def stage_paths(paths: list[str], opts: RunOptions | None = None) -> tuple[str | None, str]:
    """Stage several paths in one `git add`. Blank entries are ignored."""
    targets = [p for p in paths if p and p.strip()]
    if not targets:
        return None, ""
    return await git_action(["add", "--", *targets], "add", opts)


async def mark_resolved(path: str, opts: RunOptions | None = None) -> tuple[str | None, str]:
    """Mark a conflicted path as resolved by staging it."""
    return await stage_path(path, opts)


async def get_version(
    path: str, side: str, opts: RunOptions | None = None
) -> tuple[str | None, list[str]]:
    """
    Fetch one side of a conflicted file from the index.

    Args:
        path: Repository-relative path
        side: "local" (:2:), "base" (:1:) or "remote" (:3:)
    """
    stage = VERSION_STAGES.get(side)
    if stage is None:
        raise ValueError(f"Unknown conflict side: {side}")
    result = await git(["show", f":{stage}:{path}"], opts)
    if not result.success:
        return error_from_result(result, f"show :{stage}:{path}"), []
    lines = result.stdout.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return None, lines


def detect_active_operation(git_dir: Path | str) -> str | None:
    """Name of the operation in progress in git_dir ("merge", "rebase", "cherry-pick")."""
    base = Path(git_dir)
    for operation, markers in OPERATION_MARKERS:
        if any((base / marker).exists() for marker in markers):
            return operation
    return None


async def resolve_git_dir(opts: RunOptions | None = None) -> tuple[str | None, Path | None]:
    result = await git(["rev-parse", "--git-dir"], opts)
    if not result.success:
        return error_from_result(result, "rev-parse --git-dir"), None
    git_dir = Path(result.stdout.strip())
    if not git_dir.is_absolute() and opts is not None and opts.cwd:
        git_dir = Path(opts.cwd) / git_dir
    return None, git_dir


async def active_operation(opts: RunOptions | None = None) -> tuple[str | None, str | None]:
    err, git_dir = await resolve_git_dir(opts)
    if err:
        return err, None
    return None, detect_active_operation(git_dir)


async def _run_operation_flag(
    flag: str, opts: RunOptions | None
) -> tuple[str | None, str | None, str]:
    err, operation = await active_operation(opts)
    if err:
        return err, None, ""
    if operation is None:
        return NO_OPERATION_MESSAGE, None, ""

    options = opts or RunOptions()
    env = dict(options.env or {})
    # Accept the prepared commit message instead of opening an editor
    env.setdefault("GIT_EDITOR", "true")
    run_opts = RunOptions(cwd=options.cwd, env=env, stdin=options.stdin, timeout=options.timeout)

    logger.info(f"Running {operation} {flag}")
    result = await git([operation, flag], run_opts)
    if not result.success:
        return error_from_result(result, f"{operation} {flag}"), operation, output(result)
    return None, operation, output(result)


async def continue_operation(
    opts: RunOptions | None = None,
) -> tuple[str | None, str | None, str]:
    """
    Continue the active merge/rebase/cherry-pick.

    Returns:
        (error, operation name, combined output)
    """
    return await _run_operation_flag("--continue", opts)


async def abort_operation(
    opts: RunOptions | None = None,
) -> tuple[str | None, str | None, str]:
    """Abort the active merge/rebase/cherry-pick."""
    return await _run_operation_flag("--abort", opts)
