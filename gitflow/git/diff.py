"""Git diff parsing.

The base parser only records file and hunk headers because the raw diff is
shown verbatim. collect_markers() and parse_change_signs() walk hunk bodies
for line-number lookups and gutter signs.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from gitflow.git.runner import RunOptions, error_from_result, git

_FILE_HEADER = re.compile(r"^diff --git a/(.+) b/(.+)$")
_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d*))? \+(\d+)(?:,(\d*))? @@")


@dataclass(frozen=True)
class DiffHunk:
    header: str


@dataclass(frozen=True)
class DiffFile:
    header: str
    old_path: str | None
    new_path: str | None
    hunks: tuple[DiffHunk, ...] = ()


@dataclass(frozen=True)
class HunkRange:
    """Numbers from a `@@ -a,b +c,d @@` header. Omitted counts default to 1."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int


@dataclass(frozen=True)
class FileMarker:
    line: int
    path: str


@dataclass(frozen=True)
class HunkMarker:
    line: int
    path: str | None
    header: str


@dataclass(frozen=True)
class LineContext:
    """What a rendered diff line belongs to, with its old/new line numbers."""
    path: str | None
    hunk: str | None
    old_line: int | None = None
    new_line: int | None = None


@dataclass(frozen=True)
class Markers:
    files: tuple[FileMarker, ...]
    hunks: tuple[HunkMarker, ...]
    lines: Mapping[int, LineContext]  # read-only view


@dataclass(frozen=True)
class ChangeSign:
    kind: str  # added, modified or deleted
    line: int


def parse_diff(text: str) -> list[DiffFile]:
    """Parse unified diff output into files with their hunk headers."""
    if not text:
        return []

    # (file header line, hunk headers) per file, in order
    sections: list[tuple[str, list[str]]] = []
    for line in text.split("\n"):
        if line.startswith("diff --git "):
            sections.append((line, []))
        elif sections and line.startswith("@@"):
            sections[-1][1].append(line)

    files = []
    for header, hunk_headers in sections:
        match = _FILE_HEADER.match(header)
        files.append(DiffFile(
            header=header,
            old_path=match.group(1) if match else None,
            new_path=match.group(2) if match else None,
            hunks=tuple(DiffHunk(header=h) for h in hunk_headers),
        ))
    return files


def parse_hunk_header(line: str) -> HunkRange | None:
    match = _HUNK_HEADER.match(line)
    if not match:
        return None
    old_count = match.group(2)
    new_count = match.group(4)
    return HunkRange(
        old_start=int(match.group(1)),
        old_count=int(old_count) if old_count else 1,
        new_start=int(match.group(3)),
        new_count=int(new_count) if new_count else 1,
    )


def collect_markers(lines: list[str], start_line: int = 1) -> Markers:
    """
    Index a rendered diff for navigation and inline annotation.

    Args:
        lines: Diff lines as displayed
        start_line: Display line number of lines[0]

    Returns:
        Markers with file/hunk positions and a per-line context map.
        Lines inside a hunk carry the old and/or new file line number.
    """
    files: list[FileMarker] = []
    hunks: list[HunkMarker] = []
    context: dict[int, LineContext] = {}
    current_file: str | None = None
    current_hunk: str | None = None
    old_no = new_no = 0

    for offset, line in enumerate(lines):
        line_no = start_line + offset
        old_line = new_line = None

        file_match = _FILE_HEADER.match(line)
        if file_match:
            current_file = file_match.group(2)
            current_hunk = None
            files.append(FileMarker(line=line_no, path=current_file))
        elif line.startswith("@@"):
            current_hunk = line
            hunks.append(HunkMarker(line=line_no, path=current_file, header=line))
            hunk_range = parse_hunk_header(line)
            if hunk_range:
                old_no, new_no = hunk_range.old_start, hunk_range.new_start
        elif current_hunk is not None:
            if line.startswith("+") and not line.startswith("+++"):
                new_line = new_no
                new_no += 1
            elif line.startswith("-") and not line.startswith("---"):
                old_line = old_no
                old_no += 1
            elif line.startswith(" "):
                old_line, new_line = old_no, new_no
                old_no += 1
                new_no += 1

        context[line_no] = LineContext(
            path=current_file, hunk=current_hunk, old_line=old_line, new_line=new_line
        )

    return Markers(files=tuple(files), hunks=tuple(hunks), lines=MappingProxyType(context))


def parse_change_signs(text: str) -> list[ChangeSign]:
    """
    Compute gutter signs for the new side of a diff.

    Removed lines followed by added lines are reported as "modified" for as
    many lines as pair up. Leftover removals become one "deleted" sign each,
    placed at the line where the removal happened.
    """
    changes: list[ChangeSign] = []
    new_line = 1
    pending = 0
    pending_at = 1

    def flush() -> None:
        nonlocal pending
        for _ in range(pending):
            changes.append(ChangeSign(kind="deleted", line=pending_at))
        pending = 0

    for line in text.split("\n") if text else []:
        hunk_range = parse_hunk_header(line)
        if hunk_range:
            flush()
            new_line = hunk_range.new_start
        elif line.startswith("+") and not line.startswith("+++"):
            if pending > 0:
                changes.append(ChangeSign(kind="modified", line=new_line))
                pending -= 1
            else:
                changes.append(ChangeSign(kind="added", line=new_line))
            new_line += 1
        elif line.startswith("-") and not line.startswith("---"):
            if pending == 0:
                pending_at = new_line
            pending += 1
        elif line.startswith(" "):
            flush()
            new_line += 1

    flush()
    return changes


def build_diff_args(
    staged: bool = False, path: str | None = None, commit: str | None = None
) -> list[str]:
    if commit:
        return ["show", "--patch", commit]
    args = ["diff"]
    if staged:
        args.append("--staged")
    if path:
        args.extend(["--", path])
    return args


async def get_diff(
    staged: bool = False,
    path: str | None = None,
    commit: str | None = None,
    opts: RunOptions | None = None,
) -> tuple[str | None, str, list[DiffFile]]:
    """
    Run git diff (or git show for a commit).

    Returns:
        (error, raw diff text, parsed files)
    """
    args = build_diff_args(staged=staged, path=path, commit=commit)
    result = await git(args, opts)
    if not result.success:
        return error_from_result(result, " ".join(args)), "", []
    return None, result.stdout, parse_diff(result.stdout)
