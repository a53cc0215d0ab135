"""Git branch operations.

Branch listing comes from `for-each-ref` so the output is tab-delimited and
stable; the graph view parses `log --graph --oneline`.
"""

import logging
import re
from dataclasses import dataclass

from gitflow.git.runner import RunOptions, error_from_result, git, git_action, split_lines

logger = logging.getLogger(__name__)

DETACHED_LABEL = "HEAD (detached)"

BRANCH_LIST_ARGS = [
    "for-each-ref",
    "--format=%(HEAD)\t%(refname:short)\t%(refname)",
    "refs/heads",
    "refs/remotes",
]
GRAPH_ARGS = ["log", "--all", "--graph", "--oneline", "--decorate=short", "-n100"]

_BRANCH_LINE = re.compile(r"^([* ]?)\t([^\t]+)\t(.+)$")
_REMOTE_NAME = re.compile(r"^([^/]+)/(.+)$")

_GRAPH_ONLY = re.compile(r"^[\s*|/\\_.]+$")
_GRAPH_SPLIT = re.compile(r"^([\s*|/\\_.]+)(\S.*)$")
_HASH_DECORATION_SUBJECT = re.compile(r"^([0-9a-fA-F]+)\s+\((.*?)\)\s+(.*)$")
_HASH_SUBJECT = re.compile(r"^([0-9a-fA-F]+)\s+(.*)$")
_HASH_ONLY = re.compile(r"^([0-9a-fA-F]+)$")


@dataclass(frozen=True)
class BranchEntry:
    name: str
    ref: str
    is_remote: bool
    remote: str | None
    short_name: str
    is_current: bool


@dataclass(frozen=True)
class GraphLine:
    """One row of `git log --graph --oneline` output."""
    graph: str
    hash: str | None
    decoration: str | None
    subject: str | None
    raw: str


def parse_branch_list(text: str) -> list[BranchEntry]:
    """
    Parse `for-each-ref` output (`HEAD-marker\\tshort-name\\tfull-ref`).

    Symbolic remote HEADs (`origin/HEAD`) are dropped. Local branches sort
    before remote ones, then by name.
    """
    entries = []
    for line in split_lines(text):
        match = _BRANCH_LINE.match(line)
        if not match:
            continue
        marker, name, ref = match.groups()
        if name.endswith("/HEAD"):
            continue

        is_remote = ref.startswith("refs/remotes/")
        remote, short_name = None, name
        if is_remote:
            remote_match = _REMOTE_NAME.match(name)
            if remote_match:
                remote, short_name = remote_match.group(1), remote_match.group(2)

        entries.append(BranchEntry(
            name=name,
            ref=ref,
            is_remote=is_remote,
            remote=remote,
            short_name=short_name,
            is_current=marker == "*",
        ))

    entries.sort(key=lambda e: (e.is_remote, e.name))
    return entries


def partition_branches(
    entries: list[BranchEntry],
) -> tuple[list[BranchEntry], list[BranchEntry]]:
    """Split into (local, remote) preserving order."""
    local = [e for e in entries if not e.is_remote]
    remote = [e for e in entries if e.is_remote]
    return local, remote


def _parse_graph_data(rest: str) -> tuple[str | None, str | None, str | None]:
    match = _HASH_DECORATION_SUBJECT.match(rest)
    if match:
        return match.group(1), match.group(2), match.group(3)
    match = _HASH_SUBJECT.match(rest)
    if match:
        return match.group(1), None, match.group(2)
    match = _HASH_ONLY.match(rest)
    if match:
        return match.group(1), None, None
    return None, None, rest


def parse_graph(text: str) -> list[GraphLine]:
    """
    Parse `git log --graph --oneline --decorate=short` output.

    Connector-only rows (`| |`, `|/`) are kept whole in the graph column so
    no glyph ends up in the subject.
    """
    lines = []
    for raw in split_lines(text):
        graph, commit_hash, decoration, subject = raw, None, None, None
        if not _GRAPH_ONLY.match(raw):
            split = _GRAPH_SPLIT.match(raw)
            if split:
                graph = split.group(1)
                commit_hash, decoration, subject = _parse_graph_data(split.group(2))
        lines.append(GraphLine(
            graph=graph, hash=commit_hash, decoration=decoration, subject=subject, raw=raw,
        ))
    return lines


async def list_branches(opts: RunOptions | None = None) -> tuple[str | None, list[BranchEntry]]:
    result = await git(BRANCH_LIST_ARGS, opts)
    if not result.success:
        return error_from_result(result, "for-each-ref"), []
    return None, parse_branch_list(result.stdout)


async def current_branch(opts: RunOptions | None = None) -> tuple[str | None, str | None]:
    """
    Get the current branch name.

    Returns:
        (error, name). A detached HEAD is reported as "HEAD (detached)".
    """
    result = await git(["rev-parse", "--abbrev-ref", "HEAD"], opts)
    if not result.success:
        return error_from_result(result, "rev-parse --abbrev-ref HEAD"), None

    branch = result.stdout.strip()
    if not branch:
        return "Could not determine current branch", None
    if branch == "HEAD":
        return None, DETACHED_LABEL
    return None, branch


async def list_merged(opts: RunOptions | None = None) -> tuple[str | None, set[str]]:
    """Names of local branches merged into HEAD."""
    result = await git(["branch", "--format=%(refname:short)", "--merged"], opts)
    if not result.success:
        return error_from_result(result, "branch --merged"), set()
    return None, {line.strip() for line in split_lines(result.stdout)}


async def fetch_remote(
    remote: str | None = None, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    """Fetch and prune one remote, or all of them."""
    remote = remote.strip() if remote else ""
    target = remote or "--all"
    return await git_action(["fetch", "--prune", target], f"fetch --prune {target}", opts)


async def create_branch(
    name: str, base: str | None = None, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    """Create and switch to a branch, falling back to `checkout -b`."""
    if not name or not name.strip():
        raise ValueError("create_branch() requires a branch name")

    switch_args = ["switch", "-c", name]
    checkout_args = ["checkout", "-b", name]
    if base and base.strip():
        switch_args.append(base)
        checkout_args.append(base)

    err, text = await git_action(switch_args, "switch -c", opts)
    if err is None:
        return None, text
    logger.debug(f"switch -c {name} failed, trying checkout -b")
    return await git_action(checkout_args, "checkout -b", opts)


async def delete_branch(
    name: str, force: bool = False, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    if not name or not name.strip():
        raise ValueError("delete_branch() requires a branch name")
    flag = "-D" if force else "-d"
    return await git_action(["branch", flag, name], f"branch {flag}", opts)


async def rename_branch(
    old_name: str, new_name: str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    if not old_name or not old_name.strip():
        raise ValueError("rename_branch() requires old_name")
    if not new_name or not new_name.strip():
        raise ValueError("rename_branch() requires new_name")
    return await git_action(["branch", "-m", old_name, new_name], "branch -m", opts)


async def graph(
    opts: RunOptions | None = None,
) -> tuple[str | None, list[GraphLine], str | None]:
    """
    Fetch the commit graph for all refs.

    Returns:
        (error, graph lines, current branch or None if it couldn't be resolved)
    """
    cur_err, current = await current_branch(opts)
    if cur_err:
        current = None

    result = await git(GRAPH_ARGS, opts)
    if not result.success:
        return error_from_result(result, "log --graph"), [], None
    return None, parse_graph(result.stdout), current
