"""Git rebase operations, including scripted interactive rebase.

An interactive rebase is driven without an editor: the todo list is written
to a temp file and GIT_SEQUENCE_EDITOR copies it over git's own todo.
"""

import logging
import os
import re
import shlex
import tempfile
from dataclasses import dataclass
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

DEFAULT_COUNT = 50
TODO_ACTIONS = ("pick", "reword", "edit", "squash", "fixup", "drop")

_COMMIT_LINE = re.compile(r"^([0-9a-fA-F]+)\t(.*)$")


@dataclass(frozen=True)
class RebaseEntry:
    action: str
    sha: str
    short_sha: str
    subject: str


def parse_commits(text: str) -> list[RebaseEntry]:
    """Parse `%H\\t%s` log lines into todo entries, all starting as `pick`."""
    entries = []
    for line in split_lines(text):
        match = _COMMIT_LINE.match(line)
        if match:
            sha = match.group(1)
            entries.append(RebaseEntry(
                action="pick", sha=sha, short_sha=sha[:7], subject=match.group(2),
            ))
    return entries


def build_todo(entries: list[RebaseEntry]) -> str:
    """Render entries as a rebase todo file, one `<action> <sha> <subject>` per line."""
    if not entries:
        return ""
    lines = [f"{e.action} {e.short_sha} {e.subject}" for e in entries]
    return "\n".join(lines) + "\n"


async def list_commits(
    base_ref: str, count: int = DEFAULT_COUNT, opts: RunOptions | None = None
) -> tuple[str | None, list[RebaseEntry]]:
    """List commits in base_ref..HEAD, oldest first."""
    args = ["log", "--pretty=format:%H\t%s", "--reverse"]
    if count > 0:
        args.append(f"-n{count}")
    args.append(f"{base_ref}..HEAD")
    result = await git(args, opts)
    if not result.success:
        return error_from_result(result, "log"), []
    return None, parse_commits(result.stdout)


async def start_interactive(
    base_ref: str, entries: list[RebaseEntry], opts: RunOptions | None = None
) -> tuple[str | None, str]:
    """
    Run `git rebase -i base_ref` with a prepared todo list.

    Returns:
        (error, combined output)
    """
    for entry in entries:
        if entry.action not in TODO_ACTIONS:
            raise ValueError(f"Unknown rebase action: {entry.action}")

    fd, todo_path = tempfile.mkstemp(prefix="gitflow-rebase-", suffix=".todo")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(build_todo(entries))

        options = opts or RunOptions()
        env = dict(options.env or {})
        env["GIT_SEQUENCE_EDITOR"] = f"cp {shlex.quote(todo_path)}"
        run_opts = RunOptions(
            cwd=options.cwd, env=env, stdin=options.stdin, timeout=options.timeout
        )
        logger.debug(f"Interactive rebase onto {base_ref} with {len(entries)} entries")
        result = await git(["rebase", "-i", base_ref], run_opts)
    finally:
        Path(todo_path).unlink(missing_ok=True)

    if not result.success:
        return error_from_result(result, "rebase -i"), output(result)
    return None, output(result)


async def abort(opts: RunOptions | None = None) -> tuple[str | None, str]:
    return await git_action(["rebase", "--abort"], "rebase --abort", opts)


async def continue_rebase(opts: RunOptions | None = None) -> tuple[str | None, str]:
    return await git_action(["rebase", "--continue"], "rebase --continue", opts)
