"""Merge, rebase and cherry-pick with conflict detection.

On failure the command output is scanned for CONFLICT lines; when git didn't
print any (older versions, other locales) the unmerged path list is asked
for instead.
"""

import logging
from dataclasses import dataclass, field

from gitflow.git.conflict import list_conflicted_paths
from gitflow.git.runner import RunOptions, git, output
from gitflow.lib.types import ErrorKind, OpError, command_error
from gitflow.workflow.matchers import MergeKind, classify_merge_output, parse_conflict_paths

logger = logging.getLogger(__name__)

_CONFLICT_HEADLINES = {
    "merge": "Merge has conflicts.",
    "rebase": "Rebase stopped with conflicts.",
    "cherry-pick": "Cherry-pick has conflicts.",
}
_CONFLICT_HINTS = {
    "rebase": "Use `rebase --continue` or `rebase --abort`.",
}


@dataclass(frozen=True)
class OperationOutcome:
    operation: str
    success: bool
    output: str
    merge_kind: MergeKind | None = None
    conflicts: tuple[str, ...] = field(default_factory=tuple)
    error: OpError | None = None

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def message(self) -> str:
        """Text to show the user for this outcome."""
        if self.success:
            if self.merge_kind is not None:
                return f"{self.merge_kind.label}\n{self.output}"
            return self.output
        if self.error is None:
            return self.output
        return self.error.message


def format_conflict_message(operation: str, paths: list[str], text: str) -> str:
    headline = _CONFLICT_HEADLINES.get(operation, f"{operation} has conflicts.")
    listing = "\n".join(paths) if paths else "(none)"
    parts = [f"{headline}\nConflicted files:\n{listing}"]
    hint = _CONFLICT_HINTS.get(operation)
    if hint:
        parts.append(hint)
    parts.append(text)
    return "\n\n".join(parts)


async def _collect_conflicts(text: str, opts: RunOptions | None) -> list[str]:
    paths = parse_conflict_paths(text)
    if paths:
        return paths
    err, unmerged = await list_conflicted_paths(opts)
    if err:
        logger.debug(f"Could not list unmerged paths: {err}")
        return []
    return unmerged


async def run_with_conflict_detection(
    operation: str,
    args: list[str],
    success_fallback: str,
    failure_fallback: str,
    opts: RunOptions | None = None,
) -> OperationOutcome:
    """
    Run a history-rewriting git command and classify the outcome.

    Args:
        operation: "merge", "rebase" or "cherry-pick"
        args: Full git argument list
        success_fallback: Message when git printed nothing on success
        failure_fallback: Message when git printed nothing on failure
    """
    result = await git(args, opts)
    if result.success:
        text = output(result) or success_fallback
        kind = classify_merge_output(text) if operation == "merge" else None
        logger.info(f"[{operation}] completed: {args[1:]}")
        return OperationOutcome(operation=operation, success=True, output=text, merge_kind=kind)

    text = output(result) or failure_fallback
    if result.timed_out:
        return OperationOutcome(
            operation=operation, success=False, output=text,
            error=command_error(text, text, timed_out=True),
        )

    conflicts = await _collect_conflicts(text, opts)
    if not conflicts:
        return OperationOutcome(
            operation=operation, success=False, output=text, error=command_error(text, text),
        )

    logger.info(f"[{operation}] stopped with {len(conflicts)} conflicted file(s)")
    return OperationOutcome(
        operation=operation,
        success=False,
        output=text,
        conflicts=tuple(conflicts),
        error=OpError(
            ErrorKind.CONFLICT, format_conflict_message(operation, conflicts, text), text,
        ),
    )


async def merge(branch: str, opts: RunOptions | None = None) -> OperationOutcome:
    return await run_with_conflict_detection(
        "merge", ["merge", branch],
        success_fallback=f"Merged '{branch}'",
        failure_fallback=f"git merge {branch} failed",
        opts=opts,
    )


async def rebase(args: list[str], opts: RunOptions | None = None) -> OperationOutcome:
    """Rebase onto a branch, or pass --continue / --abort through."""
    git_args = ["rebase", *args]
    action = " ".join(git_args)
    return await run_with_conflict_detection(
        "rebase", git_args,
        success_fallback=f"{action} completed",
        failure_fallback=f"{action} failed",
        opts=opts,
    )


async def cherry_pick(commit: str, opts: RunOptions | None = None) -> OperationOutcome:
    return await run_with_conflict_detection(
        "cherry-pick", ["cherry-pick", commit],
        success_fallback=f"Cherry-picked {commit}",
        failure_fallback=f"git cherry-pick {commit} failed",
        opts=opts,
    )
