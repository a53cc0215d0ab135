"""Branch switching with fallbacks for older gits and remote branches."""

import logging

from gitflow.git.branch import BranchEntry
from gitflow.git.runner import RunOptions, error_from_result, git, output
from gitflow.lib.types import ErrorKind, OpError, command_error

logger = logging.getLogger(__name__)

SYMBOLIC_HEAD_MESSAGE = "Cannot switch to symbolic remote HEAD"


def switch_attempts(entry: BranchEntry) -> list[tuple[list[str], str]]:
    """
    (args, action label) pairs to try, in order, to switch to a branch.

    Local: switch, then checkout. Remote: switch to an existing tracking
    branch, then create one with --track, then checkout -t.
    """
    if not entry.is_remote:
        return [
            (["switch", entry.name], "switch"),
            (["checkout", entry.name], "checkout"),
        ]
    return [
        (["switch", entry.short_name], "switch"),
        (["switch", "--track", entry.name], "switch --track"),
        (["checkout", "-t", entry.name], "checkout -t"),
    ]


async def switch_branch(
    entry: BranchEntry, opts: RunOptions | None = None
) -> tuple[OpError | None, str]:
    """
    Switch the worktree to a branch.

    Returns:
        (error, combined output of the last command run)
    """
    if entry.is_remote and entry.short_name == "HEAD":
        return OpError(ErrorKind.SYMBOLIC_HEAD, SYMBOLIC_HEAD_MESSAGE), ""

    for args, action in switch_attempts(entry):
        result = await git(args, opts)
        if result.success:
            logger.info(f"[switch] {entry.name} via git {action}")
            return None, output(result)
        if result.timed_out:
            break
        logger.debug(f"git {action} {entry.name} failed, trying next fallback")

    text = output(result)
    return command_error(error_from_result(result, action), text, timed_out=result.timed_out), text
