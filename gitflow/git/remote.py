"""Git remote operations.

These return the raw ProcessResult: callers such as the push flow inspect
the output to decide on a fallback.
"""

from gitflow.git.runner import ProcessResult, RunOptions, git

NETWORK_TIMEOUT = 60


def _network_opts(opts: RunOptions | None) -> RunOptions:
    return opts if opts is not None else RunOptions(timeout=NETWORK_TIMEOUT)


async def push(opts: RunOptions | None = None) -> ProcessResult:
    return await git(["push"], _network_opts(opts))


async def push_set_upstream(
    remote: str, branch: str, opts: RunOptions | None = None
) -> ProcessResult:
    """Push and set upstream tracking."""
    return await git(["push", "-u", remote, branch], _network_opts(opts))


async def pull(opts: RunOptions | None = None, ff_only: bool = False) -> ProcessResult:
    args = ["pull"]
    if ff_only:
        args.append("--ff-only")
    return await git(args, _network_opts(opts))
