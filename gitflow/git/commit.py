"""Git commit operations."""

from gitflow.git.runner import ProcessResult, RunOptions, git


async def has_staged_changes(opts: RunOptions | None = None) -> bool:
    """True if the index differs from HEAD."""
    result = await git(["diff", "--cached", "--quiet"], opts)
    # --quiet exits 1 when there are differences
    return result.exit_code == 1 and not result.timed_out


async def commit(
    message: str, amend: bool = False, opts: RunOptions | None = None
) -> ProcessResult:
    """Create a commit (or amend HEAD) with the given message."""
    args = ["commit"]
    if amend:
        args.append("--amend")
    args.extend(["-m", message])
    return await git(args, opts)


async def last_commit_message(opts: RunOptions | None = None) -> str:
    """Full message of HEAD, used to prefill an amend."""
    result = await git(["log", "-1", "--pretty=%B"], opts)
    if not result.success:
        return ""
    return result.stdout.strip()
