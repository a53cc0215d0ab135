"""How far the current branch is ahead of its upstream."""

from dataclasses import dataclass

from gitflow.git.runner import RunOptions, error_from_result, git, output
from gitflow.lib.types import ErrorKind, OpError, command_error
from gitflow.workflow.matchers import NO_UPSTREAM_REF, PhraseMatcher


@dataclass(frozen=True)
class AheadStatus:
    ahead: bool
    count: int
    has_upstream: bool
    detached: bool = False


NOT_APPLICABLE = AheadStatus(ahead=False, count=0, has_upstream=False, detached=True)


async def ahead_of_upstream(
    matcher: PhraseMatcher = NO_UPSTREAM_REF, opts: RunOptions | None = None
) -> tuple[OpError | None, AheadStatus | None]:
    """
    Count commits on HEAD not yet on @{upstream}.

    A detached HEAD or a branch without upstream is reported as not ahead,
    not as an error.
    """
    head = await git(["rev-parse", "--abbrev-ref", "HEAD"], opts)
    if not head.success:
        return command_error(
            error_from_result(head, "rev-parse --abbrev-ref HEAD"), output(head), head.timed_out
        ), None

    branch = head.stdout.strip()
    if not branch or branch == "HEAD":
        return None, NOT_APPLICABLE

    upstream = await git(
        ["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{upstream}"], opts
    )
    if not upstream.success:
        if not upstream.timed_out and matcher.matches(output(upstream)):
            return None, AheadStatus(ahead=False, count=0, has_upstream=False)
        return command_error(
            error_from_result(upstream, "rev-parse @{upstream}"),
            output(upstream),
            upstream.timed_out,
        ), None

    counted = await git(["rev-list", "--count", "@{upstream}..HEAD"], opts)
    if not counted.success:
        return command_error(
            error_from_result(counted, "rev-list --count @{upstream}..HEAD"),
            output(counted),
            counted.timed_out,
        ), None

    text = counted.stdout.strip()
    try:
        count = int(text)
    except ValueError:
        return OpError(
            ErrorKind.PARSE_ERROR, f"Could not parse ahead count from '{text}'", text
        ), None
    return None, AheadStatus(ahead=count > 0, count=count, has_upstream=True)
