"""Push with upstream negotiation, as a state machine.

    pushing ──ok──────────────────────────────> done
       │ no upstream
       v
    needs_upstream ──confirmed──> pushing_upstream ──ok──> done
       │ detached / declined          │ error
       v                              v
    failed <───────────────────────────

A push that fails for any reason other than a missing upstream goes straight
to failed with git's output.
"""

import logging
from dataclasses import dataclass

from transitions import Machine

from gitflow.git.remote import push as git_push, push_set_upstream
from gitflow.git.runner import ProcessResult, RunOptions, error_from_result, git, output
from gitflow.lib.constants import DEFAULT_REMOTE
from gitflow.lib.prompts import Prompter
from gitflow.lib.types import ErrorKind, OpError, command_error
from gitflow.workflow.matchers import NO_UPSTREAM_PUSH, PhraseMatcher

logger = logging.getLogger(__name__)

STATES = ["pushing", "needs_upstream", "pushing_upstream", "done", "failed"]

TRANSITIONS = [
    {"trigger": "succeed", "source": "pushing", "dest": "done"},
    {"trigger": "no_upstream", "source": "pushing", "dest": "needs_upstream"},
    {"trigger": "retry_upstream", "source": "needs_upstream", "dest": "pushing_upstream"},
    {"trigger": "succeed", "source": "pushing_upstream", "dest": "done"},
    {"trigger": "fail", "source": ["pushing", "needs_upstream", "pushing_upstream"], "dest": "failed"},
]

DETACHED_MESSAGE = "Cannot set upstream from detached HEAD"


@dataclass(frozen=True)
class PushOutcome:
    success: bool
    message: str
    state: str
    branch: str | None = None
    set_upstream: bool = False
    error: OpError | None = None


class PushFlow:
    """One push attempt. Create a new instance per push."""

    def __init__(
        self,
        prompter: Prompter,
        remote: str = DEFAULT_REMOTE,
        matcher: PhraseMatcher = NO_UPSTREAM_PUSH,
        opts: RunOptions | None = None,
    ):
        self.prompter = prompter
        self.remote = remote
        self.matcher = matcher
        self.opts = opts
        self.branch: str | None = None

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial="pushing",
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        logger.info(
            f"[push] {event.transition.source} -> {event.transition.dest} ({event.event.name})"
        )

    def _failed(self, error: OpError) -> PushOutcome:
        self.fail()
        return PushOutcome(
            success=False, message=error.message, state=self.state,
            branch=self.branch, error=error,
        )

    def _done(self, result: ProcessResult, fallback: str, set_upstream: bool) -> PushOutcome:
        self.succeed()
        return PushOutcome(
            success=True, message=output(result) or fallback, state=self.state,
            branch=self.branch, set_upstream=set_upstream,
        )

    async def run(self) -> PushOutcome:
        """Push, negotiating an upstream if git says there is none."""
        result = await git_push(self.opts)
        if result.success:
            return self._done(result, "Push completed", set_upstream=False)

        text = output(result) or "git push failed"
        if result.timed_out or not self.matcher.matches(text):
            return self._failed(command_error(text, text, timed_out=result.timed_out))

        self.no_upstream()
        return await self._negotiate_upstream(text)

    async def _negotiate_upstream(self, push_output: str) -> PushOutcome:
        head = await git(["rev-parse", "--abbrev-ref", "HEAD"], self.opts)
        if not head.success:
            return self._failed(command_error(
                error_from_result(head, "rev-parse --abbrev-ref HEAD"),
                output(head),
                timed_out=head.timed_out,
            ))

        branch = head.stdout.strip()
        if not branch or branch == "HEAD":
            return self._failed(OpError(ErrorKind.DETACHED_HEAD, DETACHED_MESSAGE, push_output))
        self.branch = branch

        confirmed, _ = self.prompter.confirm(
            f"No upstream for '{branch}'. Push with -u {self.remote} {branch}?",
            ("&Push", "&Cancel"),
        )
        if not confirmed:
            return self._failed(OpError(ErrorKind.CANCELLED, "Push cancelled", push_output))

        self.retry_upstream()
        result = await push_set_upstream(self.remote, branch, self.opts)
        if not result.success:
            text = output(result) or "git push -u failed"
            return self._failed(command_error(text, text, timed_out=result.timed_out))
        return self._done(result, "Pushed with upstream tracking", set_upstream=True)


async def push_with_upstream(
    prompter: Prompter,
    remote: str = DEFAULT_REMOTE,
    matcher: PhraseMatcher = NO_UPSTREAM_PUSH,
    opts: RunOptions | None = None,
) -> PushOutcome:
    return await PushFlow(prompter, remote=remote, matcher=matcher, opts=opts).run()
