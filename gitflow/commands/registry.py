"""
Subcommand registry: `gitflow <verb> [args...]`.

Handlers are async callables taking the argument list after the verb and
returning a CommandResult. Dispatch never raises for user mistakes (unknown
verb, missing argument); those come back as a failed result with usage text.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from gitflow.git.runner import RunOptions, run_sync, split_lines

logger = logging.getLogger(__name__)

Handler = Callable[[list[str]], Awaitable["CommandResult"]]

BRANCH_CANDIDATE_ARGS = [
    "for-each-ref",
    "--format=%(refname:short)",
    "refs/heads",
    "refs/remotes",
]
COMMIT_CANDIDATE_ARGS = ["log", "--all", "--pretty=format:%H", "-n", "400"]
REBASE_FLAGS = ("--abort", "--continue")

# Verbs whose first positional argument is a branch name
BRANCH_VERBS = ("merge", "rebase", "switch")


@dataclass(frozen=True)
class Subcommand:
    description: str
    run: Handler


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    message: str = ""

    @classmethod
    def success(cls, message: str = "") -> "CommandResult":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, message: str) -> "CommandResult":
        return cls(ok=False, message=message)


def first_positional(args: list[str]) -> str | None:
    """First argument that isn't a --flag."""
    for arg in args:
        if not arg.startswith("--"):
            return arg
    return None


def has_flag(args: list[str], flag: str) -> bool:
    return flag in args


def _filter_prefix(candidates: list[str], prefix: str) -> list[str]:
    if not prefix:
        return candidates
    return [c for c in candidates if c.startswith(prefix)]


class CommandRegistry:
    """Verb name -> Subcommand. One instance per host session."""

    def __init__(self, opts: RunOptions | None = None):
        self.subcommands: dict[str, Subcommand] = {}
        self.opts = opts

    def register(self, name: str, subcommand: Subcommand) -> None:
        """
        Add or replace a subcommand.

        Raises:
            ValueError: If the name or description is empty
            TypeError: If the handler isn't callable
        """
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Subcommand name must be a non-empty string")
        if not callable(subcommand.run):
            raise TypeError(f"Subcommand '{name}' must have a callable run handler")
        if not isinstance(subcommand.description, str) or not subcommand.description.strip():
            raise ValueError(f"Subcommand '{name}' must have a description")
        if name in self.subcommands:
            logger.debug(f"Replacing subcommand '{name}'")
        self.subcommands[name] = subcommand

    def names(self) -> list[str]:
        return sorted(self.subcommands)

    def usage(self) -> str:
        lines = ["Usage: gitflow <subcommand> [args...]", "", "Subcommands:"]
        for name in self.names():
            lines.append(f"  {name:<12} {self.subcommands[name].description}")
        return "\n".join(lines)

    async def dispatch(self, args: list[str]) -> CommandResult:
        if not args:
            return CommandResult.success(self.usage())

        verb, rest = args[0], list(args[1:])
        subcommand = self.subcommands.get(verb)
        if subcommand is None:
            return CommandResult.failure(f"Unknown gitflow subcommand: {verb}\n\n{self.usage()}")

        logger.debug(f"Dispatching '{verb}' with {rest}")
        return await subcommand.run(rest)

    # Completion runs synchronously; shells call it once per keypress.

    def _git_candidates(self, args: list[str]) -> list[str]:
        result = run_sync(["git", *args], self.opts)
        if not result.success:
            logger.debug(f"Completion query failed: {' '.join(args)}")
            return []
        return split_lines(result.stdout)

    def branch_candidates(self) -> list[str]:
        names = {
            name.strip()
            for name in self._git_candidates(BRANCH_CANDIDATE_ARGS)
            if not name.strip().endswith("/HEAD")
        }
        return sorted(names)

    def commit_candidates(self) -> list[str]:
        return [sha.strip() for sha in self._git_candidates(COMMIT_CANDIDATE_ARGS)]

    def complete(self, arglead: str, cmdline: str | None) -> list[str]:
        """
        Completion candidates for the word being typed.

        Args:
            arglead: The partial word under the cursor
            cmdline: The full command line, starting with the program name
        """
        if cmdline is None:
            return _filter_prefix(self.names(), arglead)

        words = cmdline.split()
        if len(words) <= 1:
            return _filter_prefix(self.names(), arglead)
        if len(words) == 2 and not cmdline.endswith(" "):
            return _filter_prefix(self.names(), arglead)

        verb = words[1]
        if verb == "rebase":
            return _filter_prefix([*REBASE_FLAGS, *self.branch_candidates()], arglead)
        if verb in BRANCH_VERBS:
            return _filter_prefix(self.branch_candidates(), arglead)
        if verb == "cherry-pick":
            # Words already typed, excluding the one under the cursor
            typed = words[2:] if cmdline.endswith(" ") else words[2:-1]
            if "--list" in typed:
                return _filter_prefix(self.branch_candidates(), arglead)
            return _filter_prefix(self.commit_candidates(), arglead)
        return []
