"""
Host prompt primitives.

Flows that need a decision from the user (push without upstream, commit
message, conflict edits) take a Prompter. The CLI passes ConsolePrompter;
an editor integration supplies its own.
"""

import logging
from typing import Callable, Protocol, Sequence

logger = logging.getLogger(__name__)

__all__ = ["Prompter", "ConsolePrompter", "ScriptedPrompter", "DEFAULT_CHOICES"]

DEFAULT_CHOICES = ("&Yes", "&No")


def _label(choice: str) -> str:
    return choice.replace("&", "")


def _hotkey(choice: str) -> str | None:
    index = choice.find("&")
    if index == -1 or index + 1 >= len(choice):
        return None
    return choice[index + 1].lower()


class Prompter(Protocol):
    def confirm(self, message: str, choices: Sequence[str] = DEFAULT_CHOICES) -> tuple[bool, int]:
        """Ask the user to pick a choice. Returns (confirmed, 1-based choice index).

        confirmed is True only when the first choice was picked.
        """
        ...

    def prompt(self, text: str, default: str = "") -> str | None:
        """Ask for free text prefilled with default. None means the user cancelled."""
        ...


class ConsolePrompter:
    """Prompter backed by input(). EOF or Ctrl-C count as cancel."""

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        print_fn: Callable[[str], None] = print,
    ):
        self.input_fn = input_fn
        self.print_fn = print_fn

    def confirm(self, message: str, choices: Sequence[str] = DEFAULT_CHOICES) -> tuple[bool, int]:
        labels = " / ".join(_label(c) for c in choices)
        while True:
            try:
                answer = self.input_fn(f"{message} [{labels}] ").strip().lower()
            except (EOFError, KeyboardInterrupt):
                return False, 0
            if not answer:
                return False, 0
            for index, choice in enumerate(choices, start=1):
                if answer == _label(choice).lower() or answer == _hotkey(choice):
                    return index == 1, index
            self.print_fn(f"Please answer one of: {labels}")

    def prompt(self, text: str, default: str = "") -> str | None:
        # An empty answer keeps the default
        suffix = f" [{default.strip().splitlines()[0]}]" if default.strip() else ""
        try:
            value = self.input_fn(f"{text}{suffix} ")
        except (EOFError, KeyboardInterrupt):
            return None
        return value or default


class ScriptedPrompter:
    """Prompter with canned answers, for non-interactive use (`--yes`) and tests."""

    def __init__(
        self,
        confirm_answers: Sequence[bool] = (),
        text_answers: Sequence[str | None] = (),
        default_confirm: bool = False,
    ):
        self._confirm = list(confirm_answers)
        self._text = list(text_answers)
        self.default_confirm = default_confirm
        self.asked: list[str] = []

    def confirm(self, message: str, choices: Sequence[str] = DEFAULT_CHOICES) -> tuple[bool, int]:
        self.asked.append(message)
        if not self._confirm:
            logger.debug(f"No scripted answer for: {message}, using {self.default_confirm}")
            return (True, 1) if self.default_confirm else (False, 0)
        answer = self._confirm.pop(0)
        return answer, 1 if answer else 2

    def prompt(self, text: str, default: str = "") -> str | None:
        self.asked.append(text)
        if not self._text:
            return None
        answer = self._text.pop(0)
        return default if answer == "" else answer
