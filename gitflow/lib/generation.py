"""Staleness tokens for async results.

A view captures a token when it starts a request and drops the result if a
newer request has advanced the counter in the meantime:

    token = gen.advance()
    err, entries = await list_branches(opts)
    gen.guard(token, lambda: render(entries))
"""

from typing import Callable, TypeVar

T = TypeVar("T")


class Generation:
    """Monotonic counter owned by one view; not shared between views."""

    def __init__(self) -> None:
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def advance(self) -> int:
        """Start a new request, superseding older ones. Returns its token."""
        self._value += 1
        return self._value

    def is_current(self, token: int) -> bool:
        return token == self._value

    def guard(self, token: int, callback: Callable[[], T]) -> T | None:
        """Run callback only if token is still current."""
        if not self.is_current(token):
            return None
        return callback()
