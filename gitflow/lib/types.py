"""Shared result types for gitflow workflows."""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    COMMAND_FAILED = "command_failed"
    TIMED_OUT = "timed_out"
    NO_UPSTREAM = "no_upstream"
    DETACHED_HEAD = "detached_head"
    CONFLICT = "conflict"
    SYMBOLIC_HEAD = "symbolic_head"
    HUNK_NOT_FOUND = "hunk_not_found"
    IO_ERROR = "io_error"
    CANCELLED = "cancelled"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class OpError:
    """A workflow failure, returned as a value.

    output carries the literal CLI text where there is one, so callers can
    show it alongside message.
    """
    kind: ErrorKind
    message: str
    output: str = ""

    def __str__(self) -> str:
        return self.message

    @property
    def recoverable(self) -> bool:
        return self.kind in (ErrorKind.NO_UPSTREAM, ErrorKind.CONFLICT, ErrorKind.DETACHED_HEAD)


def command_error(message: str, output: str = "", timed_out: bool = False) -> OpError:
    kind = ErrorKind.TIMED_OUT if timed_out else ErrorKind.COMMAND_FAILED
    return OpError(kind=kind, message=message, output=output)
