"""Recognisers for recoverable git failures.

git's messages vary with version and locale, so detection is phrase based
and the phrase lists can be replaced from configuration.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from gitflow.lib.constants import NO_UPSTREAM_PUSH_PHRASES, NO_UPSTREAM_REF_PHRASES

_CONFLICT_LINE = re.compile(r"^CONFLICT\s+\([^)]*\):\s+.+\s+in\s+(.+)$", re.IGNORECASE)


@dataclass(frozen=True)
class PhraseMatcher:
    """Case-insensitive substring match against any of a set of phrases."""
    phrases: tuple[str, ...]

    @classmethod
    def of(cls, phrases: Iterable[str]) -> "PhraseMatcher":
        return cls(tuple(p.lower() for p in phrases if p))

    def matches(self, text: str | None) -> bool:
        if not text:
            return False
        lowered = text.lower()
        return any(phrase.lower() in lowered for phrase in self.phrases)


NO_UPSTREAM_PUSH = PhraseMatcher.of(NO_UPSTREAM_PUSH_PHRASES)
NO_UPSTREAM_REF = PhraseMatcher.of(NO_UPSTREAM_REF_PHRASES)


class MergeKind(Enum):
    FAST_FORWARD = "fast_forward"
    UP_TO_DATE = "up_to_date"
    MERGE_COMMIT = "merge_commit"

    @property
    def label(self) -> str:
        return _MERGE_LABELS[self]


_MERGE_LABELS = {
    MergeKind.FAST_FORWARD: "Fast-forward merge completed",
    MergeKind.UP_TO_DATE: "Already up to date",
    MergeKind.MERGE_COMMIT: "Merge commit created",
}


def looks_like_no_upstream(text: str | None, matcher: PhraseMatcher = NO_UPSTREAM_PUSH) -> bool:
    """True if a failed push's output says the branch has no upstream."""
    return matcher.matches(text)


def parse_conflict_paths(text: str | None) -> list[str]:
    """
    Paths from `CONFLICT (<type>): ... in <path>` lines.

    Order is preserved and duplicates dropped.
    """
    paths: list[str] = []
    seen: set[str] = set()
    for line in (text or "").split("\n"):
        match = _CONFLICT_LINE.match(line.strip())
        if not match:
            continue
        path = match.group(1).strip()
        if path and path not in seen:
            seen.add(path)
            paths.append(path)
    return paths


def classify_merge_output(text: str | None) -> MergeKind:
    lowered = (text or "").lower()
    if "fast-forward" in lowered:
        return MergeKind.FAST_FORWARD
    if "already up to date" in lowered or "already up-to-date" in lowered:
        return MergeKind.UP_TO_DATE
    return MergeKind.MERGE_COMMIT
