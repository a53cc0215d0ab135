"""Shared constants for gitflow."""

# CLI exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2
EXIT_SPAWN = 3

DEFAULT_REMOTE = "origin"

# Case-insensitive phrases that mean "push failed because no upstream is set"
NO_UPSTREAM_PUSH_PHRASES = (
    "has no upstream branch",
    "set-upstream",
    "no upstream",
)

# Phrases from `rev-parse @{upstream}` when the branch tracks nothing
NO_UPSTREAM_REF_PHRASES = (
    "no upstream configured",
    "no upstream",
    "does not point to a branch",
    "has no upstream branch",
)
