"""Multi-step git operations built on gitflow.git.

Orchestrators return outcomes or (error, value) pairs with OpError values;
only SpawnError is raised.
"""

from gitflow.workflow.matchers import MergeKind, PhraseMatcher, looks_like_no_upstream
from gitflow.workflow.operations import OperationOutcome, cherry_pick, merge, rebase
from gitflow.workflow.push import PushFlow, PushOutcome, push_with_upstream
from gitflow.workflow.resolve import (
    Base,
    Edit,
    Local,
    Remote,
    Resolution,
    parse_resolution,
    resolve_all,
    resolve_hunk,
)
from gitflow.workflow.switch import switch_branch
from gitflow.workflow.upstream import AheadStatus, ahead_of_upstream

__all__ = [
    "MergeKind",
    "PhraseMatcher",
    "looks_like_no_upstream",
    "OperationOutcome",
    "cherry_pick",
    "merge",
    "rebase",
    "PushFlow",
    "PushOutcome",
    "push_with_upstream",
    "Base",
    "Edit",
    "Local",
    "Remote",
    "Resolution",
    "parse_resolution",
    "resolve_all",
    "resolve_hunk",
    "switch_branch",
    "AheadStatus",
    "ahead_of_upstream",
]
