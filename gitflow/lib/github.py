"""
GitHub integration via the gh CLI.

gh is probed once per GhPrerequisites instance (installed, runnable,
authenticated); every query and action checks it first so a missing or
logged-out gh produces a clear message instead of a raw CLI error.

Queries return (error, data) decoded from --json output. Actions return
(error, combined output), like the git action wrappers.
"""

import json
import logging
import re
import shutil
from dataclasses import dataclass
from typing import Any, NamedTuple, Sequence

from gitflow.git.runner import RunOptions, error_from_result, gh, output, run_sync

logger = logging.getLogger(__name__)

GH_TIMEOUT_SECONDS = 30

NOT_INSTALLED_MESSAGE = (
    "GitHub CLI (gh) is not installed or not in PATH. Install gh to use GitHub commands."
)
NOT_AUTHENTICATED_MESSAGE = "GitHub CLI is not authenticated. Run `gh auth login` and try again."
PREREQUISITES_MESSAGE = (
    "GitHub CLI prerequisites are not satisfied. Run `gh auth login` and retry."
)

PR_LIST_FIELDS = ",".join([
    "number", "title", "state", "isDraft", "labels", "author", "assignees",
    "headRefName", "baseRefName", "updatedAt", "mergedAt",
])
PR_VIEW_FIELDS = ",".join([
    "number", "title", "body", "state", "isDraft", "labels", "author", "assignees",
    "headRefName", "baseRefName", "reviews", "reviewRequests", "comments", "files",
    "statusCheckRollup", "mergedAt", "createdAt", "updatedAt",
])
ISSUE_LIST_FIELDS = ",".join([
    "number", "title", "state", "labels", "assignees", "author", "updatedAt",
])
ISSUE_VIEW_FIELDS = ",".join([
    "number", "title", "body", "state", "labels", "assignees", "author",
    "comments", "createdAt", "updatedAt",
])
REPO_FIELDS = ",".join([
    "name", "nameWithOwner", "url", "description", "isPrivate", "defaultBranchRef",
])


@dataclass
class GhState:
    checked: bool = False
    available: bool = False
    authenticated: bool = False
    message: str | None = None


class ChecksSummary(NamedTuple):
    """Rolled-up CI state for a PR."""
    status: str | None  # "success", "failure", "pending", or None with no checks
    passed: int = 0
    failed: int = 0
    pending: int = 0


class GhPrerequisites:
    """Cached gh availability check, one per repository/session."""

    def __init__(self, executable: str = "gh", timeout: float = GH_TIMEOUT_SECONDS):
        self.executable = executable
        self.timeout = timeout
        self.state = GhState()

    def check(self) -> tuple[bool, str | None]:
        """Probe gh synchronously and cache the outcome."""
        if shutil.which(self.executable) is None:
            self.state = GhState(checked=True, message=NOT_INSTALLED_MESSAGE)
            logger.warning(NOT_INSTALLED_MESSAGE)
            return False, NOT_INSTALLED_MESSAGE

        opts = RunOptions(timeout=self.timeout)
        version = run_sync([self.executable, "--version"], opts)
        if not version.success:
            message = error_from_result(version, "--version", tool="gh")
            self.state = GhState(checked=True, message=message)
            logger.warning(message)
            return False, message

        auth = run_sync([self.executable, "auth", "status"], opts)
        if not auth.success:
            self.state = GhState(checked=True, available=True, message=NOT_AUTHENTICATED_MESSAGE)
            logger.warning(NOT_AUTHENTICATED_MESSAGE)
            return False, NOT_AUTHENTICATED_MESSAGE

        self.state = GhState(checked=True, available=True, authenticated=True)
        return True, None

    def ensure(self) -> tuple[bool, str | None]:
        """Check once, then replay the cached result."""
        if not self.state.checked:
            return self.check()
        if not (self.state.available and self.state.authenticated):
            return False, self.state.message or PREREQUISITES_MESSAGE
        return True, None


async def gh_json(args: list[str], opts: RunOptions | None = None) -> tuple[str | None, Any]:
    """
    Run gh and decode its JSON stdout.

    Returns:
        (error, data). Empty output decodes to {}.
    """
    result = await gh(args, opts)
    action = " ".join(args)
    if not result.success:
        return error_from_result(result, action, tool="gh"), None

    text = result.stdout.strip()
    if not text:
        return None, {}
    try:
        return None, json.loads(text)
    except json.JSONDecodeError as e:
        return f"Failed to parse gh JSON output for '{action}': {e}", None


def _number(value: int | str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValueError("a PR or issue number is required")
    return text


def _append_flags(args: list[str], flags: dict[str, Any]) -> list[str]:
    for flag, value in flags.items():
        if value is None or value == "":
            continue
        args.extend([f"--{flag}", str(value)])
    return args


async def list_prs(
    prereq: GhPrerequisites,
    state: str | None = None,
    base: str | None = None,
    head: str | None = None,
    search: str | None = None,
    limit: int | None = None,
    opts: RunOptions | None = None,
) -> tuple[str | None, list[dict]]:
    ok, message = prereq.ensure()
    if not ok:
        return message, []
    args = _append_flags(
        ["pr", "list", "--json", PR_LIST_FIELDS],
        {"state": state, "base": base, "head": head, "search": search, "limit": limit},
    )
    err, data = await gh_json(args, opts)
    if err:
        return err, []
    return None, data or []


async def view_pr(
    prereq: GhPrerequisites, number: int | str, opts: RunOptions | None = None
) -> tuple[str | None, dict | None]:
    ok, message = prereq.ensure()
    if not ok:
        return message, None
    return await gh_json(["pr", "view", _number(number), "--json", PR_VIEW_FIELDS], opts)


async def list_issues(
    prereq: GhPrerequisites,
    state: str | None = None,
    label: str | None = None,
    assignee: str | None = None,
    search: str | None = None,
    limit: int | None = None,
    opts: RunOptions | None = None,
) -> tuple[str | None, list[dict]]:
    ok, message = prereq.ensure()
    if not ok:
        return message, []
    args = _append_flags(
        ["issue", "list", "--json", ISSUE_LIST_FIELDS],
        {"state": state, "label": label, "assignee": assignee, "search": search, "limit": limit},
    )
    err, data = await gh_json(args, opts)
    if err:
        return err, []
    return None, data or []


async def view_issue(
    prereq: GhPrerequisites, number: int | str, opts: RunOptions | None = None
) -> tuple[str | None, dict | None]:
    ok, message = prereq.ensure()
    if not ok:
        return message, None
    return await gh_json(["issue", "view", _number(number), "--json", ISSUE_VIEW_FIELDS], opts)


async def repo_info(
    prereq: GhPrerequisites, opts: RunOptions | None = None
) -> tuple[str | None, dict | None]:
    ok, message = prereq.ensure()
    if not ok:
        return message, None
    return await gh_json(["repo", "view", "--json", REPO_FIELDS], opts)


def classify_checks(checks: list[dict] | None) -> ChecksSummary:
    """
    Summarise a PR's statusCheckRollup.

    Check runs report `conclusion` (empty while running); commit statuses
    report `state`. Any failure makes the whole rollup a failure.
    """
    if not checks:
        return ChecksSummary(status=None)

    passed = failed = pending = 0
    for check in checks:
        value = (check.get("conclusion") or check.get("state") or "").lower()
        if value in ("success", "completed", "neutral", "skipped"):
            passed += 1
        elif value in ("failure", "failed", "error", "cancelled", "timed_out", "action_required"):
            failed += 1
        else:
            pending += 1

    if failed:
        status = "failure"
    elif pending:
        status = "pending"
    else:
        status = "success"
    return ChecksSummary(status=status, passed=passed, failed=failed, pending=pending)


# --- actions ---

LABEL_FIELDS = "name,color,description,isDefault"
MERGE_STRATEGIES = ("merge", "squash", "rebase")
REVIEW_MODES = {
    "approve": "--approve",
    "request_changes": "--request-changes",
    "request-changes": "--request-changes",
    "comment": "--comment",
}

_HEX_COLOR = re.compile(r"^[0-9a-fA-F]{6}$")


def _csv(value: str | Sequence[str] | None) -> str | None:
    """Join label/assignee lists for gh; blank entries are dropped."""
    if value is None:
        return None
    items = [value] if isinstance(value, str) else list(value)
    parts = [str(item).strip() for item in items if str(item).strip()]
    return ",".join(parts) or None


def _required(value: str | None, what: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValueError(f"{what} is required")
    return text


async def gh_action(
    prereq: GhPrerequisites, args: list[str], action: str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    """
    Run a gh command after the prerequisite check.

    Returns:
        (error message or None, combined output)
    """
    ok, message = prereq.ensure()
    if not ok:
        return message, ""
    result = await gh(args, opts)
    if not result.success:
        return error_from_result(result, action, tool="gh"), output(result)
    logger.debug(f"gh {action} succeeded")
    return None, output(result)


async def create_pr(
    prereq: GhPrerequisites,
    title: str,
    body: str = "",
    base: str | None = None,
    head: str | None = None,
    draft: bool = False,
    reviewers: str | Sequence[str] | None = None,
    labels: str | Sequence[str] | None = None,
    opts: RunOptions | None = None,
) -> tuple[str | None, str]:
    """Open a pull request. On success the output is the new PR's URL."""
    args = ["pr", "create", "--title", _required(title, "PR title"), "--body", body or ""]
    args = _append_flags(args, {"base": base, "head": head})
    if draft:
        args.append("--draft")
    args = _append_flags(args, {"reviewer": _csv(reviewers), "label": _csv(labels)})
    return await gh_action(prereq, args, "pr create", opts)


async def comment_pr(
    prereq: GhPrerequisites, number: int | str, body: str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    args = ["pr", "comment", _number(number), "--body", _required(body, "Comment body")]
    return await gh_action(prereq, args, "pr comment", opts)


async def merge_pr(
    prereq: GhPrerequisites,
    number: int | str,
    strategy: str = "merge",
    opts: RunOptions | None = None,
) -> tuple[str | None, str]:
    if strategy not in MERGE_STRATEGIES:
        raise ValueError(f"strategy must be one of {', '.join(MERGE_STRATEGIES)}")
    args = ["pr", "merge", _number(number), f"--{strategy}"]
    return await gh_action(prereq, args, "pr merge", opts)


async def checkout_pr(
    prereq: GhPrerequisites, number: int | str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    return await gh_action(prereq, ["pr", "checkout", _number(number)], "pr checkout", opts)


async def close_pr(
    prereq: GhPrerequisites, number: int | str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    return await gh_action(prereq, ["pr", "close", _number(number)], "pr close", opts)


async def review_pr(
    prereq: GhPrerequisites,
    number: int | str,
    mode: str = "comment",
    body: str = "",
    opts: RunOptions | None = None,
) -> tuple[str | None, str]:
    """Submit a review: approve, request_changes or comment."""
    flag = REVIEW_MODES.get((mode or "comment").strip().lower())
    if flag is None:
        raise ValueError("review mode must be approve, request_changes or comment")
    args = ["pr", "review", _number(number), flag]
    if body and body.strip():
        args.extend(["--body", body.strip()])
    return await gh_action(prereq, args, "pr review", opts)


async def diff_pr(
    prereq: GhPrerequisites, number: int | str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    ok, message = prereq.ensure()
    if not ok:
        return message, ""
    result = await gh(["pr", "diff", _number(number), "--patch"], opts)
    if not result.success:
        return error_from_result(result, "pr diff", tool="gh"), ""
    return None, result.stdout


async def edit_pr(
    prereq: GhPrerequisites,
    number: int | str,
    title: str | None = None,
    body: str | None = None,
    base: str | None = None,
    add_labels: str | Sequence[str] | None = None,
    remove_labels: str | Sequence[str] | None = None,
    opts: RunOptions | None = None,
) -> tuple[str | None, str]:
    args = _append_flags(["pr", "edit", _number(number)], {
        "title": title,
        "body": body,
        "base": base,
        "add-label": _csv(add_labels),
        "remove-label": _csv(remove_labels),
    })
    if len(args) == 3:
        return None, "Nothing to edit"
    return await gh_action(prereq, args, "pr edit", opts)


async def create_issue(
    prereq: GhPrerequisites,
    title: str,
    body: str = "",
    labels: str | Sequence[str] | None = None,
    assignees: str | Sequence[str] | None = None,
    opts: RunOptions | None = None,
) -> tuple[str | None, str]:
    """Open an issue. On success the output is the new issue's URL."""
    args = ["issue", "create", "--title", _required(title, "Issue title"), "--body", body or ""]
    args = _append_flags(args, {"label": _csv(labels), "assignee": _csv(assignees)})
    return await gh_action(prereq, args, "issue create", opts)


async def comment_issue(
    prereq: GhPrerequisites, number: int | str, body: str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    args = ["issue", "comment", _number(number), "--body", _required(body, "Comment body")]
    return await gh_action(prereq, args, "issue comment", opts)


async def close_issue(
    prereq: GhPrerequisites, number: int | str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    return await gh_action(prereq, ["issue", "close", _number(number)], "issue close", opts)


async def reopen_issue(
    prereq: GhPrerequisites, number: int | str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    return await gh_action(prereq, ["issue", "reopen", _number(number)], "issue reopen", opts)


async def list_labels(
    prereq: GhPrerequisites, opts: RunOptions | None = None
) -> tuple[str | None, list[dict]]:
    ok, message = prereq.ensure()
    if not ok:
        return message, []
    err, data = await gh_json(["label", "list", "--json", LABEL_FIELDS], opts)
    if err:
        return err, []
    return None, data or []


async def create_label(
    prereq: GhPrerequisites,
    name: str,
    color: str,
    description: str | None = None,
    opts: RunOptions | None = None,
) -> tuple[str | None, str]:
    """Create a label. color is six hex digits, with or without a leading #."""
    hex_color = (color or "").strip().removeprefix("#")
    if not _HEX_COLOR.match(hex_color):
        raise ValueError("color must be a 6-digit hex value")
    args = ["label", "create", _required(name, "Label name"), "--color", hex_color.lower()]
    args = _append_flags(args, {"description": description})
    return await gh_action(prereq, args, "label create", opts)


async def delete_label(
    prereq: GhPrerequisites, name: str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    args = ["label", "delete", _required(name, "Label name"), "--yes"]
    return await gh_action(prereq, args, "label delete", opts)


async def assign_labels(
    prereq: GhPrerequisites,
    number: int | str,
    labels: str | Sequence[str] | None,
    kind: str = "issue",
    opts: RunOptions | None = None,
) -> tuple[str | None, str]:
    """Add labels to an issue (kind="issue") or pull request (kind="pr")."""
    if kind not in ("issue", "pr"):
        raise ValueError("kind must be 'issue' or 'pr'")
    label_csv = _csv(labels)
    if label_csv is None:
        return None, "No labels to assign"
    args = [kind, "edit", _number(number), "--add-label", label_csv]
    return await gh_action(prereq, args, f"{kind} edit", opts)
