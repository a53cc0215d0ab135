"""
Built-in gitflow subcommands.

Each handler renders the typed results of the git/workflow layers as plain
text. Panels in an editor integration would call the same layers directly.
"""

import logging
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from gitflow.commands.registry import (
    CommandRegistry,
    CommandResult,
    Subcommand,
    first_positional,
    has_flag,
)
from gitflow.git.blame import blame
from gitflow.git.branch import graph, list_branches, partition_branches
from gitflow.git.cherry_pick import list_unique_commits
from gitflow.git.commit import commit, last_commit_message
from gitflow.git.conflict import (
    abort_operation,
    active_operation,
    continue_operation,
    list_conflicted_paths,
    read_conflict_hunks,
    stage_path,
)
from gitflow.git.diff import get_diff
from gitflow.git.log import list_log
from gitflow.git.reflog import list_reflog
from gitflow.git.remote import pull
from gitflow.git.runner import RunOptions, output
from gitflow.git.stash import drop_stash, list_stashes, pop_stash, push_stash
from gitflow.git.status import count_staged, fetch_status, group_status
from gitflow.git.tag import list_tags
from gitflow.git.worktree import list_worktrees
from gitflow.lib.config import GitflowConfig
from gitflow.lib.github import (
    GhPrerequisites,
    checkout_pr,
    classify_checks,
    close_issue,
    close_pr,
    comment_issue,
    comment_pr,
    create_issue,
    create_label,
    create_pr,
    delete_label,
    list_issues,
    list_labels,
    list_prs,
    merge_pr,
    reopen_issue,
    view_issue,
    view_pr,
)
from gitflow.lib.prompts import Prompter
from gitflow.workflow.matchers import PhraseMatcher
from gitflow.workflow.operations import OperationOutcome, cherry_pick, merge, rebase
from gitflow.workflow.push import push_with_upstream
from gitflow.workflow.resolve import parse_resolution, resolve_all, resolve_hunk
from gitflow.workflow.switch import switch_branch
from gitflow.workflow.upstream import ahead_of_upstream

logger = logging.getLogger(__name__)

RESOLVE_USAGE = "Usage: resolve <path> <hunk|all> <local|base|remote>"
CHERRY_PICK_USAGE = "Usage: cherry-pick <commit>|--list <branch>"
PR_ACTIONS = ("view", "merge", "checkout", "comment", "close")
PR_USAGE = (
    "Usage: pr list [state]|view <n>|create [--draft] <title>|"
    "merge <n> [--squash|--rebase]|checkout <n>|comment <n> <text>|close <n>"
)
ISSUE_ACTIONS = ("view", "comment", "close", "reopen")
ISSUE_USAGE = (
    "Usage: issue list [state]|view <n>|create <title>|comment <n> <text>|close <n>|reopen <n>"
)
LABEL_USAGE = "Usage: label list|create <name> <color> [description]|delete <name>"


@dataclass
class CommandContext:
    """What every built-in handler needs. github caches the gh probe for the session."""
    config: GitflowConfig
    prompter: Prompter
    cwd: Path | None = None
    github: GhPrerequisites | None = None

    def __post_init__(self):
        if self.github is None:
            self.github = GhPrerequisites(timeout=self.config.gh_timeout)

    @property
    def opts(self) -> RunOptions:
        return self.config.git_options(self.cwd)

    @property
    def gh_opts(self) -> RunOptions:
        return self.config.gh_options(self.cwd)

    @property
    def network_opts(self) -> RunOptions:
        # Remote operations get at least the network default
        return RunOptions(cwd=self.cwd, timeout=max(self.config.git_timeout, 60))

    def path(self, relative: str) -> Path:
        return (self.cwd or Path.cwd()) / relative


def _outcome_result(outcome: OperationOutcome) -> CommandResult:
    if outcome.success:
        return CommandResult.success(outcome.message)
    return CommandResult.failure(outcome.message)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


# --- read-only views ---


async def cmd_help(registry: CommandRegistry, args: list[str]) -> CommandResult:
    return CommandResult.success(registry.usage())


async def cmd_status(ctx: CommandContext, args: list[str]) -> CommandResult:
    err, entries = await fetch_status(ctx.opts)
    if err:
        return CommandResult.failure(err)

    groups = group_status(entries)
    sections = []
    for title, bucket in (
        ("Staged", groups.staged),
        ("Unstaged", groups.unstaged),
        ("Untracked", groups.untracked),
    ):
        if not bucket:
            continue
        lines = [f"{title} ({len(bucket)}):"]
        for entry in bucket:
            code = entry.index_status if title == "Staged" else entry.worktree_status
            if entry.original_path:
                lines.append(f"  {code} {entry.original_path} -> {entry.path}")
            else:
                lines.append(f"  {code} {entry.path}")
        sections.append("\n".join(lines))

    ahead_err, ahead = await ahead_of_upstream(
        PhraseMatcher.of(ctx.config.no_upstream_ref), ctx.opts
    )
    if ahead_err:
        logger.debug(f"Ahead count unavailable: {ahead_err}")
    elif ahead.ahead:
        sections.append(f"Ahead of upstream by {_plural(ahead.count, 'commit')}")

    if not sections:
        return CommandResult.success("Working tree clean")
    return CommandResult.success("\n\n".join(sections))


async def cmd_diff(ctx: CommandContext, args: list[str]) -> CommandResult:
    staged = has_flag(args, "--staged")
    err, text, files = await get_diff(staged=staged, path=first_positional(args), opts=ctx.opts)
    if err:
        return CommandResult.failure(err)
    if not files:
        return CommandResult.success("No staged changes" if staged else "No changes")
    return CommandResult.success(text.rstrip("\n"))


async def cmd_log(ctx: CommandContext, args: list[str]) -> CommandResult:
    err, entries = await list_log(
        count=ctx.config.log_count,
        fmt=ctx.config.log_format,
        rev_range=first_positional(args),
        opts=ctx.opts,
    )
    if err:
        return CommandResult.failure(err)
    if not entries:
        return CommandResult.success("No commits")
    return CommandResult.success("\n".join(entry.summary for entry in entries))


async def cmd_branch(ctx: CommandContext, args: list[str]) -> CommandResult:
    if first_positional(args) == "graph":
        err, lines, _ = await graph(ctx.opts)
        if err:
            return CommandResult.failure(err)
        return CommandResult.success("\n".join(line.raw for line in lines))

    err, entries = await list_branches(ctx.opts)
    if err:
        return CommandResult.failure(err)

    local, remote = partition_branches(entries)
    lines = ["Local:"]
    lines.extend(f"{'*' if b.is_current else ' '} {b.name}" for b in local)
    if remote:
        lines.append("")
        lines.append("Remote:")
        lines.extend(f"  {b.name}" for b in remote)
    return CommandResult.success("\n".join(lines))


async def cmd_blame(ctx: CommandContext, args: list[str]) -> CommandResult:
    path = first_positional(args)
    if not path:
        return CommandResult.failure("Usage: blame <path>")
    err, entries = await blame(path, ctx.opts)
    if err:
        return CommandResult.failure(err)
    width = max((len(e.author) for e in entries), default=0)
    lines = [
        f"{'^' if e.boundary else ' '}{e.short_sha} ({e.author:<{width}} {e.date} "
        f"{e.line_number:>4}) {e.content}"
        for e in entries
    ]
    return CommandResult.success("\n".join(lines))


async def cmd_tag(ctx: CommandContext, args: list[str]) -> CommandResult:
    err, tags = await list_tags(ctx.opts)
    if err:
        return CommandResult.failure(err)
    if not tags:
        return CommandResult.success("No tags")
    lines = []
    for tag in tags:
        kind = "annotated" if tag.is_annotated else "lightweight"
        subject = f"  {tag.subject}" if tag.subject else ""
        lines.append(f"{tag.name} ({kind}){subject}")
    return CommandResult.success("\n".join(lines))


async def cmd_worktree(ctx: CommandContext, args: list[str]) -> CommandResult:
    err, worktrees = await list_worktrees(ctx.opts)
    if err:
        return CommandResult.failure(err)
    lines = []
    for wt in worktrees:
        label = "(bare)" if wt.is_bare else (wt.branch or "(detached)")
        marker = "*" if wt.is_main else " "
        lines.append(f"{marker} {wt.path}  {wt.short_sha}  {label}")
    return CommandResult.success("\n".join(lines))


async def cmd_reflog(ctx: CommandContext, args: list[str]) -> CommandResult:
    err, entries = await list_reflog(count=ctx.config.log_count, opts=ctx.opts)
    if err:
        return CommandResult.failure(err)
    return CommandResult.success(
        "\n".join(f"{e.short_sha} {e.selector} {e.description}" for e in entries)
    )


# --- actions ---


async def cmd_switch(ctx: CommandContext, args: list[str]) -> CommandResult:
    name = first_positional(args)
    if not name:
        return CommandResult.failure("Usage: switch <branch>")

    err, entries = await list_branches(ctx.opts)
    if err:
        return CommandResult.failure(err)
    entry = next((b for b in entries if b.name == name), None)
    if entry is None:
        return CommandResult.failure(f"Branch not found: {name}")

    op_err, text = await switch_branch(entry, ctx.opts)
    if op_err:
        return CommandResult.failure(op_err.message)
    return CommandResult.success(text or f"Switched to {entry.short_name}")


async def cmd_commit(ctx: CommandContext, args: list[str]) -> CommandResult:
    amend = has_flag(args, "--amend")
    err, entries = await fetch_status(ctx.opts)
    if err:
        return CommandResult.failure(err)

    staged_count = count_staged(group_status(entries))
    if staged_count == 0:
        return CommandResult.failure("No staged changes to commit")

    if amend:
        previous = await last_commit_message(ctx.opts)
        message = ctx.prompter.prompt("Amend commit message:", default=previous)
    else:
        message = ctx.prompter.prompt("Commit message:")
    if message is None:
        return CommandResult.failure("Commit cancelled")
    message = message.strip()
    if not message:
        return CommandResult.failure("Commit message cannot be empty")

    confirmed, _ = ctx.prompter.confirm(
        f"Commit {staged_count} staged file(s)?", ("&Commit", "&Cancel")
    )
    if not confirmed:
        return CommandResult.failure("Commit cancelled")

    result = await commit(message, amend=amend, opts=ctx.opts)
    if not result.success:
        return CommandResult.failure(output(result) or "git commit failed")
    return CommandResult.success(output(result) or "Commit created")


async def cmd_push(ctx: CommandContext, args: list[str]) -> CommandResult:
    outcome = await push_with_upstream(
        ctx.prompter,
        remote=ctx.config.remote,
        matcher=PhraseMatcher.of(ctx.config.no_upstream_push),
        opts=ctx.network_opts,
    )
    if outcome.success:
        return CommandResult.success(outcome.message)
    return CommandResult.failure(outcome.message)


async def cmd_pull(ctx: CommandContext, args: list[str]) -> CommandResult:
    result = await pull(ctx.network_opts, ff_only=has_flag(args, "--ff-only"))
    if not result.success:
        return CommandResult.failure(output(result) or "git pull failed")
    return CommandResult.success(output(result) or "Pull completed")


async def cmd_stash(ctx: CommandContext, args: list[str]) -> CommandResult:
    action = args[0] if args else "list"

    if action == "list":
        err, entries = await list_stashes(ctx.opts)
        if err:
            return CommandResult.failure(err)
        if not entries:
            return CommandResult.success("No stash entries")
        return CommandResult.success("\n".join(f"{e.ref}: {e.description}" for e in entries))

    if action == "push":
        message = " ".join(args[1:]) or None
        err, text = await push_stash(message, ctx.opts)
        if err:
            return CommandResult.failure(err)
        return CommandResult.success(text or "Created stash entry")

    if action in ("pop", "drop"):
        index = None
        if len(args) > 1:
            try:
                index = int(args[1])
            except ValueError:
                return CommandResult.failure(f"Invalid stash index: {args[1]}")
        if action == "pop":
            err, text = await pop_stash(index, ctx.opts)
            fallback = "Applied stash entry"
        elif index is None:
            return CommandResult.failure("Usage: stash drop <index>")
        else:
            err, text = await drop_stash(index, ctx.opts)
            fallback = "Dropped stash entry"
        if err:
            return CommandResult.failure(err)
        return CommandResult.success(text or fallback)

    return CommandResult.failure(f"Unknown stash action: {action}")


async def cmd_merge(ctx: CommandContext, args: list[str]) -> CommandResult:
    branch = first_positional(args)
    if not branch:
        return CommandResult.failure("Usage: merge <branch>")
    return _outcome_result(await merge(branch, ctx.opts))


async def cmd_rebase(ctx: CommandContext, args: list[str]) -> CommandResult:
    if has_flag(args, "--abort"):
        return _outcome_result(await rebase(["--abort"], ctx.opts))
    if has_flag(args, "--continue"):
        return _outcome_result(await rebase(["--continue"], ctx.opts))

    branch = first_positional(args)
    if not branch:
        return CommandResult.failure("Usage: rebase <branch>|--abort|--continue")
    return _outcome_result(await rebase([branch], ctx.opts))


async def cmd_cherry_pick(ctx: CommandContext, args: list[str]) -> CommandResult:
    if has_flag(args, "--list"):
        source = first_positional(args)
        if not source:
            return CommandResult.failure(CHERRY_PICK_USAGE)
        err, entries = await list_unique_commits(source, ctx.config.log_count, ctx.opts)
        if err:
            return CommandResult.failure(err)
        if not entries:
            return CommandResult.success(f"No commits on {source} to cherry-pick")
        return CommandResult.success("\n".join(entry.summary for entry in entries))

    sha = first_positional(args)
    if not sha:
        return CommandResult.failure(CHERRY_PICK_USAGE)
    return _outcome_result(await cherry_pick(sha, ctx.opts))


# --- conflicts ---


async def cmd_conflicts(ctx: CommandContext, args: list[str]) -> CommandResult:
    action = first_positional(args)
    if action in ("continue", "abort"):
        run_flag = continue_operation if action == "continue" else abort_operation
        err, operation, text = await run_flag(ctx.opts)
        if err:
            return CommandResult.failure(err)
        return CommandResult.success(text or f"{operation} --{action} completed")
    if action is not None:
        return CommandResult.failure("Usage: conflicts [continue|abort]")

    err, paths = await list_conflicted_paths(ctx.opts)
    if err:
        return CommandResult.failure(err)
    op_err, operation = await active_operation(ctx.opts)
    if op_err:
        logger.debug(f"Could not detect active operation: {op_err}")

    if not paths:
        return CommandResult.success("No conflicted files")

    lines = [f"{operation} in progress" if operation else "Conflicted files"]
    for path in paths:
        read_err, hunks = read_conflict_hunks(ctx.path(path))
        if read_err:
            lines.append(f"  {path}  ({read_err})")
        else:
            lines.append(f"  {path}  ({_plural(len(hunks), 'hunk')})")
    return CommandResult.success("\n".join(lines))


async def cmd_resolve(ctx: CommandContext, args: list[str]) -> CommandResult:
    if len(args) < 3:
        return CommandResult.failure(RESOLVE_USAGE)
    path, which, choice_name = args[0], args[1], args[2]

    choice = parse_resolution(choice_name)
    if choice is None:
        return CommandResult.failure(f"Unknown resolution: {choice_name}\n{RESOLVE_USAGE}")

    target = ctx.path(path)
    if which == "all":
        remaining, op_err = resolve_all(target, choice)
    else:
        try:
            index = int(which)
        except ValueError:
            return CommandResult.failure(f"Invalid hunk index: {which}\n{RESOLVE_USAGE}")
        remaining, op_err = resolve_hunk(target, index, choice)

    if op_err:
        return CommandResult.failure(op_err.message)
    if remaining:
        return CommandResult.success(f"{path}: {_plural(len(remaining), 'conflict hunk')} left")

    err, _ = await stage_path(path, ctx.opts)
    if err:
        return CommandResult.failure(err)
    return CommandResult.success(f"{path}: all conflicts resolved, staged")


# --- GitHub ---


def _positionals(args: list[str]) -> list[str]:
    return [arg for arg in args if not arg.startswith("--")]


def _action_result(err: str | None, text: str, fallback: str) -> CommandResult:
    if err:
        return CommandResult.failure(err)
    return CommandResult.success(text or fallback)


def _names(items: list[dict] | None, key: str = "name") -> str:
    return ", ".join(str(item.get(key, "")) for item in items or [])


def _summary_line(item: dict) -> str:
    state = str(item.get("state", "")).lower()
    line = f"#{item.get('number')} {item.get('title', '')} ({state})"
    if item.get("isDraft"):
        line += " [draft]"
    if item.get("headRefName"):
        line += f"  {item['headRefName']} -> {item.get('baseRefName', '')}"
    return line


def _detail_lines(item: dict) -> list[str]:
    lines = [f"#{item.get('number')} {item.get('title', '')}"]
    lines.append(f"State: {str(item.get('state', '')).lower()}")
    if item.get("headRefName"):
        lines.append(f"Branch: {item['headRefName']} -> {item.get('baseRefName', '')}")
    if "statusCheckRollup" in item:
        checks = classify_checks(item.get("statusCheckRollup"))
        if checks.status:
            lines.append(
                f"Checks: {checks.status} ({checks.passed} passed, "
                f"{checks.failed} failed, {checks.pending} pending)"
            )
    if item.get("labels"):
        lines.append(f"Labels: {_names(item['labels'])}")
    if item.get("assignees"):
        lines.append(f"Assignees: {_names(item['assignees'], 'login')}")
    body = (item.get("body") or "").strip()
    if body:
        lines.extend(["", body])
    return lines


def _title(ctx: CommandContext, words: list[str], label: str) -> str | None:
    title = " ".join(words).strip()
    if title:
        return title
    answer = ctx.prompter.prompt(f"{label} title:")
    return answer.strip() if answer else None


async def cmd_pr(ctx: CommandContext, args: list[str]) -> CommandResult:
    action = args[0] if args else "list"
    rest = _positionals(args[1:])

    if action == "list":
        err, prs = await list_prs(ctx.github, state=rest[0] if rest else None, opts=ctx.gh_opts)
        if err:
            return CommandResult.failure(err)
        if not prs:
            return CommandResult.success("No pull requests")
        return CommandResult.success("\n".join(_summary_line(pr) for pr in prs))

    if action == "create":
        title = _title(ctx, rest, "PR")
        if not title:
            return CommandResult.failure("PR title cannot be empty")
        err, url = await create_pr(
            ctx.github, title, draft=has_flag(args, "--draft"), opts=ctx.gh_opts
        )
        return _action_result(err, url, "Pull request created")

    if action not in PR_ACTIONS or not rest:
        return CommandResult.failure(PR_USAGE)
    number = rest[0]

    if action == "view":
        err, pr = await view_pr(ctx.github, number, ctx.gh_opts)
        if err:
            return CommandResult.failure(err)
        return CommandResult.success("\n".join(_detail_lines(pr or {})))

    if action == "merge":
        strategy = next((s for s in ("squash", "rebase") if has_flag(args, f"--{s}")), "merge")
        confirmed, _ = ctx.prompter.confirm(
            f"Merge PR #{number} ({strategy})?", ("&Merge", "&Cancel")
        )
        if not confirmed:
            return CommandResult.failure("Merge cancelled")
        err, text = await merge_pr(ctx.github, number, strategy, ctx.gh_opts)
        return _action_result(err, text, f"Merged PR #{number}")

    if action == "checkout":
        err, text = await checkout_pr(ctx.github, number, ctx.gh_opts)
        return _action_result(err, text, f"Checked out PR #{number}")

    if action == "comment":
        body = " ".join(rest[1:]) or ctx.prompter.prompt("Comment:") or ""
        if not body.strip():
            return CommandResult.failure("Comment cannot be empty")
        err, text = await comment_pr(ctx.github, number, body, ctx.gh_opts)
        return _action_result(err, text, f"Commented on PR #{number}")

    err, text = await close_pr(ctx.github, number, ctx.gh_opts)
    return _action_result(err, text, f"Closed PR #{number}")


async def cmd_issue(ctx: CommandContext, args: list[str]) -> CommandResult:
    action = args[0] if args else "list"
    rest = _positionals(args[1:])

    if action == "list":
        err, issues = await list_issues(
            ctx.github, state=rest[0] if rest else None, opts=ctx.gh_opts
        )
        if err:
            return CommandResult.failure(err)
        if not issues:
            return CommandResult.success("No issues")
        return CommandResult.success("\n".join(_summary_line(issue) for issue in issues))

    if action == "create":
        title = _title(ctx, rest, "Issue")
        if not title:
            return CommandResult.failure("Issue title cannot be empty")
        err, url = await create_issue(ctx.github, title, opts=ctx.gh_opts)
        return _action_result(err, url, "Issue created")

    if action not in ISSUE_ACTIONS or not rest:
        return CommandResult.failure(ISSUE_USAGE)
    number = rest[0]

    if action == "view":
        err, issue = await view_issue(ctx.github, number, ctx.gh_opts)
        if err:
            return CommandResult.failure(err)
        return CommandResult.success("\n".join(_detail_lines(issue or {})))

    if action == "comment":
        body = " ".join(rest[1:]) or ctx.prompter.prompt("Comment:") or ""
        if not body.strip():
            return CommandResult.failure("Comment cannot be empty")
        err, text = await comment_issue(ctx.github, number, body, ctx.gh_opts)
        return _action_result(err, text, f"Commented on issue #{number}")

    if action == "reopen":
        err, text = await reopen_issue(ctx.github, number, ctx.gh_opts)
        return _action_result(err, text, f"Reopened issue #{number}")

    err, text = await close_issue(ctx.github, number, ctx.gh_opts)
    return _action_result(err, text, f"Closed issue #{number}")


async def cmd_label(ctx: CommandContext, args: list[str]) -> CommandResult:
    action = args[0] if args else "list"
    rest = args[1:]

    if action == "list":
        err, labels = await list_labels(ctx.github, ctx.gh_opts)
        if err:
            return CommandResult.failure(err)
        if not labels:
            return CommandResult.success("No labels")
        return CommandResult.success("\n".join(
            f"{label.get('name')}  #{label.get('color', '')}  {label.get('description') or ''}".rstrip()
            for label in labels
        ))

    if action == "create" and len(rest) >= 2:
        try:
            err, text = await create_label(
                ctx.github, rest[0], rest[1], " ".join(rest[2:]) or None, ctx.gh_opts
            )
        except ValueError as e:
            return CommandResult.failure(f"Invalid label: {e}")
        return _action_result(err, text, f"Created label {rest[0]}")

    if action == "delete" and rest:
        err, text = await delete_label(ctx.github, rest[0], ctx.gh_opts)
        return _action_result(err, text, f"Deleted label {rest[0]}")

    return CommandResult.failure(LABEL_USAGE)


BUILTINS = [
    ("status", "Show working tree status", cmd_status),
    ("diff", "Show diff (supports --staged [path])", cmd_diff),
    ("log", "Show recent commits", cmd_log),
    ("branch", "List branches (branch graph for the commit graph)", cmd_branch),
    ("switch", "Switch to a local or remote branch", cmd_switch),
    ("commit", "Create commit from staged changes (supports --amend)", cmd_commit),
    ("push", "Run git push", cmd_push),
    ("pull", "Run git pull", cmd_pull),
    ("stash", "Stash operations: list|push|pop|drop", cmd_stash),
    ("merge", "Merge branch into current branch", cmd_merge),
    ("rebase", "Rebase current branch (supports --abort/--continue)", cmd_rebase),
    ("cherry-pick", "Cherry-pick a commit (--list <branch> shows candidates)", cmd_cherry_pick),
    ("blame", "Show line-by-line authorship of a file: blame <path>", cmd_blame),
    ("tag", "List tags", cmd_tag),
    ("worktree", "List worktrees", cmd_worktree),
    ("reflog", "Show reflog entries", cmd_reflog),
    ("conflicts", "List conflicted files (continue|abort the operation)", cmd_conflicts),
    ("resolve", "Resolve a conflict hunk: <path> <hunk|all> <local|base|remote>", cmd_resolve),
    ("pr", "GitHub pull requests: list|view|create|merge|checkout|comment|close", cmd_pr),
    ("issue", "GitHub issues: list|view|create|comment|close|reopen", cmd_issue),
    ("label", "GitHub labels: list|create|delete", cmd_label),
]


def register_builtins(registry: CommandRegistry, ctx: CommandContext) -> CommandRegistry:
    registry.register("help", Subcommand("Show gitflow usage", partial(cmd_help, registry)))
    for name, description, handler in BUILTINS:
        registry.register(name, Subcommand(description, partial(handler, ctx)))
    return registry


def build_registry(ctx: CommandContext) -> CommandRegistry:
    return register_builtins(CommandRegistry(ctx.opts), ctx)
