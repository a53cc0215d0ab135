"""Git tag operations."""

import re
from dataclasses import dataclass

from gitflow.git.runner import RunOptions, error_from_result, git, git_action, split_lines
from gitflow.lib.constants import DEFAULT_REMOTE


TAG_LIST_ARGS = [
    "for-each-ref",
    "--sort=-creatordate",
    "--format=%(refname:short)\t%(objecttype)\t%(*objectname)\t%(subject)",
    "refs/tags",
]

_TAG_LINE = re.compile(r"^([^\t]+)\t([^\t]+)\t([^\t]*)\t(.*)$")


@dataclass(frozen=True)
class TagEntry:
    name: str
    sha: str  # Peeled commit for annotated tags, empty for lightweight ones
    subject: str | None
    is_annotated: bool


def parse_tags(text: str) -> list[TagEntry]:
    entries = []
    for line in split_lines(text):
        match = _TAG_LINE.match(line)
        if not match:
            continue
        name, obj_type, sha, subject = match.groups()
        entries.append(TagEntry(
            name=name,
            sha=sha,
            subject=subject or None,
            is_annotated=obj_type == "tag",
        ))
    return entries


def _require(name: str, what: str) -> None:
    if not name or not name.strip():
        raise ValueError(f"{what} requires a tag name")


def _remote_or_default(remote: str | None) -> str:
    if remote and remote.strip():
        return remote.strip()
    return DEFAULT_REMOTE


async def list_tags(opts: RunOptions | None = None) -> tuple[str | None, list[TagEntry]]:
    result = await git(TAG_LIST_ARGS, opts)
    if not result.success:
        return error_from_result(result, "for-each-ref refs/tags"), []
    return None, parse_tags(result.stdout)


async def create_tag(
    name: str,
    message: str | None = None,
    ref: str | None = None,
    opts: RunOptions | None = None,
) -> tuple[str | None, str]:
    """Create a tag; annotated when a message is given."""
    _require(name, "create_tag()")
    if message:
        args = ["tag", "-a", name, "-m", message]
    else:
        args = ["tag", name]
    if ref:
        args.append(ref)
    return await git_action(args, "tag", opts)


async def delete_tag(name: str, opts: RunOptions | None = None) -> tuple[str | None, str]:
    _require(name, "delete_tag()")
    return await git_action(["tag", "-d", name], "tag -d", opts)


async def delete_remote_tag(
    name: str, remote: str | None = None, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    _require(name, "delete_remote_tag()")
    target = _remote_or_default(remote)
    tag_ref = f"refs/tags/{name}"
    return await git_action(
        ["push", target, "--delete", tag_ref], f"push {target} --delete {tag_ref}", opts
    )


async def push_tag(
    name: str, remote: str | None = None, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    _require(name, "push_tag()")
    target = _remote_or_default(remote)
    tag_ref = f"refs/tags/{name}"
    return await git_action(["push", target, tag_ref], f"push {target} {tag_ref}", opts)
