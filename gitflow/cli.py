#!/usr/bin/env python3
"""gitflow CLI entrypoint."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from gitflow.commands import CommandContext, build_registry
from gitflow.git.runner import SpawnError
from gitflow.lib.config import ConfigError, load_config
from gitflow.lib.constants import EXIT_CONFIG, EXIT_ERROR, EXIT_SPAWN, EXIT_SUCCESS
from gitflow.lib.prompts import ConsolePrompter, ScriptedPrompter

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gitflow", description="git and gh workflows")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-C", dest="cwd", type=Path, help="Run as if started in this directory")
    parser.add_argument(
        "--yes", action="store_true", help="Answer yes to confirmations (no text prompts)"
    )
    parser.add_argument(
        "--complete", metavar="CMDLINE",
        help="Print completion candidates for a partial command line",
    )
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Subcommand and its arguments")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _complete(registry, cmdline: str) -> int:
    words = cmdline.split()
    arglead = "" if not words or cmdline.endswith(" ") else words[-1]
    for candidate in registry.complete(arglead, cmdline):
        print(candidate)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    cwd = args.cwd.resolve() if args.cwd else None
    try:
        config = load_config(cwd)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG

    prompter = ScriptedPrompter(default_confirm=True) if args.yes else ConsolePrompter()
    registry = build_registry(CommandContext(config=config, prompter=prompter, cwd=cwd))

    try:
        if args.complete is not None:
            return _complete(registry, args.complete)
        result = asyncio.run(registry.dispatch(args.args))
    except SpawnError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_SPAWN

    if result.message:
        print(result.message, file=sys.stdout if result.ok else sys.stderr)
    return EXIT_SUCCESS if result.ok else EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
