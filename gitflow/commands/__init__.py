"""Subcommand dispatch for the gitflow CLI and editor hosts."""

from gitflow.commands.registry import CommandRegistry, CommandResult, Subcommand
from gitflow.commands.builtin import CommandContext, build_registry, register_builtins

__all__ = [
    "CommandRegistry",
    "CommandResult",
    "Subcommand",
    "CommandContext",
    "build_registry",
    "register_builtins",
]
