"""Shared support: configuration, prompts, error types, gh access and staleness tokens."""

from gitflow.lib.config import ConfigError, GitflowConfig, load_config
from gitflow.lib.generation import Generation
from gitflow.lib.github import GhPrerequisites, classify_checks, gh_action, gh_json
from gitflow.lib.prompts import ConsolePrompter, Prompter, ScriptedPrompter
from gitflow.lib.types import ErrorKind, OpError

__all__ = [
    "ConfigError",
    "GitflowConfig",
    "load_config",
    "Generation",
    "GhPrerequisites",
    "classify_checks",
    "gh_action",
    "gh_json",
    "ConsolePrompter",
    "Prompter",
    "ScriptedPrompter",
    "ErrorKind",
    "OpError",
]
