"""
Configuration loader for gitflow.

Reads an optional YAML file, deep-merges it over DEFAULTS and validates the
result against schemas/config.schema.json. Lookup order:

1. $GITFLOW_CONFIG
2. <cwd>/.gitflow.yaml
3. ~/.config/gitflow/config.yaml

No file is fine; the defaults are used.
"""

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from gitflow.git.runner import RunOptions
from gitflow.lib.constants import (
    DEFAULT_REMOTE,
    NO_UPSTREAM_PUSH_PHRASES,
    NO_UPSTREAM_REF_PHRASES,
)
from gitflow.lib.validate import ValidationError, validate

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "GITFLOW_CONFIG"
PROJECT_CONFIG_NAME = ".gitflow.yaml"

DEFAULTS: dict[str, Any] = {
    "remote": DEFAULT_REMOTE,
    "git": {
        "timeout": 30,
        "log": {
            "count": 50,
            "format": "%h %s",
        },
    },
    "gh": {
        "timeout": 30,
    },
    "matchers": {
        "no_upstream_push": list(NO_UPSTREAM_PUSH_PHRASES),
        "no_upstream_ref": list(NO_UPSTREAM_REF_PHRASES),
    },
}


class ConfigError(Exception):
    """Configuration file is unreadable or invalid."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


@dataclass(frozen=True)
class GitflowConfig:
    remote: str
    git_timeout: float
    gh_timeout: float
    log_count: int
    log_format: str
    no_upstream_push: tuple[str, ...]
    no_upstream_ref: tuple[str, ...]
    source: Path | None = None  # File the settings came from, None for defaults

    def git_options(self, cwd: Path | str | None = None) -> RunOptions:
        return RunOptions(cwd=cwd, timeout=self.git_timeout)

    def gh_options(self, cwd: Path | str | None = None) -> RunOptions:
        return RunOptions(cwd=cwd, timeout=self.gh_timeout)


def deep_merge(base: dict, override: dict) -> dict:
    """Return base with override applied recursively. Lists are replaced, not merged."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def find_config_path(cwd: Path | None = None, environ: dict[str, str] | None = None) -> Path | None:
    env = os.environ if environ is None else environ
    explicit = env.get(CONFIG_ENV_VAR)
    if explicit:
        # An explicit path must exist
        return Path(explicit).expanduser()

    candidates = [
        (cwd or Path.cwd()) / PROJECT_CONFIG_NAME,
        Path.home() / ".config" / "gitflow" / "config.yaml",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def _read_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read config: {e.strerror or e}", path) from None
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}", path) from None

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Top level must be a mapping", path)
    return data


def config_from_mapping(data: dict, source: Path | None = None) -> GitflowConfig:
    """Merge data over DEFAULTS, validate, and build a GitflowConfig."""
    merged = deep_merge(DEFAULTS, data)
    try:
        validate(merged, "config")
    except ValidationError as e:
        raise ConfigError(str(e), source) from None

    return GitflowConfig(
        remote=merged["remote"],
        git_timeout=merged["git"]["timeout"],
        gh_timeout=merged["gh"]["timeout"],
        log_count=merged["git"]["log"]["count"],
        log_format=merged["git"]["log"]["format"],
        no_upstream_push=tuple(merged["matchers"]["no_upstream_push"]),
        no_upstream_ref=tuple(merged["matchers"]["no_upstream_ref"]),
        source=source,
    )


def load_config(cwd: Path | None = None, environ: dict[str, str] | None = None) -> GitflowConfig:
    """
    Load configuration for a working directory.

    Raises:
        ConfigError: If the file can't be read, isn't YAML, or fails the schema
    """
    path = find_config_path(cwd, environ)
    if path is None:
        logger.debug("No config file found, using defaults")
        return config_from_mapping({})

    logger.debug(f"Loading config from {path}")
    return config_from_mapping(_read_yaml(path), source=path)
