"""Process runner for git and gh invocations.

Every command is spawned with asyncio, so the awaiting coroutine resumes on
the caller's event loop once the child exits. A non-zero exit is a normal
result; only a failure to spawn the process raises.
"""

import asyncio
import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class SpawnError(Exception):
    """The subprocess could not be started at all."""

    def __init__(self, command: Sequence[str], reason: str):
        self.command = tuple(command)
        self.reason = reason
        super().__init__(f"Failed to start command: {' '.join(command)}: {reason}")


@dataclass(frozen=True)
class RunOptions:
    """Per-invocation options shared by every wrapper."""
    cwd: Path | str | None = None
    env: dict[str, str] | None = None  # Overlaid on the current environment
    stdin: str | list[str] | None = None
    timeout: float | None = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class ProcessResult:
    """Result of a finished subprocess."""
    exit_code: int
    signal: int
    stdout: str
    stderr: str
    command: tuple[str, ...] = field(default_factory=tuple)
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


def normalize_stdin(value: str | list[str] | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return "\n".join(value)
    return value


def _normalize_command(command: Sequence[object]) -> list[str]:
    if isinstance(command, str) or not command:
        raise ValueError("run() requires a non-empty command sequence")
    return [str(part) for part in command]


def _build_env(overrides: dict[str, str] | None) -> dict[str, str] | None:
    if not overrides:
        return None
    env = dict(os.environ)
    env.update(overrides)
    return env


def _exit_status(returncode: int | None) -> tuple[int, int]:
    """Split a Popen returncode into (exit_code, signal)."""
    if returncode is None:
        return 1, 0
    if returncode < 0:
        return 128 - returncode, -returncode
    return returncode, 0


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


async def run(command: Sequence[object], opts: RunOptions | None = None) -> ProcessResult:
    """
    Run a command and capture its output.

    Args:
        command: Argument vector, first element is the program
        opts: cwd/env/stdin/timeout overrides

    Returns:
        ProcessResult; timed_out is set if the timeout expired

    Raises:
        SpawnError: if the program cannot be started
    """
    options = opts or RunOptions()
    cmd = _normalize_command(command)
    stdin_text = normalize_stdin(options.stdin)
    cwd = str(options.cwd) if options.cwd else None

    logger.debug(f"run: {' '.join(cmd)} (cwd={cwd})")
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE if stdin_text is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=_build_env(options.env),
        )
    except OSError as e:
        logger.warning(f"Failed to start {cmd[0]}: {e}")
        raise SpawnError(cmd, str(e)) from e

    payload = stdin_text.encode("utf-8") if stdin_text is not None else None
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(payload), timeout=options.timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.warning(f"Command timed out after {options.timeout}s: {' '.join(cmd)}")
        return ProcessResult(
            exit_code=-1,
            signal=0,
            stdout="",
            stderr=f"Command timed out after {options.timeout}s",
            command=tuple(cmd),
            timed_out=True,
        )

    exit_code, signal = _exit_status(proc.returncode)
    return ProcessResult(
        exit_code=exit_code,
        signal=signal,
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        command=tuple(cmd),
    )


def run_sync(command: Sequence[object], opts: RunOptions | None = None) -> ProcessResult:
    """Blocking variant of run() for callers outside the event loop."""
    options = opts or RunOptions()
    cmd = _normalize_command(command)
    stdin_text = normalize_stdin(options.stdin)
    cwd = str(options.cwd) if options.cwd else None

    logger.debug(f"run_sync: {' '.join(cmd)} (cwd={cwd})")
    try:
        result = subprocess.run(
            cmd,
            input=stdin_text.encode("utf-8") if stdin_text is not None else None,
            stdin=None if stdin_text is not None else subprocess.DEVNULL,
            capture_output=True,
            cwd=cwd,
            env=_build_env(options.env),
            timeout=options.timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out after {options.timeout}s: {' '.join(cmd)}")
        return ProcessResult(
            exit_code=-1,
            signal=0,
            stdout="",
            stderr=f"Command timed out after {options.timeout}s",
            command=tuple(cmd),
            timed_out=True,
        )
    except OSError as e:
        logger.warning(f"Failed to start {cmd[0]}: {e}")
        raise SpawnError(cmd, str(e)) from e

    exit_code, signal = _exit_status(result.returncode)
    return ProcessResult(
        exit_code=exit_code,
        signal=signal,
        stdout=_decode(result.stdout),
        stderr=_decode(result.stderr),
        command=tuple(cmd),
    )


async def git(args: Sequence[object], opts: RunOptions | None = None) -> ProcessResult:
    """Run `git <args>`."""
    return await run(["git", *args], opts)


async def gh(args: Sequence[object], opts: RunOptions | None = None) -> ProcessResult:
    """Run `gh <args>`."""
    return await run(["gh", *args], opts)


async def git_action(
    args: Sequence[object], action: str, opts: RunOptions | None = None
) -> tuple[str | None, str]:
    """
    Run a git command whose only interesting result is success or failure.

    Returns:
        (error message or None, combined output)
    """
    result = await git(args, opts)
    if not result.success:
        return error_from_result(result, action), output(result)
    return None, output(result)


def output(result: ProcessResult) -> str:
    """Text to show the user: trimmed stdout, else trimmed stderr."""
    stdout = (result.stdout or "").strip()
    if stdout:
        return stdout
    return (result.stderr or "").strip()


def error_from_result(result: ProcessResult, action: str, tool: str = "git") -> str:
    """Format a failure message for a command, including its output."""
    text = output(result)
    if not text:
        return f"{tool} {action} failed"
    return f"{tool} {action} failed: {text}"


def split_lines(text: str) -> list[str]:
    """Split CLI output into non-empty lines."""
    if not text:
        return []
    return [line for line in text.split("\n") if line.strip()]
