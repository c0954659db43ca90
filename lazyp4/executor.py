"""Spawning of the ``p4`` command-line client.

Builds the argument vector with optional ``-u``/``-c`` identity flags, runs it
with a hard timeout, and hands back both captured streams untouched. Exit
status is recorded but not treated as the success signal: ``p4`` frequently
exits non-zero while printing a perfectly usable message.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from .errors import ErrorKind, ProcessError

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "p4"
DEFAULT_TIMEOUT_SECONDS = 30.0
HEALTH_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class CommandOutput:
    """Captured result of one invocation."""

    command_line: str
    stdout: str
    stderr: str
    returncode: int
    elapsed_seconds: float = 0.0

    @property
    def text(self) -> str:
        """Return stdout and stderr combined, stdout first."""
        if self.stdout and self.stderr:
            joiner = "" if self.stdout.endswith("\n") else "\n"
            return f"{self.stdout}{joiner}{self.stderr}"
        return self.stdout or self.stderr


def quote_token(token: str) -> str:
    """Quote ``token`` for display when it contains whitespace."""
    if token and not any(ch.isspace() for ch in token):
        return token
    escaped = token.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_command(
    executable: str,
    args: Sequence[str],
    *,
    user: str | None = None,
    workspace: str | None = None,
) -> list[str]:
    """Return the argv list: tool, identity flags when non-empty, then ``args``."""
    command = [executable]
    if user:
        command.extend(["-u", user])
    if workspace:
        command.extend(["-c", workspace])
    command.extend(str(arg) for arg in args)
    return command


def format_command_line(command: Sequence[str]) -> str:
    return " ".join(quote_token(token) for token in command)


class CommandExecutor:
    """Run ``p4`` invocations and return raw captured text.

    The executor knows nothing about what the output means; classification is
    the caller's job. ``run`` and ``monotonic`` are injectable for tests.
    """

    def __init__(
        self,
        executable: str = DEFAULT_EXECUTABLE,
        *,
        environment: Mapping[str, str] | None = None,
        default_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        run: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.executable = executable
        self.environment = dict(environment or {})
        self.default_timeout_seconds = default_timeout_seconds
        self._run = run
        self._monotonic = monotonic

    def _process_environment(self) -> dict[str, str]:
        env = dict(os.environ)
        env.update(self.environment)
        return env

    def execute(
        self,
        args: Sequence[str],
        *,
        user: str | None = None,
        workspace: str | None = None,
        timeout_seconds: float | None = None,
    ) -> CommandOutput:
        """Run one command and return its captured output.

        Raises ``ProcessError`` when the tool cannot be started, exceeds the
        timeout, or exits non-zero without writing anything to either stream.
        """
        command = build_command(self.executable, args, user=user, workspace=workspace)
        command_line = format_command_line(command)
        timeout = self.default_timeout_seconds if timeout_seconds is None else timeout_seconds
        started = self._monotonic()
        try:
            proc = self._run(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=timeout,
                env=self._process_environment(),
            )
        except subprocess.TimeoutExpired as exc:
            logger.warning("%s timed out after %.1fs", command_line, timeout)
            raise ProcessError(ErrorKind.TIMEOUT, command_line, f"timed out after {timeout:g}s") from exc
        except OSError as exc:
            logger.warning("%s could not start: %s", command_line, exc)
            raise ProcessError(
                ErrorKind.TOOL_UNAVAILABLE,
                command_line,
                f"could not run {self.executable}: {exc.strerror or exc}",
            ) from exc

        elapsed = self._monotonic() - started
        stdout = proc.stdout or ""
        stderr = proc.stderr or ""
        logger.debug("%s -> exit %s in %.0fms", command_line, proc.returncode, elapsed * 1000.0)

        if proc.returncode != 0 and not stdout.strip() and not stderr.strip():
            raise ProcessError(
                ErrorKind.TOOL_UNAVAILABLE,
                command_line,
                f"{self.executable} exited with status {proc.returncode} and no output",
            )

        return CommandOutput(
            command_line=command_line,
            stdout=stdout,
            stderr=stderr,
            returncode=proc.returncode,
            elapsed_seconds=elapsed,
        )


__all__ = [
    "CommandExecutor",
    "CommandOutput",
    "DEFAULT_EXECUTABLE",
    "DEFAULT_TIMEOUT_SECONDS",
    "HEALTH_TIMEOUT_SECONDS",
    "build_command",
    "format_command_line",
    "quote_token",
]
