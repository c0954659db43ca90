"""Scripted stand-in for ``CommandExecutor`` used by session and operations tests."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from lazyp4.errors import ProcessError
from lazyp4.executor import CommandOutput, build_command, format_command_line
from lazyp4.session import Session

INFO_TEXT = """User name: alice
Client name: alice-main
Client host: box
Client root: /Users/alice/main
Current directory: /Users/alice/main
Server address: ssl:perforce:1666
Server version: P4D/LINUX26X86_64/2023.1/2468153 (2023/06/01)
"""

CLIENTS_TEXT = """Client alice-main 2024/01/01 root /Users/alice/main 'Main workspace '
Client alice-rel 2024/02/01 root /Users/alice/main/release 'Release branch '
"""

CONNECT_FAILED_TEXT = """Perforce client error:
\tConnect to server failed; check $P4PORT.
\tTCP connect to perforce:1666 failed.
\tconnect: 10.0.0.1:1666: Connection refused
"""


@dataclass(frozen=True)
class Call:
    args: tuple[str, ...]
    user: str | None
    workspace: str | None
    timeout_seconds: float | None


class ScriptedExecutor:
    """Answer invocations from a table keyed by argument prefix.

    The longest matching prefix wins. A rule holding several responses hands
    them out in order and keeps repeating the last one. A response can be
    text (stdout), a ``CommandOutput``, a ``ProcessError`` to raise, or a
    callable receiving the args and returning any of those.
    """

    def __init__(self) -> None:
        self.rules: dict[tuple[str, ...], list[object]] = {}
        self.calls: list[Call] = []

    def on(self, prefix: Sequence[str], *responses: object) -> "ScriptedExecutor":
        self.rules[tuple(prefix)] = list(responses)
        return self

    def commands(self) -> list[tuple[str, ...]]:
        return [call.args for call in self.calls]

    def execute(
        self,
        args: Sequence[str],
        *,
        user: str | None = None,
        workspace: str | None = None,
        timeout_seconds: float | None = None,
    ) -> CommandOutput:
        args = tuple(str(arg) for arg in args)
        self.calls.append(Call(args, user, workspace, timeout_seconds))
        matches = [prefix for prefix in self.rules if args[: len(prefix)] == prefix]
        if not matches:
            raise AssertionError(f"unexpected p4 invocation: {args}")
        queue = self.rules[max(matches, key=len)]
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(response) and not isinstance(response, (str, CommandOutput)):
            response = response(args)
        if isinstance(response, ProcessError):
            raise response
        if isinstance(response, CommandOutput):
            return response
        command_line = format_command_line(build_command("p4", args, user=user, workspace=workspace))
        return CommandOutput(command_line=command_line, stdout=str(response), stderr="", returncode=0)


def connected_executor() -> ScriptedExecutor:
    return ScriptedExecutor().on(["info"], INFO_TEXT).on(["clients"], CLIENTS_TEXT)


def refreshed_session(executor: ScriptedExecutor, **kwargs: object) -> Session:
    session = Session(executor, **kwargs)
    session.refresh_full()
    executor.calls.clear()
    return session


def error_output(text: str, returncode: int = 1) -> CommandOutput:
    return CommandOutput(command_line="p4", stdout="", stderr=text, returncode=returncode)


__all__ = [
    "CLIENTS_TEXT",
    "CONNECT_FAILED_TEXT",
    "Call",
    "INFO_TEXT",
    "ScriptedExecutor",
    "connected_executor",
    "error_output",
    "refreshed_session",
]
