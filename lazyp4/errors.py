"""Failure taxonomy shared by the executor, session, and operations.

``ErrorKind`` values travel inside ``OperationResult``; ``ProcessError`` is the
only exception type and never leaves the operations/session layer.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Typed failure categories surfaced to callers."""

    TOOL_UNAVAILABLE = "tool_unavailable"
    TIMEOUT = "timeout"
    CONNECTION_FAILED = "connection_failed"
    OUTSIDE_WORKSPACE_MAPPING = "outside_workspace_mapping"
    STALE_LOCAL_STATE = "stale_local_state"
    UNCLASSIFIED_FAILURE = "unclassified_failure"
    LOGIN_REQUIRED = "login_required"
    NOT_IN_DEPOT = "not_in_depot"
    ALREADY_IN_DEPOT = "already_in_depot"
    FILE_LOCKED = "file_locked"
    NOTHING_TO_SUBMIT = "nothing_to_submit"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN_WORKSPACE = "unknown_workspace"
    WORKSPACE_CHANGED = "workspace_changed"

    @property
    def retryable(self) -> bool:
        """Return whether an automatic retry can reasonably succeed."""
        return self in (ErrorKind.TIMEOUT, ErrorKind.CONNECTION_FAILED)


class ProcessError(Exception):
    """Raised when the external tool could not produce usable output."""

    def __init__(self, kind: ErrorKind, command_line: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.command_line = command_line
        self.message = message

    def __str__(self) -> str:
        return f"{self.message} ({self.command_line})"


__all__ = ["ErrorKind", "ProcessError"]
