"""Typed records produced by parsers and returned by operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from .errors import ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class WorkspaceDescriptor:
    """One client workspace owned by the current user."""

    name: str
    root: str
    description: str = ""


@dataclass(frozen=True)
class Identity:
    """Process-wide identity snapshot; replaced whole on every refresh."""

    user: str = ""
    active_workspace: str = ""
    server_address: str = ""
    connected: bool = False
    last_checked_at: float | None = None
    server_version: str = ""
    client_root: str = ""


class FileState(str, Enum):
    """Derived per-file state shown as a badge by consumers."""

    UNTRACKED = "untracked"
    CHECKED_OUT_BY_ME = "checked_out_by_me"
    ADDED = "added"
    MARKED_FOR_DELETE = "marked_for_delete"
    CHECKED_OUT_BY_OTHER = "checked_out_by_other"
    LOCKED_BY_ME = "locked_by_me"
    LOCKED_BY_OTHER = "locked_by_other"
    NORMAL = "normal"


@dataclass(frozen=True)
class FileStatus:
    """Flags reported by an fstat-style query for a single path.

    ``status`` and ``needs_sync`` are computed from the raw flags on every
    access and cannot be set directly.
    """

    depot_path: str = ""
    client_path: str = ""
    action: str = ""
    change: str = ""
    have_rev: int | None = None
    head_rev: int | None = None
    head_action: str = ""
    file_type: str = ""
    other_open: bool = False
    other_openers: tuple[str, ...] = ()
    our_lock: bool = False
    other_lock: bool = False

    @property
    def in_depot(self) -> bool:
        return self.head_rev is not None and self.head_action not in ("delete", "move/delete")

    @property
    def checked_out_by_me(self) -> bool:
        return bool(self.action)

    @property
    def needs_sync(self) -> bool:
        if self.have_rev is None or self.head_rev is None:
            return False
        return self.have_rev < self.head_rev

    @property
    def status(self) -> FileState:
        if not self.depot_path and not self.client_path:
            return FileState.UNTRACKED
        if self.action == "edit":
            return FileState.CHECKED_OUT_BY_ME
        if self.action == "add":
            return FileState.ADDED
        if self.action == "delete":
            return FileState.MARKED_FOR_DELETE
        if self.other_open:
            return FileState.CHECKED_OUT_BY_OTHER
        if self.our_lock:
            return FileState.LOCKED_BY_ME
        if self.other_lock:
            return FileState.LOCKED_BY_OTHER
        return FileState.NORMAL


@dataclass(frozen=True)
class OpenedFileEntry:
    """One line of ``opened`` output."""

    depot_file: str
    revision: int
    action: str
    change: str
    file_type: str
    locked: bool = False


@dataclass(frozen=True)
class Changelist:
    """Pending changelist summary."""

    number: int
    date: str
    user: str
    workspace: str
    description: str
    status: str = "pending"


@dataclass(frozen=True)
class DescribedFile:
    depot_file: str
    revision: int
    action: str


@dataclass(frozen=True)
class ChangeDescription:
    """Full description of one changelist with its affected files."""

    number: int
    user: str = ""
    workspace: str = ""
    date: str = ""
    status: str = ""
    description: str = ""
    files: tuple[DescribedFile, ...] = ()


@dataclass(frozen=True)
class FileHistoryEntry:
    """One revision in a file's history, newest first as emitted."""

    revision: int
    change: int
    action: str
    date: str
    user: str
    workspace: str = ""
    file_type: str = ""
    description: str = ""


@dataclass(frozen=True)
class DiffResult:
    text: str
    has_changes: bool


@dataclass(frozen=True)
class FileActionOutcome:
    """Result payload of single-file verbs (edit/add/delete/revert)."""

    path: str
    workspace: str
    message: str


@dataclass(frozen=True)
class SubmitOutcome:
    changelist: int | None
    message: str


@dataclass(frozen=True)
class SyncOutcome:
    file_count: int
    message: str


@dataclass(frozen=True)
class RevertOutcome:
    file_count: int
    files: tuple[str, ...]
    message: str


@dataclass(frozen=True)
class WorkspaceSelection:
    name: str
    root: str | None


@dataclass(frozen=True)
class ConnectionStatus:
    connected: bool
    last_checked_at: float | None


@dataclass(frozen=True)
class SessionInfo:
    """Consumer-facing view of the identity cache."""

    user: str
    active_workspace: str
    server: str
    connected: bool
    workspaces: tuple[WorkspaceDescriptor, ...] = ()
    last_checked_at: float | None = None
    error: ErrorKind | None = None
    message: str = ""


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Discriminated success/failure result returned by every verb.

    ``value`` is populated on success; ``error`` and ``message`` on failure.
    ``raw`` keeps the tool output that produced the result for display.
    """

    success: bool
    value: T | None = None
    error: ErrorKind | None = None
    message: str = ""
    raw: str = ""
    details: dict[str, object] = field(default_factory=dict)

    @classmethod
    def ok(cls, value: T, *, message: str = "", raw: str = "") -> "OperationResult[T]":
        return cls(success=True, value=value, message=message, raw=raw)

    @classmethod
    def fail(
        cls,
        error: ErrorKind,
        message: str,
        *,
        raw: str = "",
        details: dict[str, object] | None = None,
    ) -> "OperationResult[T]":
        return cls(success=False, error=error, message=message, raw=raw, details=dict(details or {}))


__all__ = [
    "ChangeDescription",
    "Changelist",
    "ConnectionStatus",
    "DescribedFile",
    "DiffResult",
    "FileActionOutcome",
    "FileHistoryEntry",
    "FileState",
    "FileStatus",
    "Identity",
    "OpenedFileEntry",
    "OperationResult",
    "RevertOutcome",
    "SessionInfo",
    "SubmitOutcome",
    "SyncOutcome",
    "WorkspaceDescriptor",
    "WorkspaceSelection",
]
