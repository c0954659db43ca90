"""Workspace-root normalization and path-to-workspace resolution."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .types import WorkspaceDescriptor


def normalize_path(path: str | Path) -> str:
    """Return lowercase, forward-slash form without a trailing separator."""
    text = str(path).replace("\\", "/").lower()
    while len(text) > 1 and text.endswith("/"):
        text = text[:-1]
    return text


def _with_separator(normalized: str) -> str:
    return normalized if normalized.endswith("/") else normalized + "/"


def root_contains(root: str | Path, target: str | Path) -> bool:
    """Return whether ``target`` equals ``root`` or lies beneath it."""
    normalized_root = normalize_path(root)
    normalized_target = normalize_path(target)
    if not normalized_root:
        return False
    if normalized_target == normalized_root:
        return True
    return _with_separator(normalized_target).startswith(_with_separator(normalized_root))


def matching_workspaces(
    target: str | Path,
    workspaces: Sequence[WorkspaceDescriptor],
) -> list[WorkspaceDescriptor]:
    """Return every workspace covering ``target``, most specific root first.

    Ties on root length keep list order.
    """
    matches = [ws for ws in workspaces if root_contains(ws.root, target)]
    # sorted() is stable, so equal-length roots stay in list order.
    return sorted(matches, key=lambda ws: len(normalize_path(ws.root)), reverse=True)


def resolve_workspace(
    target: str | Path,
    workspaces: Sequence[WorkspaceDescriptor],
    fallback: str,
) -> str:
    """Map ``target`` to the name of the workspace that owns it.

    Nested roots resolve to the longest matching root. When nothing matches,
    or ``workspaces`` is empty, ``fallback`` is returned unchanged.
    """
    matches = matching_workspaces(target, workspaces)
    if not matches:
        return fallback
    return matches[0].name


def find_workspace(name: str, workspaces: Sequence[WorkspaceDescriptor]) -> WorkspaceDescriptor | None:
    for ws in workspaces:
        if ws.name == name:
            return ws
    return None


def choose_initial_workspace(
    workspaces: Sequence[WorkspaceDescriptor],
    *,
    current: str = "",
    preferred: str = "",
    current_folder: str | Path | None = None,
    reported: str = "",
) -> str:
    """Pick the active workspace after a full refresh.

    Order: keep ``current`` if still listed, then ``preferred`` (persisted
    choice), then the workspace owning ``current_folder``, then the client
    ``p4 info`` reported, then the first listed. With no listed workspaces the
    first non-empty of ``current`` and ``reported`` is kept.
    """
    if not workspaces:
        return current or reported
    for candidate in (current, preferred):
        if candidate and find_workspace(candidate, workspaces) is not None:
            return candidate
    if current_folder is not None:
        matches = matching_workspaces(current_folder, workspaces)
        if matches:
            return matches[0].name
    if reported and find_workspace(reported, workspaces) is not None:
        return reported
    return workspaces[0].name


__all__ = [
    "choose_initial_workspace",
    "find_workspace",
    "matching_workspaces",
    "normalize_path",
    "resolve_workspace",
    "root_contains",
]
