"""Process-lifetime identity and workspace cache.

The ``Session`` owns who we are (user, server, active workspace), which
workspaces exist, and whether the server was last seen reachable. Only
``refresh_full``, ``refresh_quiet`` and ``set_active_workspace`` mutate it;
every mutation swaps in a new immutable snapshot under a lock, so readers
never observe a half-applied refresh.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import replace
from enum import Enum
from pathlib import Path

from .errors import ErrorKind, ProcessError
from .executor import HEALTH_TIMEOUT_SECONDS, CommandExecutor
from .parsing import parse_clients, parse_info
from .patterns import indicates_connection_failure
from .types import (
    ConnectionStatus,
    Identity,
    OperationResult,
    SessionInfo,
    WorkspaceDescriptor,
    WorkspaceSelection,
)
from .workspace import choose_initial_workspace, find_workspace, resolve_workspace

logger = logging.getLogger(__name__)

DEFAULT_QUERY_TIMEOUT_SECONDS = 10.0
DEFAULT_POLL_INTERVAL_SECONDS = 30.0


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CHECKING = "checking"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class Session:
    """Owned identity/workspace cache consulted by every operation."""

    def __init__(
        self,
        executor: CommandExecutor,
        *,
        preferred_workspace: str | None = None,
        current_folder: str | Path | None = None,
        health_timeout_seconds: float = HEALTH_TIMEOUT_SECONDS,
        query_timeout_seconds: float = DEFAULT_QUERY_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._executor = executor
        self._preferred_workspace = preferred_workspace or ""
        self._current_folder = current_folder
        self._health_timeout_seconds = health_timeout_seconds
        self._query_timeout_seconds = query_timeout_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._identity = Identity()
        self._workspaces: tuple[WorkspaceDescriptor, ...] = ()
        self._state = SessionState.UNINITIALIZED
        self._generation = 0
        self._last_error: ErrorKind | None = None
        self._last_message = ""
        self._listeners: list[Callable[[bool], None]] = []

    @property
    def identity(self) -> Identity:
        with self._lock:
            return self._identity

    @property
    def workspaces(self) -> tuple[WorkspaceDescriptor, ...]:
        with self._lock:
            return self._workspaces

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def generation(self) -> int:
        """Counter bumped whenever the active workspace changes."""
        with self._lock:
            return self._generation

    @property
    def active_workspace(self) -> str:
        return self.identity.active_workspace

    @property
    def user(self) -> str:
        return self.identity.user

    def workspace_for_path(self, path: str | Path) -> str:
        """Resolve the workspace owning ``path``, falling back to the active one."""
        with self._lock:
            workspaces = self._workspaces
            fallback = self._identity.active_workspace
        return resolve_workspace(path, workspaces, fallback)

    def workspace_root(self, name: str) -> str | None:
        descriptor = find_workspace(name, self.workspaces)
        return descriptor.root if descriptor is not None else None

    def add_connectivity_listener(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        """Register ``listener(connected)`` for transitions; returns an unregister hook."""
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    def _notify(self, previous: bool, current: bool) -> None:
        if previous == current:
            return
        logger.info("p4 server %s", "reachable" if current else "unreachable")
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(current)
            except Exception:
                logger.exception("connectivity listener failed")

    def _begin_check(self) -> Identity:
        with self._lock:
            self._state = SessionState.CHECKING
            return self._identity

    def _commit(
        self,
        update: Callable[[Identity], Identity],
        *,
        workspaces: tuple[WorkspaceDescriptor, ...] | None = None,
        error: ErrorKind | None = None,
        message: str = "",
    ) -> Identity:
        """Apply ``update`` to the current snapshot and swap it in atomically."""
        with self._lock:
            previous = self._identity
            identity = update(previous)
            if identity.active_workspace != previous.active_workspace:
                self._generation += 1
            self._identity = identity
            if workspaces is not None:
                self._workspaces = workspaces
            self._state = SessionState.CONNECTED if identity.connected else SessionState.DISCONNECTED
            self._last_error = error
            self._last_message = message
        self._notify(previous.connected, identity.connected)
        return identity

    def _info(self) -> SessionInfo:
        with self._lock:
            identity = self._identity
            return SessionInfo(
                user=identity.user,
                active_workspace=identity.active_workspace,
                server=identity.server_address,
                connected=identity.connected,
                workspaces=self._workspaces,
                last_checked_at=identity.last_checked_at,
                error=self._last_error,
                message=self._last_message,
            )

    def refresh_full(self) -> SessionInfo:
        """Re-run ``info`` and re-enumerate the user's workspaces.

        Process failures mark the session disconnected but keep the previous
        workspace list; a successful run replaces identity and list together.
        """
        started_from = self._begin_check()
        try:
            output = self._executor.execute(
                ["info"],
                workspace=started_from.active_workspace or None,
                timeout_seconds=self._health_timeout_seconds,
            )
        except ProcessError as exc:
            checked_at = self._clock()
            self._commit(
                lambda current: replace(current, connected=False, last_checked_at=checked_at),
                error=exc.kind,
                message=exc.message,
            )
            return self._info()

        record = parse_info(output.text)
        checked_at = self._clock()
        if not record.connected:
            error = (
                ErrorKind.CONNECTION_FAILED
                if indicates_connection_failure(output.text) or not record.server_address
                else ErrorKind.UNCLASSIFIED_FAILURE
            )
            self._commit(
                lambda current: replace(
                    current,
                    user=record.user or current.user,
                    server_address=record.server_address or current.server_address,
                    connected=False,
                    last_checked_at=checked_at,
                ),
                error=error,
                message=next((line.strip() for line in output.text.splitlines() if line.strip()), ""),
            )
            return self._info()

        fetched = self._fetch_workspaces(record.user)
        workspaces = self.workspaces if fetched is None else fetched

        def connected_identity(current: Identity) -> Identity:
            active = choose_initial_workspace(
                workspaces,
                current=current.active_workspace,
                preferred=self._preferred_workspace,
                current_folder=self._current_folder,
                reported=record.client,
            )
            return Identity(
                user=record.user,
                active_workspace=active,
                server_address=record.server_address,
                connected=True,
                last_checked_at=checked_at,
                server_version=record.server_version,
                client_root=record.client_root,
            )

        self._commit(connected_identity, workspaces=workspaces)
        return self._info()

    def _fetch_workspaces(self, user: str) -> tuple[WorkspaceDescriptor, ...] | None:
        args = ["clients", "-u", user] if user else ["clients"]
        try:
            output = self._executor.execute(args, timeout_seconds=self._query_timeout_seconds)
        except ProcessError as exc:
            logger.warning("could not list workspaces: %s", exc)
            return None
        if indicates_connection_failure(output.text):
            return None
        return tuple(parse_clients(output.text))

    def refresh_quiet(self) -> ConnectionStatus:
        """Run only the lightweight health probe and update connectivity.

        The workspace list is left alone so periodic polling stays cheap.
        """
        self._begin_check()
        error: ErrorKind | None = None
        message = ""
        try:
            output = self._executor.execute(
                ["info", "-s"],
                timeout_seconds=self._health_timeout_seconds,
            )
        except ProcessError as exc:
            connected = False
            error = exc.kind
            message = exc.message
        else:
            connected = parse_info(output.text).connected
            if not connected:
                error = ErrorKind.CONNECTION_FAILED
        checked_at = self._clock()
        self._commit(
            lambda current: replace(current, connected=connected, last_checked_at=checked_at),
            error=error,
            message=message,
        )
        return ConnectionStatus(connected=connected, last_checked_at=checked_at)

    def refresh_status(self) -> ConnectionStatus:
        return self.refresh_quiet()

    def get_info(self) -> SessionInfo:
        """Return the cached snapshot, running a full refresh on first use."""
        if self.state is SessionState.UNINITIALIZED:
            return self.refresh_full()
        return self._info()

    def set_active_workspace(self, name: str) -> OperationResult[WorkspaceSelection]:
        """Switch the active workspace after checking it is one of ours.

        Membership is only enforced once a workspace list has been fetched.
        Callers must re-issue queries that depended on the old workspace.
        """
        name = name.strip()
        if not name:
            return OperationResult.fail(ErrorKind.INVALID_REQUEST, "workspace name is required")
        with self._lock:
            workspaces = self._workspaces
            if workspaces and find_workspace(name, workspaces) is None:
                return OperationResult.fail(
                    ErrorKind.UNKNOWN_WORKSPACE,
                    f"workspace {name!r} is not one of: {', '.join(ws.name for ws in workspaces)}",
                )
            if name != self._identity.active_workspace:
                self._identity = replace(self._identity, active_workspace=name)
                self._generation += 1
        root = self.workspace_root(name)
        logger.info("active workspace set to %s", name)
        return OperationResult.ok(WorkspaceSelection(name=name, root=root), message=f"Switched to workspace: {name}")


class ConnectivityMonitor:
    """Background poller calling ``Session.refresh_quiet`` on an interval."""

    def __init__(self, session: Session, interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS) -> None:
        self._session = session
        self._interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.wait(self._interval_seconds):
            self._session.refresh_quiet()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="lazyp4-connectivity",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout_seconds: float | None = 1.0) -> None:
        self._stop.set()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout_seconds)


__all__ = ["ConnectivityMonitor", "Session", "SessionState"]
