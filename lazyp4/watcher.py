"""Recursive directory watching with debounced change notification.

The watcher polls a stat snapshot of the whole tree and diffs consecutive
snapshots into created/deleted/modified events. Bursts are coalesced by a
restartable timer: a consumer sees one notification once the tree has been
quiet for the debounce window. Only one directory is watched at a time.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3
DEFAULT_POLL_SECONDS = 0.25

EVENT_CREATED = "created"
EVENT_DELETED = "deleted"
EVENT_MODIFIED = "modified"

EntrySignature = tuple[bool, int, int]


@dataclass(frozen=True)
class WatchEvent:
    """Payload delivered to the consumer after a quiet debounce window."""

    event_kind: str
    changed_name: str
    watched_root: Path


def _entry_signature(entry: os.DirEntry[str]) -> EntrySignature | None:
    try:
        is_dir = entry.is_dir(follow_symlinks=False)
        st = entry.stat(follow_symlinks=False)
    except OSError:
        return None
    # Directory mtimes change whenever a child does; children report themselves.
    if is_dir:
        return (True, 0, 0)
    return (False, st.st_mtime_ns, st.st_size)


def snapshot_tree(root: Path) -> dict[str, EntrySignature]:
    """Map every entry below ``root`` (posix relative path) to its stat signature.

    Unreadable directories are skipped; symlinked directories are not followed.
    """
    snapshot: dict[str, EntrySignature] = {}
    pending: list[tuple[Path, str]] = [(root, "")]
    while pending:
        directory, prefix = pending.pop()
        try:
            with os.scandir(directory) as entries:
                children = list(entries)
        except OSError:
            continue
        for child in children:
            signature = _entry_signature(child)
            if signature is None:
                continue
            name = f"{prefix}{child.name}"
            snapshot[name] = signature
            if signature[0]:
                pending.append((Path(child.path), f"{name}/"))
    return snapshot


def diff_snapshots(
    before: dict[str, EntrySignature],
    after: dict[str, EntrySignature],
) -> list[tuple[str, str]]:
    """Return ``(event_kind, name)`` pairs in a stable, sorted order."""
    changes: list[tuple[str, str]] = []
    for name in sorted(before.keys() | after.keys()):
        old = before.get(name)
        new = after.get(name)
        if old is None:
            changes.append((EVENT_CREATED, name))
        elif new is None:
            changes.append((EVENT_DELETED, name))
        elif old != new:
            changes.append((EVENT_MODIFIED, name))
    return changes


class Debouncer:
    """Restartable single timer delivering only the latest payload.

    Every ``trigger`` cancels the pending timer and starts a new one; the
    callback runs once ``delay_seconds`` pass without another trigger.
    """

    def __init__(
        self,
        delay_seconds: float,
        callback: Callable[[WatchEvent], None],
        *,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self._delay_seconds = delay_seconds
        self._callback = callback
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._token = 0
        self._payload: WatchEvent | None = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def trigger(self, payload: WatchEvent) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._token += 1
            self._payload = payload
            timer = self._timer_factory(self._delay_seconds, self._fire, args=(self._token,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._token += 1
            self._payload = None

    def _fire(self, token: int) -> None:
        with self._lock:
            # A cancel or newer trigger since this timer started wins.
            if token != self._token or self._payload is None:
                return
            payload = self._payload
            self._payload = None
            self._timer = None
        try:
            self._callback(payload)
        except Exception:
            logger.exception("watch callback failed for %s", payload.watched_root)


class _ActiveWatch:
    def __init__(
        self,
        root: Path,
        callback: Callable[[WatchEvent], None],
        *,
        debounce_seconds: float,
        poll_seconds: float,
        scan: Callable[[Path], dict[str, EntrySignature]],
    ) -> None:
        self.root = root
        self.debouncer = Debouncer(debounce_seconds, callback)
        self._poll_seconds = poll_seconds
        self._scan = scan
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        # First snapshot is taken synchronously so changes made right after
        # watch() returns are not folded into the baseline.
        baseline = self._scan(self.root)
        self._thread = threading.Thread(
            target=self._poll,
            args=(baseline,),
            name="lazyp4-watch",
            daemon=True,
        )
        self._thread.start()

    def _poll(self, snapshot: dict[str, EntrySignature]) -> None:
        while not self._stop.wait(self._poll_seconds):
            current = self._scan(self.root)
            for event_kind, name in diff_snapshots(snapshot, current):
                if self._stop.is_set():
                    return
                self.record(event_kind, name)
            snapshot = current

    def record(self, event_kind: str, changed_name: str) -> None:
        self.debouncer.trigger(WatchEvent(event_kind=event_kind, changed_name=changed_name, watched_root=self.root))

    def close(self) -> None:
        self._stop.set()
        self.debouncer.cancel()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(self._poll_seconds * 4 + 1.0)


class DirectoryWatcher:
    """Watch one directory tree at a time and report debounced changes."""

    def __init__(
        self,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        poll_seconds: float = DEFAULT_POLL_SECONDS,
        scan: Callable[[Path], dict[str, EntrySignature]] = snapshot_tree,
    ) -> None:
        self._debounce_seconds = debounce_seconds
        self._poll_seconds = poll_seconds
        self._scan = scan
        self._lock = threading.Lock()
        self._active: _ActiveWatch | None = None

    @property
    def root(self) -> Path | None:
        with self._lock:
            return self._active.root if self._active is not None else None

    def watch(self, root: str | Path, callback: Callable[[WatchEvent], None]) -> Callable[[], None]:
        """Start watching ``root``, replacing any previous watch.

        Returns a cleanup hook that stops this watch (a no-op once another
        watch has replaced it).
        """
        resolved = Path(root).resolve()
        active = _ActiveWatch(
            resolved,
            callback,
            debounce_seconds=self._debounce_seconds,
            poll_seconds=self._poll_seconds,
            scan=self._scan,
        )
        with self._lock:
            previous = self._active
            self._active = active
        if previous is not None:
            previous.close()
        active.start()
        logger.debug("watching %s", resolved)

        def cleanup() -> None:
            with self._lock:
                if self._active is not active:
                    return
                self._active = None
            active.close()

        return cleanup

    def notify(self, event_kind: str, changed_name: str) -> bool:
        """Feed one raw change into the active watch's debounce window.

        Returns ``False`` when nothing is being watched.
        """
        with self._lock:
            active = self._active
        if active is None:
            return False
        active.record(event_kind, changed_name)
        return True

    def close(self) -> None:
        with self._lock:
            active = self._active
            self._active = None
        if active is not None:
            active.close()


__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "DEFAULT_POLL_SECONDS",
    "Debouncer",
    "DirectoryWatcher",
    "EVENT_CREATED",
    "EVENT_DELETED",
    "EVENT_MODIFIED",
    "WatchEvent",
    "diff_snapshots",
    "snapshot_tree",
]
