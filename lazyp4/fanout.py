"""Bounded fan-out for per-file batches and a background runner for verbs.

``p4`` is invoked once per file in batch verbs. ``fan_out`` keeps that
sequential by default (``max_workers=1``) and can widen to a small thread pool
without changing the order of returned results.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TypeVar

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")

MAX_FAN_OUT_WORKERS = 8


def fan_out(
    items: Sequence[ItemT],
    worker: Callable[[ItemT], ResultT],
    *,
    max_workers: int = 1,
    thread_name_prefix: str = "lazyp4-batch",
) -> list[ResultT]:
    """Apply ``worker`` to every item and return results in input order.

    ``worker`` is expected to report failures in its return value; an
    exception escaping it propagates to the caller.
    """
    if not items:
        return []
    workers = max(1, min(MAX_FAN_OUT_WORKERS, max_workers, len(items)))
    if workers == 1:
        return [worker(item) for item in items]

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=thread_name_prefix) as executor:
        futures = [executor.submit(worker, item) for item in items]
        return [future.result() for future in futures]


class BackgroundRunner:
    """Run blocking verbs off the caller's thread.

    A single worker thread serializes calls so interactive callers never stall
    and ``p4`` sees at most one invocation from this runner at a time.
    """

    def __init__(self, *, thread_name_prefix: str = "lazyp4-verb") -> None:
        self._thread_name_prefix = thread_name_prefix
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None

    def submit(self, fn: Callable[..., ResultT], *args: object, **kwargs: object) -> Future[ResultT]:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1,
                    thread_name_prefix=self._thread_name_prefix,
                )
            executor = self._executor
        return executor.submit(fn, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=wait)


__all__ = ["BackgroundRunner", "MAX_FAN_OUT_WORKERS", "fan_out"]
