"""Public package surface for lazyp4.

Exports ``main`` for programmatic CLI invocation and the objects most
integrations need: the ``Session`` identity cache and the ``Operations``
verb set. Parsers live under ``lazyp4.parsing``.
"""

from __future__ import annotations

from .errors import ErrorKind, ProcessError
from .executor import CommandExecutor
from .operations import Operations
from .session import ConnectivityMonitor, Session
from .types import OperationResult
from .watcher import DirectoryWatcher


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


__all__ = [
    "CommandExecutor",
    "ConnectivityMonitor",
    "DirectoryWatcher",
    "ErrorKind",
    "Operations",
    "OperationResult",
    "ProcessError",
    "Session",
    "main",
]
