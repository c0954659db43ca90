"""Command-line front door for lazyp4.

Parses CLI options, builds the executor/session/operations stack from the
persisted settings, and dispatches one verb. Results print as text or JSON;
the exit status is non-zero when any outcome failed.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
import threading
from collections.abc import Sequence
from pathlib import Path

from .config import Settings, load_settings, save_last_workspace
from .diff_render import render_diff
from .executor import CommandExecutor
from .operations import Operations
from .session import ConnectivityMonitor, Session
from .types import (
    ChangeDescription,
    Changelist,
    FileHistoryEntry,
    FileStatus,
    OpenedFileEntry,
    OperationResult,
)
from .watcher import DirectoryWatcher, WatchEvent


def _jsonable(value: object) -> object:
    if isinstance(value, FileStatus):
        data = dataclasses.asdict(value)
        data.update(status=value.status.value, needs_sync=value.needs_sync, in_depot=value.in_depot)
        return data
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {field.name: _jsonable(getattr(value, field.name)) for field in dataclasses.fields(value)}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, Path):
        return str(value)
    return value


def _print_json(value: object) -> None:
    sys.stdout.write(json.dumps(_jsonable(value), indent=2) + "\n")


def _rev(value: int | None) -> str:
    return "-" if value is None else str(value)


def _describe_value(value: object) -> list[str] | None:
    """Render one success payload as lines; ``None`` means use the result message."""
    if isinstance(value, FileStatus):
        sync_note = " (needs sync)" if value.needs_sync else ""
        name = value.depot_path or value.client_path or "?"
        return [f"{name} #{_rev(value.have_rev)}/{_rev(value.head_rev)} {value.status.value}{sync_note}"]
    if isinstance(value, list):
        lines: list[str] = []
        for item in value:
            lines.extend(_describe_value(item) or [])
        return lines
    if isinstance(value, OpenedFileEntry):
        lock = " *locked*" if value.locked else ""
        return [f"{value.depot_file}#{value.revision} - {value.action} {value.change} ({value.file_type}){lock}"]
    if isinstance(value, Changelist):
        return [f"Change {value.number} on {value.date} by {value.user}@{value.workspace} '{value.description}'"]
    if isinstance(value, FileHistoryEntry):
        head = f"#{value.revision} change {value.change} {value.action} on {value.date} by {value.user}"
        return [head, *(f"    {line}" for line in value.description.splitlines())]
    if isinstance(value, ChangeDescription):
        header = f"Change {value.number} by {value.user}@{value.workspace} on {value.date} {value.status}"
        return [
            header,
            "",
            *(f"    {line}" for line in value.description.splitlines()),
            "",
            *(f"{item.depot_file}#{item.revision} {item.action}" for item in value.files),
        ]
    return None


def _emit(results: Sequence[OperationResult], *, as_json: bool) -> int:
    if as_json:
        _print_json(list(results) if len(results) != 1 else results[0])
    else:
        for result in results:
            if result.success:
                lines = _describe_value(result.value)
                if lines is None:
                    lines = [result.message] if result.message else []
                for line in lines:
                    sys.stdout.write(line + "\n")
            else:
                kind = result.error.value if result.error is not None else "error"
                sys.stderr.write(f"error [{kind}]: {result.message}\n")
    return 0 if all(result.success for result in results) else 1


def _build_operations(args: argparse.Namespace, settings: Settings) -> Operations:
    executor = CommandExecutor(
        args.p4 or settings.p4_executable,
        environment=settings.environment,
        default_timeout_seconds=settings.command_timeout_seconds,
    )
    session = Session(
        executor,
        preferred_workspace=args.workspace or settings.last_workspace,
        current_folder=Path.cwd(),
        health_timeout_seconds=settings.health_timeout_seconds,
        query_timeout_seconds=settings.query_timeout_seconds,
    )
    return Operations(
        session,
        executor,
        command_timeout_seconds=settings.command_timeout_seconds,
        query_timeout_seconds=settings.query_timeout_seconds,
        max_workers=settings.max_workers,
    )


def _cmd_info(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    info = ops.get_info()
    if args.json:
        _print_json(info)
        return 0 if info.connected else 1
    sys.stdout.write(f"User: {info.user or '-'}\n")
    sys.stdout.write(f"Server: {info.server or '-'}\n")
    sys.stdout.write(f"Workspace: {info.active_workspace or '-'}\n")
    sys.stdout.write(f"Connected: {'yes' if info.connected else 'no'}\n")
    if info.message:
        sys.stdout.write(f"Last error: {info.message}\n")
    for ws in info.workspaces:
        marker = "*" if ws.name == info.active_workspace else " "
        sys.stdout.write(f" {marker} {ws.name}  {ws.root}\n")
    return 0 if info.connected else 1


def _cmd_workspace(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    if not args.name:
        return _cmd_info(ops, args, settings)
    result = ops.set_active_workspace(args.name)
    if result.success:
        save_last_workspace(args.name)
    return _emit([result], as_json=args.json)


def _cmd_status(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    return _emit(ops.file_statuses(args.paths), as_json=args.json)


def _cmd_edit(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    return _emit(ops.check_out_files(args.paths), as_json=args.json)


def _cmd_add(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    return _emit([ops.add_file(path) for path in args.paths], as_json=args.json)


def _cmd_delete(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    return _emit([ops.delete_file(path) for path in args.paths], as_json=args.json)


def _cmd_revert(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    paths = args.paths or None
    if paths is None and not args.unchanged and not args.all:
        sys.stderr.write("error: pass paths, --unchanged, or --all\n")
        return 2
    result = ops.revert_files(paths, unchanged_only=args.unchanged, confirmed=args.yes)
    return _emit([result], as_json=args.json)


def _cmd_submit(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    return _emit([ops.submit(args.description, args.workspace)], as_json=args.json)


def _cmd_sync(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    return _emit([ops.sync(args.path, force=args.force, workspace=args.workspace)], as_json=args.json)


def _cmd_diff(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    result = ops.diff(args.path)
    if args.json or not result.success or result.value is None:
        return _emit([result], as_json=args.json)
    if not result.value.has_changes:
        sys.stdout.write("No differences\n")
        return 0
    colorize = not args.no_color and sys.stdout.isatty()
    sys.stdout.write(render_diff(result.value.text, style=settings.diff_style, colorize=colorize))
    if not result.value.text.endswith("\n"):
        sys.stdout.write("\n")
    return 0


def _cmd_opened(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    return _emit([ops.get_opened_files(args.workspace)], as_json=args.json)


def _cmd_changes(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    return _emit([ops.get_pending_changes(args.workspace, args.user)], as_json=args.json)


def _cmd_describe(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    return _emit([ops.describe_change(args.change)], as_json=args.json)


def _cmd_filelog(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    ops.get_info()
    return _emit([ops.file_log(args.path)], as_json=args.json)


def run_watch(
    ops: Operations,
    root: Path,
    settings: Settings,
    *,
    as_json: bool = False,
    monitor_connectivity: bool = False,
    stop: threading.Event | None = None,
) -> None:
    """Print debounced change events for ``root`` until ``stop`` is set or Ctrl-C."""
    stop = stop or threading.Event()
    watcher = DirectoryWatcher(
        debounce_seconds=settings.watch_debounce_seconds,
        poll_seconds=settings.watch_poll_seconds,
    )
    monitor: ConnectivityMonitor | None = None
    remove_listener = None

    def on_change(event: WatchEvent) -> None:
        if as_json:
            _print_json(event)
        else:
            sys.stdout.write(f"{event.event_kind} {event.changed_name} ({event.watched_root})\n")
        sys.stdout.flush()

    def on_connectivity(connected: bool) -> None:
        sys.stdout.write(f"server {'reachable' if connected else 'unreachable'}\n")
        sys.stdout.flush()

    watcher.watch(root, on_change)
    if monitor_connectivity:
        remove_listener = ops.session.add_connectivity_listener(on_connectivity)
        monitor = ConnectivityMonitor(ops.session, settings.poll_interval_seconds)
        monitor.start()
    try:
        stop.wait()
    except KeyboardInterrupt:
        pass
    finally:
        if monitor is not None:
            monitor.stop()
        if remove_listener is not None:
            remove_listener()
        watcher.close()


def _cmd_watch(ops: Operations, args: argparse.Namespace, settings: Settings) -> int:
    root = Path(args.directory)
    if not root.is_dir():
        raise SystemExit(f"Directory not found: {root}")
    run_watch(ops, root, settings, as_json=args.json, monitor_connectivity=args.connectivity)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazyp4",
        description="Workspace-aware Perforce operations with typed results.",
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every p4 invocation.")
    parser.add_argument("--p4", default=None, help="p4 executable (default from config, else 'p4').")
    parser.add_argument(
        "-c",
        "--workspace",
        default=None,
        help="Workspace to use instead of the configured/auto-selected one.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("info", help="Show user, server, connectivity, and workspaces.").set_defaults(handler=_cmd_info)

    ws = sub.add_parser("workspace", help="List workspaces or select the active one.")
    ws.add_argument("name", nargs="?", default=None)
    ws.set_defaults(handler=_cmd_workspace)

    for name, handler, help_text in (
        ("status", _cmd_status, "Show per-file depot status."),
        ("edit", _cmd_edit, "Check out files for edit."),
        ("add", _cmd_add, "Open new files for add."),
        ("delete", _cmd_delete, "Open files for delete."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("paths", nargs="+")
        cmd.set_defaults(handler=handler)

    revert = sub.add_parser("revert", help="Revert opened files.")
    revert.add_argument("paths", nargs="*")
    revert.add_argument("-a", "--unchanged", action="store_true", help="Only revert unchanged files.")
    revert.add_argument("--all", action="store_true", help="Revert every opened file.")
    revert.add_argument("-y", "--yes", action="store_true", help="Confirm reverting every opened file.")
    revert.set_defaults(handler=_cmd_revert)

    submit = sub.add_parser("submit", help="Submit the default changelist.")
    submit.add_argument("-d", "--description", required=True)
    submit.set_defaults(handler=_cmd_submit)

    sync = sub.add_parser("sync", help="Get latest revisions.")
    sync.add_argument("path", nargs="?", default=None)
    sync.add_argument("-f", "--force", action="store_true")
    sync.set_defaults(handler=_cmd_sync)

    diff = sub.add_parser("diff", help="Show the pending diff of an opened file.")
    diff.add_argument("path")
    diff.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    diff.set_defaults(handler=_cmd_diff)

    sub.add_parser("opened", help="List opened files.").set_defaults(handler=_cmd_opened)

    changes = sub.add_parser("changes", help="List pending changelists.")
    changes.add_argument("-u", "--user", default=None)
    changes.set_defaults(handler=_cmd_changes)

    describe = sub.add_parser("describe", help="Describe a changelist.")
    describe.add_argument("change")
    describe.set_defaults(handler=_cmd_describe)

    filelog = sub.add_parser("filelog", help="Show revision history of a file.")
    filelog.add_argument("path")
    filelog.set_defaults(handler=_cmd_filelog)

    watch = sub.add_parser("watch", help="Print debounced change notifications for a directory.")
    watch.add_argument("directory")
    watch.add_argument(
        "--connectivity",
        action="store_true",
        help="Also poll the server and report reachability changes.",
    )
    watch.set_defaults(handler=_cmd_watch)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse CLI arguments and run one verb; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    settings = load_settings()
    ops = _build_operations(args, settings)
    try:
        return args.handler(ops, args, settings)
    finally:
        ops.close()


if __name__ == "__main__":
    raise SystemExit(main())
