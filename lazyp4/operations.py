"""Public ``p4`` verb set composed from session, executor, and parsers.

Every verb returns an ``OperationResult``; nothing raises across this
boundary. Failures are layered: process-level problems keep the executor's
kind (``TOOL_UNAVAILABLE``/``TIMEOUT``), recognized phrases map to their typed
kind through ``patterns``, and anything else is ``UNCLASSIFIED_FAILURE``
carrying the raw text.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Callable, Sequence
from concurrent.futures import Future
from pathlib import Path
from typing import TypeVar

from .errors import ErrorKind, ProcessError
from .executor import DEFAULT_TIMEOUT_SECONDS, CommandExecutor, CommandOutput
from .fanout import BackgroundRunner, fan_out
from .parsing import (
    parse_changes,
    parse_describe,
    parse_diff,
    parse_filelog,
    parse_fstat,
    parse_opened,
    parse_reverted_files,
    parse_submit_output,
    parse_sync_count,
)
from .patterns import VERB_PATTERNS, Classification, VerbPatterns, Verdict, classify
from .session import DEFAULT_QUERY_TIMEOUT_SECONDS, Session
from .types import (
    ChangeDescription,
    Changelist,
    ConnectionStatus,
    DiffResult,
    FileActionOutcome,
    FileHistoryEntry,
    FileStatus,
    OpenedFileEntry,
    OperationResult,
    RevertOutcome,
    SessionInfo,
    SubmitOutcome,
    SyncOutcome,
    WorkspaceSelection,
)

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")
PathLike = str | Path

DEPOT_WILDCARD = "//..."


def _first_line(text: str) -> str:
    return next((line.strip() for line in text.splitlines() if line.strip()), "")


def sync_target(path: PathLike | None) -> str:
    """Return the sync target: ``//...`` for none, ``dir/...`` for directories."""
    if path is None:
        return DEPOT_WILDCARD
    text = str(path)
    if text.startswith("//"):
        return text
    if Path(text).is_dir():
        return text.rstrip("/\\") + "/..."
    return text


class Operations:
    """Orchestrates verbs against the session's identity and workspaces."""

    def __init__(
        self,
        session: Session,
        executor: CommandExecutor,
        *,
        command_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        query_timeout_seconds: float = DEFAULT_QUERY_TIMEOUT_SECONDS,
        max_workers: int = 1,
        patterns: dict[str, VerbPatterns] | None = None,
    ) -> None:
        self.session = session
        self._executor = executor
        self._command_timeout_seconds = command_timeout_seconds
        self._query_timeout_seconds = query_timeout_seconds
        self._max_workers = max_workers
        self._patterns = patterns or VERB_PATTERNS
        self._background = BackgroundRunner()

    # -- plumbing ---------------------------------------------------------

    def _execute(self, args: Sequence[str], *, workspace: str | None, timeout_seconds: float) -> CommandOutput:
        return self._executor.execute(
            args,
            user=self.session.user or None,
            workspace=workspace or None,
            timeout_seconds=timeout_seconds,
        )

    def _run(
        self,
        verb: str,
        args: Sequence[str],
        *,
        workspace: str | None,
        timeout_seconds: float,
    ) -> tuple[CommandOutput | None, Classification | OperationResult]:
        """Execute and classify; on process failure returns ``(None, failure_result)``."""
        try:
            output = self._execute(args, workspace=workspace, timeout_seconds=timeout_seconds)
        except ProcessError as exc:
            return None, OperationResult.fail(exc.kind, exc.message, details={"command": exc.command_line})
        return output, classify(verb, output.text, self._patterns)

    def _failure(self, verb: str, output: CommandOutput, classification: Classification) -> OperationResult:
        kind = classification.error or ErrorKind.UNCLASSIFIED_FAILURE
        if kind is ErrorKind.UNCLASSIFIED_FAILURE:
            logger.warning("unrecognized %s output: %s", verb, _first_line(output.text))
        message = classification.line or _first_line(output.text) or f"{verb} failed"
        return OperationResult.fail(kind, message, raw=output.text, details={"command": output.command_line})

    def _resolve(self, path: PathLike) -> str:
        return self.session.workspace_for_path(path)

    def _batch(
        self,
        paths: Sequence[PathLike],
        action: Callable[[PathLike], OperationResult[ResultT]],
    ) -> list[OperationResult[ResultT]]:
        """Run ``action`` per path; items not yet started when the active
        workspace changes are reported as ``WORKSPACE_CHANGED``."""
        generation = self.session.generation

        def run_one(path: PathLike) -> OperationResult[ResultT]:
            if self.session.generation != generation:
                return OperationResult.fail(
                    ErrorKind.WORKSPACE_CHANGED,
                    f"active workspace changed before {path} was processed",
                    details={"path": str(path)},
                )
            return action(path)

        return fan_out(list(paths), run_one, max_workers=self._max_workers)

    def run_in_background(
        self,
        verb: Callable[..., ResultT],
        *args: object,
        **kwargs: object,
    ) -> Future[ResultT]:
        """Run any verb off the calling thread and return its future."""
        return self._background.submit(verb, *args, **kwargs)

    def close(self) -> None:
        self._background.shutdown(wait=False)

    # -- session ----------------------------------------------------------

    def get_info(self) -> SessionInfo:
        return self.session.get_info()

    def refresh_info(self) -> SessionInfo:
        return self.session.refresh_full()

    def refresh_status(self) -> ConnectionStatus:
        return self.session.refresh_quiet()

    def set_active_workspace(self, name: str) -> OperationResult[WorkspaceSelection]:
        return self.session.set_active_workspace(name)

    # -- single-file verbs ------------------------------------------------

    def _file_action(self, verb: str, path: PathLike) -> OperationResult[FileActionOutcome]:
        workspace = self._resolve(path)
        output, outcome = self._run(
            verb,
            [verb, str(path)],
            workspace=workspace,
            timeout_seconds=self._command_timeout_seconds,
        )
        if output is None:
            return outcome
        if not outcome.ok:
            return self._failure(verb, output, outcome)
        message = outcome.line or _first_line(output.text)
        return OperationResult.ok(
            FileActionOutcome(path=str(path), workspace=workspace, message=message),
            message=message,
            raw=output.text,
        )

    def check_out_file(self, path: PathLike) -> OperationResult[FileActionOutcome]:
        """Open ``path`` for edit in the workspace that owns it."""
        return self._file_action("edit", path)

    def check_out_files(self, paths: Sequence[PathLike]) -> list[OperationResult[FileActionOutcome]]:
        """Open each path for edit; one outcome per input, partial failure allowed."""
        return self._batch(paths, self.check_out_file)

    def add_file(self, path: PathLike) -> OperationResult[FileActionOutcome]:
        return self._file_action("add", path)

    def delete_file(self, path: PathLike) -> OperationResult[FileActionOutcome]:
        return self._file_action("delete", path)

    def file_status(self, path: PathLike) -> OperationResult[FileStatus]:
        """Query fstat for ``path``; paths unknown to the depot are ``untracked``."""
        output, outcome = self._run(
            "fstat",
            ["fstat", str(path)],
            workspace=self._resolve(path),
            timeout_seconds=self._query_timeout_seconds,
        )
        if output is None:
            return outcome
        if not outcome.ok:
            return self._failure("fstat", output, outcome)
        if outcome.verdict is Verdict.EMPTY:
            return OperationResult.ok(FileStatus(), message=outcome.line, raw=output.text)
        return OperationResult.ok(parse_fstat(output.text), raw=output.text)

    def file_statuses(self, paths: Sequence[PathLike]) -> list[OperationResult[FileStatus]]:
        return self._batch(paths, self.file_status)

    # -- revert -----------------------------------------------------------

    def _revert(self, args: list[str], *, workspace: str | None, unchanged_only: bool) -> OperationResult[RevertOutcome]:
        output, outcome = self._run(
            "revert",
            args,
            workspace=workspace,
            timeout_seconds=self._command_timeout_seconds,
        )
        if output is None:
            return outcome
        if not outcome.ok:
            return self._failure("revert", output, outcome)
        files = tuple(parse_reverted_files(output.text))
        label = "unchanged file(s)" if unchanged_only else "file(s)"
        message = f"Reverted {len(files)} {label}"
        return OperationResult.ok(
            RevertOutcome(file_count=len(files), files=files, message=message),
            message=message,
            raw=output.text,
        )

    def revert_file(self, path: PathLike) -> OperationResult[RevertOutcome]:
        return self._revert(["revert", str(path)], workspace=self._resolve(path), unchanged_only=False)

    def revert_files(
        self,
        paths: Sequence[PathLike] | None = None,
        *,
        unchanged_only: bool = False,
        confirmed: bool = False,
        workspace: str | None = None,
    ) -> OperationResult[RevertOutcome]:
        """Revert the given paths, or every open file when ``paths`` is ``None``.

        ``paths=None`` with ``unchanged_only=False`` discards all pending edits
        and is refused unless ``confirmed`` is set. Explicit paths are grouped
        by owning workspace and reverted with one invocation per workspace.
        When a later group fails, ``details["reverted"]`` lists the depot paths
        that earlier groups already reverted.
        """
        flags = ["-a"] if unchanged_only else []
        if paths is None:
            if not unchanged_only and not confirmed:
                return OperationResult.fail(
                    ErrorKind.INVALID_REQUEST,
                    "reverting every open file discards all pending changes; confirmation required",
                )
            target = workspace or self.session.active_workspace
            return self._revert(["revert", *flags, DEPOT_WILDCARD], workspace=target, unchanged_only=unchanged_only)

        if not paths:
            return OperationResult.fail(ErrorKind.INVALID_REQUEST, "no files selected")

        groups: OrderedDict[str, list[str]] = OrderedDict()
        for path in paths:
            owner = workspace or self._resolve(path)
            groups.setdefault(owner, []).append(str(path))

        files: list[str] = []
        raw_parts: list[str] = []
        for owner, group in groups.items():
            result = self._revert(["revert", *flags, *group], workspace=owner, unchanged_only=unchanged_only)
            if not result.success or result.value is None:
                return OperationResult.fail(
                    result.error or ErrorKind.UNCLASSIFIED_FAILURE,
                    result.message,
                    raw="".join(raw_parts) + result.raw,
                    details={**result.details, "reverted": list(files)},
                )
            files.extend(result.value.files)
            raw_parts.append(result.raw)

        label = "unchanged file(s)" if unchanged_only else "file(s)"
        message = f"Reverted {len(files)} {label}"
        return OperationResult.ok(
            RevertOutcome(file_count=len(files), files=tuple(files), message=message),
            message=message,
            raw="".join(raw_parts),
        )

    # -- submit / sync ----------------------------------------------------

    def submit(self, description: str, workspace: str | None = None) -> OperationResult[SubmitOutcome]:
        """Submit every file open in the default changelist.

        ``Change N created`` without ``submitted`` means the changelist exists
        but was not finalized and is reported as ``STALE_LOCAL_STATE``.
        """
        if not description or not description.strip():
            return OperationResult.fail(ErrorKind.INVALID_REQUEST, "a changelist description is required")
        target = workspace or self.session.active_workspace
        try:
            output = self._execute(
                ["submit", "-d", description.strip()],
                workspace=target,
                timeout_seconds=self._command_timeout_seconds,
            )
        except ProcessError as exc:
            return OperationResult.fail(exc.kind, exc.message, details={"command": exc.command_line})

        parsed = parse_submit_output(output.text)
        if parsed.submitted:
            message = (
                f"Submitted as changelist {parsed.changelist}"
                if parsed.changelist is not None
                else "Changes submitted successfully"
            )
            return OperationResult.ok(
                SubmitOutcome(changelist=parsed.changelist, message=message),
                message=message,
                raw=output.text,
            )
        if parsed.created_only:
            return OperationResult.fail(
                ErrorKind.STALE_LOCAL_STATE,
                f"Changelist {parsed.changelist} was created but not submitted; sync and resolve, then submit it",
                raw=output.text,
                details={"changelist": parsed.changelist},
            )
        outcome = classify("submit", output.text, self._patterns)
        if outcome.ok:
            outcome = Classification(Verdict.FAILURE, ErrorKind.UNCLASSIFIED_FAILURE, outcome.line)
        return self._failure("submit", output, outcome)

    def sync(
        self,
        path: PathLike | None = None,
        force: bool = False,
        workspace: str | None = None,
    ) -> OperationResult[SyncOutcome]:
        """Sync ``path`` (a directory syncs recursively); ``0`` files is a success."""
        target = sync_target(path)
        if workspace is None:
            workspace = self.session.active_workspace if path is None else self._resolve(path)
        args = ["sync", *(["-f"] if force else []), target]
        output, outcome = self._run("sync", args, workspace=workspace, timeout_seconds=self._command_timeout_seconds)
        if output is None:
            return outcome
        if not outcome.ok:
            return self._failure("sync", output, outcome)
        count = parse_sync_count(output.text) if outcome.verdict is Verdict.SUCCESS else 0
        message = f"Synced {count} file(s)" if count else "Already up to date"
        return OperationResult.ok(SyncOutcome(file_count=count, message=message), message=message, raw=output.text)

    # -- queries ----------------------------------------------------------

    def diff(self, path: PathLike) -> OperationResult[DiffResult]:
        """Unified diff of the workspace file against its have revision.

        No output, or a "not opened" reply, is a successful empty diff.
        """
        output, outcome = self._run(
            "diff",
            ["diff", "-du", str(path)],
            workspace=self._resolve(path),
            timeout_seconds=self._query_timeout_seconds,
        )
        if output is None:
            return outcome
        if not outcome.ok:
            return self._failure("diff", output, outcome)
        if outcome.verdict is Verdict.EMPTY:
            return OperationResult.ok(DiffResult(text="", has_changes=False), message="No differences", raw=output.text)
        return OperationResult.ok(parse_diff(output.text), raw=output.text)

    def get_opened_files(self, workspace: str | None = None) -> OperationResult[list[OpenedFileEntry]]:
        output, outcome = self._run(
            "opened",
            ["opened"],
            workspace=workspace or self.session.active_workspace,
            timeout_seconds=self._query_timeout_seconds,
        )
        if output is None:
            return outcome
        if not outcome.ok:
            return self._failure("opened", output, outcome)
        return OperationResult.ok(parse_opened(output.text), raw=output.text)

    def get_pending_changes(
        self,
        workspace: str | None = None,
        user: str | None = None,
    ) -> OperationResult[list[Changelist]]:
        target = workspace or self.session.active_workspace
        owner = user or self.session.user
        args = ["changes", "-s", "pending"]
        if owner:
            args.extend(["-u", owner])
        if target:
            args.extend(["-c", target])
        output, outcome = self._run("changes", args, workspace=target, timeout_seconds=self._query_timeout_seconds)
        if output is None:
            return outcome
        if not outcome.ok:
            return self._failure("changes", output, outcome)
        return OperationResult.ok(parse_changes(output.text), raw=output.text)

    def describe_change(self, number: int | str) -> OperationResult[ChangeDescription]:
        try:
            change = int(str(number).strip())
        except ValueError:
            change = 0
        if change <= 0:
            return OperationResult.fail(ErrorKind.INVALID_REQUEST, f"invalid changelist number: {number!r}")
        output, outcome = self._run(
            "describe",
            ["describe", "-s", str(change)],
            workspace=self.session.active_workspace,
            timeout_seconds=self._query_timeout_seconds,
        )
        if output is None:
            return outcome
        if not outcome.ok:
            return self._failure("describe", output, outcome)
        described = parse_describe(output.text)
        if described is None:
            return self._failure(
                "describe",
                output,
                Classification(Verdict.FAILURE, ErrorKind.UNCLASSIFIED_FAILURE, _first_line(output.text)),
            )
        return OperationResult.ok(described, raw=output.text)

    def file_log(self, path: PathLike) -> OperationResult[list[FileHistoryEntry]]:
        output, outcome = self._run(
            "filelog",
            ["filelog", "-l", str(path)],
            workspace=self._resolve(path),
            timeout_seconds=self._query_timeout_seconds,
        )
        if output is None:
            return outcome
        if not outcome.ok:
            return self._failure("filelog", output, outcome)
        return OperationResult.ok(parse_filelog(output.text), raw=output.text)


__all__ = ["DEPOT_WILDCARD", "Operations", "sync_target"]
