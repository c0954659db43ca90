"""Parsers for mutating-verb output: submit, sync, revert, and diff."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..types import DiffResult

_SUBMITTED_RE = re.compile(r"Change (\d+) (?:renamed change (\d+) and )?submitted", re.IGNORECASE)
_SUBMITTED_TOKEN_RE = re.compile(r"\bsubmitted\b", re.IGNORECASE)
_CREATED_RE = re.compile(r"Change (\d+) created", re.IGNORECASE)
_FILE_COUNT_RE = re.compile(r"\b(\d+) files?(?:\(s\))?(?!\w)", re.IGNORECASE)
_SYNC_LINE_RE = re.compile(
    r"^//\S.*#\d+ - (?:updating|added as|deleted as|refreshing|replacing) ",
    re.MULTILINE,
)
_REVERTED_RE = re.compile(
    r"^(?P<depot>//.+?)#(?P<rev>\d+|none) - was (?P<action>[\w/]+), (?:reverted|abandoned|deleted)",
    re.MULTILINE,
)
_DIFF_HEADER_RE = re.compile(r"^==== .* ====$")


@dataclass(frozen=True)
class SubmitParse:
    """What the submit output says happened.

    ``created_only`` means a numbered changelist now exists but was not
    submitted, typically because local revisions are behind head.
    """

    submitted: bool
    changelist: int | None = None
    created_only: bool = False


def parse_submit_output(text: str) -> SubmitParse:
    match = _SUBMITTED_RE.search(text)
    if match is not None:
        final_number = match.group(2) or match.group(1)
        return SubmitParse(submitted=True, changelist=int(final_number))
    if _SUBMITTED_TOKEN_RE.search(text):
        return SubmitParse(submitted=True)
    created = _CREATED_RE.search(text)
    if created is not None:
        return SubmitParse(submitted=False, changelist=int(created.group(1)), created_only=True)
    return SubmitParse(submitted=False)


def parse_sync_count(text: str) -> int:
    """Return the number of files a sync touched.

    Prefers an explicit ``<n> file(s)`` summary, then counts per-file update
    lines, and defaults to ``0`` (already up to date).
    """
    match = _FILE_COUNT_RE.search(text)
    if match is not None:
        return int(match.group(1))
    return len(_SYNC_LINE_RE.findall(text))


def parse_reverted_files(text: str) -> list[str]:
    return [match.group("depot") for match in _REVERTED_RE.finditer(text)]


def parse_diff(text: str) -> DiffResult:
    """Wrap diff output; only hunk or content lines count as changes."""
    has_changes = False
    for line in text.splitlines():
        if _DIFF_HEADER_RE.match(line):
            continue
        if line.startswith(("+++ ", "--- ")):
            continue
        if line.startswith(("@@", "+", "-", "> ", "< ")) or "files differ" in line:
            has_changes = True
            break
    return DiffResult(text=text, has_changes=has_changes)


__all__ = [
    "SubmitParse",
    "parse_diff",
    "parse_reverted_files",
    "parse_submit_output",
    "parse_sync_count",
]
