"""Parsers for ``p4 changes`` and ``p4 describe`` output."""

from __future__ import annotations

import re
from dataclasses import replace

from ..types import ChangeDescription, Changelist, DescribedFile

_CHANGE_RE = re.compile(
    r"^Change (?P<number>\d+) on (?P<date>\S+)(?: (?P<time>\d\d:\d\d:\d\d))?"
    r" by (?P<user>[^@\s]+)@(?P<workspace>\S+)"
    r"(?: \*(?P<status>[^*]+)\*)?"
    r"(?: '(?P<description>.*?)'?)?\s*$"
)
_DESCRIBE_HEADER_RE = re.compile(
    r"^Change (?P<number>\d+) by (?P<user>[^@\s]+)@(?P<workspace>\S+)"
    r" on (?P<date>.+?)(?: \*(?P<status>[^*]+)\*)?\s*$"
)
_DESCRIBED_FILE_RE = re.compile(r"^\.\.\. (?P<depot>//.+?)#(?P<rev>\d+) (?P<action>\S+)$")
_FILES_MARKERS = ("Affected files ...", "Shelved files ...")
_SECTION_END_MARKERS = ("Differences ...", "Jobs fixed ...")


def _join_description(lines: list[str]) -> str:
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def parse_changes(text: str) -> list[Changelist]:
    """Parse changelist summaries, newest first as emitted.

    Supports the one-line form (quoted, truncated description) and the ``-l``
    form where the full description follows on tab-indented lines.
    """
    changes: list[Changelist] = []
    current: Changelist | None = None
    long_lines: list[str] = []

    def flush() -> None:
        if current is None:
            return
        long_description = _join_description(long_lines)
        changes.append(replace(current, description=long_description) if long_description else current)

    for raw_line in text.splitlines():
        match = _CHANGE_RE.match(raw_line.rstrip())
        if match is not None:
            flush()
            long_lines = []
            current = Changelist(
                number=int(match.group("number")),
                date=match.group("date"),
                user=match.group("user"),
                workspace=match.group("workspace"),
                description=(match.group("description") or "").strip(),
                status=(match.group("status") or "submitted").strip(),
            )
            continue
        if current is not None and raw_line[:1].isspace():
            long_lines.append(raw_line.strip())
    flush()
    return changes


def parse_describe(text: str) -> ChangeDescription | None:
    """Split describe output into the description block and the file list.

    Returns ``None`` when no change header is present.
    """
    header: re.Match[str] | None = None
    description_lines: list[str] = []
    files: list[DescribedFile] = []
    section = "header"

    for raw_line in text.splitlines():
        line = raw_line.rstrip()
        stripped = line.strip()
        if header is None:
            header = _DESCRIBE_HEADER_RE.match(stripped)
            if header is not None:
                section = "description"
            continue
        if stripped in _FILES_MARKERS:
            section = "files"
            continue
        if stripped in _SECTION_END_MARKERS:
            section = "other"
            continue
        if section == "description":
            description_lines.append(stripped)
        elif section == "files":
            match = _DESCRIBED_FILE_RE.match(stripped)
            if match is not None:
                files.append(
                    DescribedFile(
                        depot_file=match.group("depot"),
                        revision=int(match.group("rev")),
                        action=match.group("action"),
                    )
                )

    if header is None:
        return None
    return ChangeDescription(
        number=int(header.group("number")),
        user=header.group("user"),
        workspace=header.group("workspace"),
        date=header.group("date").strip(),
        status=(header.group("status") or "submitted").strip(),
        description=_join_description(description_lines),
        files=tuple(files),
    )


__all__ = ["parse_changes", "parse_describe"]
