"""Parser for ``p4 filelog`` revision history."""

from __future__ import annotations

import re
from dataclasses import replace

from ..types import FileHistoryEntry

_REVISION_RE = re.compile(
    r"^(?:\.\.\. )?#(?P<rev>\d+) change (?P<change>\d+) (?P<action>\S+)"
    r" on (?P<date>\S+)(?: (?P<time>\d\d:\d\d:\d\d))?"
    r" by (?P<user>[^@\s]+)(?:@(?P<workspace>\S+))?"
    r"(?: \((?P<type>[^)]*)\))?"
    r"(?: '(?P<description>.*?)'?)?\s*$"
)


def parse_filelog(text: str) -> list[FileHistoryEntry]:
    """Group filelog output into revision entries, newest first as emitted.

    Each ``... #<rev> change <n> ...`` header starts an entry; indented lines
    that follow are accumulated as its description until the next header.
    Integration records (``... ... branch from``) and depot path lines are
    skipped.
    """
    entries: list[FileHistoryEntry] = []
    current: FileHistoryEntry | None = None
    description_lines: list[str] = []

    def flush() -> None:
        if current is None:
            return
        while description_lines and not description_lines[-1]:
            description_lines.pop()
        if description_lines:
            entries.append(replace(current, description="\n".join(description_lines)))
        else:
            entries.append(current)

    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        match = _REVISION_RE.match(stripped)
        if match is not None:
            flush()
            description_lines = []
            current = FileHistoryEntry(
                revision=int(match.group("rev")),
                change=int(match.group("change")),
                action=match.group("action"),
                date=match.group("date"),
                user=match.group("user"),
                workspace=match.group("workspace") or "",
                file_type=match.group("type") or "",
                description=(match.group("description") or "").strip(),
            )
            continue
        if current is None or stripped.startswith("..."):
            continue
        if not stripped:
            if description_lines:
                description_lines.append("")
        elif raw_line[:1].isspace():
            description_lines.append(stripped)
        elif stripped.startswith("//"):
            # Next file's depot path when several files are logged at once.
            flush()
            current = None
            description_lines = []
    flush()
    return entries


__all__ = ["parse_filelog"]
