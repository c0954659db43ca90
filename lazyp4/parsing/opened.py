"""Parser for ``p4 opened`` output."""

from __future__ import annotations

import re

from ..types import OpenedFileEntry

_OPENED_RE = re.compile(
    r"^(?P<depot>//.+?)#(?P<rev>\d+|none) - (?P<action>[\w/]+) "
    r"(?:default change|change (?P<change>\d+)) "
    r"\((?P<type>[^)]*)\)(?P<rest>.*)$"
)


def parse_opened_line(line: str) -> OpenedFileEntry | None:
    match = _OPENED_RE.match(line.strip())
    if match is None:
        return None
    rev = match.group("rev")
    return OpenedFileEntry(
        depot_file=match.group("depot"),
        revision=int(rev) if rev.isdigit() else 0,
        action=match.group("action"),
        change=match.group("change") or "default",
        file_type=match.group("type"),
        locked="*locked*" in match.group("rest"),
    )


def parse_opened(text: str) -> list[OpenedFileEntry]:
    """Parse one entry per matching line; "not opened" output yields ``[]``."""
    entries: list[OpenedFileEntry] = []
    for line in text.splitlines():
        entry = parse_opened_line(line)
        if entry is not None:
            entries.append(entry)
    return entries


__all__ = ["parse_opened", "parse_opened_line"]
