"""Parser for fstat-style ``... key value`` records."""

from __future__ import annotations

import re

from ..types import FileStatus

_FIELD_RE = re.compile(r"^\.\.\.\s+(?:\.\.\.\s+)?(?P<key>\S+)(?:\s+(?P<value>.*))?$")
_OTHER_OPEN_RE = re.compile(r"^otherOpen\d+$")
_OTHER_LOCK_RE = re.compile(r"^otherLock(?:\d+)?$")


def parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_fstat_records(text: str) -> list[dict[str, str]]:
    """Split fstat output into one field mapping per file.

    Records are separated by blank lines; a repeated ``depotFile`` or
    ``clientFile`` key also starts a new record. Non-field lines are skipped.
    """
    records: list[dict[str, str]] = []
    current: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            if current:
                records.append(current)
                current = {}
            continue
        match = _FIELD_RE.match(line)
        if match is None:
            continue
        key = match.group("key")
        value = (match.group("value") or "").strip()
        if key in ("depotFile", "clientFile") and key in current:
            records.append(current)
            current = {}
        current.setdefault(key, value)
    if current:
        records.append(current)
    return records


def file_status_from_fields(fields: dict[str, str]) -> FileStatus:
    other_openers = tuple(
        value for key, value in sorted(fields.items()) if _OTHER_OPEN_RE.match(key) and value
    )
    other_open = "otherOpen" in fields or bool(other_openers)
    return FileStatus(
        depot_path=fields.get("depotFile", ""),
        client_path=fields.get("clientFile", ""),
        action=fields.get("action", ""),
        change=fields.get("change", ""),
        have_rev=parse_int(fields.get("haveRev")),
        head_rev=parse_int(fields.get("headRev")),
        head_action=fields.get("headAction", ""),
        file_type=fields.get("type") or fields.get("headType", ""),
        other_open=other_open,
        other_openers=other_openers,
        our_lock="ourLock" in fields,
        other_lock=any(_OTHER_LOCK_RE.match(key) for key in fields),
    )


def parse_fstat(text: str) -> FileStatus:
    """Return status for the first record, or an untracked status when none parse."""
    records = parse_fstat_records(text)
    if not records:
        return FileStatus()
    return file_status_from_fields(records[0])


def parse_fstat_all(text: str) -> list[FileStatus]:
    return [file_status_from_fields(record) for record in parse_fstat_records(text)]


__all__ = [
    "file_status_from_fields",
    "parse_fstat",
    "parse_fstat_all",
    "parse_fstat_records",
    "parse_int",
]
