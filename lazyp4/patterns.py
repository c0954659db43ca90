"""Versioned phrase table used to classify ``p4`` text output.

``p4`` reports most outcomes as free text, often with a misleading exit
status. Every recognized phrase lives here, grouped per verb, so following a
new server/client release means editing this table rather than the verbs.

Classification order for a verb:

1. phrases common to every verb that signal failure (connection, login,
   workspace mapping), searched only on status lines so that diff hunks and
   quoted descriptions cannot trip them;
2. the verb's success phrases;
3. the verb's "nothing to do" phrases (successful, empty result);
4. the verb's failure phrases;
5. anything else is ``UNCLASSIFIED_FAILURE``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .errors import ErrorKind

PATTERN_TABLE_VERSION = 4

_FLAGS = re.IGNORECASE | re.MULTILINE


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern, _FLAGS) for pattern in patterns)


def _compile_failures(*pairs: tuple[str, ErrorKind]) -> tuple[tuple[re.Pattern[str], ErrorKind], ...]:
    return tuple((re.compile(pattern, _FLAGS), kind) for pattern, kind in pairs)


@dataclass(frozen=True)
class VerbPatterns:
    """Phrase sets for one verb."""

    success: tuple[re.Pattern[str], ...] = ()
    empty: tuple[re.Pattern[str], ...] = ()
    failures: tuple[tuple[re.Pattern[str], ErrorKind], ...] = ()
    blank_is_empty: bool = False


CONNECTION_FAILURE_PATTERNS = _compile(
    r"connect to server failed",
    r"tcp connect to .* failed",
    r"client error",
)

COMMON_FAILURES = _compile_failures(
    (r"connect to server failed", ErrorKind.CONNECTION_FAILED),
    (r"tcp connect to .* failed", ErrorKind.CONNECTION_FAILED),
    (r"perforce client error", ErrorKind.CONNECTION_FAILED),
    (r"password \(p4passwd\) invalid or unset", ErrorKind.LOGIN_REQUIRED),
    (r"your session has expired", ErrorKind.LOGIN_REQUIRED),
    (r"client '[^']*' unknown", ErrorKind.UNKNOWN_WORKSPACE),
    (r"not on client", ErrorKind.OUTSIDE_WORKSPACE_MAPPING),
    (r"not in client view", ErrorKind.OUTSIDE_WORKSPACE_MAPPING),
    (r"is not under client's root", ErrorKind.OUTSIDE_WORKSPACE_MAPPING),
)

_NOT_OPENED = (r"file\(s\) not opened", r"not opened on this client")

VERB_PATTERNS: dict[str, VerbPatterns] = {
    "edit": VerbPatterns(
        success=_compile(r"opened for edit", r"currently opened for edit"),
        failures=_compile_failures(
            (r"no such file", ErrorKind.NOT_IN_DEPOT),
            (r"exclusive file already opened", ErrorKind.FILE_LOCKED),
            (r"locked by", ErrorKind.FILE_LOCKED),
            (r"deleted at head", ErrorKind.STALE_LOCAL_STATE),
        ),
    ),
    "add": VerbPatterns(
        success=_compile(r"opened for add", r"currently opened for add"),
        failures=_compile_failures(
            (r"can't add existing file", ErrorKind.ALREADY_IN_DEPOT),
            (r"can't add \(already opened", ErrorKind.ALREADY_IN_DEPOT),
        ),
    ),
    "delete": VerbPatterns(
        success=_compile(r"opened for delete", r"currently opened for delete"),
        failures=_compile_failures(
            (r"no such file", ErrorKind.NOT_IN_DEPOT),
            (r"exclusive file already opened", ErrorKind.FILE_LOCKED),
            (r"locked by", ErrorKind.FILE_LOCKED),
        ),
    ),
    "revert": VerbPatterns(
        success=_compile(r", reverted$", r"was add, abandoned", r", deleted$"),
        empty=_compile(*_NOT_OPENED, r"no such file"),
        blank_is_empty=True,
    ),
    "submit": VerbPatterns(
        success=_compile(r"change \d+ (?:renamed change \d+ and )?submitted", r"\bsubmitted\b"),
        failures=_compile_failures(
            (r"no files to submit", ErrorKind.NOTHING_TO_SUBMIT),
            (r"out of date", ErrorKind.STALE_LOCAL_STATE),
            (r"must (?:sync/)?resolve", ErrorKind.STALE_LOCAL_STATE),
            (r"change \d+ created", ErrorKind.STALE_LOCAL_STATE),
        ),
    ),
    "sync": VerbPatterns(
        success=_compile(
            r" - updating ",
            r" - added as ",
            r" - deleted as ",
            r" - refreshing ",
            r" - replacing ",
            r"\b\d+ files?\b",
        ),
        empty=_compile(r"file\(s\) up-to-date", r"no such file", r"no file\(s\) at that"),
        failures=_compile_failures(
            (r"can't clobber writable file", ErrorKind.STALE_LOCAL_STATE),
            (r"must resolve", ErrorKind.STALE_LOCAL_STATE),
        ),
        blank_is_empty=True,
    ),
    "diff": VerbPatterns(
        success=_compile(r"^==== ", r"^@@ ", r"^--- "),
        empty=_compile(*_NOT_OPENED, r"no differing files", r"no such file"),
        blank_is_empty=True,
    ),
    "opened": VerbPatterns(
        success=_compile(r"^//\S.*#\w+ - "),
        empty=_compile(*_NOT_OPENED),
        blank_is_empty=True,
    ),
    "changes": VerbPatterns(
        success=_compile(r"^change \d+ on "),
        blank_is_empty=True,
    ),
    "describe": VerbPatterns(
        success=_compile(r"^change \d+ by "),
        failures=_compile_failures(
            (r"no such changelist", ErrorKind.INVALID_REQUEST),
            (r"invalid changelist number", ErrorKind.INVALID_REQUEST),
        ),
    ),
    "filelog": VerbPatterns(
        success=_compile(r"^\.\.\. #\d+ change "),
        failures=_compile_failures(
            (r"no such file", ErrorKind.NOT_IN_DEPOT),
        ),
    ),
    "fstat": VerbPatterns(
        success=_compile(r"^\.\.\. depotFile ", r"^\.\.\. clientFile "),
        empty=_compile(r"no such file"),
    ),
}


class Verdict(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    FAILURE = "failure"


@dataclass(frozen=True)
class Classification:
    """Outcome of matching raw text against a verb's phrase set."""

    verdict: Verdict
    error: ErrorKind | None = None
    line: str = ""

    @property
    def ok(self) -> bool:
        return self.verdict is not Verdict.FAILURE


def _matching_line(text: str, match: re.Match[str]) -> str:
    start = text.rfind("\n", 0, match.start()) + 1
    end = text.find("\n", match.end())
    if end < 0:
        end = len(text)
    return text[start:end].strip()


_PAYLOAD_PREFIXES = ("+", "-", "@@", ">", "<")


def _status_text(text: str, success: tuple[re.Pattern[str], ...]) -> str:
    """Drop payload lines: indented, diff-prefixed, or recognized as a success record."""
    kept: list[str] = []
    for line in text.splitlines():
        if not line.strip() or line[:1].isspace() or line.startswith(_PAYLOAD_PREFIXES):
            continue
        if _search(success, line) is not None:
            continue
        kept.append(line)
    return "\n".join(kept)


def _search(patterns: tuple[re.Pattern[str], ...], text: str) -> re.Match[str] | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match is not None:
            return match
    return None


def classify(
    verb: str,
    text: str,
    table: dict[str, VerbPatterns] | None = None,
) -> Classification:
    """Classify ``text`` produced by ``verb`` into success, empty, or a typed failure."""
    patterns = (table or VERB_PATTERNS).get(verb, VerbPatterns())

    status_text = _status_text(text, patterns.success)
    for pattern, kind in COMMON_FAILURES:
        match = pattern.search(status_text)
        if match is not None:
            return Classification(Verdict.FAILURE, kind, _matching_line(status_text, match))

    match = _search(patterns.success, text)
    if match is not None:
        return Classification(Verdict.SUCCESS, line=_matching_line(text, match))

    if not text.strip() and patterns.blank_is_empty:
        return Classification(Verdict.EMPTY)

    match = _search(patterns.empty, text)
    if match is not None:
        return Classification(Verdict.EMPTY, line=_matching_line(text, match))

    for pattern, kind in patterns.failures:
        match = pattern.search(text)
        if match is not None:
            return Classification(Verdict.FAILURE, kind, _matching_line(text, match))

    first_line = next((line.strip() for line in text.splitlines() if line.strip()), "")
    return Classification(Verdict.FAILURE, ErrorKind.UNCLASSIFIED_FAILURE, first_line)


def indicates_connection_failure(text: str) -> bool:
    return _search(CONNECTION_FAILURE_PATTERNS, text) is not None


__all__ = [
    "CONNECTION_FAILURE_PATTERNS",
    "COMMON_FAILURES",
    "Classification",
    "PATTERN_TABLE_VERSION",
    "VERB_PATTERNS",
    "Verdict",
    "VerbPatterns",
    "classify",
    "indicates_connection_failure",
]
