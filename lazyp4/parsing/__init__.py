"""Text-output parsers for ``p4`` verbs.

Every parser is a pure function of the raw text. Unrecognized lines are
skipped and malformed input yields empty or partial records, never an
exception.
"""

from .changes import parse_changes, parse_describe
from .filelog import parse_filelog
from .fstat import parse_fstat, parse_fstat_all, parse_fstat_records
from .info import InfoRecord, parse_client_line, parse_clients, parse_info, parse_key_values
from .opened import parse_opened, parse_opened_line
from .outcomes import (
    SubmitParse,
    parse_diff,
    parse_reverted_files,
    parse_submit_output,
    parse_sync_count,
)

__all__ = [
    "InfoRecord",
    "SubmitParse",
    "parse_changes",
    "parse_client_line",
    "parse_clients",
    "parse_describe",
    "parse_diff",
    "parse_filelog",
    "parse_fstat",
    "parse_fstat_all",
    "parse_fstat_records",
    "parse_info",
    "parse_key_values",
    "parse_opened",
    "parse_opened_line",
    "parse_reverted_files",
    "parse_submit_output",
    "parse_sync_count",
]
