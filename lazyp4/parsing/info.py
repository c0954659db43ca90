"""Parsers for ``p4 info`` and ``p4 clients`` output."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..patterns import indicates_connection_failure
from ..types import WorkspaceDescriptor

_WHITESPACE_RE = re.compile(r"\s+")
_CLIENT_LINE_RE = re.compile(r"^Client\s+(?P<name>\S+)\s+(?:.*?\s)?root\s+(?P<rest>.*)$")
_UNKNOWN_CLIENT = "*unknown*"


@dataclass(frozen=True)
class InfoRecord:
    """Fields of interest from ``p4 info``."""

    user: str = ""
    client: str = ""
    server_address: str = ""
    server_version: str = ""
    client_root: str = ""
    client_host: str = ""
    connected: bool = False


def _normalize_key(key: str) -> str:
    return _WHITESPACE_RE.sub(" ", key.strip()).lower()


def parse_key_values(text: str) -> dict[str, str]:
    """Parse a colon-delimited block into lowercase, whitespace-normalized keys.

    Only the first colon splits; values such as ``ssl:host:1666`` stay intact.
    Lines without a colon are ignored and the first occurrence of a key wins.
    """
    fields: dict[str, str] = {}
    for raw_line in text.splitlines():
        if not raw_line.strip() or raw_line[:1].isspace():
            continue
        key, sep, value = raw_line.partition(":")
        if not sep:
            continue
        normalized = _normalize_key(key)
        if not normalized or normalized in fields:
            continue
        fields[normalized] = value.strip()
    return fields


def parse_info(text: str) -> InfoRecord:
    fields = parse_key_values(text)
    user = fields.get("user name", "")
    server_address = fields.get("server address", "")
    client = fields.get("client name", "")
    if client == _UNKNOWN_CLIENT:
        client = ""
    connected = bool(server_address and user) and not indicates_connection_failure(text)
    return InfoRecord(
        user=user,
        client=client,
        server_address=server_address,
        server_version=fields.get("server version", ""),
        client_root=fields.get("client root", ""),
        client_host=fields.get("client host", ""),
        connected=connected,
    )


def parse_client_line(line: str) -> WorkspaceDescriptor | None:
    """Parse ``Client <name> <date> root <path> '<description>'``.

    The root is everything after ``root `` up to the space preceding the
    opening quote of the description.
    """
    match = _CLIENT_LINE_RE.match(line.strip())
    if match is None:
        return None
    rest = match.group("rest")
    quote_at = rest.find(" '")
    if quote_at < 0:
        root = rest.strip()
        description = ""
    else:
        root = rest[:quote_at].strip()
        description = rest[quote_at + 2 :].rstrip()
        if description.endswith("'"):
            description = description[:-1]
        description = description.strip()
    if not root:
        return None
    return WorkspaceDescriptor(name=match.group("name"), root=root, description=description)


def parse_clients(text: str) -> list[WorkspaceDescriptor]:
    workspaces: list[WorkspaceDescriptor] = []
    for line in text.splitlines():
        descriptor = parse_client_line(line)
        if descriptor is not None:
            workspaces.append(descriptor)
    return workspaces


__all__ = ["InfoRecord", "parse_client_line", "parse_clients", "parse_info", "parse_key_values"]
