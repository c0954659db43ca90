"""Terminal rendering for unified diff text.

Neutralizes control bytes carried in file content, then colorizes with the
Pygments diff lexer.
"""

from __future__ import annotations

import re

from pygments import highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexers import DiffLexer
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

DEFAULT_STYLE = "monokai"

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_FORMATTERS: dict[str, Terminal256Formatter] = {}
_VALID_STYLES: set[str] = set()
_INVALID_STYLES: set[str] = set()


def sanitize_terminal_text(source: str) -> str:
    """Show control bytes in ``p4`` output as ``\\xNN`` so they never reach the terminal raw."""
    return _CONTROL_RE.sub(lambda match: f"\\x{ord(match.group(0)):02x}", source)


def _normalize_style(style: str) -> str:
    """Return ``style`` if Pygments knows it, else the default; lookups are cached."""
    if style in _VALID_STYLES:
        return style
    if style in _INVALID_STYLES:
        return DEFAULT_STYLE
    try:
        get_style_by_name(style)
    except ClassNotFound:
        _INVALID_STYLES.add(style)
        return DEFAULT_STYLE
    _VALID_STYLES.add(style)
    return style


def _formatter_for_style(style: str) -> Terminal256Formatter:
    formatter = _FORMATTERS.get(style)
    if formatter is None:
        formatter = Terminal256Formatter(style=style)
        _FORMATTERS[style] = formatter
    return formatter


def render_diff(text: str, *, style: str = DEFAULT_STYLE, colorize: bool = True) -> str:
    """Return ``text`` ready for a terminal, colorized unless ``colorize`` is off."""
    safe = sanitize_terminal_text(text)
    if not colorize or not safe.strip():
        return safe
    rendered = highlight(safe, DiffLexer(), _formatter_for_style(_normalize_style(style)))
    if not safe.endswith("\n") and rendered.endswith("\n"):
        rendered = rendered[:-1]
    return rendered


__all__ = ["DEFAULT_STYLE", "render_diff", "sanitize_terminal_text"]
