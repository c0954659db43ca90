"""Persistent JSON config helpers.

Stores the ``p4`` executable, per-verb timeouts, polling/debounce intervals,
extra environment, and the last selected workspace.
Malformed or missing config falls back to defaults; write failures are ignored.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "lazyp4"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH

MAX_WORKERS_LIMIT = 8


@dataclass(frozen=True)
class Settings:
    """Typed view over the config file with defaults for every key."""

    p4_executable: str = "p4"
    command_timeout_seconds: float = 30.0
    query_timeout_seconds: float = 10.0
    health_timeout_seconds: float = 5.0
    poll_interval_seconds: float = 30.0
    watch_debounce_seconds: float = 0.3
    watch_poll_seconds: float = 0.25
    max_workers: int = 1
    last_workspace: str | None = None
    diff_style: str = "monokai"
    environment: dict[str, str] = field(default_factory=dict)


def load_config() -> dict[str, object]:
    """Read ``config.json`` as a dict; anything else reads as ``{}``."""
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Write ``data`` back as indented JSON, ignoring unwritable locations."""
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except (OSError, TypeError, ValueError):
        pass


def _positive_float(value: object, default: float) -> float:
    """Accept ints/floats greater than zero; booleans and others use ``default``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value <= 0:
        return default
    return float(value)


def _nonempty_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _coerce_workers(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 1
    return max(1, min(MAX_WORKERS_LIMIT, value))


def _coerce_environment(value: object) -> dict[str, str]:
    """Keep only string-to-string pairs with non-empty names."""
    if not isinstance(value, dict):
        return {}
    return {
        key: item
        for key, item in value.items()
        if isinstance(key, str) and key.strip() and isinstance(item, str)
    }


def load_settings() -> Settings:
    """Load settings, falling back to the default for each invalid key."""
    data = load_config()
    defaults = Settings()
    return Settings(
        p4_executable=_nonempty_str(data.get("p4_executable")) or defaults.p4_executable,
        command_timeout_seconds=_positive_float(
            data.get("command_timeout_seconds"), defaults.command_timeout_seconds
        ),
        query_timeout_seconds=_positive_float(data.get("query_timeout_seconds"), defaults.query_timeout_seconds),
        health_timeout_seconds=_positive_float(data.get("health_timeout_seconds"), defaults.health_timeout_seconds),
        poll_interval_seconds=_positive_float(data.get("poll_interval_seconds"), defaults.poll_interval_seconds),
        watch_debounce_seconds=_positive_float(data.get("watch_debounce_seconds"), defaults.watch_debounce_seconds),
        watch_poll_seconds=_positive_float(data.get("watch_poll_seconds"), defaults.watch_poll_seconds),
        max_workers=_coerce_workers(data.get("max_workers")),
        last_workspace=_nonempty_str(data.get("last_workspace")),
        diff_style=_nonempty_str(data.get("diff_style")) or defaults.diff_style,
        environment=_coerce_environment(data.get("environment")),
    )


def load_last_workspace() -> str | None:
    """Load the persisted workspace name, returning ``None`` when unset/invalid."""
    return _nonempty_str(load_config().get("last_workspace"))


def save_last_workspace(name: str) -> None:
    """Persist the selected workspace name."""
    stripped = str(name).strip()
    if not stripped:
        return
    config = load_config()
    config["last_workspace"] = stripped
    save_config(config)


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "Settings",
    "load_config",
    "load_last_workspace",
    "load_settings",
    "save_config",
    "save_last_workspace",
]
