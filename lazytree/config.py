"""Persistent JSON config helpers.

Stores tree-engine tuning (batch insert limit, path separator) and the
hidden-file preference used by filesystem sources.
All access is defensive: malformed or missing config falls back safely.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, replace
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "lazytree"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH


@dataclass(frozen=True)
class TreeSettings:
    """Engine and source settings; every field has a safe default."""

    batch_insert_limit: int = 10_000
    path_separator: str = "/"
    show_hidden: bool = False


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Any filesystem/serialization error is ignored to keep runtime behavior
    non-fatal when config cannot be written.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except Exception:
        pass


def settings_from_mapping(data: dict[str, object]) -> TreeSettings:
    """Build settings from raw config, ignoring invalid fields one by one."""
    settings = TreeSettings()
    limit = data.get("batch_insert_limit")
    # bool is an int subclass; reject it explicitly.
    if isinstance(limit, int) and not isinstance(limit, bool) and limit > 0:
        settings = replace(settings, batch_insert_limit=limit)
    separator = data.get("path_separator")
    if isinstance(separator, str) and separator:
        settings = replace(settings, path_separator=separator)
    show_hidden = data.get("show_hidden")
    if isinstance(show_hidden, bool):
        settings = replace(settings, show_hidden=show_hidden)
    return settings


def load_settings() -> TreeSettings:
    return settings_from_mapping(load_config())


def save_settings(settings: TreeSettings) -> None:
    """Merge ``settings`` into the persisted config, keeping unrelated keys."""
    config = load_config()
    config.update(asdict(settings))
    save_config(config)


__all__ = [
    "CONFIG_PATH",
    "TreeSettings",
    "load_config",
    "load_settings",
    "save_config",
    "save_settings",
    "settings_from_mapping",
]
