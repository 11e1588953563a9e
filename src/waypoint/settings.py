"""Tracker settings dataclass and loading helpers.

Settings are read-only from the tracker's point of view: they come from an
optional JSON file, ``WAYPOINT_*`` environment variables and runtime
overrides, in that order. Nothing here ever writes settings back to disk.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = [
    "TrackerSettings",
    "load_settings",
    "DEFAULT_HISTORY_LIMIT",
    "DEFAULT_MIN_KEYWORD_LENGTH",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20
DEFAULT_MIN_KEYWORD_LENGTH = 3

_SETTINGS_PATH_ENV = "WAYPOINT_SETTINGS_PATH"
_ENV_OVERRIDES: Mapping[str, str] = {
    "WAYPOINT_TRUNCATION_MARKER": "truncation_marker",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "WAYPOINT_HISTORY_LIMIT": "history_limit",
    "WAYPOINT_MIN_KEYWORD_LENGTH": "min_keyword_length",
    "WAYPOINT_MAX_CONTENT_LENGTH": "max_content_length",
    "WAYPOINT_CACHE_MAX_ENTRIES": "cache_max_entries",
}


@dataclass(slots=True, frozen=True)
class TrackerSettings:
    """Tunables for the chapter tracker.

    Attributes:
        history_limit: Maximum number of chapters kept for ``navigate_back``.
        min_keyword_length: Shortest token kept when tokenizing stage names
            and search queries. A content index filters its own words;
            pass the same value to ``InMemoryContentIndex`` to keep them
            in step.
        max_content_length: Default content budget for the context formatter.
        cache_max_entries: Upper bound on stage → chapter cache entries.
        truncation_marker: Suffix appended to content cut by the formatter.
    """

    history_limit: int = DEFAULT_HISTORY_LIMIT
    min_keyword_length: int = DEFAULT_MIN_KEYWORD_LENGTH
    max_content_length: int = 5000
    cache_max_entries: int = 512
    truncation_marker: str = "..."

    def __post_init__(self) -> None:
        if self.history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        if self.min_keyword_length < 1:
            raise ValueError("min_keyword_length must be at least 1")
        if self.max_content_length < 0:
            raise ValueError("max_content_length cannot be negative")
        if self.cache_max_entries < 1:
            raise ValueError("cache_max_entries must be at least 1")


def load_settings(
    path: Path | str | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> TrackerSettings:
    """Build settings from an optional JSON file, the environment and overrides."""

    settings = TrackerSettings()
    target = path or os.environ.get(_SETTINGS_PATH_ENV)
    if target:
        payload = _read_payload(Path(target).expanduser())
        settings = _apply_overrides(settings, payload, source="file")
    settings = _apply_env_overrides(settings)
    if overrides:
        settings = _apply_overrides(settings, overrides, source="runtime")
    return settings


def _read_payload(path: Path) -> Dict[str, Any]:
    if not path.exists():
        LOGGER.debug("Settings file %s not found; using defaults", path)
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        LOGGER.warning("Settings file %s is not valid JSON: %s", path, exc)
        return {}
    if not isinstance(payload, dict):
        LOGGER.warning("Settings file %s must contain a JSON object", path)
        return {}
    return payload


def _apply_overrides(
    settings: TrackerSettings,
    overrides: Mapping[str, Any],
    *,
    source: str,
) -> TrackerSettings:
    allowed = {field.name for field in fields(TrackerSettings)}
    filtered: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in allowed or value is None:
            continue
        filtered[key] = value
    if not filtered:
        return settings
    LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
    try:
        return replace(settings, **filtered)
    except (TypeError, ValueError) as exc:
        LOGGER.warning("Ignoring invalid %s settings overrides: %s", source, exc)
        return settings


def _apply_env_overrides(settings: TrackerSettings) -> TrackerSettings:
    overrides: Dict[str, Any] = {}
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is not None:
            overrides[field_name] = value
    for env_name, field_name in _INT_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None:
            continue
        try:
            overrides[field_name] = int(value, 10)
        except ValueError:
            LOGGER.warning(
                "Environment override %s=%s is not a valid integer",
                env_name,
                value,
            )
    if overrides:
        settings = _apply_overrides(settings, overrides, source="environment")
    return settings
