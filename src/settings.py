"""Configuration for stormwatch.

Static settings (paths, feed endpoint, timers) are read once from the
environment. User-editable settings (alert channel, areas, categories, quiet
hours) live in a single JSON file that is watched and re-parsed at runtime.
"""

from __future__ import annotations

import json
import os
from datetime import time, timedelta
from typing import Any, Optional, Union

from dotenv import load_dotenv

from core.config import ConfigSnapshot, QuietHours
from core.errors import ConfigError

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# The watched config file; override with STORMWATCH_CONFIG for other layouts.
CONFIG_PATH = os.getenv("STORMWATCH_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))

# Public alert feed. The API asks clients to identify themselves.
FEED_BASE_URL = os.getenv("FEED_BASE_URL", "https://api.weather.gov")
USER_AGENT = os.getenv("FEED_USER_AGENT", "stormwatch-alert-client")
FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "30"))

# Cleanup runs on its own clock, independent of the poll interval.
CLEANUP_INTERVAL_SECONDS = float(os.getenv("CLEANUP_INTERVAL_SECONDS", "3600"))

# How often the config file's mtime is checked, and how long to wait for a
# burst of editor writes to settle before re-parsing.
WATCH_INTERVAL_SECONDS = float(os.getenv("WATCH_INTERVAL_SECONDS", "1.0"))
RELOAD_DEBOUNCE_SECONDS = 0.1

# Upper bound for alerts.check_interval (one week).
MAX_CHECK_INTERVAL_SECONDS = 7 * 24 * 3600


def read_config_file(path: str = CONFIG_PATH) -> dict:
    """Load the JSON config file, raising ConfigError on any problem."""

    try:
        with open(path, "r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Unable to read {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return raw


def _parse_time(value: Any, key: str) -> time:
    if not isinstance(value, str):
        raise ConfigError(f"quiet_hours.{key} must be a 'HH:MM' string")
    try:
        parsed = time.fromisoformat(value.strip())
    except ValueError as exc:
        raise ConfigError(f"quiet_hours.{key} is not a valid time: {value!r}") from exc
    # Quiet hours are compared against local wall-clock time.
    if parsed.tzinfo is not None:
        raise ConfigError(f"quiet_hours.{key} must not carry a UTC offset: {value!r}")
    return parsed


def _parse_quiet_hours(raw: Any) -> Optional[QuietHours]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigError("quiet_hours must be an object with 'start' and 'end'")
    return QuietHours(start=_parse_time(raw.get("start"), "start"), end=_parse_time(raw.get("end"), "end"))


def _parse_string_list(raw: Any, key: str) -> list[str]:
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise ConfigError(f"alerts.{key} must be a list of strings")
    return [item.strip() for item in raw if item.strip()]


def _parse_channel(raw: Any) -> Union[int, str]:
    # bool is an int subclass; reject it explicitly.
    if isinstance(raw, bool) or not isinstance(raw, (int, str)):
        raise ConfigError("alerts.channel must be a chat id or a username")
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            raise ConfigError("alerts.channel must not be empty")
        if raw.lstrip("-").isdigit():
            return int(raw)
    return raw


def parse_snapshot(raw: dict, version: int) -> ConfigSnapshot:
    """Build a ConfigSnapshot from the raw config dict.

    Every field is validated before the snapshot is created so a bad edit
    never produces a partial config.
    """

    alerts = raw.get("alerts")
    if not isinstance(alerts, dict):
        raise ConfigError("Missing [alerts] section")

    destination = _parse_channel(alerts.get("channel"))

    interval = alerts.get("check_interval")
    if isinstance(interval, bool) or not isinstance(interval, (int, float)):
        raise ConfigError("alerts.check_interval must be a positive number of seconds")
    # json.load accepts NaN and Infinity; NaN fails every comparison.
    if not 0 < interval <= MAX_CHECK_INTERVAL_SECONDS:
        raise ConfigError(
            f"alerts.check_interval must be between 0 and {MAX_CHECK_INTERVAL_SECONDS} seconds"
        )

    areas = _parse_string_list(alerts.get("areas"), "areas")
    if not areas:
        raise ConfigError("alerts.areas must name at least one area code")

    categories = _parse_string_list(alerts.get("categories", []), "categories")

    return ConfigSnapshot(
        version=version,
        destination=destination,
        poll_interval=timedelta(seconds=interval),
        area_codes=tuple(areas),
        accepted_categories=frozenset(categories),
        quiet_hours=_parse_quiet_hours(raw.get("quiet_hours")),
    )


def load_snapshot(path: str = CONFIG_PATH, version: int = 1) -> ConfigSnapshot:
    return parse_snapshot(read_config_file(path), version)
