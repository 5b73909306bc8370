"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the feed's JSON shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from core.errors import MalformedAlertError

ALERT_FIELDS = ("category", "headline", "description")


@dataclass(frozen=True)
class AlertRecord:
    """One active alert as seen by the coordinator.

    Equality and hashing cover category, headline, and description only. The
    feed resends unchanged alerts with a refreshed ``ends`` value, and those
    resends must compare equal to the alert already delivered.
    """

    category: str
    headline: str
    description: str
    end_time: datetime = field(compare=False)

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.category, self.headline, self.description)


def _text(properties: dict, key: str) -> str:
    value = properties.get(key)
    return value if isinstance(value, str) else ""


def parse_end_time(raw: Any) -> datetime:
    """Parse the feed's ``ends`` value into a local, timezone-aware datetime."""

    if not isinstance(raw, str) or not raw.strip():
        raise MalformedAlertError("missing 'ends' timestamp")
    try:
        parsed = datetime.fromisoformat(raw.strip())
    except ValueError as exc:
        raise MalformedAlertError(f"unparseable 'ends' timestamp {raw!r}") from exc
    # Naive values are read as local time.
    try:
        return parsed.astimezone()
    except (OverflowError, OSError) as exc:
        raise MalformedAlertError(f"'ends' timestamp out of range {raw!r}") from exc


def parse_feature(feature: Any, accepted_categories: Iterable[str]) -> Optional[AlertRecord]:
    """Normalize one raw feed feature.

    Returns None for records that are filtered out (category not accepted, or
    no text at all). Raises MalformedAlertError when an otherwise acceptable
    record has a missing or unparseable ``ends`` value.
    """

    properties = feature.get("properties") if isinstance(feature, dict) else None
    if not isinstance(properties, dict):
        properties = {}

    category, headline, description = (_text(properties, key) for key in ALERT_FIELDS)

    if category not in accepted_categories:
        return None
    if not (category or headline or description):
        return None

    try:
        end_time = parse_end_time(properties.get("ends"))
    except MalformedAlertError as exc:
        raise MalformedAlertError(f"{exc} (headline={headline!r})") from exc

    return AlertRecord(
        category=category,
        headline=headline,
        description=description,
        end_time=end_time,
    )


def format_alert(record: AlertRecord) -> str:
    """Return the notification body for a newly seen alert."""

    return f"**New alert**:\nCategory: {record.category}\n{record.headline}\n{record.description}"
