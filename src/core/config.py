"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time, timedelta
from typing import Optional, Union


def is_quiet(start: time, end: time, now: time) -> bool:
    """Return True when ``now`` falls inside the quiet window.

    A window with ``start <= end`` is same-day and half-open ``[start, end)``.
    Otherwise it wraps past midnight (for example 22:00 to 07:00).
    """

    if start <= end:
        return start <= now < end
    return now >= start or now < end


@dataclass(frozen=True)
class QuietHours:
    """Time-of-day window during which no alerts are fetched or sent."""

    start: time
    end: time

    def is_quiet(self, now: time) -> bool:
        return is_quiet(self.start, self.end, now)


@dataclass(frozen=True)
class ConfigSnapshot:
    """Operating parameters in effect for one interval.

    Snapshots are replaced wholesale on reload and never mutated, so a handler
    that captured one keeps a consistent view while a newer one is published.
    """

    version: int
    destination: Union[int, str]
    poll_interval: timedelta
    area_codes: tuple[str, ...]
    accepted_categories: frozenset[str]
    quiet_hours: Optional[QuietHours] = None

    @property
    def zone_param(self) -> str:
        """Area codes joined the way the feed's ``zone`` parameter expects."""

        return ",".join(self.area_codes)
