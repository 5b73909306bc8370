"""Alert coordinator loop.

The coordinator owns the dedup store and the active config snapshot for its
whole lifetime. Three sources feed it:
1) Fetch tick, every ``poll_interval`` of the current snapshot
2) Cleanup tick, on a fixed period
3) Config change, whenever the provider publishes a new snapshot

Exactly one handler runs per loop iteration, so the store and the snapshot
reference are never touched concurrently and need no locking. A slow fetch
delays the other events but cannot interleave with them.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime
from typing import Callable, Optional

from core.config import ConfigSnapshot
from core.dedup import AlertStore
from core.errors import FeedError, MalformedAlertError
from core.latest import LatestValue
from core.models import format_alert, parse_feature
from core.ports import FeedPort, NotifierPort

LOGGER = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class AlertCoordinator:
    """Polls the feed, dedups alerts, and forwards new ones to the notifier."""

    def __init__(
        self,
        feed: FeedPort,
        notifier: NotifierPort,
        config_changes: LatestValue[ConfigSnapshot],
        initial_config: Optional[ConfigSnapshot] = None,
        cleanup_interval: float = 3600.0,
        store: Optional[AlertStore] = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._feed = feed
        self._notifier = notifier
        self._config_changes = config_changes
        self._config = initial_config
        self._cleanup_interval = cleanup_interval
        self._store = store if store is not None else AlertStore()
        self._clock = clock
        self._next_fetch = math.inf
        self._next_cleanup = math.inf
        self._last_fetch: Optional[float] = None

    @property
    def config(self) -> Optional[ConfigSnapshot]:
        return self._config

    @property
    def store(self) -> AlertStore:
        return self._store

    async def run(self) -> None:
        """Service events forever. Cancel the task to stop."""

        loop = asyncio.get_running_loop()
        now = loop.time()
        # The first fetch happens as soon as a snapshot is available.
        self._next_fetch = now if self._config is not None else math.inf
        self._next_cleanup = now + self._cleanup_interval
        if self._config is None:
            LOGGER.warning("No valid config loaded; alerts are paused until one arrives")
        LOGGER.info("Alert coordinator started")

        while True:
            await self._dispatch_next(loop)

    async def _dispatch_next(self, loop: asyncio.AbstractEventLoop) -> None:
        timeout = max(0.0, min(self._next_fetch, self._next_cleanup) - loop.time())
        try:
            snapshot = await asyncio.wait_for(self._config_changes.next(), timeout=timeout)
        except asyncio.TimeoutError:
            pass
        else:
            self.apply_config(snapshot)
            self._reschedule_fetch(loop.time())
            return

        now = loop.time()
        if self._next_fetch <= self._next_cleanup and self._next_fetch <= now:
            self._last_fetch = now
            self._next_fetch = now + self._config.poll_interval.total_seconds()
            try:
                await self.handle_fetch_tick()
            except Exception:
                LOGGER.exception("Error while checking alerts")
        elif self._next_cleanup <= now:
            self._next_cleanup = now + self._cleanup_interval
            try:
                self.handle_cleanup_tick()
            except Exception:
                LOGGER.exception("Error while cleaning up alerts")

    def _reschedule_fetch(self, now: float) -> None:
        if self._config is None:
            return
        if self._last_fetch is None:
            self._next_fetch = now
            return
        # A shorter interval may already be overdue; fetch right away then.
        self._next_fetch = max(now, self._last_fetch + self._config.poll_interval.total_seconds())

    def apply_config(self, snapshot: ConfigSnapshot) -> None:
        """Swap in a new snapshot. The dedup store is left untouched."""

        previous = self._config
        self._config = snapshot
        LOGGER.info(
            "Applied config v%s: interval=%ss, areas=%s, categories=%s, quiet_hours=%s",
            snapshot.version,
            int(snapshot.poll_interval.total_seconds()),
            snapshot.zone_param,
            ",".join(sorted(snapshot.accepted_categories)),
            snapshot.quiet_hours,
        )
        if previous is not None and previous.destination != snapshot.destination:
            LOGGER.info("Alert destination changed to %s", snapshot.destination)

    async def handle_fetch_tick(self) -> int:
        """Run one poll cycle and return the number of notifications sent."""

        # Capture the snapshot once so the whole cycle sees one config.
        config = self._config
        if config is None:
            return 0

        if config.quiet_hours is not None and config.quiet_hours.is_quiet(self._clock().time()):
            LOGGER.debug("Quiet hours active, skipping alert check")
            return 0

        try:
            features = await self._feed.fetch_active(config.zone_param)
        except FeedError as exc:
            LOGGER.error("Failed to fetch alerts for %s: %s", config.zone_param, exc)
            return 0

        sent = 0
        for feature in features:
            try:
                record = parse_feature(feature, config.accepted_categories)
            except MalformedAlertError as exc:
                LOGGER.error("Skipping malformed alert: %s", exc)
                continue
            if record is None:
                continue

            if not self._store.insert(record):
                continue

            try:
                await self._notifier.send(config.destination, format_alert(record))
            except Exception:
                # The store entry stays; a failed send is not retried.
                LOGGER.exception("Failed to deliver alert %r", record.headline)
                continue
            sent += 1
            LOGGER.info("Alert sent (%s): %s", record.category, record.headline)

        return sent

    def handle_cleanup_tick(self) -> int:
        """Drop expired alerts from the store and return how many were removed."""

        removed = self._store.prune(self._clock())
        LOGGER.info("Alert cleanup removed %s expired entries (%s remain)", removed, len(self._store))
        return removed
