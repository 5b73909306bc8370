"""File-backed config provider.

Watches config.json by polling its modification time and size. Whenever the
file changes and parses cleanly, a new snapshot is published through a
LatestValue signal. A bad edit is logged and ignored; the previous snapshot stays.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

import settings
from core.config import ConfigSnapshot
from core.errors import ConfigError
from core.latest import LatestValue

LOGGER = logging.getLogger(__name__)


class JsonConfigProvider:
    """Config provider backed by a JSON file on disk."""

    def __init__(
        self,
        path: str,
        poll_interval: float = settings.WATCH_INTERVAL_SECONDS,
        debounce: float = settings.RELOAD_DEBOUNCE_SECONDS,
    ) -> None:
        self._path = path
        self._poll_interval = poll_interval
        self._debounce = debounce
        self._version = 0
        self._current: Optional[ConfigSnapshot] = None
        self._changes: LatestValue[ConfigSnapshot] = LatestValue()
        self._file_state: Optional[tuple[int, int]] = None

    @property
    def changes(self) -> LatestValue[ConfigSnapshot]:
        return self._changes

    def current(self) -> Optional[ConfigSnapshot]:
        return self._current

    def load_initial(self) -> Optional[ConfigSnapshot]:
        """Parse the file once at startup without publishing a change."""

        self._file_state = self._stat()
        try:
            self._current = self._parse()
        except ConfigError as exc:
            LOGGER.error("Invalid config, alerts disabled until it is fixed: %s", exc)
            return None
        LOGGER.info("Loaded config v%s from %s", self._current.version, self._path)
        return self._current

    def reload(self) -> bool:
        """Re-parse the file and publish on success. Returns True if published."""

        try:
            snapshot = self._parse()
        except ConfigError as exc:
            LOGGER.warning("Invalid config, keeping old config: %s", exc)
            return False
        self._current = snapshot
        self._changes.publish(snapshot)
        LOGGER.info("Config reloaded successfully (v%s)", snapshot.version)
        return True

    async def watch(self) -> None:
        """Poll for file changes forever. Cancel the task to stop."""

        LOGGER.info("Watching %s for changes", self._path)
        while True:
            await asyncio.sleep(self._poll_interval)
            state = self._stat()
            if state is None or state == self._file_state:
                continue
            # Editors often write in several steps; let them finish.
            await asyncio.sleep(self._debounce)
            self._file_state = self._stat()
            LOGGER.debug("Config file changed: %s", self._path)
            try:
                self.reload()
            except Exception:
                LOGGER.exception("Unexpected error while reloading config, keeping old config")

    def _parse(self) -> ConfigSnapshot:
        snapshot = settings.parse_snapshot(settings.read_config_file(self._path), self._version + 1)
        self._version = snapshot.version
        return snapshot

    def _stat(self) -> Optional[tuple[int, int]]:
        # Size is included because coarse mtimes can hide a second save.
        try:
            stat = os.stat(self._path)
        except OSError:
            return None
        return (stat.st_mtime_ns, stat.st_size)
