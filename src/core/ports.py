"""Ports (interfaces) used by the core coordinator.

Ports define the minimal contracts for the feed, notification, and config
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Union

from core.config import ConfigSnapshot
from core.latest import LatestValue


class FeedPort(Protocol):
    """Remote alert feed. Raises FeedError on any transport or decode failure."""

    async def fetch_active(self, zones: str) -> list[Any]:
        ...


class NotifierPort(Protocol):
    """Notification delivery. Raises on failure; the caller logs and moves on."""

    async def send(self, destination: Union[int, str], text: str) -> None:
        ...


class ConfigProviderPort(Protocol):
    """Source of config snapshots plus a change signal."""

    def current(self) -> Optional[ConfigSnapshot]:
        ...

    @property
    def changes(self) -> LatestValue[ConfigSnapshot]:
        ...
