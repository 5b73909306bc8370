"""Latest-value-wins signal used to hand config snapshots to the coordinator."""

from __future__ import annotations

import asyncio
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class LatestValue(Generic[T]):
    """Single-producer, single-consumer slot that only keeps the newest value.

    ``publish`` never blocks or waits for the reader; publishing twice before
    the reader wakes up simply overwrites the first value.
    """

    def __init__(self, initial: Optional[T] = None) -> None:
        self._value = initial
        self._version = 0
        self._changed = asyncio.Event()

    @property
    def version(self) -> int:
        return self._version

    def peek(self) -> Optional[T]:
        return self._value

    def publish(self, value: T) -> None:
        self._value = value
        self._version += 1
        self._changed.set()

    async def next(self) -> T:
        """Wait until a value is published after the last ``next`` call."""

        await self._changed.wait()
        self._changed.clear()
        return self._value  # type: ignore[return-value]
