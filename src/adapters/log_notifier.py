"""Notifier adapter that only writes alerts to the log."""

from __future__ import annotations

import logging
from typing import Union

LOGGER = logging.getLogger(__name__)


class LogNotifier:
    """Used for dry runs and for running without Telegram credentials."""

    def __init__(self) -> None:
        self.sent = 0

    async def send(self, destination: Union[int, str], text: str) -> None:
        self.sent += 1
        LOGGER.info("Alert for %s:\n%s", destination, text)
