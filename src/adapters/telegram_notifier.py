"""Telegram notification adapter using a user session.

Sends the Markdown alert body to any chat the account can write to. The
destination "me" is the account's Saved Messages.
"""

from __future__ import annotations

from typing import Union

from telethon import errors

from adapters.notification_formatting import format_notification
from core.errors import NotificationError


class TelegramChannelNotifier:
    """Notifier adapter that sends messages through a Telethon client."""

    def __init__(self, client) -> None:
        self._client = client

    async def send(self, destination: Union[int, str], text: str) -> None:
        """Send the alert text to ``destination``."""

        message = format_notification(text, mode="markdown")
        try:
            await self._client.send_message(destination, message, parse_mode="md")
        except (errors.RPCError, ValueError) as exc:
            raise NotificationError(f"Telegram send to {destination} failed: {exc}") from exc
