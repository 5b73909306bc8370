"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so alerts can be routed via a bot chat.
"""

from __future__ import annotations

from typing import Optional, Union

import httpx

from adapters.notification_formatting import format_notification
from core.errors import NotificationError


class TelegramBotNotifier:
    """Notifier adapter that sends messages via the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._bot_token = bot_token
        self._timeout = timeout
        self._client = client or httpx.AsyncClient()

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    async def send(self, destination: Union[int, str], text: str) -> None:
        """Send the formatted alert via the Bot API."""

        payload = {
            "chat_id": destination,
            "text": format_notification(text, mode="html"),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        try:
            response = await self._client.post(self._endpoint(), json=payload, timeout=self._timeout)
        except httpx.HTTPError as exc:
            raise NotificationError(f"Bot API request failed: {type(exc).__name__}") from exc
        if response.status_code >= 400:
            raise NotificationError(f"Bot API error {response.status_code}: {response.text}")

    async def aclose(self) -> None:
        await self._client.aclose()
