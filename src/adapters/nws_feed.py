"""Remote alert feed adapter.

Fetches active alerts from the public weather alert API. The adapter never
retries; the coordinator's next fetch tick is the retry.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from core.errors import FeedError

LOGGER = logging.getLogger(__name__)


class NwsAlertFeed:
    """Async client for ``GET /alerts/active?zone=...``."""

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/alerts/active"
        self._headers = {
            "User-Agent": user_agent,
            "Accept": "application/geo+json",
        }
        self._timeout = timeout
        self._client = client or httpx.AsyncClient(follow_redirects=True)

    async def fetch_active(self, zones: str) -> list[Any]:
        """Return the ``features`` array for the given comma-joined zones."""

        try:
            response = await self._client.get(
                self._endpoint,
                params={"zone": zones},
                headers=self._headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FeedError(f"timed out after {self._timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise FeedError(f"HTTP {exc.response.status_code} from {self._endpoint}") from exc
        except httpx.HTTPError as exc:
            raise FeedError(f"{type(exc).__name__}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise FeedError(f"invalid JSON from {self._endpoint}") from exc

        if not isinstance(payload, dict):
            raise FeedError("feed response is not a JSON object")

        features = payload.get("features")
        if not isinstance(features, list):
            LOGGER.warning("Feed response missing 'features' array")
            return []
        LOGGER.debug("Retrieved %s alerts for %s", len(features), zones)
        return features

    async def aclose(self) -> None:
        await self._client.aclose()
