"""
Deckhand — Splinterlands API Base Client

Shared async HTTP plumbing for the card metadata and market clients: one
httpx.AsyncClient per context, retry with exponential backoff on 429, 5xx,
and transport errors.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from src.config import settings

logger = structlog.get_logger(__name__)


class SplinterlandsClient:
    """
    Async base client for the public Splinterlands REST API.

    Usage:
        async with CardsClient() as client:
            cards = await client.find_card_info(["C1-1-ABC"])
    """

    def __init__(
        self,
        base_url: str | None = None,
        max_retries: int = 3,
        base_backoff: float = 1.0,
    ):
        self._base_url = base_url or settings.SPLINTERLANDS_API_URL
        self._max_retries = max_retries
        self._base_backoff = base_backoff
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> SplinterlandsClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET a JSON document with retry logic and exponential backoff.

        4xx responses other than 429 are raised immediately.
        """
        assert self._client is not None, "Client not initialized. Use 'async with'."

        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                response = await self._client.get(path, params=params)

                if response.status_code == 429:
                    wait_time = self._base_backoff * (2 ** attempt)
                    logger.warning(
                        "splinterlands_rate_limited",
                        attempt=attempt + 1,
                        wait_seconds=wait_time,
                    )
                    await asyncio.sleep(wait_time)
                    continue

                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                last_error = e
                logger.error(
                    "splinterlands_http_error",
                    status_code=e.response.status_code,
                    attempt=attempt + 1,
                    path=path,
                )
                if e.response.status_code >= 500:
                    await asyncio.sleep(self._base_backoff * (2 ** attempt))
                    continue
                raise

            except httpx.RequestError as e:
                last_error = e
                logger.error(
                    "splinterlands_request_error",
                    error=str(e),
                    attempt=attempt + 1,
                    path=path,
                )
                await asyncio.sleep(self._base_backoff * (2 ** attempt))
                continue

        raise RuntimeError(
            f"Splinterlands API request failed after {self._max_retries + 1} attempts"
        ) from last_error
