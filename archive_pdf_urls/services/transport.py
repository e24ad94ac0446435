"""
Retrying transport for httpx.

Wraps another async transport and replays a request when the outcome looks
transient: a 5xx response or a connection-level ``httpx.TransportError``.
Everything else (2xx, 3xx, 4xx) is handed back on the first attempt.
"""
from __future__ import annotations

import asyncio
import logging
import random

import httpx

logger = logging.getLogger(__name__)


def is_transient(response: httpx.Response) -> bool:
    return response.status_code >= 500


class RetryTransport(httpx.AsyncBaseTransport):
    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = 5,
        backoff_factor: float = 1.0,
        backoff_max: float = 30.0,
    ):
        self._transport = transport or httpx.AsyncHTTPTransport()
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.backoff_max = backoff_max

    def backoff(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (0-based)."""
        delay = min(self.backoff_max, self.backoff_factor * (2 ** attempt))
        return delay + random.uniform(0, delay / 10)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        attempt = 0
        while True:
            try:
                response = await self._transport.handle_async_request(request)
            except httpx.TransportError as exc:
                if attempt >= self.max_retries:
                    raise
                logger.warning(
                    "Retrying %s %s after %s (%d/%d)",
                    request.method, request.url, exc.__class__.__name__, attempt + 1, self.max_retries,
                )
            else:
                if not is_transient(response) or attempt >= self.max_retries:
                    return response
                logger.warning(
                    "Retrying %s %s after status %d (%d/%d)",
                    request.method, request.url, response.status_code, attempt + 1, self.max_retries,
                )
                await response.aclose()

            await asyncio.sleep(self.backoff(attempt))
            attempt += 1

    async def aclose(self) -> None:
        await self._transport.aclose()
