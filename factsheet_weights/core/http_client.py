"""Async HTTP adapter shared by the fetcher, resolver and holdings client.

A thin wrapper over ``httpx.AsyncClient``:
- Default headers (User-Agent) injected at construction
- Every request, including redirect hops, passes the allow-list
- Per-request timeouts, no whole-run watchdog
- Advisory helpers (``get_text``, ``get_json``, ``get_bytes``, ``head_ok``)
  that return None/False on any failure so discovery tiers fail independently

Strict callers (the document fetcher) use ``stream`` and map httpx
exceptions themselves.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx

from factsheet_weights.core.allowlist import assert_allowed
from factsheet_weights.core.config import USER_AGENT
from factsheet_weights.core.errors import UrlNotAllowedError

logger = logging.getLogger(__name__)


async def _check_request(request: httpx.Request) -> None:
    """Event hook: reject any outbound request (redirects included) off the allow-list."""
    assert_allowed(str(request.url))


class HttpClient:
    """Allow-listed async HTTP client.

    Args:
        user_agent: Value of the User-Agent header.
        transport: Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    def __init__(self, user_agent: str = USER_AGENT, transport: httpx.AsyncBaseTransport | None = None):
        self._client = httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            transport=transport,
            event_hooks={"request": [_check_request]},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # -- Strict operations (raise) --

    async def request(
        self,
        method: str,
        url: str,
        timeout: float,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Issue one request. Raises UrlNotAllowedError or httpx errors."""
        assert_allowed(url)
        return await self._client.request(method, url, headers=headers, timeout=timeout)

    @asynccontextmanager
    async def stream(self, url: str, timeout: float) -> AsyncIterator[httpx.Response]:
        """Streaming GET, so callers can check Content-Length before reading the body."""
        assert_allowed(url)
        async with self._client.stream("GET", url, timeout=timeout) as response:
            yield response

    # -- Advisory operations (never raise) --

    async def get_text(self, url: str, timeout: float) -> str | None:
        """Body text of a 2xx GET, else None."""
        response = await self._advisory("GET", url, timeout)
        return response.text if response is not None else None

    async def get_bytes(self, url: str, timeout: float, max_bytes: int | None = None) -> bytes | None:
        """Body bytes of a 2xx GET, else None. Oversized bodies are dropped."""
        response = await self._advisory("GET", url, timeout)
        if response is None:
            return None
        if max_bytes is not None and len(response.content) > max_bytes:
            logger.debug("Ignoring oversized body from %s (%d bytes)", url, len(response.content))
            return None
        return response.content

    async def get_json(self, url: str, timeout: float) -> Any | None:
        """Decoded JSON of a 2xx GET, else None."""
        response = await self._advisory("GET", url, timeout, headers={"Accept": "application/json"})
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.debug("Invalid JSON from %s: %s", url, exc)
            return None

    async def head_ok(self, url: str, timeout: float) -> bool:
        """True if a HEAD probe answers 2xx."""
        return await self._advisory("HEAD", url, timeout) is not None

    async def _advisory(
        self,
        method: str,
        url: str,
        timeout: float,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response | None:
        try:
            response = await self.request(method, url, timeout, headers=headers)
        except UrlNotAllowedError as exc:
            logger.warning("Blocked request: %s", exc)
            return None
        except httpx.HTTPError as exc:
            logger.debug("%s %s failed: %s: %s", method, url, type(exc).__name__, exc)
            return None
        if not response.is_success:
            logger.debug("%s %s -> HTTP %d", method, url, response.status_code)
            return None
        return response
