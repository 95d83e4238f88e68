"""Document download with size cap, timeout and bounded retries."""

import asyncio
import logging

import httpx

from factsheet_weights.core.allowlist import assert_allowed
from factsheet_weights.core.config import FetchConfig
from factsheet_weights.core.errors import (
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    NetworkError,
    PayloadTooLargeError,
)
from factsheet_weights.core.http_client import HttpClient

logger = logging.getLogger(__name__)


class DocumentFetcher:
    """Downloads factsheet PDFs.

    Each attempt is bounded by ``timeout``; the whole operation is retried
    ``retries`` times with a fixed delay and the last error is raised.
    Allow-list violations are raised immediately and never retried.
    """

    def __init__(
        self,
        http: HttpClient,
        max_bytes: int = FetchConfig.MAX_PDF_SIZE_BYTES,
        timeout: float = FetchConfig.TIMEOUT_SECONDS,
        retries: int = FetchConfig.RETRIES,
        retry_delay: float = FetchConfig.RETRY_DELAY_SECONDS,
    ):
        self.http = http
        self.max_bytes = max_bytes
        self.timeout = timeout
        self.retries = retries
        self.retry_delay = retry_delay

    async def download(self, url: str) -> bytes:
        """Download ``url`` and return its bytes.

        Raises:
            UrlNotAllowedError: URL fails the allow-list (no request issued).
            FetchError: Last failure after all attempts (FetchTimeoutError,
                HttpStatusError, PayloadTooLargeError or NetworkError).
        """
        assert_allowed(url)

        attempts = self.retries + 1
        attempt = 1
        while True:
            try:
                return await self._download_once(url)
            except FetchError as exc:
                logger.debug("Download attempt %d/%d failed for %s: %s", attempt, attempts, url, exc)
                if attempt >= attempts:
                    raise
            await asyncio.sleep(self.retry_delay)
            attempt += 1

    async def _download_once(self, url: str) -> bytes:
        try:
            async with self.http.stream(url, timeout=self.timeout) as response:
                if not response.is_success:
                    raise HttpStatusError(response.status_code, response.reason_phrase)

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise PayloadTooLargeError(int(declared), self.max_bytes)

                chunks: list[bytes] = []
                received = 0
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > self.max_bytes:
                        raise PayloadTooLargeError(received, self.max_bytes)
                    chunks.append(chunk)
                return b"".join(chunks)
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(f"Timed out after {self.timeout:.0f}s: {url}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"{type(exc).__name__}: {exc}") from exc
