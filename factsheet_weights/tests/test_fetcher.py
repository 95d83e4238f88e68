"""Tests for the HTTP adapter and the document fetcher.

Network is replaced with httpx.MockTransport (see Router in conftest.py).
"""

import httpx
import pytest

from factsheet_weights.core.errors import (
    FetchTimeoutError,
    HttpStatusError,
    NetworkError,
    PayloadTooLargeError,
    UrlNotAllowedError,
)
from factsheet_weights.core.fetcher import DocumentFetcher
from factsheet_weights.core.http_client import HttpClient

URL = "https://cdn.21shares.com/uploads/current-documents/factsheets/all/Factsheet_ABTC.pdf"


# =============================================================================
# DocumentFetcher
# =============================================================================


class TestDocumentFetcher:
    """Download with retries and size cap."""

    @pytest.mark.asyncio
    async def test_success(self, router):
        router.add(URL, httpx.Response(200, content=b"%PDF-1.7 data"))

        async with HttpClient(transport=router.transport) as http:
            data = await DocumentFetcher(http, retry_delay=0).download(URL)

        assert data == b"%PDF-1.7 data"
        assert router.called(URL) == 1

    @pytest.mark.asyncio
    async def test_user_agent_header(self, router):
        router.add(URL, httpx.Response(200, content=b"x"))

        async with HttpClient(user_agent="test-agent/1.0", transport=router.transport) as http:
            await DocumentFetcher(http).download(URL)

        assert router.calls[0].headers["user-agent"] == "test-agent/1.0"

    @pytest.mark.asyncio
    async def test_retries_then_raises_last_error(self, router):
        router.add(URL, httpx.Response(500))

        async with HttpClient(transport=router.transport) as http:
            with pytest.raises(HttpStatusError) as exc_info:
                await DocumentFetcher(http, retries=2, retry_delay=0).download(URL)

        assert exc_info.value.http_status == 500
        assert router.called(URL) == 3

    @pytest.mark.asyncio
    async def test_recovers_on_second_attempt(self, router):
        responses = [httpx.Response(503), httpx.Response(200, content=b"ok")]

        def handler(request):
            return responses.pop(0)

        async with HttpClient(transport=httpx.MockTransport(handler)) as http:
            data = await DocumentFetcher(http, retries=2, retry_delay=0).download(URL)

        assert data == b"ok"

    @pytest.mark.asyncio
    async def test_final_attempt_error_is_raised(self):
        calls = []

        def handler(request):
            calls.append(request.url)
            if len(calls) == 1:
                return httpx.Response(503)
            raise httpx.ReadTimeout("slow", request=request)

        async with HttpClient(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(FetchTimeoutError):
                await DocumentFetcher(http, retries=1, retry_delay=0).download(URL)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_declared_size_over_cap(self, router):
        router.add(URL, httpx.Response(200, content=b"x" * 100))

        async with HttpClient(transport=router.transport) as http:
            with pytest.raises(PayloadTooLargeError) as exc_info:
                await DocumentFetcher(http, max_bytes=10, retries=0).download(URL)

        assert exc_info.value.limit == 10

    @pytest.mark.asyncio
    async def test_timeout(self, router):
        router.add(URL, httpx.ReadTimeout("slow"))

        async with HttpClient(transport=router.transport) as http:
            with pytest.raises(FetchTimeoutError):
                await DocumentFetcher(http, retries=1, retry_delay=0).download(URL)

        assert router.called(URL) == 2

    @pytest.mark.asyncio
    async def test_connection_error(self, router):
        router.add(URL, httpx.ConnectError("refused"))

        async with HttpClient(transport=router.transport) as http:
            with pytest.raises(NetworkError):
                await DocumentFetcher(http, retries=0).download(URL)

    @pytest.mark.asyncio
    async def test_disallowed_url_is_never_requested(self, router):
        async with HttpClient(transport=router.transport) as http:
            with pytest.raises(UrlNotAllowedError):
                await DocumentFetcher(http, retry_delay=0).download("https://example.com/f.pdf")

        assert router.calls == []

    @pytest.mark.asyncio
    async def test_redirect_off_allow_list_is_blocked(self, router):
        router.add(URL, httpx.Response(302, headers={"Location": "https://example.com/f.pdf"}))

        async with HttpClient(transport=router.transport) as http:
            with pytest.raises(UrlNotAllowedError):
                await DocumentFetcher(http, retry_delay=0).download(URL)

        assert router.called(URL) == 1
        assert router.called("https://example.com/f.pdf") == 0


# =============================================================================
# HttpClient advisory helpers
# =============================================================================


class TestAdvisoryHelpers:
    """Helpers return None/False instead of raising."""

    @pytest.mark.asyncio
    async def test_get_text(self, router):
        router.add("https://21shares.com/en-ch/ir/factsheets", httpx.Response(200, text="<html>hi</html>"))

        async with HttpClient(transport=router.transport) as http:
            assert await http.get_text("https://21shares.com/en-ch/ir/factsheets", timeout=5) == "<html>hi</html>"
            assert await http.get_text("https://21shares.com/missing", timeout=5) is None

    @pytest.mark.asyncio
    async def test_get_json_invalid(self, router):
        router.add("https://21shares.com/api", httpx.Response(200, text="not json"))

        async with HttpClient(transport=router.transport) as http:
            assert await http.get_json("https://21shares.com/api", timeout=5) is None

    @pytest.mark.asyncio
    async def test_get_bytes_cap(self, router):
        router.add("https://cdn.21shares.com/big.pdf", httpx.Response(200, content=b"x" * 50))

        async with HttpClient(transport=router.transport) as http:
            assert await http.get_bytes("https://cdn.21shares.com/big.pdf", timeout=5, max_bytes=10) is None
            assert await http.get_bytes("https://cdn.21shares.com/big.pdf", timeout=5) == b"x" * 50

    @pytest.mark.asyncio
    async def test_head_ok(self, router):
        router.add(URL, httpx.Response(200), method="HEAD")

        async with HttpClient(transport=router.transport) as http:
            assert await http.head_ok(URL, timeout=5)
            assert not await http.head_ok(URL.replace("ABTC", "NOPE"), timeout=5)

    @pytest.mark.asyncio
    async def test_blocked_url_returns_none(self, router):
        async with HttpClient(transport=router.transport) as http:
            assert await http.get_text("https://example.com/", timeout=5) is None

        assert router.calls == []

    @pytest.mark.asyncio
    async def test_network_error_returns_none(self, router):
        router.add(URL, httpx.ConnectError("down"))

        async with HttpClient(transport=router.transport) as http:
            assert await http.get_bytes(URL, timeout=5) is None
