"""Tests for the WeightsWorkflow state machine.

All collaborators are mocks (see conftest.py); documents are real PDFs
built with PyMuPDF so text extraction and parsing run for real.
"""

import hashlib
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from factsheet_weights.core.errors import (
    ErrorCode,
    HttpStatusError,
    UrlNotAllowedError,
    UrlNotFoundError,
    WorkflowError,
)
from factsheet_weights.core.fetcher import DocumentFetcher
from factsheet_weights.core.http_client import HttpClient
from factsheet_weights.orchestrator import WeightsWorkflow
from factsheet_weights.phases import WorkflowState
from factsheet_weights.pydantic_models import (
    CacheEntry,
    ConstituentWeight,
    DirectConstituents,
    DocumentSource,
    OcrResult,
    Provider,
    VendorHoldings,
    WeightsResult,
    dump_weights,
)

ISIN = "CH0454664001"
FACTSHEET_URL = "https://cdn.21shares.com/uploads/current-documents/factsheets/all/Factsheet_ABTC.pdf"
VANECK_URL = "https://www.vaneck.com/globalassets/home/ucits/documents/kids/KID_VanEck-Bitcoin-ETN_en-CH.pdf"


def cache_entry(expires_in: timedelta, parse_version: int = 1, weights=None) -> CacheEntry:
    now = datetime.now(timezone.utc)
    return CacheEntry(
        isin=ISIN,
        source_pdf_url=FACTSHEET_URL,
        as_of_date="15 January 2025",
        weights_json=dump_weights(weights or [ConstituentWeight(name="BTC", weight=100.0)]),
        fetched_at=now - timedelta(hours=1),
        expires_at=now + expires_in,
        parse_version=parse_version,
        sha256_pdf="abc",
    )


# =============================================================================
# Validation
# =============================================================================


class TestValidation:
    """ISIN validation happens before any I/O."""

    @pytest.mark.asyncio
    async def test_invalid_isin_returns_error_without_io(self, workflow, memory_store, mock_resolver):
        """Malformed input never reaches the cache, resolver or log."""
        result = await workflow.run("NOT-AN-ISIN")

        assert isinstance(result, WorkflowError)
        assert result.code == ErrorCode.INVALID_IDENTIFIER
        mock_resolver.resolve.assert_not_awaited()
        assert memory_store.log == []
        assert memory_store.cache == {}

    @pytest.mark.asyncio
    async def test_isin_is_normalized(self, workflow, memory_store):
        """Lowercase input with stray whitespace is accepted."""
        memory_store.cache[ISIN] = cache_entry(timedelta(hours=1))

        result = await workflow.run("  ch04 5466 4001 ")

        assert isinstance(result, WeightsResult)
        assert result.isin == ISIN


# =============================================================================
# Cache
# =============================================================================


class TestCache:
    """Cache lookups."""

    @pytest.mark.asyncio
    async def test_fresh_entry_is_hit_without_fetch_or_resolve(
        self, workflow, memory_store, mock_fetcher, mock_resolver, mock_holdings
    ):
        """An unexpired entry is served as HIT; the network is only asked for NAV."""
        memory_store.cache[ISIN] = cache_entry(timedelta(hours=1))
        mock_holdings.fetch_nav.return_value = 31.42

        result = await workflow.run(ISIN)

        assert isinstance(result, WeightsResult)
        assert result.cache_status == "HIT"
        assert result.constituents == [ConstituentWeight(name="BTC", weight=100.0)]
        assert result.as_of_date == "15 January 2025"
        assert result.nav_usd == 31.42
        mock_fetcher.download.assert_not_awaited()
        mock_resolver.resolve.assert_not_awaited()
        mock_holdings.fetch_nav.assert_awaited_once_with("ABTC")
        assert memory_store.log == []

    @pytest.mark.asyncio
    async def test_expired_entry_triggers_resolution(self, workflow, memory_store, mock_resolver):
        """An expired entry is ignored."""
        memory_store.cache[ISIN] = cache_entry(timedelta(seconds=-1))
        mock_resolver.resolve.side_effect = UrlNotFoundError(ISIN)

        result = await workflow.run(ISIN)

        assert result.code == ErrorCode.URL_NOT_FOUND
        mock_resolver.resolve.assert_awaited_once_with(ISIN)

    @pytest.mark.asyncio
    async def test_other_parse_version_is_stale(self, workflow, memory_store, mock_resolver):
        """Entries written by another parser version are re-extracted."""
        memory_store.cache[ISIN] = cache_entry(timedelta(hours=1), parse_version=0)
        mock_resolver.resolve.side_effect = UrlNotFoundError(ISIN)

        await workflow.run(ISIN)

        mock_resolver.resolve.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_negative_entry_is_served_as_hit(self, workflow, memory_store, mock_fetcher):
        """A recent failed download keeps the source from being hit again."""
        entry = cache_entry(timedelta(minutes=10))
        memory_store.cache[ISIN] = entry.model_copy(update={"weights_json": "[]"})

        result = await workflow.run(ISIN)

        assert result.cache_status == "HIT"
        assert result.constituents == []
        mock_fetcher.download.assert_not_awaited()


# =============================================================================
# Resolution
# =============================================================================


class TestResolution:
    """Resolver outcomes."""

    @pytest.mark.asyncio
    async def test_url_not_found_logs_one_error(self, workflow, memory_store, mock_resolver, mock_fetcher):
        mock_resolver.resolve.side_effect = UrlNotFoundError(ISIN)

        result = await workflow.run(ISIN)

        assert result.code == ErrorCode.URL_NOT_FOUND
        assert ISIN in result.message
        assert len(memory_store.log) == 1
        assert memory_store.log[0].status == "error"
        assert memory_store.log[0].source_url is None
        assert memory_store.cache == {}
        mock_fetcher.download.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mapped_url_off_allow_list(self, workflow, memory_store, mock_resolver):
        mock_resolver.resolve.side_effect = UrlNotAllowedError("https://example.com/f.pdf")

        result = await workflow.run(ISIN)

        assert result.code == ErrorCode.URL_NOT_FOUND
        assert "https://example.com/f.pdf" in result.message
        assert len(memory_store.log) == 1
        assert memory_store.log[0].status == "error"
        assert memory_store.log[0].source_url == "https://example.com/f.pdf"
        assert memory_store.cache == {}

    @pytest.mark.asyncio
    async def test_direct_constituents_skip_the_document(
        self, workflow, memory_store, mock_resolver, mock_fetcher, mock_holdings
    ):
        """Aggregator constituents are cached and returned without a download."""
        profile = "https://www.justetf.com/en/etf-profile.html?isin=" + ISIN
        mock_resolver.resolve.return_value = DirectConstituents(
            constituents=[ConstituentWeight(name="ETH", weight=100.0)],
            source_url=profile,
        )
        mock_holdings.fetch_nav.return_value = 12.5

        result = await workflow.run(ISIN)

        assert result.cache_status == "MISS"
        assert result.source_pdf_url == profile
        assert result.as_of_date is None
        assert result.nav_usd == 12.5
        mock_fetcher.download.assert_not_awaited()
        mock_holdings.fetch_nav.assert_awaited_once_with("ETH")

        entry = memory_store.cache[ISIN]
        assert entry.sha256_pdf is None
        assert entry.expires_at - entry.fetched_at == timedelta(hours=24)
        assert [e.status for e in memory_store.log] == ["success"]


# =============================================================================
# Fetch failures
# =============================================================================


class TestFetchFailure:
    """Download failures write a short negative cache entry."""

    @pytest.mark.asyncio
    async def test_exhausted_retries_write_one_negative_entry_and_one_log(
        self, workflow, memory_store, mock_resolver, mock_fetcher
    ):
        mock_resolver.resolve.return_value = DocumentSource(url=FACTSHEET_URL, provider=Provider.TWENTY_ONE_SHARES)
        mock_fetcher.download.side_effect = HttpStatusError(404, "Not Found")

        result = await workflow.run(ISIN)

        assert result.code == ErrorCode.FETCH_FAILED
        assert result.http_status == 404

        assert len(memory_store.cache) == 1
        entry = memory_store.cache[ISIN]
        assert entry.weights_json == "[]"
        assert entry.expires_at - entry.fetched_at == timedelta(minutes=30)

        assert len(memory_store.log) == 1
        log = memory_store.log[0]
        assert log.status == "error"
        assert log.http_status == 404
        assert log.source_url == FACTSHEET_URL

    @pytest.mark.asyncio
    async def test_redirect_off_allow_list_is_logged_not_cached(
        self, workflow, memory_store, mock_resolver, mock_fetcher
    ):
        mock_resolver.resolve.return_value = DocumentSource(url=FACTSHEET_URL, provider=Provider.TWENTY_ONE_SHARES)
        mock_fetcher.download.side_effect = UrlNotAllowedError("https://example.com/f.pdf")

        result = await workflow.run(ISIN)

        assert result.code == ErrorCode.URL_NOT_ALLOWED
        assert memory_store.cache == {}
        assert [e.status for e in memory_store.log] == ["error"]

    @pytest.mark.asyncio
    async def test_real_fetcher_retries_then_fails(self, memory_store, mock_resolver, mock_holdings, mock_ocr, router):
        """Three attempts against a failing server, then one negative entry."""
        router.add(FACTSHEET_URL, httpx.Response(503))
        mock_resolver.resolve.return_value = DocumentSource(url=FACTSHEET_URL, provider=Provider.TWENTY_ONE_SHARES)

        async with HttpClient(transport=router.transport) as http:
            wf = WeightsWorkflow(
                cache=memory_store,
                fetch_log=memory_store,
                http=http,
                fetcher=DocumentFetcher(http, retries=2, retry_delay=0),
                resolver=mock_resolver,
                holdings=mock_holdings,
                ocr=mock_ocr,
            )
            result = await wf.run(ISIN)

        assert result.code == ErrorCode.FETCH_FAILED
        assert result.http_status == 503
        assert router.called(FACTSHEET_URL) == 3
        assert len(memory_store.cache) == 1
        assert len(memory_store.log) == 1

    @pytest.mark.asyncio
    async def test_unparseable_document(self, workflow, memory_store, mock_resolver, mock_fetcher):
        """Bytes that neither PDF library can read end in PARSE_FAILED."""
        mock_resolver.resolve.return_value = DocumentSource(url=FACTSHEET_URL, provider=Provider.TWENTY_ONE_SHARES)
        mock_fetcher.download.return_value = b"this is not a pdf"

        result = await workflow.run(ISIN)

        assert result.code == ErrorCode.PARSE_FAILED
        assert [e.status for e in memory_store.log] == ["error"]
        assert memory_store.cache == {}


# =============================================================================
# Successful extraction
# =============================================================================


class TestSuccess:
    """Document path through to commit."""

    @pytest.mark.asyncio
    async def test_commit_writes_cache_log_and_returns_miss(
        self, workflow, memory_store, mock_resolver, mock_fetcher, mock_holdings, make_pdf
    ):
        pdf = make_pdf("As of 15 January 2025\nAsset Allocation\nBTC 60%\nETH 40%")
        mock_resolver.resolve.return_value = DocumentSource(url=FACTSHEET_URL, provider=Provider.TWENTY_ONE_SHARES)
        mock_fetcher.download.return_value = pdf
        mock_holdings.fetch_nav.return_value = 31.42

        result = await workflow.run(ISIN)

        assert isinstance(result, WeightsResult)
        assert result.cache_status == "MISS"
        assert result.as_of_date == "15 January 2025"
        assert [c.name for c in result.constituents] == ["BTC", "ETH"]
        assert sum(c.weight for c in result.constituents) == pytest.approx(100, abs=0.1)
        assert result.nav_usd == 31.42
        mock_holdings.fetch_nav.assert_awaited_once_with("ABTC")

        entry = memory_store.cache[ISIN]
        assert entry.sha256_pdf == hashlib.sha256(pdf).hexdigest()
        assert entry.expires_at - entry.fetched_at == timedelta(hours=24)
        assert entry.fetched_at == result.fetched_at

        assert len(memory_store.log) == 1
        log = memory_store.log[0]
        assert log.status == "success"
        assert log.message == "2 constituents (21shares)"
        assert log.http_status == 200

    @pytest.mark.asyncio
    async def test_nav_failure_does_not_fail_run(
        self, workflow, mock_resolver, mock_fetcher, mock_holdings, make_pdf
    ):
        mock_resolver.resolve.return_value = DocumentSource(url=FACTSHEET_URL, provider=Provider.TWENTY_ONE_SHARES)
        mock_fetcher.download.return_value = make_pdf("BTC 100%")
        mock_holdings.fetch_nav.return_value = None

        result = await workflow.run(ISIN)

        assert result.cache_status == "MISS"
        assert result.nav_usd is None

    @pytest.mark.asyncio
    async def test_no_nav_lookup_without_factsheet_ticker(
        self, workflow, mock_resolver, mock_fetcher, mock_holdings, make_pdf
    ):
        mock_resolver.resolve.return_value = DocumentSource(url=VANECK_URL, provider=Provider.VANECK)
        mock_fetcher.download.return_value = make_pdf("The note is fully backed by Bitcoin.")

        result = await workflow.run(ISIN)

        assert result.constituents == [ConstituentWeight(name="BTC", weight=100.0)]
        mock_holdings.fetch_nav.assert_not_awaited()


# =============================================================================
# Escalation
# =============================================================================


class TestEscalation:
    """Vendor API and OCR fallbacks."""

    @pytest.mark.asyncio
    async def test_vendor_api_adopted_for_primary_issuer(
        self, workflow, mock_resolver, mock_fetcher, mock_holdings, mock_ocr, make_pdf
    ):
        mock_resolver.resolve.return_value = DocumentSource(url=FACTSHEET_URL, provider=Provider.TWENTY_ONE_SHARES)
        mock_fetcher.download.return_value = make_pdf("Nothing useful here")
        mock_holdings.resolve_ticker_from_catalog.return_value = "ABTC"
        mock_holdings.fetch_constituents.return_value = VendorHoldings(
            constituents=[ConstituentWeight(name="BTC", weight=100.0)],
            as_of_date="16.1.2025",
        )

        result = await workflow.run(ISIN)

        assert result.constituents == [ConstituentWeight(name="BTC", weight=100.0)]
        assert result.as_of_date == "16.1.2025"
        mock_holdings.fetch_constituents.assert_awaited_once_with("ABTC")
        mock_ocr.extract_via_ocr.assert_not_awaited()
        assert workflow.get_stats()["escalations"] == {"vendor_api": 1}

    @pytest.mark.asyncio
    async def test_vendor_api_skipped_for_other_issuers(
        self, workflow, mock_resolver, mock_fetcher, mock_holdings, mock_ocr, make_pdf
    ):
        pdf = make_pdf("Nothing useful here")
        mock_resolver.resolve.return_value = DocumentSource(url=VANECK_URL, provider=Provider.VANECK)
        mock_fetcher.download.return_value = pdf
        mock_ocr.extract_via_ocr.return_value = OcrResult(
            text="BTC 55%\nETH 45%",
            constituents=[ConstituentWeight(name="BTC", weight=55.0), ConstituentWeight(name="ETH", weight=45.0)],
        )

        result = await workflow.run(ISIN)

        assert [c.name for c in result.constituents] == ["BTC", "ETH"]
        mock_holdings.resolve_ticker_from_catalog.assert_not_awaited()
        mock_ocr.extract_via_ocr.assert_awaited_once_with(pdf)

    @pytest.mark.asyncio
    async def test_implausible_ocr_is_rejected(
        self, workflow, memory_store, mock_resolver, mock_fetcher, mock_ocr, make_pdf
    ):
        mock_resolver.resolve.return_value = DocumentSource(url=VANECK_URL, provider=Provider.VANECK)
        mock_fetcher.download.return_value = make_pdf("Nothing useful here")
        mock_ocr.extract_via_ocr.return_value = OcrResult(constituents=[ConstituentWeight(name="BTC", weight=40.0)])

        result = await workflow.run(ISIN)

        assert result.code == ErrorCode.INSUFFICIENT_DATA
        assert "image" in result.message
        assert memory_store.cache == {}
        assert [e.status for e in memory_store.log] == ["error"]

    @pytest.mark.asyncio
    async def test_escalation_errors_are_swallowed(
        self, workflow, mock_resolver, mock_fetcher, mock_holdings, mock_ocr, make_pdf
    ):
        mock_resolver.resolve.return_value = DocumentSource(url=FACTSHEET_URL, provider=Provider.UNKNOWN)
        mock_fetcher.download.return_value = make_pdf("Nothing useful here")
        mock_holdings.resolve_ticker_from_catalog.side_effect = RuntimeError("catalog down")
        mock_ocr.extract_via_ocr.side_effect = RuntimeError("tesseract missing")

        result = await workflow.run(ISIN)

        assert result.code == ErrorCode.INSUFFICIENT_DATA

    @pytest.mark.asyncio
    async def test_sum_outside_band_after_escalation(
        self, workflow, memory_store, mock_resolver, mock_fetcher, make_pdf
    ):
        mock_resolver.resolve.return_value = DocumentSource(url=VANECK_URL, provider=Provider.VANECK)
        mock_fetcher.download.return_value = make_pdf("BTC 40%\nETH 20%")

        result = await workflow.run(ISIN)

        assert result.code == ErrorCode.WEIGHT_SUM_INVALID
        assert "60.00%" in result.message
        assert memory_store.cache == {}
        assert len(memory_store.log) == 1


# =============================================================================
# Robustness
# =============================================================================


class TestRobustness:
    """No exception crosses the workflow boundary."""

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_internal_error(self, memory_store, mock_resolver):
        broken_cache = AsyncMock()
        broken_cache.get.side_effect = RuntimeError("database locked")
        wf = WeightsWorkflow(cache=broken_cache, fetch_log=memory_store, http=AsyncMock(), resolver=mock_resolver)

        result = await wf.run(ISIN)

        assert isinstance(result, WorkflowError)
        assert result.code == ErrorCode.INTERNAL_ERROR
        assert "database locked" in result.message
        assert wf.get_stats()["failures"] == {"INTERNAL_ERROR": 1}

    @pytest.mark.asyncio
    async def test_stats_count_runs_and_hits(self, workflow, memory_store):
        memory_store.cache[ISIN] = cache_entry(timedelta(hours=1))

        await workflow.run(ISIN)
        await workflow.run("bad")

        stats = workflow.get_stats()
        assert stats["runs"] == 2
        assert stats["cache_hits"] == 1
        assert stats["failures"] == {"INVALID_IDENTIFIER": 1}

    def test_terminal_states(self):
        assert WorkflowState.DONE.is_terminal
        assert WorkflowState.FAILED.is_terminal
        assert not WorkflowState.ESCALATE.is_terminal
