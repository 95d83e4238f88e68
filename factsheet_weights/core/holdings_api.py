"""21Shares holdings endpoint client.

The endpoint backs the weight chart on the issuer's product pages and
returns ``[{ticker_name, constituents: [{name, ticker, weight, market_value}]}]``.
It is advisory: every operation returns None on any failure and callers
move on to the next strategy.
"""

import asyncio
import io
import logging
import re
from datetime import date
from typing import Any
from urllib.parse import quote

from pypdf import PdfReader

from factsheet_weights.core.config import DiscoveryConfig, VendorApiConfig
from factsheet_weights.core.http_client import HttpClient
from factsheet_weights.core.pdf_reader import PDFReader
from factsheet_weights.pydantic_models import ConstituentWeight, VendorHoldings

logger = logging.getLogger(__name__)

_CCY = "(?:CHF|EUR|USD|GBP|SEK)"

# Leading "CHF<TICKER>CHF SE" block: the primary SIX listing
PRIMARY_LISTING = re.compile(rf"{_CCY}([A-Z]{{3,8}}){_CCY}\s*SE")

CANDIDATE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(rf"{_CCY}([A-Z]{{3,8}})\s+(?:SE|NA)\b"),
    re.compile(r"–([A-Z]{3,8})\s+(?:FP|NA|SE)\b"),
    re.compile(r"–([A-Z]{3,8})\s+(?:BW|AV|IM|SS)\b"),
    re.compile(r"–([A-Z]{3,8})\s+GY\b"),
)


def extract_candidate_tickers(block: str) -> list[str]:
    """Ticker candidates near an ISIN in the product catalog, deduplicated in order."""
    seen: set[str] = set()
    candidates: list[str] = []

    def add(ticker: str):
        if ticker in seen or ticker in VendorApiConfig.TICKER_CURRENCIES:
            return
        if not 3 <= len(ticker) <= 8:
            return
        seen.add(ticker)
        candidates.append(ticker)

    primary = PRIMARY_LISTING.search(block)
    if primary:
        add(primary.group(1))
    for pattern in CANDIDATE_PATTERNS:
        for match in pattern.finditer(block):
            add(match.group(1))
    return candidates


def primary_listing_ticker(block: str) -> str | None:
    """Ticker of the leading ``CCY<T>CCY SE`` listing, if present."""
    match = PRIMARY_LISTING.search(block)
    return match.group(1) if match else None


def catalog_text(data: bytes) -> str:
    """Text of the product catalog (PyMuPDF, pypdf as fallback)."""
    try:
        with PDFReader(data) as pdf:
            return pdf.full_text()
    except Exception as exc:
        logger.debug("Catalog PyMuPDF read failed (%s), trying pypdf", exc)
        reader = PdfReader(io.BytesIO(data))
        return "\n".join(page.extract_text() or "" for page in reader.pages)


def isin_block(text: str, isin: str, size: int = DiscoveryConfig.CATALOG_BLOCK_CHARS) -> str | None:
    """``size`` characters starting at the ISIN, or None if absent."""
    idx = text.find(isin)
    if idx < 0:
        return None
    return text[idx:idx + size]


def _first_product(payload: Any) -> dict | None:
    if not isinstance(payload, list) or not payload:
        return None
    product = payload[0]
    if not isinstance(product, dict):
        return None
    constituents = product.get("constituents")
    if not isinstance(constituents, list) or not constituents:
        return None
    return product


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


class VendorHoldingsClient:
    """Client for the issuer holdings endpoint and its product catalog."""

    def __init__(
        self,
        http: HttpClient,
        base_url: str = VendorApiConfig.HOLDINGS_URL,
        catalog_url: str = DiscoveryConfig.PRODUCT_LIST_PDF_URL,
    ):
        self.http = http
        self.base_url = base_url
        self.catalog_url = catalog_url

    def holdings_url(self, ticker: str) -> str:
        return f"{self.base_url}?name={quote(ticker.upper(), safe='')}"

    async def _product(self, ticker: str, timeout: float) -> dict | None:
        payload = await self.http.get_json(self.holdings_url(ticker), timeout=timeout)
        return _first_product(payload)

    async def fetch_constituents(self, ticker: str) -> VendorHoldings | None:
        """Current constituents for ``ticker``, weights rescaled to 100.

        Weights are first expressed as a percentage of the raw sum, then
        re-normalized so the rounded percentages add up to 100.
        """
        product = await self._product(ticker, VendorApiConfig.CONSTITUENTS_TIMEOUT_SECONDS)
        if product is None:
            return None

        rows = [c for c in product["constituents"] if isinstance(c, dict)]
        raw_sum = sum(_number(c.get("weight")) for c in rows)
        if raw_sum <= 0:
            return None

        first_pass: list[tuple[str, float]] = []
        for row in rows:
            name = str(row.get("ticker") or row.get("name") or "").strip()
            pct = round(_number(row.get("weight")) / raw_sum * 100, 2)
            if name and pct > 0:
                first_pass.append((name, pct))
        if not first_pass:
            return None

        factor = 100 / sum(pct for _, pct in first_pass)
        constituents = [
            ConstituentWeight(name=name, weight=min(round(pct * factor, 2), 100.0))
            for name, pct in first_pass
        ]
        # The endpoint carries no date; the data is current as of today
        today = date.today()
        return VendorHoldings(constituents=constituents, as_of_date=f"{today.day}.{today.month}.{today.year}")

    async def fetch_nav(self, ticker: str) -> float | None:
        """NAV per unit in USD: sum of constituent market values."""
        product = await self._product(ticker, VendorApiConfig.NAV_TIMEOUT_SECONDS)
        if product is None:
            return None
        nav = sum(_number(c.get("market_value")) for c in product["constituents"] if isinstance(c, dict))
        return round(nav, 2) if nav > 0 else None

    async def has_constituents(self, ticker: str) -> bool:
        """True if the endpoint knows ``ticker`` and lists constituents."""
        return await self._product(ticker, VendorApiConfig.CONSTITUENTS_TIMEOUT_SECONDS) is not None

    async def catalog_block(self, isin: str) -> str | None:
        """Catalog text around ``isin``, or None if unavailable."""
        data = await self.http.get_bytes(
            self.catalog_url,
            timeout=DiscoveryConfig.CATALOG_TIMEOUT_SECONDS,
            max_bytes=DiscoveryConfig.CATALOG_MAX_BYTES,
        )
        if data is None:
            return None
        try:
            text = await asyncio.to_thread(catalog_text, data)
        except Exception as exc:
            logger.debug("Catalog unreadable: %s: %s", type(exc).__name__, exc)
            return None
        return isin_block(text, isin)

    async def resolve_ticker_from_catalog(self, isin: str) -> str | None:
        """First catalog ticker near ``isin`` that the holdings endpoint knows."""
        block = await self.catalog_block(isin)
        if block is None:
            return None
        for ticker in extract_candidate_tickers(block):
            if await self.has_constituents(ticker):
                logger.debug("Catalog ticker for %s: %s", isin, ticker)
                return ticker
        return None
