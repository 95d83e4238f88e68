"""Factsheet URL resolution.

Precedence, first success wins:
1. Mapping with a direct factsheet URL
2. Mapping with a product page -> provider-specific page scraper
3. justETF profile page -> issuer PDF links, title-derived URL templates,
   or single-asset constituents straight from the page
4. 21Shares product catalog -> ticker -> conventional factsheet URL
5. 21Shares factsheet listing page

Every discovery call is advisory (None on failure) so each tier fails on
its own without aborting the chain.
"""

import logging
import re
from collections.abc import Awaitable, Callable
from urllib.parse import quote

from factsheet_weights.core.allowlist import assert_allowed, is_allowed
from factsheet_weights.core.config import DiscoveryConfig
from factsheet_weights.core.errors import UrlNotFoundError
from factsheet_weights.core.holdings_api import (
    VendorHoldingsClient,
    extract_candidate_tickers,
    primary_listing_ticker,
)
from factsheet_weights.core.http_client import HttpClient
from factsheet_weights.core.mapping import MappingRepository
from factsheet_weights.pydantic_models import (
    ConstituentWeight,
    DirectConstituents,
    DocumentSource,
    MappingEntry,
    Provider,
    ResolvedSource,
)

logger = logging.getLogger(__name__)

PageDiscovery = Callable[[str], Awaitable[str | None]]


# =============================================================================
# Page patterns
# =============================================================================

TWENTY_ONE_SHARES_FACTSHEET_LINK = re.compile(
    r'href="(https://cdn\.21shares\.com[^"]*Factsheet[^"]*\.pdf)"', re.IGNORECASE
)

VANECK_LINKS = (
    re.compile(r'href="(https://[a-z0-9.-]*vaneck\.com[^"]*(?:factsheet|fact[-_]sheet|Factsheet)[^"]*\.pdf)"', re.IGNORECASE),
    re.compile(r'href="(https://[a-z0-9.-]*vaneck\.com[^"]*\.pdf)"', re.IGNORECASE),
)

BITWISE_LINKS = (
    re.compile(r'href="(https://[a-z0-9.-]*etc-group\.com[^"]*(?:fact[_-]sheet|factsheet)[^"]*\.pdf)"', re.IGNORECASE),
    re.compile(r'href="(https://[a-z0-9.-]*bitwiseinvestments\.eu[^"]*\.pdf)"', re.IGNORECASE),
)

# English factsheet preferred over German
DDA_LINKS = (
    re.compile(r'href="(https://[a-z0-9.-]*deutschedigitalassets\.com[^"]*Factsheet-en\.pdf)"', re.IGNORECASE),
    re.compile(r'href="(https://[a-z0-9.-]*deutschedigitalassets\.com[^"]*Factsheet[^"]*\.pdf)"', re.IGNORECASE),
)

JUSTETF_PDF_LINK = re.compile(
    r'href="(https://(?:cdn\.21shares\.com|www\.vaneck\.com|bitwiseinvestments\.eu|etc-group\.com|'
    r"deutschedigitalassets\.com|coinshares\.com|kid\.ttmzero\.com|wisdomtree\.(?:com|eu)|"
    r"dataspanapi\.wisdomtree\.com|ficas\.com|virtune\.(?:com|se)|nxtassets\.(?:com|de))"
    r'[^"]*\.pdf)"',
    re.IGNORECASE,
)

HTML_TITLE = re.compile(r"<title>([^|]+)")
NOT_LISTED_TITLE = re.compile(r"ETF Screener|All ETFs", re.IGNORECASE)

PROVIDER_URL_PATTERNS: tuple[tuple[re.Pattern, Provider], ...] = (
    (re.compile(r"21shares\.com", re.IGNORECASE), Provider.TWENTY_ONE_SHARES),
    (re.compile(r"vaneck\.com", re.IGNORECASE), Provider.VANECK),
    (re.compile(r"bitwiseinvestments\.eu|etc-group\.com", re.IGNORECASE), Provider.BITWISE),
    (re.compile(r"deutschedigitalassets\.com", re.IGNORECASE), Provider.DDA),
    (re.compile(r"coinshares\.com|kid\.ttmzero\.com", re.IGNORECASE), Provider.COINSHARES),
    (re.compile(r"wisdomtree\.(com|eu)|dataspanapi\.wisdomtree", re.IGNORECASE), Provider.WISDOMTREE),
)

DDA_SLUGS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"crypto select 10|slct", re.IGNORECASE), "slct-dda-crypto-select-10-etp"),
    (re.compile(r"physical bitcoin|xbti", re.IGNORECASE), "xbti-dda-physical-bitcoin-etp"),
    (re.compile(r"physical ethereum|ieth", re.IGNORECASE), "ieth-dda-physical-ethereum-etp"),
)

JUSTETF_INDEX_TO_TICKER: dict[str, str] = {
    "bitcoin": "BTC",
    "ethereum": "ETH",
    "ripple (xrp)": "XRP",
    "xrp": "XRP",
    "ripple": "XRP",
    "solana": "SOL",
    "cardano": "ADA",
    "polkadot": "DOT",
    "dot": "DOT",
    "litecoin": "LTC",
    "avalanche": "AVAX",
    "polygon": "MATIC",
    "chainlink": "LINK",
    "uniswap": "UNI",
    "internet computer": "ICP",
    "aptos": "APT",
    "sui": "SUI",
    "near": "NEAR",
}

JUSTETF_TITLE_COINS: tuple[str, ...] = (
    "ethereum", "bitcoin", "xrp", "ripple", "solana", "cardano",
    "polkadot", "litecoin", "avalanche", "polygon", "chainlink", "uniswap",
)

_JUSTETF_COIN_ALTERNATION = "Ethereum|Bitcoin|XRP|Ripple|Solana|Cardano|Polkadot|Litecoin"
JUSTETF_INDEX_FIELD = re.compile(r"Index:\s*([A-Za-z]+(?:\s*\([A-Z]+\))?)", re.IGNORECASE)
JUSTETF_CRYPTOCURRENCY = re.compile(rf"cryptocurrency\s+({_JUSTETF_COIN_ALTERNATION})", re.IGNORECASE)
JUSTETF_INVESTMENT_FOCUS = re.compile(
    rf"Investment focus[\s\S]{{0,300}}?>({_JUSTETF_COIN_ALTERNATION})<", re.IGNORECASE
)


# =============================================================================
# Pure helpers
# =============================================================================

def detect_provider_from_url(url: str) -> Provider:
    for pattern, provider in PROVIDER_URL_PATTERNS:
        if pattern.search(url):
            return provider
    return Provider.UNKNOWN


def first_allowed_link(page: str, link_patterns: tuple[re.Pattern, ...]) -> str | None:
    """First link matching the patterns in priority order that passes the allow-list."""
    for pattern in link_patterns:
        match = pattern.search(page)
        if match and is_allowed(match.group(1)):
            return match.group(1)
    return None


def page_title(page: str) -> str:
    match = HTML_TITLE.search(page)
    return match.group(1).strip() if match else ""


def vaneck_kid_url(title: str) -> str | None:
    """"VanEck Polkadot ETN" -> KID_VanEck-Polkadot-ETN_en-CH.pdf"""
    if not (re.search(r"VanEck", title, re.IGNORECASE) and re.search(r"ETN", title, re.IGNORECASE)):
        return None
    middle = re.sub(r"VanEck\s+", "", title, count=1, flags=re.IGNORECASE)
    middle = re.sub(r"\s+ETN.*$", "", middle, flags=re.IGNORECASE).strip()
    slug = re.sub(r"\s+", "-", middle)
    return f"https://www.vaneck.com/globalassets/home/ucits/documents/kids/KID_VanEck-{slug}-ETN_en-CH.pdf"


def bitwise_factsheet_urls(title: str) -> list[str]:
    """"Bitwise Physical Bitcoin ETP" -> fact-sheet-bitwise-physical-bitcoin-etp.pdf on both hosts."""
    if not (re.search(r"Bitwise", title, re.IGNORECASE) and re.search(r"ETP", title, re.IGNORECASE)):
        return []
    middle = re.sub(r"^Bitwise\s+", "", title, flags=re.IGNORECASE)
    middle = re.sub(r"\s+ETP.*$", "", middle, flags=re.IGNORECASE).strip()
    slug = re.sub(r"\s+", "-", middle.lower())
    return [
        f"https://bitwiseinvestments.eu/resources/fact_sheet/fact-sheet-bitwise-{slug}-etp.pdf",
        f"https://etc-group.com/resources/fact_sheet/fact-sheet-bitwise-{slug}-etp.pdf",
    ]


def coinshares_kid_url(title: str, isin: str) -> str | None:
    if not re.search(r"CoinShares", title, re.IGNORECASE):
        return None
    return f"https://kid.ttmzero.com/coinshares/{isin}_latest_en_PL.pdf"


def dda_factsheet_urls(title: str) -> list[str]:
    if not re.search(r"DDA|Deutsche Digital Assets", title, re.IGNORECASE):
        return []
    urls = []
    for pattern, slug in DDA_SLUGS:
        if pattern.search(title):
            urls.append(
                "https://deutschedigitalassets.com/wp-content/uploads/product_uploads/funds/etps/"
                f"{slug}/Germany/Featured/{slug}_Factsheet-de.pdf"
            )
    return urls


def _coin_ticker(asset: str) -> str | None:
    return JUSTETF_INDEX_TO_TICKER.get(asset.lower())


def extract_constituents_from_justetf_html(page: str, title: str = "") -> list[ConstituentWeight]:
    """Single-asset constituents from a justETF profile page.

    Tried in order: the "Index:" field, "cryptocurrency <coin>" phrasing,
    the "Investment focus" data cell, then exactly one coin named in the title.
    """
    text = re.sub(r"\s+", " ", re.sub(r"<[^>]+>", " ", page))

    match = JUSTETF_INDEX_FIELD.search(text)
    if match:
        raw = match.group(1).strip().lower()
        bare = re.sub(r"\s*\([a-z]+\)$", "", raw).strip()
        ticker = JUSTETF_INDEX_TO_TICKER.get(raw) or JUSTETF_INDEX_TO_TICKER.get(bare)
        if ticker:
            return [ConstituentWeight(name=ticker, weight=100.0)]

    for pattern, haystack in ((JUSTETF_CRYPTOCURRENCY, text), (JUSTETF_INVESTMENT_FOCUS, page)):
        match = pattern.search(haystack)
        if match:
            ticker = _coin_ticker(match.group(1))
            if ticker:
                return [ConstituentWeight(name=ticker, weight=100.0)]

    if title:
        lower = title.lower()
        named = [coin for coin in JUSTETF_TITLE_COINS if coin in lower]
        if len(named) == 1:
            ticker = _coin_ticker(named[0])
            if ticker:
                return [ConstituentWeight(name=ticker, weight=100.0)]

    return []


def factsheet_url_for_ticker(ticker: str) -> str:
    return DiscoveryConfig.FACTSHEET_URL_TEMPLATE.format(ticker=ticker)


# =============================================================================
# Resolver
# =============================================================================

class UrlResolver:
    """Resolves an ISIN to a factsheet document or direct constituents.

    Args:
        http: Allow-listed HTTP client.
        mapping: Static per-ISIN configuration.
        holdings: Vendor client (used for its product catalog).
    """

    def __init__(self, http: HttpClient, mapping: MappingRepository, holdings: VendorHoldingsClient):
        self.http = http
        self.mapping = mapping
        self.holdings = holdings
        self._page_discovery: dict[Provider, PageDiscovery] = {
            Provider.VANECK: self.discover_vaneck_page,
            Provider.BITWISE: self.discover_bitwise_page,
            Provider.DDA: self.discover_dda_page,
        }

    async def resolve(self, isin: str) -> ResolvedSource:
        """Walk the precedence chain.

        Raises:
            UrlNotAllowedError: The mapped factsheet URL is off the allow-list.
            UrlNotFoundError: Every tier came back empty.
        """
        entry = self.mapping.get(isin)

        if entry is not None and entry.factsheet_url:
            assert_allowed(entry.factsheet_url)
            logger.debug("%s: mapped factsheet URL", isin)
            return DocumentSource(url=entry.factsheet_url, provider=entry.effective_provider)

        if entry is not None and entry.product_page_url:
            discovered = await self.discover_from_product_page(entry)
            if discovered:
                return DocumentSource(url=discovered, provider=entry.effective_provider)

        from_aggregator = await self.discover_from_justetf(isin)
        if from_aggregator is not None:
            return from_aggregator

        from_catalog = await self.discover_from_product_list(isin)
        if from_catalog:
            return DocumentSource(url=from_catalog, provider=Provider.TWENTY_ONE_SHARES)

        from_listing = await self.discover_from_factsheet_listing(isin)
        if from_listing:
            return DocumentSource(url=from_listing, provider=Provider.TWENTY_ONE_SHARES)

        raise UrlNotFoundError(isin)

    # -- Tier 2: product pages --

    async def discover_from_product_page(self, entry: MappingEntry) -> str | None:
        discover = self._page_discovery.get(entry.effective_provider, self.discover_21shares_page)
        return await discover(entry.product_page_url)

    async def _page_link(self, page_url: str, patterns: tuple[re.Pattern, ...]) -> str | None:
        page = await self.http.get_text(page_url, timeout=DiscoveryConfig.PAGE_TIMEOUT_SECONDS)
        if page is None:
            return None
        return first_allowed_link(page, patterns)

    async def discover_21shares_page(self, page_url: str) -> str | None:
        return await self._page_link(page_url, (TWENTY_ONE_SHARES_FACTSHEET_LINK,))

    async def discover_vaneck_page(self, page_url: str) -> str | None:
        return await self._page_link(page_url, VANECK_LINKS)

    async def discover_bitwise_page(self, page_url: str) -> str | None:
        return await self._page_link(page_url, BITWISE_LINKS)

    async def discover_dda_page(self, page_url: str) -> str | None:
        return await self._page_link(page_url, DDA_LINKS)

    # -- Tier 3: aggregator --

    async def _probe(self, url: str) -> bool:
        return await self.http.head_ok(url, timeout=DiscoveryConfig.PAGE_TIMEOUT_SECONDS)

    async def discover_from_justetf(self, isin: str) -> ResolvedSource | None:
        profile_url = f"{DiscoveryConfig.JUSTETF_PROFILE_URL}?isin={quote(isin, safe='')}"
        page = await self.http.get_text(profile_url, timeout=DiscoveryConfig.PAGE_TIMEOUT_SECONDS)
        if page is None:
            return None

        title = page_title(page)
        if not title or NOT_LISTED_TITLE.search(title):
            logger.debug("%s: not listed on justETF", isin)
            return None

        for match in JUSTETF_PDF_LINK.finditer(page):
            pdf_url = match.group(1).replace("&amp;", "&")
            if is_allowed(pdf_url) and await self._probe(pdf_url):
                return DocumentSource(url=pdf_url, provider=detect_provider_from_url(pdf_url))

        templates: list[tuple[str, Provider]] = []
        kid = vaneck_kid_url(title)
        if kid:
            templates.append((kid, Provider.VANECK))
        templates.extend((url, Provider.BITWISE) for url in bitwise_factsheet_urls(title))
        kid = coinshares_kid_url(title, isin)
        if kid:
            templates.append((kid, Provider.COINSHARES))
        templates.extend((url, Provider.DDA) for url in dda_factsheet_urls(title))

        for url, provider in templates:
            if await self._probe(url):
                return DocumentSource(url=url, provider=provider)

        constituents = extract_constituents_from_justetf_html(page, title)
        if constituents:
            return DirectConstituents(constituents=constituents, source_url=profile_url)
        return None

    # -- Tiers 4 and 5: 21Shares catalog and listing --

    async def discover_from_product_list(self, isin: str) -> str | None:
        block = await self.holdings.catalog_block(isin)
        if block is None:
            return None
        candidates = extract_candidate_tickers(block)
        if not candidates:
            return None

        if primary_listing_ticker(block) == candidates[0]:
            return factsheet_url_for_ticker(candidates[0])

        for ticker in candidates:
            url = factsheet_url_for_ticker(ticker)
            if await self._probe(url):
                return url
        return None

    async def discover_from_factsheet_listing(self, isin: str) -> str | None:
        page = await self.http.get_text(
            DiscoveryConfig.FACTSHEET_LISTING_URL, timeout=DiscoveryConfig.PAGE_TIMEOUT_SECONDS
        )
        if page is None or isin not in page:
            return None
        return first_allowed_link(page, (TWENTY_ONE_SHARES_FACTSHEET_LINK,))
