"""Centralized configuration for the factsheet weights pipeline.

All magic numbers, thresholds, and endpoint addresses are documented here.
Each constant includes:
- What it controls
- Which module reads it
"""

import os
from typing import Final


# =============================================================================
# Process-level settings (environment overridable)
# =============================================================================

USER_AGENT: Final[str] = os.environ.get(
    "FACTSHEET_USER_AGENT",
    "factsheet-weights/1.0 (fact sheet parser)",
)
"""User-Agent header sent with every outbound request.

Some issuer CDNs reject requests without a descriptive agent.
Used by: http_client.py
"""

MAPPING_PATH: Final[str | None] = os.environ.get("FACTSHEET_MAPPING_PATH")
"""Default path of the per-ISIN mapping JSON. Used by: cli.py"""

DB_PATH: Final[str | None] = os.environ.get("FACTSHEET_DB_PATH")
"""Default SQLite path for cache + fetch log. In-memory stores when unset.
Used by: cli.py
"""

TESSERACT_CMD: Final[str | None] = os.environ.get("TESSERACT_CMD")
"""Explicit tesseract binary path. pytesseract searches PATH when unset.
Used by: ocr.py
"""


# Cache Configuration

class CacheConfig:
    """Cache freshness rules for per-ISIN results.

    A successful run is cached for a day; a failed download is cached as a
    negative entry (empty weights) for half an hour so repeated requests do
    not hammer a broken source.

    Used by: phases/commit_phase.py, phases/fetch_phase.py
    """

    PARSE_VERSION: Final[int] = 1
    """Version of the extraction logic stored with every cache entry.

    Bump when parser behavior changes. Entries written by another version
    are treated as stale regardless of expiry.
    """

    TTL_SUCCESS_SECONDS: Final[int] = 24 * 60 * 60
    """Lifetime of a successful result (24h)."""

    TTL_FAILURE_SECONDS: Final[int] = 30 * 60
    """Lifetime of a negative result after a failed download (30min)."""


# Fetch Configuration

class FetchConfig:
    """Limits for document downloads.

    Used by: fetcher.py
    """

    MAX_PDF_SIZE_BYTES: Final[int] = 15 * 1024 * 1024
    """Hard cap on document size (15 MiB).

    Checked against Content-Length before reading the body and against the
    received size afterwards.
    """

    TIMEOUT_SECONDS: Final[float] = 30.0
    """Wall-clock timeout per download attempt."""

    RETRIES: Final[int] = 2
    """Additional attempts after the first one (3 attempts total)."""

    RETRY_DELAY_SECONDS: Final[float] = 1.0
    """Fixed pause between attempts."""


class DiscoveryConfig:
    """Timeouts and addresses for URL discovery.

    Used by: resolver.py, holdings_api.py
    """

    PAGE_TIMEOUT_SECONDS: Final[float] = 15.0
    """Timeout for product pages, aggregator pages and HEAD probes."""

    CATALOG_TIMEOUT_SECONDS: Final[float] = 20.0
    """Timeout for the product-list catalog PDF."""

    CATALOG_MAX_BYTES: Final[int] = 5 * 1024 * 1024
    """Catalog documents larger than this are ignored."""

    CATALOG_BLOCK_CHARS: Final[int] = 300
    """Characters after the ISIN occurrence scanned for ticker candidates."""

    JUSTETF_PROFILE_URL: Final[str] = "https://www.justetf.com/en/etf-profile.html"
    """Aggregator profile page, queried with ``?isin=``."""

    PRODUCT_LIST_PDF_URL: Final[str] = (
        "https://cdn.21shares.com/uploads/current-documents/products/"
        "product-list/Product_List.pdf"
    )
    """21Shares product catalog listing every ISIN with its exchange tickers."""

    FACTSHEET_LISTING_URL: Final[str] = "https://21shares.com/en-ch/ir/factsheets"
    """21Shares factsheet listing page (last discovery fallback)."""

    FACTSHEET_URL_TEMPLATE: Final[str] = (
        "https://cdn.21shares.com/uploads/current-documents/factsheets/all/"
        "Factsheet_{ticker}.pdf"
    )
    """Conventional 21Shares factsheet address for a ticker."""


class VendorApiConfig:
    """21Shares holdings endpoint (backs the product page weight chart).

    Used by: holdings_api.py
    """

    HOLDINGS_URL: Final[str] = (
        "https://xvmd-hnpa-7dsw.n7c.xano.io/api:l2-Jhcoq/"
        "get_product_details_constituents"
    )

    CONSTITUENTS_TIMEOUT_SECONDS: Final[float] = 15.0
    NAV_TIMEOUT_SECONDS: Final[float] = 10.0

    TICKER_CURRENCIES: Final[frozenset[str]] = frozenset(
        {"CHF", "EUR", "USD", "GBP", "SEK"}
    )
    """Currency codes that surround tickers in the catalog and are never tickers."""


class OcrConfig:
    """OCR fallback settings.

    Used by: ocr.py
    """

    RENDER_SCALE: Final[float] = 3.0
    """Rasterization zoom. 3x keeps small table fonts legible for Tesseract."""

    LANGUAGE: Final[str] = "eng"

    SECTION_MARKERS: Final[tuple[str, ...]] = (
        "ASSET ALLOCATION",
        "Asset Allocation",
        "INDEX COMPOSITION",
        "Index Composition",
    )
    """Text-layer phrases that identify the allocation page."""


class ParserLimits:
    """Bounds applied by the factsheet parser.

    Used by: parser.py, phases/escalation_phase.py
    """

    MAX_CONSTITUENTS: Final[int] = 20
    WEIGHT_SUM_MIN: Final[float] = 90.0
    WEIGHT_SUM_MAX: Final[float] = 110.0

    SECTION_WINDOW_CHARS: Final[int] = 2500
    """Characters after a section header considered for weight lines."""

    SECTION_FALLBACK_CHARS: Final[int] = 1500
    """Window length when no next-section marker follows the header."""

    MAX_NAME_LENGTH_WITHOUT_TICKER: Final[int] = 12
    """Names longer than this must look like a ticker when tickers are required."""


# Regex Patterns

class RegexPatterns:
    """Regex sources shared by several modules."""

    ISIN: Final[str] = r"^[A-Z]{2}[A-Z0-9]{9}[0-9]$"
    """ISIN format: 2 letters + 9 alphanumerics + 1 check digit.
    Used by: phases/validate_phase.py
    """

    FACTSHEET_TICKER: Final[str] = r"Factsheet_([A-Z]{2,10})\.pdf$"
    """Ticker embedded in a 21Shares factsheet filename.
    Used by: phases/commit_phase.py (NAV lookup)
    """


def plausible_sum(total: float) -> bool:
    """True when a weight sum lies inside the plausibility band."""
    return ParserLimits.WEIGHT_SUM_MIN <= total <= ParserLimits.WEIGHT_SUM_MAX
