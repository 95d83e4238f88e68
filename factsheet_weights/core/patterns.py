"""Regex patterns and word lists used by the factsheet parser.

Kept apart from parser.py so the heuristics can be reviewed as data:
- Single-asset patterns (ordered; first hit wins)
- As-of date patterns (ordered)
- Section headers per provider
- Blacklist of non-asset words
- Known crypto tickers / commodity names
- Full-text coin map (most specific first)
"""

import re
from typing import Final

from factsheet_weights.pydantic_models import Provider

# =============================================================================
# Single-asset detection
# =============================================================================

# "100% physically backed by Binance Coin (BNB)" -> ticker in parentheses
SINGLE_ASSET_PARENS = re.compile(
    r"100\s*%\s*physically\s+backed\s+by\s+(?:[A-Za-z][A-Za-z ]{0,30}?\s+)?\(([A-Z]{2,10})\)"
)
# "100% physically backed by NEAR Protocol" -> bare uppercase ticker
SINGLE_ASSET_DIRECT = re.compile(
    r"100\s*%\s*physically\s+backed\s+by\s+([A-Z]{2,10})(?:\s|$|,|\()"
)
# VanEck wording, always bitcoin
SINGLE_ASSET_VANECK_BACKED = re.compile(
    r"(?:backed\s+100\s*%|100\s*%\s*backed|fully\s+backed)\s+by\s+(?:bitcoin|Bitcoin|Bitcoin\s*\(BTC\))",
    re.IGNORECASE,
)
# VanEck KID: "secured by a portfolio\nof DOT"
SINGLE_ASSET_VANECK_PORTFOLIO = re.compile(
    r"(?:portfolio\s+of|secured by\s+(?:a\s+)?portfolio\s+of)\s+"
    r"(Bitcoin|Ethereum|DOT|Polkadot|Solana|SOL|Cardano|ADA|XRP|Ripple)(?:\s|\.|$)",
    re.IGNORECASE,
)
# "Staked Ethereum (ETH) 100%"
SINGLE_ASSET_TICKER_100 = re.compile(r"\(([A-Z]{2,10})\)\s+100\s*%?")
# "fully backed by ETH" / "physically backed by XRP"
SINGLE_ASSET_BITWISE_BACKED = re.compile(
    r"(?:fully|physically)\s+backed\s+by\s+(?:the\s+)?([A-Z]{2,10})\b",
    re.IGNORECASE,
)
# CoinShares KID index names
SINGLE_ASSET_COINSHARES_INDEX = re.compile(
    r"Compass\s+Crypto\s+Reference\s+Index\s+"
    r"(Ethereum|Bitcoin|XRP|Solana|Cardano|Polkadot|Litecoin|Cosmos|ATOM|Tron|Sui)",
    re.IGNORECASE,
)
# "100% XRP" (weight first)
SINGLE_ASSET_100_PERCENT_TICKER = re.compile(r"100\s*%\s+([A-Za-z]{2,10})\b", re.IGNORECASE)

SINGLE_ASSET_BLACKLIST: Final[frozenset[str]] = frozenset(
    {"the", "underlying", "digital", "assets", "top", "index"}
)

PORTFOLIO_NAME_TO_TICKER: Final[dict[str, str]] = {
    "BITCOIN": "BTC",
    "ETHEREUM": "ETH",
    "DOT": "DOT",
    "POLKADOT": "DOT",
    "SOLANA": "SOL",
    "SOL": "SOL",
    "CARDANO": "ADA",
    "ADA": "ADA",
    "XRP": "XRP",
    "RIPPLE": "XRP",
}

COINSHARES_INDEX_TO_TICKER: Final[dict[str, str]] = {
    "BITCOIN": "BTC",
    "ETHEREUM": "ETH",
    "XRP": "XRP",
    "SOLANA": "SOL",
    "CARDANO": "ADA",
    "POLKADOT": "DOT",
    "LITECOIN": "LTC",
    "COSMOS": "ATOM",
    "ATOM": "ATOM",
    "TRON": "TRX",
    "TRX": "TRX",
    "SUI": "SUI",
}

# Mixed-case coin names after "physically backed by" (CoinShares)
COINSHARES_BACKED = re.compile(
    r"(?:100\s*%\s*)?physically\s+backed\s+by\s+"
    r"(cosmos|bitcoin|ethereum|xrp|solana|cardano|polkadot|litecoin|avalanche|polygon|"
    r"chainlink|near\s+protocol|toncoin|tron|sui)(?:\s*\([A-Z]{2,10}\))?",
    re.IGNORECASE,
)

COINSHARES_BACKED_NAME_TO_TICKER: Final[dict[str, str]] = {
    "cosmos": "ATOM",
    "bitcoin": "BTC",
    "ethereum": "ETH",
    "xrp": "XRP",
    "solana": "SOL",
    "cardano": "ADA",
    "polkadot": "DOT",
    "litecoin": "LTC",
    "avalanche": "AVAX",
    "polygon": "MATIC",
    "chainlink": "LINK",
    "near protocol": "NEAR",
    "toncoin": "TON",
    "tron": "TRX",
    "sui": "SUI",
}

# =============================================================================
# As-of date
# =============================================================================

_NUMERIC_DATE = r"(\d{1,2}[./-]\d{1,2}[./-]\d{2,4})"

AS_OF_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"[Aa]s of\s+(\d{1,2}\s+[A-Za-z]+,?\s*\d{4})"),
    re.compile(r"[Aa]s of\s+" + _NUMERIC_DATE),
    re.compile(r"[Ss]tand\s+" + _NUMERIC_DATE),
    re.compile(r"[Dd]atum[:\s]+" + _NUMERIC_DATE),
    re.compile(r"[Dd]ate[:\s]+" + _NUMERIC_DATE),
    re.compile(r"[Rr]ebalancing[:\s]+" + _NUMERIC_DATE),
    re.compile(r"[Pp]ortfolio\s+(?:date|as of)[:\s]+" + _NUMERIC_DATE, re.IGNORECASE),
)

# =============================================================================
# Weight lines and tables
# =============================================================================

# Name-like prefix (<= 41 chars) followed by a number with dot/comma decimal
WEIGHT_LINE = re.compile(r"([A-Za-z0-9][A-Za-z0-9 \-.()]{1,40})\s+(\d{1,3}(?:[.,]\d{1,4})?)\s*%?")

# "Bitcoin 45.00%" over the whole VanEck document
VANECK_TABLE_ROW = re.compile(r"\b([A-Z][A-Za-z0-9 ]{1,20})\s+(\d{1,3}(?:[.,]\d{1,2})?)\s*%")

# "Bitcoin BTC 45.23%" inside the DDA section
DDA_TABLE_ROW = re.compile(r"\b([A-Z][A-Za-z0-9 ]{1,25})\s+(\d{1,3}(?:[.,]\d{1,2})?)\s*%")

NEXT_SECTION = re.compile(
    r"\n\s*(TRADING|FUNDAMENTALS|RISK|HISTORICAL|ABOUT|CONTACT|DISCLAIMER|21shares\.com|vaneck\.com|"
    r"etc-group\.com|bitwiseinvestments\.eu|deutschedigitalassets\.com)",
    re.IGNORECASE,
)

TICKER_SHAPE = re.compile(r"^[A-Z]{2,10}$")

# =============================================================================
# Section headers per provider (searched in order, first hit wins)
# =============================================================================

_TWENTY_ONE_SHARES_HEADERS = (
    "ASSET ALLOCATION",
    "Asset Allocation",
    "INDEX COMPOSITION",
    "Index Composition",
    "PORTFOLIO",
    "Portfolio",
    "WEIGHTING",
    "Constituents",
)

SECTION_HEADERS: Final[dict[Provider, tuple[str, ...]]] = {
    Provider.TWENTY_ONE_SHARES: _TWENTY_ONE_SHARES_HEADERS,
    Provider.VANECK: (
        "Index Composition",
        "INDEX COMPOSITION",
        "Portfolio Composition",
        "PORTFOLIO COMPOSITION",
        "Asset Allocation",
        "ASSET ALLOCATION",
        "Holdings",
        "HOLDINGS",
        "Constituents",
        "CONSTITUENTS",
        "Top Holdings",
    ),
    Provider.BITWISE: (
        "Zusammensetzung",
        "Index-Zusammensetzung",
        "Indexzusammensetzung",
        "Index Composition",
        "INDEX COMPOSITION",
        "Asset Allocation",
        "ASSET ALLOCATION",
        "Portfolio",
        "PORTFOLIO",
        "Holdings",
        "HOLDINGS",
        "Constituents",
        "CONSTITUENTS",
        "Underlying Assets",
    ),
    Provider.COINSHARES: (
        "Index Composition",
        "INDEX COMPOSITION",
        "Asset Allocation",
        "Underlying asset",
        "Holdings",
        "HOLDINGS",
    ),
    Provider.WISDOMTREE: (
        "Index Composition",
        "Asset Allocation",
        "Underlying",
        "Holdings",
        "HOLDINGS",
    ),
    Provider.JUSTETF: (
        "ASSET ALLOCATION",
        "Asset Allocation",
        "INDEX COMPOSITION",
        "Index Composition",
        "Portfolio",
        "Holdings",
    ),
    Provider.DDA: (
        "Index Constituents",
        "INDEX CONSTITUENTS",
        "Asset Allocation",
        "ASSET ALLOCATION",
        "Portfolio Allocation",
        "PORTFOLIO ALLOCATION",
        "Holdings",
        "HOLDINGS",
        "Constituents",
        "CONSTITUENTS",
        "Index Composition",
        "Crypto Allocation",
    ),
    Provider.UNKNOWN: _TWENTY_ONE_SHARES_HEADERS + ("Holdings", "HOLDINGS"),
}

# =============================================================================
# Blacklist and known assets
# =============================================================================

BLACKLIST_KEYWORDS: Final[tuple[str, ...]] = (
    "TER", "fee", "management", "total", "performance", "volatility", "isin",
    "currency", "expense", "Ongoing", "Charges", "of", "by", "Since",
    "Allocation", "Asset", "Underlying", "Percentage", "Benchmark", "Physically",
    "January", "February", "March", "April", "May", "June", "July", "August",
    "September", "October", "November", "December",
    "Days", "Months", "Year", "YTD", "inception", "Change",
    "Jan", "Feb", "Mar", "Apr", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    "2022", "2023", "2024", "2025", "2026",
)
_BLACKLIST_LOWER = tuple(kw.lower() for kw in BLACKLIST_KEYWORDS)

KNOWN_CRYPTO_TICKERS: Final[frozenset[str]] = frozenset({
    "BTC", "BITCOIN", "ETH", "ETHEREUM", "XRP", "RIPPLE", "BNB", "BINANCE",
    "SOL", "SOLANA", "ADA", "CARDANO", "DOGE", "DOGECOIN", "AVAX", "AVALANCHE",
    "DOT", "POLKADOT", "MATIC", "POLYGON", "LINK", "CHAINLINK", "UNI", "UNISWAP",
    "LTC", "LITECOIN", "ATOM", "COSMOS", "NEAR", "APT", "APTOS", "ARB", "ARBITRUM",
    "OP", "OPTIMISM", "SUI", "INJ", "INJECTIVE", "TIA", "CELESTIA", "STX", "STACKS",
    "FIL", "FILECOIN", "ICP", "HBAR", "HEDERA", "VET", "VECHAIN", "ALGO", "ALGORAND",
    "XLM", "STELLAR", "AAVE", "MKR", "MAKER", "CRV", "CURVE", "LDO", "LIDO",
    "TON", "TONCOIN", "SHIB", "TRX", "TRON", "BCH", "BITCOIN CASH",
    # Index products listed by their own ticker
    "VCLD", "DA20",
})

KNOWN_COMMODITY_ASSETS: Final[frozenset[str]] = frozenset(
    {"GOLD", "XAU", "SILVER", "XAG", "PHYSICAL GOLD", "PHYSICAL SILVER"}
)
_COMMODITY_FRAGMENTS = ("GOLD", "XAU", "SILVER", "XAG")

# =============================================================================
# Full-text single-coin fallback (specific names before their prefixes)
# =============================================================================

_I = re.IGNORECASE

FULL_TEXT_COIN_MAP: tuple[tuple[re.Pattern, str], ...] = tuple(
    (re.compile(rf"\b{pattern}\b", flags), ticker)
    for pattern, flags, ticker in (
        (r"bitcoin\s+cash", _I, "BCH"),
        (r"near\s+protocol", _I, "NEAR"),
        (r"internet\s+computer", _I, "ICP"),
        (r"bitcoin", _I, "BTC"),
        (r"BTC", 0, "BTC"),
        (r"ethereum", _I, "ETH"),
        (r"ETH", 0, "ETH"),
        (r"cosmos", _I, "ATOM"),
        (r"ATOM", 0, "ATOM"),
        (r"ripple", _I, "XRP"),
        (r"XRP", 0, "XRP"),
        (r"solana", _I, "SOL"),
        (r"SOL", 0, "SOL"),
        (r"cardano", _I, "ADA"),
        (r"ADA", 0, "ADA"),
        (r"polkadot", _I, "DOT"),
        (r"DOT", 0, "DOT"),
        (r"litecoin", _I, "LTC"),
        (r"LTC", 0, "LTC"),
        (r"avalanche", _I, "AVAX"),
        (r"AVAX", 0, "AVAX"),
        (r"polygon", _I, "MATIC"),
        (r"MATIC", 0, "MATIC"),
        (r"chainlink", _I, "LINK"),
        (r"LINK", 0, "LINK"),
        (r"dogecoin", _I, "DOGE"),
        (r"DOGE", 0, "DOGE"),
        (r"toncoin", _I, "TON"),
        (r"hedera", _I, "HBAR"),
        (r"HBAR", 0, "HBAR"),
        (r"algorand", _I, "ALGO"),
        (r"ALGO", 0, "ALGO"),
        (r"stellar", _I, "XLM"),
        (r"XLM", 0, "XLM"),
        (r"aptos", _I, "APT"),
        (r"APT", 0, "APT"),
        (r"filecoin", _I, "FIL"),
        (r"FIL", 0, "FIL"),
        (r"injective", _I, "INJ"),
        (r"INJ", 0, "INJ"),
        (r"celestia", _I, "TIA"),
        (r"TIA", 0, "TIA"),
        (r"near", _I, "NEAR"),
        (r"NEAR", 0, "NEAR"),
        (r"sui", _I, "SUI"),
        (r"SUI", 0, "SUI"),
        (r"tron", _I, "TRX"),
        (r"TRX", 0, "TRX"),
        (r"aave", _I, "AAVE"),
        (r"AAVE", 0, "AAVE"),
    )
)


def is_blacklisted(name: str) -> bool:
    """Case-insensitive substring match against BLACKLIST_KEYWORDS."""
    lower = name.strip().lower()
    return any(kw in lower for kw in _BLACKLIST_LOWER)


def is_known_crypto(name: str) -> bool:
    """Exact or substring match against KNOWN_CRYPTO_TICKERS (uppercased)."""
    upper = name.strip().upper()
    return upper in KNOWN_CRYPTO_TICKERS or any(t in upper for t in KNOWN_CRYPTO_TICKERS)


def is_commodity(name: str) -> bool:
    upper = name.strip().upper()
    return upper in KNOWN_COMMODITY_ASSETS or any(x in upper for x in _COMMODITY_FRAGMENTS)


def looks_like_ticker(name: str) -> bool:
    return bool(TICKER_SHAPE.match(name.strip().upper())) or is_known_crypto(name)
