"""Factsheet text parser: as-of date and constituent weights.

Pure functions over extracted text, no I/O. Steps:
1. As-of date from an ordered list of date phrases
2. Provider strategy (single-asset detection, provider table, generic block)
3. Normalization into the plausibility band
4. Full-text single-coin fallback when the result is still implausible

Strategies are registered per Provider in ``PROVIDER_STRATEGIES``; a new
issuer only needs a function and a table entry.
"""

import logging
import re
from collections.abc import Callable

from factsheet_weights.core import patterns as pt
from factsheet_weights.core.config import ParserLimits, plausible_sum
from factsheet_weights.pydantic_models import ConstituentWeight, ParsedFactsheet, Provider, weight_sum

logger = logging.getLogger(__name__)

Strategy = Callable[[str], list[ConstituentWeight]]


# =============================================================================
# Helpers
# =============================================================================

def _parse_weight(raw: str) -> float:
    try:
        return float(raw.replace(",", ".", 1))
    except ValueError:
        return 0.0


def _single(ticker: str) -> list[ConstituentWeight]:
    return [ConstituentWeight(name=ticker, weight=100.0)]


def _sorted_capped(items: list[ConstituentWeight]) -> list[ConstituentWeight]:
    items.sort(key=lambda c: c.weight, reverse=True)
    return items[: ParserLimits.MAX_CONSTITUENTS]


def extract_as_of_date(text: str) -> str | None:
    """First matching date phrase, whitespace collapsed."""
    for pattern in pt.AS_OF_PATTERNS:
        match = pattern.search(text)
        if match:
            return re.sub(r"\s+", " ", match.group(1).strip())
    return None


def extract_relevant_section(text: str, provider: Provider) -> str:
    """Window after the first provider section header found in ``text``.

    The window is cut at the next-section marker, or at the fallback length
    when no marker follows. Without any header the whole text is returned.
    """
    headers = pt.SECTION_HEADERS.get(provider, pt.SECTION_HEADERS[Provider.UNKNOWN])
    for header in headers:
        idx = text.find(header)
        if idx < 0:
            continue
        start = idx + len(header)
        rest = text[start:start + ParserLimits.SECTION_WINDOW_CHARS]
        marker = pt.NEXT_SECTION.search(rest)
        if marker:
            return rest[: marker.start()]
        return rest[: ParserLimits.SECTION_FALLBACK_CHARS]
    return text


def extract_constituents_from_block(block: str, require_ticker: bool = False) -> list[ConstituentWeight]:
    """Generic weight-line extraction over a text block."""
    found: list[ConstituentWeight] = []
    for match in pt.WEIGHT_LINE.finditer(block):
        name = match.group(1).strip()
        weight = _parse_weight(match.group(2))
        if pt.is_blacklisted(name):
            continue
        if weight <= 0 or weight > 100:
            continue
        if (
            require_ticker
            and not pt.looks_like_ticker(name)
            and not pt.is_commodity(name)
            and len(name) > ParserLimits.MAX_NAME_LENGTH_WITHOUT_TICKER
        ):
            continue
        found.append(ConstituentWeight(name=name, weight=weight))
    return _sorted_capped(found)


def _extract_table_rows(text: str, row_pattern: re.Pattern, allow_ticker_shape: bool) -> list[ConstituentWeight]:
    """Provider table rows restricted to crypto or commodity names."""
    found: list[ConstituentWeight] = []
    for match in row_pattern.finditer(text):
        name = match.group(1).strip()
        weight = _parse_weight(match.group(2))
        if pt.is_blacklisted(name) or weight <= 0 or weight > 100:
            continue
        is_crypto = pt.is_known_crypto(name)
        if allow_ticker_shape:
            is_crypto = is_crypto or bool(pt.TICKER_SHAPE.match(name.upper()))
        if is_crypto or pt.is_commodity(name):
            found.append(ConstituentWeight(name=name, weight=weight))
    return _sorted_capped(found) if found else []


# =============================================================================
# Single-asset detection
# =============================================================================

def extract_single_asset(text: str) -> list[ConstituentWeight]:
    """Ordered single-asset patterns; first accepted hit yields one 100% constituent."""
    match = pt.SINGLE_ASSET_PARENS.search(text)
    if match:
        return _single(match.group(1))

    match = pt.SINGLE_ASSET_DIRECT.search(text)
    if match and match.group(1).lower() not in pt.SINGLE_ASSET_BLACKLIST:
        return _single(match.group(1))

    if pt.SINGLE_ASSET_VANECK_BACKED.search(text):
        return _single("BTC")

    match = pt.SINGLE_ASSET_VANECK_PORTFOLIO.search(text)
    if match:
        asset = match.group(1).upper()
        ticker = pt.PORTFOLIO_NAME_TO_TICKER.get(asset)
        if ticker is None and re.fullmatch(r"[A-Z]{2,6}", asset):
            ticker = asset
        if ticker:
            return _single(ticker)

    match = pt.SINGLE_ASSET_TICKER_100.search(text)
    if match:
        ticker = match.group(1)
        if ticker.lower() not in pt.SINGLE_ASSET_BLACKLIST and ticker in pt.KNOWN_CRYPTO_TICKERS:
            return _single(ticker)

    match = pt.SINGLE_ASSET_BITWISE_BACKED.search(text)
    if match:
        ticker = match.group(1).upper()
        if ticker.lower() not in pt.SINGLE_ASSET_BLACKLIST and ticker in pt.KNOWN_CRYPTO_TICKERS:
            return _single(ticker)

    match = pt.SINGLE_ASSET_COINSHARES_INDEX.search(text)
    if match:
        ticker = pt.COINSHARES_INDEX_TO_TICKER.get(match.group(1).upper())
        if ticker:
            return _single(ticker)

    for match in pt.SINGLE_ASSET_100_PERCENT_TICKER.finditer(text):
        ticker = match.group(1).upper()
        if ticker.lower() not in pt.SINGLE_ASSET_BLACKLIST and ticker in pt.KNOWN_CRYPTO_TICKERS:
            return _single(ticker)

    return []


# =============================================================================
# Provider strategies
# =============================================================================

def _section_strategy(provider: Provider) -> Strategy:
    """Single-asset detection, then the generic block from the provider section."""

    def strategy(text: str) -> list[ConstituentWeight]:
        single = extract_single_asset(text)
        if single:
            return single
        return extract_constituents_from_block(extract_relevant_section(text, provider))

    strategy.__name__ = f"{provider.value}_strategy"
    return strategy


def _vaneck_strategy(text: str) -> list[ConstituentWeight]:
    # VanEck ETNs are almost all single-asset; index ETNs list "Name NN%" rows
    single = extract_single_asset(text)
    if single:
        return single
    rows = _extract_table_rows(text, pt.VANECK_TABLE_ROW, allow_ticker_shape=False)
    if rows:
        return rows
    return extract_constituents_from_block(extract_relevant_section(text, Provider.VANECK))


def _dda_strategy(text: str) -> list[ConstituentWeight]:
    single = extract_single_asset(text)
    if single:
        return single
    section = extract_relevant_section(text, Provider.DDA)
    rows = _extract_table_rows(section, pt.DDA_TABLE_ROW, allow_ticker_shape=True)
    if rows:
        return rows
    return extract_constituents_from_block(section)


def _coinshares_strategy(text: str) -> list[ConstituentWeight]:
    single = extract_single_asset(text)
    if single:
        return single
    match = pt.COINSHARES_BACKED.search(text)
    if match:
        name = re.sub(r"\s+", " ", match.group(1).lower())
        ticker = pt.COINSHARES_BACKED_NAME_TO_TICKER.get(name)
        if ticker:
            return _single(ticker)
    return extract_constituents_from_block(extract_relevant_section(text, Provider.COINSHARES))


PROVIDER_STRATEGIES: dict[Provider, Strategy] = {
    Provider.VANECK: _vaneck_strategy,
    Provider.DDA: _dda_strategy,
    Provider.COINSHARES: _coinshares_strategy,
    Provider.BITWISE: _section_strategy(Provider.BITWISE),
    Provider.WISDOMTREE: _section_strategy(Provider.WISDOMTREE),
    Provider.TWENTY_ONE_SHARES: _section_strategy(Provider.TWENTY_ONE_SHARES),
    Provider.JUSTETF: _section_strategy(Provider.JUSTETF),
    Provider.UNKNOWN: _section_strategy(Provider.UNKNOWN),
}


def extract_constituents(text: str, provider: Provider) -> list[ConstituentWeight]:
    """Dispatch to the provider strategy."""
    strategy = PROVIDER_STRATEGIES.get(provider, PROVIDER_STRATEGIES[Provider.UNKNOWN])
    return strategy(text)


# =============================================================================
# Normalization and fallback
# =============================================================================

def normalize_weights(constituents: list[ConstituentWeight]) -> list[ConstituentWeight]:
    """Rescale to 100 when the sum is inside the plausibility band.

    Sums outside the band are returned unchanged so the caller can see the
    result is implausible.
    """
    total = weight_sum(constituents)
    if not constituents or not plausible_sum(total):
        return constituents
    factor = 100 / total
    # Dust weights that round to zero are dropped
    rescaled = [(c.name, round(c.weight * factor, 2)) for c in constituents]
    return [ConstituentWeight(name=name, weight=min(weight, 100.0)) for name, weight in rescaled if weight > 0]


def extract_single_coin_from_full_text(text: str) -> list[ConstituentWeight]:
    """Exactly one distinct coin mentioned anywhere in the text -> 100% of it."""
    tickers: set[str] = set()
    for pattern, ticker in pt.FULL_TEXT_COIN_MAP:
        if pattern.search(text):
            tickers.add(ticker)
    if len(tickers) == 1:
        return _single(tickers.pop())
    return []


def parse_factsheet_text(text: str, provider: Provider = Provider.UNKNOWN) -> ParsedFactsheet:
    """Parse factsheet text into an as-of date and constituent weights.

    Args:
        text: Extracted document text (or OCR output).
        provider: Issuer family selecting the extraction strategy.

    Returns:
        ParsedFactsheet. Constituents may be empty or sum outside [90, 110];
        callers decide whether to escalate.
    """
    provider = Provider.parse(provider)
    as_of_date = extract_as_of_date(text)
    constituents = normalize_weights(extract_constituents(text, provider))

    if not constituents or not plausible_sum(weight_sum(constituents)):
        fallback = extract_single_coin_from_full_text(text)
        if fallback:
            logger.debug("Full-text single-coin fallback: %s", fallback[0].name)
            constituents = fallback

    return ParsedFactsheet(as_of_date=as_of_date, constituents=constituents)
