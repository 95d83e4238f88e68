"""Outbound URL allow-list.

Every request the pipeline issues goes through ``assert_allowed`` first.
Patterns are anchored at ``^https://`` so an allowed host that only appears
in the query string of another host never matches. Hosts match on a label
boundary, so lookalike domains such as ``evil21shares.com`` are rejected.
"""

import re
from urllib.parse import urlsplit

from factsheet_weights.core.errors import UrlNotAllowedError

ALLOWED_PATTERNS: tuple[re.Pattern, ...] = tuple(
    re.compile(p)
    for p in (
        # 21Shares (site, CDN, holdings API)
        r"^https://(?:[a-z0-9-]+\.)*21shares\.com(/|$)",
        r"^https://cdn\.21shares\.com(/|$)",
        r"^https://xvmd-hnpa-7dsw\.n7c\.xano\.io/api:",
        # VanEck
        r"^https://(?:[a-z0-9-]+\.)*vaneck\.com(/|$)",
        # Bitwise / ETC Group
        r"^https://(?:[a-z0-9-]+\.)*etc-group\.com(/|$)",
        r"^https://(?:[a-z0-9-]+\.)*bitwiseinvestments\.eu(/|$)",
        # Deutsche Digital Assets
        r"^https://(?:[a-z0-9-]+\.)*deutschedigitalassets\.com(/|$)",
        # justETF (aggregator discovery)
        r"^https://(?:[a-z0-9-]+\.)*justetf\.com(/|$)",
        # CoinShares (KID / factsheet)
        r"^https://(?:[a-z0-9-]+\.)*coinshares\.com(/|$)",
        r"^https://kid\.ttmzero\.com(/|$)",
        r"^https://(?:[a-z0-9-]+\.)*etp\.coinshares\.com(/|$)",
        # WisdomTree
        r"^https://(?:[a-z0-9-]+\.)*wisdomtree\.(com|eu)(/|$)",
        r"^https://dataspanapi\.wisdomtree\.com(/|$)",
        # FiCAS, Virtune, nxtAssets
        r"^https://(?:[a-z0-9-]+\.)*ficas\.com(/|$)",
        r"^https://(?:[a-z0-9-]+\.)*virtune\.(com|se)(/|$)",
        r"^https://(?:[a-z0-9-]+\.)*nxtassets\.(com|de)(/|$)",
    )
)


def is_allowed(url: str) -> bool:
    """True if ``url`` is an absolute https URL on an allowed host."""
    if not isinstance(url, str) or not url:
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if not parts.scheme or not parts.netloc:
        return False
    return any(p.match(url) for p in ALLOWED_PATTERNS)


def assert_allowed(url: str) -> None:
    """Raise UrlNotAllowedError unless ``url`` passes the allow-list."""
    if not is_allowed(url):
        raise UrlNotAllowedError(url)
