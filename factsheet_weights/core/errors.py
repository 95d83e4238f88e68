"""Structured error types for the factsheet weights pipeline.

Two layers:
- Exceptions raised by internal components (allow-list, fetcher, text
  extraction, resolver). Advisory helpers catch these and return None.
- WorkflowError values returned by the workflow. No exception crosses the
  workflow boundary; every terminal failure becomes one of these.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Closed taxonomy of workflow failures."""
    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"   # Malformed ISIN, no I/O attempted
    URL_NOT_FOUND = "URL_NOT_FOUND"             # Every resolution strategy exhausted
    FETCH_FAILED = "FETCH_FAILED"               # Download failed after retries
    PARSE_FAILED = "PARSE_FAILED"               # Both text extraction methods raised
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"     # Zero constituents after escalation
    WEIGHT_SUM_INVALID = "WEIGHT_SUM_INVALID"   # Sum outside [90, 110] after escalation
    URL_NOT_ALLOWED = "URL_NOT_ALLOWED"         # Target outside the allow-list
    INTERNAL_ERROR = "INTERNAL_ERROR"           # Unexpected failure inside a phase

    def __str__(self) -> str:
        return self.value


# Internal exceptions

class UrlNotAllowedError(ValueError):
    """Fetch target is not https or not on the allow-list. Never retried."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(
            f"URL not allowed: {url}. Allowed sources are the supported issuer "
            "domains (21Shares, VanEck, Bitwise/ETC Group, DDA, CoinShares, "
            "WisdomTree) and justETF, https only."
        )


class FetchError(Exception):
    """Base class for document download failures."""

    http_status: int | None = None


class FetchTimeoutError(FetchError):
    """The request did not complete within its timeout."""


class HttpStatusError(FetchError):
    """The server answered with a non-success status."""

    def __init__(self, status: int, reason: str = ""):
        self.http_status = status
        message = f"HTTP {status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PayloadTooLargeError(FetchError):
    """Declared or received size exceeds the configured maximum."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Document too large ({size} bytes, max {limit} bytes)")


class NetworkError(FetchError):
    """Connection-level failure (DNS, TLS, reset, protocol error)."""


class TextExtractionError(Exception):
    """Neither the primary nor the secondary PDF text method could read the document."""


class UrlNotFoundError(LookupError):
    """No resolution strategy produced a document or direct constituents."""

    def __init__(self, isin: str):
        self.isin = isin
        super().__init__(
            f"No factsheet URL found for ISIN {isin}. The ISIN was found neither "
            "on justETF nor at the supported issuers."
        )


# Workflow result errors

@dataclass
class WorkflowError:
    """Structured failure returned by the workflow."""

    code: ErrorCode
    message: str
    http_status: int | None = None

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.http_status is not None:
            parts.append(f"http_status={self.http_status}")
        return " | ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.http_status is not None:
            data["http_status"] = self.http_status
        return data


# Factory functions for the taxonomy

def invalid_identifier(isin: str) -> WorkflowError:
    """Create an invalid-ISIN error."""
    return WorkflowError(
        code=ErrorCode.INVALID_IDENTIFIER,
        message=(
            f"Invalid ISIN format: {isin!r}. Expected 12 characters "
            "(2 letters + 9 alphanumerics + 1 check digit)."
        ),
    )


def url_not_found(message: str) -> WorkflowError:
    """Create a resolution failure."""
    return WorkflowError(code=ErrorCode.URL_NOT_FOUND, message=message)


def url_not_allowed(url: str) -> WorkflowError:
    """Create an allow-list violation error."""
    return WorkflowError(code=ErrorCode.URL_NOT_ALLOWED, message=str(UrlNotAllowedError(url)))


def fetch_failed(message: str, http_status: int | None = None) -> WorkflowError:
    """Create a download failure."""
    return WorkflowError(code=ErrorCode.FETCH_FAILED, message=message, http_status=http_status)


def parse_failed(message: str) -> WorkflowError:
    """Create a text extraction failure."""
    return WorkflowError(code=ErrorCode.PARSE_FAILED, message=message)


def insufficient_data(message: str) -> WorkflowError:
    """Create a no-constituents error."""
    return WorkflowError(code=ErrorCode.INSUFFICIENT_DATA, message=message)


def weight_sum_invalid(total: float) -> WorkflowError:
    """Create an implausible-sum error."""
    return WorkflowError(
        code=ErrorCode.WEIGHT_SUM_INVALID,
        message=f"Weight sum {total:.2f}% is outside the tolerance (90-110%).",
    )


def internal_error(phase: str, exc: Exception) -> WorkflowError:
    """Create an error for an unexpected exception inside a phase."""
    return WorkflowError(
        code=ErrorCode.INTERNAL_ERROR,
        message=f"Unexpected failure in {phase}: {type(exc).__name__}: {exc}",
    )
