"""Core utilities for the weights workflow."""

from factsheet_weights.core.config import (
    USER_AGENT,
    CacheConfig,
    FetchConfig,
    DiscoveryConfig,
    VendorApiConfig,
    OcrConfig,
    ParserLimits,
    RegexPatterns,
    plausible_sum,
)
from factsheet_weights.core.pipeline_logger import PipelineLogger, get_logger, reset_logger
from factsheet_weights.core.errors import (
    ErrorCode,
    WorkflowError,
    UrlNotAllowedError,
    UrlNotFoundError,
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    PayloadTooLargeError,
    NetworkError,
    TextExtractionError,
    invalid_identifier,
    url_not_found,
    url_not_allowed,
    fetch_failed,
    parse_failed,
    insufficient_data,
    weight_sum_invalid,
    internal_error,
)
from factsheet_weights.core.allowlist import is_allowed, assert_allowed
from factsheet_weights.core.http_client import HttpClient
from factsheet_weights.core.fetcher import DocumentFetcher
from factsheet_weights.core.pdf_reader import PDFReader
from factsheet_weights.core.text_extraction import extract_text
from factsheet_weights.core.ocr import OcrExtractor, tesseract_recognizer
from factsheet_weights.core.parser import (
    parse_factsheet_text,
    extract_as_of_date,
    extract_relevant_section,
    extract_constituents,
    extract_single_asset,
    normalize_weights,
)
from factsheet_weights.core.holdings_api import VendorHoldingsClient
from factsheet_weights.core.resolver import UrlResolver, detect_provider_from_url
from factsheet_weights.core.mapping import MappingRepository
from factsheet_weights.core.stores import CacheStore, FetchLogStore, InMemoryStore, SqlStore

__all__ = [
    # Config
    "USER_AGENT",
    "CacheConfig",
    "FetchConfig",
    "DiscoveryConfig",
    "VendorApiConfig",
    "OcrConfig",
    "ParserLimits",
    "RegexPatterns",
    "plausible_sum",
    # Logging
    "PipelineLogger",
    "get_logger",
    "reset_logger",
    # Errors
    "ErrorCode",
    "WorkflowError",
    "UrlNotAllowedError",
    "UrlNotFoundError",
    "FetchError",
    "FetchTimeoutError",
    "HttpStatusError",
    "PayloadTooLargeError",
    "NetworkError",
    "TextExtractionError",
    "invalid_identifier",
    "url_not_found",
    "url_not_allowed",
    "fetch_failed",
    "parse_failed",
    "insufficient_data",
    "weight_sum_invalid",
    "internal_error",
    # Network
    "is_allowed",
    "assert_allowed",
    "HttpClient",
    "DocumentFetcher",
    # Documents
    "PDFReader",
    "extract_text",
    "OcrExtractor",
    "tesseract_recognizer",
    # Parsing
    "parse_factsheet_text",
    "extract_as_of_date",
    "extract_relevant_section",
    "extract_constituents",
    "extract_single_asset",
    "normalize_weights",
    # Sources and stores
    "VendorHoldingsClient",
    "UrlResolver",
    "detect_provider_from_url",
    "MappingRepository",
    "CacheStore",
    "FetchLogStore",
    "InMemoryStore",
    "SqlStore",
]
