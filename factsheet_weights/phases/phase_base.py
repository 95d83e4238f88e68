"""Base classes for workflow phases.

The context is split into three parts so responsibilities are clear:
- **WorkflowResources** (frozen): collaborators created once per workflow:
  fetcher, resolver, vendor client, OCR extractor, stores, logger.
- **WorkflowSettings** (frozen): cache policy that never changes mid-run.
- **RunState** (mutable): the data that accumulates as one ISIN moves
  through the state machine.

Each phase reads what it needs from the context, writes its output to the
state and returns the next WorkflowState. The orchestrator loops until it
reaches DONE or FAILED.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from factsheet_weights.core.config import CacheConfig, RegexPatterns
from factsheet_weights.core.errors import WorkflowError
from factsheet_weights.core.fetcher import DocumentFetcher
from factsheet_weights.core.holdings_api import VendorHoldingsClient
from factsheet_weights.core.ocr import OcrExtractor
from factsheet_weights.core.pipeline_logger import PipelineLogger
from factsheet_weights.core.resolver import UrlResolver
from factsheet_weights.core.stores import CacheStore, FetchLogStore
from factsheet_weights.pydantic_models import (
    CacheEntry,
    ConstituentWeight,
    DirectConstituents,
    FetchLogEntry,
    Provider,
    WeightsResult,
    dump_weights,
)

_FACTSHEET_TICKER = re.compile(RegexPatterns.FACTSHEET_TICKER, re.IGNORECASE)


class WorkflowState(str, Enum):
    """Named states of the per-ISIN state machine."""
    VALIDATE = "validate"
    CACHE_CHECK = "cache_check"
    RESOLVE = "resolve"
    DIRECT_COMMIT = "direct_commit"
    FETCH = "fetch"
    EXTRACT = "extract"
    PARSE = "parse"
    ESCALATE = "escalate"
    FINAL_CHECK = "final_check"
    COMMIT = "commit"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowState.DONE, WorkflowState.FAILED)


# Split Context Classes

@dataclass(frozen=True)
class WorkflowResources:
    """Shared collaborators - created once, never modified."""

    fetcher: DocumentFetcher
    resolver: UrlResolver
    holdings: VendorHoldingsClient
    ocr: OcrExtractor
    cache: CacheStore
    fetch_log: FetchLogStore
    logger: PipelineLogger


@dataclass(frozen=True)
class WorkflowSettings:
    """Cache policy - set at init, never modified."""

    parse_version: int = CacheConfig.PARSE_VERSION
    ttl_success_seconds: int = CacheConfig.TTL_SUCCESS_SECONDS
    ttl_failure_seconds: int = CacheConfig.TTL_FAILURE_SECONDS


@dataclass
class RunState:
    """Mutable state of one ISIN run.

    Each field is written by exactly one phase and read downstream:
    - isin: Written by Validate (normalized), read by everyone
    - source_url/provider/direct: Written by Resolve
    - data: Written by Fetch, read by Extract/Escalate/Commit
    - text: Written by Extract, read by Parse
    - constituents/as_of_date: Written by Parse, replaced by Escalate
    - error/result: Terminal outputs
    """

    raw_isin: str
    now: datetime
    isin: str = ""
    source_url: str | None = None
    provider: Provider = Provider.UNKNOWN
    direct: DirectConstituents | None = None
    data: bytes | None = None
    text: str = ""
    constituents: list[ConstituentWeight] = field(default_factory=list)
    as_of_date: str | None = None
    escalations: list[str] = field(default_factory=list)
    visited: list[WorkflowState] = field(default_factory=list)
    error: WorkflowError | None = None
    result: WeightsResult | None = None


class PhaseContext:
    """Slim context holding references to the three component contexts.

    Resources and settings are reachable directly (``ctx.fetcher`` instead
    of ``ctx.resources.fetcher``) through the properties below.
    """

    def __init__(self, resources: WorkflowResources, settings: WorkflowSettings, state: RunState):
        self.resources = resources
        self.settings = settings
        self.state = state

    # -- Resource properties (read-only) --

    @property
    def fetcher(self) -> DocumentFetcher:
        return self.resources.fetcher

    @property
    def resolver(self) -> UrlResolver:
        return self.resources.resolver

    @property
    def holdings(self) -> VendorHoldingsClient:
        return self.resources.holdings

    @property
    def ocr(self) -> OcrExtractor:
        return self.resources.ocr

    @property
    def cache(self) -> CacheStore:
        return self.resources.cache

    @property
    def fetch_log(self) -> FetchLogStore:
        return self.resources.fetch_log

    @property
    def logger(self) -> PipelineLogger:
        return self.resources.logger

    # -- Settings properties (read-only) --

    @property
    def parse_version(self) -> int:
        return self.settings.parse_version

    def expiry(self, success: bool) -> datetime:
        """Expiry timestamp for a cache write made in this run."""
        seconds = self.settings.ttl_success_seconds if success else self.settings.ttl_failure_seconds
        return self.state.now + timedelta(seconds=seconds)

    # -- State shortcuts --

    @property
    def isin(self) -> str:
        return self.state.isin

    @property
    def now(self) -> datetime:
        return self.state.now


def ticker_from_factsheet_url(url: str | None) -> str | None:
    """``.../Factsheet_ABTC.pdf`` -> ``ABTC``."""
    if not url:
        return None
    match = _FACTSHEET_TICKER.search(url)
    return match.group(1).upper() if match else None


class PhaseRunner(ABC):
    """Base class for workflow phase runners.

    Each phase:
    - Has a name for logging
    - Takes a PhaseContext with shared state
    - Returns the next WorkflowState
    """

    name: str = "unnamed"

    def __init__(self, context: PhaseContext):
        """Initialize the phase runner.

        Args:
            context: Shared workflow context.
        """
        self.context = context
        self.logger = context.logger

    @abstractmethod
    async def run(self) -> WorkflowState:
        """Execute the phase.

        Returns:
            The state to transition to.
        """
        pass

    def log(self, message: str, level: str = "info", **data):
        """Log a message with phase context."""
        if level == "debug":
            self.logger.debug(f"[{self.name}] {message}", **data)
        elif level == "warning":
            self.logger.warning(f"[{self.name}] {message}", **data)
        elif level == "error":
            self.logger.error(f"[{self.name}] {message}", **data)
        else:
            self.logger.info(f"[{self.name}] {message}", **data)

    def start(self):
        """Signal phase start."""
        self.logger.start_phase(self.name)

    def end(self):
        """Signal phase end."""
        self.logger.end_phase()

    def fail(self, error: WorkflowError) -> WorkflowState:
        """Record a terminal error and transition to FAILED."""
        self.context.state.error = error
        self.log(str(error), "error")
        return WorkflowState.FAILED

    # -- Store helpers shared by several phases --

    async def record_attempt(
        self,
        status: str,
        message: str | None = None,
        http_status: int | None = None,
        source_url: str | None = None,
    ):
        """Append one row to the fetch log, stamped with the run time."""
        await self.context.fetch_log.append(
            FetchLogEntry(
                isin=self.context.isin,
                attempt_at=self.context.now,
                status=status,
                message=message,
                http_status=http_status,
                source_url=source_url,
            )
        )

    async def write_cache(
        self,
        source_url: str,
        constituents: list[ConstituentWeight],
        as_of_date: str | None,
        success: bool,
        sha256_pdf: str | None = None,
    ):
        """Upsert the cache row for this ISIN."""
        await self.context.cache.upsert(
            CacheEntry(
                isin=self.context.isin,
                source_pdf_url=source_url,
                as_of_date=as_of_date,
                weights_json=dump_weights(constituents),
                fetched_at=self.context.now,
                expires_at=self.context.expiry(success),
                parse_version=self.context.parse_version,
                sha256_pdf=sha256_pdf,
            )
        )

    async def lookup_nav(self, ticker: str | None) -> float | None:
        """Best-effort NAV; None when no ticker or the endpoint fails."""
        if not ticker:
            return None
        nav = await self.context.holdings.fetch_nav(ticker)
        if nav is not None:
            self.log(f"NAV {nav} USD", "debug", ticker=ticker)
        return nav
