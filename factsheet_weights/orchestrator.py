"""Workflow orchestrator - runs one ISIN through the phase state machine.

Phases are separate classes so each one can be tested and reasoned about
in isolation. Between phases, data flows through a per-run RunState (see
phases/phase_base.py): one phase writes its output, the next reads it.

State machine::

    VALIDATE -> CACHE_CHECK -> RESOLVE -+-> DIRECT_COMMIT ------------------------> DONE
                     |                  |
                     +-> DONE (HIT)     +-> FETCH -> EXTRACT -> PARSE -> ESCALATE
                                                                            |
                                                     DONE <- COMMIT <- FINAL_CHECK

Any phase may transition to FAILED instead.
"""

from datetime import datetime, timezone
from pathlib import Path

from factsheet_weights.core.errors import WorkflowError, internal_error
from factsheet_weights.core.fetcher import DocumentFetcher
from factsheet_weights.core.holdings_api import VendorHoldingsClient
from factsheet_weights.core.http_client import HttpClient
from factsheet_weights.core.mapping import MappingRepository
from factsheet_weights.core.ocr import OcrExtractor
from factsheet_weights.core.pipeline_logger import get_logger
from factsheet_weights.core.resolver import UrlResolver
from factsheet_weights.core.stores import CacheStore, FetchLogStore, InMemoryStore
from factsheet_weights.phases import (
    CachePhase,
    CommitPhase,
    DirectCommitPhase,
    EscalationPhase,
    ExtractPhase,
    FetchPhase,
    FinalCheckPhase,
    ParsePhase,
    PhaseContext,
    PhaseRunner,
    ResolvePhase,
    RunState,
    ValidatePhase,
    WorkflowResources,
    WorkflowSettings,
    WorkflowState,
)
from factsheet_weights.pydantic_models import WeightsResult

PHASES: dict[WorkflowState, type[PhaseRunner]] = {
    WorkflowState.VALIDATE: ValidatePhase,
    WorkflowState.CACHE_CHECK: CachePhase,
    WorkflowState.RESOLVE: ResolvePhase,
    WorkflowState.DIRECT_COMMIT: DirectCommitPhase,
    WorkflowState.FETCH: FetchPhase,
    WorkflowState.EXTRACT: ExtractPhase,
    WorkflowState.PARSE: ParsePhase,
    WorkflowState.ESCALATE: EscalationPhase,
    WorkflowState.FINAL_CHECK: FinalCheckPhase,
    WorkflowState.COMMIT: CommitPhase,
}


class WeightsWorkflow:
    """Workflow orchestrator coordinating phase runners.

    Every collaborator is injectable; anything not supplied is built on a
    single shared HttpClient owned by the workflow.
    """

    def __init__(
        self,
        mapping: MappingRepository | None = None,
        cache: CacheStore | None = None,
        fetch_log: FetchLogStore | None = None,
        http: HttpClient | None = None,
        fetcher: DocumentFetcher | None = None,
        resolver: UrlResolver | None = None,
        holdings: VendorHoldingsClient | None = None,
        ocr: OcrExtractor | None = None,
        settings: WorkflowSettings | None = None,
        verbose: bool = False,
        log_dir: str | Path | None = None,
    ):
        """Initialize the workflow.

        Args:
            mapping: Per-ISIN configuration. Empty when omitted.
            cache: Cache store. In-memory when omitted.
            fetch_log: Fetch log store. Shares the in-memory cache store when omitted.
            http: HTTP client used by the default collaborators.
            fetcher: Document downloader.
            resolver: URL resolver.
            holdings: Vendor holdings client.
            ocr: OCR extractor.
            settings: Cache policy.
            verbose: If True, print debug logs.
            log_dir: Directory for per-run log files.
        """
        self.logger = get_logger(verbose=verbose, log_dir=log_dir)
        self._owns_http = http is None
        self.http = http or HttpClient()
        self.mapping = mapping if mapping is not None else MappingRepository()

        store = InMemoryStore() if cache is None or fetch_log is None else None
        holdings = holdings or VendorHoldingsClient(self.http)

        self.resources = WorkflowResources(
            fetcher=fetcher or DocumentFetcher(self.http),
            resolver=resolver or UrlResolver(self.http, self.mapping, holdings),
            holdings=holdings,
            ocr=ocr or OcrExtractor(),
            cache=cache if cache is not None else store,
            fetch_log=fetch_log if fetch_log is not None else store,
            logger=self.logger,
        )
        self.settings = settings or WorkflowSettings()

        self._runs = 0
        self._hits = 0
        self._failures: dict[str, int] = {}
        self._escalations: dict[str, int] = {}

    async def run(self, isin: str) -> WeightsResult | WorkflowError:
        """Run the workflow for one ISIN.

        Never raises: unexpected failures inside a phase are logged and
        returned as an INTERNAL_ERROR WorkflowError.
        """
        state = RunState(raw_isin=isin, now=datetime.now(timezone.utc))
        context = PhaseContext(resources=self.resources, settings=self.settings, state=state)
        self._runs += 1
        self.logger.start_run(isin)

        current = WorkflowState.VALIDATE
        while not current.is_terminal:
            state.visited.append(current)
            phase = PHASES[current](context)
            phase.start()
            try:
                current = await phase.run()
            except Exception as exc:
                self.logger.error(f"[{phase.name}] Unexpected failure", exc=exc)
                state.error = internal_error(phase.name, exc)
                current = WorkflowState.FAILED
            finally:
                phase.end()

        outcome = self._record(state)
        self.logger.end_run(success=current is WorkflowState.DONE, stats=self._run_stats(state))
        return outcome

    def _record(self, state: RunState) -> WeightsResult | WorkflowError:
        for tier in state.escalations:
            self._escalations[tier] = self._escalations.get(tier, 0) + 1
        if state.result is not None:
            if state.result.cache_status == "HIT":
                self._hits += 1
            return state.result
        error = state.error or internal_error("workflow", RuntimeError("no result produced"))
        self._failures[error.code.value] = self._failures.get(error.code.value, 0) + 1
        return error

    def _run_stats(self, state: RunState) -> dict:
        stats = {
            "isin": state.isin or state.raw_isin,
            "path": " -> ".join(s.value for s in state.visited),
            "provider": str(state.provider),
        }
        if state.result is not None:
            stats["cache"] = state.result.cache_status
            stats["constituents"] = len(state.result.constituents)
        if state.error is not None:
            stats["error"] = state.error.code.value
        if state.escalations:
            stats["escalations"] = ", ".join(state.escalations)
        return stats

    def get_stats(self) -> dict:
        """Aggregate statistics across runs of this workflow instance."""
        return {
            "runs": self._runs,
            "cache_hits": self._hits,
            "failures": dict(self._failures),
            "escalations": dict(self._escalations),
        }

    async def aclose(self):
        """Close the HTTP client if the workflow created it."""
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "WeightsWorkflow":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
