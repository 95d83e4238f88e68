"""Commit phases - persist a successful result and build the output.

Order on both paths: cache upsert (long TTL), success log entry, then a
best-effort NAV lookup that never affects the outcome.
"""

import hashlib

from factsheet_weights.phases.phase_base import PhaseRunner, WorkflowState, ticker_from_factsheet_url
from factsheet_weights.pydantic_models import WeightsResult


class DirectCommitPhase(PhaseRunner):
    """Constituents read straight from an aggregator page (no document)."""

    name = "DirectCommit"

    async def run(self) -> WorkflowState:
        state = self.context.state
        constituents = list(state.direct.constituents)

        await self.write_cache(state.source_url, constituents, None, success=True)
        await self.record_attempt("success", source_url=state.source_url)

        nav = await self.lookup_nav(constituents[0].name if constituents else None)
        state.constituents = constituents
        state.result = WeightsResult(
            isin=state.isin,
            as_of_date=None,
            constituents=constituents,
            nav_usd=nav,
            source_pdf_url=state.source_url,
            cache_status="MISS",
            fetched_at=state.now,
        )
        return WorkflowState.DONE


class CommitPhase(PhaseRunner):
    name = "Commit"

    async def run(self) -> WorkflowState:
        state = self.context.state
        digest = hashlib.sha256(state.data).hexdigest()

        await self.write_cache(state.source_url, state.constituents, state.as_of_date, success=True, sha256_pdf=digest)
        await self.record_attempt(
            "success",
            f"{len(state.constituents)} constituents ({state.provider})",
            http_status=200,
            source_url=state.source_url,
        )

        nav = await self.lookup_nav(ticker_from_factsheet_url(state.source_url))
        state.result = WeightsResult(
            isin=state.isin,
            as_of_date=state.as_of_date,
            constituents=state.constituents,
            nav_usd=nav,
            source_pdf_url=state.source_url,
            cache_status="MISS",
            fetched_at=state.now,
        )
        self.logger.phase_result(self.name, f"{len(state.constituents)} constituents", sha256=digest[:12])
        return WorkflowState.DONE
