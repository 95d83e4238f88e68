"""Cache phase - serves a fresh cached result without touching the network.

A fresh entry is unexpired and was written by the current parse version.
Negative entries (empty weights from a failed download) are served too.
"""

from factsheet_weights.phases.phase_base import PhaseRunner, WorkflowState, ticker_from_factsheet_url
from factsheet_weights.pydantic_models import WeightsResult


class CachePhase(PhaseRunner):
    name = "Cache"

    async def run(self) -> WorkflowState:
        entry = await self.context.cache.get(self.context.isin)
        if entry is None:
            self.log("miss", "debug")
            return WorkflowState.RESOLVE
        if not entry.is_fresh(self.context.now, self.context.parse_version):
            self.log(
                "stale",
                "debug",
                expires_at=entry.expires_at.isoformat(),
                parse_version=entry.parse_version,
            )
            return WorkflowState.RESOLVE

        constituents = entry.constituents()
        nav = await self.lookup_nav(ticker_from_factsheet_url(entry.source_pdf_url))
        self.context.state.result = WeightsResult(
            isin=self.context.isin,
            as_of_date=entry.as_of_date,
            constituents=constituents,
            nav_usd=nav,
            source_pdf_url=entry.source_pdf_url,
            cache_status="HIT",
            fetched_at=entry.fetched_at,
        )
        self.logger.milestone(f"Cache HIT: {len(constituents)} constituents", url=entry.source_pdf_url)
        return WorkflowState.DONE
