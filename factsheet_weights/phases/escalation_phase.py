"""Escalation and final check phases.

When the parsed result is implausible (no constituents, or a sum outside
[90, 110]) two more expensive tiers are tried in order:

1. Vendor holdings API (21Shares and unknown providers only): catalog
   ticker -> endpoint constituents, adopted when at least one comes back.
2. OCR of the allocation page, adopted only when it is itself plausible.

Failures inside a tier are logged as warnings and never end the run.
"""

from factsheet_weights.core.config import plausible_sum
from factsheet_weights.core.errors import insufficient_data, weight_sum_invalid
from factsheet_weights.phases.phase_base import PhaseRunner, WorkflowState
from factsheet_weights.pydantic_models import ConstituentWeight, Provider, weight_sum

VENDOR_API_PROVIDERS = frozenset({Provider.TWENTY_ONE_SHARES, Provider.UNKNOWN})

NO_CONSTITUENTS_MESSAGE = "No constituents extracted. Asset allocation may be embedded as an image."


def is_plausible(constituents: list[ConstituentWeight]) -> bool:
    return len(constituents) >= 1 and plausible_sum(weight_sum(constituents))


class EscalationPhase(PhaseRunner):
    name = "Escalate"

    async def run(self) -> WorkflowState:
        state = self.context.state
        if is_plausible(state.constituents):
            return WorkflowState.FINAL_CHECK

        if state.provider in VENDOR_API_PROVIDERS:
            try:
                await self._try_vendor_api()
            except Exception as exc:
                self.log(f"Vendor API fallback failed: {type(exc).__name__}: {exc}", "warning")

        if not is_plausible(state.constituents):
            try:
                await self._try_ocr()
            except Exception as exc:
                self.log(f"OCR fallback failed: {type(exc).__name__}: {exc}", "warning")

        return WorkflowState.FINAL_CHECK

    async def _try_vendor_api(self):
        state = self.context.state
        ticker = await self.context.holdings.resolve_ticker_from_catalog(state.isin)
        if not ticker:
            self.log("No catalog ticker", "debug")
            return
        holdings = await self.context.holdings.fetch_constituents(ticker)
        if holdings is None or not holdings.constituents:
            self.log("Vendor API returned no constituents", "debug", ticker=ticker)
            return
        state.constituents = list(holdings.constituents)
        state.as_of_date = holdings.as_of_date or state.as_of_date
        state.escalations.append("vendor_api")
        self.logger.milestone(f"Vendor API: {len(state.constituents)} constituents", ticker=ticker)

    async def _try_ocr(self):
        state = self.context.state
        result = await self.context.ocr.extract_via_ocr(state.data)
        if not is_plausible(result.constituents):
            self.log(
                "OCR result rejected",
                "debug",
                count=len(result.constituents),
                sum=round(weight_sum(result.constituents), 2),
            )
            return
        state.constituents = list(result.constituents)
        state.escalations.append("ocr")
        self.logger.milestone(f"OCR: {len(state.constituents)} constituents")


class FinalCheckPhase(PhaseRunner):
    name = "FinalCheck"

    async def run(self) -> WorkflowState:
        state = self.context.state
        if is_plausible(state.constituents):
            return WorkflowState.COMMIT

        if not state.constituents:
            error = insufficient_data(NO_CONSTITUENTS_MESSAGE)
        else:
            error = weight_sum_invalid(weight_sum(state.constituents))
        await self.record_attempt("error", error.message, source_url=state.source_url)
        return self.fail(error)
