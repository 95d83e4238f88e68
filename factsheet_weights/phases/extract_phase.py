"""Extract and parse phases - PDF bytes to text to constituents."""

import asyncio

from factsheet_weights.core.errors import TextExtractionError, parse_failed
from factsheet_weights.core.parser import parse_factsheet_text
from factsheet_weights.core.text_extraction import extract_text
from factsheet_weights.phases.phase_base import PhaseRunner, WorkflowState
from factsheet_weights.pydantic_models import weight_sum


class ExtractPhase(PhaseRunner):
    name = "Extract"

    async def run(self) -> WorkflowState:
        state = self.context.state
        try:
            state.text = await asyncio.to_thread(extract_text, state.data)
        except TextExtractionError as exc:
            await self.record_attempt("error", str(exc), source_url=state.source_url)
            return self.fail(parse_failed(str(exc)))

        self.log(f"{len(state.text)} chars of text", "debug")
        return WorkflowState.PARSE


class ParsePhase(PhaseRunner):
    name = "Parse"

    async def run(self) -> WorkflowState:
        state = self.context.state
        parsed = parse_factsheet_text(state.text, state.provider)
        state.constituents = list(parsed.constituents)
        state.as_of_date = parsed.as_of_date

        self.logger.phase_result(
            self.name,
            f"{len(parsed.constituents)} constituents",
            provider=str(state.provider),
            sum=round(weight_sum(parsed.constituents), 2),
            as_of=parsed.as_of_date,
        )
        return WorkflowState.ESCALATE
