"""Validate phase - normalizes and checks the ISIN. No I/O, no log entry."""

import re

from factsheet_weights.core.config import RegexPatterns
from factsheet_weights.core.errors import invalid_identifier
from factsheet_weights.phases.phase_base import PhaseRunner, WorkflowState

_ISIN = re.compile(RegexPatterns.ISIN)


def normalize_isin(raw: str) -> str:
    """Trim, uppercase and drop internal whitespace."""
    return re.sub(r"\s+", "", (raw or "").strip().upper())


def is_valid_isin(isin: str) -> bool:
    return bool(_ISIN.match(isin))


class ValidatePhase(PhaseRunner):
    name = "Validate"

    async def run(self) -> WorkflowState:
        state = self.context.state
        state.isin = normalize_isin(state.raw_isin)
        if not is_valid_isin(state.isin):
            return self.fail(invalid_identifier(state.raw_isin))
        return WorkflowState.CACHE_CHECK
