"""Phase runners for the weights workflow.

Each state of the workflow state machine has one runner class that reads
the shared context, writes its output and returns the next state.
"""

from factsheet_weights.phases.phase_base import (
    PhaseRunner,
    PhaseContext,
    WorkflowResources,
    WorkflowSettings,
    RunState,
    WorkflowState,
    ticker_from_factsheet_url,
)
from factsheet_weights.phases.validate_phase import ValidatePhase, normalize_isin, is_valid_isin
from factsheet_weights.phases.cache_phase import CachePhase
from factsheet_weights.phases.resolve_phase import ResolvePhase
from factsheet_weights.phases.fetch_phase import FetchPhase
from factsheet_weights.phases.extract_phase import ExtractPhase, ParsePhase
from factsheet_weights.phases.escalation_phase import EscalationPhase, FinalCheckPhase, is_plausible
from factsheet_weights.phases.commit_phase import CommitPhase, DirectCommitPhase

__all__ = [
    "PhaseRunner",
    "PhaseContext",
    "WorkflowResources",
    "WorkflowSettings",
    "RunState",
    "WorkflowState",
    "ticker_from_factsheet_url",
    "ValidatePhase",
    "normalize_isin",
    "is_valid_isin",
    "CachePhase",
    "ResolvePhase",
    "FetchPhase",
    "ExtractPhase",
    "ParsePhase",
    "EscalationPhase",
    "FinalCheckPhase",
    "is_plausible",
    "CommitPhase",
    "DirectCommitPhase",
]
