"""Crypto ETP Factsheet Weights.

Resolves an ISIN to the issuer's factsheet, downloads and parses it, and
returns the fund's constituent weights with cache and audit log.

Architecture:
    core/            - HTTP, allow-list, fetcher, PDF/OCR, parser, resolver, stores
    phases/          - Phase runner classes for the workflow state machine
    pydantic_models/ - Pydantic models for internal and output data

Usage:
    from factsheet_weights import WeightsWorkflow

    async with WeightsWorkflow() as workflow:
        result = await workflow.run("CH0454664001")

CLI:
    factsheet-weights CH0454664001
"""

from factsheet_weights.orchestrator import WeightsWorkflow
from factsheet_weights.core.errors import ErrorCode, WorkflowError
from factsheet_weights.pydantic_models import (
    # Domain models
    Provider,
    ConstituentWeight,
    ParsedFactsheet,
    # Store records
    MappingEntry,
    CacheEntry,
    FetchLogEntry,
    # Output
    WeightsResult,
)

__all__ = [
    # Main entry point
    "WeightsWorkflow",
    # Errors
    "ErrorCode",
    "WorkflowError",
    # Domain models
    "Provider",
    "ConstituentWeight",
    "ParsedFactsheet",
    # Store records
    "MappingEntry",
    "CacheEntry",
    "FetchLogEntry",
    # Output
    "WeightsResult",
]
