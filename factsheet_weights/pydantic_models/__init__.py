"""Pydantic models for the weights workflow.

Modules:
- weights_models: Provider, ConstituentWeight, ParsedFactsheet, resolved sources
- store_models: MappingEntry, CacheEntry, FetchLogEntry
- output: WeightsResult
"""

from factsheet_weights.pydantic_models.weights_models import (
    Provider,
    ConstituentWeight,
    ParsedFactsheet,
    VendorHoldings,
    OcrResult,
    DocumentSource,
    DirectConstituents,
    ResolvedSource,
    weight_sum,
)
from factsheet_weights.pydantic_models.store_models import (
    MappingEntry,
    CacheEntry,
    FetchLogEntry,
    dump_weights,
)
from factsheet_weights.pydantic_models.output import WeightsResult

__all__ = [
    "Provider",
    "ConstituentWeight",
    "ParsedFactsheet",
    "VendorHoldings",
    "OcrResult",
    "DocumentSource",
    "DirectConstituents",
    "ResolvedSource",
    "weight_sum",
    "MappingEntry",
    "CacheEntry",
    "FetchLogEntry",
    "dump_weights",
    "WeightsResult",
]
