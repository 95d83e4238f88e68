"""Persistence and configuration records.

- MappingEntry: static per-ISIN configuration (read-only)
- CacheEntry: one row per ISIN, upserted at the end of a run
- FetchLogEntry: append-only audit row per run
"""

import json
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from factsheet_weights.pydantic_models.weights_models import ConstituentWeight, Provider


class MappingEntry(BaseModel):
    """Static per-ISIN configuration.

    Accepts both the snake_case field names and the camelCase keys used in
    mapping JSON files (``productPageUrl``, ``factsheetUrl``).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    provider: Provider | None = None
    ticker: str | None = None
    product_page_url: str | None = Field(default=None, alias="productPageUrl")
    factsheet_url: str | None = Field(default=None, alias="factsheetUrl")

    @field_validator("provider", mode="before")
    @classmethod
    def _lenient_provider(cls, value):
        if value is None:
            return None
        return Provider.parse(value)

    @property
    def effective_provider(self) -> Provider:
        return self.provider or Provider.UNKNOWN


class CacheEntry(BaseModel):
    """Cached result for one ISIN. Empty ``weights_json`` list marks a negative entry."""

    isin: str
    source_pdf_url: str
    as_of_date: str | None = None
    weights_json: str = "[]"
    fetched_at: datetime
    expires_at: datetime
    parse_version: int
    sha256_pdf: str | None = None

    def constituents(self) -> list[ConstituentWeight]:
        """Deserialize the stored weights."""
        return [ConstituentWeight.model_validate(item) for item in json.loads(self.weights_json)]

    def is_fresh(self, now: datetime, parse_version: int) -> bool:
        """Unexpired and written by the current extraction logic."""
        return self.expires_at > now and self.parse_version == parse_version


class FetchLogEntry(BaseModel):
    """Audit record of one workflow attempt."""

    isin: str
    attempt_at: datetime
    status: Literal["success", "error"]
    message: str | None = None
    http_status: int | None = None
    source_url: str | None = None


def dump_weights(constituents: list[ConstituentWeight]) -> str:
    """Serialize constituents for ``CacheEntry.weights_json``."""
    return json.dumps([c.model_dump() for c in constituents])
