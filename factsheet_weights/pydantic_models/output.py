"""Workflow output schema."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from factsheet_weights.pydantic_models.weights_models import ConstituentWeight


class WeightsResult(BaseModel):
    """Successful workflow result for one ISIN.

    Example:
        {
            "isin": "CH0454664001",
            "as_of_date": "15 January 2025",
            "constituents": [{"name": "BTC", "weight": 100.0}],
            "nav_usd": 31.42,
            "source_pdf_url": "https://cdn.21shares.com/.../Factsheet_ABTC.pdf",
            "cache_status": "MISS",
            "fetched_at": "2025-01-16T09:30:00Z"
        }
    """

    isin: str
    as_of_date: str | None = None
    constituents: list[ConstituentWeight] = Field(default_factory=list)
    nav_usd: float | None = Field(default=None, description="Best-effort NAV per unit in USD")
    source_pdf_url: str
    cache_status: Literal["HIT", "MISS"]
    fetched_at: datetime

    def to_dict(self) -> dict:
        """JSON-ready dictionary."""
        return self.model_dump(mode="json")
