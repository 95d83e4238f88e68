"""Read-only per-ISIN mapping (provider, ticker, product page, factsheet URL)."""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from factsheet_weights.pydantic_models import MappingEntry

logger = logging.getLogger(__name__)


class MappingRepository:
    """Lookup of static configuration by ISIN. Loaded once, never mutated."""

    def __init__(self, entries: Mapping[str, MappingEntry] | None = None):
        self._entries: dict[str, MappingEntry] = {
            isin.strip().upper(): entry for isin, entry in (entries or {}).items()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MappingRepository":
        """Build from ``{isin: {provider?, ticker?, productPageUrl?, factsheetUrl?}}``."""
        entries = {isin: MappingEntry.model_validate(raw or {}) for isin, raw in data.items()}
        return cls(entries)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "MappingRepository":
        """Load a mapping JSON file."""
        path = Path(path)
        with path.open(encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"Mapping file must contain a JSON object: {path}")
        repo = cls.from_dict(data)
        logger.debug("Loaded %d mapping entries from %s", len(repo), path)
        return repo

    def get(self, isin: str) -> MappingEntry | None:
        return self._entries.get(isin)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, isin: object) -> bool:
        return isin in self._entries
