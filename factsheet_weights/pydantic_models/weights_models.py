"""Models for extracted constituent weights and resolved sources."""

from enum import Enum

from pydantic import BaseModel, Field


class Provider(str, Enum):
    """Issuer family that decides which parsing heuristics apply.

    - TWENTY_ONE_SHARES: 21Shares; also the family served by the holdings API
    - VANECK: VanEck ETNs and KIDs
    - BITWISE: Bitwise / ETC Group
    - DDA: Deutsche Digital Assets
    - COINSHARES: CoinShares KIDs
    - WISDOMTREE: WisdomTree
    - JUSTETF: aggregator, only ever produces direct constituents
    - UNKNOWN: generic rules
    """

    TWENTY_ONE_SHARES = "21shares"
    VANECK = "vaneck"
    BITWISE = "bitwise"
    DDA = "dda"
    COINSHARES = "coinshares"
    WISDOMTREE = "wisdomtree"
    JUSTETF = "justetf"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | Provider | None") -> "Provider":
        """Lenient conversion; anything unrecognised becomes UNKNOWN."""
        if isinstance(value, Provider):
            return value
        if not value:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class ConstituentWeight(BaseModel):
    """One asset and its percentage weight."""

    name: str = Field(min_length=1, description="Ticker or asset label as found in the source")
    weight: float = Field(gt=0, le=100, description="Percentage weight")


class ParsedFactsheet(BaseModel):
    """Parser output."""

    as_of_date: str | None = None
    constituents: list[ConstituentWeight] = Field(default_factory=list)

    @property
    def weight_sum(self) -> float:
        return weight_sum(self.constituents)


class VendorHoldings(BaseModel):
    """Constituents returned by the issuer holdings API."""

    constituents: list[ConstituentWeight]
    as_of_date: str | None = None


class OcrResult(BaseModel):
    """Raw OCR text and the constituents parsed from it."""

    text: str = ""
    constituents: list[ConstituentWeight] = Field(default_factory=list)


class DocumentSource(BaseModel):
    """Resolved factsheet address and the provider whose rules apply."""

    url: str
    provider: Provider = Provider.UNKNOWN


class DirectConstituents(BaseModel):
    """Aggregator result that carries constituents without any document."""

    provider: Provider = Provider.JUSTETF
    constituents: list[ConstituentWeight]
    source_url: str


ResolvedSource = DocumentSource | DirectConstituents


def weight_sum(constituents: list[ConstituentWeight]) -> float:
    """Sum of weights."""
    return sum(c.weight for c in constituents)
