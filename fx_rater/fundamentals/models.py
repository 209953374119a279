from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional

EconomicEvent = Literal[
    "CPI",
    "Core CPI",
    "PCE",
    "NFP",
    "Unemployment",
    "Jobless Claims",
    "GDP",
    "PMI Manufacturing",
    "PMI Services",
    "Retail Sales",
    "Rate Decision",
]
Currency = Literal["USD", "EUR", "GBP", "JPY", "CHF", "AUD", "NZD", "CAD"]
BiasLabel = Literal["BULLISH", "BEARISH", "NEUTRAL"]


@dataclass(frozen=True)
class EconomicRelease:
    currency: Currency
    event: EconomicEvent
    time: str
    actual: float
    forecast: Optional[float] = None
    previous: Optional[float] = None


@dataclass(frozen=True)
class FundamentalsInput:
    base_ccy: Currency
    quote_ccy: Currency
    releases: List[EconomicRelease] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseCcy": self.base_ccy,
            "quoteCcy": self.quote_ccy,
            "releases": [asdict(r) for r in self.releases],
        }


@dataclass(frozen=True)
class FundamentalsValidation:
    ok: bool
    cleaned: FundamentalsInput
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "cleaned": self.cleaned.to_dict(), "issues": list(self.issues)}


@dataclass(frozen=True)
class FundamentalBias:
    overall_bias: BiasLabel
    strength: int
    summary: str
    key_events: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
