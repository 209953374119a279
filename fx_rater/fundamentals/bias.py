from __future__ import annotations

import math
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from ..config import RaterConfig, default_config
from .models import BiasLabel, EconomicRelease, FundamentalBias, FundamentalsInput

SCORED_CCY = "USD"
INFLATION_BAND = (2.5, 4.0)
PMI_EXPANSION = 50.0
KEY_EVENT_MIN_BIAS = 0.5


def _beats(actual: float, ref: Optional[float]) -> bool:
    return ref is not None and actual > ref


def _inflation_bias(r: EconomicRelease) -> float:
    beat_f = _beats(r.actual, r.forecast)
    lo, hi = INFLATION_BAND
    if lo < r.actual < hi:
        return 1.0 if beat_f else (0.5 if _beats(r.actual, r.previous) else 0.0)
    # too hot or too cold reads as bearish either way
    return -0.5 if beat_f else -1.0


def _growth_bias(r: EconomicRelease) -> float:
    if _beats(r.actual, r.forecast):
        return 1.0
    return 0.5 if _beats(r.actual, r.previous) else -0.5


def _labour_slack_bias(r: EconomicRelease) -> float:
    # higher unemployment/claims is bearish
    if _beats(r.actual, r.forecast):
        return -1.0
    return -0.5 if _beats(r.actual, r.previous) else 0.5


def _pmi_bias(r: EconomicRelease) -> float:
    beat_f = _beats(r.actual, r.forecast)
    if r.actual > PMI_EXPANSION:
        return 1.0 if beat_f else (0.5 if _beats(r.actual, r.previous) else 0.0)
    return -0.5 if beat_f else -1.0


EVENT_BIAS_RULES: Dict[str, Callable[[EconomicRelease], float]] = {
    "CPI": _inflation_bias,
    "Core CPI": _inflation_bias,
    "PCE": _inflation_bias,
    "NFP": _growth_bias,
    "GDP": _growth_bias,
    "Retail Sales": _growth_bias,
    "Rate Decision": _growth_bias,
    "Unemployment": _labour_slack_bias,
    "Jobless Claims": _labour_slack_bias,
    "PMI Manufacturing": _pmi_bias,
    "PMI Services": _pmi_bias,
}


def event_bias(release: EconomicRelease) -> float:
    rule = EVENT_BIAS_RULES.get(release.event)
    return rule(release) if rule else 0.0


def score_release(release: EconomicRelease, event_weights: Mapping[str, float]) -> Tuple[float, float]:
    """Return (weight, signed event bias) for one release."""
    return float(event_weights.get(release.event, 1.0)), event_bias(release)


def _fmt(v: float) -> str:
    return f"{v:g}"


def describe_event(release: EconomicRelease, bias: float) -> str:
    marker = "▲" if bias > 0 else "▼"
    text = f"{marker} {release.event}: {_fmt(release.actual)}"
    if release.forecast is not None:
        text += f" vs {_fmt(release.forecast)}f"
    if release.previous is not None:
        text += f" (prev: {_fmt(release.previous)})"
    return text


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _invert(label: BiasLabel) -> BiasLabel:
    if label == "BULLISH":
        return "BEARISH"
    if label == "BEARISH":
        return "BULLISH"
    return label


def compute_fundamental_bias(fundamentals: FundamentalsInput, cfg: Optional[RaterConfig] = None) -> FundamentalBias:
    """Directional bias for the pair from recent USD releases."""
    fcfg = (cfg or default_config()).fundamentals
    base, quote = fundamentals.base_ccy, fundamentals.quote_ccy

    if SCORED_CCY not in (base, quote):
        return FundamentalBias(
            overall_bias="NEUTRAL",
            strength=0,
            summary="No USD fundamentals analysis for non-USD pairs",
        )

    usd_releases = [r for r in fundamentals.releases if r.currency == SCORED_CCY]
    if not usd_releases:
        return FundamentalBias(
            overall_bias="NEUTRAL",
            strength=0,
            summary="No recent USD economic data available",
        )

    bullish = 0.0
    bearish = 0.0
    key_events: List[str] = []
    for release in usd_releases:
        weight, bias = score_release(release, fcfg["event_weights"])
        weighted = bias * weight
        if weighted > 0:
            bullish += weighted
        elif weighted < 0:
            bearish += abs(weighted)
        if abs(bias) >= KEY_EVENT_MIN_BIAS:
            key_events.append(describe_event(release, bias))

    total = bullish + bearish
    net = bullish - bearish
    strength = min(100.0, abs(net) / total * 100) if total > 0 else 0.0

    usd_bias: BiasLabel = "NEUTRAL"
    if strength > fcfg["strength_threshold"]:
        usd_bias = "BULLISH" if net > 0 else "BEARISH"

    # USD strength pushes XXX/USD down
    pair_bias = _invert(usd_bias) if quote == SCORED_CCY else usd_bias

    summary = (
        f"USD fundamentals show {usd_bias.lower()} bias ({_round_half_up(strength)}% strength) "
        f"based on {len(usd_releases)} recent events."
    )
    if key_events:
        summary += " Key drivers: " + ", ".join(key_events[: fcfg["summary_key_events"]])

    return FundamentalBias(
        overall_bias=pair_bias,
        strength=_round_half_up(strength),
        summary=summary,
        key_events=key_events[: fcfg["max_key_events"]],
    )
