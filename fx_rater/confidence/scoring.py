from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional

import numpy as np

from ..config import RaterConfig, default_config
from ..utils import EPS, clamp, clamp01
from .features import FAVORED_ZONE, to_confidence01
from .models import DeterministicResult, ScoringInputs, Side

logger = logging.getLogger(__name__)

RSI_TARGETS = {"BUY": 62.0, "SELL": 38.0}
RSI_HALF_WIDTH = 20.0
MACD_GAIN = 150.0
VOL_PEAK_ATR_PCT = 0.18
VOL_WIDTH = 0.10
BB_TARGETS = {"BUY": 0.35, "SELL": 0.65}
BB_HALF_WIDTH = 0.35
MTF_GAIN = 2.0
# (max distance in ATR, proximity multiplier)
ZONE_PROXIMITY_STEPS = ((0.4, 1.0), (0.7, 0.7))
ZONE_FAR_MULTIPLIER = 0.4
NO_ZONE_SCORE = 0.5


class InvalidScoringInputs(ValueError):
    """Raised when scoring inputs cannot produce a meaningful score."""


def band_score(x: float, mid: float, half_width: float) -> float:
    t = abs(x - mid) / max(half_width, EPS)
    return clamp01(1 - t)


def gaussian_score(x: float, pref: float, width: float) -> float:
    z = (x - pref) / max(width, EPS)
    return math.exp(-z * z)


def trend_score(i: ScoringInputs) -> float:
    if i.side == "BUY":
        aligned = i.price > i.ema20 > i.ema50 > i.ema100
        slopes_agree = i.ema20_slope > 0 and i.ema50_slope > 0
    else:
        aligned = i.price < i.ema20 < i.ema50 < i.ema100
        slopes_agree = i.ema20_slope < 0 and i.ema50_slope < 0
    return (1.0 if aligned else 0.0) * (1.0 if slopes_agree else 0.8)


def rsi_score(rsi: float, side: Side) -> float:
    return band_score(rsi, RSI_TARGETS[side], RSI_HALF_WIDTH)


def macd_score(macd_hist: float, side: Side) -> float:
    raw = math.tanh((macd_hist or 0.0) * MACD_GAIN)
    return clamp01(0.5 + 0.5 * raw) if side == "BUY" else clamp01(0.5 - 0.5 * raw)


def volatility_score(atr_pct: float) -> float:
    return gaussian_score(atr_pct, VOL_PEAK_ATR_PCT, VOL_WIDTH)


def bollinger_score(price: float, lower: float, upper: float, side: Side) -> float:
    pos = (price - lower) / max(EPS, upper - lower)
    return clamp01(1 - abs(pos - BB_TARGETS[side]) / BB_HALF_WIDTH)


def zone_proximity(dist_atr: float) -> float:
    for max_dist, mult in ZONE_PROXIMITY_STEPS:
        if dist_atr <= max_dist:
            return mult
    return ZONE_FAR_MULTIPLIER


def sr_score(i: ScoringInputs) -> float:
    if i.zone.type == "none":
        return NO_ZONE_SCORE
    dist_atr = abs(i.entry - i.zone.mid) / max(i.atr, EPS)
    side_ok = i.zone.type == FAVORED_ZONE[i.side]
    score = (0.6 if side_ok else 0.4) + 0.4 * (i.zone.strength / 100) * zone_proximity(dist_atr)
    return clamp01(score)


def mtf_score(bias4h: float, side: Side) -> float:
    bias = clamp01(0.5 + 0.5 * math.tanh((bias4h or 0.0) * MTF_GAIN))
    return bias if side == "BUY" else 1 - bias


def fill_probability(entry_dist_atr: float, decay_atr: float = 0.6) -> float:
    return clamp01(math.exp(-entry_dist_atr / max(decay_atr, EPS)))


def adr_penalty(adr_used: float, guardrails: Any) -> float:
    for rule in guardrails:
        if adr_used >= rule["min"]:
            return rule["penalty"]
    return 0.0


def validate_scoring_inputs(i: ScoringInputs) -> None:
    bad = [name for name, value in i.numeric_fields().items() if not np.isfinite(value)]
    if bad:
        raise InvalidScoringInputs(f"Non-finite scoring inputs: {', '.join(sorted(bad))}")
    if i.price <= 0:
        raise InvalidScoringInputs(f"Price must be positive, got {i.price}")
    if i.atr < 0:
        raise InvalidScoringInputs(f"ATR must be non-negative, got {i.atr}")


def deterministic_confidence(i: ScoringInputs, cfg: Optional[RaterConfig] = None) -> DeterministicResult:
    """
    Score a setup without any external opinion.

    Returns the conditional win probability (given the order fills), the
    fill probability and the headline confidence that combines them.
    Session and news flags on the inputs are carried but never scored.
    """
    scfg = (cfg or default_config()).scoring
    if scfg["validate_inputs"]:
        validate_scoring_inputs(i)

    components: Dict[str, float] = {
        "trend": trend_score(i),
        "rsi": rsi_score(i.rsi, i.side),
        "sr": sr_score(i),
        "macd": macd_score(i.macd_hist, i.side),
        "bollinger": bollinger_score(i.price, i.bb_lower, i.bb_upper, i.side),
        "volatility": volatility_score(i.atr_pct),
    }
    mtf = mtf_score(i.bias4h, i.side)

    w = scfg["weights"]
    base_blend = sum(w[k] * components[k] for k in w)
    blend = base_blend * (1 + scfg["mtf_tilt"] * (mtf - 0.5) * 2)

    if i.squeeze:
        blend *= scfg["squeeze"]["buy"] if i.side == "BUY" else scfg["squeeze"]["sell"]

    if i.algo_confidence is not None:
        aw = scfg["algo_confidence_weight"]
        blend = (1 - aw) * blend + aw * i.algo_confidence

    p_hit = to_confidence01(blend, scfg["confidence_range"])
    penalty = adr_penalty(i.adr_used, scfg["adr_guardrails"])
    p_hit -= penalty
    lo, hi = scfg["clamp"]
    p_hit = clamp(clamp01(p_hit), lo, hi)

    p_fill = fill_probability(i.entry_dist_atr, scfg["fill_decay_atr"])
    if i.zone.type != "none" and i.zone.type != FAVORED_ZONE[i.side]:
        p_fill *= scfg["wrong_side_fill_multiplier"]
    p_fill = clamp01(p_fill)

    headline = clamp01(0.5 * p_hit + 0.5 * (p_hit * p_fill))

    logger.debug(
        "deterministic %s blend=%.4f p_hit=%.4f p_fill=%.4f adr_penalty=%.2f",
        i.side,
        blend,
        p_hit,
        p_fill,
        penalty,
    )

    components["mtf"] = mtf
    return DeterministicResult(
        confidence_conditional=p_hit,
        p_fill=p_fill,
        headline_confidence=headline,
        telemetry={
            "components": components,
            "base_blend": base_blend,
            "blend": blend,
            "guardrails": {
                "adr_used": i.adr_used,
                "adr_penalty": penalty,
                "red_news_soon": False,
                "session": "optimal",
            },
            "geom": {
                "entry_dist_atr": i.entry_dist_atr,
                "zone_type": i.zone.type,
                "zone_strength": i.zone.strength,
                "zone_mid": i.zone.mid,
            },
        },
    )
