from __future__ import annotations

import json
import math
from typing import Any, Dict, Mapping, Tuple

from ..utils import clamp, safe_float
from .models import AIAssessment, DeterministicResult, ScoringInputs, VolumeType

DEFAULT_GATE_BAND = (0.45, 0.70)

AI_CONFIDENCE_RANGE = (0.2, 0.9)
DELTA_CONFIDENCE_RANGE = (-0.15, 0.15)
DELTA_P_FILL_RANGE = (-0.2, 0.2)

AI_SYSTEM_PROMPT = """
You are a trading risk rater. Return ONLY valid JSON. Evaluate a limit-order setup within a 36h horizon.
Score = probability TP is hit before SL once filled.
Rubric:
- 0.80-0.90: multiple strong, aligned confluences (trend+MTF+structure+clean entry).
- 0.60-0.79: good setup with confirmation and no major red flags.
- 0.40-0.59: mixed/average.
- 0.20-0.39: weak/contradictory.
Ignore session and news effects (assume optimal session, no red news).
Your adjustment must be conservative: do not exceed +/-0.15 delta to the provided base score.
Respond with keys: ai_confidence_conditional, delta_confidence, delta_p_fill, direction_agree, reasons.
""".strip()


def within_gate(confidence: float, band: Tuple[float, float] = DEFAULT_GATE_BAND) -> bool:
    """Both ends of the band are inclusive."""
    lo, hi = band
    return lo <= confidence <= hi


def build_ai_request_payload(scored: ScoringInputs, base: DeterministicResult) -> Dict[str, Any]:
    return {
        "side": scored.side,
        "price": scored.price,
        "entry": scored.entry,
        "sl": scored.sl,
        "atr": scored.atr,
        "atrPct": scored.atr_pct,
        "rsi": scored.rsi,
        "macdHist": scored.macd_hist,
        "ema20": scored.ema20,
        "ema50": scored.ema50,
        "ema100": scored.ema100,
        "ema20Slope": scored.ema20_slope,
        "ema50Slope": scored.ema50_slope,
        "bbLower": scored.bb_lower,
        "bbUpper": scored.bb_upper,
        "bbWidthPct": scored.bb_width_pct,
        "bias4h": scored.bias4h,
        "squeeze": scored.squeeze,
        "adrUsed": scored.adr_used,
        "session": scored.session,
        # scoring assumes no adverse news, so the rater is told the same
        "redNewsSoon": False,
        "zone": {
            "type": scored.zone.type,
            "strength": scored.zone.strength,
            "mid": scored.zone.mid,
        },
        "entryDistATR": scored.entry_dist_atr,
        "base_confidence_conditional": base.confidence_conditional,
        "p_fill": base.p_fill,
    }


def build_ai_user_prompt(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload)


def parse_rater_output(raw: Any) -> Any:
    """Accept a JSON string/bytes or an already parsed object."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        return json.loads(raw)
    return raw


def _num(value: Any, default: float) -> float:
    f = safe_float(value) if value is not None else default
    return f if math.isfinite(f) else default


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "y"}
    return bool(value)


def coerce_ai_response(maybe: Any) -> AIAssessment:
    """Default missing fields, then clamp every number to its contractual range."""
    d = maybe if isinstance(maybe, Mapping) else {}
    reasons = d.get("reasons")
    return AIAssessment(
        ai_confidence_conditional=clamp(_num(d.get("ai_confidence_conditional"), 0.5), *AI_CONFIDENCE_RANGE),
        delta_confidence=clamp(_num(d.get("delta_confidence"), 0.0), *DELTA_CONFIDENCE_RANGE),
        delta_p_fill=clamp(_num(d.get("delta_p_fill"), 0.0), *DELTA_P_FILL_RANGE),
        direction_agree=_truthy(d.get("direction_agree", False)),
        reasons=[str(r) for r in reasons] if isinstance(reasons, list) else [],
    )


def blend_alpha(
    ai: AIAssessment,
    adr_used: float,
    volume_type: VolumeType,
    alpha_cfg: Mapping[str, float],
) -> float:
    alpha = alpha_cfg["base"]
    if not ai.direction_agree:
        alpha = alpha_cfg["disagree"]
    # lower trust when the day's range is spent or volume is synthetic
    if adr_used > alpha_cfg["adr_cap_above"]:
        alpha = min(alpha, alpha_cfg["low_trust_cap"])
    if volume_type == "synthetic":
        alpha = min(alpha, alpha_cfg["low_trust_cap"])
    return alpha


def blend_confidence(
    base_confidence_conditional: float,
    ai: AIAssessment,
    adr_used: float,
    volume_type: VolumeType,
    alpha_cfg: Mapping[str, float],
    combined_clamp: Tuple[float, float] = AI_CONFIDENCE_RANGE,
) -> float:
    alpha = blend_alpha(ai, adr_used, volume_type, alpha_cfg)
    combined = base_confidence_conditional * (1 - alpha) + ai.ai_confidence_conditional * alpha + ai.delta_confidence
    return clamp(combined, *combined_clamp)
