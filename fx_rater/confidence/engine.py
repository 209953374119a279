from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..config import RaterConfig, default_config, validate_gate_band
from .ai_gate import (
    AI_SYSTEM_PROMPT,
    blend_confidence,
    build_ai_request_payload,
    build_ai_user_prompt,
    coerce_ai_response,
    parse_rater_output,
    within_gate,
)
from .features import to_scoring_inputs
from .models import AIAssessment, IndicatorSet, PriceSnapshot, SetupRating, TradeContext
from .raters import Rater
from .scoring import deterministic_confidence

logger = logging.getLogger(__name__)


async def rate_setup(
    price_meta: PriceSnapshot,
    ta: IndicatorSet,
    ctx: TradeContext,
    *,
    use_ai: Optional[bool] = None,
    rater: Optional[Rater] = None,
    gate_band: Optional[Tuple[float, float]] = None,
    cfg: Optional[RaterConfig] = None,
) -> SetupRating:
    """
    Rate a trade setup, optionally refined by one external rater call.

    The rater is consulted at most once, and only when the deterministic
    conditional confidence lies inside the gate band (inclusive). Rater
    failures propagate unless ``ai.fallback_on_error`` is configured.
    """
    cfg = cfg or default_config()
    ai_cfg = cfg.ai
    band = validate_gate_band(gate_band) if gate_band is not None else ai_cfg["gate_band"]

    inputs = to_scoring_inputs(price_meta, ta, ctx, cfg.scoring["confidence_range"])
    det = deterministic_confidence(inputs, cfg)

    combined = det.confidence_conditional
    if use_ai is None:
        use_ai = ai_cfg["enabled"]
    if not (use_ai and rater is not None):
        return SetupRating(deterministic=det, combined_confidence=combined, p_fill=det.p_fill)

    if not within_gate(det.confidence_conditional, band):
        logger.debug(
            "confidence %.4f outside gate [%.2f, %.2f]; rater skipped",
            det.confidence_conditional,
            band[0],
            band[1],
        )
        return SetupRating(deterministic=det, combined_confidence=combined, p_fill=det.p_fill)

    payload = build_ai_request_payload(inputs, det)
    logger.info("consulting rater for %s %s (base=%.4f)", price_meta.symbol, ctx.side, det.confidence_conditional)
    try:
        raw = await rater.rate(AI_SYSTEM_PROMPT, build_ai_user_prompt(payload))
        ai: AIAssessment = coerce_ai_response(parse_rater_output(raw))
    except Exception as exc:
        if not ai_cfg["fallback_on_error"]:
            raise
        logger.warning("rater failed, using deterministic score only: %s", exc)
        return SetupRating(
            deterministic=det,
            combined_confidence=combined,
            p_fill=det.p_fill,
            ai_error=str(exc),
        )

    combined = blend_confidence(
        det.confidence_conditional,
        ai,
        adr_used=inputs.adr_used,
        volume_type=inputs.volume_type,
        alpha_cfg=ai_cfg["alpha"],
        combined_clamp=ai_cfg["combined_clamp"],
    )
    return SetupRating(deterministic=det, combined_confidence=combined, p_fill=det.p_fill, ai=ai)
