from __future__ import annotations

from typing import Optional, Sequence, Tuple

from ..utils import EPS, clamp01, lerp
from .models import IndicatorSet, PriceSnapshot, ScoringInputs, SelectedZone, Side, SRZone, TradeContext

DEFAULT_CONFIDENCE_RANGE = (0.25, 0.85)
FAVORED_ZONE = {"BUY": "support", "SELL": "resistance"}


def to_confidence01(blend01: float, confidence_range: Tuple[float, float] = DEFAULT_CONFIDENCE_RANGE) -> float:
    """Map a [0,1] blend into the conditional win-probability range."""
    lo, hi = confidence_range
    return lerp(lo, hi, clamp01(blend01))


def pick_zone_for_entry(side: Side, entry: float, zones: Sequence[SRZone]) -> SelectedZone:
    """
    Pick the zone nearest the entry, preferring the type that favors the side.

    Falls back to every zone when none of the favored type exists. Ties keep
    the first candidate encountered.
    """
    if not zones:
        return SelectedZone(type="none", strength=0.0, mid=entry)

    wanted = FAVORED_ZONE[side]
    candidates = [z for z in zones if z.type == wanted]
    pool = candidates or list(zones)

    best = pool[0]
    best_dist = float("inf")
    for z in pool:
        dist = abs(z.mid - entry)
        if dist < best_dist:
            best = z
            best_dist = dist
    return SelectedZone(type=best.type, strength=float(best.strength), mid=best.mid)  # type: ignore[arg-type]


def resolve_adr_used(ta: IndicatorSet, ctx: TradeContext) -> float:
    # 1) explicit override
    if ctx.adr_used_ratio is not None:
        return clamp01(ctx.adr_used_ratio)
    # 2) indicator value, percent or ratio
    used = ta.enhanced.adr_used_today
    if used is not None:
        return clamp01(used / 100 if used > 1 else used)
    # 3) Donchian position, distance from the channel middle
    pos = clamp01(ta.enhanced.donchian_position if ta.enhanced.donchian_position is not None else 0.5)
    return max(pos, 1 - pos)


def _algo_confidence(ta: IndicatorSet, confidence_range: Tuple[float, float]) -> Optional[float]:
    if ta.confidence_score is None:
        return None
    return to_confidence01(clamp01(ta.confidence_score / 100), confidence_range)


def to_scoring_inputs(
    price_meta: PriceSnapshot,
    ta: IndicatorSet,
    ctx: TradeContext,
    confidence_range: Tuple[float, float] = DEFAULT_CONFIDENCE_RANGE,
) -> ScoringInputs:
    price = price_meta.current_price
    atr = ta.atr
    vol = ta.volatility

    if vol is not None and vol.atr_percentage is not None:
        atr_pct = vol.atr_percentage
    else:
        # zero price is rejected by the scorer's input checks
        atr_pct = (atr / price) * 100 if price != 0 else float("nan")
    bb = ta.bollinger
    if vol is not None and vol.bband_width is not None:
        bb_width_pct = vol.bband_width
    else:
        bb_width_pct = abs((bb.upper - bb.lower) / max(bb.middle, EPS)) * 100

    ef = ta.enhanced
    zone = pick_zone_for_entry(ctx.side, ctx.entry, ef.sr_zones)
    entry_dist_atr = abs(ctx.entry - price) / max(atr, EPS)

    return ScoringInputs(
        side=ctx.side,
        price=price,
        entry=ctx.entry,
        sl=ctx.sl,
        atr=atr,
        atr_pct=atr_pct,
        rsi=ta.rsi,
        macd_hist=ta.macd.histogram,
        ema20=ef.ema20,
        ema50=ef.ema50,
        ema100=ef.ema100,
        ema20_slope=ef.ema20_slope if ef.ema20_slope is not None else 0.0,
        ema50_slope=ef.ema50_slope if ef.ema50_slope is not None else 0.0,
        bb_lower=bb.lower,
        bb_upper=bb.upper,
        bb_width_pct=bb_width_pct,
        bias4h=ef.bias4h if ef.bias4h is not None else 0.0,
        squeeze=bool(ef.squeeze),
        adr_used=resolve_adr_used(ta, ctx),
        session=ctx.session,
        red_news_soon=ctx.red_news_soon,
        zone=zone,
        entry_dist_atr=entry_dist_atr,
        volume_type=price_meta.volume_type,
        algo_confidence=_algo_confidence(ta, confidence_range),
    )
