from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

Side = Literal["BUY", "SELL"]
VolumeType = Literal["synthetic", "real"]
ZoneType = Literal["support", "resistance", "none"]

SIDES = {"BUY", "SELL"}
VOLUME_TYPES = {"synthetic", "real"}
ZONE_TYPES = {"support", "resistance"}


def _opt_float(value: Any, name: str = "value") -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"Field '{name}' must be numeric, got {value!r}") from exc


def _pick(d: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return default


def _req_float(d: Mapping[str, Any], *keys: str, where: str) -> float:
    value = _pick(d, *keys)
    if value is None:
        raise ValueError(f"{where} is missing required field '{keys[0]}'")
    return float(_opt_float(value, keys[0]))


def _float_or(d: Mapping[str, Any], key: str, default: float) -> float:
    return float(_opt_float(_pick(d, key, default=default), key))


def _req_block(d: Mapping[str, Any], *keys: str, where: str) -> Mapping[str, Any]:
    block = _pick(d, *keys)
    if not isinstance(block, Mapping):
        raise ValueError(f"{where} is missing the '{keys[0]}' block")
    return block


def parse_side(value: Any) -> Side:
    side = str(value or "").strip().upper()
    if side not in SIDES:
        raise ValueError(f"Invalid side '{value}'. Expected BUY or SELL.")
    return side  # type: ignore[return-value]


@dataclass(frozen=True)
class PriceSnapshot:
    symbol: str
    current_price: float
    volume_type: VolumeType = "synthetic"

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "PriceSnapshot":
        volume_type = str(_pick(d, "volumeType", "volume_type", default="synthetic")).strip().lower()
        if volume_type not in VOLUME_TYPES:
            raise ValueError(f"Invalid volume type '{volume_type}'. Expected synthetic or real.")
        return cls(
            symbol=str(d.get("symbol", "")).strip().upper(),
            current_price=_req_float(d, "currentPrice", "current_price", "price", where="Price snapshot"),
            volume_type=volume_type,  # type: ignore[arg-type]
        )


@dataclass(frozen=True)
class MacdValues:
    macd: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


@dataclass(frozen=True)
class BollingerBands:
    lower: float
    middle: float
    upper: float


@dataclass(frozen=True)
class VolatilityInfo:
    status: Optional[str] = None
    bband_width: Optional[float] = None
    atr_percentage: Optional[float] = None


@dataclass(frozen=True)
class SRZone:
    low: float
    high: float
    type: str
    strength: float = 50.0
    touch_count: Optional[int] = None

    @property
    def mid(self) -> float:
        return (self.high + self.low) / 2

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "SRZone":
        if not isinstance(d, Mapping):
            raise ValueError(f"S/R zone must be an object, got {d!r}")
        zone_type = str(d.get("type", "")).strip().lower()
        if zone_type not in ZONE_TYPES:
            raise ValueError(f"Invalid zone type '{zone_type}'. Expected support or resistance.")
        touches = _pick(d, "touchCount", "touch_count")
        return cls(
            low=_req_float(d, "min", "low", where="S/R zone"),
            high=_req_float(d, "max", "high", where="S/R zone"),
            type=zone_type,
            strength=_float_or(d, "strength", 50.0),
            touch_count=int(touches) if touches is not None else None,
        )


@dataclass(frozen=True)
class EnhancedFeatures:
    ema20: float
    ema50: float
    ema100: float
    ema20_slope: Optional[float] = None
    ema50_slope: Optional[float] = None
    ema100_slope: Optional[float] = None
    squeeze: bool = False
    bias4h: Optional[float] = None
    adr20: Optional[float] = None
    adr_used_today: Optional[float] = None
    donchian_position: Optional[float] = None
    sr_zones: Tuple[SRZone, ...] = ()

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "EnhancedFeatures":
        zones = _pick(d, "srZones", "sr_zones", default=[])
        return cls(
            ema20=_req_float(d, "ema20", where="enhancedFeatures"),
            ema50=_req_float(d, "ema50", where="enhancedFeatures"),
            ema100=_req_float(d, "ema100", where="enhancedFeatures"),
            ema20_slope=_opt_float(_pick(d, "ema20Slope", "ema20_slope")),
            ema50_slope=_opt_float(_pick(d, "ema50Slope", "ema50_slope")),
            ema100_slope=_opt_float(_pick(d, "ema100Slope", "ema100_slope")),
            squeeze=bool(d.get("squeeze", False)),
            bias4h=_opt_float(_pick(d, "bias4h", "bias_4h")),
            adr20=_opt_float(d.get("adr20")),
            adr_used_today=_opt_float(_pick(d, "adrUsedToday", "adr_used_today")),
            donchian_position=_opt_float(_pick(d, "donchianPosition", "donchian_position")),
            sr_zones=tuple(SRZone.from_dict(z) for z in zones),
        )


@dataclass(frozen=True)
class IndicatorSet:
    atr: float
    rsi: float
    macd: MacdValues
    sma10: float
    sma20: float
    bollinger: BollingerBands
    enhanced: EnhancedFeatures
    resistance: Optional[float] = None
    support: Optional[float] = None
    volatility: Optional[VolatilityInfo] = None
    confidence_score: Optional[float] = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "IndicatorSet":
        macd = d.get("macd")
        if not isinstance(macd, Mapping):
            macd = {}
        bb = _req_block(d, "bollinger", where="Indicator set")
        vol = d.get("volatility")
        enhanced = _req_block(d, "enhancedFeatures", "enhanced_features", "enhanced", where="Indicator set")
        return cls(
            atr=_req_float(d, "atr", where="Indicator set"),
            rsi=_req_float(d, "rsi", where="Indicator set"),
            macd=MacdValues(
                macd=_float_or(macd, "macd", 0.0),
                signal=_float_or(macd, "signal", 0.0),
                histogram=_float_or(macd, "histogram", 0.0),
            ),
            sma10=_float_or(d, "sma10", 0.0),
            sma20=_float_or(d, "sma20", 0.0),
            bollinger=BollingerBands(
                lower=_req_float(bb, "lower", where="bollinger"),
                middle=_req_float(bb, "middle", where="bollinger"),
                upper=_req_float(bb, "upper", where="bollinger"),
            ),
            enhanced=EnhancedFeatures.from_dict(enhanced),
            resistance=_opt_float(d.get("resistance")),
            support=_opt_float(d.get("support")),
            volatility=VolatilityInfo(
                status=vol.get("status"),
                bband_width=_opt_float(_pick(vol, "bbandWidth", "bband_width")),
                atr_percentage=_opt_float(_pick(vol, "atrPercentage", "atr_percentage")),
            )
            if isinstance(vol, Mapping)
            else None,
            confidence_score=_opt_float(_pick(d, "confidenceScore", "confidence_score")),
        )


@dataclass(frozen=True)
class TradeContext:
    side: Side
    entry: float
    sl: float
    session: str = "London"
    red_news_soon: bool = False
    adr_used_ratio: Optional[float] = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "TradeContext":
        return cls(
            side=parse_side(d.get("side")),
            entry=_req_float(d, "entry", where="Trade context"),
            sl=_req_float(d, "sl", "stopLoss", "stop_loss", where="Trade context"),
            session=str(d.get("session", "London")),
            red_news_soon=bool(_pick(d, "redNewsSoon", "red_news_soon", default=False)),
            adr_used_ratio=_opt_float(_pick(d, "adrUsedRatio", "adr_used_ratio")),
        )


@dataclass(frozen=True)
class SelectedZone:
    type: ZoneType
    strength: float
    mid: float


@dataclass(frozen=True)
class ScoringInputs:
    side: Side
    price: float
    entry: float
    sl: float
    atr: float
    atr_pct: float
    rsi: float
    macd_hist: float
    ema20: float
    ema50: float
    ema100: float
    ema20_slope: float
    ema50_slope: float
    bb_lower: float
    bb_upper: float
    bb_width_pct: float
    bias4h: float
    squeeze: bool
    adr_used: float
    session: str
    red_news_soon: bool
    zone: SelectedZone
    entry_dist_atr: float
    volume_type: VolumeType
    algo_confidence: Optional[float] = None

    def numeric_fields(self) -> Dict[str, float]:
        out = {
            "price": self.price,
            "entry": self.entry,
            "sl": self.sl,
            "atr": self.atr,
            "atr_pct": self.atr_pct,
            "rsi": self.rsi,
            "macd_hist": self.macd_hist,
            "ema20": self.ema20,
            "ema50": self.ema50,
            "ema100": self.ema100,
            "ema20_slope": self.ema20_slope,
            "ema50_slope": self.ema50_slope,
            "bb_lower": self.bb_lower,
            "bb_upper": self.bb_upper,
            "bb_width_pct": self.bb_width_pct,
            "bias4h": self.bias4h,
            "adr_used": self.adr_used,
            "zone_strength": self.zone.strength,
            "zone_mid": self.zone.mid,
            "entry_dist_atr": self.entry_dist_atr,
        }
        if self.algo_confidence is not None:
            out["algo_confidence"] = self.algo_confidence
        return out


@dataclass(frozen=True)
class DeterministicResult:
    confidence_conditional: float
    p_fill: float
    headline_confidence: float
    telemetry: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AIAssessment:
    ai_confidence_conditional: float
    delta_confidence: float
    direction_agree: bool
    reasons: List[str] = field(default_factory=list)
    delta_p_fill: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SetupRating:
    deterministic: DeterministicResult
    combined_confidence: float
    p_fill: float
    ai: Optional[AIAssessment] = None
    ai_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deterministic": self.deterministic.to_dict(),
            "combined_confidence": self.combined_confidence,
            "p_fill": self.p_fill,
            "ai": self.ai.to_dict() if self.ai is not None else None,
            "ai_error": self.ai_error,
        }
