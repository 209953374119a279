from __future__ import annotations

import math
from typing import Any, Optional

EPS = 1e-9


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def clamp01(x: float) -> float:
    return clamp(x, 0.0, 1.0)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def safe_float(value: Any) -> float:
    if isinstance(value, bool):
        return float("nan")
    try:
        f = float(value)
    except (TypeError, ValueError, OverflowError):
        return float("nan")
    return f


def finite_or_none(value: Any) -> Optional[float]:
    """Coerce to a finite float, or None when missing/non-numeric."""
    if value is None:
        return None
    f = safe_float(value)
    return f if math.isfinite(f) else None
