from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Any, List, Mapping, Optional, Tuple

import pandas as pd

from ..config import RaterConfig, default_config
from ..utils import finite_or_none
from .models import EconomicRelease, FundamentalsInput, FundamentalsValidation
from .taxonomy import normalize_currency, normalize_event_name

logger = logging.getLogger(__name__)

FALLBACK_BASE = "EUR"
FALLBACK_QUOTE = "USD"

# date, optional time with fraction, optional Z or numeric offset
ISO_8601_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$",
    re.IGNORECASE,
)


def parse_iso_time(value: Any) -> Optional[pd.Timestamp]:
    """Parse an ISO-8601 string to a UTC timestamp; naive times are taken as UTC."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not ISO_8601_RE.match(text):
        return None
    ts = pd.to_datetime(text, errors="coerce", utc=True)
    if ts is None or pd.isna(ts):
        return None
    return ts


def _as_utc(now: Optional[dt.datetime]) -> pd.Timestamp:
    if now is None:
        return pd.Timestamp.now(tz="UTC")
    ts = pd.Timestamp(now)
    return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")


def within_days(ts: pd.Timestamp, now: pd.Timestamp, days: float) -> bool:
    age_days = (now - ts) / pd.Timedelta(days=1)
    return 0 <= age_days <= days


def validate_fundamentals(
    payload: Any,
    now: Optional[dt.datetime] = None,
    cfg: Optional[RaterConfig] = None,
) -> FundamentalsValidation:
    """
    Sanitize an untrusted fundamentals payload.

    Never raises for bad content: every problem becomes an entry in
    ``issues`` and the offending release is dropped. ``ok`` requires no
    issues, at least one kept release and distinct valid currencies.
    """
    fcfg = (cfg or default_config()).fundamentals
    lookback_days = fcfg["lookback_days"]
    max_releases = fcfg["max_releases"]
    now_ts = _as_utc(now)

    doc: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}
    issues: List[str] = []

    base = normalize_currency(doc.get("baseCcy", doc.get("base_ccy")))
    quote = normalize_currency(doc.get("quoteCcy", doc.get("quote_ccy")))
    if not base:
        issues.append("Invalid or missing baseCcy")
    if not quote:
        issues.append("Invalid or missing quoteCcy")
    if base and quote and base == quote:
        issues.append("baseCcy and quoteCcy cannot be the same")

    raw_releases = doc.get("releases")
    if not isinstance(raw_releases, list):
        raw_releases = []
    if not raw_releases:
        issues.append("No releases provided")

    kept: List[Tuple[pd.Timestamp, EconomicRelease]] = []
    for idx, r in enumerate(raw_releases):
        r = r if isinstance(r, Mapping) else {}

        def drop(reason: str) -> None:
            issues.append(f"release[{idx}]: {reason}")
            logger.warning("dropping release[%d] (%s): %s", idx, r.get("event"), reason)

        ccy = normalize_currency(r.get("currency"))
        if not ccy:
            drop("invalid currency")
            continue

        event = normalize_event_name(r.get("event"))
        if not event:
            drop("invalid event")
            continue

        time = r.get("time")
        ts = parse_iso_time(time)
        if ts is None:
            drop("invalid ISO time")
            continue
        if not within_days(ts, now_ts, lookback_days):
            drop(f"outside {lookback_days:g}-day window")
            continue

        actual = finite_or_none(r.get("actual"))
        if actual is None:
            drop("missing/NaN actual")
            continue

        kept.append(
            (
                ts,
                EconomicRelease(
                    currency=ccy,  # type: ignore[arg-type]
                    event=event,  # type: ignore[arg-type]
                    time=str(time).strip(),
                    actual=actual,
                    forecast=finite_or_none(r.get("forecast")),
                    previous=finite_or_none(r.get("previous")),
                ),
            )
        )

    # newest first
    kept.sort(key=lambda pair: pair[0], reverse=True)
    if len(kept) > max_releases:
        issues.append(f"too many releases ({len(kept)}); truncated to {max_releases}")
    releases = [rel for _, rel in kept[:max_releases]]

    cleaned = FundamentalsInput(
        base_ccy=base or FALLBACK_BASE,  # type: ignore[arg-type]
        quote_ccy=quote or FALLBACK_QUOTE,  # type: ignore[arg-type]
        releases=releases,
    )
    ok = not issues and bool(releases) and bool(base) and bool(quote) and base != quote
    return FundamentalsValidation(ok=ok, cleaned=cleaned, issues=issues)
