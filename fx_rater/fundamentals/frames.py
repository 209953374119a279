from __future__ import annotations

from dataclasses import asdict
from typing import Optional

import pandas as pd

from ..config import RaterConfig, default_config
from .bias import SCORED_CCY, score_release
from .models import FundamentalsInput

RELEASE_COLS = ["currency", "event", "time", "actual", "forecast", "previous"]
CONTRIBUTION_COLS = RELEASE_COLS + ["weight", "event_bias", "weighted_bias"]


def releases_frame(fundamentals: FundamentalsInput) -> pd.DataFrame:
    if not fundamentals.releases:
        return pd.DataFrame(columns=RELEASE_COLS)
    df = pd.DataFrame([asdict(r) for r in fundamentals.releases])
    df["ts"] = pd.to_datetime(df["time"], errors="coerce", utc=True)
    return df[RELEASE_COLS + ["ts"]]


def contributions_frame(fundamentals: FundamentalsInput, cfg: Optional[RaterConfig] = None) -> pd.DataFrame:
    """One row per USD release with its weight and signed contribution."""
    weights = (cfg or default_config()).fundamentals["event_weights"]
    rows = []
    for r in fundamentals.releases:
        if r.currency != SCORED_CCY:
            continue
        weight, bias = score_release(r, weights)
        row = asdict(r)
        row.update({"weight": weight, "event_bias": bias, "weighted_bias": weight * bias})
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=CONTRIBUTION_COLS)
    return pd.DataFrame(rows)[CONTRIBUTION_COLS]
