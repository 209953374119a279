from .bias import compute_fundamental_bias, event_bias
from .frames import contributions_frame, releases_frame
from .models import EconomicRelease, FundamentalBias, FundamentalsInput, FundamentalsValidation
from .taxonomy import EVENT_RULES, normalize_currency, normalize_event_name
from .validate import validate_fundamentals

__all__ = [
    "EVENT_RULES",
    "EconomicRelease",
    "FundamentalBias",
    "FundamentalsInput",
    "FundamentalsValidation",
    "compute_fundamental_bias",
    "contributions_frame",
    "event_bias",
    "normalize_currency",
    "normalize_event_name",
    "releases_frame",
    "validate_fundamentals",
]
