from .ai_gate import AI_SYSTEM_PROMPT, blend_confidence, coerce_ai_response, within_gate
from .engine import rate_setup
from .features import to_scoring_inputs
from .models import (
    AIAssessment,
    DeterministicResult,
    IndicatorSet,
    PriceSnapshot,
    ScoringInputs,
    SetupRating,
    TradeContext,
)
from .raters import CallableRater, ChatCompletionsRater, Rater, RaterError
from .scoring import InvalidScoringInputs, deterministic_confidence

__all__ = [
    "AI_SYSTEM_PROMPT",
    "AIAssessment",
    "CallableRater",
    "ChatCompletionsRater",
    "DeterministicResult",
    "IndicatorSet",
    "InvalidScoringInputs",
    "PriceSnapshot",
    "Rater",
    "RaterError",
    "ScoringInputs",
    "SetupRating",
    "TradeContext",
    "blend_confidence",
    "coerce_ai_response",
    "deterministic_confidence",
    "rate_setup",
    "to_scoring_inputs",
    "within_gate",
]
