from .config import RaterConfig, default_config, load_rater_config
from .confidence import rate_setup
from .fundamentals import compute_fundamental_bias, validate_fundamentals

__version__ = "0.1.0"

__all__ = [
    "RaterConfig",
    "compute_fundamental_bias",
    "default_config",
    "load_rater_config",
    "rate_setup",
    "validate_fundamentals",
]
