from .fingerprint import fingerprint, fingerprint_mention, normalize
from .reach import ReachEstimator, ReachRule, DEFAULT_REACH_RULES

__all__ = [
    "fingerprint",
    "fingerprint_mention",
    "normalize",
    "ReachEstimator",
    "ReachRule",
    "DEFAULT_REACH_RULES",
]
