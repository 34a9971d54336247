"""
Score helpers shared by the heuristics, the providers and persistence
"""
import math
from typing import Any

PASS_THRESHOLD = 70
MIN_SCORE = 0.0
MAX_SCORE = 100.0


def clamp_score(value: Any) -> float:
    """
    Coerces a raw score into [0, 100]. Anything non-numeric becomes 0.
    """
    if isinstance(value, bool) or value is None:
        return MIN_SCORE
    try:
        score = float(value)
    except (TypeError, ValueError):
        return MIN_SCORE
    if math.isnan(score):
        return MIN_SCORE
    return max(MIN_SCORE, min(MAX_SCORE, score))


def passes_threshold(score: Any) -> bool:
    return clamp_score(score) >= PASS_THRESHOLD


def estimate_improved_score(before: Any, boost: float = 20) -> float:
    """
    Estimated score after an AI rewrite when the provider reports none.
    """
    return min(MAX_SCORE, clamp_score(before) + boost)

