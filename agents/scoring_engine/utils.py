"""
Utility functions for the scoring engine.
"""

from typing import Iterable, List, Optional

from models.schemas import MentionAnalysis

# Value of a mention by list position; anything past 4th is worth little
POSITION_WEIGHTS = {
    1: 1.0,
    2: 0.7,
    3: 0.5,
    4: 0.3,
}
LOW_POSITION_WEIGHT = 0.1

SENTIMENT_VALUES = {
    "recommended": 1.0,
    "neutral": 0.0,
    "negative": -1.0,
}


def mean(values: Iterable[float]) -> Optional[float]:
    values = list(values)
    if not values:
        return None
    return sum(values) / len(values)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def effective_rank(analysis: MentionAnalysis) -> Optional[int]:
    """Exact rank, or a rank implied by the position bucket."""
    if not analysis.mentioned:
        return None
    if analysis.exact_position is not None:
        return analysis.exact_position
    return 3 if analysis.position == "top_3" else 5


def position_weight(rank: Optional[int]) -> float:
    if rank is None:
        return 0.0
    return POSITION_WEIGHTS.get(rank, LOW_POSITION_WEIGHT)


def successful(analyses: Iterable[MentionAnalysis]) -> List[MentionAnalysis]:
    """Analyses backed by a successful provider response."""
    return [a for a in analyses if a.response.ok]
