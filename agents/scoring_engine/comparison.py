"""
Cross-provider comparison: which provider sees the brand best, and how
far apart the providers are.
"""

import logging
from typing import List, Sequence

from models.schemas import ProviderComparison, ProviderScore

logger = logging.getLogger(__name__)

MAX_INSIGHTS = 4
SCORE_GAP_POINTS = 10
LARGE_SPREAD = 0.3
SMALL_SPREAD = 0.1


def compare_providers(scores: Sequence[ProviderScore]) -> ProviderComparison:
    """
    Compare providers that produced at least one successful response.

    Args:
        scores: ProviderScores from one scan; providers with no successful
            call are left out

    Returns:
        ProviderComparison (empty when no provider is active)
    """
    active = [s for s in scores if s.total_queries > 0]
    if not active:
        return ProviderComparison()

    ranked = sorted(active, key=lambda s: (-s.composite_score, s.provider))
    strongest, weakest = ranked[0], ranked[-1]

    rates = [s.mention_rate or 0.0 for s in active]
    spread = max(rates) - min(rates)

    insights: List[str] = []
    gap = strongest.composite_score - weakest.composite_score
    if gap > SCORE_GAP_POINTS:
        insights.append(f"{strongest.provider} outperforms {weakest.provider} by {gap:.0f} points")

    if spread > LARGE_SPREAD:
        insights.append(
            f"Large mention rate gap between providers ({max(rates):.0%} vs {min(rates):.0%})"
        )
    elif spread < SMALL_SPREAD and len(active) > 1:
        insights.append("Mention rates are consistent across all providers")

    positive = [s.provider for s in active if (s.sentiment_avg or 0) > 0]
    negative = [s.provider for s in active if (s.sentiment_avg or 0) < 0]
    if positive and negative:
        insights.append(f"Mixed sentiment: {', '.join(positive)} positive vs {', '.join(negative)} negative")

    silent = [s.provider for s in active if s.mentions_count == 0]
    if silent and len(silent) < len(active):
        insights.append(f"Not mentioned by: {', '.join(silent)}")

    comparison = ProviderComparison(
        strongest_provider=strongest.provider,
        weakest_provider=weakest.provider,
        mention_rate_spread=round(spread, 4),
        consistency_score=round((1 - spread) * 100, 1),
        insights=insights[:MAX_INSIGHTS],
    )
    logger.debug(
        f"Provider comparison: strongest={comparison.strongest_provider} "
        f"weakest={comparison.weakest_provider} spread={spread:.2f}"
    )
    return comparison
