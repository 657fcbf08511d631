"""
Scoring engine.

Turns per-response detections into per-provider composite scores and
the overall scan score.

Per provider:
- mention_rate: mentions over successful responses (failed calls are
  left out of the denominator; undefined when nothing succeeded)
- category_coverage: share of queried intent categories with a mention
- position: mean list-position weight over mentioned responses
- sentiment: mean of recommended=+1 / neutral=0 / negative=-1

The overall score is the mean composite over active providers, reduced
by a consistency factor when providers disagree.
The score also carries a cross-provider comparison.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from agents.scoring_engine.comparison import compare_providers
from agents.scoring_engine.models import ScoringWeights
from agents.scoring_engine.utils import (
    SENTIMENT_VALUES,
    clamp,
    effective_rank,
    mean,
    position_weight,
    successful,
)
from models.schemas import MentionAnalysis, ProviderScore, ScanScore, ScoreBreakdown

logger = logging.getLogger(__name__)


def score_provider(
    provider: str,
    analyses: Sequence[MentionAnalysis],
    weights: Optional[ScoringWeights] = None,
) -> ProviderScore:
    """
    Score a single provider.

    Args:
        provider: Provider name
        analyses: All analyses for this provider, failed calls included
        weights: Composite weights (defaults to settings)

    Returns:
        ProviderScore; mention_rate is None when no call succeeded
    """
    weights = weights or ScoringWeights.from_settings()
    ok = successful(analyses)
    failed = len(analyses) - len(ok)

    if not ok:
        return ProviderScore(provider=provider, failed_queries=failed)

    mentioned = [a for a in ok if a.mentioned]
    mention_rate = len(mentioned) / len(ok)

    queried_intents = {a.intent for a in ok}
    mentioned_intents = {a.intent for a in mentioned}
    category_coverage = len(mentioned_intents) / len(queried_intents)

    ranks = [effective_rank(a) for a in mentioned]
    avg_position = mean(ranks)
    position_score = mean(position_weight(r) for r in ranks) or 0.0

    sentiment_avg = mean(SENTIMENT_VALUES[a.sentiment] for a in mentioned if a.sentiment)
    # Never-mentioned brands earn no sentiment credit
    sentiment_score = (sentiment_avg + 1) / 2 if sentiment_avg is not None else 0.0

    weighted = (
        weights.mention_rate * mention_rate
        + weights.category_coverage * category_coverage
        + weights.position * position_score
        + weights.sentiment * sentiment_score
    )
    composite = clamp(100 * weighted / weights.total) if weights.total else 0.0

    return ProviderScore(
        provider=provider,
        composite_score=round(composite, 1),
        mention_rate=mention_rate,
        avg_position=round(avg_position, 2) if avg_position is not None else None,
        sentiment_avg=round(sentiment_avg, 3) if sentiment_avg is not None else None,
        category_coverage=category_coverage,
        mentions_count=len(mentioned),
        total_queries=len(ok),
        failed_queries=failed,
    )


def category_coverage_by_intent(analyses: Sequence[MentionAnalysis]) -> Dict[str, float]:
    """Mention rate per intent category across all providers."""
    totals = defaultdict(int)
    hits = defaultdict(int)
    for analysis in successful(analyses):
        totals[analysis.intent] += 1
        if analysis.mentioned:
            hits[analysis.intent] += 1
    return {intent: round(hits[intent] / totals[intent], 3) for intent in totals}


def score_scan(
    analyses: Sequence[MentionAnalysis],
    providers: Sequence[str],
    weights: Optional[ScoringWeights] = None,
) -> ScanScore:
    """
    Compute the overall scan score.

    Args:
        analyses: Every MentionAnalysis from the scan
        providers: Providers the scan queried (each gets a ProviderScore)
        weights: Composite weights (defaults to settings)

    Returns:
        ScanScore with final_score in [0, 100]
    """
    weights = weights or ScoringWeights.from_settings()

    by_provider: Dict[str, List[MentionAnalysis]] = {p: [] for p in providers}
    for analysis in analyses:
        by_provider.setdefault(analysis.provider, []).append(analysis)

    by_model = {p: score_provider(p, items, weights) for p, items in by_provider.items()}
    active = [s for s in by_model.values() if s.total_queries > 0]

    if not active:
        logger.warning("⚠️ No provider produced a scoreable response")
        return ScanScore(by_model=by_model)

    composites = [s.composite_score for s in active]
    spread = max(composites) - min(composites)
    model_consistency = clamp(100 - spread)
    consistency_factor = 1 - weights.consistency_penalty * spread / 100
    final_score = clamp(mean(composites) * consistency_factor)

    total = sum(s.total_queries for s in active)
    mentions = sum(s.mentions_count for s in active)

    logger.info(
        f"📊 Final score {final_score:.1f} over {len(active)} provider(s), "
        f"consistency {model_consistency:.0f}"
    )

    return ScanScore(
        final_score=round(final_score, 1),
        mention_rate=mentions / total,
        breakdown=ScoreBreakdown(
            category_coverage=category_coverage_by_intent(analyses),
            model_consistency=round(model_consistency, 1),
            consistency_factor=round(consistency_factor, 4),
        ),
        by_model=by_model,
        comparison=compare_providers(active),
    )
