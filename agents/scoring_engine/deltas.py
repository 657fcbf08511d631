"""
Score deltas against the previous scan of the same brand.
"""

import logging
from typing import Optional

from models.schemas import MetricDelta, ScanResult, ScanScore, ScoreDeltas

logger = logging.getLogger(__name__)

HISTORY_LOOKBACK = 5


def _delta(current: float, previous: Optional[float]) -> MetricDelta:
    if previous is None:
        return MetricDelta(current=current)
    return MetricDelta(current=current, previous=previous, delta=round(current - previous, 4))


def find_previous_scan(repository, brand_domain: str, scan_id: str) -> Optional[ScanResult]:
    """Most recent persisted scan for the brand, other than scan_id."""
    for scan in repository.list_recent_scans(brand_domain, limit=HISTORY_LOOKBACK):
        if scan.scan_id != scan_id:
            return scan
    return None


def compute_score_deltas(score: ScanScore, previous: Optional[ScanResult]) -> ScoreDeltas:
    """
    Compare a scan score with the previous scan's.

    Args:
        score: The current ScanScore
        previous: The previous ScanResult for the brand, or None

    Returns:
        ScoreDeltas; deltas are None where there is nothing to compare with
    """
    current_rate = score.mention_rate or 0.0
    current_consistency = score.breakdown.model_consistency
    providers = {name: s.composite_score for name, s in score.by_model.items()}

    if previous is None:
        return ScoreDeltas(
            overall=_delta(score.final_score, None),
            mention_rate=_delta(current_rate, None),
            consistency=_delta(current_consistency, None),
            providers={name: _delta(value, None) for name, value in providers.items()},
        )

    prev_score = previous.score
    prev_providers = {
        name: s.composite_score for name, s in prev_score.by_model.items() if s.total_queries > 0
    }

    logger.debug(f"Computing deltas against {previous.scan_id}")
    return ScoreDeltas(
        overall=_delta(score.final_score, prev_score.final_score),
        mention_rate=_delta(current_rate, prev_score.mention_rate),
        consistency=_delta(current_consistency, prev_score.breakdown.model_consistency),
        providers={name: _delta(value, prev_providers.get(name)) for name, value in providers.items()},
        previous_scan_id=previous.scan_id,
        previous_scan_date=previous.created_at,
    )
