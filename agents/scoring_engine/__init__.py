"""
Scoring Engine

Per-provider composite scores, the overall scan score, share of voice,
cross-provider comparison and deltas against the previous scan.
"""

from agents.scoring_engine.comparison import compare_providers
from agents.scoring_engine.deltas import compute_score_deltas, find_previous_scan
from agents.scoring_engine.engine import score_provider, score_scan
from agents.scoring_engine.models import ScoringWeights
from agents.scoring_engine.share_of_voice import compute_share_of_voice


__all__ = [
    "ScoringWeights",
    "score_provider",
    "score_scan",
    "compare_providers",
    "compute_share_of_voice",
    "compute_score_deltas",
    "find_previous_scan",
]
