"""
Mention Detector Agent

Two-tier brand detection (fast string matching, then an LLM judge),
competitor extraction and response quality scoring.
"""

from agents.mention_detector_agent.brand_matcher import (
    count_exact_brand_mentions,
    find_exact_brand_position,
    fuzzy_brand_match,
    is_exact_brand_match,
)
from agents.mention_detector_agent.detector import MentionDetector, basic_analysis
from agents.mention_detector_agent.quality import score_response_quality


__all__ = [
    "MentionDetector",
    "basic_analysis",
    "is_exact_brand_match",
    "find_exact_brand_position",
    "count_exact_brand_mentions",
    "fuzzy_brand_match",
    "score_response_quality",
]
