"""
Competitor Tracker

Cross-scan competitor records with rank and trend.
"""

from agents.competitor_tracker.tracker import (
    aggregate_competitors,
    compute_trend,
    update_competitor_tracking,
)


__all__ = ["aggregate_competitors", "compute_trend", "update_competitor_tracking"]
