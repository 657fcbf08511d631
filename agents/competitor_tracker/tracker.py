"""
Competitor tracker.

Keeps one CompetitorTrackingRecord per (brand_domain, competitor) across
scans and derives a trend from the previous record. Only the top three
competitors of the current scan by mention count get a rank.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from agents.competitor_tracker.models import CompetitorSnapshot
from models.schemas import CompetitorTrackingRecord, MentionAnalysis

logger = logging.getLogger(__name__)

RANKED_COMPETITORS = 3
UNKNOWN_POSITION = 99.0


def aggregate_competitors(analyses: Sequence[MentionAnalysis]) -> List[CompetitorSnapshot]:
    """
    Aggregate competitor mentions across a scan.

    Returns:
        Snapshots sorted by mention count (desc), then average position (asc)
    """
    display: Dict[str, str] = {}
    counts: Dict[str, int] = defaultdict(int)
    positions: Dict[str, List[int]] = defaultdict(list)

    for analysis in analyses:
        for competitor in analysis.competitors:
            key = competitor.name.lower()
            display.setdefault(key, competitor.name)
            counts[key] += 1
            positions[key].append(competitor.position)

    snapshots = [
        CompetitorSnapshot(
            name=display[key],
            mention_count=count,
            avg_position=(
                round(sum(positions[key]) / len(positions[key]), 2) if positions[key] else UNKNOWN_POSITION
            ),
        )
        for key, count in counts.items()
    ]
    snapshots.sort(key=lambda s: (-s.mention_count, s.avg_position))
    return snapshots


def compute_trend(prior: Optional[CompetitorTrackingRecord], mention_count: int, avg_position: float) -> str:
    """
    Trend against the previous record.

    Args:
        prior: Stored record from an earlier scan, or None
        mention_count: Mentions in this scan
        avg_position: Average position in this scan

    Returns:
        "new", "up", "down" or "stable"
    """
    if prior is None:
        return "new"
    if mention_count > prior.last_mention_count:
        return "up"
    if mention_count < prior.last_mention_count:
        return "down"
    if avg_position < prior.last_avg_position:
        return "up"
    if avg_position > prior.last_avg_position:
        return "down"
    return "stable"


def update_competitor_tracking(
    brand_domain: str,
    analyses: Sequence[MentionAnalysis],
    repository,
) -> List[CompetitorTrackingRecord]:
    """
    Upsert a tracking record for every competitor surfaced in the scan.

    Ranks belong to the current scan only: records from earlier scans
    that still hold a rank lose it. Their other fields are left as they
    were.

    Args:
        brand_domain: Domain of the scanned brand
        analyses: Every MentionAnalysis from the scan
        repository: ScanRepository holding tracking records

    Returns:
        Records written for this scan, in rank order
    """
    snapshots = aggregate_competitors(analyses)
    now = datetime.now(timezone.utc)
    records = []

    for index, snapshot in enumerate(snapshots):
        prior = repository.get_competitor_record(brand_domain, snapshot.name)
        record = CompetitorTrackingRecord(
            brand_domain=brand_domain,
            competitor_name=prior.competitor_name if prior else snapshot.name,
            rank=index + 1 if index < RANKED_COMPETITORS else None,
            last_mention_count=snapshot.mention_count,
            last_avg_position=snapshot.avg_position,
            trend=compute_trend(prior, snapshot.mention_count, snapshot.avg_position),
            previous_mention_count=prior.last_mention_count if prior else None,
            previous_avg_position=prior.last_avg_position if prior else None,
            first_seen=prior.first_seen if prior else now,
            last_seen=now,
            updated_at=now,
        )
        repository.upsert_competitor_record(record)
        records.append(record)

    surfaced = {r.competitor_name.lower() for r in records}
    cleared = 0
    for stale in repository.list_competitor_records(brand_domain):
        if stale.rank is not None and stale.competitor_name.lower() not in surfaced:
            repository.upsert_competitor_record(stale.model_copy(update={"rank": None, "updated_at": now}))
            cleared += 1

    if records:
        top = ", ".join(f"{r.competitor_name} ({r.trend})" for r in records[:RANKED_COMPETITORS])
        logger.info(f"✓ Tracked {len(records)} competitors for {brand_domain}: {top}")
    if cleared:
        logger.debug(f"Cleared stale ranks on {cleared} competitor record(s) for {brand_domain}")
    return records
