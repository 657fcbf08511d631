"""
Share of voice: each brand's share of all brand mentions in a scan.
"""

from collections import defaultdict
from typing import Dict, Sequence

from agents.scoring_engine.utils import successful
from models.schemas import BrandShare, MentionAnalysis, ShareOfVoice


def compute_share_of_voice(brand_name: str, analyses: Sequence[MentionAnalysis]) -> ShareOfVoice:
    """
    Count brand and competitor mentions across successful responses.

    A brand counts at most once per response. Competitor names are
    grouped case-insensitively under the first spelling seen.

    Args:
        brand_name: The scanned brand
        analyses: Every MentionAnalysis from the scan

    Returns:
        ShareOfVoice sorted by share, with the scanned brand's rank
    """
    self_key = brand_name.lower()
    display = {self_key: brand_name}
    totals: Dict[str, int] = defaultdict(int)
    per_provider: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    totals[self_key] = 0

    for analysis in successful(analyses):
        seen = set()
        if analysis.mentioned:
            seen.add(self_key)
        for competitor in analysis.competitors:
            key = competitor.name.lower()
            if key != self_key:
                display.setdefault(key, competitor.name)
                seen.add(key)
        for key in seen:
            totals[key] += 1
            per_provider[key][analysis.provider] += 1

    total_mentions = sum(totals.values())
    brands = [
        BrandShare(
            name=display[key],
            is_self=key == self_key,
            mentions=count,
            share=round(count / total_mentions, 4) if total_mentions else 0.0,
            per_provider=dict(per_provider[key]),
        )
        for key, count in totals.items()
    ]
    brands.sort(key=lambda b: (-b.share, not b.is_self, b.name.lower()))

    your_rank = next((i for i, b in enumerate(brands, 1) if b.is_self), 0)
    return ShareOfVoice(brands=brands, your_rank=your_rank, total_mentions=total_mentions)
