"""
State model for the scan workflow.
"""

import threading
from typing import List, Optional
from typing_extensions import TypedDict

from config.plans import PlanConfig
from models.schemas import (
    BrandProfile,
    CompetitorTrackingRecord,
    MentionAnalysis,
    ProviderResponse,
    Query,
    ScanInput,
    ScanResult,
    ScanScore,
    ScoreDeltas,
    ShareOfVoice,
)


class ScanGraphState(TypedDict, total=False):
    """
    State passed between scan workflow nodes.

    Flow: profiling → generating_queries → querying → analyzing → scoring → complete,
    with querying able to route to failed.
    """
    # Input
    scan_id: str
    url: str
    scan_input: ScanInput

    # Resolved once at scan start
    plan: PlanConfig
    providers: List[str]
    cancel_event: Optional[threading.Event]

    # Stage outputs
    profile: BrandProfile
    queries: List[Query]
    responses: List[ProviderResponse]
    analyses: List[MentionAnalysis]
    score: ScanScore
    share_of_voice: Optional[ShareOfVoice]
    deltas: Optional[ScoreDeltas]
    competitors: List[CompetitorTrackingRecord]
    result: Optional[ScanResult]

    # Metadata
    cancelled: bool
    errors: List[str]
    failure_code: Optional[str]
