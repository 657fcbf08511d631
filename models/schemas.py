"""
Data models and schemas for the AI Visibility Scan Pipeline.

This module defines the Pydantic models shared across pipeline stages
(scan input, brand profile, queries, provider responses, detections,
scores, competitor tracking) and the API request/response models.
"""

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from utils.helpers import sanitize_brand_name


PlanTier = Literal["free", "starter", "pro"]

IntentCategory = Literal[
    "buying_intent",
    "comparison",
    "best_in_class",
    "problem_solving",
    "recommendation",
    "alternatives",
    "feature_based",
    "budget_based",
    "user_provided",
]

QueryProvenance = Literal["generated", "user_provided"]
PositionBucket = Literal["top_3", "mentioned_not_top", "not_found"]
Sentiment = Literal["recommended", "neutral", "negative"]
Confidence = Literal["high", "medium", "low"]
IssueType = Literal["deflection", "knowledge_cutoff", "refusal", "generic", "off_topic", "none"]
CompetitorContext = Literal["recommended", "compared", "listed", "discussed"]
Trend = Literal["up", "down", "stable", "new"]
ScanStage = Literal[
    "pending",
    "profiling",
    "generating_queries",
    "querying",
    "analyzing",
    "scoring",
    "complete",
    "failed",
]

# Platform sites that are never a brand's own product page
BLOCKED_DOMAINS = {
    "google.com", "facebook.com", "twitter.com", "youtube.com",
    "linkedin.com", "instagram.com", "tiktok.com", "amazon.com",
    "wikipedia.org", "reddit.com", "github.com",
}

MAX_BRAND_NAME_LENGTH = 80
MAX_COMPETITORS = 5
MAX_COMPETITOR_NAME_LENGTH = 60
MAX_BUYER_QUESTIONS = 10
MIN_BUYER_QUESTION_LENGTH = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Scan input

class ScanInput(BaseModel):
    """User-supplied scan parameters. Immutable once a scan starts."""
    brand_name: str = Field(
        ...,
        description="The brand or product name",
        examples=["Cal.com"]
    )
    website_url: str = Field(
        ...,
        description="The brand's website URL",
        examples=["https://cal.com"]
    )
    core_problem: str = Field(
        ...,
        description="The problem the product solves",
        examples=["Scheduling meetings without back-and-forth emails"]
    )
    target_buyer: str = Field(
        ...,
        description="Who buys the product",
        examples=["Freelancers and small teams"]
    )
    differentiators: Optional[str] = Field(
        None,
        description="What sets the product apart (optional)",
        examples=["Open source and self-hostable"]
    )
    competitors: List[str] = Field(
        default_factory=list,
        description="Known competitors (max 5)",
        examples=[["Calendly", "SavvyCal"]]
    )
    buyer_questions: List[str] = Field(
        default_factory=list,
        description="Questions real buyers ask (max 10)",
        examples=[["What is the best open source scheduling tool?"]]
    )
    plan_tier: PlanTier = Field(
        "free",
        description="Requested plan tier; it can lower the entitled tier but never raise it"
    )

    model_config = {"frozen": True}

    @field_validator("brand_name")
    @classmethod
    def validate_brand_name(cls, value: str) -> str:
        name = sanitize_brand_name(value)
        if not name:
            raise ValueError("Brand name is required.")
        if len(name) > MAX_BRAND_NAME_LENGTH:
            raise ValueError(f"Brand name must be {MAX_BRAND_NAME_LENGTH} characters or less.")
        return name

    @field_validator("website_url")
    @classmethod
    def validate_website_url(cls, value: str) -> str:
        url = value.strip()
        if not url:
            raise ValueError("Website URL is required.")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError("URL must be a valid http or https address.")
        host = parsed.hostname.lower()
        if host.startswith("www."):
            host = host[4:]
        if host in BLOCKED_DOMAINS:
            raise ValueError("Please enter your product URL, not a social media or platform site.")
        return url

    @field_validator("core_problem")
    @classmethod
    def validate_core_problem(cls, value: str) -> str:
        problem = value.strip()
        if len(problem) < 15:
            raise ValueError("Please describe the problem in at least 15 characters.")
        if len(problem) > 300:
            raise ValueError("Please keep the problem description under 300 characters.")
        return problem

    @field_validator("target_buyer")
    @classmethod
    def validate_target_buyer(cls, value: str) -> str:
        buyer = value.strip()
        if len(buyer) < 8:
            raise ValueError("Please describe your target customer in at least 8 characters.")
        if len(buyer) > 150:
            raise ValueError("Please keep the target customer under 150 characters.")
        return buyer

    @field_validator("differentiators")
    @classmethod
    def validate_differentiators(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        text = value.strip()
        if len(text) < 10:
            raise ValueError("If provided, differentiators need at least 10 characters.")
        if len(text) > 300:
            raise ValueError("Please keep differentiators under 300 characters.")
        return text

    @field_validator("competitors")
    @classmethod
    def validate_competitors(cls, value: List[str]) -> List[str]:
        names = [c.strip() for c in value if c and c.strip()]
        if len(names) > MAX_COMPETITORS:
            raise ValueError(f"Maximum {MAX_COMPETITORS} competitors.")
        for name in names:
            if len(name) > MAX_COMPETITOR_NAME_LENGTH:
                raise ValueError(f'Competitor name "{name[:20]}..." is too long.')
        return names

    @field_validator("buyer_questions")
    @classmethod
    def validate_buyer_questions(cls, value: List[str], info: ValidationInfo) -> List[str]:
        questions = [q.strip() for q in value if q and q.strip()]
        if len(questions) > MAX_BUYER_QUESTIONS:
            raise ValueError(f"Maximum {MAX_BUYER_QUESTIONS} buyer questions.")
        brand_lower = (info.data.get("brand_name") or "").lower()
        for q in questions:
            if len(q) < MIN_BUYER_QUESTION_LENGTH:
                raise ValueError(f'"{q[:30]}" is too short to be a real question.')
            if brand_lower and brand_lower in q.lower():
                raise ValueError(f'Questions should not contain your brand name: "{q[:40]}"')
        return questions


# Pipeline entities

class BrandProfile(BaseModel):
    """Structured brand profile, created once per scan by the profiler."""
    brand_name: str = Field(..., description="Brand name (user-supplied value wins)")
    domain: str = Field(..., description="Website hostname without www.")
    aliases: List[str] = Field(default_factory=list, description="Alternative spellings used for matching")
    category: str = Field("software", description="Product category")
    tagline: str = Field("", description="One-line description")
    competitors: List[str] = Field(default_factory=list, description="Competitor names")
    core_problem: str = Field("", description="Problem the product solves")
    target_buyer: str = Field("", description="Who buys the product")
    core_features: List[str] = Field(default_factory=list, description="Main product features")
    use_cases: List[str] = Field(default_factory=list, description="Typical use cases")
    differentiators: List[str] = Field(default_factory=list, description="What sets the product apart")

    model_config = {"frozen": True}


class Query(BaseModel):
    """A single buyer query in the scan's panel."""
    query_id: str = Field(..., description="Stable id within the scan")
    text: str = Field(..., description="Natural-language query")
    intent: IntentCategory = Field(..., description="Intent category")
    provenance: QueryProvenance = Field("generated", description="Generated or user-provided")

    model_config = {"frozen": True}


class ProviderResponse(BaseModel):
    """The outcome of one (query, provider) call."""
    query_id: str
    query_text: str
    intent: IntentCategory
    provider: str
    text: Optional[str] = None
    latency_ms: int = 0
    error: Optional[str] = Field(None, description="Normalized error code, never raw exception text")

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.text)


class ResponseQuality(BaseModel):
    """Rule-based quality assessment of a provider response."""
    score: int = Field(100, ge=0, le=100)
    is_deflection: bool = False
    is_generic: bool = False
    is_off_topic: bool = False
    has_specific_brands: bool = False
    issue_type: IssueType = "none"


class CompetitorMention(BaseModel):
    """A competitor named in a response."""
    name: str
    position: int = Field(..., ge=1, description="Order of appearance in the response")
    context: CompetitorContext = "listed"


class MentionAnalysis(BaseModel):
    """Brand detection result for exactly one ProviderResponse."""
    response: ProviderResponse
    mentioned: bool = False
    position: PositionBucket = "not_found"
    exact_position: Optional[int] = None
    sentiment: Optional[Sentiment] = None
    evidence: str = ""
    description: str = ""
    confidence: Confidence = "low"
    detection_method: Literal["fast_path", "fuzzy_confirmed", "llm", "llm_verified", "fallback", "none"] = "none"
    response_quality: ResponseQuality = Field(default_factory=ResponseQuality)
    competitors: List[CompetitorMention] = Field(default_factory=list)

    @property
    def provider(self) -> str:
        return self.response.provider

    @property
    def intent(self) -> str:
        return self.response.intent


class ProviderScore(BaseModel):
    """Visibility score for a single provider within one scan."""
    provider: str
    composite_score: float = Field(0.0, ge=0, le=100)
    mention_rate: Optional[float] = Field(
        None, ge=0, le=1,
        description="Mentions over attempted queries; None when nothing was attempted"
    )
    avg_position: Optional[float] = None
    sentiment_avg: Optional[float] = None
    category_coverage: float = Field(0.0, ge=0, le=1)
    mentions_count: int = 0
    total_queries: int = Field(0, description="Queries with a successful response")
    failed_queries: int = 0

    @model_validator(mode="after")
    def check_counts(self):
        if self.mentions_count > self.total_queries:
            raise ValueError("mentions_count cannot exceed total_queries")
        return self


class ScoreBreakdown(BaseModel):
    """Per-category coverage and cross-provider consistency."""
    category_coverage: Dict[str, float] = Field(default_factory=dict)
    model_consistency: float = Field(100.0, ge=0, le=100)
    consistency_factor: float = Field(1.0, ge=0, le=1)


class ProviderComparison(BaseModel):
    """How the scored providers compare with each other."""
    strongest_provider: Optional[str] = None
    weakest_provider: Optional[str] = None
    mention_rate_spread: float = Field(0.0, ge=0, le=1, description="Highest minus lowest mention rate")
    consistency_score: float = Field(0.0, ge=0, le=100)
    insights: List[str] = Field(default_factory=list, description="At most four plain-language findings")


class ScanScore(BaseModel):
    """Overall scan score, derived once per scan."""
    final_score: float = Field(0.0, ge=0, le=100)
    mention_rate: Optional[float] = None
    breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    by_model: Dict[str, ProviderScore] = Field(default_factory=dict)
    comparison: ProviderComparison = Field(default_factory=ProviderComparison)

    model_config = {"frozen": True}


class CompetitorTrackingRecord(BaseModel):
    """Cross-scan competitor state keyed by (brand_domain, competitor_name)."""
    brand_domain: str
    competitor_name: str
    rank: Optional[int] = Field(None, ge=1, le=3)
    last_mention_count: int = 0
    last_avg_position: float = 99.0
    trend: Trend = "new"
    previous_mention_count: Optional[int] = None
    previous_avg_position: Optional[float] = None
    first_seen: datetime = Field(default_factory=_utcnow, description="First scan that surfaced the competitor")
    last_seen: datetime = Field(default_factory=_utcnow, description="Latest scan that surfaced the competitor")
    updated_at: datetime = Field(default_factory=_utcnow)


class BrandShare(BaseModel):
    """A brand's share of all brand mentions in a scan."""
    name: str
    is_self: bool = False
    mentions: int = 0
    share: float = 0.0
    per_provider: Dict[str, int] = Field(default_factory=dict)


class ShareOfVoice(BaseModel):
    brands: List[BrandShare] = Field(default_factory=list)
    your_rank: int = 0
    total_mentions: int = 0


class MetricDelta(BaseModel):
    current: float
    previous: Optional[float] = None
    delta: Optional[float] = None


class ScoreDeltas(BaseModel):
    """Score changes relative to the previous completed scan of the same brand."""
    overall: MetricDelta
    mention_rate: MetricDelta
    consistency: MetricDelta
    providers: Dict[str, MetricDelta] = Field(default_factory=dict)
    previous_scan_id: Optional[str] = None
    previous_scan_date: Optional[datetime] = None


class ScanProgress(BaseModel):
    scan_id: str
    percent: int = Field(0, ge=0, le=100)
    stage: ScanStage = "pending"
    updated_at: datetime = Field(default_factory=_utcnow)


class ScanResult(BaseModel):
    """Everything a scan produced, persisted once at the end of the run."""
    scan_id: str
    status: Literal["complete", "partial"] = "complete"
    plan_tier: str = "free"
    providers: List[str] = Field(default_factory=list)
    brand_profile: BrandProfile
    score: ScanScore
    query_count: int = 0
    queries: List[Query] = Field(default_factory=list)
    analyses: List[MentionAnalysis] = Field(default_factory=list)
    competitors: List[CompetitorTrackingRecord] = Field(default_factory=list)
    share_of_voice: Optional[ShareOfVoice] = None
    deltas: Optional[ScoreDeltas] = None
    cancelled: bool = False
    errors: List[str] = Field(default_factory=list, description="Non-fatal error codes")
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def brand_domain(self) -> str:
        return self.brand_profile.domain


# API Request/Response Models

class ScanRequest(BaseModel):
    """Request model for the POST /scans endpoint."""
    input: ScanInput
    user_id: Optional[str] = Field(None, description="User id for plan resolution")
    providers: Optional[List[str]] = Field(
        None,
        description="Providers to query (defaults to the plan's allowlist)",
        examples=[["openai", "anthropic"]]
    )


class ErrorResponse(BaseModel):
    code: str
    message: str
    result: Optional[ScanResult] = Field(None, description="Computed result of a scan that could not be saved")


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""
    status: str = Field(..., description="Service health status", examples=["healthy"])
    version: str = Field(..., description="API version", examples=["1.0.0"])
