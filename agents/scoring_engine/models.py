"""
Pydantic models for the scoring engine.
"""

from pydantic import BaseModel, Field

from config.settings import settings


class ScoringWeights(BaseModel):
    """Composite score weights. Only their ordering is a contract."""
    mention_rate: float = Field(0.45, ge=0)
    category_coverage: float = Field(0.25, ge=0)
    position: float = Field(0.20, ge=0)
    sentiment: float = Field(0.10, ge=0)
    consistency_penalty: float = Field(0.5, ge=0, le=1, description="Fraction removed at full provider divergence")

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls) -> "ScoringWeights":
        return cls(
            mention_rate=settings.WEIGHT_MENTION_RATE,
            category_coverage=settings.WEIGHT_CATEGORY_COVERAGE,
            position=settings.WEIGHT_POSITION,
            sentiment=settings.WEIGHT_SENTIMENT,
            consistency_penalty=settings.CONSISTENCY_PENALTY,
        )

    @property
    def total(self) -> float:
        return self.mention_rate + self.category_coverage + self.position + self.sentiment
