"""
Pydantic models for mention detection.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

from models.schemas import Sentiment


class DetectionJudgement(BaseModel):
    """Strict schema for the detection LLM's JSON answer."""
    brand_mentioned: bool = Field(..., description="Whether the brand appears anywhere in the response")
    brand_position: Literal["top_3", "mentioned_not_top", "not_mentioned"] = "not_mentioned"
    brand_exact_position: Optional[int] = Field(None, ge=1, description="List position, or order of appearance")
    brand_sentiment: Optional[Sentiment] = None
    brand_description: Optional[str] = Field(None, description="How the response portrays the brand")
    competitors_mentioned: List[str] = Field(default_factory=list)
    competitors_in_top_3: List[str] = Field(default_factory=list)
    other_brands_mentioned: List[str] = Field(default_factory=list)
    response_type: Literal[
        "list_recommendations",
        "single_recommendation",
        "comparison",
        "general_advice",
        "unclear",
    ] = "unclear"

    model_config = {"extra": "ignore", "strict": True}

    @field_validator("competitors_mentioned", "competitors_in_top_3", "other_brands_mentioned")
    @classmethod
    def clean_names(cls, value: List[str]) -> List[str]:
        return [v.strip() for v in value if v and v.strip()]
