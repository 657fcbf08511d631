"""
Pydantic models for brand profiling.
"""

from typing import List
from pydantic import BaseModel, Field, field_validator


MAX_LIST_ITEMS = 8


class ExtractedProfile(BaseModel):
    """Strict schema for the profiling LLM's JSON answer."""
    brand_name: str = Field("", description="Brand name as written on the site")
    tagline: str = Field("", description="One-line description of the product")
    category: str = Field("", description="Product category, e.g. 'scheduling software'")
    core_features: List[str] = Field(default_factory=list, description="Main features, most prominent first")
    use_cases: List[str] = Field(default_factory=list, description="Typical use cases")
    competitors_mentioned: List[str] = Field(default_factory=list, description="Competitors explicitly named on the site")
    key_differentiators: List[str] = Field(default_factory=list, description="What sets the product apart")
    brand_aliases: List[str] = Field(default_factory=list, description="Abbreviations and alternate names")
    core_problem: str = Field("", description="Primary pain point addressed")
    target_buyer: str = Field("", description="Person or role who buys the product")

    model_config = {"extra": "ignore", "strict": True}

    @field_validator(
        "core_features", "use_cases", "competitors_mentioned",
        "key_differentiators", "brand_aliases"
    )
    @classmethod
    def clean_list(cls, value: List[str]) -> List[str]:
        return [v.strip() for v in value if v and v.strip()][:MAX_LIST_ITEMS]
