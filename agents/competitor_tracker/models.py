"""
Pydantic models for competitor tracking.
"""

from pydantic import BaseModel, Field


class CompetitorSnapshot(BaseModel):
    """A competitor's aggregate presence within a single scan."""
    name: str = Field(..., description="Display name (first spelling seen)")
    mention_count: int = Field(0, ge=0, description="Responses naming the competitor")
    avg_position: float = Field(99.0, description="Mean position in responses, 99 when unknown")
