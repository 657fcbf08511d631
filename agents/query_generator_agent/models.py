"""
Pydantic models for query generation.
"""

from typing import List
from pydantic import BaseModel, Field, field_validator

from models.schemas import IntentCategory


class GeneratedQuery(BaseModel):
    """A single query proposed by the LLM."""
    text: str = Field(description="Natural-language buyer query")
    intent: IntentCategory = Field(description="Intent category of the query")

    @field_validator("text")
    @classmethod
    def strip_text(cls, value: str) -> str:
        text = " ".join(value.split())
        if not text:
            raise ValueError("Query text is empty")
        return text


class GeneratedQueries(BaseModel):
    """Strict schema for the query-generation LLM's JSON answer."""
    queries: List[GeneratedQuery] = Field(description="Generated queries")
