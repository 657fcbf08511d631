"""
Pydantic models for LLM provider calls.
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field


CallPurpose = Literal["profiling", "query", "detection"]


class CallPolicy(BaseModel):
    """Fixed sampling and timeout policy for one call site."""
    temperature: float = Field(description="Sampling temperature")
    max_tokens: int = Field(description="Max completion tokens")
    timeout: float = Field(description="Per-attempt timeout in seconds; no retry starts once it has elapsed")
    max_retries: int = Field(0, ge=0, description="Retries after the first attempt")

    model_config = {"frozen": True}


class ProviderResult(BaseModel):
    """Outcome of one generate() call. Errors are data, never exceptions."""
    text: Optional[str] = None
    error: Optional[str] = Field(None, description="Normalized error code")
    latency_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None
