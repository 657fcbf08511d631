from pydantic import model_validator
from pydantic_settings import BaseSettings
from typing import Dict, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    OPENAI_API_KEY: Optional[str] = ""
    ANTHROPIC_API_KEY: Optional[str] = ""
    GEMINI_API_KEY: Optional[str] = ""
    FIRECRAWL_API_KEY: Optional[str] = ""

    # Application Settings
    APP_NAME: str = "AI Visibility Scan Pipeline"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # LLM Provider Configuration
    # Options: "openai", "anthropic", "google"
    PROFILING_PROVIDER: str = "openai"  # Provider for brand profiling
    DETECTION_PROVIDER: str = "openai"  # Provider for mention verification
    QUERY_GENERATION_PROVIDER: str = "openai"  # Provider for LLM-authored queries

    # Model Settings - Cost-effective models
    CHATGPT_MODEL: str = "gpt-4o-mini"
    CLAUDE_MODEL: str = "claude-3-5-haiku-20241022"
    GEMINI_MODEL: str = "gemini-2.5-flash-lite"

    # Call policies per call site
    PROFILING_TEMPERATURE: float = 0.0
    PROFILING_MAX_TOKENS: int = 1000
    PROFILING_TIMEOUT: float = 30.0

    QUERY_TEMPERATURE: float = 0.3  # Small variance, like real users
    QUERY_MAX_TOKENS: int = 1500
    QUERY_TIMEOUT: float = 60.0

    DETECTION_TEMPERATURE: float = 0.1
    DETECTION_MAX_TOKENS: int = 600
    DETECTION_TIMEOUT: float = 15.0

    PROVIDER_MAX_RETRIES: int = 2
    DETECTION_MAX_RETRIES: int = 0  # Detection keeps its hard timeout

    # Plan entitlements (JSON object in the environment, e.g. {"user-1": "pro"})
    USER_PLAN_TIERS: Dict[str, str] = {}
    DEFAULT_PLAN_TIER: str = "free"

    # Scan Settings
    SCAN_TIMEOUT_SECONDS: int = 300
    SHADOW_SCAN_ENABLED: bool = False

    # Scoring weights (mention rate > coverage > position > sentiment)
    WEIGHT_MENTION_RATE: float = 0.45
    WEIGHT_CATEGORY_COVERAGE: float = 0.25
    WEIGHT_POSITION: float = 0.20
    WEIGHT_SENTIMENT: float = 0.10
    CONSISTENCY_PENALTY: float = 0.5  # Max fraction removed for full divergence

    # Redis Settings
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_MAX_CONNECTIONS: int = 10
    REDIS_KEY_PREFIX: str = "visibility"

    @model_validator(mode="after")
    def check_weight_ordering(self):
        weights = [
            self.WEIGHT_MENTION_RATE,
            self.WEIGHT_CATEGORY_COVERAGE,
            self.WEIGHT_POSITION,
            self.WEIGHT_SENTIMENT,
        ]
        if any(w < 0 for w in weights):
            raise ValueError("Scoring weights must be non-negative")
        if not (weights[0] > weights[1] > weights[2] > weights[3]):
            raise ValueError(
                "Scoring weights must keep mention rate > category coverage > position > sentiment"
            )
        if not 0 <= self.CONSISTENCY_PENALTY <= 1:
            raise ValueError("CONSISTENCY_PENALTY must be between 0 and 1")
        return self

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
