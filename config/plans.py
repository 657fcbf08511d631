"""
Plan tier configuration.

A plan tier gates the query panel size, the provider set and the
concurrency of provider calls for a scan. The tier is resolved once at
scan start and never re-read mid-scan.
"""

import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

PLAN_TIERS = ("free", "starter", "pro")
MOST_RESTRICTIVE_TIER = "free"
FALLBACK_PROVIDER_COUNT = 2


class PlanConfig(BaseModel):
    """Resource limits for a single plan tier."""
    tier: str = Field(description="Plan tier key")
    max_queries: int = Field(description="Upper bound on the query panel size", gt=0)
    concurrency: int = Field(description="Max simultaneous provider calls", gt=0)
    providers: List[str] = Field(description="Providers allowed for this tier")
    always_verify: bool = Field(
        default=False,
        description="Run LLM verification on every response, not just ambiguous ones"
    )

    model_config = {"frozen": True}


PLAN_CONFIGS: Dict[str, PlanConfig] = {
    "free": PlanConfig(
        tier="free",
        max_queries=8,
        concurrency=2,
        providers=["openai", "anthropic"],
    ),
    "starter": PlanConfig(
        tier="starter",
        max_queries=12,
        concurrency=5,
        providers=["openai", "anthropic"],
    ),
    "pro": PlanConfig(
        tier="pro",
        max_queries=12,
        concurrency=10,
        providers=["openai", "anthropic", "google"],
        always_verify=True,
    ),
}


def get_plan_config(tier: Optional[str]) -> PlanConfig:
    """
    Get the configuration for a plan tier.

    Args:
        tier: Plan tier key (free, starter, pro)

    Returns:
        PlanConfig for the tier, or the free tier when unknown
    """
    if tier and tier.lower() in PLAN_CONFIGS:
        return PLAN_CONFIGS[tier.lower()]

    if tier:
        logger.warning(f"Unknown plan tier '{tier}', falling back to {MOST_RESTRICTIVE_TIER}")
    return PLAN_CONFIGS[MOST_RESTRICTIVE_TIER]


def resolve_plan_providers(
    requested: Sequence[str],
    plan: PlanConfig,
    available: Sequence[str],
) -> List[str]:
    """
    Filter requested providers against the plan allowlist.

    Fails open: if the allowlist is empty, cannot be read, or leaves
    nothing usable, the first two available providers are used so a
    billing misconfiguration never blocks a scan.

    Args:
        requested: Providers the caller asked for
        plan: Plan configuration resolved at scan start
        available: Providers that have credentials configured

    Returns:
        Ordered list of provider names to query
    """
    available = list(available)
    fallback = available[:FALLBACK_PROVIDER_COUNT]

    try:
        allowlist = {p.lower() for p in plan.providers}
    except (AttributeError, TypeError) as e:
        logger.warning(f"⚠️ Could not read provider allowlist ({e}), using fallback {fallback}")
        return fallback

    if not allowlist:
        logger.warning(f"⚠️ Empty provider allowlist for {plan.tier}, using fallback {fallback}")
        return fallback

    resolved = []
    for name in requested:
        key = name.lower()
        if key in allowlist and key in available and key not in resolved:
            resolved.append(key)

    if not resolved:
        logger.warning(
            f"⚠️ No requested provider allowed on {plan.tier} "
            f"(requested={list(requested)}), using fallback {fallback}"
        )
        return fallback

    return resolved
