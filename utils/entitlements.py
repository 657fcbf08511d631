"""
Plan tier resolution.

Billing lives outside the pipeline; the orchestrator only needs
`resolve(user_id) -> plan_tier`, consulted once at scan start. The tier
on a scan request can only lower the entitled tier, never raise it.
"""

import logging
from typing import Dict, Optional, Protocol

from config.plans import MOST_RESTRICTIVE_TIER, PLAN_TIERS
from config.settings import settings

logger = logging.getLogger(__name__)


class EntitlementResolver(Protocol):
    def resolve(self, user_id: Optional[str]) -> str:
        ...


class StaticEntitlementResolver:
    """Resolve plan tiers from a fixed user -> tier mapping."""

    def __init__(self, tiers: Optional[Dict[str, str]] = None, default_tier: str = MOST_RESTRICTIVE_TIER):
        self.tiers = dict(tiers or {})
        self.default_tier = default_tier

    def resolve(self, user_id: Optional[str]) -> str:
        tier = self.tiers.get(user_id or "", self.default_tier)
        if tier not in PLAN_TIERS:
            raise ValueError(f"Unknown plan tier for user {user_id}: {tier}")
        return tier

    @classmethod
    def from_settings(cls) -> "StaticEntitlementResolver":
        """Resolver over USER_PLAN_TIERS and DEFAULT_PLAN_TIER."""
        return cls(settings.USER_PLAN_TIERS, settings.DEFAULT_PLAN_TIER)


def cap_tier(entitled: str, requested: Optional[str]) -> str:
    """The lower of the entitled tier and a requested tier."""
    if requested in PLAN_TIERS and PLAN_TIERS.index(requested) < PLAN_TIERS.index(entitled):
        return requested
    return entitled


def resolve_plan_tier(
    resolver: Optional[EntitlementResolver],
    user_id: Optional[str],
    requested_tier: Optional[str] = None,
) -> str:
    """
    Resolve the plan tier a scan runs under.

    Args:
        resolver: Entitlement resolver; without one only the most
            restrictive tier is granted
        user_id: User to resolve (None resolves to the resolver's default)
        requested_tier: Tier carried on the scan input, applied only when lower

    Returns:
        Plan tier key
    """
    if resolver is None:
        if requested_tier not in (None, MOST_RESTRICTIVE_TIER):
            logger.warning(f"⚠️ No entitlement resolver, ignoring requested tier '{requested_tier}'")
        return MOST_RESTRICTIVE_TIER

    try:
        tier = resolver.resolve(user_id)
    except Exception as e:
        logger.warning(f"⚠️ Entitlement lookup failed for {user_id} ({e}), defaulting to {MOST_RESTRICTIVE_TIER}")
        return MOST_RESTRICTIVE_TIER

    if tier not in PLAN_TIERS:
        logger.warning(f"⚠️ Unknown plan tier '{tier}' for {user_id}, defaulting to {MOST_RESTRICTIVE_TIER}")
        return MOST_RESTRICTIVE_TIER
    return cap_tier(tier, requested_tier)
