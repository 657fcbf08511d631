"""
Shared fixtures.
"""

import pytest

from models.schemas import BrandProfile, ProviderResponse, ScanInput
from storage.repository import InMemoryScanRepository
from tests.fakes import BUYER_QUESTIONS


@pytest.fixture
def scan_input() -> ScanInput:
    return ScanInput(
        brand_name="Cal.com",
        website_url="https://cal.com",
        core_problem="Scheduling meetings without back-and-forth emails",
        target_buyer="Freelancers and small teams",
        competitors=["Calendly"],
        buyer_questions=BUYER_QUESTIONS,
        plan_tier="free",
    )


@pytest.fixture
def profile() -> BrandProfile:
    return BrandProfile(
        brand_name="Cal.com",
        domain="cal.com",
        aliases=["cal.com", "cal", "calcom"],
        category="scheduling software",
        tagline="Scheduling infrastructure for everyone",
        competitors=["Calendly", "SavvyCal"],
        core_problem="Scheduling meetings without back-and-forth emails",
        target_buyer="Freelancers and small teams",
    )


@pytest.fixture
def repository() -> InMemoryScanRepository:
    return InMemoryScanRepository()


@pytest.fixture
def make_response():
    def _make(text=None, provider="openai", query_id="q1", intent="recommendation", error=None,
              query_text="What is the best scheduling software for small teams?"):
        return ProviderResponse(
            query_id=query_id,
            query_text=query_text,
            intent=intent,
            provider=provider,
            text=text,
            latency_ms=5,
            error=error,
        )
    return _make
