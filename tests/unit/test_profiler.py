"""
Unit tests for brand profiling.
"""

import json

from agents.brand_profiler_agent import BrandProfiler
from agents.brand_profiler_agent.utils import build_aliases, generate_deterministic_aliases, merge_competitors
from tests.fakes import FakeProvider


EXTRACTED = {
    "brand_name": "Cal.com",
    "tagline": "Scheduling infrastructure for everyone",
    "category": "scheduling software",
    "core_features": ["Round robin routing", "Workflows"],
    "use_cases": ["Sales demos"],
    "competitors_mentioned": ["SavvyCal", "cal.com", "calendly"],
    "key_differentiators": ["Open source"],
    "brand_aliases": ["Calcom"],
    "core_problem": "Booking meetings",
    "target_buyer": "Sales teams",
}


def test_profile_without_llm_uses_input(scan_input):
    profile = BrandProfiler().extract(scan_input, "", scan_input.website_url)

    assert profile.brand_name == "Cal.com"
    assert profile.domain == "cal.com"
    assert "cal" in profile.aliases
    assert profile.category == "software"
    assert profile.competitors == ["Calendly"]
    assert profile.core_problem == scan_input.core_problem


def test_extracted_fields_fill_gaps_and_input_wins(scan_input):
    llm = FakeProvider("openai", json.dumps(EXTRACTED))
    profile = BrandProfiler(llm).extract(scan_input, "Cal.com homepage text", "https://www.cal.com")

    assert llm.calls == 1
    assert profile.category == "scheduling software"
    assert profile.competitors == ["Calendly", "SavvyCal"]
    assert "calcom" in profile.aliases
    assert profile.core_problem == scan_input.core_problem
    assert profile.target_buyer == scan_input.target_buyer
    assert profile.core_features == ["Round robin routing", "Workflows"]


def test_fenced_json_is_accepted(scan_input):
    llm = FakeProvider("openai", f"```json\n{json.dumps(EXTRACTED)}\n```")
    assert BrandProfiler(llm).extract(scan_input).category == "scheduling software"


def test_invalid_json_degrades_to_input(scan_input):
    llm = FakeProvider("openai", "I could not read that website.")
    profile = BrandProfiler(llm).extract(scan_input, "text")

    assert profile.category == "software"
    assert profile.competitors == ["Calendly"]


def test_schema_mismatch_degrades_to_input(scan_input):
    llm = FakeProvider("openai", json.dumps({"category": 42}))
    assert BrandProfiler(llm).extract(scan_input).category == "software"


def test_failed_call_degrades_to_input(scan_input):
    llm = FakeProvider("openai", error="timeout")
    assert BrandProfiler(llm).extract(scan_input).brand_name == "Cal.com"


def test_deterministic_aliases():
    assert generate_deterministic_aliases("PayFast") == ["pay fast", "pay-fast"]
    assert generate_deterministic_aliases("Cal.com") == ["cal"]


def test_build_aliases_includes_domain_forms():
    aliases = build_aliases("PayFast", "payfast.io")
    assert aliases[0] == "payfast"
    assert "payfast.io" in aliases
    assert len(aliases) == len(set(aliases))


def test_merge_competitors_drops_brand_and_duplicates():
    merged = merge_competitors(["Calendly"], ["calendly", "Cal.com", "SavvyCal"], "Cal.com")
    assert merged == ["Calendly", "SavvyCal"]
