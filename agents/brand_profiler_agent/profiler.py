"""
Brand profiler.

Turns scraped homepage text plus the user's scan input into a BrandProfile.
User-supplied fields always win; the profiling LLM only fills gaps, and
any failure of the LLM step degrades to a profile built from the input.
"""

import json
import logging
from typing import Optional

from pydantic import ValidationError

from agents.brand_profiler_agent.models import ExtractedProfile
from agents.brand_profiler_agent.utils import (
    build_aliases,
    merge_competitors,
    merge_differentiators,
)
from agents.llm_providers import LLMProvider
from agents.llm_providers.utils import parse_json_response
from models.schemas import BrandProfile, ScanInput
from utils.helpers import extract_domain_from_url, truncate_text

logger = logging.getLogger(__name__)

MAX_PROMPT_CONTENT_LENGTH = 6000
DEFAULT_CATEGORY = "software"

PROFILE_SYSTEM_PROMPT = "You are a product analyst. Always respond with valid JSON only."

PROFILE_EXTRACTION_PROMPT = """Given the following website content, extract a structured product profile.

Respond ONLY with valid JSON matching this exact schema:
{{
  "brand_name": "string",
  "tagline": "string",
  "category": "string",
  "core_features": ["string"],
  "use_cases": ["string"],
  "competitors_mentioned": ["string"],
  "key_differentiators": ["string"],
  "brand_aliases": ["string"],
  "core_problem": "string",
  "target_buyer": "string"
}}

Rules:
- brand_aliases: common abbreviations, the domain without TLD, and alternate names found on the site
- core_features: max 8, prioritized by prominence on the page
- competitors_mentioned: only products explicitly named on the site
- If a field cannot be determined, use an empty string or empty array

Brand (as entered by the user): {brand_name}
Website: {url}

Website content:
{content}"""


def parse_extracted_profile(raw: Optional[str]) -> Optional[ExtractedProfile]:
    """
    Parse the profiling LLM answer into a strict ExtractedProfile.

    Returns:
        ExtractedProfile, or None when the answer is not schema-valid JSON
    """
    if not raw:
        return None
    try:
        payload = parse_json_response(raw)
        return ExtractedProfile.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"⚠️ Profile extraction returned invalid JSON, using input only: {type(e).__name__}")
        return None


def merge_profile(scan_input: ScanInput, extracted: Optional[ExtractedProfile], url: str = None) -> BrandProfile:
    """
    Merge user input with extracted fields into a BrandProfile.

    Args:
        scan_input: Validated scan input (takes precedence)
        extracted: Extracted profile, or None
        url: Website URL (defaults to scan_input.website_url)

    Returns:
        BrandProfile with aliases ready for mention detection
    """
    extracted = extracted or ExtractedProfile()
    domain = extract_domain_from_url(url or scan_input.website_url)
    brand_name = scan_input.brand_name or extracted.brand_name or domain.split(".")[0]

    return BrandProfile(
        brand_name=brand_name,
        domain=domain,
        aliases=build_aliases(brand_name, domain, extracted.brand_aliases),
        category=extracted.category.strip() or DEFAULT_CATEGORY,
        tagline=extracted.tagline.strip() or scan_input.core_problem,
        competitors=merge_competitors(scan_input.competitors, extracted.competitors_mentioned, brand_name),
        core_problem=scan_input.core_problem or extracted.core_problem,
        target_buyer=scan_input.target_buyer or extracted.target_buyer,
        core_features=extracted.core_features,
        use_cases=extracted.use_cases,
        differentiators=merge_differentiators(scan_input.differentiators, extracted.key_differentiators),
    )


class BrandProfiler:
    """Build brand profiles with an injected profiling LLM."""

    def __init__(self, llm: Optional[LLMProvider] = None):
        self.llm = llm

    def extract(self, scan_input: ScanInput, page_text: str = "", url: str = None) -> BrandProfile:
        """
        Build the BrandProfile for a scan.

        Args:
            scan_input: Validated scan input
            page_text: Scraped homepage text, possibly empty
            url: Website URL that was scraped

        Returns:
            BrandProfile
        """
        extracted = None

        if self.llm is not None:
            prompt = PROFILE_EXTRACTION_PROMPT.format(
                brand_name=scan_input.brand_name,
                url=url or scan_input.website_url,
                content=truncate_text(page_text or "(no content could be scraped)", MAX_PROMPT_CONTENT_LENGTH, ""),
            )
            result = self.llm.generate(prompt, system_prompt=PROFILE_SYSTEM_PROMPT)
            if result.ok:
                extracted = parse_extracted_profile(result.text)
            else:
                logger.warning(f"⚠️ Profiling call failed ({result.error}), using input only")

        profile = merge_profile(scan_input, extracted, url)
        logger.info(
            f"✓ Profiled {profile.brand_name} ({profile.category}): "
            f"{len(profile.aliases)} aliases, {len(profile.competitors)} competitors"
        )
        return profile
