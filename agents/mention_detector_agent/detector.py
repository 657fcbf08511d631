"""
Mention detector.

Runs per ProviderResponse in two tiers:
1. Fast path: deterministic string matching on markdown-stripped text.
   If neither the brand nor any known competitor matches, the response
   is conclusively "not mentioned" and no LLM call is made.
2. Verification path: an LLM judge returns strict JSON, reconciled with
   the fast path. Literal matches override LLM negatives; LLM positives
   are accepted without a literal match only when backed by a description.

A near-spelling of the brand ("Calendy") with no exact match is sent to
the LLM for a yes/no confirmation; unconfirmed near-matches never count.

Any LLM failure or schema mismatch falls back to the heuristic analysis.
"""

import json
import logging
from typing import List, Optional, Tuple

from pydantic import ValidationError

from agents.llm_providers import LLMProvider
from agents.llm_providers.utils import parse_json_response
from agents.mention_detector_agent.brand_matcher import (
    FuzzyMatch,
    extract_evidence_snippet,
    extract_list_rank,
    find_first_match,
    fuzzy_brand_match,
    is_exact_brand_match,
    quick_brand_check,
    strip_markdown,
)
from agents.mention_detector_agent.competitors import extract_competitors
from agents.mention_detector_agent.models import DetectionJudgement
from agents.mention_detector_agent.quality import score_response_quality
from agents.mention_detector_agent.sentiment import classify_sentiment
from models.schemas import BrandProfile, MentionAnalysis, ProviderResponse

logger = logging.getLogger(__name__)

TOP_3_CHAR_LIMIT = 300
MIN_DESCRIPTION_LENGTH = 10
MIN_ALIAS_LENGTH = 3
MAX_PROMPT_RESPONSE_LENGTH = 6000
FUZZY_SNIPPET_BEFORE = 50
FUZZY_SNIPPET_AFTER = 100

DETECTION_SYSTEM_PROMPT = "You analyze AI assistant answers for brand mentions. Respond with valid JSON only."

CONFIRM_SYSTEM_PROMPT = "You check whether a text refers to a product. Answer yes or no."

CONFIRM_PROMPT = """Does the following text mention or recommend the product "{brand_name}"?
Answer ONLY "yes" or "no".

Text: "{snippet}\""""

DETECTION_PROMPT = """You are analyzing an AI assistant's response to a recommendation question.

The brand/company we're checking for: "{brand_name}"
Known alternative names: {aliases}
The competitors to check for: {competitors}

Here is the AI response to analyze:
\"\"\"
{response}
\"\"\"

Respond ONLY with this JSON (no markdown, no other text):

{{
  "brand_mentioned": boolean,
  "brand_position": "top_3" | "mentioned_not_top" | "not_mentioned",
  "brand_exact_position": number or null,
  "brand_sentiment": "recommended" | "neutral" | "negative" | null,
  "brand_description": "one sentence describing how the response portrayed the brand, or null",
  "competitors_mentioned": ["competitor names found"],
  "competitors_in_top_3": ["competitors that were top recommendations"],
  "other_brands_mentioned": ["other brands or products mentioned"],
  "response_type": "list_recommendations" | "single_recommendation" | "comparison" | "general_advice" | "unclear"
}}

Rules:
- Brand matching is case-insensitive.
- "brand_exact_position": the numbered-list position if there is a list, otherwise the order of appearance (1 = first). null if not mentioned.
- "top_3": one of the first 3 specific recommendations, or explicitly called a top choice or best option.
- "mentioned_not_top": named, but not as a primary recommendation.
- "recommended" sentiment means the response actively suggests using it; "negative" means it advises against it.
- competitors_in_top_3: only competitors explicitly recommended as top choices.
- other_brands_mentioned: every other brand or product that is NOT the brand or a listed competitor."""


def match_terms(profile: BrandProfile) -> List[str]:
    """The brand name plus aliases long enough to match safely."""
    aliases = [a for a in profile.aliases if len(a) >= MIN_ALIAS_LENGTH]
    return [profile.brand_name] + aliases


def estimate_rank(index: int) -> int:
    """Rough rank from where the first mention sits in the text."""
    if index < 100:
        return 1
    if index < 200:
        return 2
    if index < TOP_3_CHAR_LIMIT:
        return 3
    return 5


def parse_judgement(raw: Optional[str]) -> Optional[DetectionJudgement]:
    """
    Parse the detection LLM answer into a strict DetectionJudgement.

    Returns:
        DetectionJudgement, or None on any JSON or schema error
    """
    if not raw:
        return None
    try:
        return DetectionJudgement.model_validate(parse_json_response(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"⚠️ Detection judge returned invalid JSON, using heuristics: {type(e).__name__}")
        return None


def basic_analysis(
    response: ProviderResponse,
    clean: str,
    profile: BrandProfile,
    detection_method: str = "fallback",
) -> MentionAnalysis:
    """
    Heuristic analysis from string matching alone.

    Args:
        response: The provider response (raw text is used for list ranks)
        clean: Markdown-stripped response text
        profile: Brand profile with aliases and competitors
        detection_method: Recorded on the analysis

    Returns:
        MentionAnalysis
    """
    terms = match_terms(profile)
    aliases = terms[1:]
    _, index = find_first_match(clean, terms)
    mentioned = index != -1

    position = "not_found"
    exact_position = None
    sentiment = None
    if mentioned:
        position = "top_3" if index < TOP_3_CHAR_LIMIT else "mentioned_not_top"
        exact_position = extract_list_rank(response.text, profile.brand_name, aliases) or estimate_rank(index)
        sentiment = classify_sentiment(clean, profile.brand_name, aliases)

    if detection_method == "fast_path":
        confidence = "medium" if mentioned else "high"
    else:
        confidence = "medium" if mentioned else "low"

    return MentionAnalysis(
        response=response,
        mentioned=mentioned,
        position=position,
        exact_position=exact_position,
        sentiment=sentiment,
        evidence=extract_evidence_snippet(clean, profile.brand_name, aliases) if mentioned else "",
        confidence=confidence,
        detection_method=detection_method,
        response_quality=score_response_quality(response.text, response.query_text),
        competitors=extract_competitors(clean, profile.competitors, terms),
    )


class MentionDetector:
    """
    Detect brand mentions in provider responses.

    Args:
        llm: Detection LLM for the verification path (None disables it)
        always_verify: Run the verification path on every matched response
    """

    def __init__(self, llm: Optional[LLMProvider] = None, always_verify: bool = False):
        self.llm = llm
        self.always_verify = always_verify

    def analyze(self, response: ProviderResponse, profile: BrandProfile) -> MentionAnalysis:
        """
        Analyze one provider response for the scanned brand.

        Args:
            response: ProviderResponse (failed responses yield a not-found analysis)
            profile: Brand profile

        Returns:
            MentionAnalysis referencing the response
        """
        if not response.ok:
            return MentionAnalysis(response=response, confidence="high", detection_method="none")

        clean = strip_markdown(response.text)
        terms = match_terms(profile)
        possibly, exact = quick_brand_check(clean, profile.brand_name, terms[1:])
        known_found = [c for c in profile.competitors if is_exact_brand_match(clean, c)]

        if not possibly and self.llm is not None:
            near = fuzzy_brand_match(clean, profile.brand_name)
            if near is not None and self._confirm(clean, profile, near):
                variant = profile.model_copy(update={"aliases": list(profile.aliases) + [near.text]})
                return basic_analysis(response, clean, variant, detection_method="fuzzy_confirmed")

        if not possibly and not known_found:
            logger.debug(f"Fast path: {profile.brand_name} not in {response.provider}/{response.query_id}")
            return basic_analysis(response, clean, profile, detection_method="fast_path")

        if exact and not self.always_verify:
            return basic_analysis(response, clean, profile, detection_method="fast_path")

        if self.llm is None:
            return basic_analysis(response, clean, profile)

        judgement = self._judge(clean, profile)
        if judgement is None:
            return basic_analysis(response, clean, profile)

        return self._reconcile(response, clean, profile, judgement)

    def _confirm(self, clean: str, profile: BrandProfile, near: FuzzyMatch) -> bool:
        """Ask the LLM whether a near-spelling really refers to the brand."""
        snippet = clean[max(0, near.index - FUZZY_SNIPPET_BEFORE):near.index + FUZZY_SNIPPET_AFTER]
        prompt = CONFIRM_PROMPT.format(brand_name=profile.brand_name, snippet=snippet)
        result = self.llm.generate(prompt, system_prompt=CONFIRM_SYSTEM_PROMPT)
        if not result.ok:
            logger.warning(f"⚠️ Near-match confirmation failed ({result.error}), ignoring '{near.text}'")
            return False
        confirmed = result.text.strip().lower().startswith("yes")
        logger.debug(f"Near-match '{near.text}' ({near.similarity}) confirmed={confirmed}")
        return confirmed

    def _judge(self, clean: str, profile: BrandProfile) -> Optional[DetectionJudgement]:
        prompt = DETECTION_PROMPT.format(
            brand_name=profile.brand_name,
            aliases=", ".join(profile.aliases) or "none",
            competitors=", ".join(profile.competitors) or "none specified",
            response=clean[:MAX_PROMPT_RESPONSE_LENGTH],
        )
        result = self.llm.generate(prompt, system_prompt=DETECTION_SYSTEM_PROMPT)
        if not result.ok:
            logger.warning(f"⚠️ Detection call failed ({result.error}), using heuristics")
            return None
        return parse_judgement(result.text)

    def _reconcile(
        self,
        response: ProviderResponse,
        clean: str,
        profile: BrandProfile,
        judgement: DetectionJudgement,
    ) -> MentionAnalysis:
        """Apply the trust rule between the LLM judgement and literal matches."""
        terms = match_terms(profile)
        aliases = terms[1:]
        _, index = find_first_match(clean, terms)
        if index == -1:
            _, index = find_first_match(response.text, terms)
        literal_found = index != -1
        description = (judgement.brand_description or "").strip()

        mentioned, method, confidence = self._trust(judgement.brand_mentioned, literal_found, description)

        position = "not_found"
        exact_position = None
        sentiment = None
        if mentioned:
            position, exact_position = self._position(response, profile, judgement, index)
            sentiment = judgement.brand_sentiment or classify_sentiment(clean, profile.brand_name, aliases)
        else:
            description = ""

        verified_names = [
            n for n in judgement.competitors_mentioned + judgement.other_brands_mentioned
            if is_exact_brand_match(clean, n)
        ]
        competitors = extract_competitors(
            clean,
            list(profile.competitors) + verified_names,
            terms,
            top_3=judgement.competitors_in_top_3,
        )

        return MentionAnalysis(
            response=response,
            mentioned=mentioned,
            position=position,
            exact_position=exact_position,
            sentiment=sentiment,
            evidence=extract_evidence_snippet(clean, profile.brand_name, aliases) if literal_found else "",
            description=description,
            confidence=confidence,
            detection_method=method,
            response_quality=score_response_quality(response.text, response.query_text),
            competitors=competitors,
        )

    @staticmethod
    def _trust(llm_says: bool, literal_found: bool, description: str) -> Tuple[bool, str, str]:
        """
        Returns:
            (mentioned, detection_method, confidence)
        """
        if llm_says and literal_found:
            return True, "llm_verified", "high"
        if llm_says and len(description) > MIN_DESCRIPTION_LENGTH:
            return True, "llm", "medium"
        if llm_says:
            logger.debug("LLM claimed a mention without literal or descriptive evidence, rejected")
            return False, "llm", "medium"
        if literal_found:
            # Literal match overrides the judge's negative
            return True, "fast_path", "medium"
        return False, "llm_verified", "high"

    @staticmethod
    def _position(
        response: ProviderResponse,
        profile: BrandProfile,
        judgement: DetectionJudgement,
        index: int,
    ) -> Tuple[str, Optional[int]]:
        aliases = match_terms(profile)[1:]
        if judgement.brand_position in ("top_3", "mentioned_not_top"):
            position = judgement.brand_position
        elif index != -1:
            position = "top_3" if index < TOP_3_CHAR_LIMIT else "mentioned_not_top"
        else:
            position = "mentioned_not_top"

        exact_position = judgement.brand_exact_position
        if exact_position is None and index != -1:
            exact_position = extract_list_rank(response.text, profile.brand_name, aliases) or estimate_rank(index)
        return position, exact_position
