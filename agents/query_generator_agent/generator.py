"""
Query panel generator.

Builds the fixed query panel for a scan from three sources, in order of
signal: user-provided buyer questions, LLM-authored queries, and
template-expanded queries per intent category. An LLM failure degrades
to templates only; generation never fails a scan.
"""

import json
import logging
from typing import List, Optional, Sequence

from pydantic import ValidationError

from agents.llm_providers import LLMProvider
from agents.llm_providers.utils import parse_json_response
from agents.query_generator_agent.models import GeneratedQueries
from agents.query_generator_agent.utils import (
    MIN_QUERY_LENGTH,
    TEMPLATE_CATEGORY_ORDER,
    brand_terms,
    deduplicate_queries,
    has_brand_bias,
    remove_near_duplicates,
    render_template_queries,
)
from models.schemas import MAX_BUYER_QUESTIONS, BrandProfile, Query

logger = logging.getLogger(__name__)

GENERATION_SYSTEM_PROMPT = (
    "You generate realistic questions that real people ask AI assistants when "
    "looking for products. Always respond with valid JSON only."
)

GENERATION_PROMPT = """Generate {count} realistic questions a potential buyer might ask an AI assistant (ChatGPT, Claude, Gemini).

PRODUCT CONTEXT:
Category: {category}
Product description: {tagline}
CORE PROBLEM: {core_problem}
TARGET BUYER: {target_buyer}
Known competitors: {competitors}
Differentiators: {differentiators}

Spread the questions across these intent categories:
- buying_intent: ready to purchase, asking which to pick
- comparison: comparing options in the category
- best_in_class: asking for the best or leading option
- problem_solving: describing the core problem in their own words, without naming the category
- recommendation: asking for a recommendation for their situation
- alternatives: looking for alternatives to a known competitor
- feature_based: asking for a specific capability
- budget_based: price or free tier is the main concern

CRITICAL RULES:
1. NEVER include the brand name "{brand_name}" or any of these aliases: {aliases}
2. Questions must sound like natural human questions, 5-20 words each
3. Vary the phrasing; do not start every question the same way

Return ONLY JSON in this format:
{{"queries": [{{"text": "question", "intent": "comparison"}}, ...]}}"""


def collect_user_questions(questions: Sequence[str]) -> List[Query]:
    """Validate, de-duplicate and cap user-provided buyer questions."""
    cleaned = [" ".join(q.split()) for q in questions if q and len(q.strip()) >= MIN_QUERY_LENGTH]
    candidates = [
        Query(query_id="", text=text, intent="user_provided", provenance="user_provided")
        for text in cleaned
    ]
    return deduplicate_queries(candidates)[:MAX_BUYER_QUESTIONS]


def parse_generated_queries(raw: Optional[str]) -> List[Query]:
    """
    Parse the generation LLM answer into queries.

    Returns:
        Generated queries, or [] when the answer is not schema-valid
    """
    if not raw:
        return []
    try:
        payload = parse_json_response(raw)
        if isinstance(payload, list):
            payload = {"queries": payload}
        parsed = GeneratedQueries.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"⚠️ Query generation returned invalid JSON, using templates: {type(e).__name__}")
        return []

    return [
        Query(query_id="", text=q.text, intent=q.intent, provenance="generated")
        for q in parsed.queries
        if q.intent != "user_provided"
    ]


def interleave_templates(profile: BrandProfile) -> List[Query]:
    """Template queries ordered round-robin across intent categories."""
    rendered = render_template_queries(profile)
    queries = []
    depth = max((len(v) for v in rendered.values()), default=0)
    for i in range(depth):
        for intent in TEMPLATE_CATEGORY_ORDER:
            texts = rendered.get(intent, [])
            if i < len(texts):
                queries.append(Query(query_id="", text=texts[i], intent=intent, provenance="generated"))
    return queries


class QueryGenerator:
    """Build a bounded, de-duplicated query panel."""

    def __init__(self, llm: Optional[LLMProvider] = None):
        self.llm = llm

    def _generate_with_llm(self, profile: BrandProfile, count: int) -> List[Query]:
        if self.llm is None or count <= 0:
            return []

        prompt = GENERATION_PROMPT.format(
            count=count,
            category=profile.category,
            tagline=profile.tagline or "Not provided",
            core_problem=profile.core_problem or "Not provided",
            target_buyer=profile.target_buyer or "Not provided",
            competitors=", ".join(profile.competitors) or "None known",
            differentiators="; ".join(profile.differentiators) or "Not provided",
            brand_name=profile.brand_name,
            aliases=", ".join(profile.aliases),
        )
        result = self.llm.generate(prompt, system_prompt=GENERATION_SYSTEM_PROMPT)
        if not result.ok:
            logger.warning(f"⚠️ Query generation call failed ({result.error}), using templates")
            return []
        return parse_generated_queries(result.text)

    def generate(self, profile: BrandProfile, buyer_questions: Sequence[str], max_queries: int) -> List[Query]:
        """
        Generate the query panel for a scan.

        Args:
            profile: Brand profile for the scan
            buyer_questions: User-supplied buyer questions
            max_queries: Plan tier's panel size

        Returns:
            Up to max_queries queries with stable ids, user questions first
        """
        logger.info(f"📝 Generating up to {max_queries} queries for {profile.brand_name}...")

        user_queries = collect_user_questions(buyer_questions)[:max_queries]
        remaining = max_queries - len(user_queries)

        terms = brand_terms(profile)
        generated = [
            q for q in self._generate_with_llm(profile, remaining) + interleave_templates(profile)
            if not has_brand_bias(q.text, terms)
        ]

        panel = remove_near_duplicates(deduplicate_queries(user_queries + generated))[:max_queries]
        panel = [q.model_copy(update={"query_id": f"q{i + 1}"}) for i, q in enumerate(panel)]

        by_intent = {}
        for q in panel:
            by_intent[q.intent] = by_intent.get(q.intent, 0) + 1
        logger.info(f"✓ Generated {len(panel)} queries: {by_intent}")
        return panel
