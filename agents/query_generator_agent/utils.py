"""
Utility functions for query generator.
"""

import logging
import re
from typing import Dict, Iterable, List, Set

from models.schemas import BrandProfile, Query
from utils.helpers import hash_text

logger = logging.getLogger(__name__)

NEAR_DUPLICATE_THRESHOLD = 0.75
MIN_BIAS_TERM_LENGTH = 3
MIN_QUERY_LENGTH = 10

# Order in which template categories fill the panel
TEMPLATE_CATEGORY_ORDER = [
    "recommendation",
    "best_in_class",
    "problem_solving",
    "comparison",
    "buying_intent",
    "alternatives",
    "feature_based",
    "budget_based",
]

QUERY_TEMPLATES: Dict[str, List[str]] = {
    "recommendation": [
        "Can you recommend a {category} for {target_buyer}?",
        "What {category} would you suggest for {target_buyer}?",
    ],
    "best_in_class": [
        "What is the best {category} available right now?",
        "Which {category} is considered the leader for {target_buyer}?",
    ],
    "problem_solving": [
        "How can I solve this: {core_problem}?",
        "What tools help with {core_problem_lower}?",
    ],
    "comparison": [
        "Compare the top {category} options for {target_buyer}",
        "Which {category} is better for {target_buyer}, and why?",
    ],
    "buying_intent": [
        "I'm ready to buy a {category}. Which one should I choose?",
        "Which {category} is worth paying for as {target_buyer_lower}?",
    ],
    "alternatives": [
        "What are the best alternatives to {competitor}?",
        "Tools like {competitor} for {target_buyer}",
    ],
    "feature_based": [
        "Which {category} offers {feature}?",
        "Is there a {category} with {feature}?",
    ],
    "budget_based": [
        "What is the best free or affordable {category} for {target_buyer}?",
        "Best value {category} for a small budget",
    ],
}


def deduplicate_queries(queries: List[Query]) -> List[Query]:
    """
    Remove duplicate queries while preserving order.

    Two queries are duplicates when their normalized text (lowercase,
    punctuation stripped, whitespace collapsed) hashes the same.
    """
    seen = set()
    unique = []
    for q in queries:
        key = hash_text(q.text)
        if q.text.strip() and key not in seen:
            seen.add(key)
            unique.append(q)
    return unique


def tokenize(text: str) -> Set[str]:
    """Token set of words longer than 2 characters."""
    cleaned = re.sub(r"[^\w\s]", "", text.lower())
    return {t for t in cleaned.split() if len(t) > 2}


def jaccard_similarity(a: Set[str], b: Set[str]) -> float:
    if not a and not b:
        return 1.0
    union = len(a | b)
    return len(a & b) / union if union else 0.0


def remove_near_duplicates(queries: List[Query], threshold: float = NEAR_DUPLICATE_THRESHOLD) -> List[Query]:
    """Drop queries whose token Jaccard similarity with a kept query exceeds threshold."""
    kept = []
    kept_tokens = []
    for q in queries:
        tokens = tokenize(q.text)
        if any(jaccard_similarity(tokens, existing) > threshold for existing in kept_tokens):
            continue
        kept.append(q)
        kept_tokens.append(tokens)
    return kept


def has_brand_bias(text: str, terms: Iterable[str]) -> bool:
    """
    Check whether a query names the brand or one of its aliases.

    Terms shorter than 3 characters are ignored to avoid matching
    common words.
    """
    lower = text.lower()
    for term in terms:
        term = term.lower().strip()
        if len(term) < MIN_BIAS_TERM_LENGTH:
            continue
        if re.search(rf"\b{re.escape(term)}\b", lower):
            return True
    return False


def brand_terms(profile: BrandProfile) -> List[str]:
    return [profile.brand_name] + list(profile.aliases)


def _lower_first(text: str) -> str:
    return text[:1].lower() + text[1:]


def render_template_queries(profile: BrandProfile) -> Dict[str, List[str]]:
    """
    Expand the query templates for a brand profile.

    Templates that need a competitor or a feature are skipped when the
    profile has none.

    Returns:
        Mapping of intent category to rendered query texts
    """
    category = profile.category or "software"
    target_buyer = profile.target_buyer or "small teams"
    core_problem = (profile.core_problem or f"finding the right {category}").rstrip(".?! ")

    values = {
        "category": category,
        "target_buyer": target_buyer,
        "target_buyer_lower": _lower_first(target_buyer),
        "core_problem": core_problem,
        "core_problem_lower": _lower_first(core_problem),
        "competitor": profile.competitors[0] if profile.competitors else None,
        "feature": _lower_first((profile.differentiators or profile.core_features or [""])[0]) or None,
    }

    rendered = {}
    for intent, templates in QUERY_TEMPLATES.items():
        texts = []
        for template in templates:
            needed = re.findall(r"\{(\w+)\}", template)
            if any(values.get(k) is None for k in needed):
                continue
            texts.append(template.format(**values))
        rendered[intent] = texts
    return rendered
