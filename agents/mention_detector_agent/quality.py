"""
Response quality scoring.

Flags responses that deflect, refuse, lean on knowledge-cutoff
disclaimers, stay generic or wander off topic. The score is used to
flag low-value queries in reporting; it never gates visibility scoring.
"""

import logging
import re

from models.schemas import ResponseQuality

logger = logging.getLogger(__name__)

DEFLECTION_PHRASES = [
    "i don't have access to current",
    "i cannot provide specific",
    "i'm not able to recommend",
    "i can't recommend specific",
    "my knowledge cutoff",
    "as of my knowledge cutoff",
    "as of my last update",
    "i don't have real-time",
    "i cannot access real-time",
    "i'm unable to provide",
    "i cannot give specific recommendations",
    "i don't have information about",
    "consult with a professional",
    "consult a professional",
    "speak to an expert",
    "contact a specialist",
    "i cannot make specific recommendations",
    "it's best to do your own research",
    "i recommend doing your own research",
    "i suggest doing your own research",
    "without knowing your specific",
    "depends on your specific needs",
    "there are many factors to consider",
    "i can provide general guidance",
    "here's some general advice",
    "in general terms",
]

KNOWLEDGE_CUTOFF_PHRASES = [
    "my knowledge cutoff",
    "as of my last training",
    "my training data only goes",
    "i was trained on data up to",
    "i don't have information after",
    "as of 2023",
    "as of 2024",
    "as of 2025",
    "i cannot access information after",
    "my information may be outdated",
]

REFUSAL_PHRASES = [
    "i cannot endorse",
    "i'm not able to endorse",
    "i cannot recommend one over another",
    "i don't make recommendations",
    "it would be inappropriate for me",
    "i must remain neutral",
    "i cannot take sides",
    "i'm not in a position to",
]

GENERIC_PHRASES = [
    "there are many options",
    "it depends on your needs",
    "consider your requirements",
    "do your research",
    "read reviews",
    "compare options",
    "look at user reviews",
    "check online reviews",
    "each has its own strengths",
    "all have their pros and cons",
    "the best choice depends",
    "it really depends on",
    "there's no one-size-fits-all",
    "personal preference plays a role",
]

NON_BRAND_WORDS = {
    "The", "This", "That", "These", "Those", "Here", "There", "When", "Where", "What", "Which",
    "However", "Although", "Because", "Therefore", "Additionally", "Furthermore", "Moreover",
    "First", "Second", "Third", "Finally", "Overall", "Generally", "Typically", "Usually",
    "Consider", "Remember", "Important", "Note", "Please", "Thank", "Thanks",
}

BRAND_TOKEN = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?\b")
NUMBERED_RECOMMENDATION = re.compile(r"\d+\.\s+[A-Z]")

MIN_BRAND_TOKENS = 2
MIN_GENERIC_PHRASES = 2
TOPIC_WORD_MIN_LENGTH = 5
MAX_TOPIC_WORDS = 5
LONG_RESPONSE_LENGTH = 500
OFF_TOPIC_MIN_LENGTH = 100
LOW_QUALITY_THRESHOLD = 50


def _contains_any(text: str, phrases) -> bool:
    return any(phrase in text for phrase in phrases)


def score_response_quality(response: str, query: str = "") -> ResponseQuality:
    """
    Score the quality of a provider response.

    Args:
        response: Raw response text
        query: The query that produced it

    Returns:
        ResponseQuality with a 0-100 score and a single dominant issue type
    """
    lower = (response or "").lower()
    score = 100
    is_deflection = False
    is_generic = False
    is_off_topic = False
    issue_type = "none"

    if _contains_any(lower, DEFLECTION_PHRASES):
        is_deflection = True
        issue_type = "deflection"
        score -= 40
    elif _contains_any(lower, KNOWLEDGE_CUTOFF_PHRASES):
        issue_type = "knowledge_cutoff"
        score -= 30

    if issue_type == "none" and _contains_any(lower, REFUSAL_PHRASES):
        is_deflection = True
        issue_type = "refusal"
        score -= 35

    generic_count = sum(1 for phrase in GENERIC_PHRASES if phrase in lower)
    if generic_count >= MIN_GENERIC_PHRASES:
        is_generic = True
        if issue_type == "none":
            issue_type = "generic"
        score -= min(generic_count * 10, 30)

    brand_tokens = [t for t in BRAND_TOKEN.findall(response or "") if t not in NON_BRAND_WORDS]
    has_specific_brands = len(brand_tokens) >= MIN_BRAND_TOKENS
    if not has_specific_brands and not is_deflection:
        is_generic = True
        if issue_type == "none":
            issue_type = "generic"
        score -= 20

    topics = [w for w in re.sub(r"[?.,!]", "", query.lower()).split() if len(w) >= TOPIC_WORD_MIN_LENGTH]
    topics = topics[:MAX_TOPIC_WORDS]
    topic_matches = [t for t in topics if t in lower]
    if len(topic_matches) < min(2, len(topics)) and len(response or "") > OFF_TOPIC_MIN_LENGTH:
        is_off_topic = True
        if issue_type == "none":
            issue_type = "off_topic"
        score -= 25

    if len(response or "") > LONG_RESPONSE_LENGTH and has_specific_brands:
        score += 10
    if NUMBERED_RECOMMENDATION.search(response or ""):
        score += 5

    score = max(0, min(100, score))
    if score < LOW_QUALITY_THRESHOLD and issue_type == "none":
        issue_type = "generic"

    logger.debug(
        f"Quality score {score} (deflection={is_deflection}, generic={is_generic}, "
        f"brands={has_specific_brands}, issue={issue_type})"
    )

    return ResponseQuality(
        score=score,
        is_deflection=is_deflection,
        is_generic=is_generic,
        is_off_topic=is_off_topic,
        has_specific_brands=has_specific_brands,
        issue_type=issue_type,
    )
