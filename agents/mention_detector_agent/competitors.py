"""
Competitor extraction from provider responses.
"""

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from agents.mention_detector_agent.brand_matcher import (
    find_exact_brand_position,
    is_exact_brand_match,
)
from models.schemas import CompetitorMention

CAMEL_CASE_BRAND = re.compile(r"\b([A-Z][a-z]+(?:[A-Z][a-z]+)+)\b")
CONTEXT_WINDOW = 100
LIST_LINE = re.compile(r"^\s*(?:\d+[.)]|[-*+])\s")

RECOMMENDED_CUES = ("recommend", "top pick", "best choice", "best option", "go-to", "ideal for", "perfect for")
COMPARED_CUES = (" vs", "versus", "compared", "compare", "whereas", "unlike")
MAX_DISCOVERED = 10


def classify_context(response: str, index: int, length: int) -> str:
    """How a competitor is framed at a given mention: recommended, compared, listed or discussed."""
    lower = response.lower()
    window = lower[max(0, index - CONTEXT_WINDOW):index + length + CONTEXT_WINDOW]

    if any(cue in window for cue in RECOMMENDED_CUES):
        return "recommended"
    if any(cue in window for cue in COMPARED_CUES):
        return "compared"

    line_start = response.rfind("\n", 0, index) + 1
    if LIST_LINE.match(response[line_start:index + length]):
        return "listed"
    return "discussed"


def discover_brand_tokens(response: str, exclude: Iterable[str]) -> List[Tuple[int, str]]:
    """
    Find CamelCase brand-shaped tokens (e.g. "HubSpot") not in exclude.

    Returns:
        (index, token) pairs in order of appearance
    """
    excluded = {e.lower() for e in exclude}
    seen = set()
    found = []
    for match in CAMEL_CASE_BRAND.finditer(response):
        token = match.group(1)
        key = token.lower()
        if key in excluded or key in seen:
            continue
        seen.add(key)
        found.append((match.start(), token))
        if len(found) >= MAX_DISCOVERED:
            break
    return found


def extract_competitors(
    response: str,
    competitors: Sequence[str],
    brand_terms: Iterable[str] = (),
    top_3: Optional[Iterable[str]] = None,
) -> List[CompetitorMention]:
    """
    Extract competitor mentions from a response.

    Known competitors are matched with word boundaries; previously
    unknown brands are picked up from CamelCase tokens. Positions follow
    order of first appearance.

    Args:
        response: Response text (markdown already stripped)
        competitors: Known competitor names
        brand_terms: The scanned brand and its aliases, never reported
        top_3: Competitor names a verifier placed in the top 3

    Returns:
        CompetitorMention list ordered by position
    """
    if not response:
        return []

    brand_terms = [t.lower() for t in brand_terms]
    top_3 = {t.lower() for t in (top_3 or [])}
    hits = []
    seen = set()

    for name in competitors:
        if name.lower() in brand_terms or name.lower() in seen:
            continue
        seen.add(name.lower())
        index = find_exact_brand_position(response, name)
        if index != -1:
            hits.append((index, name))

    known = [name for _, name in hits] + list(competitors)
    for index, token in discover_brand_tokens(response, list(brand_terms) + known):
        if not any(is_exact_brand_match(token, term) for term in brand_terms if len(term) >= 3):
            hits.append((index, token))

    hits.sort(key=lambda h: h[0])

    mentions = []
    for position, (index, name) in enumerate(hits, 1):
        context = "recommended" if name.lower() in top_3 else classify_context(response, index, len(name))
        mentions.append(CompetitorMention(name=name, position=position, context=context))
    return mentions
