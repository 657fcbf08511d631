"""
Exact brand-name matching.

Deterministic, network-free matching used by the detector's fast path.
Matches respect word boundaries so "Cal" never matches inside
"Calendar" or "calcium", while still handling domain-style names
("Cal.com"), camel-case names ("PayFast" / "Pay Fast" / "pay-fast")
and separator variants ("Hub-Spot").
"""

import re
from difflib import SequenceMatcher
from functools import lru_cache
from typing import Iterable, List, NamedTuple, Optional, Tuple

DOMAIN_BRAND_PATTERN = re.compile(r"^(.+)\.(com|ai|io|co|org|net|app|dev|xyz|me|so|to|gg)$", re.IGNORECASE)
SEPARATORS = re.compile(r"[\s\-_.]")
NUMBERED_LINE = re.compile(r"^\s*(\d+)[.)]\s")
BOLD_ITEM = re.compile(r"\*\*([^*]+)\*\*")
WORD = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9.]*[A-Za-z0-9])?")

SNIPPET_BEFORE = 20
SNIPPET_AFTER = 50

FUZZY_MIN_LENGTH = 4
FUZZY_LENGTH_TOLERANCE = 0.3

# Distinctive-word check skips words this common
COMMON_WORDS = {
    "best", "good", "great", "free", "easy", "fast", "safe", "smart", "quick", "simple",
    "online", "digital", "global", "local", "first", "direct", "instant", "express",
    "payment", "gateway", "service", "system", "platform", "solution", "made", "open", "cloud",
}


def _bounded(fragment: str) -> str:
    return rf"(?<!\w){fragment}(?!\w)"


@lru_cache(maxsize=512)
def _brand_patterns(brand_name: str) -> Tuple[re.Pattern, ...]:
    """Compiled patterns for a brand, most specific first."""
    name = brand_name.strip()
    lower = name.lower()
    patterns = []

    domain_match = DOMAIN_BRAND_PATTERN.match(name)
    if domain_match:
        base = re.escape(domain_match.group(1).lower())
        tld = re.escape(domain_match.group(2).lower())
        patterns.append(_bounded(re.escape(lower)))
        patterns.append(_bounded(rf"{base}\s*\.\s*{tld}"))
        patterns.append(_bounded(f"{base}{tld}"))
        # Standalone base name: letters may not continue on either side
        patterns.append(rf"(?<![a-zA-Z]){base}(?![a-zA-Z])")
        return tuple(re.compile(p, re.IGNORECASE) for p in patterns)

    patterns.append(_bounded(re.escape(lower)))

    camel_parts = [p for p in re.split(r"(?=[A-Z])", name) if p]
    if len(camel_parts) > 1:
        patterns.append(_bounded(re.escape(" ".join(camel_parts))))
        patterns.append(_bounded(re.escape("-".join(camel_parts))))

    compiled = [re.compile(p, re.IGNORECASE) for p in patterns]
    separator_free = _separator_pattern(name)
    if separator_free is not None:
        compiled.append(separator_free)
    return tuple(compiled)


def _separator_pattern(brand_name: str) -> Optional[re.Pattern]:
    """
    Separator-insensitive pattern for names of 4+ characters, so
    "Mail Chimp" also matches "MailChimp" and "mail-chimp".
    """
    normalized = SEPARATORS.sub("", brand_name.strip().lower())
    if len(normalized) < 4:
        return None
    body = r"[\s\-_.]?".join(re.escape(c) for c in normalized)
    return re.compile(rf"(?<![a-z0-9]){body}(?![a-z0-9])", re.IGNORECASE)


def is_exact_brand_match(response: str, brand_name: str) -> bool:
    """
    Check if a brand name appears as a standalone word or phrase.

    Args:
        response: The text to search in
        brand_name: The brand name to look for

    Returns:
        True if the brand is found with word boundaries respected

    Example:
        >>> is_exact_brand_match("I recommend Cal.com for scheduling", "Cal.com")
        True
        >>> is_exact_brand_match("calcium supplements", "Cal")
        False
    """
    if not response or not brand_name or not brand_name.strip():
        return False

    return any(p.search(response) for p in _brand_patterns(brand_name.strip()))


def find_exact_brand_position(response: str, brand_name: str) -> int:
    """
    Find the character index of the first exact brand match.

    Returns:
        Index of the earliest match, or -1 if not found
    """
    if not response or not brand_name or not brand_name.strip():
        return -1

    starts = [m.start() for p in _brand_patterns(brand_name.strip()) for m in [p.search(response)] if m]
    return min(starts) if starts else -1


def count_exact_brand_mentions(response: str, brand_name: str) -> int:
    """Count non-overlapping exact mentions of a brand across all its variants."""
    if not response or not brand_name or not brand_name.strip():
        return 0

    spans = sorted(
        m.span() for p in _brand_patterns(brand_name.strip()) for m in p.finditer(response)
    )
    count = 0
    last_end = -1
    for start, end in spans:
        if start >= last_end:
            count += 1
            last_end = end
    return count


def find_first_match(response: str, names: Iterable[str]) -> Tuple[Optional[str], int]:
    """Earliest-matching name among several, with its index."""
    best_name, best_index = None, -1
    for name in names:
        index = find_exact_brand_position(response, name)
        if index != -1 and (best_index == -1 or index < best_index):
            best_name, best_index = name, index
    return best_name, best_index


def quick_brand_check(response: str, brand_name: str, aliases: Iterable[str] = ()) -> Tuple[bool, bool]:
    """
    Cheap check for whether a brand might be mentioned.

    Tries the exact name and aliases first, then the first distinctive
    word of a multi-word name, or the bare word of a single-word name.

    Returns:
        (possibly_mentioned, exact_match)
    """
    if is_exact_brand_match(response, brand_name):
        return True, True
    if any(is_exact_brand_match(response, alias) for alias in aliases if len(alias) >= 3):
        return True, True

    parts = [p for p in re.split(r"[\s\-_.]+", brand_name.lower()) if p]
    if len(parts) > 1:
        first = parts[0]
        if len(first) >= 4 and first not in COMMON_WORDS:
            if re.search(_bounded(re.escape(first)), response, re.IGNORECASE):
                return True, False
    elif len(parts) == 1 and len(parts[0]) >= 3:
        if re.search(_bounded(re.escape(parts[0])), response, re.IGNORECASE):
            return True, False

    return False, False


class FuzzyMatch(NamedTuple):
    text: str
    similarity: float
    index: int


def fuzzy_brand_match(response: str, brand_name: str) -> Optional[FuzzyMatch]:
    """
    Closest near-spelling of a brand in the text ("Calendy" for "Calendly").

    Compares every run of words as long as the brand name against it.
    Names shorter than 4 characters never fuzzy-match. The threshold is
    0.8 similarity for names up to 7 characters and 0.75 above that.

    Returns:
        The best FuzzyMatch over the threshold, or None
    """
    if not response or not brand_name:
        return None
    target = " ".join(brand_name.lower().split())
    if len(SEPARATORS.sub("", target)) < FUZZY_MIN_LENGTH:
        return None

    size = len(target.split())
    threshold = 0.8 if len(target) <= 7 else 0.75
    words = list(WORD.finditer(response))
    best = None
    for i in range(len(words) - size + 1):
        start, end = words[i].start(), words[i + size - 1].end()
        candidate = " ".join(response[start:end].lower().split())
        if abs(len(candidate) - len(target)) > len(target) * FUZZY_LENGTH_TOLERANCE:
            continue
        similarity = SequenceMatcher(None, candidate, target).ratio()
        if similarity >= threshold and (best is None or similarity > best.similarity):
            best = FuzzyMatch(response[start:end], round(similarity, 2), start)
    return best


def strip_markdown(text: str) -> str:
    """Strip markdown formatting so matching sees plain prose."""
    text = re.sub(r"\*\*\*([^*]+)\*\*\*", r"\1", text)
    text = re.sub(r"\*\*([^*]+)\*\*", r"\1", text)
    text = re.sub(r"\*([^*]+)\*", r"\1", text)
    text = re.sub(r"___([^_]+)___", r"\1", text)
    text = re.sub(r"__([^_]+)__", r"\1", text)
    text = re.sub(r"(?<!\w)_([^_]+)_(?!\w)", r"\1", text)
    text = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", text)
    text = re.sub(r"^#{1,6}\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"^[ \t]*[-*+]\s+", "", text, flags=re.MULTILINE)
    text = re.sub(r"^[ \t]*\d+\.\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"`([^`]+)`", r"\1", text)
    return re.sub(r"\*+", " ", text)


def extract_evidence_snippet(response: str, brand_name: str, aliases: Iterable[str] = ()) -> str:
    """
    Short excerpt around the first brand mention.

    Example:
        >>> extract_evidence_snippet("Top picks: Cal.com is great for teams", "Cal.com")
        '...Top picks: Cal.com is great for teams...'
    """
    name, index = find_first_match(response, [brand_name] + list(aliases))
    if index == -1:
        return ""
    start = max(0, index - SNIPPET_BEFORE)
    end = min(len(response), index + len(name) + SNIPPET_AFTER)
    return f"...{response[start:end].strip()}..."


def extract_list_rank(response: str, brand_name: str, aliases: Iterable[str] = ()) -> Optional[int]:
    """
    Rank of the brand in a recommendation list.

    Uses the number of a numbered-list line containing the brand, or
    else the brand's index among bold items.

    Returns:
        1-based rank, or None when the brand is not in a list
    """
    names = [brand_name] + list(aliases)

    for line in response.splitlines():
        match = NUMBERED_LINE.match(line)
        if match and any(is_exact_brand_match(line, n) for n in names):
            return int(match.group(1))

    bold_items: List[str] = BOLD_ITEM.findall(response)
    for i, item in enumerate(bold_items, 1):
        if any(is_exact_brand_match(item, n) for n in names):
            return i

    return None
