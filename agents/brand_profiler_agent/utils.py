"""
Utility functions for brand profiling.
"""

import re
from typing import Iterable, List, Optional

ALIAS_TLD_PATTERN = re.compile(r"^(.+)\.(com|io|so|app|dev|ai|co|org|net|chat|pro)$", re.IGNORECASE)
MAX_COMPETITORS = 8
MIN_ALIAS_LENGTH = 2


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for value in values:
        v = value.strip().lower()
        if len(v) >= MIN_ALIAS_LENGTH and v not in seen:
            seen.add(v)
            unique.append(v)
    return unique


def generate_deterministic_aliases(brand_name: str) -> List[str]:
    """
    Generate spelling variants of a brand name, excluding the name itself.

    Covers TLD-stripped forms, separator-free forms, camel-case splits
    and a distinctive trailing word.

    Example:
        >>> generate_deterministic_aliases("PayFast")
        ['pay fast', 'pay-fast']
        >>> generate_deterministic_aliases("Cal.com")
        ['cal']
    """
    name = brand_name.strip()
    lower = name.lower()
    aliases = []

    domain_match = ALIAS_TLD_PATTERN.match(lower)
    if domain_match:
        aliases.append(domain_match.group(1))

    if "-" in lower or " " in lower:
        aliases.append(re.sub(r"[-\s]", "", lower))

    camel_split = re.sub(r"([a-z])([A-Z])", r"\1 \2", name).lower()
    if camel_split != lower:
        aliases.append(camel_split)
        aliases.append(camel_split.replace(" ", "-"))

    parts = [p for p in re.split(r"[\s.-]+", name) if p]
    if len(parts) > 1 and not domain_match:
        last_part = parts[-1].lower()
        if len(last_part) >= 5:
            aliases.append(last_part)

    return [a for a in _unique(aliases) if a != lower]


def build_aliases(brand_name: str, domain: str, extra_aliases: Optional[Iterable[str]] = None) -> List[str]:
    """
    Build the full alias list used by the mention detector.

    Args:
        brand_name: Brand name
        domain: Website hostname without www.
        extra_aliases: Aliases proposed by the profiling LLM

    Returns:
        Lowercase, order-preserving, de-duplicated aliases
    """
    aliases = [brand_name.lower()]
    aliases.extend(generate_deterministic_aliases(brand_name))

    if domain:
        aliases.append(domain)
        aliases.append(domain.split(".")[0])

    first_word = re.split(r"[\s.]", brand_name.strip())[0] if brand_name.strip() else ""
    if len(first_word) >= 3:
        aliases.append(first_word)

    aliases.extend(extra_aliases or [])
    return _unique(aliases)


def merge_competitors(user_competitors: Iterable[str], extracted: Iterable[str], brand_name: str) -> List[str]:
    """
    Union of user-supplied and extracted competitors.

    User entries come first; case-insensitive duplicates and the brand
    itself are dropped.
    """
    brand_lower = brand_name.strip().lower()
    seen = set()
    merged = []
    for name in list(user_competitors) + list(extracted):
        cleaned = " ".join(name.split())
        key = cleaned.lower()
        if cleaned and key != brand_lower and key not in seen:
            seen.add(key)
            merged.append(cleaned)
    return merged[:MAX_COMPETITORS]


def merge_differentiators(user_provided: Optional[str], scraped: Iterable[str]) -> List[str]:
    """Split user differentiators into sentences and append non-overlapping scraped ones."""
    result = []
    if user_provided and user_provided.strip():
        result.extend(s.strip() for s in re.split(r"[.\n]", user_provided) if len(s.strip()) > 5)

    for s in scraped:
        head = s.lower()[:20]
        is_dupe = any(head in r.lower() or r.lower()[:20] in s.lower() for r in result)
        if not is_dupe:
            result.append(s)

    return result[:MAX_COMPETITORS]
