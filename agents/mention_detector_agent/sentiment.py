"""
Rule-based sentiment around a brand mention.
"""

from typing import Iterable, Optional

from agents.mention_detector_agent.brand_matcher import find_first_match

SENTIMENT_WINDOW = 300

POSITIVE_SIGNALS = [
    "recommend", "highly recommend", "top pick", "best choice", "excellent",
    "outstanding", "leading", "popular choice", "well-regarded", "well-known",
    "trusted", "reliable", "powerful", "robust", "versatile", "intuitive",
    "user-friendly", "standout", "go-to", "first choice", "top-rated",
    "best-in-class", "market leader", "industry leader", "widely used",
    "great option", "strong contender", "ideal for", "perfect for", "excels at",
    "shines in", "impressed by", "love using", "highly rated", "worth considering",
    "solid choice",
]

NEGATIVE_SIGNALS = [
    "not recommend", "wouldn't recommend", "avoid", "lacks", "limited",
    "expensive", "overpriced", "buggy", "unreliable", "clunky", "outdated",
    "steep learning curve", "poor support", "frustrating", "disappointing",
    "inferior", "falls short", "not ideal", "drawback", "downside", "weakness",
    "shortcoming", "better alternatives", "not the best", "hard to use",
    "difficult to", "complicated", "underwhelming", "mediocre", "subpar",
]

HEDGING_SIGNALS = [
    "however", "although", "on the other hand", "that said", "keep in mind",
    "worth noting", "caveat", "depending on", "trade-off", "trade off",
]


def classify_sentiment(response: str, brand_name: str, aliases: Iterable[str] = ()) -> Optional[str]:
    """
    Classify how a response portrays a brand.

    Looks at a window around the first mention and counts positive,
    negative and hedging signals. Two or more hedges soften the
    positive count by one.

    Args:
        response: Response text
        brand_name: Brand to look for
        aliases: Alternative spellings

    Returns:
        "recommended", "negative" or "neutral"; None if the brand is absent
    """
    name, index = find_first_match(response, [brand_name] + list(aliases))
    if index == -1:
        return None

    lower = response.lower()
    window = lower[max(0, index - SENTIMENT_WINDOW):index + len(name) + SENTIMENT_WINDOW]

    positive = sum(1 for s in POSITIVE_SIGNALS if s in window)
    negative = sum(1 for s in NEGATIVE_SIGNALS if s in window)
    hedging = sum(1 for s in HEDGING_SIGNALS if s in window)

    if hedging >= 2:
        positive = max(0, positive - 1)

    if positive > negative:
        return "recommended"
    if negative > positive:
        return "negative"
    return "neutral"
