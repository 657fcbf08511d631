"""
Website scraping for brand profiling.

The pipeline only needs `fetch(url) -> plain_text`. Scrapers return an
empty string on any failure so profiling degrades to user-supplied
fields instead of failing the scan.
"""

import logging
import re
import time
from typing import Protocol

from config.settings import settings

logger = logging.getLogger(__name__)

MAX_SCRAPED_CONTENT_LENGTH = 5000
RETRY_DELAY = 2  # seconds


class Scraper(Protocol):
    def fetch(self, url: str) -> str:
        ...


def markdown_to_text(markdown: str) -> str:
    """Reduce scraped markdown to plain text for the profiling prompt."""
    text = re.sub(r"!\[[^\]]*\]\([^)]*\)", " ", markdown)  # images
    text = re.sub(r"\[([^\]]+)\]\([^)]*\)", r"\1", text)  # links
    text = re.sub(r"^#{1,6}\s+", "", text, flags=re.MULTILINE)
    text = re.sub(r"[*_`>]+", "", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


class FirecrawlScraper:
    """Scrape a homepage with Firecrawl, trying progressively looser strategies."""

    STRATEGIES = [
        {"formats": ["markdown"], "only_main_content": True, "timeout": 30000},
        {"formats": ["markdown"], "only_main_content": False, "timeout": 30000},
    ]

    def __init__(self, api_key: str = None, max_length: int = MAX_SCRAPED_CONTENT_LENGTH):
        self.api_key = api_key if api_key is not None else settings.FIRECRAWL_API_KEY
        self.max_length = max_length

    def fetch(self, url: str) -> str:
        """
        Scrape a website and return its main content as plain text.

        Args:
            url: Website URL to scrape

        Returns:
            Plain text content (truncated), or "" on failure
        """
        if not self.api_key:
            logger.warning("Firecrawl API key not configured, skipping scrape")
            return ""

        from firecrawl import Firecrawl

        client = Firecrawl(api_key=self.api_key)

        last_error = None
        for i, strategy in enumerate(self.STRATEGIES, 1):
            try:
                logger.info(f"Attempting scrape strategy {i}/{len(self.STRATEGIES)} for {url}")
                result = client.scrape(url=url, **strategy)

                markdown_content = None
                if hasattr(result, "markdown") and result.markdown:
                    markdown_content = result.markdown
                elif isinstance(result, dict) and result.get("markdown"):
                    markdown_content = result["markdown"]

                if markdown_content:
                    content = markdown_to_text(markdown_content)[:self.max_length]
                    logger.info(f"✓ Scraped {len(content)} characters from {url}")
                    return content

                logger.warning(f"Strategy {i} returned no markdown content")

            except Exception as e:
                last_error = type(e).__name__
                logger.warning(f"Strategy {i} failed for {url}: {e}")
                if i < len(self.STRATEGIES):
                    time.sleep(RETRY_DELAY)

        logger.error(f"All scraping strategies failed for {url}. Last error: {last_error}")
        return ""
