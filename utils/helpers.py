"""
Utility functions and helpers for the AI Visibility Scan Pipeline.

This module provides common helpers used across pipeline stages: scan
identifiers, brand-name and domain normalization, and text utilities.
"""

import hashlib
import re
import uuid
from typing import Optional
from urllib.parse import urlparse


def generate_scan_id() -> str:
    """
    Generate a unique scan identifier.

    Returns:
        str: Unique scan ID as a string in UUID4 format

    Example:
        >>> scan_id = generate_scan_id()
        >>> len(scan_id)
        36
    """
    return str(uuid.uuid4())


def sanitize_brand_name(brand_name: Optional[str]) -> str:
    """
    Normalize whitespace in a brand name and handle None values.

    Casing is preserved since it carries meaning for camel-case brands
    such as "HubSpot".

    Args:
        brand_name: Raw brand name string or None

    Returns:
        str: Sanitized brand name, or empty string if None

    Example:
        >>> sanitize_brand_name("  Pay   Fast ")
        'Pay Fast'
        >>> sanitize_brand_name(None)
        ''
    """
    if not brand_name:
        return ""
    return " ".join(brand_name.strip().split())


def extract_domain_from_url(url: str) -> str:
    """
    Extract the hostname from a URL, without the "www." prefix.

    Args:
        url: Full URL string, with or without a scheme

    Returns:
        str: Lowercase hostname without protocol, port and path

    Example:
        >>> extract_domain_from_url("https://www.cal.com/pricing")
        'cal.com'
        >>> extract_domain_from_url("linear.app")
        'linear.app'
    """
    if not url:
        return ""

    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"http://{candidate}"

    host = (urlparse(candidate).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def normalize_text(text: str) -> str:
    """
    Normalize text for duplicate detection.

    Lowercases, strips punctuation and collapses whitespace.

    Example:
        >>> normalize_text("Best   CRM, for startups?")
        'best crm for startups'
    """
    text = re.sub(r"[^\w\s]", " ", text.lower())
    return " ".join(text.split())


def hash_text(text: str) -> str:
    """MD5 hash of the normalized form of a text."""
    return hashlib.md5(normalize_text(text).encode()).hexdigest()


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length with optional suffix.

    Useful for creating preview text or limiting response lengths in logs.

    Args:
        text: Text to truncate
        max_length: Maximum length of the output (default: 100)
        suffix: Suffix to append when truncating (default: "...")

    Returns:
        str: Truncated text with suffix if needed

    Example:
        >>> truncate_text("This is a very long text", max_length=10)
        'This is...'
        >>> truncate_text("Short", max_length=10)
        'Short'
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
