# Utilities package

from .helpers import (
    generate_scan_id,
    sanitize_brand_name,
    extract_domain_from_url,
    normalize_text,
    hash_text,
    truncate_text
)

__all__ = [
    "generate_scan_id",
    "sanitize_brand_name",
    "extract_domain_from_url",
    "normalize_text",
    "hash_text",
    "truncate_text"
]
