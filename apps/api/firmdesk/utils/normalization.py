"""Data normalization utilities for consistent data quality."""

import re
from typing import Optional


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Normalize email to stripped lowercase.

    Returns:
        Normalized email or None if empty
    """
    if not email:
        return None
    normalized = email.strip().lower()
    return normalized or None


def normalize_content_type(content_type: Optional[str]) -> str:
    """Lowercase a MIME type and drop parameters (``; charset=...``)."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Lowercase, hyphen-separated slug (may be empty)."""
    return _SLUG_STRIP_RE.sub("-", value.strip().lower()).strip("-")
