"""
utils/validation_utils.py

Purpose: Input validation

- Email normalization and format check
- Inline image payload detection
- Display name sanitization
"""

import re
from typing import Optional

from utils.constants import NAME_MAX_LENGTH

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
DATA_URI_PATTERN = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,[A-Za-z0-9+/=\s]+$")


def normalize_email(email: Optional[str]) -> str:
    """
    Trims and lower-cases an email address so lookups are case-insensitive.
    """
    if not email:
        return ""
    return email.strip().lower()


def is_valid_email(email: Optional[str]) -> bool:
    """
    Validates email format.

    Args:
        email: Raw email string

    Returns:
        True if it looks like local@domain.tld
    """
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def is_inline_image(payload: Optional[str]) -> bool:
    """
    Checks that an avatar payload is inline base64 image data
    (data:image/png;base64,...) rather than a remote URL.
    """
    if not payload:
        return False
    return bool(DATA_URI_PATTERN.match(payload.strip()))


def sanitize_name(name: Optional[str]) -> str:
    """
    Collapses internal whitespace and strips the ends.
    """
    if not name:
        return ""
    return re.sub(r"\s+", " ", name).strip()


def is_valid_name(name: Optional[str]) -> bool:
    cleaned = sanitize_name(name)
    return 0 < len(cleaned) <= NAME_MAX_LENGTH
