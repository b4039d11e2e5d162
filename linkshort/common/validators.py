"""Validation utilities for the link shortener."""

import math
import re
from urllib.parse import urlparse
from typing import Any, Optional, Tuple


MAX_URL_LENGTH = 2048

# Single-segment GET routes of the app; a link under these would be unreachable
RESERVED_CODES = frozenset({"all", "health", "stats"})

_SHORT_CODE_RE = re.compile(r'^[A-Za-z0-9]+$')
_LEADING_INT_RE = re.compile(r'^\s*([+-]?\d+)')


def is_valid_url(url: str) -> Tuple[bool, str]:
    """Validate a destination URL.

    Args:
        url: The URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url or not isinstance(url, str):
        return False, "URL is required"

    if len(url) > MAX_URL_LENGTH:
        return False, f"URL is too long (max {MAX_URL_LENGTH} characters)"

    if not url.startswith(("http://", "https://")):
        return False, "URL must start with http:// or https://"

    try:
        result = urlparse(url)
    except ValueError as e:
        return False, f"Invalid URL format: {e}"

    if not result.netloc:
        return False, "URL must have a valid domain"

    return True, ""


def is_valid_short_code(short_code: str) -> Tuple[bool, str]:
    """Validate a custom short code.

    Args:
        short_code: The short code to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not short_code or not isinstance(short_code, str):
        return False, "Short code is required"

    if not _SHORT_CODE_RE.match(short_code):
        return False, "Custom code must be alphanumeric"

    if short_code in RESERVED_CODES:
        return False, f"'{short_code}' is a reserved word and cannot be used"

    return True, ""


def parse_validity_minutes(value: Any, default: int = 30) -> int:
    """Interpret a validity window given in minutes.

    Integers pass through; strings and floats are read by their leading
    integer. Missing, zero, or non-numeric input yields ``default``.
    """
    if value is None or isinstance(value, bool):
        return default

    minutes: Optional[int]
    if isinstance(value, int):
        minutes = value
    elif isinstance(value, float):
        minutes = int(value) if math.isfinite(value) else None
    else:
        match = _LEADING_INT_RE.match(str(value))
        minutes = int(match.group(1)) if match else None

    return minutes or default
