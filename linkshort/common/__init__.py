"""Common utilities for the link shortener."""

from .validators import is_valid_url, is_valid_short_code, parse_validity_minutes
from .headers import extract_forwarded_headers, resolve_client_address, build_base_url
from .url_builder import build_short_url
from .logging_config import setup_logging, get_logger

__all__ = [
    "is_valid_url",
    "is_valid_short_code",
    "parse_validity_minutes",
    "extract_forwarded_headers",
    "resolve_client_address",
    "build_base_url",
    "build_short_url",
    "setup_logging",
    "get_logger",
]
