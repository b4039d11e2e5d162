"""Core business logic for the link shortener."""

from .shortcode import ShortCodeGenerator
from .service import LinkShortenerService

__all__ = ["ShortCodeGenerator", "LinkShortenerService"]
