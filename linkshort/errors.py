"""Exception hierarchy for the link shortener."""


class LinkShortError(Exception):
    """Base class for all link shortener errors."""


class ValidationError(LinkShortError, ValueError):
    """Client input was rejected."""


class InvalidUrl(ValidationError):
    """Destination URL is empty or not http(s)."""


class InvalidCustomCode(ValidationError):
    """Custom short code is not alphanumeric or is reserved."""


class CodeTaken(ValidationError):
    """Custom short code is already assigned."""


class GenerationExhausted(LinkShortError):
    """No free short code was found within the retry budget."""


class NotFound(LinkShortError):
    """Short code does not exist."""


class Expired(LinkShortError):
    """Short code exists but its validity window has passed."""


class DuplicateCode(LinkShortError):
    """Store refused an insert because the short code is present."""


class StoreUnavailable(LinkShortError):
    """Persistence layer failed."""
