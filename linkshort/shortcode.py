"""Short code generation utilities."""

import random
import string
from typing import Optional


class ShortCodeGenerator:
    """Generate short codes for links."""

    # Base62 characters (alphanumeric, case-sensitive)
    BASE62_CHARS = string.ascii_letters + string.digits  # a-zA-Z0-9

    def __init__(self, default_length: int = 6):
        """Initialize short code generator.

        Args:
            default_length: Default length for generated codes
        """
        if default_length < 1:
            raise ValueError("Short code length must be positive")
        self.default_length = default_length
        self._random = random.SystemRandom()

    def generate(self, length: Optional[int] = None) -> str:
        """Generate a random short code.

        Uniqueness is not guaranteed; callers check the store and retry.

        Args:
            length: Length of the code (uses default if not specified)

        Returns:
            Random short code
        """
        length = length or self.default_length
        return ''.join(self._random.choices(self.BASE62_CHARS, k=length))
