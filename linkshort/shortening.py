"""Link creation: input validation and short code allocation."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from .shortcode import ShortCodeGenerator
from .database.base import LinkStoreBase
from .database.models import Link
from .common.validators import (
    RESERVED_CODES,
    is_valid_url,
    is_valid_short_code,
    parse_validity_minutes,
)
from .errors import (
    CodeTaken,
    DuplicateCode,
    GenerationExhausted,
    InvalidCustomCode,
    InvalidUrl,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


LATEST = datetime.max.replace(tzinfo=timezone.utc)
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def compute_expiry(now: datetime, minutes: int) -> datetime:
    """Return now + minutes, clamped to the representable datetime range."""
    try:
        return now + timedelta(minutes=minutes)
    except OverflowError:
        return LATEST if minutes > 0 else EARLIEST


class ShorteningService:
    """Creates links, choosing a free short code."""

    def __init__(
        self,
        store: LinkStoreBase,
        short_code_generator: Optional[ShortCodeGenerator] = None,
        logger: Optional[logging.Logger] = None,
        enable_custom_codes: bool = True,
        max_collision_retries: int = 5,
        default_validity_minutes: int = 30,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize shortening service.

        Args:
            store: Link store
            short_code_generator: Optional short code generator
            logger: Optional logger
            enable_custom_codes: Whether to allow custom short codes
            max_collision_retries: Attempts at a generated code before giving up
            default_validity_minutes: Validity used when none (or zero) is given
            clock: Source of the current UTC time
        """
        self.store = store
        self.generator = short_code_generator or ShortCodeGenerator()
        self.logger = logger or logging.getLogger(__name__)
        self.enable_custom_codes = enable_custom_codes
        self.max_collision_retries = max(1, max_collision_retries)
        self.default_validity_minutes = default_validity_minutes
        self.clock = clock

    async def shorten(
        self,
        original_url: str,
        custom_code: Optional[str] = None,
        validity_minutes: Any = None,
    ) -> Link:
        """Create a new short link.

        Args:
            original_url: The destination URL
            custom_code: Optional custom short code
            validity_minutes: Minutes until expiry; absent, zero or non-numeric means the default

        Returns:
            The stored link, with no clicks

        Raises:
            InvalidUrl: If the URL is empty or not http(s)
            InvalidCustomCode: If the custom code is not alphanumeric or is reserved
            CodeTaken: If the custom code is already assigned
            GenerationExhausted: If no free generated code was found
            StoreUnavailable: If the store fails
        """
        is_valid, error = is_valid_url(original_url)
        if not is_valid:
            raise InvalidUrl(f"Invalid URL: {error}")

        if custom_code:
            if not self.enable_custom_codes:
                raise InvalidCustomCode("Custom short codes are not enabled")

            is_valid, error = is_valid_short_code(custom_code)
            if not is_valid:
                raise InvalidCustomCode(error)

        minutes = parse_validity_minutes(validity_minutes, self.default_validity_minutes)
        now = self.clock()
        expire_at = compute_expiry(now, minutes)

        if custom_code:
            link = await self._insert_custom(custom_code, original_url, expire_at, now)
        else:
            link = await self._insert_generated(original_url, expire_at, now)

        self.logger.info(
            f"Created short link: {link.short_code} -> {original_url} (expires {link.expire_at.isoformat()})"
        )
        return link

    async def _insert_custom(
        self,
        code: str,
        original_url: str,
        expire_at: datetime,
        now: datetime,
    ) -> Link:
        if await self.store.exists(code):
            raise CodeTaken(f"Custom code '{code}' is already taken")

        try:
            return await self.store.insert(
                Link(short_code=code, original_url=original_url, expire_at=expire_at, created_at=now)
            )
        except DuplicateCode:
            # Another writer claimed it between the check and the insert
            raise CodeTaken(f"Custom code '{code}' is already taken")

    async def _insert_generated(
        self,
        original_url: str,
        expire_at: datetime,
        now: datetime,
    ) -> Link:
        for attempt in range(1, self.max_collision_retries + 1):
            code = self.generator.generate()

            if code in RESERVED_CODES or await self.store.exists(code):
                self.logger.debug(f"Generated code {code} collides (attempt {attempt})")
                continue

            try:
                return await self.store.insert(
                    Link(short_code=code, original_url=original_url, expire_at=expire_at, created_at=now)
                )
            except DuplicateCode:
                self.logger.debug(f"Generated code {code} taken concurrently (attempt {attempt})")

        self.logger.error(
            f"Unable to generate a free short code after {self.max_collision_retries} attempts"
        )
        raise GenerationExhausted(
            f"Unable to generate unique short code after {self.max_collision_retries} attempts"
        )
