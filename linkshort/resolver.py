"""Redirect resolution and click recording."""

import logging
from datetime import datetime
from typing import Callable, Optional

from .database.base import LinkStoreBase
from .database.cache import RedisCache
from .database.models import Click, Link
from .enrichment import ClickEnricher
from .errors import Expired, NotFound, StoreUnavailable
from .shortening import utc_now


class RedirectResolver:
    """Resolves short codes to destinations and records each visit."""

    def __init__(
        self,
        store: LinkStoreBase,
        enricher: Optional[ClickEnricher] = None,
        cache: Optional[RedisCache] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize redirect resolver.

        Args:
            store: Link store
            enricher: Geography/client lookups; defaults to all-"Unknown"
            cache: Optional destination cache
            logger: Optional logger
            clock: Source of the current UTC time
        """
        self.store = store
        self.enricher = enricher or ClickEnricher()
        self.cache = cache
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock
        self.click_failures = 0

    async def _lookup(self, short_code: str) -> Link:
        """Return the link (clicks not needed), consulting the cache first."""
        if self.cache:
            cached = await self.cache.get_destination(short_code)
            if cached:
                self.logger.debug(f"Cache hit for {short_code}")
                return cached

        link = await self.store.get(short_code)

        if self.cache:
            await self.cache.set_destination(link, now=self.clock())

        return link

    async def resolve(
        self,
        short_code: str,
        client_source: Optional[str] = None,
        client_address: Optional[str] = None,
    ) -> str:
        """Resolve a short code and record the visit.

        Args:
            short_code: The short code being visited
            client_source: User-Agent of the visitor
            client_address: Network address of the visitor

        Returns:
            The destination URL

        Raises:
            NotFound: If the short code does not exist
            Expired: If the link's validity window has passed
            StoreUnavailable: If the link cannot be looked up
        """
        link = await self._lookup(short_code)

        now = self.clock()
        if not link.is_valid(now):
            self.logger.info(f"Rejected expired short code: {short_code}")
            raise Expired(short_code)

        source, geo = await self.enricher.enrich(client_source, client_address)
        click = Click(timestamp=now, source=source, geo=geo)

        # The visitor gets the redirect even when the click cannot be stored
        try:
            await self.store.append_click(short_code, click)
        except (StoreUnavailable, NotFound) as e:
            self.click_failures += 1
            self.logger.error(f"Failed to record click for {short_code}: {e!r}")
        else:
            self.logger.debug(f"Recorded click for {short_code}: {source} ({geo})")

        return link.original_url
