"""Business logic service for the link shortener."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .shortcode import ShortCodeGenerator
from .shortening import ShorteningService, utc_now
from .resolver import RedirectResolver
from .listing import ListingService
from .enrichment import ClickEnricher
from .database.base import LinkStoreBase
from .database.cache import RedisCache
from .database.models import Link


class LinkShortenerService:
    """Service layer composing shortening, redirect resolution and listing."""

    def __init__(
        self,
        store: LinkStoreBase,
        cache: Optional[RedisCache] = None,
        short_code_generator: Optional[ShortCodeGenerator] = None,
        enricher: Optional[ClickEnricher] = None,
        logger: Optional[logging.Logger] = None,
        enable_custom_codes: bool = True,
        max_collision_retries: int = 5,
        default_validity_minutes: int = 30,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize link shortener service.

        Args:
            store: Link store instance
            cache: Optional cache instance
            short_code_generator: Optional short code generator
            enricher: Optional click enricher (geography and client lookups)
            logger: Optional logger
            enable_custom_codes: Whether to allow custom short codes
            max_collision_retries: Maximum attempts at a generated code
            default_validity_minutes: Validity used when none is given
            clock: Source of the current UTC time
        """
        self.store = store
        self.cache = cache
        self.enricher = enricher or ClickEnricher(logger=logger)
        self.logger = logger or logging.getLogger(__name__)
        self.enable_custom_codes = enable_custom_codes

        self.shortening = ShorteningService(
            store=store,
            short_code_generator=short_code_generator,
            logger=self.logger,
            enable_custom_codes=enable_custom_codes,
            max_collision_retries=max_collision_retries,
            default_validity_minutes=default_validity_minutes,
            clock=clock,
        )
        self.resolver = RedirectResolver(
            store=store,
            enricher=self.enricher,
            cache=cache,
            logger=self.logger,
            clock=clock,
        )
        self.listing = ListingService(store=store, logger=self.logger)

    async def shorten(
        self,
        original_url: str,
        custom_code: Optional[str] = None,
        validity_minutes: Any = None,
    ) -> Link:
        """Create a new short link. See ShorteningService.shorten."""
        return await self.shortening.shorten(original_url, custom_code, validity_minutes)

    async def resolve(
        self,
        short_code: str,
        client_source: Optional[str] = None,
        client_address: Optional[str] = None,
    ) -> str:
        """Resolve a short code to its destination, recording a click."""
        return await self.resolver.resolve(short_code, client_source, client_address)

    async def list_all(self) -> List[Link]:
        """List all links, expired ones included."""
        return await self.listing.list_all()

    async def get_link(self, short_code: str) -> Link:
        """Get a single link with its clicks, without recording a visit.

        Raises:
            NotFound: If the short code does not exist
        """
        return await self.store.get(short_code)

    async def get_statistics(self) -> Dict[str, Any]:
        """Get service statistics.

        Returns:
            Dictionary with statistics
        """
        store_stats = await self.store.get_statistics()

        return {
            **store_stats,
            "click_failures": self.resolver.click_failures,
            "cache_enabled": self.cache is not None and self.cache.enabled,
            "custom_codes_enabled": self.enable_custom_codes,
        }

    async def health_check(self) -> Dict[str, bool]:
        """Perform health check.

        Returns:
            Dictionary with health status
        """
        db_healthy = await self.store.health_check()

        cache_healthy = True
        if self.cache and self.cache.enabled:
            cache_healthy = await self.cache.ping()

        return {
            "database": db_healthy,
            "cache": cache_healthy,
            "overall": db_healthy and cache_healthy,
        }

    async def close(self) -> None:
        """Close service connections."""
        await self.store.close()
        if self.cache:
            await self.cache.close()
        self.enricher.close()
