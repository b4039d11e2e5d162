"""Tests for the service layer."""

import asyncio
import re
from datetime import timedelta

import pytest

from linkshort.database.cache import RedisCache
from linkshort.database.memory import InMemoryLinkStore
from linkshort.database.models import Click, Link
from linkshort.enrichment import ClickEnricher, ClientIdentifier, GeoLocator
from linkshort.errors import (
    CodeTaken,
    DuplicateCode,
    Expired,
    GenerationExhausted,
    InvalidCustomCode,
    InvalidUrl,
    NotFound,
    StoreUnavailable,
)
from linkshort.service import LinkShortenerService
from linkshort.shortcode import ShortCodeGenerator
from linkshort.shortening import EARLIEST, LATEST


class FixedGenerator(ShortCodeGenerator):
    """Yields a scripted sequence of codes."""

    def __init__(self, codes):
        super().__init__(default_length=6)
        self.codes = list(codes)
        self.calls = 0

    def generate(self, length=None):
        self.calls += 1
        return self.codes.pop(0) if len(self.codes) > 1 else self.codes[0]


class RacingStore(InMemoryLinkStore):
    """Reports codes as free but loses the insert race for the listed ones."""

    def __init__(self, lost_codes):
        super().__init__()
        self.lost_codes = set(lost_codes)

    async def insert(self, link):
        if link.short_code in self.lost_codes:
            raise DuplicateCode(link.short_code)
        return await super().insert(link)


class BrokenClickStore(InMemoryLinkStore):
    """Stores links but cannot record clicks."""

    async def append_click(self, short_code, click):
        raise StoreUnavailable("clicks table unavailable")


class StaticGeo(GeoLocator):
    def locate(self, address):
        return {"203.0.113.7": "Berlin"}.get(address, "Unknown")


class StaticClient(ClientIdentifier):
    def identify(self, user_agent):
        return "Firefox 121.0 / Linux" if user_agent else "Unknown"


class FakeRedis:
    """Minimal async Redis double for the cache tests."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    async def ping(self):
        return True

    async def aclose(self):
        pass


@pytest.mark.asyncio
class TestShortening:
    """Test link creation."""

    async def test_shorten_generated_code(self, service, store, sample_urls):
        """Generated codes are 6 alphanumerics and persisted with no clicks."""
        link = await service.shorten(sample_urls[0])

        assert re.fullmatch(r"[A-Za-z0-9]{6}", link.short_code)
        assert link.original_url == sample_urls[0]
        assert link.clicks == []
        assert await store.exists(link.short_code)

    async def test_default_validity(self, service, clock, sample_urls):
        """Validity defaults to 30 minutes."""
        link = await service.shorten(sample_urls[0])

        assert link.expire_at == clock.now + timedelta(minutes=30)

    @pytest.mark.parametrize("validity", [None, 0, "0", "soon", ""])
    async def test_validity_fallback(self, service, clock, sample_urls, validity):
        """Absent, zero or non-numeric validity means 30 minutes."""
        link = await service.shorten(sample_urls[0], validity_minutes=validity)

        assert link.expire_at == clock.now + timedelta(minutes=30)

    async def test_explicit_validity(self, service, clock, sample_urls):
        """Explicit validity sets expire_at."""
        link = await service.shorten(sample_urls[0], validity_minutes="90")

        assert link.expire_at == clock.now + timedelta(minutes=90)

    async def test_custom_code(self, service, sample_urls):
        """Custom codes are used verbatim."""
        link = await service.shorten(sample_urls[0], custom_code="MyLink42")

        assert link.short_code == "MyLink42"

    async def test_duplicate_custom_code(self, service, sample_urls):
        """A second use of the same custom code is CodeTaken."""
        await service.shorten(sample_urls[0], custom_code="dupe")

        with pytest.raises(CodeTaken):
            await service.shorten(sample_urls[1], custom_code="dupe")

    async def test_custom_code_lost_race(self, logger, clock, sample_urls):
        """A concurrent writer claiming the custom code also yields CodeTaken."""
        service = LinkShortenerService(store=RacingStore({"raced"}), logger=logger, clock=clock)

        with pytest.raises(CodeTaken):
            await service.shorten(sample_urls[0], custom_code="raced")

    @pytest.mark.parametrize("url", ["", "not-a-url", "ftp://example.com", "example.com", None])
    async def test_invalid_url(self, service, url):
        """Non-http(s) URLs are rejected."""
        with pytest.raises(InvalidUrl):
            await service.shorten(url)

    @pytest.mark.parametrize("code", ["bad code!", "under_score", "dash-ed", "all"])
    async def test_invalid_custom_code(self, service, sample_urls, code):
        """Non-alphanumeric or reserved custom codes are rejected."""
        with pytest.raises(InvalidCustomCode):
            await service.shorten(sample_urls[0], custom_code=code)

    async def test_empty_custom_code_generates(self, service, sample_urls):
        """An empty custom code is treated as absent."""
        link = await service.shorten(sample_urls[0], custom_code="")

        assert len(link.short_code) == 6

    async def test_custom_codes_disabled(self, store, logger, sample_urls):
        """Custom codes can be switched off."""
        service = LinkShortenerService(store=store, logger=logger, enable_custom_codes=False)

        with pytest.raises(InvalidCustomCode):
            await service.shorten(sample_urls[0], custom_code="mine")

    async def test_collision_retry(self, store, logger, clock, sample_urls):
        """A colliding generated code is retried with a fresh one."""
        await store.insert(Link(short_code="taken1", original_url=sample_urls[0], expire_at=clock.now))
        generator = FixedGenerator(["taken1", "free01"])
        service = LinkShortenerService(store=store, short_code_generator=generator, logger=logger, clock=clock)

        link = await service.shorten(sample_urls[1])

        assert link.short_code == "free01"
        assert generator.calls == 2

    async def test_insert_race_retry(self, logger, clock, sample_urls):
        """Losing the insert race to another writer also triggers a retry."""
        generator = FixedGenerator(["lost01", "won001"])
        service = LinkShortenerService(
            store=RacingStore({"lost01"}),
            short_code_generator=generator,
            logger=logger,
            clock=clock,
        )

        link = await service.shorten(sample_urls[0])

        assert link.short_code == "won001"

    async def test_generation_exhausted(self, store, logger, clock, sample_urls):
        """Persistent collisions end in GenerationExhausted after the retry budget."""
        await store.insert(Link(short_code="always", original_url=sample_urls[0], expire_at=clock.now))
        generator = FixedGenerator(["always"])
        service = LinkShortenerService(
            store=store,
            short_code_generator=generator,
            logger=logger,
            max_collision_retries=3,
            clock=clock,
        )

        with pytest.raises(GenerationExhausted):
            await service.shorten(sample_urls[1])
        assert generator.calls == 3

    async def test_reserved_generated_code_is_retried(self, store, logger, clock, sample_urls):
        """A generated code equal to a route name is treated as a collision."""
        generator = FixedGenerator(["health", "ok1234"])
        service = LinkShortenerService(store=store, short_code_generator=generator, logger=logger, clock=clock)

        link = await service.shorten(sample_urls[0])

        assert link.short_code == "ok1234"
        assert not await store.exists("health")

    @pytest.mark.parametrize("code", ["api", "shorten", "ALL"])
    async def test_unshadowed_custom_codes_accepted(self, service, sample_urls, code):
        """Alphanumeric codes that no GET route answers to are used exactly."""
        link = await service.shorten(sample_urls[0], custom_code=code)

        assert link.short_code == code
        assert await service.resolve(code) == sample_urls[0]

    @pytest.mark.parametrize("validity", [10**10, "99999999999", 1e300, 10**40])
    async def test_huge_validity_clamped(self, service, sample_urls, validity):
        """Validity beyond the datetime range yields the latest representable expiry."""
        link = await service.shorten(sample_urls[0], validity_minutes=validity)

        assert link.expire_at == LATEST
        assert await service.resolve(link.short_code) == sample_urls[0]

    async def test_huge_negative_validity_clamped(self, service, sample_urls):
        """A hugely negative validity yields an expired link instead of an error."""
        link = await service.shorten(sample_urls[0], validity_minutes="-99999999999")

        assert link.expire_at == EARLIEST
        with pytest.raises(Expired):
            await service.resolve(link.short_code)


@pytest.mark.asyncio
class TestResolve:
    """Test redirect resolution."""

    async def test_round_trip(self, service, sample_urls):
        """A fresh short code resolves to exactly its URL."""
        link = await service.shorten(sample_urls[0])

        assert await service.resolve(link.short_code) == sample_urls[0]

    async def test_resolve_records_click(self, service, clock, sample_urls):
        """Each resolve appends one click with the capture time."""
        link = await service.shorten(sample_urls[0])
        clock.advance(minutes=1)

        await service.resolve(link.short_code, "Mozilla/5.0", "127.0.0.1")

        stored = await service.get_link(link.short_code)
        assert len(stored.clicks) == 1
        assert stored.clicks[0].timestamp == clock.now

    async def test_resolve_enrichment(self, store, logger, clock, sample_urls):
        """Clicks carry the enrichment results."""
        enricher = ClickEnricher(geo_locator=StaticGeo(), client_identifier=StaticClient())
        service = LinkShortenerService(store=store, enricher=enricher, logger=logger, clock=clock)
        link = await service.shorten(sample_urls[0])

        await service.resolve(link.short_code, "Mozilla/5.0", "203.0.113.7")
        await service.resolve(link.short_code, None, "198.51.100.1")

        clicks = (await service.get_link(link.short_code)).clicks
        assert clicks[0] == Click(timestamp=clock.now, source="Firefox 121.0 / Linux", geo="Berlin")
        assert clicks[1].source == "Unknown"
        assert clicks[1].geo == "Unknown"

    async def test_default_enrichment_unknown(self, service, sample_urls):
        """Without lookup capabilities clicks are Unknown."""
        link = await service.shorten(sample_urls[0])

        await service.resolve(link.short_code, "Mozilla/5.0", "8.8.8.8")

        click = (await service.get_link(link.short_code)).clicks[0]
        assert click.source == "Unknown"
        assert click.geo == "Unknown"

    async def test_resolve_unknown(self, service):
        """Unknown codes raise NotFound."""
        with pytest.raises(NotFound):
            await service.resolve("nope42")

    async def test_resolve_expired(self, service, clock, sample_urls):
        """Resolving at or after expire_at raises Expired and records nothing."""
        link = await service.shorten(sample_urls[0], validity_minutes=5)

        clock.advance(minutes=5)
        with pytest.raises(Expired):
            await service.resolve(link.short_code)

        assert (await service.get_link(link.short_code)).clicks == []

    async def test_negative_validity_expires_immediately(self, service, sample_urls):
        """A negative validity produces an already expired link."""
        link = await service.shorten(sample_urls[0], validity_minutes=-1)

        with pytest.raises(Expired):
            await service.resolve(link.short_code)

    async def test_concurrent_resolves(self, service, sample_urls):
        """N concurrent resolves record exactly N clicks."""
        link = await service.shorten(sample_urls[0])

        results = await asyncio.gather(*[service.resolve(link.short_code) for _ in range(50)])

        assert results == [sample_urls[0]] * 50
        assert len((await service.get_link(link.short_code)).clicks) == 50

    async def test_click_failure_still_redirects(self, logger, clock, sample_urls):
        """A failed click append is counted but the destination is returned."""
        service = LinkShortenerService(store=BrokenClickStore(), logger=logger, clock=clock)
        link = await service.shorten(sample_urls[0])

        assert await service.resolve(link.short_code) == sample_urls[0]

        stats = await service.get_statistics()
        assert stats["click_failures"] == 1


@pytest.mark.asyncio
class TestCachedResolve:
    """Test resolution through the Redis cache."""

    @pytest.fixture
    def cache(self, logger):
        cache = RedisCache(redis_url="redis://cache.invalid:6379/0", ttl_seconds=3600, logger=logger)
        cache.client = FakeRedis()
        return cache

    @pytest.fixture
    def cached_service(self, store, cache, logger, clock):
        return LinkShortenerService(store=store, cache=cache, logger=logger, clock=clock)

    async def test_cache_populated_with_bounded_ttl(self, cached_service, cache, sample_urls):
        """First resolve caches the destination until the link expires."""
        link = await cached_service.shorten(sample_urls[0], validity_minutes=10)

        await cached_service.resolve(link.short_code)

        key = cache.get_cache_key(link.short_code)
        assert key in cache.client.data
        assert cache.client.ttls[key] == 600

    async def test_cache_hit_still_records_click(self, cached_service, sample_urls):
        """Cached resolves still append clicks."""
        link = await cached_service.shorten(sample_urls[0])

        await cached_service.resolve(link.short_code)
        await cached_service.resolve(link.short_code)

        assert len((await cached_service.get_link(link.short_code)).clicks) == 2

    async def test_cache_hit_respects_expiry(self, cached_service, clock, sample_urls):
        """A cached entry past its expiry is rejected."""
        link = await cached_service.shorten(sample_urls[0], validity_minutes=1)
        await cached_service.resolve(link.short_code)

        clock.advance(minutes=2)
        with pytest.raises(Expired):
            await cached_service.resolve(link.short_code)

    async def test_cache_entry_holds_link_without_clicks(self, cached_service, cache, sample_urls):
        """Cached entries read back as the link, minus its click log."""
        link = await cached_service.shorten(sample_urls[0], custom_code="cached")
        await cached_service.resolve("cached")

        cached = await cache.get_destination("cached")

        assert cached.short_code == "cached"
        assert cached.original_url == sample_urls[0]
        assert cached.expire_at == link.expire_at
        assert cached.created_at == link.created_at
        assert cached.clicks == []

    async def test_cache_hit_skips_store_lookup(self, cached_service, store, sample_urls):
        """A cached destination is served even when the store no longer has the link."""
        link = await cached_service.shorten(sample_urls[0])
        await cached_service.resolve(link.short_code)
        del store._links[link.short_code]

        assert await cached_service.resolve(link.short_code) == sample_urls[0]
        assert (await cached_service.get_statistics())["click_failures"] == 1

    async def test_malformed_cache_entry_falls_back(self, cached_service, cache, sample_urls):
        """Garbage in the cache is ignored in favour of the store."""
        link = await cached_service.shorten(sample_urls[0])
        cache.client.data[cache.get_cache_key(link.short_code)] = "{not json"

        assert await cached_service.resolve(link.short_code) == sample_urls[0]


@pytest.mark.asyncio
class TestListingAndHealth:
    """Test listing, statistics and health."""

    async def test_list_includes_expired(self, service, clock, sample_urls):
        """Listing returns every link, expired ones included."""
        a = await service.shorten(sample_urls[0], validity_minutes=1)
        b = await service.shorten(sample_urls[1], validity_minutes=60)
        clock.advance(minutes=5)

        codes = {link.short_code for link in await service.list_all()}

        assert codes == {a.short_code, b.short_code}

    async def test_statistics(self, service, sample_urls):
        """Statistics combine store totals and service flags."""
        link = await service.shorten(sample_urls[0])
        await service.resolve(link.short_code)

        stats = await service.get_statistics()

        assert stats["total_links"] == 1
        assert stats["total_clicks"] == 1
        assert stats["click_failures"] == 0
        assert stats["cache_enabled"] is False
        assert stats["custom_codes_enabled"] is True

    async def test_health_check(self, service):
        """Health check reports store and cache status."""
        health = await service.health_check()

        assert health == {"database": True, "cache": True, "overall": True}
