"""Pytest configuration and fixtures."""

import pytest
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

from httpx import ASGITransport, AsyncClient

from config import Config
from linkshort.database.memory import InMemoryLinkStore
from linkshort.service import LinkShortenerService
from linkshort.shortcode import ShortCodeGenerator
from linkshort.common.logging_config import setup_logging
from web_app import create_app


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def clock():
    """Create controllable clock."""
    return FakeClock()


@pytest.fixture
def store(logger):
    """Create in-memory link store."""
    return InMemoryLinkStore(logger=logger)


@pytest.fixture
def short_code_generator():
    """Create short code generator."""
    return ShortCodeGenerator(default_length=6)


@pytest.fixture
def service(store, short_code_generator, logger, clock) -> LinkShortenerService:
    """Create service instance on the in-memory store with a fake clock."""
    return LinkShortenerService(
        store=store,
        cache=None,
        short_code_generator=short_code_generator,
        logger=logger,
        clock=clock,
    )


@pytest.fixture
def config():
    """Create test configuration."""
    return Config(
        store_backend="memory",
        base_url="http://testserver",
    )


@pytest.fixture
def app(store, service, config, logger):
    """Create test FastAPI app."""
    return create_app(
        service_instance=service,
        config=config,
        logger=logger,
    )


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/test",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456",
    ]
