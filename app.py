#!/usr/bin/env python3
"""
Main entry point for the link shortener service.

Concurrency: a single process serves many connections via async I/O
(FastAPI + asyncpg connection pool + redis.asyncio). The in-memory store
lives inside that one process.

Usage:
    python app.py

Environment variables:
    STORE_BACKEND - 'postgres' (default) or 'memory'
    DATABASE_URL - PostgreSQL connection URL
    DATABASE_CREATE_TABLES - Set to 'true' to create tables on startup
    REDIS_URL - Redis connection URL (optional)
    GEOIP_DATABASE_PATH - MaxMind City database for click geography (optional)
    BASE_URL - Base URL for short links
    PORT - Port to listen on
    LOG_LEVEL - Logging level
"""

import logging
import signal
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import Config, load_config
from linkshort.database.base import LinkStoreBase
from linkshort.database.memory import InMemoryLinkStore
from linkshort.database.postgres import LinkStorePostgres
from linkshort.database.cache import RedisCache
from linkshort.enrichment import ClickEnricher, GeoIP2Locator, UserAgentIdentifier
from linkshort.service import LinkShortenerService
from linkshort.shortcode import ShortCodeGenerator
from linkshort.common.logging_config import setup_logging
from web_app import create_app


def build_store(config: Config, logger: logging.Logger) -> LinkStoreBase:
    """Create the configured link store."""
    if config.store_backend == "memory":
        logger.warning("Using in-memory store; links are lost on restart")
        return InMemoryLinkStore(logger=logger)

    logger.info("Using PostgreSQL store")
    return LinkStorePostgres(
        db_config=config.database_url,
        pool_max_size=config.database_pool_max_size,
        create_tables=config.database_create_tables,
        logger=logger,
    )


def build_enricher(config: Config, logger: logging.Logger) -> ClickEnricher:
    """Create click enrichment from configuration."""
    geo_locator = None
    if config.geoip_database_path:
        geo_locator = GeoIP2Locator(config.geoip_database_path, logger=logger)
    else:
        logger.info("GeoIP database not configured; click geography will be 'Unknown'")

    return ClickEnricher(
        geo_locator=geo_locator,
        client_identifier=UserAgentIdentifier(),
        timeout_seconds=config.enrichment_timeout_seconds,
        logger=logger,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    config = app.state.config
    logger = app.state.logger

    logger.info("Starting link shortener service...")

    store = build_store(config, logger)

    if config.redis_url:
        logger.info(f"Connecting to Redis at {config.redis_url}")
        cache = RedisCache(
            redis_url=config.redis_url,
            ttl_seconds=config.cache_ttl_seconds,
            logger=logger,
        )
        await cache.connect()
    else:
        logger.info("Redis caching disabled")
        cache = None

    service = LinkShortenerService(
        store=store,
        cache=cache,
        short_code_generator=ShortCodeGenerator(default_length=config.short_code_length),
        enricher=build_enricher(config, logger),
        logger=logger,
        enable_custom_codes=config.enable_custom_codes,
        max_collision_retries=config.max_collision_retries,
        default_validity_minutes=config.default_validity_minutes,
    )

    app.state.service = service

    logger.info("Service started successfully")

    yield

    logger.info("Shutting down link shortener service...")
    await service.close()
    logger.info("Service stopped")


def main():
    """Main entry point."""
    config = load_config()

    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )

    logger.info("Link Shortener Service")
    logger.info(f"Configuration: {config.model_dump(exclude={'database_url', 'redis_url'})}")

    app = create_app(
        service_instance=None,  # Will be set in lifespan
        config=config,
        logger=logger,
    )
    app.router.lifespan_context = lifespan

    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        access_log=True,
    )

    server = uvicorn.Server(uvicorn_config)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        server.should_exit = True

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        logger.info(f"Starting server on {config.host}:{config.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
