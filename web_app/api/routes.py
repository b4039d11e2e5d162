"""API routes implementation."""

from typing import List

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from datetime import datetime, timezone

from .schemas import (
    ShortenRequest,
    LinkResponse,
    HealthResponse,
    ErrorResponse,
    StatisticsResponse,
)
from linkshort.common.url_builder import build_short_url
from linkshort.common.headers import build_base_url, get_forwarded_path_prefix
from linkshort.errors import GenerationExhausted, StoreUnavailable, ValidationError

router = APIRouter()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
    )


def _short_url_builder(request: Request):
    """Build short URLs the way the caller reached us (proxy headers first, then config)."""
    config = request.app.state.config
    headers = dict(request.headers)

    base_url = build_base_url(
        headers=headers,
        fallback_base_url=config.base_url,
        request_scheme=request.url.scheme,
        request_host=request.headers.get("host"),
    )
    path_prefix = get_forwarded_path_prefix(headers) or config.path_prefix

    def build(short_code: str) -> str:
        return build_short_url(short_code=short_code, base_url=base_url, path_prefix=path_prefix)

    return build


@router.post(
    "/shorten",
    response_model=LinkResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request or no free short code"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Create short link",
    description="Create a shortened URL. Optionally provide a custom short code and a validity in minutes.",
)
async def shorten_url(request: Request, body: ShortenRequest):
    """Create a shortened URL."""
    service = request.app.state.service
    logger = request.app.state.logger

    try:
        link = await service.shorten(
            original_url=body.url,
            custom_code=body.custom_code,
            validity_minutes=body.validity,
        )
    except (ValidationError, GenerationExhausted) as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except StoreUnavailable as e:
        logger.error(f"Store unavailable while shortening: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create short link")

    build = _short_url_builder(request)
    return LinkResponse.from_link(link, build(link.short_code))


@router.get(
    "/all",
    response_model=List[LinkResponse],
    responses={
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="List links",
    description="List every link with its clicks, expired links included.",
)
async def list_links(request: Request):
    """List all links."""
    service = request.app.state.service
    logger = request.app.state.logger

    try:
        links = await service.list_all()
    except StoreUnavailable as e:
        logger.error(f"Store unavailable while listing: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch data")

    build = _short_url_builder(request)
    return [LinkResponse.from_link(link, build(link.short_code)) for link in links]


@router.get(
    "/stats",
    response_model=StatisticsResponse,
    responses={
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Get statistics",
    description="Get service-wide statistics.",
)
async def get_statistics(request: Request):
    """Get service statistics."""
    service = request.app.state.service
    logger = request.app.state.logger

    try:
        stats = await service.get_statistics()
    except StoreUnavailable as e:
        logger.error(f"Store unavailable while reading statistics: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch statistics")

    return StatisticsResponse(**stats)


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        503: {"model": HealthResponse, "description": "Service unhealthy"},
    },
    summary="Health check",
    description="Check if the service is healthy.",
)
async def health_check(request: Request):
    """Health check endpoint for load balancers and monitoring."""
    service = request.app.state.service

    health = await service.health_check()

    body = HealthResponse(
        status="healthy" if health["overall"] else "unhealthy",
        database="healthy" if health["database"] else "unhealthy",
        cache="healthy" if health["cache"] else "unhealthy",
        timestamp=datetime.now(timezone.utc),
    )
    if not health["overall"]:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body.model_dump(mode="json"),
        )
    return body
