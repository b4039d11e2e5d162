"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import api_router
from .web import web_router
from .middleware.headers import ForwardedHeadersMiddleware
from .middleware.logging import LoggingMiddleware
from linkshort.common.logging_config import get_logger


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 {message}, like service validation errors."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": message},
    )


def create_app(
    service_instance,
    config,
    logger: logging.Logger = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        service_instance: Service instance
        config: Configuration instance
        logger: Optional logger (defaults to the "linkshort" logger)

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Link Shortener",
        description="Link shortening and redirect service with click analytics",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Store instances in app state for access in routes
    app.state.service = service_instance
    app.state.config = config
    app.state.logger = logger or get_logger()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Last added runs first: forwarded headers are parsed before the request is logged
    app.add_middleware(LoggingMiddleware, logger=get_logger("web"))
    app.add_middleware(ForwardedHeadersMiddleware)

    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    # API routes first so /shorten, /all, /stats and /health are not taken as short codes
    app.include_router(api_router, tags=["API"])
    app.include_router(web_router, tags=["Redirect"])

    return app
