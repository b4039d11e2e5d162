"""Forwarded headers middleware."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from typing import Callable

from linkshort.common.headers import resolve_client_address


class ForwardedHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to resolve the originating client address behind proxies."""

    async def dispatch(self, request: Request, call_next: Callable):
        """Store the client address in request state for routes and logging."""
        request.state.client_address = resolve_client_address(
            dict(request.headers),
            request.client.host if request.client else None,
        )

        response = await call_next(request)
        return response
