"""Redirect route for short links."""

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse, RedirectResponse

from linkshort.common.headers import resolve_client_address
from linkshort.errors import Expired, NotFound, StoreUnavailable

router = APIRouter()

NOT_FOUND_MESSAGE = "Link not found or expired"


def _client_address(request: Request):
    """Client address from the forwarded-headers middleware, or computed here."""
    address = getattr(request.state, "client_address", None)
    if address:
        return address
    peer = request.client.host if request.client else None
    return resolve_client_address(dict(request.headers), peer)


@router.get("/{short_code}", include_in_schema=False)
async def redirect_to_url(request: Request, short_code: str):
    """Redirect to the original URL, recording the visit."""
    service = request.app.state.service
    logger = request.app.state.logger

    try:
        original_url = await service.resolve(
            short_code,
            client_source=request.headers.get("user-agent"),
            client_address=_client_address(request),
        )
    except (NotFound, Expired):
        # Expired and unknown codes look the same to the visitor
        return PlainTextResponse(NOT_FOUND_MESSAGE, status_code=status.HTTP_404_NOT_FOUND)
    except StoreUnavailable as e:
        logger.error(f"Store unavailable while resolving {short_code}: {e}")
        return PlainTextResponse(
            "Service temporarily unavailable",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    # Temporary redirect so every visit reaches us and is counted
    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)
