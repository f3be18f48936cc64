"""
Opaque link resolution endpoints.

- POST /resolve: JSON answer with the gateway URL
- GET /resolve/{id}?token=: 302 redirect to the gateway URL
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from ..core.auth import session_token
from ..core.exceptions import LinkNotFoundError, SessionInvalidError
from ..core.gateway import GatewayFacade
from ..models.gateway import ErrorResponse, ResolveRequest, ResolveResponse
from .dependencies import get_gateway

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/resolve",
    response_model=ResolveResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Session invalid"},
        404: {"model": ErrorResponse, "description": "Link expired or already used"},
    },
    summary="Redeem an opaque link",
    description="""
    Redeem a single-use opaque ID. The first successful call consumes the
    link; unknown, expired and already used IDs all answer 404.
    """,
)
async def resolve(
    request_data: ResolveRequest,
    token: str = Depends(session_token),
    gateway: GatewayFacade = Depends(get_gateway),
) -> ResolveResponse:
    url = await gateway.resolve(token, request_data.id)
    return ResolveResponse(url=url)


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


@router.get(
    "/resolve/{opaque_id}",
    status_code=302,
    response_class=RedirectResponse,
    responses={
        401: {"description": "Session missing or invalid"},
        404: {"description": "Link expired, invalid, or already used"},
        500: {"description": "Resolution error"},
    },
    summary="Redeem an opaque link and redirect",
)
async def resolve_redirect(
    opaque_id: str,
    token: Optional[str] = Query(None),
    authorization: Optional[str] = Header(None),
    gateway: GatewayFacade = Depends(get_gateway),
) -> Response:
    token = (token or "").strip() or _bearer(authorization)
    if not token:
        return PlainTextResponse("Unauthorized: Session missing", status_code=401)

    try:
        url = await gateway.resolve(token, opaque_id)
    except SessionInvalidError:
        return PlainTextResponse("Unauthorized: Session invalid", status_code=401)
    except LinkNotFoundError:
        return PlainTextResponse("Error: Link expired, invalid, or already used.", status_code=404)
    except Exception as e:
        logger.error(
            "Redirect resolution failed",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        return PlainTextResponse("Resolution Error", status_code=500)

    return RedirectResponse(url, status_code=302)
