"""
Session issuance endpoints.

- GET /init: anonymous public session
- POST /auth: privileged session for a pre-shared access key
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header

from ..core.auth import check_auth_rate_limit
from ..core.gateway import GatewayFacade
from ..models.gateway import AuthRequest, AuthResponse, ErrorResponse, InitResponse
from .dependencies import get_gateway

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/init",
    response_model=InitResponse,
    summary="Start an anonymous session",
    description="""
    Issue a short-lived public session token (15 minutes by default).

    The token doubles as the key-derivation input for encrypted
    search payloads.
    """,
)
async def init_session(
    gateway: GatewayFacade = Depends(get_gateway),
    user_agent: Optional[str] = Header(None, alias="User-Agent"),
) -> InitResponse:
    session = await gateway.init(fingerprint=user_agent or "unknown")
    return InitResponse(token=session.token, expires_at=session.expires_at)


@router.post(
    "/auth",
    response_model=AuthResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Access denied"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    },
    summary="Exchange an access key for a privileged session",
    description="""
    Issue a long-lived session (1 hour by default) when the key is on
    the configured allow-list. Failures are reported uniformly.
    """,
    dependencies=[Depends(check_auth_rate_limit)],
)
async def authenticate(
    request_data: AuthRequest,
    gateway: GatewayFacade = Depends(get_gateway),
) -> AuthResponse:
    session = await gateway.authenticate(request_data.key)

    logger.info("Privileged session granted", token=session.token[:8] + "...")
    return AuthResponse(token=session.token, expires_at=session.expires_at)
