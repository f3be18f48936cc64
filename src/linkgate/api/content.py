"""
Content discovery endpoints.

- POST /search: encrypted query, requires a session
- GET /find: plaintext query, no session
- GET /post?id=: content detail with freshly minted opaque links
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query

from ..core.auth import session_token
from ..core.exceptions import MalformedRequestError
from ..core.gateway import GatewayFacade
from ..models.gateway import EncryptedRequest, ErrorResponse, PostDetailResponse, SearchResponse
from .dependencies import get_gateway

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/search",
    response_model=SearchResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Session invalid"},
    },
    summary="Search content",
    description="""
    Search the content source with a query encrypted under the session
    token (AES-GCM, PBKDF2-derived key). Payloads that fail to decrypt are
    reported as an invalid session. A content source outage yields an
    empty result list.
    """,
)
async def search(
    request_data: EncryptedRequest,
    token: str = Depends(session_token),
    gateway: GatewayFacade = Depends(get_gateway),
) -> SearchResponse:
    results = await gateway.search(token, request_data.payload)
    return SearchResponse(results=results)


@router.get(
    "/find",
    response_model=SearchResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Query missing"},
    },
    summary="Search content without a session",
)
async def find(
    query: Optional[str] = Query(None, max_length=512),
    gateway: GatewayFacade = Depends(get_gateway),
) -> SearchResponse:
    if not query or not query.strip():
        raise MalformedRequestError("Query missing")

    results = await gateway.find(query)
    return SearchResponse(results=results)


@router.get(
    "/post",
    response_model=PostDetailResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing parameters"},
        401: {"model": ErrorResponse, "description": "Session invalid"},
        404: {"model": ErrorResponse, "description": "Post not found"},
    },
    summary="Get content detail",
    description="""
    Fetch a post and replace every trusted download URL in it with a
    single-use opaque reference valid for one hour.
    """,
)
async def get_post(
    id: Optional[str] = Query(None, max_length=64),
    token: str = Depends(session_token),
    gateway: GatewayFacade = Depends(get_gateway),
) -> PostDetailResponse:
    if not id or not id.strip():
        raise MalformedRequestError("Missing parameters")

    detail = await gateway.fetch_detail(token, id.strip())

    logger.info(
        "Post detail served",
        post_id=detail.post_id,
        links_count=len(detail.links),
        token=token[:8] + "...",
    )
    return PostDetailResponse(data=detail)
