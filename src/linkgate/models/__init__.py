"""
Pydantic data models package.

Contains all data validation models for:
- API requests and responses
- Persisted session and link state
"""

from .gateway import (
    AuthRequest,
    AuthResponse,
    ContentItem,
    DownloadLink,
    EncryptedRequest,
    ErrorResponse,
    InitResponse,
    PostDetail,
    PostDetailResponse,
    ResolveRequest,
    ResolveResponse,
    SearchResponse,
)
from .state import LinkMapping, Session, SessionTier

__all__ = [
    # API models
    "AuthRequest",
    "AuthResponse",
    "ContentItem",
    "DownloadLink",
    "EncryptedRequest",
    "ErrorResponse",
    "InitResponse",
    "PostDetail",
    "PostDetailResponse",
    "ResolveRequest",
    "ResolveResponse",
    "SearchResponse",

    # State models
    "LinkMapping",
    "Session",
    "SessionTier",
]
