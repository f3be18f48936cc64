"""
API request and response models.

Field names are snake_case in Python and camelCase on the wire
(expiresAt, postId) to match what clients already send and expect.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Base for camelCase wire models."""

    model_config = ConfigDict(populate_by_name=True)


class DownloadLink(WireModel):
    """Opaque download reference shown to clients."""

    id: str = Field(description="Opaque reference ID")
    label: str = Field(description="Descriptive name (e.g. 'Fast DL', 'Mirror')")


class ContentItem(WireModel):
    """Search result summary."""

    id: str = Field(description="Content source post ID")
    title: str = Field(description="Cleaned title")


class PostDetail(WireModel):
    """Content detail with minted opaque links."""

    title: str
    post_id: str = Field(alias="postId")
    links: List[DownloadLink] = Field(default_factory=list)


class InitResponse(WireModel):
    """Response of GET /init."""

    success: bool = True
    token: str
    expires_at: int = Field(alias="expiresAt", description="Expiry, epoch milliseconds")


class AuthRequest(WireModel):
    """Body of POST /auth."""

    key: str = Field(max_length=256, description="Pre-shared access key")


class AuthResponse(WireModel):
    """Response of POST /auth."""

    success: bool = True
    token: str
    expires_at: int = Field(alias="expiresAt", description="Expiry, epoch milliseconds")


class EncryptedRequest(WireModel):
    """Body of POST /search."""

    payload: str = Field(min_length=1, max_length=8192, description="Encrypted query")


class SearchResponse(WireModel):
    """Response of POST /search and GET /find."""

    success: bool = True
    results: List[ContentItem] = Field(default_factory=list)


class PostDetailResponse(WireModel):
    """Response of GET /post."""

    success: bool = True
    data: PostDetail


class ResolveRequest(WireModel):
    """Body of POST /resolve."""

    id: str = Field(min_length=1, max_length=128, description="Opaque ID")


class ResolveResponse(WireModel):
    """Response of POST /resolve."""

    success: bool = True
    url: str = Field(description="Gateway URL for the redeemed target")


class ErrorResponse(WireModel):
    """
    Standard error response model.
    """

    success: bool = False
    error: str = Field(description="Human-readable error message")
    code: Optional[str] = Field(default=None, description="Error code")
