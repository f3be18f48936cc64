"""
Persisted state models.

- Session: token, absolute expiry (epoch ms), tier, optional fingerprint
- LinkMapping: opaque ID, target URL, absolute expiry (epoch ms)

Both are immutable once created; they are only ever removed.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SessionTier(str, Enum):
    """Session access level."""

    PUBLIC = "public"
    PRIVILEGED = "privileged"


class Session(BaseModel):
    """Issued session token."""

    token: str = Field(min_length=1, description="Opaque session token")
    expires_at: int = Field(description="Absolute expiry, epoch milliseconds")
    tier: SessionTier = Field(default=SessionTier.PUBLIC, description="Access level")
    fingerprint: Optional[str] = Field(default=None, description="Weak client hint")

    model_config = ConfigDict(frozen=True)

    def is_active(self, now_ms: int) -> bool:
        return self.expires_at > now_ms


class LinkMapping(BaseModel):
    """Opaque ID to target URL mapping, redeemable once."""

    opaque_id: str = Field(min_length=1, description="Random opaque identifier")
    target_url: str = Field(min_length=1, description="Real target URL")
    expires_at: int = Field(description="Absolute expiry, epoch milliseconds")

    model_config = ConfigDict(frozen=True)

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at < now_ms
