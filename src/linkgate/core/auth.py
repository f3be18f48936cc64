"""
Access-key authentication, bearer token extraction and auth rate limiting.
"""

import asyncio
import time
from collections import OrderedDict
from typing import Iterable, Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import get_settings
from .exceptions import RateLimitError, SessionInvalidError

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)


class Authenticator:
    """
    Checks presented keys against a static allow-list.

    Matching is exact and case-sensitive after trimming surrounding
    whitespace. Failures never reveal which keys exist.
    """

    def __init__(self, access_keys: Iterable[str]) -> None:
        self._keys = frozenset(key.strip() for key in access_keys if key and key.strip())

    def check_credential(self, key: Optional[str]) -> bool:
        if not isinstance(key, str):
            return False
        trimmed = key.strip()
        if not trimmed:
            return False
        return trimmed in self._keys


class TokenBucket:
    """
    Token bucket rate limiter implementation.

    """

    def __init__(self, capacity: int, refill_rate: int) -> None:
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = capacity
        self.last_refill = time.time()
        self.lock = asyncio.Lock()

    async def consume(self, tokens: int = 1) -> bool:
        """
        Try to consume tokens from bucket.

        Returns True if tokens available, False otherwise.
        """
        async with self.lock:
            now = time.time()
            time_passed = now - self.last_refill

            tokens_to_add = int(time_passed * self.refill_rate)
            if tokens_to_add > 0:
                self.tokens = min(self.capacity, self.tokens + tokens_to_add)
                self.last_refill = now

            if self.tokens >= tokens:
                self.tokens -= tokens
                return True

            return False

    def get_retry_after(self) -> int:
        """Get suggested retry-after time in seconds."""
        return max(1, int((1 - self.tokens) / self.refill_rate))


class RateLimiter:
    """
    Per-client rate limiter using token buckets.

    Buckets are kept in least-recently-seen order and capped at
    max_clients; the oldest bucket is dropped when a new client arrives
    at the cap.
    """

    def __init__(self, rps: int, burst: int, max_clients: int = 10000) -> None:
        self.rps = rps
        self.burst = burst
        self.max_clients = max_clients
        self.buckets: "OrderedDict[str, TokenBucket]" = OrderedDict()

    async def check_rate_limit(self, client_id: str) -> None:
        """
        Check rate limit for client.

        Raises RateLimitError if limit exceeded.
        """
        if client_id in self.buckets:
            self.buckets.move_to_end(client_id)
        else:
            while len(self.buckets) >= self.max_clients:
                evicted, _ = self.buckets.popitem(last=False)
                logger.debug("Evicted rate limit bucket", client=evicted)

            logger.debug(
                "Creating new rate limit bucket",
                client=client_id,
                capacity=self.burst,
                refill_rate=self.rps
            )
            self.buckets[client_id] = TokenBucket(
                capacity=self.burst,
                refill_rate=self.rps,
            )

        bucket = self.buckets[client_id]

        if not await bucket.consume():
            retry_after = bucket.get_retry_after()
            logger.warning(
                "Auth rate limit exceeded",
                client=client_id,
                retry_after=retry_after,
            )
            raise RateLimitError(retry_after=retry_after)


# Global instances
_authenticator: Optional[Authenticator] = None
_rate_limiter: Optional[RateLimiter] = None


def get_authenticator() -> Authenticator:
    """Get or create global authenticator from configured access keys."""
    global _authenticator

    if _authenticator is None:
        settings = get_settings()
        _authenticator = Authenticator(settings.security.access_keys)
        logger.info("Authenticator initialized", key_count=len(settings.security.access_keys))

    return _authenticator


def get_rate_limiter() -> RateLimiter:
    """Get or create global auth rate limiter."""
    global _rate_limiter

    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = RateLimiter(
            rps=settings.security.auth_rate_limit_rps,
            burst=settings.security.auth_rate_limit_burst,
            max_clients=settings.security.auth_rate_limit_max_clients,
        )

    return _rate_limiter


async def check_auth_rate_limit(request: Request) -> None:
    """
    Rate limit key authentication attempts per client address.

    No-op unless security.auth_rate_limit_enabled is set.
    """
    settings = get_settings()
    if not settings.security.auth_rate_limit_enabled:
        return

    client_id = request.client.host if request.client else "unknown"
    await get_rate_limiter().check_rate_limit(client_id)


async def session_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Extract the bearer session token.

    A missing header is reported exactly like an invalid token.
    """
    if not credentials or not credentials.credentials or not credentials.credentials.strip():
        raise SessionInvalidError()

    return credentials.credentials.strip()
