"""
Tests for RateLimiter class that manages per-client buckets.

Tests the bucket management and per-client isolation used to
throttle access key attempts.
"""

import asyncio
import pytest

from src.linkgate.core.auth import RateLimiter
from src.linkgate.core.exceptions import RateLimitError


class TestRateLimiter:
    """Test the RateLimiter class that manages per-client buckets."""

    @pytest.mark.asyncio
    async def test_per_client_bucket_creation(self) -> None:
        """Test bucket creation for each unique client."""

        rate_limiter = RateLimiter(rps=1, burst=1)
        await rate_limiter.check_rate_limit("10.0.0.1")
        assert rate_limiter.buckets["10.0.0.1"].capacity == 1
        assert rate_limiter.buckets["10.0.0.1"].refill_rate == 1

    @pytest.mark.asyncio
    async def test_per_client_isolation(self) -> None:
        """Test that rate limiting is isolated per client."""

        rate_limiter = RateLimiter(rps=1, burst=1)
        await rate_limiter.check_rate_limit("10.0.0.1")
        await rate_limiter.check_rate_limit("10.0.0.2")
        with pytest.raises(RateLimitError):
            await rate_limiter.check_rate_limit("10.0.0.1")

    @pytest.mark.asyncio
    async def test_rate_limit_exception_details(self) -> None:
        """Test RateLimitError carries retry_after and a 429 status."""

        rate_limiter = RateLimiter(rps=1, burst=1)
        await rate_limiter.check_rate_limit("10.0.0.1")
        with pytest.raises(RateLimitError) as exc_info:
            await rate_limiter.check_rate_limit("10.0.0.1")
        assert exc_info.value.status_code == 429
        assert exc_info.value.details["retry_after"] == 1

    @pytest.mark.asyncio
    async def test_multiple_clients_concurrent(self) -> None:
        """Test multiple clients can be processed concurrently."""

        rate_limiter = RateLimiter(rps=1, burst=1)
        await asyncio.gather(
            rate_limiter.check_rate_limit("10.0.0.1"),
            rate_limiter.check_rate_limit("10.0.0.2"),
        )
        assert rate_limiter.buckets["10.0.0.1"].tokens == 0
        assert rate_limiter.buckets["10.0.0.2"].tokens == 0

    @pytest.mark.asyncio
    async def test_bucket_map_is_bounded(self) -> None:
        """Test that many distinct client addresses never grow the map past the cap."""

        rate_limiter = RateLimiter(rps=1, burst=10, max_clients=100)
        for i in range(5000):
            await rate_limiter.check_rate_limit(f"10.{i // 65536}.{i // 256 % 256}.{i % 256}")
        assert len(rate_limiter.buckets) == 100

    @pytest.mark.asyncio
    async def test_least_recently_seen_client_evicted(self) -> None:
        """Test that the bucket of the least recently seen client is dropped first."""

        rate_limiter = RateLimiter(rps=1, burst=1, max_clients=2)
        await rate_limiter.check_rate_limit("10.0.0.1")
        await rate_limiter.check_rate_limit("10.0.0.2")
        with pytest.raises(RateLimitError):
            await rate_limiter.check_rate_limit("10.0.0.1")

        await rate_limiter.check_rate_limit("10.0.0.3")

        assert list(rate_limiter.buckets) == ["10.0.0.1", "10.0.0.3"]
        # The active client keeps its exhausted bucket
        with pytest.raises(RateLimitError):
            await rate_limiter.check_rate_limit("10.0.0.1")
