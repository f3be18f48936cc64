"""
Tests for the token bucket behind auth attempt rate limiting.
"""

import asyncio
from unittest.mock import patch

import pytest

from src.linkgate.core.auth import TokenBucket


class TestTokenBucket:
    """Test the token bucket used per client address."""

    @pytest.mark.asyncio
    async def test_burst_allows_capacity_attempts(self) -> None:
        bucket = TokenBucket(capacity=3, refill_rate=1)

        results = [await bucket.consume() for _ in range(4)]

        assert results == [True, True, True, False]
        assert bucket.tokens == 0

    @pytest.mark.asyncio
    async def test_refill_after_wait(self) -> None:
        bucket = TokenBucket(capacity=3, refill_rate=1)
        for _ in range(3):
            await bucket.consume()

        with patch("time.time") as mock_time:
            mock_time.return_value = bucket.last_refill + 2
            assert await bucket.consume() is True
            assert await bucket.consume() is True
            assert await bucket.consume() is False

    @pytest.mark.asyncio
    async def test_partial_interval_does_not_refill(self) -> None:
        bucket = TokenBucket(capacity=2, refill_rate=1)
        await bucket.consume(2)
        started = bucket.last_refill

        with patch("time.time") as mock_time:
            mock_time.return_value = started + 0.5
            assert await bucket.consume() is False
            # Fractional progress is kept for the next check
            assert bucket.last_refill == started
            mock_time.return_value = started + 1.0
            assert await bucket.consume() is True

    @pytest.mark.asyncio
    async def test_refill_capped_at_capacity(self) -> None:
        bucket = TokenBucket(capacity=3, refill_rate=1)
        await bucket.consume(3)

        with patch("time.time") as mock_time:
            mock_time.return_value = bucket.last_refill + 3600
            await bucket.consume(0)
            assert bucket.tokens == 3

    def test_retry_after_at_least_one_second(self) -> None:
        bucket = TokenBucket(capacity=3, refill_rate=10)
        bucket.tokens = 0
        assert bucket.get_retry_after() == 1

    @pytest.mark.asyncio
    async def test_concurrent_attempts(self) -> None:
        bucket = TokenBucket(capacity=3, refill_rate=1)

        results = await asyncio.gather(*(bucket.consume() for _ in range(8)))

        assert results.count(True) == 3
        assert results.count(False) == 5
