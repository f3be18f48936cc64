"""
Background service that removes expired, never redeemed link mappings.

Disabled when links.sweep_interval_seconds is 0.
"""

import asyncio
from typing import Any, Dict, Optional

import structlog

from .gateway import GatewayRegistry

logger = structlog.get_logger(__name__)


class LinkSweeperService:
    """
    Periodically sweeps every known gateway partition.

    Each sweep takes the partition's gateway lock, so it serializes
    with request traffic like any other mutation.
    """

    def __init__(self, registry: GatewayRegistry, interval_seconds: int):
        self.registry = registry
        self.interval = interval_seconds
        self._task: Optional[asyncio.Task[None]] = None
        self._running = False

        logger.info("Link Sweeper initialized", interval_seconds=interval_seconds)

    @property
    def enabled(self) -> bool:
        return self.interval > 0

    async def start(self) -> None:
        """Start the sweep loop."""
        if self._running or not self.enabled:
            return

        self._running = True
        self._task = asyncio.create_task(self._run_sweep_loop())

        logger.info("Link Sweeper started")

    async def stop(self) -> None:
        """Stop the sweep loop."""
        if not self._running:
            return

        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Link Sweeper stopped")

    async def sweep_once(self) -> int:
        """Sweep all partitions once. Returns total mappings removed."""
        removed = 0
        for partition in self.registry.partitions():
            removed += await self.registry.get(partition).sweep_links()
        return removed

    async def _run_sweep_loop(self) -> None:
        """Main sweep loop."""
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                removed = await self.sweep_once()
                if removed:
                    logger.info("Sweep cycle completed", removed=removed)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Sweep loop error", error=str(e), error_type=type(e).__name__)

    def status(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "running": self._running,
            "interval_seconds": self.interval,
        }
