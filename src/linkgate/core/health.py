"""
Health checker for LinkGate dependencies.

Checks:
- Key-value store round trip
- Link sweeper background service
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from .gateway import GatewayFacade
from .sweeper import LinkSweeperService

logger = structlog.get_logger(__name__)


@dataclass
class HealthCheck:
    """Individual health check result."""
    name: str
    status: str  # "healthy", "unhealthy"
    message: str
    details: Dict[str, Any]
    last_check: float


@dataclass
class HealthStatus:
    """Overall health status."""
    is_healthy: bool
    checks: Dict[str, HealthCheck]
    failed_checks: List[str]
    timestamp: float


class HealthChecker:
    """
    Readiness checks for the gateway.

    The content source is deliberately not checked: its outages degrade
    search to empty results instead of taking the service out of rotation.
    """

    def __init__(self, gateway: GatewayFacade, sweeper: Optional[LinkSweeperService] = None):
        self.gateway = gateway
        self.sweeper = sweeper

    async def check_all(self) -> HealthStatus:
        """Perform all health checks and return overall status."""
        checks: Dict[str, HealthCheck] = {}
        failed_checks: List[str] = []

        check_results = await asyncio.gather(
            self._check_store(),
            self._check_sweeper(),
            return_exceptions=True
        )

        check_names = ["store", "sweeper"]
        for name, result in zip(check_names, check_results):
            if isinstance(result, BaseException):
                checks[name] = HealthCheck(
                    name=name,
                    status="unhealthy",
                    message=f"Check failed: {str(result)}",
                    details={"error": str(result), "error_type": type(result).__name__},
                    last_check=time.time()
                )
                failed_checks.append(name)
            else:
                checks[name] = result
                if result.status != "healthy":
                    failed_checks.append(name)

        return HealthStatus(
            is_healthy=not failed_checks,
            checks=checks,
            failed_checks=failed_checks,
            timestamp=time.time()
        )

    async def _check_store(self) -> HealthCheck:
        """Round-trip a value through the key-value store."""
        started = time.time()
        try:
            ok = await self.gateway.ping()
        except Exception as e:
            logger.warning("Store health check failed", error=str(e))
            return HealthCheck(
                name="store",
                status="unhealthy",
                message=f"Store not accessible: {str(e)}",
                details={"error": str(e)},
                last_check=time.time()
            )

        return HealthCheck(
            name="store",
            status="healthy" if ok else "unhealthy",
            message="Store round trip OK" if ok else "Store returned a different value",
            details={"response_time_ms": int((time.time() - started) * 1000)},
            last_check=time.time()
        )

    async def _check_sweeper(self) -> HealthCheck:
        """Sweeper is healthy when disabled or running."""
        if self.sweeper is None:
            return HealthCheck(
                name="sweeper",
                status="healthy",
                message="Link sweeper not configured",
                details={"enabled": False},
                last_check=time.time()
            )

        status = self.sweeper.status()
        healthy = not status["enabled"] or status["running"]
        return HealthCheck(
            name="sweeper",
            status="healthy" if healthy else "unhealthy",
            message="Link sweeper OK" if healthy else "Link sweeper is not running",
            details=status,
            last_check=time.time()
        )
