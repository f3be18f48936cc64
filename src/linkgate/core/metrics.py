"""
Prometheus metrics collection.

In-memory counters; Prometheus handles storage. Tokens never appear
in labels.
"""

import time
from typing import Optional

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, Info

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection for LinkGate.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        registry = registry if registry is not None else REGISTRY

        # Service info
        self.service_info = Info(
            "linkgate_service",
            "LinkGate service information",
            registry=registry,
        )
        self.service_info.info({
            "version": "0.1.0",
            "service": "linkgate",
        })

        # Request metrics
        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=registry,
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        # Session metrics
        self.sessions_issued_total = Counter(
            "sessions_issued_total",
            "Total sessions issued",
            ["tier"],
            registry=registry,
        )

        self.session_validations_total = Counter(
            "session_validations_total",
            "Total session validations",
            ["result"],
            registry=registry,
        )

        self.auth_attempts_total = Counter(
            "auth_attempts_total",
            "Total access key authentication attempts",
            ["result"],
            registry=registry,
        )

        # Link metrics
        self.links_minted_total = Counter(
            "links_minted_total",
            "Total opaque links minted",
            registry=registry,
        )

        self.links_redeemed_total = Counter(
            "links_redeemed_total",
            "Total opaque link redemption attempts",
            ["outcome"],
            registry=registry,
        )

        self.links_swept_total = Counter(
            "links_swept_total",
            "Total expired links removed by the sweeper",
            registry=registry,
        )

        # Upstream metrics
        self.upstream_requests_total = Counter(
            "upstream_requests_total",
            "Total content source requests",
            ["operation", "outcome"],
            registry=registry,
        )

        self.uptime_seconds = Gauge(
            "uptime_seconds",
            "Service uptime in seconds",
            registry=registry,
        )

        self._start_time = time.time()

    def record_request(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        duration_seconds: float
    ) -> None:
        """Record HTTP request metrics."""
        self.requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self.request_duration.labels(
            method=method,
            endpoint=endpoint
        ).observe(duration_seconds)

    def record_session_issued(self, tier: str) -> None:
        self.sessions_issued_total.labels(tier=tier).inc()

    def record_validation(self, valid: bool) -> None:
        self.session_validations_total.labels(result="valid" if valid else "invalid").inc()

    def record_auth_attempt(self, accepted: bool) -> None:
        self.auth_attempts_total.labels(result="accepted" if accepted else "denied").inc()

    def record_links_minted(self, count: int) -> None:
        if count > 0:
            self.links_minted_total.inc(count)

    def record_redemption(self, redeemed: bool) -> None:
        self.links_redeemed_total.labels(outcome="redeemed" if redeemed else "not_found").inc()

    def record_links_swept(self, count: int) -> None:
        if count > 0:
            self.links_swept_total.inc(count)

    def record_upstream(self, operation: str, outcome: str) -> None:
        """Record a content source call. outcome: ok, empty or unavailable."""
        self.upstream_requests_total.labels(operation=operation, outcome=outcome).inc()

    def update_system_metrics(self) -> None:
        """Update system-level metrics."""
        self.uptime_seconds.set(time.time() - self._start_time)
