"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /api/init, /api/auth - Session issuance
- /api/search, /api/find, /api/post - Content discovery
- /api/resolve - Opaque link redemption
- /metrics - Prometheus metrics
- /healthz, /readyz - Health checks
"""
from .content import router as content_router
from .healthz import router as healthz_router
from .metrics import router as metrics_router
from .resolve import router as resolve_router
from .sessions import router as sessions_router

__all__ = ["content_router", "healthz_router", "metrics_router", "resolve_router", "sessions_router"]
