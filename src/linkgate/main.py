"""
Main FastAPI application entry point.

This module sets up the FastAPI app with all middleware, routes, and lifecycle events.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry

from .api import content_router, healthz_router, metrics_router, resolve_router, sessions_router
from .config import Settings, get_settings
from .core.auth import get_authenticator
from .core.content import get_content_source
from .core.exceptions import LinkGateException, MalformedRequestError
from .core.gateway import DEFAULT_PARTITION, GatewayRegistry
from .core.health import HealthChecker
from .core.metrics import MetricsCollector
from .core.store import get_store
from .core.sweeper import LinkSweeperService


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    # Silence the verbose watchfiles logger
    logging.getLogger("watchfiles").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_lifespan_handler(settings: Settings) -> Any:
    """Create a lifespan handler with access to settings."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Wires the gateway registry and starts the content source client
        and the link sweeper.
        """
        logger = structlog.get_logger(__name__)
        logger.info("Starting LinkGate service", version=app.version)

        registry = CollectorRegistry()
        metrics_collector = MetricsCollector(registry)
        app.state.metrics_registry = registry
        app.state.metrics = metrics_collector

        content_source = get_content_source()
        await content_source.start()

        gateways = GatewayRegistry(
            store=get_store(),
            settings=settings,
            authenticator=get_authenticator(),
            content_source=content_source,
            metrics=metrics_collector,
        )
        app.state.gateways = gateways
        gateway = gateways.get(DEFAULT_PARTITION)

        sweeper = LinkSweeperService(gateways, settings.links.sweep_interval_seconds)
        app.state.sweeper = sweeper
        await sweeper.start()

        app.state.health_checker = HealthChecker(gateway, sweeper)

        try:
            logger.info("LinkGate service started successfully")
            yield
        finally:
            logger.info("Shutting down LinkGate service")

            await sweeper.stop()
            await content_source.stop()

            logger.info("LinkGate service shutdown complete")

    return lifespan


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function ensures all configuration is applied
    whether running via FastAPI CLI or direct execution.
    """
    settings = get_settings()

    configure_logging(settings.log_level)

    lifespan = create_lifespan_handler(settings)

    app = FastAPI(
        title="LinkGate",
        description="Session-gated content discovery with single-use opaque links",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def record_request_metrics(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.time()
        response = await call_next(request)

        metrics = getattr(request.app.state, 'metrics', None)
        if metrics is not None:
            route = request.scope.get("route")
            endpoint = getattr(route, "path", "unmatched")
            metrics.record_request(request.method, endpoint, response.status_code, time.time() - started)
        return response

    @app.exception_handler(LinkGateException)
    async def linkgate_exception_handler(request: Request, exc: LinkGateException) -> JSONResponse:
        """Handle custom LinkGate exceptions."""
        logger = structlog.get_logger(__name__)
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "LinkGate exception occurred",
            error=str(exc),
            error_code=exc.error_code,
            status_code=exc.status_code,
            path=request.url.path,
            method=request.method,
        )

        headers = {}

        # Add Retry-After header for rate limit errors
        if exc.status_code == 429 and "retry_after" in exc.details:
            headers["Retry-After"] = str(exc.details["retry_after"])

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": str(exc),
                "code": exc.error_code,
            },
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Render request validation failures in the standard envelope."""
        error = MalformedRequestError()
        return JSONResponse(
            status_code=error.status_code,
            content={
                "success": False,
                "error": str(error),
                "code": error.error_code,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "Unexpected exception occurred",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )

        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "An unexpected error occurred",
                "code": "internal_server_error",
            },
        )

    app.include_router(sessions_router, prefix="/api", tags=["sessions"])
    app.include_router(content_router, prefix="/api", tags=["content"])
    app.include_router(resolve_router, prefix="/api", tags=["resolve"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(healthz_router, tags=["health"])

    @app.get("/", include_in_schema=False)
    async def root() -> Dict[str, str]:
        """Root endpoint with service information."""
        return {
            "service": "LinkGate",
            "version": app.version,
            "description": "Session-gated content discovery with single-use opaque links",
            "docs": "/docs",
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.linkgate.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
