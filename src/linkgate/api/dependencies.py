"""
Shared FastAPI dependencies.
"""

from fastapi import Request

from ..core.exceptions import LinkGateException
from ..core.gateway import DEFAULT_PARTITION, GatewayFacade


async def get_gateway(request: Request) -> GatewayFacade:
    """Dependency to get the gateway facade from app state."""
    registry = getattr(request.app.state, 'gateways', None)
    if registry is None:
        raise LinkGateException("Gateway not initialized", status_code=503, error_code="service_unavailable")
    return registry.get(DEFAULT_PARTITION)
