"""API v1 router with core endpoints.

This module provides version 1 of the API with system information
and the OAuth broker endpoints.
"""

import logging

from fastapi import APIRouter, Depends, status

from src.oauth.coordinator import OAuthCoordinator
from src.oauth.providers import ProviderId
from src.server.api.v1 import oauth
from src.server.config import settings
from src.server.models.common import InfoResponse
from src.server.services.oauth_service import get_oauth_coordinator

logger = logging.getLogger(__name__)

# Create v1 router
router = APIRouter(
    prefix="/api/v1",
    tags=["v1"],
)

# Include sub-routers
router.include_router(oauth.router)


@router.get(
    "/info",
    response_model=InfoResponse,
    status_code=status.HTTP_200_OK,
    summary="Get system information",
    description="Returns system information including supported providers",
)
def get_info(
    coordinator: OAuthCoordinator = Depends(get_oauth_coordinator),
) -> InfoResponse:
    """Get system information endpoint.

    Returns:
        Application name, version and OAuth provider support

    Example:
        >>> GET /api/v1/info
        >>> {
        >>>     "app_name": "OAuth Credential Broker",
        >>>     "version": "1.0.0",
        >>>     "status": "running",
        >>>     "providers": ["openai", "anthropic"],
        >>>     "gateway_routing": false,
        >>>     "timestamp": "2026-01-31T10:00:00Z"
        >>> }
    """
    return InfoResponse(
        app_name=settings.app_name,
        version=settings.version,
        status="running",
        providers=[provider.value for provider in ProviderId],
        gateway_routing=coordinator.config.gateway_routing is not None,
    )
