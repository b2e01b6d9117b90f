"""Process-wide OAuth coordinator for the API layer.

Routes obtain the coordinator through ``get_oauth_coordinator`` so tests
can replace it with ``app.dependency_overrides``.
"""

import logging
from typing import Optional

from src.oauth.config import BrokerConfig
from src.oauth.coordinator import OAuthCoordinator

logger = logging.getLogger(__name__)

_oauth_coordinator: Optional[OAuthCoordinator] = None


def get_oauth_coordinator() -> OAuthCoordinator:
    """Get the global OAuth coordinator instance.

    Returns:
        OAuthCoordinator built from environment configuration
    """
    global _oauth_coordinator
    if _oauth_coordinator is None:
        config = BrokerConfig.from_env()
        logger.info(f"OAuth state directory: {config.state_path}")
        if config.gateway_routing:
            logger.info(f"Routing providers through {config.gateway_routing.base_url}")
        _oauth_coordinator = OAuthCoordinator(config)
    return _oauth_coordinator


def shutdown_oauth_coordinator(wait: bool = True) -> None:
    """Stop the coordinator's background worker if one was created."""
    global _oauth_coordinator
    if _oauth_coordinator is not None:
        _oauth_coordinator.shutdown(wait=wait)
        _oauth_coordinator = None
