"""Authorization URL construction for each provider."""

import logging
from urllib.parse import urlencode

from .flow_store import PendingFlowState
from .providers import ProviderSpec

logger = logging.getLogger(__name__)


def build_authorization_url(spec: ProviderSpec, flow: PendingFlowState) -> str:
    """
    Build the provider authorize URL for a pending flow.

    Parameters are emitted in the provider's exact order; the remote
    authorization server rejects unknown or missing parameters.

    Args:
        spec: Provider definition
        flow: Pending flow holding the challenge and state

    Returns:
        Complete authorization URL with query parameters
    """
    dynamic = {
        "client_id": spec.client_id,
        "redirect_uri": spec.redirect_uri,
        "scope": spec.scope,
        "code_challenge": flow.code_challenge,
        "state": flow.state,
    }
    params = [
        (name, value if value is not None else dynamic[name])
        for name, value in spec.authorize_params
    ]
    url = f"{spec.authorize_url}?{urlencode(params)}"
    logger.debug(f"Generated {spec.name} authorization URL")
    return url
