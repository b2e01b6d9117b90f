"""OAuth API endpoints.

This module provides the REST endpoints the admin UI uses to connect
and disconnect OpenAI and Anthropic accounts. Request-level
authentication is applied in front of this router.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.oauth.coordinator import OAuthCoordinator
from src.oauth.exceptions import (
    InvalidProviderError,
    InvalidRequestError,
    NoPendingFlowError,
    OAuthBrokerError,
)
from src.server.models.oauth import (
    ExchangeRequest,
    ExchangeResponse,
    ProviderStatusResponse,
    RevokeResponse,
    StartResponse,
    StatusResponse,
)
from src.server.services.oauth_service import get_oauth_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/oauth",
    tags=["oauth"],
)

# Rejected before any external call or state change
CLIENT_ERRORS = (InvalidProviderError, InvalidRequestError, NoPendingFlowError)


def _status_code_for(error: OAuthBrokerError) -> int:
    if isinstance(error, CLIENT_ERRORS):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _exchange_error(status_code: int, message: str) -> JSONResponse:
    content = ExchangeResponse(status="error", error=message).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=content)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer unparseable exchange request bodies with a 400 error body.

    Other requests keep FastAPI's default 422 response. Offending values
    are not logged.
    """
    path = request.url.path
    if f"{router.prefix}/" not in path or not path.endswith("/exchange"):
        return await request_validation_exception_handler(request, exc)

    logger.warning(
        f"Rejected malformed request to {path}: "
        f"{', '.join(str(error.get('type')) for error in exc.errors())}"
    )
    return _exchange_error(status.HTTP_400_BAD_REQUEST, "Invalid request body")


@router.get(
    "/status",
    response_model=StatusResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Get OAuth connection status",
    description="Returns connected/pending state for each provider",
)
def get_status(
    coordinator: OAuthCoordinator = Depends(get_oauth_coordinator),
):
    """Get OAuth connection status.

    Returns:
        Per-provider connection status

    Example:
        >>> GET /api/v1/oauth/status
        >>> {
        >>>     "openai": {"connected": true, "pending": false, "obtainedAt": 1760000000000},
        >>>     "anthropic": {"connected": false, "pending": true}
        >>> }
    """
    try:
        statuses = coordinator.status()
    except OAuthBrokerError as e:
        logger.error(f"Failed to read OAuth status: {e}")
        return JSONResponse(status_code=_status_code_for(e), content={"error": str(e)})

    return StatusResponse(
        **{
            name: ProviderStatusResponse(
                connected=provider_status.connected,
                pending=provider_status.pending,
                obtained_at=provider_status.obtained_at,
            )
            for name, provider_status in statuses.items()
        }
    )


@router.post(
    "/{provider}/start",
    response_model=StartResponse,
    status_code=status.HTTP_200_OK,
    summary="Start an authorization flow",
    description="Generates PKCE values and returns the provider authorize URL",
)
def start_flow(
    provider: str,
    coordinator: OAuthCoordinator = Depends(get_oauth_coordinator),
):
    """Start an authorization flow for a provider.

    Any pending flow for the provider is discarded first.

    Args:
        provider: Provider name (openai or anthropic)
        coordinator: OAuth coordinator

    Returns:
        Authorize URL and state, or an error body
    """
    try:
        result = coordinator.start(provider)
    except OAuthBrokerError as e:
        logger.warning(f"Failed to start {provider} flow: {e}")
        return JSONResponse(status_code=_status_code_for(e), content={"error": str(e)})

    return StartResponse(auth_url=result.auth_url, state=result.state)


@router.post(
    "/{provider}/exchange",
    response_model=ExchangeResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Exchange an authorization code",
    description="Exchanges the code for tokens, stores credentials and registers the provider",
)
def exchange_code(
    provider: str,
    background_tasks: BackgroundTasks,
    body: Optional[ExchangeRequest] = Body(default=None),
    coordinator: OAuthCoordinator = Depends(get_oauth_coordinator),
):
    """Exchange an authorization code for credentials.

    Backup sync and gateway restart are queued to run after the response
    and do not affect it.

    Args:
        provider: Provider name (openai or anthropic)
        body: Code, or (openai) the full callback URL
        background_tasks: Request background task queue
        coordinator: OAuth coordinator

    Returns:
        {"status": "complete"} or {"status": "error", "error": ...}

    Example:
        >>> POST /api/v1/oauth/anthropic/exchange
        >>> {"code": "abc-123"}
    """
    body = body or ExchangeRequest()
    try:
        coordinator.exchange(
            provider,
            code=body.code,
            callback_url=body.callback_url,
            schedule=background_tasks.add_task,
        )
    except OAuthBrokerError as e:
        logger.error(f"{provider} exchange failed: {e}")
        return _exchange_error(_status_code_for(e), str(e))

    return ExchangeResponse(status="complete")


@router.delete(
    "/{provider}",
    response_model=RevokeResponse,
    status_code=status.HTTP_200_OK,
    summary="Remove provider credentials",
    description="Deletes stored credentials and pending flow, and unregisters the provider",
)
def revoke_provider(
    provider: str,
    background_tasks: BackgroundTasks,
    coordinator: OAuthCoordinator = Depends(get_oauth_coordinator),
):
    """Remove stored credentials for a provider.

    Args:
        provider: Provider name (openai or anthropic)
        background_tasks: Request background task queue
        coordinator: OAuth coordinator

    Returns:
        Success message, or an error body
    """
    try:
        message = coordinator.revoke(provider, schedule=background_tasks.add_task)
    except OAuthBrokerError as e:
        logger.error(f"Failed to remove {provider} credentials: {e}")
        return JSONResponse(status_code=_status_code_for(e), content={"error": str(e)})

    return RevokeResponse(success=True, message=message)
