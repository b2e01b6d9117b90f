"""Pydantic models for the OAuth API.

Field names follow the admin UI's wire format: snake_case request and
start-response fields, ``obtainedAt`` in the status response.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExchangeRequest(BaseModel):
    """Request body for code exchange.

    Attributes:
        code: Authorization code
        callback_url: Full redirect URL carrying the code (openai only)
    """

    model_config = ConfigDict(populate_by_name=True)

    # Type and format are validated by the coordinator
    code: Optional[Any] = Field(default=None, description="Authorization code")
    callback_url: Optional[Any] = Field(
        default=None,
        alias="callbackUrl",
        description="Redirect URL containing the code query parameter",
    )


class StartResponse(BaseModel):
    """Authorize URL and anti-CSRF state for a new flow."""

    auth_url: str = Field(..., description="Provider authorization URL")
    state: str = Field(..., description="Anti-CSRF state value")


class ExchangeResponse(BaseModel):
    """Outcome of a code exchange.

    Attributes:
        status: "complete" or "error"
        error: Error message when status is "error"
    """

    status: str = Field(..., description="complete or error")
    error: Optional[str] = Field(default=None, description="Error message")


class ProviderStatusResponse(BaseModel):
    """Connection status for one provider."""

    model_config = ConfigDict(populate_by_name=True)

    connected: bool = Field(..., description="Credentials are stored")
    pending: bool = Field(..., description="An authorization flow is in progress")
    obtained_at: Optional[int] = Field(
        default=None,
        alias="obtainedAt",
        description="Epoch milliseconds of the last successful exchange",
    )


class StatusResponse(BaseModel):
    """Connection status for every provider."""

    openai: ProviderStatusResponse
    anthropic: ProviderStatusResponse


class RevokeResponse(BaseModel):
    """Result of removing a provider's credentials."""

    success: bool = True
    message: str
