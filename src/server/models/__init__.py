"""Pydantic request and response models."""

from src.server.models.common import ErrorResponse, HealthResponse, InfoResponse
from src.server.models.oauth import (
    ExchangeRequest,
    ExchangeResponse,
    ProviderStatusResponse,
    RevokeResponse,
    StartResponse,
    StatusResponse,
)

__all__ = [
    # Common models
    "HealthResponse",
    "InfoResponse",
    "ErrorResponse",
    # OAuth models
    "ExchangeRequest",
    "ExchangeResponse",
    "ProviderStatusResponse",
    "RevokeResponse",
    "StartResponse",
    "StatusResponse",
]
