"""Common Pydantic models for API requests and responses.

This module contains shared response models used across the API.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Service health status
        timestamp: Current server timestamp
    """

    status: str = Field(default="healthy", description="Service health status")
    timestamp: datetime = Field(
        default_factory=utcnow, description="Current server timestamp"
    )


class InfoResponse(BaseModel):
    """System information response model.

    Attributes:
        app_name: Application name
        version: Application version
        status: Service status
        providers: Supported OAuth providers
        gateway_routing: Whether provider traffic goes through an upstream gateway
        timestamp: Current server timestamp
    """

    app_name: str = Field(..., description="Application name")
    version: str = Field(..., description="Application version")
    status: str = Field(default="running", description="Service status")
    providers: List[str] = Field(..., description="Supported OAuth providers")
    gateway_routing: bool = Field(
        ..., description="Provider base URLs are rewritten through an upstream gateway"
    )
    timestamp: datetime = Field(
        default_factory=utcnow, description="Current server timestamp"
    )


class ErrorResponse(BaseModel):
    """Standard error response model.

    Attributes:
        error: Error type or code
        message: Human-readable error message
        detail: Additional error details
        timestamp: When the error occurred
    """

    error: str = Field(..., description="Error type or code")
    message: str = Field(..., description="Human-readable error message")
    detail: Optional[Any] = Field(
        default=None, description="Additional error details"
    )
    timestamp: datetime = Field(
        default_factory=utcnow, description="Error timestamp"
    )
