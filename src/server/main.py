"""FastAPI application entry point.

This module initializes the FastAPI application with middleware,
routers, and core endpoints.
"""

import logging

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.server import __version__
from src.server.api.v1.oauth import validation_error_handler
from src.server.api.v1.router import router as v1_router
from src.server.config import settings
from src.server.models.common import ErrorResponse, HealthResponse
from src.server.services.oauth_service import shutdown_oauth_coordinator

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="OAuth credential broker for gateway model providers",
    version=__version__,
    debug=settings.debug,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Configure CORS middleware for the admin UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["*"],  # Allow all headers
)

# Include API routers
app.include_router(v1_router)


@app.on_event("startup")
async def startup_event():
    """Application startup event handler."""
    logger.info(f"Starting {settings.app_name} v{__version__}")
    logger.info(f"Debug mode: {settings.debug}")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event handler.

    Waits for queued backup sync / gateway restart effects to finish.
    """
    logger.info(f"Shutting down {settings.app_name}")

    try:
        shutdown_oauth_coordinator(wait=True)
    except Exception as e:
        logger.error(f"Error during OAuth coordinator shutdown: {e}", exc_info=True)


@app.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["health"],
    summary="Health check endpoint",
    description="Returns service health status",
)
async def health_check() -> HealthResponse:
    """Health check endpoint.

    Returns:
        Health status response with timestamp

    Example:
        >>> GET /health
        >>> {
        >>>     "status": "healthy",
        >>>     "timestamp": "2026-02-01T10:00:00Z"
        >>> }
    """
    return HealthResponse(status="healthy")


@app.get(
    "/",
    status_code=status.HTTP_200_OK,
    tags=["root"],
    summary="Root endpoint",
    description="Returns welcome message with API information",
)
async def root():
    """Root endpoint.

    Provides basic API information and links to documentation.

    Returns:
        Welcome message with API details
    """
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "api": "/api/v1/info",
        "oauth": "/api/v1/oauth/status",
    }


# Error handlers
app.add_exception_handler(RequestValidationError, validation_error_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors.

    Args:
        request: The request that caused the error
        exc: The exception that was raised

    Returns:
        JSON error response
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="InternalServerError",
            message="An unexpected error occurred",
            detail=str(exc) if settings.debug else None,
        ).model_dump(mode="json"),
    )


def run() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "src.server.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    run()
