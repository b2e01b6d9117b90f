"""Configuration management for the FastAPI server.

This module handles server configuration loading from environment
variables. Broker storage and hook settings live in
``src.oauth.config.BrokerConfig``.
"""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application configuration settings.

    Attributes:
        app_name: Application name
        version: Application version
        debug: Debug mode flag
        cors_origins: List of allowed CORS origins
        host: Server host address
        port: Server port number
    """

    model_config = SettingsConfigDict(env_prefix="BROKER_", case_sensitive=False)

    app_name: str = "OAuth Credential Broker"
    version: str = "1.0.0"
    debug: bool = False

    # CORS configuration - admin UI origins
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Server configuration
    host: str = "127.0.0.1"
    port: int = 8787


# Global settings instance
settings = Settings()
