"""Pytest fixtures for FastAPI server tests.

This module provides a coordinator rooted in a temporary directory,
test clients wired to it, and a fake of the provider token endpoints.
"""

import json
from typing import Generator
from unittest import mock

import pytest
from fastapi.testclient import TestClient

from src.oauth.config import BrokerConfig
from src.oauth.coordinator import OAuthCoordinator
from src.oauth.providers import ANTHROPIC
from src.server.main import app
from src.server.services.oauth_service import get_oauth_coordinator

FIXED_NOW = 1_760_000_000_000


@pytest.fixture(scope="function")
def coordinator(tmp_path) -> Generator[OAuthCoordinator, None, None]:
    """Create a coordinator with temporary storage and mock hooks.

    Yields:
        OAuthCoordinator whose backup sync and gateway restart are mocks
    """
    coordinator = OAuthCoordinator(
        BrokerConfig(
            state_dir=str(tmp_path / "state"),
            pending_dir=str(tmp_path / "pending"),
        ),
        backup_sync=mock.Mock(),
        gateway_restart=mock.Mock(),
        clock=lambda: FIXED_NOW,
    )
    yield coordinator
    coordinator.shutdown(wait=True)


@pytest.fixture(scope="function")
def client(coordinator: OAuthCoordinator) -> Generator[TestClient, None, None]:
    """Create a test client using the test coordinator.

    Example:
        >>> def test_endpoint(client):
        >>>     response = client.get("/api/v1/oauth/status")
        >>>     assert response.status_code == 200
    """
    app.dependency_overrides[get_oauth_coordinator] = lambda: coordinator

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client_no_raise(coordinator: OAuthCoordinator) -> Generator[TestClient, None, None]:
    """Test client that returns 500 responses instead of raising."""
    app.dependency_overrides[get_oauth_coordinator] = lambda: coordinator

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _response(payload=None, status_code=200, text=None):
    response = mock.Mock()
    response.status_code = status_code
    response.text = text if text is not None else json.dumps(payload)
    return response


@pytest.fixture(scope="function")
def provider_api():
    """Patch outbound HTTP with successful provider responses.

    The ``responses`` attribute can be edited to simulate failures.
    """
    responses = {
        "openai_code": _response(
            {"access_token": "oa_access", "refresh_token": "oa_refresh", "id_token": "oa_id"}
        ),
        "openai_api_key": _response({"access_token": "sk-openai-derived"}),
        "anthropic_code": _response({"access_token": "ant_access", "refresh_token": "ant_refresh"}),
        "anthropic_api_key": _response({"api_key": "sk-ant-created"}),
    }

    def fake_post(url, data=None, headers=None, timeout=None):
        if url == ANTHROPIC.create_key_url:
            return responses["anthropic_api_key"]
        if "openai.com" in url:
            grant = (data or {}).get("grant_type")
            return responses["openai_code" if grant == "authorization_code" else "openai_api_key"]
        return responses["anthropic_code"]

    with mock.patch("src.oauth.token_manager.requests.post", side_effect=fake_post) as post:
        post.responses = responses
        post.make_response = _response
        yield post
