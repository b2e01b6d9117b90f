"""Shared fixtures for OAuth broker tests."""

import json
from unittest import mock

import pytest

from src.oauth.blob_store import FileBlobStore
from src.oauth.config import BrokerConfig
from src.oauth.flow_store import PendingFlowState

FIXED_NOW = 1_760_000_000_000


@pytest.fixture
def make_response():
    """Factory for mocked ``requests`` responses."""

    def _make(payload=None, status_code=200, text=None):
        response = mock.Mock()
        response.status_code = status_code
        response.text = text if text is not None else json.dumps(payload)
        return response

    return _make


@pytest.fixture
def broker_config(tmp_path):
    """Broker config rooted in a temporary directory."""
    return BrokerConfig(
        state_dir=str(tmp_path / "state"),
        pending_dir=str(tmp_path / "pending"),
    )


@pytest.fixture
def state_blobs(broker_config):
    return FileBlobStore(broker_config.state_dir)


@pytest.fixture
def pending_flow():
    """Pending flow with fixed values."""
    return PendingFlowState(
        code_verifier="verifier_abc",
        code_challenge="challenge123",
        state="state456",
        started_at=FIXED_NOW,
    )
