"""Tests for the OAuth API endpoints."""

from unittest import mock

from fastapi import status
from fastapi.testclient import TestClient

from src.oauth.exceptions import CredentialStorageError

BASE = "/api/v1/oauth"
FIXED_NOW = 1_760_000_000_000


class TestStatusEndpoint:
    def test_initial_status(self, client: TestClient):
        response = client.get(f"{BASE}/status")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "openai": {"connected": False, "pending": False},
            "anthropic": {"connected": False, "pending": False},
        }

    def test_pending_after_start(self, client: TestClient):
        client.post(f"{BASE}/anthropic/start")

        data = client.get(f"{BASE}/status").json()

        assert data["anthropic"] == {"connected": False, "pending": True}
        assert data["openai"]["pending"] is False


class TestStartEndpoint:
    def test_start_openai(self, client: TestClient, coordinator):
        response = client.post(f"{BASE}/openai/start")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert set(data) == {"auth_url", "state"}
        assert data["auth_url"].startswith("https://auth.openai.com/oauth/authorize?")
        assert coordinator.pending_store.get("openai").state == data["state"]

    def test_start_anthropic(self, client: TestClient):
        data = client.post(f"{BASE}/anthropic/start").json()

        assert data["auth_url"].startswith("https://console.anthropic.com/oauth/authorize?")
        assert f"state={data['state']}" in data["auth_url"]

    def test_start_unknown_provider(self, client: TestClient):
        response = client.post(f"{BASE}/gemini/start")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Invalid provider"}

    def test_start_storage_failure(self, client: TestClient, coordinator):
        with mock.patch.object(
            coordinator.pending_store, "put", side_effect=CredentialStorageError("disk full")
        ):
            response = client.post(f"{BASE}/openai/start")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "disk full"}


class TestExchangeEndpoint:
    def test_anthropic_exchange(self, client: TestClient, coordinator, provider_api):
        client.post(f"{BASE}/anthropic/start")

        response = client.post(f"{BASE}/anthropic/exchange", json={"code": "abc-123"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "complete"}
        assert client.get(f"{BASE}/status").json()["anthropic"] == {
            "connected": True,
            "pending": False,
            "obtainedAt": FIXED_NOW,
        }
        assert coordinator.credential_store.get("anthropic").api_key == "sk-ant-created"

    def test_exchange_runs_trailing_effects(self, client: TestClient, coordinator, provider_api):
        client.post(f"{BASE}/anthropic/start")

        client.post(f"{BASE}/anthropic/exchange", json={"code": "abc-123"})

        coordinator.backup_sync.assert_called_once_with()
        coordinator.gateway_restart.assert_called_once_with()

    def test_openai_exchange_with_callback_url(
        self, client: TestClient, coordinator, provider_api
    ):
        client.post(f"{BASE}/openai/start")

        response = client.post(
            f"{BASE}/openai/exchange",
            json={"callback_url": "http://localhost:1455/auth/callback?code=oa_code&state=s"},
        )

        assert response.json() == {"status": "complete"}
        assert provider_api.call_args_list[0].kwargs["data"]["code"] == "oa_code"
        assert coordinator.credential_store.get("openai").api_key == "sk-openai-derived"

    def test_openai_exchange_with_camel_case_callback_url(
        self, client: TestClient, provider_api
    ):
        client.post(f"{BASE}/openai/start")

        response = client.post(
            f"{BASE}/openai/exchange",
            json={"callbackUrl": "http://localhost:1455/auth/callback?code=oa_code"},
        )

        assert response.json() == {"status": "complete"}

    def test_exchange_without_pending_flow(self, client: TestClient, provider_api):
        response = client.post(f"{BASE}/anthropic/exchange", json={"code": "abc-123"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {
            "status": "error",
            "error": "No pending Anthropic auth flow",
        }
        provider_api.assert_not_called()

    def test_exchange_missing_code(self, client: TestClient, provider_api):
        client.post(f"{BASE}/openai/start")

        response = client.post(f"{BASE}/openai/exchange", json={})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "code or callback_url is required"

    def test_exchange_invalid_code_format(self, client: TestClient, provider_api):
        client.post(f"{BASE}/anthropic/start")

        response = client.post(f"{BASE}/anthropic/exchange", json={"code": "abc 123"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"status": "error", "error": "Invalid code format"}
        provider_api.assert_not_called()

    def test_exchange_without_body(self, client: TestClient, provider_api):
        client.post(f"{BASE}/anthropic/start")

        response = client.post(f"{BASE}/anthropic/exchange")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"status": "error", "error": "code is required"}

    def test_exchange_invalid_json(self, client: TestClient, provider_api):
        client.post(f"{BASE}/anthropic/start")

        response = client.post(
            f"{BASE}/anthropic/exchange",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"status": "error", "error": "Invalid request body"}
        provider_api.assert_not_called()

    def test_exchange_non_object_body(self, client: TestClient, provider_api):
        client.post(f"{BASE}/openai/start")

        response = client.post(f"{BASE}/openai/exchange", json=["oa_code"])

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"status": "error", "error": "Invalid request body"}

    def test_exchange_non_string_code(self, client: TestClient, provider_api):
        client.post(f"{BASE}/anthropic/start")

        response = client.post(f"{BASE}/anthropic/exchange", json={"code": 123})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"status": "error", "error": "Invalid code format"}
        provider_api.assert_not_called()

    def test_exchange_non_string_callback_url(self, client: TestClient, provider_api):
        client.post(f"{BASE}/openai/start")

        response = client.post(f"{BASE}/openai/exchange", json={"callback_url": 42})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"status": "error", "error": "Invalid callback URL"}

    def test_exchange_unknown_provider(self, client: TestClient):
        response = client.post(f"{BASE}/gemini/exchange", json={"code": "abc"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"status": "error", "error": "Invalid provider"}

    def test_exchange_token_failure(self, client: TestClient, coordinator, provider_api):
        provider_api.responses["anthropic_code"] = provider_api.make_response(
            {"error": "invalid_grant", "error_description": "Code expired"}, status_code=400
        )
        client.post(f"{BASE}/anthropic/start")

        response = client.post(f"{BASE}/anthropic/exchange", json={"code": "abc-123"})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        data = response.json()
        assert data["status"] == "error"
        assert "Code expired" in data["error"]
        assert client.get(f"{BASE}/status").json()["anthropic"] == {
            "connected": False,
            "pending": True,
        }
        coordinator.backup_sync.assert_not_called()


class TestRevokeEndpoint:
    def test_revoke(self, client: TestClient, coordinator, provider_api):
        client.post(f"{BASE}/anthropic/start")
        client.post(f"{BASE}/anthropic/exchange", json={"code": "abc-123"})
        client.post(f"{BASE}/openai/start")
        client.post(f"{BASE}/openai/exchange", json={"code": "oa_code"})

        response = client.delete(f"{BASE}/openai")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True, "message": "openai credentials removed"}
        data = client.get(f"{BASE}/status").json()
        assert data["openai"] == {"connected": False, "pending": False}
        assert data["anthropic"]["connected"] is True
        assert coordinator.gateway_restart.call_count == 3

    def test_revoke_unknown_provider(self, client: TestClient, coordinator):
        response = client.delete(f"{BASE}/gemini")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Invalid provider"}
        coordinator.backup_sync.assert_not_called()

    def test_revoke_storage_failure(self, client: TestClient, coordinator):
        with mock.patch.object(
            coordinator.credential_store,
            "remove_provider",
            side_effect=CredentialStorageError("read-only"),
        ):
            response = client.delete(f"{BASE}/anthropic")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "read-only"}
