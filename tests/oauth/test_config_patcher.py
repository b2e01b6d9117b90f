"""Tests for the gateway routing config patcher."""

import json
from unittest import mock

import pytest

from src.oauth.blob_store import FileBlobStore
from src.oauth.config import GatewayRouting
from src.oauth.config_patcher import ProviderConfigPatcher
from src.oauth.exceptions import ConfigPatchError, CredentialStorageError
from src.oauth.providers import ANTHROPIC, OPENAI
from src.oauth.token_storage import ProviderCredentials


def _creds(api_key=None, access_token="at"):
    return ProviderCredentials(
        access_token=access_token,
        refresh_token="rt",
        token_type="Bearer",
        obtained_at=1,
        api_key=api_key,
    )


@pytest.fixture
def patcher(tmp_path):
    return ProviderConfigPatcher(FileBlobStore(str(tmp_path)))


def _document(tmp_path):
    return json.loads((tmp_path / "openclaw.json").read_text())


class TestBuildEntry:
    def test_direct_entry(self):
        entry = ProviderConfigPatcher.build_entry(OPENAI, _creds(api_key="sk-1"))

        assert entry["baseUrl"] == "https://api.openai.com/v1"
        assert entry["api"] == "openai-completions"
        assert entry["apiKey"] == "sk-1"
        assert len(entry["models"]) == 8

    def test_gateway_entry(self):
        routing = GatewayRouting("acct", "gw")

        entry = ProviderConfigPatcher.build_entry(ANTHROPIC, _creds(), routing)

        assert entry["baseUrl"] == "https://gateway.ai.cloudflare.com/v1/acct/gw/anthropic"
        assert entry["apiKey"] == "at"
        assert entry["models"][0]["id"] == "claude-sonnet-4-5-20250514"

    def test_no_key_no_entry(self):
        assert ProviderConfigPatcher.build_entry(OPENAI, _creds(access_token="")) is None


class TestUpsert:
    def test_creates_document(self, patcher, tmp_path):
        assert patcher.upsert(OPENAI, _creds(api_key="sk-1")) is True

        document = _document(tmp_path)
        assert document["models"]["providers"]["openai-oauth"]["apiKey"] == "sk-1"

    def test_preserves_unrelated_entries(self, patcher, tmp_path):
        (tmp_path / "openclaw.json").write_text(
            json.dumps(
                {
                    "gateway": {"port": 18789},
                    "models": {
                        "mode": "merge",
                        "providers": {
                            "openai": {"apiKey": "native"},
                            "openai-oauth": {"apiKey": "stale"},
                        },
                    },
                }
            )
        )

        patcher.upsert(OPENAI, _creds(api_key="sk-new"))

        document = _document(tmp_path)
        assert document["gateway"] == {"port": 18789}
        assert document["models"]["mode"] == "merge"
        assert document["models"]["providers"]["openai"] == {"apiKey": "native"}
        assert document["models"]["providers"]["openai-oauth"]["apiKey"] == "sk-new"

    def test_corrupt_document_treated_as_empty(self, patcher, tmp_path):
        (tmp_path / "openclaw.json").write_text("{broken")

        patcher.upsert(ANTHROPIC, _creds(api_key="sk-ant"))

        assert list(_document(tmp_path)["models"]["providers"]) == ["anthropic-oauth"]

    def test_non_utf8_document_treated_as_empty(self, patcher, tmp_path):
        (tmp_path / "openclaw.json").write_bytes(b"\xff\xfe{bad")

        assert patcher.upsert(OPENAI, _creds(api_key="sk-1")) is True

        assert list(_document(tmp_path)["models"]["providers"]) == ["openai-oauth"]

    def test_no_key_returns_false(self, patcher, tmp_path):
        assert patcher.upsert(ANTHROPIC, _creds(access_token="")) is False
        assert _document(tmp_path) == {"models": {"providers": {}}}

    def test_write_failure(self, patcher):
        with mock.patch.object(
            patcher.blobs, "write", side_effect=CredentialStorageError("read-only")
        ):
            with pytest.raises(ConfigPatchError, match="read-only"):
                patcher.upsert(OPENAI, _creds(api_key="sk-1"))


class TestRemove:
    def test_removes_entry(self, patcher, tmp_path):
        patcher.upsert(OPENAI, _creds(api_key="sk-1"))
        patcher.upsert(ANTHROPIC, _creds(api_key="sk-ant"))

        assert patcher.remove(OPENAI) is True

        assert list(_document(tmp_path)["models"]["providers"]) == ["anthropic-oauth"]

    def test_missing_entry_does_not_write(self, patcher, tmp_path):
        assert patcher.remove(OPENAI) is False
        assert not (tmp_path / "openclaw.json").exists()

    def test_non_dict_models(self, patcher, tmp_path):
        (tmp_path / "openclaw.json").write_text(json.dumps({"models": []}))

        assert patcher.remove(ANTHROPIC) is False
        assert _document(tmp_path) == {"models": []}
