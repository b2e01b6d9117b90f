"""
Gateway routing configuration patcher.

Adds or removes the OAuth-backed provider entry in the gateway's JSON
configuration document so a new login is usable without manual edits.
Only the ``models.providers["<provider>-oauth"]`` entry is touched; entries
for natively configured providers are never rewritten.
"""

import json
import logging
import threading
from typing import Optional

from .blob_store import FileBlobStore
from .config import GatewayRouting
from .exceptions import ConfigPatchError, CredentialStorageError
from .providers import ProviderSpec
from .token_storage import ProviderCredentials

logger = logging.getLogger(__name__)


class ProviderConfigPatcher:
    """Read-modify-write access to the gateway routing document."""

    def __init__(self, blobs: FileBlobStore, key: str = "openclaw.json"):
        self.blobs = blobs
        self.key = key
        self.lock = threading.RLock()

    def _read_document(self) -> dict:
        content = self.blobs.read(self.key)
        if not content or not content.strip():
            return {}
        try:
            document = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid routing config, treating as empty: {e}")
            return {}
        if not isinstance(document, dict):
            logger.warning("Routing config is not a JSON object, treating as empty")
            return {}
        return document

    def _write_document(self, document: dict) -> None:
        try:
            self.blobs.write(self.key, json.dumps(document, indent=2))
        except CredentialStorageError as e:
            raise ConfigPatchError(f"Failed to write routing config: {e}") from e

    @staticmethod
    def _providers_map(document: dict) -> dict:
        models = document.get("models")
        if not isinstance(models, dict):
            models = document["models"] = {}
        providers = models.get("providers")
        if not isinstance(providers, dict):
            providers = models["providers"] = {}
        return providers

    @staticmethod
    def build_entry(
        spec: ProviderSpec,
        credentials: ProviderCredentials,
        gateway_routing: Optional[GatewayRouting] = None,
    ) -> Optional[dict]:
        """
        Build the routing entry for a provider.

        Returns:
            Entry dict, or None when the credentials carry no usable key
        """
        api_key = credentials.routing_key
        if not api_key:
            return None

        base_url = (
            gateway_routing.provider_url(spec.gateway_path)
            if gateway_routing
            else spec.direct_base_url
        )
        return {
            "baseUrl": base_url,
            "api": spec.api,
            "apiKey": api_key,
            "models": [dict(model) for model in spec.models],
        }

    def upsert(
        self,
        spec: ProviderSpec,
        credentials: ProviderCredentials,
        gateway_routing: Optional[GatewayRouting] = None,
    ) -> bool:
        """
        Insert or replace the provider's OAuth routing entry.

        Returns:
            True if an entry was written

        Raises:
            ConfigPatchError: If the document cannot be written
        """
        entry = self.build_entry(spec, credentials, gateway_routing)
        with self.lock:
            document = self._read_document()
            providers = self._providers_map(document)
            if entry is not None:
                providers[spec.config_slug] = entry
            self._write_document(document)

        if entry is None:
            logger.warning(f"[{spec.name}] No usable key, {spec.config_slug} not registered")
            return False

        logger.info(f"Registered {spec.config_slug} provider in config ({entry['baseUrl']})")
        return True

    def remove(self, spec: ProviderSpec) -> bool:
        """
        Remove the provider's OAuth routing entry.

        The document is only rewritten when the entry existed.

        Returns:
            True if an entry was removed

        Raises:
            ConfigPatchError: If the document cannot be written
        """
        with self.lock:
            document = self._read_document()
            models = document.get("models")
            providers = models.get("providers") if isinstance(models, dict) else None
            if not isinstance(providers, dict) or spec.config_slug not in providers:
                return False
            del providers[spec.config_slug]
            self._write_document(document)

        logger.info(f"Removed {spec.config_slug} provider from config")
        return True
