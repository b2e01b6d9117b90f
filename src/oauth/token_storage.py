"""
Credential storage for the OAuth broker.

This module provides persistence for the credential bundle: a single
JSON document mapping provider name to that provider's tokens and
derived API key. Tokens are stored in plaintext JSON with user-only
permissions, in the same document the gateway reads on startup.
"""

import json
import logging
import threading
import time
from dataclasses import asdict, dataclass, fields
from typing import Dict, Optional

from .blob_store import FileBlobStore

logger = logging.getLogger(__name__)


def now_millis() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class ProviderCredentials:
    """
    Stored OAuth credentials for one provider.

    Attributes:
        access_token: OAuth access token
        refresh_token: Long-lived token for obtaining new access tokens
        token_type: Token type (typically "Bearer")
        obtained_at: Epoch milliseconds of the successful exchange
        expires_at: Epoch milliseconds when the access token expires
        id_token: Identity token used for API key derivation (openai)
        api_key: Key used for API calls, distinct from the access token
    """

    access_token: str
    refresh_token: Optional[str]
    token_type: Optional[str]
    obtained_at: int
    expires_at: Optional[int] = None
    id_token: Optional[str] = None
    api_key: Optional[str] = None

    @property
    def routing_key(self) -> Optional[str]:
        """Key the gateway should use: the derived API key, else the access token."""
        return self.api_key or self.access_token or None

    def to_dict(self) -> dict:
        """
        Convert to dictionary for JSON serialization.

        Unset optional fields are omitted.
        """
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict) -> "ProviderCredentials":
        """
        Create ProviderCredentials from dictionary.

        Unknown keys are ignored.

        Raises:
            KeyError: If required fields are missing
            TypeError: If data is not a mapping
        """
        known = {f.name for f in fields(cls)}
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type"),
            obtained_at=data["obtained_at"],
            **{
                k: v
                for k, v in data.items()
                if k in known
                and k not in ("access_token", "refresh_token", "token_type", "obtained_at")
            },
        )


CredentialBundle = Dict[str, ProviderCredentials]


class CredentialStore:
    """
    File-based credential bundle storage (plaintext JSON).

    The store performs no merging: callers read the bundle, change it and
    write the whole bundle back while holding ``lock``.
    """

    def __init__(self, blobs: FileBlobStore, key: str = "credentials/oauth.json"):
        """
        Initialize credential storage.

        Args:
            blobs: Blob store rooted at the state directory
            key: Bundle path relative to the blob store root
        """
        self.blobs = blobs
        self.key = key
        self.lock = threading.RLock()

    def read(self) -> CredentialBundle:
        """
        Load the credential bundle.

        Returns:
            Mapping of provider name to credentials; empty if the document
            is missing or corrupted. Malformed provider entries are skipped.
        """
        content = self.blobs.read(self.key)
        if not content or not content.strip():
            return {}

        try:
            raw = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid credential file, treating as empty: {e}")
            return {}

        if not isinstance(raw, dict):
            logger.warning("Credential file is not a JSON object, treating as empty")
            return {}

        bundle: CredentialBundle = {}
        for provider, data in raw.items():
            try:
                bundle[provider] = ProviderCredentials.from_dict(data)
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed {provider} credentials: {e}")
        return bundle

    def write(self, bundle: CredentialBundle) -> None:
        """
        Replace the stored bundle.

        Raises:
            CredentialStorageError: If the write fails
        """
        content = json.dumps(
            {provider: creds.to_dict() for provider, creds in bundle.items()},
            indent=2,
        )
        self.blobs.write(self.key, content)
        logger.info(f"Credentials saved ({', '.join(sorted(bundle)) or 'empty'})")

    def get(self, provider: str) -> Optional[ProviderCredentials]:
        return self.read().get(provider)

    def remove_provider(self, provider: str) -> bool:
        """
        Delete one provider's credentials, leaving the others untouched.

        Returns:
            True if the provider had stored credentials
        """
        with self.lock:
            bundle = self.read()
            removed = bundle.pop(provider, None) is not None
            self.write(bundle)
        return removed
