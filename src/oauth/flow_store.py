"""
Pending authorization flow storage.

One descriptor per provider records the PKCE verifier, challenge, state
and start time of an authorization in progress. Missing or corrupt
descriptors read as "no flow in progress".
"""

import json
import logging
from dataclasses import asdict, dataclass
from typing import Optional

from .blob_store import FileBlobStore

logger = logging.getLogger(__name__)


@dataclass
class PendingFlowState:
    """
    In-flight PKCE authorization for one provider.

    Attributes:
        code_verifier: PKCE secret sent with the token exchange
        code_challenge: S256 challenge sent with the authorize request
        state: Anti-CSRF nonce
        started_at: Epoch milliseconds when the flow was started
    """

    code_verifier: str
    code_challenge: str
    state: str
    started_at: int

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PendingFlowState":
        """
        Create PendingFlowState from dictionary.

        Raises:
            KeyError: If required fields are missing
            TypeError: If data is not a mapping
        """
        return cls(
            code_verifier=data["code_verifier"],
            code_challenge=data["code_challenge"],
            state=data["state"],
            started_at=data["started_at"],
        )


class PendingFlowStore:
    """Per-provider pending flow descriptors on a blob store."""

    def __init__(self, blobs: FileBlobStore):
        self.blobs = blobs

    @staticmethod
    def key_for(provider: str) -> str:
        return f".oauth-pending-{provider}.json"

    def put(self, provider: str, state: PendingFlowState) -> None:
        """
        Persist the pending flow for a provider, replacing any existing one.

        Raises:
            CredentialStorageError: If the write fails
        """
        self.blobs.write(self.key_for(provider), json.dumps(state.to_dict()))
        logger.debug(f"Pending {provider} flow saved")

    def get(self, provider: str) -> Optional[PendingFlowState]:
        """
        Load the pending flow for a provider.

        Returns:
            PendingFlowState, or None if absent or malformed
        """
        content = self.blobs.read(self.key_for(provider))
        if not content or not content.strip():
            return None

        try:
            return PendingFlowState.from_dict(json.loads(content))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring malformed pending {provider} flow: {e}")
            return None

    def clear(self, provider: str) -> None:
        """Remove the pending flow for a provider if present."""
        if self.blobs.delete(self.key_for(provider)):
            logger.debug(f"Pending {provider} flow cleared")
