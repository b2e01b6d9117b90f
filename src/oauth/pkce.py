"""
PKCE helpers.

Generates the code verifier, S256 code challenge and anti-CSRF state
values used by the authorization code flow. All values are URL-safe
base64 without padding.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass

from .exceptions import EntropySourceUnavailableError

VERIFIER_BYTES = 32
STATE_BYTES = 16


@dataclass(frozen=True)
class PKCEPair:
    """Code verifier and its S256 challenge."""

    code_verifier: str
    code_challenge: str


def base64url_nopad(data: bytes) -> str:
    """Encode bytes as URL-safe base64 with the trailing padding stripped."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _random_bytes(count: int) -> bytes:
    try:
        return secrets.token_bytes(count)
    except (NotImplementedError, OSError) as e:
        raise EntropySourceUnavailableError(
            f"Secure random source unavailable: {e}"
        ) from e


def code_challenge_for(code_verifier: str) -> str:
    """Compute the S256 code challenge for a verifier."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64url_nopad(digest)


def generate_pkce() -> PKCEPair:
    """
    Generate a PKCE verifier/challenge pair (S256 method).

    Returns:
        PKCEPair with a 43 character verifier and its challenge

    Raises:
        EntropySourceUnavailableError: If the OS random source fails
    """
    code_verifier = base64url_nopad(_random_bytes(VERIFIER_BYTES))
    return PKCEPair(
        code_verifier=code_verifier,
        code_challenge=code_challenge_for(code_verifier),
    )


def generate_state() -> str:
    """Generate a random anti-CSRF state value."""
    return base64url_nopad(_random_bytes(STATE_BYTES))
