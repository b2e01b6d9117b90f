"""Tests for PKCE helpers."""

import base64
import hashlib
import re
from unittest import mock

import pytest

from src.oauth.exceptions import EntropySourceUnavailableError
from src.oauth.pkce import code_challenge_for, generate_pkce, generate_state

URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def _decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


class TestGeneratePKCE:
    """Tests for generate_pkce."""

    def test_challenge_is_sha256_of_verifier(self):
        """challenge == base64url_nopad(SHA256(verifier))."""
        for _ in range(20):
            pair = generate_pkce()
            digest = hashlib.sha256(pair.code_verifier.encode()).digest()
            expected = base64.urlsafe_b64encode(digest).decode().rstrip("=")

            assert pair.code_challenge == expected

    def test_verifier_has_256_bits_of_entropy(self):
        """Verifier encodes 32 random bytes in 43 URL-safe characters."""
        pair = generate_pkce()

        assert len(pair.code_verifier) == 43
        assert URL_SAFE.match(pair.code_verifier)
        assert len(_decode(pair.code_verifier)) == 32
        assert "=" not in pair.code_challenge

    def test_pairs_are_unique(self):
        verifiers = {generate_pkce().code_verifier for _ in range(50)}
        assert len(verifiers) == 50

    def test_rfc7636_example(self):
        """Challenge matches the RFC 7636 appendix B example."""
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"

        assert code_challenge_for(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    @mock.patch("src.oauth.pkce.secrets.token_bytes", side_effect=OSError("no entropy"))
    def test_entropy_failure_raises(self, _mock_token_bytes):
        """An unavailable random source is fatal."""
        with pytest.raises(EntropySourceUnavailableError, match="no entropy"):
            generate_pkce()


class TestGenerateState:
    """Tests for generate_state."""

    def test_state_is_16_url_safe_bytes(self):
        state = generate_state()

        assert len(state) == 22
        assert URL_SAFE.match(state)
        assert len(_decode(state)) == 16

    def test_states_differ(self):
        assert generate_state() != generate_state()
