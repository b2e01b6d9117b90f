"""
Provider-specific API key derivation.

The OAuth access token is not always usable for direct API calls, so a
second step derives an API key after the code exchange:

- TOKEN_EXCHANGE: RFC 8693 exchange of the id_token for an API key at the
  provider token endpoint. Falls back to the access token on failure.
- CREATE_KEY: authenticated POST to a key-creation endpoint. Leaves the key
  unset on failure.

Derivation failures never fail the flow.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from .exceptions import ApiKeyDerivationError, TokenExchangeError
from .providers import KeyDerivation, ProviderSpec
from .token_manager import FORM_HEADERS, RawTokens, TokenExchangeClient

logger = logging.getLogger(__name__)

TOKEN_EXCHANGE_GRANT = "urn:ietf:params:oauth:grant-type:token-exchange"
ID_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:id_token"
REQUESTED_API_KEY = "openai-api-key"


class KeySource(str, Enum):
    """Where the stored API key came from."""

    TOKEN_EXCHANGE = "token_exchange"
    ACCESS_TOKEN_FALLBACK = "access_token_fallback"
    CREATE_KEY = "create_key"
    NONE = "none"


@dataclass(frozen=True)
class DerivedKey:
    """Result of API key derivation."""

    api_key: Optional[str]
    source: KeySource

    @property
    def degraded(self) -> bool:
        """True when the preferred derivation step did not produce a key."""
        return self.source in (KeySource.ACCESS_TOKEN_FALLBACK, KeySource.NONE)


def _key_prefix(key: str) -> str:
    return f"{key[:6]}..."


def exchange_id_token_for_api_key(
    client: TokenExchangeClient, spec: ProviderSpec, id_token: str
) -> str:
    """
    Exchange an identity token for an API key (RFC 8693).

    Raises:
        ApiKeyDerivationError: If the call fails or returns no token
    """
    try:
        payload, status_code = client.post_json(
            spec.token_url,
            data={
                "grant_type": TOKEN_EXCHANGE_GRANT,
                "subject_token": id_token,
                "subject_token_type": ID_TOKEN_TYPE,
                "requested_token": REQUESTED_API_KEY,
                "client_id": spec.client_id,
            },
            headers=FORM_HEADERS,
            description=f"{spec.display_name} API key token exchange",
        )
    except TokenExchangeError as e:
        raise ApiKeyDerivationError(str(e)) from e

    api_key = payload.get("access_token")
    if not api_key:
        detail = payload.get("error_description") or payload.get("error") or "no access_token"
        raise ApiKeyDerivationError(
            f"Token exchange failed (status {status_code}): {str(detail)[:200]}"
        )
    return api_key


def create_api_key(
    client: TokenExchangeClient, spec: ProviderSpec, access_token: str
) -> str:
    """
    Create an API key using the access token as bearer credential.

    Raises:
        ApiKeyDerivationError: If the call fails or returns no key
    """
    if not spec.create_key_url:
        raise ApiKeyDerivationError(f"{spec.display_name} has no key-creation endpoint")

    try:
        payload, status_code = client.post_json(
            spec.create_key_url,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
            description=f"{spec.display_name} API key creation",
        )
    except TokenExchangeError as e:
        raise ApiKeyDerivationError(str(e)) from e

    api_key = payload.get("api_key")
    if not api_key:
        raise ApiKeyDerivationError(f"Key creation returned no api_key (status {status_code})")
    return api_key


def _derive_by_token_exchange(
    client: TokenExchangeClient, spec: ProviderSpec, tokens: RawTokens
) -> DerivedKey:
    if not tokens.id_token:
        logger.warning(
            f"[{spec.name}] No id_token in response, API key token exchange skipped; "
            f"using access_token"
        )
        return DerivedKey(tokens.access_token, KeySource.ACCESS_TOKEN_FALLBACK)

    logger.info(f"[{spec.name}] id_token present, attempting API key token exchange")
    try:
        api_key = exchange_id_token_for_api_key(client, spec, tokens.id_token)
    except ApiKeyDerivationError as e:
        logger.warning(
            f"[{spec.name}] API key token exchange failed, falling back to access_token: {e}"
        )
        return DerivedKey(tokens.access_token, KeySource.ACCESS_TOKEN_FALLBACK)

    logger.info(f"[{spec.name}] API key obtained via token exchange, prefix: {_key_prefix(api_key)}")
    return DerivedKey(api_key, KeySource.TOKEN_EXCHANGE)


def _derive_by_create_key(
    client: TokenExchangeClient, spec: ProviderSpec, tokens: RawTokens
) -> DerivedKey:
    try:
        api_key = create_api_key(client, spec, tokens.access_token)
    except ApiKeyDerivationError as e:
        logger.warning(f"[{spec.name}] API key creation failed, continuing without api_key: {e}")
        return DerivedKey(None, KeySource.NONE)

    logger.info(f"[{spec.name}] API key created, prefix: {_key_prefix(api_key)}")
    return DerivedKey(api_key, KeySource.CREATE_KEY)


_STRATEGIES: Dict[
    KeyDerivation, Callable[[TokenExchangeClient, ProviderSpec, RawTokens], DerivedKey]
] = {
    KeyDerivation.TOKEN_EXCHANGE: _derive_by_token_exchange,
    KeyDerivation.CREATE_KEY: _derive_by_create_key,
}


def derive_api_key(
    client: TokenExchangeClient, spec: ProviderSpec, tokens: RawTokens
) -> DerivedKey:
    """
    Run the provider's API key derivation strategy.

    Args:
        client: HTTP client used for the derivation call
        spec: Provider definition
        tokens: Tokens from the authorization code exchange

    Returns:
        DerivedKey; never raises for derivation failures
    """
    return _STRATEGIES[spec.key_derivation](client, spec, tokens)
