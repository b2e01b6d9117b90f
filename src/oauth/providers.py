"""
Provider definitions for the OAuth broker.

Each supported identity provider is a closed variant of ``ProviderId``
with one ``ProviderSpec`` describing its endpoints, the exact authorize
and token parameter sets, the API-key derivation strategy and the
routing entry written into the gateway configuration.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Pattern, Tuple

from .exceptions import InvalidProviderError


class ProviderId(str, Enum):
    """Supported OAuth providers."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"

    @classmethod
    def parse(cls, name: str) -> "ProviderId":
        """
        Resolve a provider name.

        Raises:
            InvalidProviderError: If the name is not a supported provider
        """
        try:
            return cls(name)
        except ValueError:
            raise InvalidProviderError("Invalid provider") from None


class KeyDerivation(str, Enum):
    """Secondary step that turns OAuth tokens into an API key."""

    TOKEN_EXCHANGE = "token_exchange"  # RFC 8693 id_token -> API key
    CREATE_KEY = "create_key"  # bearer POST to a key-creation endpoint


@dataclass(frozen=True)
class ProviderSpec:
    """
    Static configuration of one OAuth provider.

    Attributes:
        provider: Provider identity
        display_name: Human-readable name used in messages
        client_id: Public OAuth client id
        authorize_url: Authorization endpoint
        token_url: Token endpoint
        redirect_uri: Registered redirect URI
        scope: Space-separated scopes
        authorize_params: Authorize query template, in wire order. Values of
            None are filled from the flow (code_challenge, state, ...)
        token_param_order: Token request parameter names, in wire order
        key_derivation: API-key derivation strategy
        create_key_url: Key-creation endpoint (CREATE_KEY only)
        requires_refresh_token: Token response must carry a refresh token
        accepts_callback_url: Exchange may receive the full callback URL
        code_pattern: Allowed authorization code format, if restricted
        config_slug: Routing config entry key
        api: Gateway API adapter name
        direct_base_url: Base URL when no upstream gateway is configured
        gateway_path: Path segment appended to the upstream gateway URL
        models: Model list advertised in the routing entry
    """

    provider: ProviderId
    display_name: str
    client_id: str
    authorize_url: str
    token_url: str
    redirect_uri: str
    scope: str
    authorize_params: Tuple[Tuple[str, Optional[str]], ...]
    token_param_order: Tuple[str, ...]
    key_derivation: KeyDerivation
    config_slug: str
    api: str
    direct_base_url: str
    gateway_path: str
    models: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)
    create_key_url: Optional[str] = None
    requires_refresh_token: bool = False
    accepts_callback_url: bool = False
    code_pattern: Optional[Pattern[str]] = None

    @property
    def name(self) -> str:
        return self.provider.value


OPENAI_CLIENT_ID = "app_EMoamEEZ73f0CkXaXp7hrann"
ANTHROPIC_CLIENT_ID = "9d1c250a-e61b-44d9-88ed-5944d1962f5e"

OPENAI = ProviderSpec(
    provider=ProviderId.OPENAI,
    display_name="OpenAI",
    client_id=OPENAI_CLIENT_ID,
    authorize_url="https://auth.openai.com/oauth/authorize",
    token_url="https://auth.openai.com/oauth/token",
    redirect_uri="http://localhost:1455/auth/callback",
    scope="openid profile email offline_access",
    authorize_params=(
        ("response_type", "code"),
        ("client_id", None),
        ("redirect_uri", None),
        ("scope", None),
        ("code_challenge", None),
        ("code_challenge_method", "S256"),
        ("id_token_add_organizations", "true"),
        ("codex_cli_simplified_flow", "true"),
        ("originator", "codex_cli_rs"),
        ("state", None),
    ),
    token_param_order=(
        "grant_type",
        "client_id",
        "code",
        "redirect_uri",
        "code_verifier",
    ),
    key_derivation=KeyDerivation.TOKEN_EXCHANGE,
    requires_refresh_token=True,
    accepts_callback_url=True,
    config_slug="openai-oauth",
    api="openai-completions",
    direct_base_url="https://api.openai.com/v1",
    gateway_path="openai",
    models=(
        {"id": "gpt-5.2", "name": "gpt-5.2 (thinking)", "contextWindow": 200000, "maxTokens": 16384},
        {"id": "gpt-5.2-chat-latest", "name": "gpt-5.2 instant", "contextWindow": 200000, "maxTokens": 16384},
        {"id": "gpt-5.2-codex", "name": "gpt-5.2-codex (coding)", "contextWindow": 200000, "maxTokens": 16384},
        {"id": "gpt-4.1", "name": "gpt-4.1 (1M context)", "contextWindow": 1000000, "maxTokens": 32768},
        {"id": "gpt-4o", "name": "gpt-4o (vision)", "contextWindow": 128000, "maxTokens": 16384},
        {"id": "o4-mini", "name": "o4-mini (fast reasoning)", "contextWindow": 200000, "maxTokens": 100000},
        {"id": "o3-pro", "name": "o3-pro (deep reasoning)", "contextWindow": 200000, "maxTokens": 100000},
        {"id": "o4-mini-deep-research", "name": "o4-mini deep research", "contextWindow": 200000, "maxTokens": 100000},
    ),
)

ANTHROPIC = ProviderSpec(
    provider=ProviderId.ANTHROPIC,
    display_name="Anthropic",
    client_id=ANTHROPIC_CLIENT_ID,
    authorize_url="https://console.anthropic.com/oauth/authorize",
    token_url="https://console.anthropic.com/v1/oauth/token",
    redirect_uri="https://console.anthropic.com/oauth/code/callback",
    scope="org:create_api_key user:profile user:inference",
    authorize_params=(
        ("client_id", None),
        ("redirect_uri", None),
        ("code", "true"),
        ("scope", None),
        ("code_challenge", None),
        ("code_challenge_method", "S256"),
        ("state", None),
        ("response_type", "code"),
    ),
    token_param_order=(
        "grant_type",
        "code",
        "redirect_uri",
        "client_id",
        "code_verifier",
    ),
    key_derivation=KeyDerivation.CREATE_KEY,
    create_key_url="https://api.anthropic.com/api/oauth/claude_cli/create_api_key",
    code_pattern=re.compile(r"^[A-Za-z0-9-]+$"),
    config_slug="anthropic-oauth",
    api="anthropic-messages",
    direct_base_url="https://api.anthropic.com",
    gateway_path="anthropic",
    models=(
        {
            "id": "claude-sonnet-4-5-20250514",
            "name": "claude-sonnet-4-5-20250514",
            "contextWindow": 200000,
            "maxTokens": 8192,
        },
    ),
)

PROVIDERS: Dict[ProviderId, ProviderSpec] = {
    ProviderId.OPENAI: OPENAI,
    ProviderId.ANTHROPIC: ANTHROPIC,
}


def get_provider(provider) -> ProviderSpec:
    """
    Look up the ProviderSpec for a provider id or name.

    Raises:
        InvalidProviderError: If the provider is unknown
    """
    if not isinstance(provider, ProviderId):
        provider = ProviderId.parse(provider)
    return PROVIDERS[provider]
