"""
OAuth credential broker.

This module implements the authorization code + PKCE flow for the
OpenAI and Anthropic identity providers. It obtains tokens, derives a
usable API key, persists credentials, and keeps the gateway routing
configuration in step with what is connected.

Public API:
    BrokerConfig: Broker configuration management
    GatewayRouting: Optional upstream gateway for provider base URLs
    ProviderId / ProviderSpec: Supported providers and their static config
    PendingFlowState / PendingFlowStore: In-flight authorization storage
    ProviderCredentials / CredentialStore: Credential bundle storage
    TokenExchangeClient: Token endpoint HTTP client
    ProviderConfigPatcher: Gateway routing config patcher
    OAuthCoordinator: High-level broker interface

Exceptions:
    OAuthBrokerError: Base exception
    ConfigurationError: Configuration error
    InvalidProviderError: Unknown provider
    InvalidRequestError: Missing or malformed input
    NoPendingFlowError: Exchange without a started flow
    EntropySourceUnavailableError: Random source failure
    TokenExchangeError: Token endpoint call failed
    InvalidTokenResponseError: Token response missing required fields
    ApiKeyDerivationError: API key derivation failed
    CredentialStorageError: Storage operation failed
    ConfigPatchError: Routing config update failed
    SideEffectError: Backup sync or gateway restart failed
"""

from .authorize_url import build_authorization_url
from .config import BrokerConfig, GatewayRouting
from .config_patcher import ProviderConfigPatcher
from .coordinator import (
    AuthorizationStart,
    ExchangeResult,
    FlowPhase,
    OAuthCoordinator,
    ProviderStatus,
)
from .exceptions import (
    ApiKeyDerivationError,
    ConfigPatchError,
    ConfigurationError,
    CredentialStorageError,
    EntropySourceUnavailableError,
    InvalidProviderError,
    InvalidRequestError,
    InvalidTokenResponseError,
    NoPendingFlowError,
    OAuthBrokerError,
    SideEffectError,
    TokenExchangeError,
)
from .flow_store import PendingFlowState, PendingFlowStore
from .key_derivation import DerivedKey, KeySource, derive_api_key
from .pkce import PKCEPair, generate_pkce, generate_state
from .providers import PROVIDERS, KeyDerivation, ProviderId, ProviderSpec, get_provider
from .token_manager import RawTokens, TokenExchangeClient
from .token_storage import CredentialStore, ProviderCredentials

__all__ = [
    # Configuration
    "BrokerConfig",
    "GatewayRouting",
    # Providers
    "PROVIDERS",
    "KeyDerivation",
    "ProviderId",
    "ProviderSpec",
    "get_provider",
    # PKCE
    "PKCEPair",
    "generate_pkce",
    "generate_state",
    # Storage
    "PendingFlowState",
    "PendingFlowStore",
    "ProviderCredentials",
    "CredentialStore",
    # Token exchange
    "RawTokens",
    "TokenExchangeClient",
    "DerivedKey",
    "KeySource",
    "derive_api_key",
    # Routing config
    "build_authorization_url",
    "ProviderConfigPatcher",
    # Coordinator
    "OAuthCoordinator",
    "AuthorizationStart",
    "ExchangeResult",
    "FlowPhase",
    "ProviderStatus",
    # Exceptions
    "OAuthBrokerError",
    "ConfigurationError",
    "InvalidProviderError",
    "InvalidRequestError",
    "NoPendingFlowError",
    "EntropySourceUnavailableError",
    "TokenExchangeError",
    "InvalidTokenResponseError",
    "ApiKeyDerivationError",
    "CredentialStorageError",
    "ConfigPatchError",
    "SideEffectError",
]
