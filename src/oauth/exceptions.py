"""
OAuth broker exception classes.

This module defines the exception hierarchy for the credential broker.
Input validation, missing pending flows and external call failures are
raised to the caller; key-derivation, config-patch and side-effect errors
are caught by the coordinator and only logged.
"""


class OAuthBrokerError(Exception):
    """Base exception for all OAuth broker errors."""

    pass


class ConfigurationError(OAuthBrokerError):
    """Broker configuration error (missing or invalid configuration)."""

    pass


class InvalidProviderError(OAuthBrokerError):
    """Provider name is not one of the supported providers."""

    pass


class InvalidRequestError(OAuthBrokerError):
    """Request input is missing or malformed (code, callback URL)."""

    pass


class NoPendingFlowError(OAuthBrokerError):
    """Exchange attempted without a matching authorization start."""

    pass


class EntropySourceUnavailableError(OAuthBrokerError):
    """The operating system random source could not be read."""

    pass


class TokenExchangeError(OAuthBrokerError):
    """Failed to exchange authorization code for tokens."""

    pass


class InvalidTokenResponseError(TokenExchangeError):
    """Token endpoint answered without the required token fields."""

    pass


class ApiKeyDerivationError(OAuthBrokerError):
    """Secondary API key derivation failed (recoverable)."""

    pass


class CredentialStorageError(OAuthBrokerError):
    """Credential or pending-flow storage operation failed (file I/O error)."""

    pass


class ConfigPatchError(OAuthBrokerError):
    """Routing configuration document could not be updated."""

    pass


class SideEffectError(OAuthBrokerError):
    """Backup sync or gateway restart hook failed."""

    pass
