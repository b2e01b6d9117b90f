"""
Configuration for the OAuth credential broker.

This module provides configuration management for the broker: where
credentials, pending flows and the gateway routing document live, the
outbound HTTP timeout, optional upstream gateway routing and the shell
hooks used for backup sync and gateway restart. Configuration can be
loaded from environment variables or provided programmatically.
"""

import os
import tempfile
from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigurationError

DEFAULT_STATE_DIR = "~/.openclaw"
DEFAULT_HTTP_TIMEOUT = 15
DEFAULT_HOOK_TIMEOUT = 120

CLOUDFLARE_GATEWAY_BASE = "https://gateway.ai.cloudflare.com/v1"


@dataclass(frozen=True)
class GatewayRouting:
    """
    Upstream AI gateway that provider traffic is routed through.

    Attributes:
        account_id: Gateway account identifier
        gateway_id: Gateway identifier within the account
    """

    account_id: str
    gateway_id: str

    @property
    def base_url(self) -> str:
        """Gateway base URL, without the provider path segment."""
        return f"{CLOUDFLARE_GATEWAY_BASE}/{self.account_id}/{self.gateway_id}"

    def provider_url(self, gateway_path: str) -> str:
        return f"{self.base_url}/{gateway_path}"


@dataclass
class BrokerConfig:
    """
    Configuration for the OAuth broker.

    Attributes:
        state_dir: Directory holding the credential bundle and gateway config
        pending_dir: Directory holding per-provider pending flow descriptors
        credentials_file: Credential bundle path, relative to state_dir
        routing_config_file: Gateway routing document, relative to state_dir
        http_timeout: Seconds allowed for each token-related HTTP call
        gateway_routing: Optional upstream gateway for provider base URLs
        sync_command: Shell command that backs up state (None disables)
        restart_command: Shell command that restarts the gateway (None disables)
        hook_timeout: Seconds allowed for each hook command
    """

    state_dir: str = DEFAULT_STATE_DIR
    pending_dir: str = tempfile.gettempdir()
    credentials_file: str = "credentials/oauth.json"
    routing_config_file: str = "openclaw.json"
    http_timeout: int = DEFAULT_HTTP_TIMEOUT
    gateway_routing: Optional[GatewayRouting] = None
    sync_command: Optional[str] = None
    restart_command: Optional[str] = None
    hook_timeout: int = DEFAULT_HOOK_TIMEOUT

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.state_dir:
            raise ConfigurationError("state_dir cannot be empty")

        if not self.pending_dir:
            raise ConfigurationError("pending_dir cannot be empty")

        if not isinstance(self.http_timeout, int) or self.http_timeout <= 0:
            raise ConfigurationError(
                f"http_timeout must be a positive number of seconds, got {self.http_timeout}"
            )

        if not isinstance(self.hook_timeout, int) or self.hook_timeout <= 0:
            raise ConfigurationError(
                f"hook_timeout must be a positive number of seconds, got {self.hook_timeout}"
            )

    @property
    def state_path(self) -> str:
        """State directory with ``~`` expanded."""
        return os.path.expanduser(self.state_dir)

    @property
    def pending_path(self) -> str:
        """Pending directory with ``~`` expanded."""
        return os.path.expanduser(self.pending_dir)

    @classmethod
    def from_env(cls) -> "BrokerConfig":
        """
        Load configuration from environment variables.

        Optional environment variables:
            OAUTH_STATE_DIR: State directory (default: ~/.openclaw)
            OAUTH_PENDING_DIR: Pending flow directory (default: system temp dir)
            OAUTH_HTTP_TIMEOUT: Token endpoint timeout in seconds (default: 15)
            CF_AI_GATEWAY_ACCOUNT_ID: Upstream gateway account
            CF_AI_GATEWAY_GATEWAY_ID: Upstream gateway id
            OAUTH_SYNC_COMMAND: Backup sync command
            OAUTH_RESTART_COMMAND: Gateway restart command
            OAUTH_HOOK_TIMEOUT: Hook command timeout in seconds (default: 120)

        Gateway routing is enabled only when both gateway variables are set.

        Returns:
            BrokerConfig instance

        Raises:
            ConfigurationError: If a numeric variable is not an integer
        """
        account_id = os.environ.get("CF_AI_GATEWAY_ACCOUNT_ID")
        gateway_id = os.environ.get("CF_AI_GATEWAY_GATEWAY_ID")
        gateway_routing = (
            GatewayRouting(account_id=account_id, gateway_id=gateway_id)
            if account_id and gateway_id
            else None
        )

        return cls(
            state_dir=os.environ.get("OAUTH_STATE_DIR", DEFAULT_STATE_DIR),
            pending_dir=os.environ.get("OAUTH_PENDING_DIR", tempfile.gettempdir()),
            http_timeout=_int_from_env("OAUTH_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
            gateway_routing=gateway_routing,
            sync_command=os.environ.get("OAUTH_SYNC_COMMAND") or None,
            restart_command=os.environ.get("OAUTH_RESTART_COMMAND") or None,
            hook_timeout=_int_from_env("OAUTH_HOOK_TIMEOUT", DEFAULT_HOOK_TIMEOUT),
        )


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
