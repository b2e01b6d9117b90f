"""
OAuth coordinator for high-level broker operations.

This module provides the main interface for the credential broker. It
sequences the PKCE authorization flow for each provider:

- start: discard any stale pending flow, generate PKCE + state, persist the
  pending flow and return the authorize URL
- exchange: trade the authorization code for tokens, derive the API key,
  store credentials, patch the gateway routing config and queue backup
  sync + gateway restart
- status: report connected/pending per provider
- revoke: drop credentials and pending flow, unregister the routing entry
  and queue backup sync + gateway restart

Credential bundle and routing config are shared JSON documents updated by
read-modify-write. Locks serialize writers inside one process; separate
processes writing the same state directory can still race (last write wins).
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set
from urllib.parse import parse_qs, urlsplit

from .authorize_url import build_authorization_url
from .blob_store import FileBlobStore
from .config import BrokerConfig
from .config_patcher import ProviderConfigPatcher
from .exceptions import (
    ConfigPatchError,
    CredentialStorageError,
    InvalidRequestError,
    NoPendingFlowError,
)
from .flow_store import PendingFlowState, PendingFlowStore
from .key_derivation import KeySource, derive_api_key
from .pkce import generate_pkce, generate_state
from .providers import ProviderId, ProviderSpec, get_provider
from .side_effects import CommandHook, run_guarded
from .token_manager import TokenExchangeClient
from .token_storage import CredentialStore, ProviderCredentials, now_millis

logger = logging.getLogger(__name__)

# Receives the trailing-effects callable, e.g. BackgroundTasks.add_task
Scheduler = Callable[[Callable[[], None]], Any]


class FlowPhase(str, Enum):
    """Per-provider authorization state."""

    IDLE = "idle"
    PENDING_AUTHORIZATION = "pending_authorization"
    EXCHANGING = "exchanging"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class AuthorizationStart:
    """Authorize URL and state returned by ``start``."""

    provider: str
    auth_url: str
    state: str


@dataclass
class ExchangeResult:
    """
    Outcome of a completed exchange.

    Attributes:
        provider: Provider name
        key_source: Where the stored API key came from
        config_patched: Whether the routing entry was written
    """

    provider: str
    key_source: KeySource
    config_patched: bool


@dataclass
class ProviderStatus:
    """Connection status of one provider."""

    connected: bool
    pending: bool
    phase: FlowPhase
    obtained_at: Optional[int] = None

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {"connected": self.connected, "pending": self.pending}
        if self.obtained_at is not None:
            data["obtainedAt"] = self.obtained_at
        return data


def extract_code_from_callback(callback_url: str) -> Optional[str]:
    """
    Pull the authorization code out of a redirect URL.

    Returns:
        The ``code`` query parameter, or None if absent

    Raises:
        InvalidRequestError: If the value is not an absolute URL
    """
    if not isinstance(callback_url, str):
        raise InvalidRequestError("Invalid callback URL")
    try:
        parts = urlsplit(callback_url)
    except ValueError:
        raise InvalidRequestError("Invalid callback URL") from None
    if not parts.scheme or not parts.netloc:
        raise InvalidRequestError("Invalid callback URL")

    values = parse_qs(parts.query).get("code")
    return values[0] if values else None


class OAuthCoordinator:
    """
    High-level coordinator for broker operations.

    This is the only component that changes pending flows and stored
    credentials. Stores, token client and patcher are injected for tests
    and built from ``BrokerConfig`` otherwise.

    Example:
        coordinator = OAuthCoordinator()
        start = coordinator.start("anthropic")
        # user authorizes at start.auth_url and pastes the code back
        coordinator.exchange("anthropic", code="abc-123")
    """

    def __init__(
        self,
        config: Optional[BrokerConfig] = None,
        *,
        pending_store: Optional[PendingFlowStore] = None,
        credential_store: Optional[CredentialStore] = None,
        token_client: Optional[TokenExchangeClient] = None,
        config_patcher: Optional[ProviderConfigPatcher] = None,
        backup_sync: Optional[Callable[[], None]] = None,
        gateway_restart: Optional[Callable[[], None]] = None,
        clock: Callable[[], int] = now_millis,
    ):
        """
        Initialize OAuth coordinator.

        Args:
            config: Broker configuration (loads from environment if not provided)
            pending_store: Pending flow storage
            credential_store: Credential bundle storage
            token_client: HTTP client for token endpoints
            config_patcher: Gateway routing config patcher
            backup_sync: Backup sync side effect
            gateway_restart: Gateway restart side effect
            clock: Returns the current time in epoch milliseconds
        """
        self.config = config or BrokerConfig.from_env()
        state_blobs = FileBlobStore(self.config.state_path)

        self.pending_store = pending_store or PendingFlowStore(
            FileBlobStore(self.config.pending_path)
        )
        self.credential_store = credential_store or CredentialStore(
            state_blobs, self.config.credentials_file
        )
        self.token_client = token_client or TokenExchangeClient(self.config.http_timeout)
        self.config_patcher = config_patcher or ProviderConfigPatcher(
            state_blobs, self.config.routing_config_file
        )
        self.backup_sync = backup_sync or CommandHook(
            "Backup sync", self.config.sync_command, self.config.hook_timeout
        )
        self.gateway_restart = gateway_restart or CommandHook(
            "Gateway restart", self.config.restart_command, self.config.hook_timeout
        )
        self._clock = clock

        self._provider_locks = {provider: threading.Lock() for provider in ProviderId}
        self._phase_lock = threading.Lock()
        self._exchanging: Set[ProviderId] = set()
        self._failed: Set[ProviderId] = set()
        self._executor: Optional[ThreadPoolExecutor] = None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def start(self, provider) -> AuthorizationStart:
        """
        Start a new authorization flow, replacing any pending one.

        Args:
            provider: Provider id or name

        Returns:
            AuthorizationStart with the authorize URL and state

        Raises:
            InvalidProviderError: If the provider is unknown
            EntropySourceUnavailableError: If PKCE values cannot be generated
            CredentialStorageError: If the pending flow cannot be saved
        """
        spec = get_provider(provider)

        with self._provider_locks[spec.provider]:
            self.pending_store.clear(spec.name)

            pkce = generate_pkce()
            flow = PendingFlowState(
                code_verifier=pkce.code_verifier,
                code_challenge=pkce.code_challenge,
                state=generate_state(),
                started_at=self._clock(),
            )
            self.pending_store.put(spec.name, flow)
            self._set_failed(spec.provider, False)

        logger.info(f"[{spec.name}] Authorization flow started")
        return AuthorizationStart(
            provider=spec.name,
            auth_url=build_authorization_url(spec, flow),
            state=flow.state,
        )

    def exchange(
        self,
        provider,
        code: Optional[str] = None,
        callback_url: Optional[str] = None,
        schedule: Optional[Scheduler] = None,
    ) -> ExchangeResult:
        """
        Complete a pending flow by exchanging the authorization code.

        Input is validated before any external call. Once credentials are
        stored the exchange counts as complete: routing config patching,
        backup sync and gateway restart only log their failures.

        Args:
            provider: Provider id or name
            code: Authorization code
            callback_url: Full redirect URL carrying the code (providers that
                accept it)
            schedule: Runs the trailing side effects after the response;
                defaults to the coordinator's background worker

        Returns:
            ExchangeResult

        Raises:
            InvalidProviderError: If the provider is unknown
            InvalidRequestError: If the code is missing or malformed
            NoPendingFlowError: If no flow was started for the provider
            TokenExchangeError: If the token endpoint call fails
            InvalidTokenResponseError: If the token response is incomplete
            CredentialStorageError: If credentials cannot be saved
        """
        spec = get_provider(provider)
        auth_code = self.resolve_code(spec, code, callback_url)

        with self._provider_locks[spec.provider]:
            pending = self.pending_store.get(spec.name)
            if pending is None:
                raise NoPendingFlowError(f"No pending {spec.display_name} auth flow")

            self._set_exchanging(spec.provider, True)
            try:
                credentials, key_source = self._obtain_credentials(spec, auth_code, pending)
            except Exception:
                self._set_failed(spec.provider, True)
                raise
            else:
                self._set_failed(spec.provider, False)
            finally:
                self._set_exchanging(spec.provider, False)

            try:
                self.pending_store.clear(spec.name)
            except CredentialStorageError as e:
                logger.warning(f"[{spec.name}] Could not clear pending flow: {e}")

        logger.info(f"[{spec.name}] Authorization complete (api key source: {key_source.value})")

        config_patched = self._patch_config(spec, credentials)
        self._enqueue_trailing_effects(spec, "login", schedule)

        return ExchangeResult(
            provider=spec.name, key_source=key_source, config_patched=config_patched
        )

    def status(self) -> Dict[str, ProviderStatus]:
        """
        Report connection status for every provider. Never mutates state.

        Returns:
            Mapping of provider name to ProviderStatus
        """
        bundle = self.credential_store.read()
        result: Dict[str, ProviderStatus] = {}

        for provider in ProviderId:
            credentials = bundle.get(provider.value)
            connected = bool(credentials and credentials.access_token)
            pending = self.pending_store.get(provider.value) is not None
            result[provider.value] = ProviderStatus(
                connected=connected,
                pending=pending,
                phase=self._phase(provider, connected, pending),
                obtained_at=credentials.obtained_at if credentials else None,
            )
        return result

    def revoke(self, provider, schedule: Optional[Scheduler] = None) -> str:
        """
        Remove a provider's credentials and any pending flow.

        This only deletes local state; tokens are not revoked at the
        provider.

        Args:
            provider: Provider id or name
            schedule: Runs the trailing side effects (see ``exchange``)

        Returns:
            Confirmation message

        Raises:
            InvalidProviderError: If the provider is unknown
            CredentialStorageError: If the credential bundle cannot be written
        """
        spec = get_provider(provider)

        with self._provider_locks[spec.provider]:
            self.credential_store.remove_provider(spec.name)
            self.pending_store.clear(spec.name)
            self._set_failed(spec.provider, False)

        logger.info(f"[{spec.name}] Credentials removed")

        try:
            self.config_patcher.remove(spec)
        except Exception as e:
            logger.error(
                f"[{spec.name}] Routing config update failed after logout: {e}",
                exc_info=not isinstance(e, ConfigPatchError),
            )

        self._enqueue_trailing_effects(spec, "logout", schedule)
        return f"{spec.name} credentials removed"

    def shutdown(self, wait: bool = True) -> None:
        """Stop the background worker, optionally waiting for queued effects."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def resolve_code(
        spec: ProviderSpec, code: Optional[str], callback_url: Optional[str]
    ) -> str:
        """
        Validate exchange input and return the authorization code.

        Raises:
            InvalidRequestError: If the code is missing or malformed
        """
        if not code and callback_url and spec.accepts_callback_url:
            code = extract_code_from_callback(callback_url)

        if code is not None and not isinstance(code, str):
            raise InvalidRequestError("Invalid code format")

        if not code:
            required = "code or callback_url" if spec.accepts_callback_url else "code"
            raise InvalidRequestError(f"{required} is required")

        if spec.code_pattern is not None and not spec.code_pattern.fullmatch(code):
            raise InvalidRequestError("Invalid code format")

        return code

    def _obtain_credentials(self, spec: ProviderSpec, code: str, pending: PendingFlowState):
        tokens = self.token_client.exchange_code_for_tokens(spec, code, pending)
        derived = derive_api_key(self.token_client, spec, tokens)
        credentials = tokens.to_credentials(self._clock(), derived.api_key)

        with self.credential_store.lock:
            bundle = self.credential_store.read()
            bundle[spec.name] = credentials
            self.credential_store.write(bundle)

        return credentials, derived.source

    def _patch_config(self, spec: ProviderSpec, credentials: ProviderCredentials) -> bool:
        try:
            return self.config_patcher.upsert(spec, credentials, self.config.gateway_routing)
        except Exception as e:
            logger.error(
                f"[{spec.name}] Routing config update failed after login: {e}",
                exc_info=not isinstance(e, ConfigPatchError),
            )
            return False

    def _enqueue_trailing_effects(
        self, spec: ProviderSpec, context: str, schedule: Optional[Scheduler]
    ) -> None:
        label = f"{spec.name} {context}"
        backup_sync = self.backup_sync
        gateway_restart = self.gateway_restart

        def run() -> None:
            run_guarded("Backup sync", backup_sync, label)
            run_guarded("Gateway restart", gateway_restart, label)

        if schedule is not None:
            schedule(run)
        else:
            self._background().submit(run)

    def _background(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="oauth-side-effects"
            )
        return self._executor

    def _set_exchanging(self, provider: ProviderId, active: bool) -> None:
        with self._phase_lock:
            if active:
                self._exchanging.add(provider)
            else:
                self._exchanging.discard(provider)

    def _set_failed(self, provider: ProviderId, failed: bool) -> None:
        with self._phase_lock:
            if failed:
                self._failed.add(provider)
            else:
                self._failed.discard(provider)

    def _phase(self, provider: ProviderId, connected: bool, pending: bool) -> FlowPhase:
        with self._phase_lock:
            if provider in self._exchanging:
                return FlowPhase.EXCHANGING
            if provider in self._failed:
                return FlowPhase.FAILED
        if pending:
            return FlowPhase.PENDING_AUTHORIZATION
        if connected:
            return FlowPhase.COMPLETE
        return FlowPhase.IDLE
