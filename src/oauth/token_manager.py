"""
Token exchange client for the OAuth broker.

This module performs the outbound HTTP calls of the authorization code
flow:
- Authorization code + PKCE verifier exchange for access/refresh tokens
- Generic JSON POST used by the provider-specific key derivation step

Every call is bounded by a fixed timeout and is never retried; a failed
exchange requires the caller to start a new flow.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import requests

from .config import DEFAULT_HTTP_TIMEOUT
from .exceptions import InvalidTokenResponseError, TokenExchangeError
from .flow_store import PendingFlowState
from .providers import ProviderSpec
from .token_storage import ProviderCredentials

logger = logging.getLogger(__name__)

FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


@dataclass
class RawTokens:
    """
    Token endpoint response for an authorization code exchange.

    Attributes:
        access_token: OAuth access token
        refresh_token: Refresh token, if issued
        token_type: Token type, if reported
        id_token: OpenID identity token, if issued
        expires_in: Access token lifetime in seconds, if reported
    """

    access_token: str
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    id_token: Optional[str] = None
    expires_in: Optional[int] = None

    @classmethod
    def from_response(cls, spec: ProviderSpec, data: dict, status_code: int) -> "RawTokens":
        """
        Validate and parse a token endpoint response.

        Raises:
            InvalidTokenResponseError: If required token fields are missing
        """
        missing = [] if data.get("access_token") else ["access_token"]
        if spec.requires_refresh_token and not data.get("refresh_token"):
            missing.append("refresh_token")

        if missing:
            detail = data.get("error_description") or data.get("error") or "no error detail"
            raise InvalidTokenResponseError(
                f"Invalid token response from {spec.display_name} "
                f"(status {status_code}, missing {', '.join(missing)}): {str(detail)[:200]}"
            )

        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type"),
            id_token=data.get("id_token"),
            expires_in=int(expires_in) if isinstance(expires_in, (int, float)) else None,
        )

    def to_credentials(self, obtained_at: int, api_key: Optional[str] = None) -> ProviderCredentials:
        """
        Build stored credentials from this response.

        Args:
            obtained_at: Epoch milliseconds of the exchange
            api_key: Derived API key, if any

        Returns:
            ProviderCredentials with an absolute expiry when expires_in was given
        """
        return ProviderCredentials(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            token_type=self.token_type,
            obtained_at=obtained_at,
            expires_at=obtained_at + self.expires_in * 1000 if self.expires_in else None,
            id_token=self.id_token,
            api_key=api_key,
        )


class TokenExchangeClient:
    """
    Outbound HTTP client for provider token endpoints.

    Responsibilities:
    - Exchange authorization codes for tokens
    - Issue the JSON POSTs used for API key derivation
    """

    def __init__(self, timeout: int = DEFAULT_HTTP_TIMEOUT):
        """
        Initialize token exchange client.

        Args:
            timeout: Seconds allowed for each HTTP call
        """
        self.timeout = timeout

    def post_json(
        self,
        url: str,
        *,
        data: Optional[dict] = None,
        headers: Optional[dict] = None,
        description: str = "token exchange",
    ) -> Tuple[dict, int]:
        """
        POST to an endpoint and parse the JSON object it returns.

        Args:
            url: Endpoint URL
            data: Form fields, sent in insertion order
            headers: Request headers
            description: Operation name used in errors and logs

        Returns:
            Tuple of (parsed JSON object, HTTP status code)

        Raises:
            TokenExchangeError: On timeout, network error, empty or
                non-JSON body
        """
        try:
            response = requests.post(url, data=data, headers=headers, timeout=self.timeout)
        except requests.Timeout as e:
            logger.error(f"{description} timed out after {self.timeout}s")
            raise TokenExchangeError(
                f"{description} timed out after {self.timeout}s"
            ) from e
        except requests.RequestException as e:
            logger.error(f"Network error during {description}: {e}")
            raise TokenExchangeError(f"Network error during {description}: {e}") from e

        body = (response.text or "").strip()
        if not body:
            raise TokenExchangeError(
                f"Empty {description} response (status {response.status_code})"
            )

        try:
            payload = json.loads(body)
        except ValueError as e:
            logger.error(f"Unparseable {description} response: status {response.status_code}")
            raise TokenExchangeError(
                f"Invalid {description} response (status {response.status_code}): not JSON"
            ) from e

        if not isinstance(payload, dict):
            raise TokenExchangeError(
                f"Invalid {description} response (status {response.status_code}): "
                f"expected a JSON object"
            )

        return payload, response.status_code

    def exchange_code_for_tokens(
        self, spec: ProviderSpec, code: str, pending: PendingFlowState
    ) -> RawTokens:
        """
        Exchange an authorization code for access and refresh tokens.

        The PKCE verifier from the pending flow proves possession of the
        secret behind the challenge sent with the authorize request.

        Args:
            spec: Provider definition
            code: Authorization code returned to the redirect URI
            pending: Pending flow started for this provider

        Returns:
            RawTokens parsed from the token endpoint

        Raises:
            TokenExchangeError: If the call fails or the body is unusable
            InvalidTokenResponseError: If required token fields are missing
        """
        logger.info(f"Exchanging {spec.name} authorization code for tokens")

        values = {
            "grant_type": "authorization_code",
            "client_id": spec.client_id,
            "code": code,
            "redirect_uri": spec.redirect_uri,
            "code_verifier": pending.code_verifier,
        }
        data = {name: values[name] for name in spec.token_param_order}

        payload, status_code = self.post_json(
            spec.token_url,
            data=data,
            headers=FORM_HEADERS,
            description=f"{spec.display_name} token exchange",
        )
        tokens = RawTokens.from_response(spec, payload, status_code)

        logger.info(
            f"{spec.display_name} tokens obtained "
            f"(id_token={'yes' if tokens.id_token else 'no'}, "
            f"expires_in={tokens.expires_in})"
        )
        return tokens
