"""TVS (OAuth 2.0 with eHerkenning) authorization for EDI-Crop.

Two steps:

1. ``authorization_url(scope)``: the URL the user opens to log in with
   eHerkenning. RVO redirects back to the registered redirect URI with
   a ``code`` parameter.
2. ``exchange_code(code)``: trades that code for an access token,
   authenticating the client with an RS256 JWT assertion signed by the
   PKIoverheid private key.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx
import jwt

from rvo_connector.core.constants import DEFAULT_REQUEST_TIMEOUT_S
from rvo_connector.core.exceptions import AuthError, TransportError, TransportTimeoutError

logger = logging.getLogger("rvo_connector.auth.tvs")

CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
ASSERTION_LIFETIME_S = 300
ASSERTION_ALGORITHM = "RS256"


@dataclass(frozen=True, slots=True)
class TokenResponse:
    """Token endpoint answer.

    Attributes:
        access_token: Bearer token for EDI-Crop calls.
        token_type: Usually ``"Bearer"``.
        expires_in: Lifetime in seconds (0 if not reported).
        refresh_token: Refresh token, if issued.
        scope: Granted scope, if reported.
        raw: The complete JSON response.
    """

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 0
    refresh_token: str = ""
    scope: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenResponse:
        """Build from the token endpoint JSON.

        Raises:
            AuthError: If ``access_token`` is missing.
        """
        access_token = data.get("access_token")
        if not access_token:
            msg = "Token response does not contain an access_token"
            raise AuthError(msg, code="MISSING_ACCESS_TOKEN")
        return cls(
            access_token=str(access_token),
            token_type=str(data.get("token_type") or "Bearer"),
            expires_in=int(data.get("expires_in") or 0),
            refresh_token=str(data.get("refresh_token") or ""),
            scope=str(data.get("scope") or ""),
            raw=dict(data),
        )


class TvsAuth:
    """OAuth 2.0 authorization-code flow with a JWT client assertion.

    Args:
        client_id: OAuth client id registered with RVO.
        redirect_uri: Redirect URI registered with RVO.
        private_key: PEM-encoded PKIoverheid private key.
        authorize_endpoint: TVS authorize URL.
        token_endpoint: TVS token URL (also the assertion audience).
        timeout_s: Budget for the token request, in seconds.
        http_client: Optional pre-configured ``httpx.Client``.
    """

    def __init__(
        self,
        client_id: str,
        redirect_uri: str,
        private_key: str,
        *,
        authorize_endpoint: str,
        token_endpoint: str,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._client_id = client_id
        self._redirect_uri = redirect_uri
        # Keys copied from .env files often carry literal "\n" sequences.
        self._private_key = private_key.replace("\\n", "\n")
        self._authorize_endpoint = authorize_endpoint
        self._token_endpoint = token_endpoint
        self._timeout_s = timeout_s
        self._http_client = http_client

    def authorization_url(self, scope: str, state: str | None = None) -> str:
        """Return the eHerkenning login URL for *scope*.

        A random ``state`` is generated when none is given.
        """
        if not self._authorize_endpoint:
            msg = "TVS authorize endpoint not configured"
            raise AuthError(msg)
        params = {
            "client_id": self._client_id,
            "response_type": "code",
            "redirect_uri": self._redirect_uri,
            "scope": scope,
            "state": state or str(uuid.uuid4()),
        }
        return f"{self._authorize_endpoint}?{urlencode(params)}"

    def client_assertion(self, *, now: int | None = None) -> str:
        """Sign a short-lived client assertion for the token endpoint.

        Raises:
            AuthError: If the private key is missing, not a private key,
                or cannot be used for RS256 signing.
        """
        validate_private_key(self._private_key)
        issued_at = int(time.time()) if now is None else now
        claims = {
            "iss": self._client_id,
            "sub": self._client_id,
            "aud": self._token_endpoint,
            "jti": str(uuid.uuid4()),
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME_S,
        }
        try:
            return jwt.encode(claims, self._private_key, algorithm=ASSERTION_ALGORITHM)
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            msg = f"Cannot sign client assertion with the configured private key: {exc}"
            raise AuthError(msg, code="INVALID_PRIVATE_KEY") from exc

    def exchange_code(self, authorization_code: str) -> TokenResponse:
        """Exchange an authorization code for an access token.

        Raises:
            AuthError: On a missing code, an invalid key, or a rejected
                exchange (status and body included in the message).
            TransportTimeoutError: If the token endpoint did not answer
                within the timeout.
            TransportError: If the token endpoint could not be reached.
        """
        if not authorization_code:
            msg = "Authorization code must not be empty"
            raise AuthError(msg)
        if not self._token_endpoint:
            msg = "TVS token endpoint not configured"
            raise AuthError(msg)

        form = {
            "grant_type": "authorization_code",
            "code": authorization_code,
            "redirect_uri": self._redirect_uri,
            "client_id": self._client_id,
            "client_assertion_type": CLIENT_ASSERTION_TYPE,
            "client_assertion": self.client_assertion(),
        }
        logger.info("token exchange started | client_id=%s", self._client_id)

        try:
            if self._http_client is not None:
                response = self._http_client.post(
                    self._token_endpoint, data=form, timeout=self._timeout_s
                )
            else:
                with httpx.Client(timeout=self._timeout_s) as client:
                    response = client.post(self._token_endpoint, data=form)
        except httpx.TimeoutException as exc:
            msg = f"Request to token endpoint timed out after {self._timeout_s:.1f}s"
            raise TransportTimeoutError(
                msg, timeout_s=self._timeout_s, url=self._token_endpoint
            ) from exc
        except httpx.HTTPError as exc:
            msg = f"Token request failed: {exc}"
            raise TransportError(msg, url=self._token_endpoint) from exc

        if not response.is_success:
            msg = f"Failed to obtain access token: {response.status_code} {response.text[:2048]}"
            raise AuthError(msg, code="TOKEN_EXCHANGE_REJECTED")

        try:
            payload = response.json()
        except ValueError as exc:
            msg = "Token endpoint returned a non-JSON body"
            raise AuthError(msg, code="TOKEN_EXCHANGE_REJECTED") from exc
        if not isinstance(payload, dict):
            msg = "Token endpoint returned an unexpected JSON body"
            raise AuthError(msg, code="TOKEN_EXCHANGE_REJECTED")

        token = TokenResponse.from_dict(payload)
        logger.info(
            "token exchange completed | client_id=%s | expires_in=%d",
            self._client_id,
            token.expires_in,
        )
        return token


def validate_private_key(key: str) -> None:
    """Reject public keys, certificates, and non-PEM text early.

    Raises:
        AuthError: With a message naming what was provided instead.
    """
    if "PRIVATE KEY" in key:
        return
    if "PUBLIC KEY" in key:
        msg = "Invalid PKIO private key: a PUBLIC key was provided; provide the PRIVATE key"
    elif "CERTIFICATE" in key:
        msg = "Invalid PKIO private key: a CERTIFICATE was provided; provide the PRIVATE key"
    else:
        msg = (
            "Invalid PKIO private key format: expected a PEM private key "
            "('-----BEGIN ... PRIVATE KEY-----')"
        )
    raise AuthError(msg, code="INVALID_PRIVATE_KEY")
