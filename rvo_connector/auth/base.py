"""Credentials consumed by the orchestrator and the client.

A ``Credentials`` object contributes to an outgoing request in one of two
ways: HTTP headers (TVS bearer token) or a WS-Security ``UsernameToken``
in the SOAP header (ABA). The orchestrator only consumes ready-to-use
credentials; obtaining a token is the job of ``TvsAuth``.
"""

from __future__ import annotations

import abc
from collections.abc import Callable

from rvo_connector.core.exceptions import AuthError
from rvo_connector.soap.builder import UsernameToken


class Credentials(abc.ABC):
    """Abstract request credentials."""

    @abc.abstractmethod
    def http_headers(self) -> dict[str, str]:
        """Return headers to add to the HTTP request.

        Raises:
            AuthError: If the credentials are not usable yet.
        """

    def username_token(self) -> UsernameToken | None:
        """Return the SOAP ``UsernameToken``, or ``None`` when not applicable."""
        return None


class BearerCredentials(Credentials):
    """TVS bearer token, read from *token_source* on every request.

    Args:
        token_source: A fixed token, or a callable returning the current
            token (``None`` when no token has been obtained yet).
    """

    def __init__(self, token_source: str | Callable[[], str | None]) -> None:
        self._token_source = token_source

    def http_headers(self) -> dict[str, str]:
        source = self._token_source
        token = source() if callable(source) else source
        if not token:
            msg = "No access token available; complete the TVS authorization flow first"
            raise AuthError(msg, code="MISSING_ACCESS_TOKEN")
        return {"Authorization": f"Bearer {token}"}


class AbaCredentials(Credentials):
    """ABA username/password sent as a WS-Security ``UsernameToken``."""

    def __init__(self, username: str, password: str = "") -> None:
        if not username:
            msg = "ABA username is required in ABA mode"
            raise AuthError(msg, code="MISSING_ABA_USERNAME")
        self._token = UsernameToken(username=username, password=password)

    def http_headers(self) -> dict[str, str]:
        return {}

    def username_token(self) -> UsernameToken:
        return self._token
