"""``RvoClient``: entry point for EDI-Crop crop field queries and mutations.

The client selects endpoints for the configured environment and holds
the bearer-token slot. It exposes the crop field query and a
``MutationOrchestrator`` bound to the same endpoint and credentials.

Example usage::

    client = RvoClient(ConnectorConfig.from_env())
    url = client.get_authorization_url(service="muterenBedrijfspercelen")
    # ... user logs in, RVO redirects back with ?code=...
    client.exchange_auth_code(code)
    fields = client.fetch_crop_fields(farm_id="12345678")
    ticket = client.mutations.submit("12345678", mutations)
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from rvo_connector.auth.base import AbaCredentials, BearerCredentials
from rvo_connector.auth.tvs import TvsAuth
from rvo_connector.core.config import validate_config
from rvo_connector.core.constants import (
    AUTH_MODE_TVS,
    EHERKENNING_SCOPES,
    SERVICE_OPVRAGEN_BEDRIJFSPERCELEN,
    SERVICE_SCOPES,
)
from rvo_connector.core.exceptions import AuthError, ValidationFailedError
from rvo_connector.orchestrators.mutation import MutationOrchestrator
from rvo_connector.soap.builder import MessageContext, build_crop_fields_query
from rvo_connector.transformers.crop_fields import project_crop_fields
from rvo_connector.transport import HttpxTransport
from rvo_connector.xmltree import parse_xml

if TYPE_CHECKING:
    from rvo_connector.auth.base import Credentials
    from rvo_connector.auth.tvs import TokenResponse
    from rvo_connector.core.config import ConnectorConfig
    from rvo_connector.models.feature import FeatureCollection
    from rvo_connector.transport import Transport
    from rvo_connector.xmltree import Node

logger = logging.getLogger("rvo_connector.client")


class RvoClient:
    """Client for the RVO EDI-Crop service.

    Args:
        config: Connector configuration (validated on construction).
        transport: Transport to use; an ``HttpxTransport`` by default.
        tvs_auth: TVS authorization helper; built from *config* in TVS
            mode when omitted.

    Raises:
        ConfigValidationError: If *config* is invalid.
    """

    def __init__(
        self,
        config: ConnectorConfig,
        *,
        transport: Transport | None = None,
        tvs_auth: TvsAuth | None = None,
    ) -> None:
        validate_config(config)
        self._config = config
        self._endpoints = config.resolve_endpoints()
        self._transport = transport if transport is not None else HttpxTransport()
        self._token_lock = threading.Lock()
        self._access_token: str | None = None

        if tvs_auth is None and self.is_tvs:
            tvs_auth = TvsAuth(
                config.client_id,
                config.redirect_uri,
                config.pkio_private_key,
                authorize_endpoint=self._endpoints.tvs_authorize,
                token_endpoint=self._endpoints.tvs_token,
                timeout_s=config.request_timeout_s,
            )
        self._tvs_auth = tvs_auth

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> ConnectorConfig:
        return self._config

    @property
    def is_tvs(self) -> bool:
        return self._config.auth_mode == AUTH_MODE_TVS

    @property
    def endpoint(self) -> str:
        """EDI-Crop URL for the configured auth mode."""
        return self._endpoints.edicrop_tvs if self.is_tvs else self._endpoints.edicrop_aba

    @property
    def access_token(self) -> str | None:
        with self._token_lock:
            return self._access_token

    @property
    def mutations(self) -> MutationOrchestrator:
        """Mutation orchestrator bound to this client's endpoint and credentials."""
        return MutationOrchestrator(
            self._transport,
            self._credentials(),
            endpoint=self.endpoint,
            context=self._message_context(),
            timeout_s=self._config.request_timeout_s,
        )

    # ------------------------------------------------------------------
    # TVS authorization
    # ------------------------------------------------------------------

    def get_authorization_url(
        self, service: str = SERVICE_OPVRAGEN_BEDRIJFSPERCELEN, state: str | None = None
    ) -> str:
        """Return the eHerkenning login URL for *service*.

        The scope is the service scope followed by the environment's
        eHerkenning scope, separated by a space.

        Raises:
            AuthError: If the client is not in TVS mode.
            ValidationFailedError: If *service* is unknown.
        """
        tvs_auth = self._require_tvs()
        service_scope = SERVICE_SCOPES.get(service)
        if service_scope is None:
            msg = f"Unknown service {service!r}; expected one of {sorted(SERVICE_SCOPES)}"
            raise ValidationFailedError(msg, field_name="service")
        scope = f"{service_scope} {EHERKENNING_SCOPES[self._config.environment]}"
        return tvs_auth.authorization_url(scope, state)

    def exchange_auth_code(self, code: str) -> TokenResponse:
        """Exchange an authorization code and store the resulting access token."""
        token = self._require_tvs().exchange_code(code)
        self.set_access_token(token.access_token)
        return token

    def set_access_token(self, token: str | None) -> None:
        """Replace the bearer token used for subsequent calls."""
        with self._token_lock:
            self._access_token = token
        logger.info("access token %s", "set" if token else "cleared")

    # ------------------------------------------------------------------
    # Crop field query
    # ------------------------------------------------------------------

    def opvragen_bedrijfspercelen(
        self,
        *,
        farm_id: str | None = None,
        period_begin: str | None = None,
        period_end: str | None = None,
    ) -> dict[str, Node]:
        """Query the crop fields of a farm and return the parsed response tree.

        The period defaults to 1 January of the current year up to
        1 January two years later.

        Raises:
            AuthError: If no access token is set (TVS) or no ABA username
                is configured (ABA).
            TransportError / TransportTimeoutError: From the transport.
            XmlParseError: If the response is not well-formed XML.
        """
        credentials = self._credentials()
        headers = credentials.http_headers()
        payload = build_crop_fields_query(
            self._message_context(),
            farm_id=farm_id,
            period_begin=period_begin,
            period_end=period_end,
            security=credentials.username_token(),
        )
        logger.info(
            "opvragen_bedrijfspercelen started | farm_id=%s | auth_mode=%s",
            farm_id or "",
            self._config.auth_mode,
        )
        response = self._transport.post(
            self.endpoint, payload, headers=headers, timeout=self._config.request_timeout_s
        )
        return parse_xml(response)

    def fetch_crop_fields(
        self,
        *,
        farm_id: str | None = None,
        period_begin: str | None = None,
        period_end: str | None = None,
    ) -> FeatureCollection:
        """Query crop fields and project them into a GeoJSON feature collection."""
        tree = self.opvragen_bedrijfspercelen(
            farm_id=farm_id, period_begin=period_begin, period_end=period_end
        )
        return project_crop_fields(tree)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_tvs(self) -> TvsAuth:
        if not self.is_tvs or self._tvs_auth is None:
            msg = "Authentication mode is not TVS or TVS configuration is missing"
            raise AuthError(msg)
        return self._tvs_auth

    def _credentials(self) -> Credentials:
        if self.is_tvs:
            return BearerCredentials(lambda: self.access_token)
        return AbaCredentials(self._config.aba_username, self._config.aba_password)

    def _message_context(self) -> MessageContext:
        return MessageContext(issuer_id=self._config.issuer_id, sender_id=self._config.sender_id)
