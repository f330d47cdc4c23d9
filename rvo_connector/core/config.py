"""Connector configuration loaded from environment variables.

``from_env()`` raises ``ConfigValidationError`` as soon as a value is out
of range or a setting required by the selected auth mode is missing, so a
misconfigured client fails at startup rather than on its first request.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from rvo_connector.core.constants import (
    ACCEPTANCE,
    AUTH_MODE_ABA,
    AUTH_MODE_TVS,
    AUTH_MODES,
    DEFAULT_REQUEST_TIMEOUT_S,
    ENDPOINTS,
    ENVIRONMENTS,
)
from rvo_connector.core.exceptions import ConnectorError


class ConfigValidationError(ConnectorError):
    """Raised when configuration values are invalid.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")

    def details(self) -> dict[str, object]:
        # Never echo secrets back into logs.
        shown = "***" if "KEY" in self.key or "PASSWORD" in self.key else self.value
        return {"key": self.key, "value": shown}


@dataclass(frozen=True, slots=True)
class Endpoints:
    """Resolved service URLs for one environment."""

    tvs_authorize: str
    tvs_token: str
    edicrop_tvs: str
    edicrop_aba: str


@dataclass(frozen=True, slots=True)
class ConnectorConfig:
    """Immutable connector configuration.

    Attributes:
        environment: ``"acceptance"`` or ``"production"``.
        auth_mode: ``"TVS"`` (OAuth2 / eHerkenning) or ``"ABA"`` (username/password).
        issuer_id: Issuer ID placed in every ExchangedDocument header.
        sender_id: Sender ID placed in every ExchangedDocument header.
        client_id: TVS OAuth client ID.
        redirect_uri: TVS redirect URI registered with RVO.
        pkio_private_key: PEM-encoded PKIoverheid private key for client assertions.
        aba_username: ABA username.
        aba_password: ABA password.
        edicrop_url: Explicit override for the EDI-Crop TVS endpoint.
        edicrop_aba_url: Explicit override for the EDI-Crop ABA endpoint.
        request_timeout_s: Per-call transport timeout in seconds.
    """

    environment: str = ACCEPTANCE
    auth_mode: str = AUTH_MODE_TVS
    issuer_id: str = ""
    sender_id: str = ""
    client_id: str = ""
    redirect_uri: str = ""
    pkio_private_key: str = ""
    aba_username: str = ""
    aba_password: str = ""
    edicrop_url: str = ""
    edicrop_aba_url: str = ""
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S

    @classmethod
    def from_env(cls) -> ConnectorConfig:
        """Load and validate configuration from ``RVO_*`` environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or a setting
                required by the auth mode is empty.
            ValueError: If ``RVO_REQUEST_TIMEOUT_S`` is not a number.
        """
        config = cls(
            environment=os.getenv("RVO_ENVIRONMENT", ACCEPTANCE),
            auth_mode=os.getenv("RVO_AUTH_MODE", AUTH_MODE_TVS).upper(),
            issuer_id=os.getenv("RVO_ISSUER_ID", ""),
            sender_id=os.getenv("RVO_SENDER_ID", ""),
            client_id=os.getenv("RVO_CLIENT_ID", ""),
            redirect_uri=os.getenv("RVO_REDIRECT_URI", ""),
            pkio_private_key=os.getenv("RVO_PKIO_PRIVATE_KEY", ""),
            aba_username=os.getenv("RVO_ABA_USERNAME", ""),
            aba_password=os.getenv("RVO_ABA_PASSWORD", ""),
            edicrop_url=os.getenv("RVO_EDICROP_URL", ""),
            edicrop_aba_url=os.getenv("RVO_EDICROP_ABA_URL", ""),
            request_timeout_s=float(
                os.getenv("RVO_REQUEST_TIMEOUT_S", str(DEFAULT_REQUEST_TIMEOUT_S))
            ),
        )
        validate_config(config)
        return config

    def resolve_endpoints(self) -> Endpoints:
        """Return the environment's endpoints with explicit overrides applied."""
        defaults = ENDPOINTS[self.environment]
        return Endpoints(
            tvs_authorize=defaults["tvs_authorize"],
            tvs_token=defaults["tvs_token"],
            edicrop_tvs=self.edicrop_url or defaults["edicrop_tvs"],
            edicrop_aba=self.edicrop_aba_url or defaults["edicrop_aba"],
        )


def validate_config(config: ConnectorConfig) -> None:
    """Validate configuration values.  Raises ``ConfigValidationError``."""
    if config.environment not in ENVIRONMENTS:
        raise ConfigValidationError(
            "RVO_ENVIRONMENT",
            config.environment,
            f"must be one of {sorted(ENVIRONMENTS)}",
        )

    if config.auth_mode not in AUTH_MODES:
        raise ConfigValidationError(
            "RVO_AUTH_MODE",
            config.auth_mode,
            f"must be one of {sorted(AUTH_MODES)}",
        )

    if config.request_timeout_s <= 0:
        raise ConfigValidationError(
            "RVO_REQUEST_TIMEOUT_S",
            config.request_timeout_s,
            "must be > 0 (seconds)",
        )

    if config.auth_mode == AUTH_MODE_TVS:
        for key, value in (
            ("RVO_CLIENT_ID", config.client_id),
            ("RVO_REDIRECT_URI", config.redirect_uri),
            ("RVO_PKIO_PRIVATE_KEY", config.pkio_private_key),
        ):
            if not value:
                raise ConfigValidationError(key, value, "must not be empty in TVS mode")

    if config.auth_mode == AUTH_MODE_ABA and not config.aba_username:
        raise ConfigValidationError(
            "RVO_ABA_USERNAME",
            config.aba_username,
            "must not be empty in ABA mode",
        )

    for key, value in (
        ("RVO_ISSUER_ID", config.issuer_id),
        ("RVO_SENDER_ID", config.sender_id),
    ):
        if not value:
            raise ConfigValidationError(key, value, "must not be empty")
