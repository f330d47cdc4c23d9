"""Authentication: TVS (OAuth 2.0 / eHerkenning) and ABA (WS-Security)."""

from rvo_connector.auth.base import AbaCredentials, BearerCredentials, Credentials
from rvo_connector.auth.tvs import TokenResponse, TvsAuth, validate_private_key

__all__ = [
    "AbaCredentials",
    "BearerCredentials",
    "Credentials",
    "TokenResponse",
    "TvsAuth",
    "validate_private_key",
]
