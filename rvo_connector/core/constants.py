"""Shared connector constants: endpoints, scopes, namespaces, status codes."""

from __future__ import annotations

from types import MappingProxyType

# ---------------------------------------------------------------------------
# Environments and auth modes
# ---------------------------------------------------------------------------

ACCEPTANCE = "acceptance"
PRODUCTION = "production"
ENVIRONMENTS = frozenset({ACCEPTANCE, PRODUCTION})

AUTH_MODE_TVS = "TVS"
AUTH_MODE_ABA = "ABA"
AUTH_MODES = frozenset({AUTH_MODE_TVS, AUTH_MODE_ABA})

DEFAULT_REQUEST_TIMEOUT_S = 30.0

# ---------------------------------------------------------------------------
# Endpoints per environment
# ---------------------------------------------------------------------------

ENDPOINTS: MappingProxyType[str, MappingProxyType[str, str]] = MappingProxyType(
    {
        ACCEPTANCE: MappingProxyType(
            {
                "tvs_authorize": "https://pp2.toegang.overheid.nl/kvo/authorize",
                "tvs_token": "https://pp2.toegang.overheid.nl/kvo/token",
                "edicrop_tvs": "https://edicrop-acc.agro.nl/edicrop/EdiCrop-WebService/v2",
                "edicrop_aba": "https://edicrop-acc.agro.nl/edicrop/EdiCropService",
            }
        ),
        PRODUCTION: MappingProxyType(
            {
                "tvs_authorize": "https://toegang.overheid.nl/kvo/authorize",
                "tvs_token": "https://toegang.overheid.nl/kvo/token",
                "edicrop_tvs": "https://edicrop.agro.nl/edicrop/EdiCrop-WebService/v2",
                "edicrop_aba": "https://edicrop.agro.nl/edicrop/EdiCropService",
            }
        ),
    }
)

# ---------------------------------------------------------------------------
# OAuth scopes
# ---------------------------------------------------------------------------

EHERKENNING_SCOPES: MappingProxyType[str, str] = MappingProxyType(
    {
        ACCEPTANCE: "urn:nl-eid-gdi:1.0:ServiceUUID:44345953-4138-4f53-3454-593459414d45",
        PRODUCTION: "urn:nl-eid-gdi:1.0:ServiceUUID:37534755-4536-4152-5747-595850325434",
    }
)

SERVICE_OPVRAGEN_BEDRIJFSPERCELEN = "opvragenBedrijfspercelen"
SERVICE_MUTEREN_BEDRIJFSPERCELEN = "muterenBedrijfspercelen"

SERVICE_SCOPES: MappingProxyType[str, str] = MappingProxyType(
    {
        SERVICE_OPVRAGEN_BEDRIJFSPERCELEN: "RVO-WS.GEO.bp.lezen",
        SERVICE_MUTEREN_BEDRIJFSPERCELEN: "RVO-WS.GEO.bp.muteren",
    }
)

# ---------------------------------------------------------------------------
# XML namespaces
# ---------------------------------------------------------------------------

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
WSSE_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd"
EDICROP_NS_BASE = "http://www.minez.nl/ws/edicrop/1.0"
EXCHANGED_DOCUMENT_NS = f"{EDICROP_NS_BASE}/ExchangedDocument"
SPECIFIED_DATASET_NS = f"{EDICROP_NS_BASE}/SpecifiedDataset"
GML_NS = "http://www.opengis.net/gml/3.2"

EDICROP_VERSION = "CRP4.0"
MESSAGE_TYPE_VERSION = "4.0"
RECEIVER_ID = "RVO"
FARM_ID_SCHEME_AGENCY = "KVK"

# ---------------------------------------------------------------------------
# Process status codes reported by the service
# ---------------------------------------------------------------------------

STATUS_VALIDATED = "GEVALIDEERD"
STATUS_VALIDATION_ERROR = "VALIDATIEFOUT"
STATUS_TECHNICAL_ERROR = "TECHNISCHEFOUT"
STATUS_CANCELLED = "GEANNULEERD"
STATUS_UNKNOWN = "UNKNOWN"

TERMINAL_STATUS_CODES = frozenset(
    {STATUS_VALIDATED, STATUS_VALIDATION_ERROR, STATUS_TECHNICAL_ERROR, STATUS_CANCELLED}
)

SEVERITY_FATAL = "FATAAL"
