"""Unified connector exception taxonomy.

Every domain exception inherits from ``ConnectorError`` and carries
structured context fields, so callers can decide between retrying,
reporting a malformed response, or fixing their own input without
re-running against the (access-restricted) live service.

Taxonomy categories
-------------------
- ``ValidationError``: caller input / pre-flight violations, never retryable.
- ``TransientError``: temporary failures (timeouts, throttling), retryable.
- ``PermanentError``: unrecoverable failures (auth, cancelled polling).
- ``ContractError``: the service response does not have the expected shape.

Every exception exposes ``to_error_dict()`` for a stable structured
payload suitable for logging.
"""

from __future__ import annotations

#: Maximum number of response-body characters kept on transport errors.
MAX_BODY_FRAGMENT = 2048


class ConnectorError(Exception):
    """Base exception for all connector errors.

    Attributes:
        message: Human-readable error description.
        stage: Component where the error occurred
            (e.g. ``"geometry"``, ``"transport"``, ``"extract"``).
        code: Machine-readable error code (e.g. ``"MISSING_TICKET_ID"``).
        retryable: Whether a caller may sensibly retry the operation.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def details(self) -> dict[str, object]:
        """Return subclass-specific diagnostic fields (empty by default)."""
        return {}

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details(),
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(ConnectorError):
    """Input or pre-flight validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(ConnectorError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(ConnectorError):
    """Unrecoverable failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(ConnectorError):
    """The service response does not match the expected structure."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------


class MalformedInputError(ValidationError):
    """Caller-supplied data cannot be encoded."""

    default_stage = "geometry"
    default_code = "MALFORMED_INPUT"


class UnsupportedGeometryError(MalformedInputError):
    """Geometry kind other than Polygon / MultiPolygon passed to the encoder.

    Attributes:
        geometry_type: The offending GeoJSON ``type`` value.
    """

    default_code = "UNSUPPORTED_GEOMETRY"

    def __init__(self, geometry_type: object) -> None:
        self.geometry_type = geometry_type
        super().__init__(
            f"Unsupported geometry type {geometry_type!r}: expected 'Polygon' or 'MultiPolygon'"
        )

    def details(self) -> dict[str, object]:
        return {"geometry_type": self.geometry_type}


class ValidationFailedError(ValidationError):
    """Pre-flight contract violation detected before any network call.

    Attributes:
        field_name: The field or mutation property that violated the contract.
        index: Position of the offending mutation, or ``None``.
    """

    default_stage = "submit"
    default_code = "PREFLIGHT_VALIDATION_FAILED"

    def __init__(self, message: str, *, field_name: str = "", index: int | None = None) -> None:
        self.field_name = field_name
        self.index = index
        super().__init__(message)

    def details(self) -> dict[str, object]:
        return {"field_name": self.field_name, "index": self.index}


# ---------------------------------------------------------------------------
# Response contract errors
# ---------------------------------------------------------------------------


class XmlParseError(ContractError):
    """Response payload is not well-formed XML."""

    default_stage = "parse"
    default_code = "XML_PARSE_FAILED"


class MalformedResponseError(ContractError):
    """A response node is present but its value cannot be interpreted.

    Attributes:
        node_name: The node whose value was malformed.
        value: The raw value found.
    """

    default_stage = "extract"
    default_code = "MALFORMED_RESPONSE"

    def __init__(self, node_name: str, value: object, message: str) -> None:
        self.node_name = node_name
        self.value = value
        super().__init__(f"{node_name}={value!r}: {message}")

    def details(self) -> dict[str, object]:
        return {"node_name": self.node_name, "value": self.value}


class SoapFaultError(ContractError):
    """The service answered with a SOAP ``Fault`` instead of a response.

    Attributes:
        fault_code: ``faultcode`` from the Fault element.
        fault_string: ``faultstring`` from the Fault element.
    """

    default_stage = "extract"
    default_code = "SOAP_FAULT"

    def __init__(self, fault_code: str, fault_string: str) -> None:
        self.fault_code = fault_code
        self.fault_string = fault_string
        super().__init__(f"SOAP fault {fault_code}: {fault_string}")

    def details(self) -> dict[str, object]:
        return {"fault_code": self.fault_code, "fault_string": self.fault_string}


class MissingRequiredNodeError(ContractError):
    """A named node that the extractor requires is absent.

    Each node type has its own subclass so callers can tell e.g. a missing
    ticket id apart from a missing process status.

    Attributes:
        node_name: Name (or path) of the absent node.
    """

    default_stage = "extract"
    default_code = "MISSING_REQUIRED_NODE"

    def __init__(self, node_name: str, message: str = "") -> None:
        self.node_name = node_name
        super().__init__(message or f"Invalid response: {node_name} not found")

    def details(self) -> dict[str, object]:
        return {"node_name": self.node_name}


class MissingResponseBodyError(MissingRequiredNodeError):
    """SOAP ``Envelope`` or ``Body`` is absent."""

    default_code = "MISSING_RESPONSE_BODY"


class MissingTicketIdError(MissingRequiredNodeError):
    """Mutation response carries no ``TicketId``."""

    default_code = "MISSING_TICKET_ID"


class MissingProcessStatusError(MissingRequiredNodeError):
    """Process-progress response or its ``ProcesStatus`` container is absent."""

    default_code = "MISSING_PROCESS_STATUS"


class MissingValidationResultError(MissingRequiredNodeError):
    """Validation-result response node is absent."""

    default_code = "MISSING_VALIDATION_RESULT"


class MissingSequenceNumberError(MissingRequiredNodeError):
    """TAN sequence-number response carries no ``SequenceNumber``."""

    default_code = "MISSING_SEQUENCE_NUMBER"


class MissingTransactionResultError(MissingRequiredNodeError):
    """Neither a formalize nor a cancel response node is present."""

    default_code = "MISSING_TRANSACTION_RESULT"


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------


class TransportError(ConnectorError):
    """Non-success answer (or connection failure) from the transport.

    Attributes:
        status_code: HTTP status code, or ``None`` for connection failures.
        body: Leading fragment of the raw response body.
        url: Target endpoint.
    """

    default_stage = "transport"
    default_code = "TRANSPORT_FAILED"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = body[:MAX_BODY_FRAGMENT]
        self.url = url
        retryable = status_code is None or status_code >= 500 or status_code == 429
        super().__init__(message, retryable=retryable)

    def details(self) -> dict[str, object]:
        return {"status_code": self.status_code, "body": self.body, "url": self.url}


class TransportTimeoutError(TransientError):
    """The transport call exceeded its time budget and was aborted.

    Attributes:
        timeout_s: The budget that was exceeded, in seconds.
        url: Target endpoint.
    """

    default_stage = "transport"
    default_code = "TRANSPORT_TIMEOUT"

    def __init__(self, message: str, *, timeout_s: float | None = None, url: str = "") -> None:
        self.timeout_s = timeout_s
        self.url = url
        super().__init__(message)

    def details(self) -> dict[str, object]:
        return {"timeout_s": self.timeout_s, "url": self.url}


class AuthError(PermanentError):
    """Authentication is not configured, or the token exchange failed."""

    default_stage = "auth"
    default_code = "AUTH_FAILED"
