"""Typed models for the crop field mutation lifecycle.

Defines the values exchanged between the mutation orchestrator and its
callers:

- ``CropFieldMutation``: One Insert/Update/Delete on a crop field
- ``MutationTicket``: Handle returned by a submit call
- ``ProcessStatus``: Point-in-time progress of a ticket
- ``ValidationResult``: Field-level messages produced by the service
- ``TanSequence``: Sequence number required to formalize
- ``TransactionResult``: Outcome of formalize or cancel

Design notes:
- All models are frozen dataclasses, created fresh per call.
- Service status codes are passed through unchanged; ``MutationState``
  is an interpretation layered on top, never a replacement.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rvo_connector.core.constants import (
    SEVERITY_FATAL,
    STATUS_CANCELLED,
    STATUS_TECHNICAL_ERROR,
    STATUS_VALIDATED,
    STATUS_VALIDATION_ERROR,
)
from rvo_connector.core.exceptions import ConnectorError

if TYPE_CHECKING:
    from rvo_connector.models.contracts import ValidationMessagePayload

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, ConnectorError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        ConnectorError.__init__(self, formatted)

    def details(self) -> dict[str, object]:
        return {"model": self.model, "field_name": self.field_name, "value": self.value}


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class MutationAction(enum.Enum):
    """Kind of change applied to a crop field."""

    INSERT = "I"
    UPDATE = "U"
    DELETE = "D"


class MutationState(enum.Enum):
    """Lifecycle state of a mutation ticket.

    Values:
        SUBMITTED:        Accepted by the service, not yet picked up.
        IN_PROGRESS:      Being processed.
        VALIDATED:        Processed without blocking errors; may be formalized.
        VALIDATION_ERROR: Rejected by validation (terminal).
        TECHNICAL_ERROR:  Service-side failure (terminal).
        FORMALIZED:       Committed with a TAN (terminal).
        CANCELLED:        Withdrawn (terminal).
    """

    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    VALIDATED = "validated"
    VALIDATION_ERROR = "validation_error"
    TECHNICAL_ERROR = "technical_error"
    FORMALIZED = "formalized"
    CANCELLED = "cancelled"


_STATE_BY_CODE: dict[str, MutationState] = {
    STATUS_VALIDATED: MutationState.VALIDATED,
    STATUS_VALIDATION_ERROR: MutationState.VALIDATION_ERROR,
    STATUS_TECHNICAL_ERROR: MutationState.TECHNICAL_ERROR,
    STATUS_CANCELLED: MutationState.CANCELLED,
    "GEFORMALISEERD": MutationState.FORMALIZED,
    "INGEDIEND": MutationState.SUBMITTED,
    "SUBMITTED": MutationState.SUBMITTED,
    "IN_PROGRESS": MutationState.IN_PROGRESS,
    "VALIDATED": MutationState.VALIDATED,
    "VALIDATION_ERROR": MutationState.VALIDATION_ERROR,
    "TECHNICAL_ERROR": MutationState.TECHNICAL_ERROR,
    "FORMALIZED": MutationState.FORMALIZED,
    "CANCELLED": MutationState.CANCELLED,
}

#: States after which polling a ticket yields nothing new.
POLL_TERMINAL_STATES = frozenset(
    {
        MutationState.VALIDATED,
        MutationState.VALIDATION_ERROR,
        MutationState.TECHNICAL_ERROR,
        MutationState.FORMALIZED,
        MutationState.CANCELLED,
    }
)


def state_for_code(code: str) -> MutationState:
    """Map a service status code to a ``MutationState`` (unknown -> IN_PROGRESS)."""
    return _STATE_BY_CODE.get(code.strip().upper(), MutationState.IN_PROGRESS)


# ---------------------------------------------------------------------------
# Submit models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CropFieldMutation:
    """One change to a crop field, submitted as part of a batch.

    At most one of ``geometry`` and ``geometry_gml`` may be set; the
    orchestrator enforces this before submitting.

    Attributes:
        action: Insert, Update or Delete.
        properties: CropField properties (``CropFieldDesignator``,
            ``CropTypeCode``, ``BeginDate``, ``EndDate``, ...).
        geometry: GeoJSON Polygon/MultiPolygon in WGS 84.
        geometry_gml: Pre-serialised GML, embedded verbatim.
    """

    action: MutationAction
    properties: dict[str, Any] = field(default_factory=dict)
    geometry: dict[str, Any] | None = None
    geometry_gml: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.action, MutationAction):
            raise ModelValidationError(
                "CropFieldMutation", "action", self.action, "must be a MutationAction"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CropFieldMutation:
        """Build from a plain mapping such as ``{"action": "I", "geometry": {...}}``.

        Raises:
            ModelValidationError: If ``action`` is not one of ``I``/``U``/``D``
                or ``properties`` is not a mapping.
        """
        raw_action = data.get("action")
        try:
            action = (
                raw_action
                if isinstance(raw_action, MutationAction)
                else MutationAction(str(raw_action).strip().upper())
            )
        except ValueError as exc:
            raise ModelValidationError(
                "CropFieldMutation", "action", raw_action, "must be one of 'I', 'U', 'D'"
            ) from exc

        properties = data.get("properties") or {}
        if not isinstance(properties, Mapping):
            raise ModelValidationError(
                "CropFieldMutation", "properties", properties, "must be a mapping"
            )

        return cls(
            action=action,
            properties=dict(properties),
            geometry=data.get("geometry"),
            geometry_gml=data.get("geometry_gml"),
        )


@dataclass(frozen=True, slots=True)
class MutationTicket:
    """Server-side handle for a submitted mutation batch. Has no local expiry."""

    ticket_id: str

    def __post_init__(self) -> None:
        _check_non_empty("MutationTicket", "ticket_id", self.ticket_id)


# ---------------------------------------------------------------------------
# Progress and validation models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ProcessStatus:
    """Progress of a ticket at the moment it was polled.

    Attributes:
        ticket_id: The ticket that was polled.
        code: Status code exactly as reported by the service.
        message: Human-readable status name or description.
        percentage: Progress percentage (0-100).
    """

    ticket_id: str
    code: str
    message: str = ""
    percentage: int = 0

    def __post_init__(self) -> None:
        _check_range("ProcessStatus", "percentage", self.percentage, 0, 100)

    @property
    def state(self) -> MutationState:
        """Interpretation of ``code`` as a lifecycle state."""
        return state_for_code(self.code)

    def is_terminal(self, terminal_codes: frozenset[str] | None = None) -> bool:
        """Return whether polling can stop.

        With *terminal_codes* the raw code is matched against that set;
        otherwise the mapped ``state`` decides.
        """
        if terminal_codes is not None:
            return self.code in terminal_codes
        return self.state in POLL_TERMINAL_STATES


@dataclass(frozen=True, slots=True)
class ValidationMessage:
    """One field-level message from the validation result.

    Attributes:
        code: Message code.
        message: Message description.
        severity: Severity code (``"FATAAL"`` blocks formalization).
        field_id: Id of the field the message belongs to.
    """

    code: str = ""
    message: str = ""
    severity: str = ""
    field_id: str = ""

    @property
    def is_fatal(self) -> bool:
        return self.severity.strip().upper() == SEVERITY_FATAL

    def to_dict(self) -> ValidationMessagePayload:
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "field_id": self.field_id,
        }


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Validation outcome of a ticket.

    Attributes:
        ticket_id: The validated ticket.
        messages: Field-level messages in source order (may be empty).
        proposed_fields: Raw ``FieldValidation`` nodes, passed through.
    """

    ticket_id: str
    messages: tuple[ValidationMessage, ...] = ()
    proposed_fields: tuple[Any, ...] = ()

    @property
    def has_fatal(self) -> bool:
        return any(message.is_fatal for message in self.messages)


# ---------------------------------------------------------------------------
# Formalize / cancel models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TanSequence:
    """Sequence number to pair with a TAN. Fetch fresh before every formalize."""

    sequence_number: int

    def __post_init__(self) -> None:
        _check_min("TanSequence", "sequence_number", self.sequence_number, 0)


@dataclass(frozen=True, slots=True)
class TransactionResult:
    """Outcome of a formalize or cancel call. Terminal for the ticket.

    Attributes:
        ticket_id: The ticket that was formalized or cancelled.
        result_code: Result code reported by the service.
        message: Result message reported by the service.
        state: ``FORMALIZED`` or ``CANCELLED``.
    """

    ticket_id: str
    result_code: str = ""
    message: str = ""
    state: MutationState = MutationState.FORMALIZED

    def __post_init__(self) -> None:
        if self.state not in (MutationState.FORMALIZED, MutationState.CANCELLED):
            raise ModelValidationError(
                "TransactionResult", "state", self.state, "must be FORMALIZED or CANCELLED"
            )


# ---------------------------------------------------------------------------
# Validation helpers (module-private)
# ---------------------------------------------------------------------------


def _check_range(model: str, field_name: str, value: float, lo: float, hi: float) -> None:
    """Raise `ModelValidationError` if *value* falls outside [lo, hi]."""
    if value < lo or value > hi:
        raise ModelValidationError(model, field_name, value, f"must be between {lo} and {hi}")


def _check_min(model: str, field_name: str, value: float | int, lo: float | int) -> None:
    """Raise `ModelValidationError` if *value* is below *lo*."""
    if value < lo:
        raise ModelValidationError(model, field_name, value, f"must be >= {lo}")


def _check_non_empty(model: str, field_name: str, value: str) -> None:
    """Raise `ModelValidationError` if *value* is empty or blank."""
    if not value or not value.strip():
        raise ModelValidationError(model, field_name, value, "must not be empty")
