"""Response extractors for the mutation lifecycle.

Each extractor takes the tree produced by ``parse_xml`` and reads one
named response node under ``Envelope/Body``. Extractors are pure: a
missing node raises its own ``MissingRequiredNodeError`` subclass, a SOAP
``Fault`` raises ``SoapFaultError``, and nothing is recovered here.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from rvo_connector.core.constants import STATUS_UNKNOWN
from rvo_connector.core.exceptions import (
    MalformedResponseError,
    MissingProcessStatusError,
    MissingResponseBodyError,
    MissingSequenceNumberError,
    MissingTicketIdError,
    MissingTransactionResultError,
    MissingValidationResultError,
    SoapFaultError,
)
from rvo_connector.models.mutation import (
    MutationState,
    MutationTicket,
    ProcessStatus,
    TanSequence,
    TransactionResult,
    ValidationMessage,
    ValidationResult,
)
from rvo_connector.xmltree import as_list, child, text_of

if TYPE_CHECKING:
    from rvo_connector.xmltree import Node

logger = logging.getLogger("rvo_connector.transformers.mutation")

MUTATION_RESPONSE = "MuterenBedrijfspercelenResponse"
PROCESS_STATUS_RESPONSE = "OpvragenProcesvoortgangResponse"
VALIDATION_RESPONSE = "OpvragenValidatieresultaatResponse"
TAN_SEQUENCE_RESPONSE = "OphalenTanVolgnummerResponse"
FORMALIZE_RESPONSE = "FormaliserenOpgaveResponse"
CANCEL_RESPONSE = "AnnulerenOpgaveResponse"


# ---------------------------------------------------------------------------
# Envelope handling
# ---------------------------------------------------------------------------


def response_body(tree: Node | None) -> dict[str, Node]:
    """Return the SOAP ``Body`` mapping of a parsed response.

    An empty ``Body`` element yields ``{}``.

    Raises:
        MissingResponseBodyError: If ``Envelope`` or ``Body`` is absent.
        SoapFaultError: If the body holds a SOAP ``Fault``.
    """
    envelope = child(tree, "Envelope")
    if envelope is None:
        raise MissingResponseBodyError("Envelope")
    body = child(envelope, "Body")
    if body is None:
        raise MissingResponseBodyError("Envelope/Body")
    if not isinstance(body, dict):
        return {}
    raise_for_fault(body)
    return body


def raise_for_fault(body: dict[str, Node]) -> None:
    """Raise ``SoapFaultError`` if *body* carries a SOAP 1.1 or 1.2 ``Fault``."""
    fault = body.get("Fault")
    if fault is None:
        return
    fault_code = _text(fault, "faultcode") or text_of(child(fault, "Code", "Value")) or ""
    fault_string = _text(fault, "faultstring") or text_of(child(fault, "Reason", "Text")) or ""
    logger.warning("SOAP fault received | faultcode=%s | faultstring=%s", fault_code, fault_string)
    raise SoapFaultError(fault_code, fault_string)


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------


def extract_mutation_ticket(tree: Node | None) -> MutationTicket:
    """Read the ``TicketId`` of a MuterenBedrijfspercelen response.

    A generic ``Response`` node is accepted when the named one is absent.

    Raises:
        MissingTicketIdError: If no ``TicketId`` is present.
    """
    body = response_body(tree)
    response = body.get(MUTATION_RESPONSE)
    if response is None:
        response = body.get("Response")

    ticket_id = _text(response, "TicketId")
    if not ticket_id:
        raise MissingTicketIdError(
            "TicketId",
            f"Invalid response: TicketId not found in {MUTATION_RESPONSE}",
        )
    return MutationTicket(ticket_id=ticket_id)


def extract_process_status(tree: Node | None, ticket_id: str = "") -> ProcessStatus:
    """Read ``ProcesStatus`` from an OpvragenProcesvoortgang response.

    The status code is passed through unchanged (``"UNKNOWN"`` when
    absent). *ticket_id* is used when the response does not echo one.

    Raises:
        MissingProcessStatusError: If the response node or its
            ``ProcesStatus`` container is absent.
        MalformedResponseError: If ``PercentageProgress`` is not an
            integral number between 0 and 100.
    """
    body = response_body(tree)
    response = body.get(PROCESS_STATUS_RESPONSE)
    if response is None:
        raise MissingProcessStatusError(PROCESS_STATUS_RESPONSE)

    status = child(response, "ProcesStatus")
    if status is None:
        raise MissingProcessStatusError(f"{PROCESS_STATUS_RESPONSE}/ProcesStatus")

    code = _text(status, "Code") or STATUS_UNKNOWN
    message = _text(status, "Name") or _text(status, "Description")
    percentage = _parse_int("PercentageProgress", _text(status, "PercentageProgress") or "0")
    if not 0 <= percentage <= 100:
        raise MalformedResponseError("PercentageProgress", percentage, "must be between 0 and 100")

    return ProcessStatus(
        ticket_id=_text(response, "TicketId") or ticket_id,
        code=code,
        message=message,
        percentage=percentage,
    )


def extract_validation_result(tree: Node | None, ticket_id: str = "") -> ValidationResult:
    """Flatten ``FieldValidation/Result`` entries into validation messages.

    Each message carries the ``FieldId`` of its parent ``FieldValidation``.
    Zero entries is a legitimate, empty result.

    Raises:
        MissingValidationResultError: If the response node is absent.
    """
    body = response_body(tree)
    response = body.get(VALIDATION_RESPONSE)
    if response is None:
        raise MissingValidationResultError(VALIDATION_RESPONSE)

    field_validations = as_list(child(response, "FieldValidation"))
    messages: list[ValidationMessage] = []
    for field_validation in field_validations:
        field_id = _text(field_validation, "FieldId")
        for result in as_list(child(field_validation, "Result")):
            messages.append(
                ValidationMessage(
                    code=_text(result, "MessageCode"),
                    message=_text(result, "MessageDescription"),
                    severity=_text(result, "SeverityCode"),
                    field_id=field_id,
                )
            )

    return ValidationResult(
        ticket_id=_text(response, "TicketId") or ticket_id,
        messages=tuple(messages),
        proposed_fields=tuple(field_validations),
    )


def extract_tan_sequence(tree: Node | None) -> TanSequence:
    """Read ``SequenceNumber`` from an OphalenTanVolgnummer response.

    Raises:
        MissingSequenceNumberError: If the number is absent or empty.
        MalformedResponseError: If it is not a non-negative integer.
    """
    body = response_body(tree)
    raw = _text(body.get(TAN_SEQUENCE_RESPONSE), "SequenceNumber")
    if not raw:
        raise MissingSequenceNumberError(f"{TAN_SEQUENCE_RESPONSE}/SequenceNumber")

    sequence_number = _parse_int("SequenceNumber", raw)
    if sequence_number < 0:
        raise MalformedResponseError("SequenceNumber", sequence_number, "must be >= 0")
    return TanSequence(sequence_number=sequence_number)


def extract_transaction_result(tree: Node | None, ticket_id: str = "") -> TransactionResult:
    """Read a FormaliserenOpgave or AnnulerenOpgave response.

    The resulting ``state`` follows the node that was found: FORMALIZED
    for a formalize response, CANCELLED for a cancel response.

    Raises:
        MissingTransactionResultError: If neither response node is present.
    """
    body = response_body(tree)
    for node_name, state in (
        (FORMALIZE_RESPONSE, MutationState.FORMALIZED),
        (CANCEL_RESPONSE, MutationState.CANCELLED),
    ):
        response = body.get(node_name)
        if response is not None:
            return TransactionResult(
                ticket_id=_text(response, "TicketId") or ticket_id,
                result_code=_text(response, "ResultCode"),
                message=_text(response, "ResultMessage"),
                state=state,
            )

    raise MissingTransactionResultError(
        f"{FORMALIZE_RESPONSE}|{CANCEL_RESPONSE}",
        "Invalid response: Transaction response not found",
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _text(node: Node | None, name: str) -> str:
    return (text_of(child(node, name)) or "").strip()


def _parse_int(node_name: str, raw: str) -> int:
    """Integer node value; integral decimals such as ``"50.0"`` are accepted."""
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as exc:
        raise MalformedResponseError(node_name, raw, "not an integer") from exc
    if not value.is_finite() or value != value.to_integral_value():
        raise MalformedResponseError(node_name, raw, "not an integer")
    return int(value)
