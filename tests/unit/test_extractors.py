"""Tests for the mutation lifecycle response extractors.

Covers:
- Envelope / Body handling and SOAP 1.1 / 1.2 faults
- extract_mutation_ticket, extract_process_status,
  extract_validation_result, extract_tan_sequence,
  extract_transaction_result
- Each missing node raises its own MissingRequiredNodeError subclass
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from rvo_connector.core.exceptions import (
    MalformedResponseError,
    MissingProcessStatusError,
    MissingRequiredNodeError,
    MissingResponseBodyError,
    MissingSequenceNumberError,
    MissingTicketIdError,
    MissingTransactionResultError,
    MissingValidationResultError,
    SoapFaultError,
)
from rvo_connector.models.mutation import MutationState
from rvo_connector.transformers.mutation import (
    extract_mutation_ticket,
    extract_process_status,
    extract_tan_sequence,
    extract_transaction_result,
    extract_validation_result,
    response_body,
)
from rvo_connector.xmltree import parse_xml

Wrap = Callable[[str], str]


def _status(code: str = "", percentage: str = "", name: str = "") -> str:
    parts = []
    if code:
        parts.append(f"<Code>{code}</Code>")
    if name:
        parts.append(f"<Name>{name}</Name>")
    if percentage:
        parts.append(f"<PercentageProgress>{percentage}</PercentageProgress>")
    return (
        "<OpvragenProcesvoortgangResponse>"
        f"<ProcesStatus>{''.join(parts)}</ProcesStatus>"
        "</OpvragenProcesvoortgangResponse>"
    )


# ---------------------------------------------------------------------------
# Envelope handling
# ---------------------------------------------------------------------------


class TestResponseBody:
    """response_body and SOAP fault detection."""

    def test_missing_envelope(self) -> None:
        with pytest.raises(MissingResponseBodyError) as exc_info:
            response_body(parse_xml("<Other/>"))
        assert exc_info.value.node_name == "Envelope"
        assert exc_info.value.code == "MISSING_RESPONSE_BODY"

    def test_missing_body(self) -> None:
        tree = parse_xml(
            '<s:Envelope xmlns:s="http://schemas.xmlsoap.org/soap/envelope/">'
            "<s:Header><x>1</x></s:Header></s:Envelope>"
        )
        with pytest.raises(MissingResponseBodyError) as exc_info:
            response_body(tree)
        assert exc_info.value.node_name == "Envelope/Body"

    def test_empty_body(self, soap_envelope: Wrap) -> None:
        assert response_body(parse_xml(soap_envelope(""))) == {}

    def test_soap11_fault(self, soap_fault_response: bytes) -> None:
        with pytest.raises(SoapFaultError) as exc_info:
            response_body(parse_xml(soap_fault_response))
        assert exc_info.value.fault_code == "soapenv:Client"
        assert "12345678" in exc_info.value.fault_string
        assert exc_info.value.category == "contract"

    def test_soap12_fault(self, soap_envelope: Wrap) -> None:
        body = (
            "<Fault><Code><Value>env:Receiver</Value></Code>"
            "<Reason><Text>Service unavailable</Text></Reason></Fault>"
        )
        with pytest.raises(SoapFaultError) as exc_info:
            response_body(parse_xml(soap_envelope(body)))
        assert exc_info.value.fault_code == "env:Receiver"
        assert exc_info.value.fault_string == "Service unavailable"


# ---------------------------------------------------------------------------
# Ticket
# ---------------------------------------------------------------------------


class TestExtractMutationTicket:
    """extract_mutation_ticket reads TicketId."""

    def test_named_response(self, soap_envelope: Wrap) -> None:
        body = "<MuterenBedrijfspercelenResponse><TicketId>T-1</TicketId></MuterenBedrijfspercelenResponse>"
        ticket = extract_mutation_ticket(parse_xml(soap_envelope(body)))
        assert ticket.ticket_id == "T-1"

    def test_generic_response_node(self, soap_envelope: Wrap) -> None:
        body = "<Response><TicketId> T-2 </TicketId></Response>"
        assert extract_mutation_ticket(parse_xml(soap_envelope(body))).ticket_id == "T-2"

    def test_missing_ticket_id(self, soap_envelope: Wrap) -> None:
        body = "<MuterenBedrijfspercelenResponse><Other>x</Other></MuterenBedrijfspercelenResponse>"
        with pytest.raises(MissingTicketIdError) as exc_info:
            extract_mutation_ticket(parse_xml(soap_envelope(body)))
        err = exc_info.value
        assert err.message == (
            "Invalid response: TicketId not found in MuterenBedrijfspercelenResponse"
        )
        assert err.code == "MISSING_TICKET_ID"
        assert isinstance(err, MissingRequiredNodeError)

    def test_missing_response_node(self, soap_envelope: Wrap) -> None:
        with pytest.raises(MissingTicketIdError):
            extract_mutation_ticket(parse_xml(soap_envelope("<Unrelated/>")))


# ---------------------------------------------------------------------------
# Process status
# ---------------------------------------------------------------------------


class TestExtractProcessStatus:
    """extract_process_status reads ProcesStatus."""

    def test_in_progress(self, soap_envelope: Wrap) -> None:
        tree = parse_xml(soap_envelope(_status("IN_PROGRESS", "0", "Bezig")))
        status = extract_process_status(tree, "T-1")
        assert status.ticket_id == "T-1"
        assert status.code == "IN_PROGRESS"
        assert status.message == "Bezig"
        assert status.percentage == 0
        assert status.is_terminal() is False

    def test_validated(self, soap_envelope: Wrap) -> None:
        status = extract_process_status(parse_xml(soap_envelope(_status("GEVALIDEERD", "100"))))
        assert status.code == "GEVALIDEERD"
        assert status.percentage == 100
        assert status.state is MutationState.VALIDATED
        assert status.is_terminal() is True

    def test_description_fallback(self, soap_envelope: Wrap) -> None:
        body = (
            "<OpvragenProcesvoortgangResponse><ProcesStatus>"
            "<Code>X</Code><Description>Omschrijving</Description>"
            "</ProcesStatus></OpvragenProcesvoortgangResponse>"
        )
        assert extract_process_status(parse_xml(soap_envelope(body))).message == "Omschrijving"

    def test_code_defaults_to_unknown(self, soap_envelope: Wrap) -> None:
        status = extract_process_status(parse_xml(soap_envelope(_status(percentage="10"))))
        assert status.code == "UNKNOWN"
        assert status.state is MutationState.IN_PROGRESS

    def test_percentage_defaults_to_zero(self, soap_envelope: Wrap) -> None:
        status = extract_process_status(parse_xml(soap_envelope(_status("X"))))
        assert status.percentage == 0

    def test_response_ticket_id_preferred(self, soap_envelope: Wrap) -> None:
        body = (
            "<OpvragenProcesvoortgangResponse><TicketId>T-9</TicketId>"
            "<ProcesStatus><Code>X</Code></ProcesStatus>"
            "</OpvragenProcesvoortgangResponse>"
        )
        assert extract_process_status(parse_xml(soap_envelope(body)), "T-1").ticket_id == "T-9"

    def test_non_integer_percentage(self, soap_envelope: Wrap) -> None:
        with pytest.raises(MalformedResponseError) as exc_info:
            extract_process_status(parse_xml(soap_envelope(_status("X", "half"))))
        assert exc_info.value.node_name == "PercentageProgress"

    def test_out_of_range_percentage(self, soap_envelope: Wrap) -> None:
        with pytest.raises(MalformedResponseError):
            extract_process_status(parse_xml(soap_envelope(_status("X", "101"))))

    def test_integral_decimal_percentage(self, soap_envelope: Wrap) -> None:
        status = extract_process_status(parse_xml(soap_envelope(_status("X", "50.0"))))
        assert status.percentage == 50

    def test_fractional_percentage(self, soap_envelope: Wrap) -> None:
        with pytest.raises(MalformedResponseError):
            extract_process_status(parse_xml(soap_envelope(_status("X", "50.5"))))

    def test_missing_response(self, soap_envelope: Wrap) -> None:
        with pytest.raises(MissingProcessStatusError) as exc_info:
            extract_process_status(parse_xml(soap_envelope("<Other/>")))
        assert exc_info.value.node_name == "OpvragenProcesvoortgangResponse"

    def test_missing_container(self, soap_envelope: Wrap) -> None:
        body = "<OpvragenProcesvoortgangResponse><X>1</X></OpvragenProcesvoortgangResponse>"
        with pytest.raises(MissingProcessStatusError) as exc_info:
            extract_process_status(parse_xml(soap_envelope(body)))
        assert exc_info.value.node_name.endswith("/ProcesStatus")


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------


class TestExtractValidationResult:
    """extract_validation_result flattens field messages."""

    def test_zero_messages(self, soap_envelope: Wrap) -> None:
        body = "<OpvragenValidatieresultaatResponse/>"
        result = extract_validation_result(parse_xml(soap_envelope(body)), "T-1")
        assert result.ticket_id == "T-1"
        assert result.messages == ()
        assert result.has_fatal is False

    def test_messages_carry_field_id(self, soap_envelope: Wrap) -> None:
        body = (
            "<OpvragenValidatieresultaatResponse>"
            "<FieldValidation><FieldId>F-1</FieldId>"
            "<Result><MessageCode>M1</MessageCode><MessageDescription>Overlap</MessageDescription>"
            "<SeverityCode>WAARSCHUWING</SeverityCode></Result>"
            "<Result><MessageCode>M2</MessageCode><MessageDescription>Ongeldig</MessageDescription>"
            "<SeverityCode>FATAAL</SeverityCode></Result>"
            "</FieldValidation>"
            "<FieldValidation><FieldId>F-2</FieldId>"
            "<Result><MessageCode>M3</MessageCode><SeverityCode>INFO</SeverityCode></Result>"
            "</FieldValidation>"
            "</OpvragenValidatieresultaatResponse>"
        )
        result = extract_validation_result(parse_xml(soap_envelope(body)), "T-1")
        assert [m.code for m in result.messages] == ["M1", "M2", "M3"]
        assert [m.field_id for m in result.messages] == ["F-1", "F-1", "F-2"]
        assert result.messages[0].message == "Overlap"
        assert result.messages[2].message == ""
        assert result.has_fatal is True
        assert len(result.proposed_fields) == 2

    def test_missing_response(self, soap_envelope: Wrap) -> None:
        with pytest.raises(MissingValidationResultError):
            extract_validation_result(parse_xml(soap_envelope("<Other/>")))


# ---------------------------------------------------------------------------
# TAN sequence
# ---------------------------------------------------------------------------


class TestExtractTanSequence:
    """extract_tan_sequence reads SequenceNumber."""

    def test_sequence_number(self, soap_envelope: Wrap) -> None:
        body = "<OphalenTanVolgnummerResponse><SequenceNumber>7</SequenceNumber></OphalenTanVolgnummerResponse>"
        assert extract_tan_sequence(parse_xml(soap_envelope(body))).sequence_number == 7

    def test_missing(self, soap_envelope: Wrap) -> None:
        with pytest.raises(MissingSequenceNumberError) as exc_info:
            extract_tan_sequence(parse_xml(soap_envelope("<OphalenTanVolgnummerResponse/>")))
        assert exc_info.value.code == "MISSING_SEQUENCE_NUMBER"

    def test_empty(self, soap_envelope: Wrap) -> None:
        body = "<OphalenTanVolgnummerResponse><SequenceNumber/></OphalenTanVolgnummerResponse>"
        with pytest.raises(MissingSequenceNumberError):
            extract_tan_sequence(parse_xml(soap_envelope(body)))

    def test_not_integer(self, soap_envelope: Wrap) -> None:
        body = "<OphalenTanVolgnummerResponse><SequenceNumber>abc</SequenceNumber></OphalenTanVolgnummerResponse>"
        with pytest.raises(MalformedResponseError):
            extract_tan_sequence(parse_xml(soap_envelope(body)))

    def test_negative(self, soap_envelope: Wrap) -> None:
        body = "<OphalenTanVolgnummerResponse><SequenceNumber>-1</SequenceNumber></OphalenTanVolgnummerResponse>"
        with pytest.raises(MalformedResponseError):
            extract_tan_sequence(parse_xml(soap_envelope(body)))


# ---------------------------------------------------------------------------
# Transaction result
# ---------------------------------------------------------------------------


class TestExtractTransactionResult:
    """extract_transaction_result for formalize and cancel responses."""

    def test_formalize(self, soap_envelope: Wrap) -> None:
        body = (
            "<FormaliserenOpgaveResponse><ResultCode>OK</ResultCode>"
            "<ResultMessage>Opgave geformaliseerd</ResultMessage></FormaliserenOpgaveResponse>"
        )
        result = extract_transaction_result(parse_xml(soap_envelope(body)), "T-1")
        assert result.ticket_id == "T-1"
        assert result.result_code == "OK"
        assert result.message == "Opgave geformaliseerd"
        assert result.state is MutationState.FORMALIZED

    def test_cancel(self, soap_envelope: Wrap) -> None:
        body = "<AnnulerenOpgaveResponse><TicketId>T-3</TicketId></AnnulerenOpgaveResponse>"
        result = extract_transaction_result(parse_xml(soap_envelope(body)), "T-1")
        assert result.ticket_id == "T-3"
        assert result.state is MutationState.CANCELLED

    def test_missing(self, soap_envelope: Wrap) -> None:
        with pytest.raises(MissingTransactionResultError) as exc_info:
            extract_transaction_result(parse_xml(soap_envelope("<Other/>")))
        assert exc_info.value.message == "Invalid response: Transaction response not found"

    def test_fault_takes_precedence(self, soap_fault_response: bytes) -> None:
        with pytest.raises(SoapFaultError):
            extract_transaction_result(parse_xml(soap_fault_response))
