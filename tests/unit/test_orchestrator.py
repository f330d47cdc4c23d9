"""Tests for the mutation orchestrator.

Each test queues canned SOAP responses on a recording transport and
checks both the typed result and the request that was sent.

Covers:
- Full lifecycle: submit -> poll -> validate -> TAN -> formalize
- Cancel instead of formalize
- Pre-flight checks make no transport call
- Errors from the transport and extractors pass through unchanged
"""

from __future__ import annotations

import logging

import pytest
from lxml import etree

from rvo_connector.auth.base import AbaCredentials, BearerCredentials
from rvo_connector.core.exceptions import (
    AuthError,
    MissingTicketIdError,
    SoapFaultError,
    TransportTimeoutError,
    UnsupportedGeometryError,
    ValidationFailedError,
)
from rvo_connector.models.mutation import CropFieldMutation, MutationAction, MutationState
from rvo_connector.orchestrators.mutation import MutationOrchestrator

ENDPOINT = "https://edicrop.test/EdiCrop-WebService/v2"

TICKET = "<MuterenBedrijfspercelenResponse><TicketId>T-100</TicketId></MuterenBedrijfspercelenResponse>"
NO_MESSAGES = "<OpvragenValidatieresultaatResponse/>"
TAN = "<OphalenTanVolgnummerResponse><SequenceNumber>3</SequenceNumber></OphalenTanVolgnummerResponse>"
FORMALIZED = "<FormaliserenOpgaveResponse><ResultCode>OK</ResultCode></FormaliserenOpgaveResponse>"
CANCELLED = "<AnnulerenOpgaveResponse><ResultCode>OK</ResultCode></AnnulerenOpgaveResponse>"


def _status(code: str, percentage: int) -> str:
    return (
        "<OpvragenProcesvoortgangResponse><ProcesStatus>"
        f"<Code>{code}</Code><PercentageProgress>{percentage}</PercentageProgress>"
        "</ProcesStatus></OpvragenProcesvoortgangResponse>"
    )


def _sent_request_name(call: dict) -> str:
    root = etree.fromstring(call["payload"])
    body = root.find("{http://schemas.xmlsoap.org/soap/envelope/}Body")
    return etree.QName(body[0]).localname


def _insert(geometry: dict) -> dict:
    return {
        "action": "I",
        "properties": {"CropFieldDesignator": "Weiland", "CropTypeCode": "265"},
        "geometry": geometry,
    }


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestMutationLifecycle:
    """Happy paths through the ticket lifecycle."""

    def test_submit_poll_validate_formalize(
        self, orchestrator, transport, soap_envelope, square_polygon: dict
    ) -> None:
        transport.queue(
            soap_envelope(TICKET),
            soap_envelope(_status("IN_PROGRESS", 0)),
            soap_envelope(_status("VALIDATED", 100)),
            soap_envelope(NO_MESSAGES),
            soap_envelope(TAN),
            soap_envelope(FORMALIZED),
        )

        ticket = orchestrator.submit("12345678", [_insert(square_polygon)])
        assert ticket.ticket_id == "T-100"

        first = orchestrator.poll(ticket.ticket_id)
        assert (first.code, first.percentage, first.is_terminal()) == ("IN_PROGRESS", 0, False)
        second = orchestrator.poll(ticket.ticket_id)
        assert (second.code, second.percentage, second.is_terminal()) == ("VALIDATED", 100, True)

        validation = orchestrator.fetch_validation(ticket.ticket_id)
        assert validation.messages == ()

        sequence = orchestrator.fetch_tan_sequence("12345678")
        assert sequence.sequence_number == 3

        result = orchestrator.formalize(ticket.ticket_id, sequence.sequence_number, "654321")
        assert result.state is MutationState.FORMALIZED
        assert result.ticket_id == "T-100"

        assert [_sent_request_name(call) for call in transport.calls] == [
            "MuterenBedrijfspercelenRequest",
            "OpvragenProcesvoortgangRequest",
            "OpvragenProcesvoortgangRequest",
            "OpvragenValidatieresultaatRequest",
            "OpvragenTanVolgnummerRequest",
            "FormaliserenOpgaveRequest",
        ]
        for call in transport.calls:
            assert call["url"] == ENDPOINT
            assert call["timeout"] == 12.5
            assert call["headers"] == {"Authorization": "Bearer token-abc"}

    def test_cancel(self, orchestrator, transport, soap_envelope) -> None:
        transport.queue(soap_envelope(CANCELLED))
        result = orchestrator.cancel("T-100")
        assert result.state is MutationState.CANCELLED
        assert result.ticket_id == "T-100"
        assert _sent_request_name(transport.calls[0]) == "AnnulerenOpgaveRequest"

    def test_typed_mutations_accepted(self, orchestrator, transport, soap_envelope) -> None:
        transport.queue(soap_envelope(TICKET))
        mutation = CropFieldMutation(
            MutationAction.DELETE, {"CropFieldID": "CF-1", "EndDate": "2025-06-01"}
        )
        assert orchestrator.submit("12345678", [mutation]).ticket_id == "T-100"

    def test_aba_username_token_in_header(
        self, transport, soap_envelope, message_context
    ) -> None:
        orchestrator = MutationOrchestrator(
            transport,
            AbaCredentials("aba-user", "pw"),
            endpoint=ENDPOINT,
            context=message_context,
        )
        transport.queue(soap_envelope(_status("IN_PROGRESS", 10)))
        orchestrator.poll("T-1")

        call = transport.calls[0]
        assert call["headers"] == {}
        assert call["timeout"] == 30.0
        assert b"aba-user" in call["payload"]


# ---------------------------------------------------------------------------
# Pre-flight
# ---------------------------------------------------------------------------


class TestPreflight:
    """Pre-flight failures never reach the transport."""

    def test_delete_without_end_date(self, orchestrator, transport) -> None:
        mutations = [{"action": "D", "properties": {"CropFieldID": "CF-1"}}]
        with pytest.raises(ValidationFailedError) as exc_info:
            orchestrator.submit("12345678", mutations)
        err = exc_info.value
        assert "EndDate" in err.message
        assert err.field_name == "EndDate"
        assert err.index == 0
        assert err.category == "validation"
        assert transport.calls == []

    def test_empty_farm_id(self, orchestrator, transport, square_polygon: dict) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            orchestrator.submit(" ", [_insert(square_polygon)])
        assert exc_info.value.field_name == "farm_id"
        assert transport.calls == []

    def test_empty_batch(self, orchestrator, transport) -> None:
        with pytest.raises(ValidationFailedError):
            orchestrator.submit("12345678", [])
        assert transport.calls == []

    def test_unknown_action(self, orchestrator, transport) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            orchestrator.submit("12345678", [{"action": "X"}])
        assert exc_info.value.field_name == "action"
        assert transport.calls == []

    def test_both_geometry_forms(self, orchestrator, transport, square_polygon: dict) -> None:
        mutation = {**_insert(square_polygon), "geometry_gml": "<gml:Polygon/>"}
        with pytest.raises(ValidationFailedError) as exc_info:
            orchestrator.submit("12345678", [mutation])
        assert exc_info.value.field_name == "geometry"
        assert transport.calls == []

    def test_unsupported_geometry(self, orchestrator, transport) -> None:
        with pytest.raises(UnsupportedGeometryError):
            orchestrator.submit("12345678", [_insert({"type": "Point", "coordinates": [5, 52]})])
        assert transport.calls == []

    def test_not_a_mapping(self, orchestrator, transport) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            orchestrator.submit("12345678", ["I"])
        assert exc_info.value.index == 0
        assert transport.calls == []

    def test_geometry_issues_logged_not_raised(
        self, orchestrator, transport, soap_envelope, caplog: pytest.LogCaptureFixture
    ) -> None:
        bowtie = {
            "type": "Polygon",
            "coordinates": [[[5.0, 52.0], [5.1, 52.1], [5.1, 52.0], [5.0, 52.1], [5.0, 52.0]]],
        }
        transport.queue(soap_envelope(TICKET))
        with caplog.at_level(logging.WARNING, logger="rvo_connector.orchestrators.mutation"):
            ticket = orchestrator.submit("12345678", [_insert(bowtie)])
        assert ticket.ticket_id == "T-100"
        assert any("geometry issue" in record.getMessage() for record in caplog.records)


# ---------------------------------------------------------------------------
# Error propagation
# ---------------------------------------------------------------------------


class TestErrorPropagation:
    """Errors surface unchanged with their specific type."""

    def test_transport_timeout(self, orchestrator, transport) -> None:
        transport.queue(TransportTimeoutError("slow", timeout_s=12.5, url=ENDPOINT))
        with pytest.raises(TransportTimeoutError):
            orchestrator.poll("T-1")

    def test_missing_ticket(self, orchestrator, transport, soap_envelope, square_polygon) -> None:
        transport.queue(soap_envelope("<MuterenBedrijfspercelenResponse/>"))
        with pytest.raises(MissingTicketIdError):
            orchestrator.submit("12345678", [_insert(square_polygon)])

    def test_soap_fault(self, orchestrator, transport, soap_fault_response: bytes) -> None:
        transport.queue(soap_fault_response.decode("utf-8"))
        with pytest.raises(SoapFaultError):
            orchestrator.fetch_validation("T-1")

    def test_missing_bearer_token(self, transport, message_context) -> None:
        orchestrator = MutationOrchestrator(
            transport,
            BearerCredentials(lambda: None),
            endpoint=ENDPOINT,
            context=message_context,
        )
        with pytest.raises(AuthError):
            orchestrator.cancel("T-1")
        assert transport.calls == []
