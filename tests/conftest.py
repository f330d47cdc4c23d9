"""Shared pytest fixtures for the RVO connector test suite."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from rvo_connector.auth.base import BearerCredentials
from rvo_connector.orchestrators.mutation import MutationOrchestrator
from rvo_connector.soap.builder import MessageContext
from rvo_connector.transport import Transport

# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------

TESTS_DIR = Path(__file__).parent
DATA_DIR = TESTS_DIR / "data"

ENDPOINT = "https://edicrop.test/EdiCrop-WebService/v2"
SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"


@pytest.fixture()
def data_dir() -> Path:
    """Return the path to the test data directory."""
    return DATA_DIR


@pytest.fixture()
def crop_fields_response(data_dir: Path) -> bytes:
    """OpvragenBedrijfspercelen response with three fields (one without border)."""
    return (data_dir / "01_bedrijfspercelen_response.xml").read_bytes()


@pytest.fixture()
def soap_fault_response(data_dir: Path) -> bytes:
    """SOAP 1.1 Fault response."""
    return (data_dir / "02_soap_fault.xml").read_bytes()


# ---------------------------------------------------------------------------
# SOAP helpers
# ---------------------------------------------------------------------------


def wrap_envelope(body_xml: str) -> str:
    """Wrap *body_xml* in a SOAP 1.1 envelope."""
    return (
        f'<soapenv:Envelope xmlns:soapenv="{SOAP_ENV_NS}">'
        f"<soapenv:Body>{body_xml}</soapenv:Body>"
        "</soapenv:Envelope>"
    )


@pytest.fixture()
def soap_envelope() -> Callable[[str], str]:
    """Return a function wrapping body XML in a SOAP envelope."""
    return wrap_envelope


class RecordingTransport(Transport):
    """Transport that returns queued responses and records every call."""

    def __init__(self, responses: list[str | Exception] | None = None) -> None:
        self.responses: list[str | Exception] = list(responses or [])
        self.calls: list[dict[str, object]] = []

    def queue(self, *responses: str | Exception) -> None:
        self.responses.extend(responses)

    def post(
        self,
        url: str,
        payload: bytes | str,
        *,
        headers: Mapping[str, str],
        timeout: float,
    ) -> str:
        self.calls.append(
            {"url": url, "payload": payload, "headers": dict(headers), "timeout": timeout}
        )
        if not self.responses:
            msg = "RecordingTransport has no queued response"
            raise AssertionError(msg)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def transport() -> RecordingTransport:
    """Empty recording transport; queue responses per test."""
    return RecordingTransport()


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def message_context() -> MessageContext:
    return MessageContext(issuer_id="ISSUER-1", sender_id="SENDER-1")


@pytest.fixture()
def square_polygon() -> dict[str, object]:
    """Closed WGS 84 square near Amersfoort, roughly 7 x 11 km."""
    return {
        "type": "Polygon",
        "coordinates": [
            [[5.0, 52.0], [5.1, 52.0], [5.1, 52.1], [5.0, 52.1], [5.0, 52.0]],
        ],
    }


@pytest.fixture()
def orchestrator(
    transport: RecordingTransport, message_context: MessageContext
) -> MutationOrchestrator:
    """Orchestrator wired to the recording transport with a fixed bearer token."""
    return MutationOrchestrator(
        transport,
        BearerCredentials("token-abc"),
        endpoint=ENDPOINT,
        context=message_context,
        timeout_s=12.5,
    )
