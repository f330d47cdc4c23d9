"""lxml construction of EDI-Crop SOAP request envelopes.

Every request carries an ``ExchangedDocument`` header (message id, type
code, versions, issue date, issuer/sender/receiver). ABA requests add a
WS-Security ``UsernameToken`` in the SOAP header; TVS requests send no
header and authenticate with a bearer token at the HTTP level instead.

Values are set as element text, so lxml escapes them. Builders return
UTF-8 encoded bytes with an XML declaration.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from lxml import etree

from rvo_connector.core.constants import (
    EDICROP_NS_BASE,
    EDICROP_VERSION,
    EXCHANGED_DOCUMENT_NS,
    FARM_ID_SCHEME_AGENCY,
    GML_NS,
    MESSAGE_TYPE_VERSION,
    RECEIVER_ID,
    SOAP_ENV_NS,
    SPECIFIED_DATASET_NS,
    WSSE_NS,
)
from rvo_connector.core.exceptions import MalformedInputError, ValidationFailedError
from rvo_connector.geometry import RD_NEW_SRS_NAME, build_gml_element
from rvo_connector.models.mutation import MutationAction

if TYPE_CHECKING:
    from collections.abc import Sequence

    from lxml.etree import _Element

    from rvo_connector.models.mutation import CropFieldMutation

logger = logging.getLogger("rvo_connector.soap.builder")

# ---------------------------------------------------------------------------
# Namespaces and document type codes
# ---------------------------------------------------------------------------

NS_QUERY = f"{EDICROP_NS_BASE}/OpvragenBedrijfspercelen"
NS_MUTATION = f"{EDICROP_NS_BASE}/MuterenBedrijfspercelen"
NS_FARM = f"{EDICROP_NS_BASE}/Farm"
NS_FIELD = f"{EDICROP_NS_BASE}/Field"
NS_CROP_FIELD = f"{EDICROP_NS_BASE}/CropField"
NS_PROCESS_STATUS = f"{EDICROP_NS_BASE}/OpvragenProcesvoortgang"
NS_VALIDATION = f"{EDICROP_NS_BASE}/OpvragenValidatieresultaat"
NS_TAN = f"{EDICROP_NS_BASE}/OpvragenTanVolgnummer"
NS_FORMALIZE = f"{EDICROP_NS_BASE}/FormaliserenOpgave"
NS_CANCEL = f"{EDICROP_NS_BASE}/AnnulerenOpgave"

DOC_TYPE_QUERY = "CRPRQBP"
DOC_TYPE_MUTATION = "CRPRQMB"
DOC_TYPE_PROCESS_STATUS = "CRPRQPV"
DOC_TYPE_VALIDATION = "CRPRQVR"
DOC_TYPE_TAN = "CRPRQOT"
DOC_TYPE_FORMALIZE = "CRPRQFB"
DOC_TYPE_CANCEL = "CRPRQAO"

#: CropField properties written first, in this order; the rest follow as given.
CROP_FIELD_KEY_ORDER = (
    "CropFieldID",
    "CropFieldDesignator",
    "BeginDate",
    "EndDate",
    "CropTypeCode",
)
DATE_PROPERTIES = frozenset({"BeginDate", "EndDate"})


@dataclass(frozen=True, slots=True)
class MessageContext:
    """Issuer and sender identification placed in every ExchangedDocument.

    Raises:
        ValidationFailedError: If either id is empty.
    """

    issuer_id: str
    sender_id: str

    def __post_init__(self) -> None:
        for name in ("issuer_id", "sender_id"):
            if not str(getattr(self, name) or "").strip():
                msg = f"{name} is required for EDI-Crop requests"
                raise ValidationFailedError(msg, field_name=name)


@dataclass(frozen=True, slots=True)
class UsernameToken:
    """ABA WS-Security credentials."""

    username: str
    password: str = ""


# ---------------------------------------------------------------------------
# Public builders
# ---------------------------------------------------------------------------


def build_crop_fields_query(
    context: MessageContext,
    *,
    farm_id: str | None = None,
    period_begin: str | None = None,
    period_end: str | None = None,
    security: UsernameToken | None = None,
) -> bytes:
    """OpvragenBedrijfspercelen request.

    The period defaults to 1 January of the current year up to 1 January
    two years later.
    """
    year = datetime.datetime.now(datetime.UTC).year
    envelope, body = _envelope("opv", NS_QUERY, security)
    request = _sub(body, NS_QUERY, "OpvragenBedrijfspercelenRequest")
    document = _exchanged_document(request, NS_QUERY, DOC_TYPE_QUERY, context)

    dataset = _sub(document, EXCHANGED_DOCUMENT_NS, "SpecifiedDataset")
    _sub(dataset, SPECIFIED_DATASET_NS, "PeriodBeginDate", period_begin or f"{year}-01-01")
    _sub(dataset, SPECIFIED_DATASET_NS, "PeriodEndDate", period_end or f"{year + 2}-01-01")

    if farm_id:
        _third_party_farm_id(request, NS_QUERY, farm_id)
    return _serialize(envelope)


def build_mutation_request(
    context: MessageContext,
    farm_id: str,
    mutations: Sequence[CropFieldMutation],
    *,
    preceding_ticket_id: str | None = None,
    security: UsernameToken | None = None,
) -> bytes:
    """MuterenBedrijfspercelen request with one ``Field`` per mutation.

    Structured geometries are encoded to RD New GML; ``geometry_gml`` is
    embedded verbatim inside ``Border``.

    Raises:
        UnsupportedGeometryError: For geometries other than Polygon and
            MultiPolygon.
        MalformedInputError: If coordinates or verbatim GML are malformed.
    """
    envelope, body = _envelope("mut", NS_MUTATION, security)
    request = _sub(body, NS_MUTATION, "MuterenBedrijfspercelenRequest")
    _exchanged_document(request, NS_MUTATION, DOC_TYPE_MUTATION, context)
    if preceding_ticket_id:
        _sub(request, NS_MUTATION, "PrecedingTicketId", preceding_ticket_id)

    farm = _sub(request, NS_MUTATION, "Farm")
    _third_party_farm_id(farm, NS_FARM, farm_id)
    for mutation in mutations:
        _mutation_field(farm, mutation)

    logger.debug(
        "mutation request built | farm_id=%s | mutations=%d", farm_id, len(mutations)
    )
    return _serialize(envelope)


def build_process_status_request(
    context: MessageContext, ticket_id: str, *, security: UsernameToken | None = None
) -> bytes:
    """OpvragenProcesvoortgang request for one ticket."""
    return _ticket_request(
        "pv",
        NS_PROCESS_STATUS,
        "OpvragenProcesvoortgangRequest",
        DOC_TYPE_PROCESS_STATUS,
        context,
        ticket_id,
        security,
    )


def build_validation_result_request(
    context: MessageContext, ticket_id: str, *, security: UsernameToken | None = None
) -> bytes:
    """OpvragenValidatieresultaat request for one ticket."""
    return _ticket_request(
        "val",
        NS_VALIDATION,
        "OpvragenValidatieresultaatRequest",
        DOC_TYPE_VALIDATION,
        context,
        ticket_id,
        security,
    )


def build_cancel_request(
    context: MessageContext, ticket_id: str, *, security: UsernameToken | None = None
) -> bytes:
    """AnnulerenOpgave request for one ticket."""
    return _ticket_request(
        "ann",
        NS_CANCEL,
        "AnnulerenOpgaveRequest",
        DOC_TYPE_CANCEL,
        context,
        ticket_id,
        security,
    )


def build_tan_sequence_request(
    context: MessageContext,
    farm_id: str | None = None,
    *,
    security: UsernameToken | None = None,
) -> bytes:
    """OpvragenTanVolgnummer request, optionally scoped to a farm."""
    envelope, body = _envelope("tan", NS_TAN, security)
    request = _sub(body, NS_TAN, "OpvragenTanVolgnummerRequest")
    _exchanged_document(request, NS_TAN, DOC_TYPE_TAN, context)
    if farm_id:
        _third_party_farm_id(request, NS_TAN, farm_id)
    return _serialize(envelope)


def build_formalize_request(
    context: MessageContext,
    ticket_id: str,
    sequence_number: int,
    tan: str,
    *,
    security: UsernameToken | None = None,
) -> bytes:
    """FormaliserenOpgave request authorised by a TAN and its sequence number."""
    envelope, body = _envelope("frm", NS_FORMALIZE, security)
    request = _sub(body, NS_FORMALIZE, "FormaliserenOpgaveRequest")
    _exchanged_document(request, NS_FORMALIZE, DOC_TYPE_FORMALIZE, context)
    _sub(request, NS_FORMALIZE, "TicketId", ticket_id)
    _sub(request, NS_FORMALIZE, "SequenceNumber", str(sequence_number))
    _sub(request, NS_FORMALIZE, "AuthorisationNumber", tan)
    return _serialize(envelope)


def format_edicrop_datetime(value: object) -> str:
    """Format a date/datetime (or ISO text) as ``YYYY-MM-DDTHH:MM:SS``.

    Date-only values get ``T00:00:00``; fractional seconds and zone
    suffixes of ISO text are cut off.
    """
    if isinstance(value, datetime.datetime):
        return value.strftime("%Y-%m-%dT%H:%M:%S")
    if isinstance(value, datetime.date):
        return f"{value.isoformat()}T00:00:00"
    text = str(value).strip()
    if len(text) == 10:
        return f"{text}T00:00:00"
    return text[:19]


# ---------------------------------------------------------------------------
# Envelope parts
# ---------------------------------------------------------------------------


def _envelope(
    prefix: str, namespace: str, security: UsernameToken | None
) -> tuple[_Element, _Element]:
    nsmap = {
        "soapenv": SOAP_ENV_NS,
        prefix: namespace,
        "exc": EXCHANGED_DOCUMENT_NS,
        "spec": SPECIFIED_DATASET_NS,
    }
    if namespace == NS_MUTATION:
        nsmap.update({"far": NS_FARM, "fiel": NS_FIELD, "crop": NS_CROP_FIELD, "gml": GML_NS})

    envelope = etree.Element(f"{{{SOAP_ENV_NS}}}Envelope", nsmap=nsmap)
    if security is not None:
        header = _sub(envelope, SOAP_ENV_NS, "Header")
        token_parent = etree.SubElement(header, f"{{{WSSE_NS}}}Security", nsmap={None: WSSE_NS})
        token = _sub(token_parent, WSSE_NS, "UsernameToken")
        _sub(token, WSSE_NS, "Username", security.username)
        _sub(token, WSSE_NS, "Password", security.password or "")
    body = _sub(envelope, SOAP_ENV_NS, "Body")
    return envelope, body


def _exchanged_document(
    request: _Element, namespace: str, doc_type: str, context: MessageContext
) -> _Element:
    issue_date = datetime.datetime.now(datetime.UTC).strftime("%Y-%m-%dT%H:%M:%S")

    document = _sub(request, namespace, "ExchangedDocument")
    _sub(document, EXCHANGED_DOCUMENT_NS, "ID", str(uuid.uuid4()))
    _sub(document, EXCHANGED_DOCUMENT_NS, "Type", doc_type)
    _sub(document, EXCHANGED_DOCUMENT_NS, "EdiCropVersion", EDICROP_VERSION)
    _sub(document, EXCHANGED_DOCUMENT_NS, "MessageTypeVersion", MESSAGE_TYPE_VERSION)
    _sub(document, EXCHANGED_DOCUMENT_NS, "IssueDate", issue_date)
    for party, party_id in (
        ("Issuer", context.issuer_id),
        ("Sender", context.sender_id),
        ("Receiver", RECEIVER_ID),
    ):
        _sub(_sub(document, EXCHANGED_DOCUMENT_NS, party), EXCHANGED_DOCUMENT_NS, "ID", party_id)
    return document


def _ticket_request(
    prefix: str,
    namespace: str,
    request_name: str,
    doc_type: str,
    context: MessageContext,
    ticket_id: str,
    security: UsernameToken | None,
) -> bytes:
    envelope, body = _envelope(prefix, namespace, security)
    request = _sub(body, namespace, request_name)
    _exchanged_document(request, namespace, doc_type, context)
    _sub(request, namespace, "TicketId", ticket_id)
    return _serialize(envelope)


def _third_party_farm_id(parent: _Element, namespace: str, farm_id: str) -> None:
    element = _sub(parent, namespace, "ThirdPartyFarmID", farm_id)
    element.set("schemeAgencyName", FARM_ID_SCHEME_AGENCY)


# ---------------------------------------------------------------------------
# Mutation fields
# ---------------------------------------------------------------------------


def _mutation_field(farm: _Element, mutation: CropFieldMutation) -> None:
    properties = dict(mutation.properties)
    field_element = _sub(farm, NS_FARM, "Field")
    _sub(field_element, NS_FIELD, "MutationType", mutation.action.value)

    crop_field_id = properties.get("CropFieldID")
    if mutation.action is not MutationAction.INSERT and crop_field_id is not None:
        _sub(field_element, NS_FIELD, "FieldID", str(crop_field_id))

    crop_field = _sub(field_element, NS_FIELD, "CropField")
    ordered = [key for key in CROP_FIELD_KEY_ORDER if key in properties]
    ordered += [key for key in properties if key not in CROP_FIELD_KEY_ORDER]
    for key in ordered:
        _property_element(crop_field, key, properties[key])

    if mutation.geometry is not None:
        _border_from_geometry(crop_field, mutation.geometry)
    elif mutation.geometry_gml:
        _border_from_gml(crop_field, mutation.geometry_gml)


def _property_element(parent: _Element, key: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        container = _sub(parent, NS_CROP_FIELD, key)
        for sub_key, sub_value in value.items():
            _property_element(container, str(sub_key), sub_value)
        return
    if isinstance(value, list | tuple):
        for item in value:
            _property_element(parent, key, item)
        return
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif key in DATE_PROPERTIES:
        text = format_edicrop_datetime(value)
    else:
        text = str(value)
    _sub(parent, NS_CROP_FIELD, key, text)


def _border_from_geometry(crop_field: _Element, geometry: Mapping[str, Any]) -> None:
    gml = build_gml_element(geometry)
    border = _sub(crop_field, NS_CROP_FIELD, "Border")
    if etree.QName(gml).localname == "Polygon":
        # Border takes the place of the outer gml:Polygon.
        border.set("srsName", RD_NEW_SRS_NAME)
        for ring in list(gml):
            border.append(ring)
    else:
        border.append(gml)


def _border_from_gml(crop_field: _Element, gml_text: str) -> None:
    border = _sub(crop_field, NS_CROP_FIELD, "Border")
    wrapper_xml = f'<wrapper xmlns:gml="{GML_NS}">{gml_text}</wrapper>'
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        wrapper = etree.fromstring(wrapper_xml.encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as exc:
        msg = f"geometry_gml is not well-formed XML: {exc}"
        raise MalformedInputError(msg) from exc

    border.text = wrapper.text
    for element in list(wrapper):
        border.append(element)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _sub(parent: _Element, namespace: str, name: str, text: str | None = None) -> _Element:
    element = etree.SubElement(parent, f"{{{namespace}}}{name}")
    if text is not None:
        element.text = text
    return element


def _serialize(envelope: _Element) -> bytes:
    return etree.tostring(envelope, xml_declaration=True, encoding="utf-8")
