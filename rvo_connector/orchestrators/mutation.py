"""Mutation orchestrator: submit -> poll -> validate -> formalize / cancel.

Ticket lifecycle::

    SUBMITTED --poll--> IN_PROGRESS --poll--> VALIDATED
                                       \\--> VALIDATION_ERROR (terminal)
                                       \\--> TECHNICAL_ERROR (terminal)
    VALIDATED --formalize--> FORMALIZED (terminal)
    VALIDATED --cancel-----> CANCELLED (terminal)

Every operation is one build -> post -> parse -> extract round trip. The
orchestrator keeps no ticket registry and never loops or sleeps: the
caller carries the ticket id between calls and drives polling itself
(see ``orchestrators.polling``). Pre-flight checks on a submit run before
any network call; every other error passes through unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from rvo_connector.core.constants import DEFAULT_REQUEST_TIMEOUT_S
from rvo_connector.core.exceptions import ValidationFailedError
from rvo_connector.geometry import geometry_issues
from rvo_connector.models.mutation import CropFieldMutation, ModelValidationError, MutationAction
from rvo_connector.soap.builder import (
    build_cancel_request,
    build_formalize_request,
    build_mutation_request,
    build_process_status_request,
    build_tan_sequence_request,
    build_validation_result_request,
)
from rvo_connector.transformers.mutation import (
    extract_mutation_ticket,
    extract_process_status,
    extract_tan_sequence,
    extract_transaction_result,
    extract_validation_result,
)
from rvo_connector.xmltree import parse_xml

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rvo_connector.auth.base import Credentials
    from rvo_connector.models.mutation import (
        MutationTicket,
        ProcessStatus,
        TanSequence,
        TransactionResult,
        ValidationResult,
    )
    from rvo_connector.soap.builder import MessageContext
    from rvo_connector.transport import Transport
    from rvo_connector.xmltree import Node

logger = logging.getLogger("rvo_connector.orchestrators.mutation")


class MutationOrchestrator:
    """Drives one or more tickets through the mutation lifecycle.

    Args:
        transport: Collaborator that posts payloads.
        credentials: Ready-to-use credentials (bearer token or ABA token).
        endpoint: EDI-Crop endpoint URL.
        context: Issuer/sender identification for ExchangedDocument headers.
        timeout_s: Per-call transport timeout in seconds.
    """

    def __init__(
        self,
        transport: Transport,
        credentials: Credentials,
        *,
        endpoint: str,
        context: MessageContext,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
    ) -> None:
        self._transport = transport
        self._credentials = credentials
        self._endpoint = endpoint
        self._context = context
        self._timeout_s = timeout_s

    # ------------------------------------------------------------------
    # Pre-flight
    # ------------------------------------------------------------------

    def validate_mutations(
        self,
        farm_id: str,
        mutations: Sequence[CropFieldMutation | Mapping[str, object]],
    ) -> list[CropFieldMutation]:
        """Check a batch without touching the network and return it typed.

        Plain mappings are converted with ``CropFieldMutation.from_dict``.
        Geometry well-formedness problems are logged as warnings only; the
        service's validation result decides.

        Raises:
            ValidationFailedError: On an empty farm id, an empty batch, an
                unknown action, a mutation carrying both ``geometry`` and
                ``geometry_gml``, or a Delete without ``EndDate``.
        """
        if not farm_id or not farm_id.strip():
            msg = "farm_id must not be empty"
            raise ValidationFailedError(msg, field_name="farm_id")
        if not mutations:
            msg = "At least one mutation is required"
            raise ValidationFailedError(msg, field_name="mutations")

        typed: list[CropFieldMutation] = []
        for index, item in enumerate(mutations):
            mutation = _coerce_mutation(item, index)

            if mutation.geometry is not None and mutation.geometry_gml:
                msg = f"Mutation {index} sets both 'geometry' and 'geometry_gml'; supply one"
                raise ValidationFailedError(msg, field_name="geometry", index=index)

            if mutation.action is MutationAction.DELETE and not mutation.properties.get("EndDate"):
                msg = f"Delete mutation {index} requires an 'EndDate' property"
                raise ValidationFailedError(msg, field_name="EndDate", index=index)

            if mutation.geometry is not None:
                for issue in geometry_issues(mutation.geometry):
                    logger.warning(
                        "geometry issue | farm_id=%s | index=%d | issue=%s",
                        farm_id,
                        index,
                        issue,
                    )
            typed.append(mutation)
        return typed

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def submit(
        self,
        farm_id: str,
        mutations: Sequence[CropFieldMutation | Mapping[str, object]],
        *,
        preceding_ticket_id: str | None = None,
    ) -> MutationTicket:
        """Submit a batch of crop field mutations and return its ticket.

        Raises:
            ValidationFailedError: If the pre-flight checks fail (no
                transport call is made).
            UnsupportedGeometryError: For a geometry other than Polygon or
                MultiPolygon (no transport call is made).
        """
        typed = self.validate_mutations(farm_id, mutations)
        logger.info("submit started | farm_id=%s | mutations=%d", farm_id, len(typed))

        payload = build_mutation_request(
            self._context,
            farm_id,
            typed,
            preceding_ticket_id=preceding_ticket_id,
            security=self._credentials.username_token(),
        )
        ticket = extract_mutation_ticket(self._call(payload))

        logger.info("submit completed | farm_id=%s | ticket_id=%s", farm_id, ticket.ticket_id)
        return ticket

    def poll(self, ticket_id: str) -> ProcessStatus:
        """Return the current process status of *ticket_id* (one query, no waiting)."""
        payload = build_process_status_request(
            self._context, ticket_id, security=self._credentials.username_token()
        )
        status = extract_process_status(self._call(payload), ticket_id)
        logger.info(
            "poll completed | ticket_id=%s | code=%s | progress=%d%%",
            ticket_id,
            status.code,
            status.percentage,
        )
        return status

    def fetch_validation(self, ticket_id: str) -> ValidationResult:
        """Return the validation messages of *ticket_id* (possibly none)."""
        payload = build_validation_result_request(
            self._context, ticket_id, security=self._credentials.username_token()
        )
        result = extract_validation_result(self._call(payload), ticket_id)
        logger.info(
            "fetch_validation completed | ticket_id=%s | messages=%d | fatal=%s",
            result.ticket_id,
            len(result.messages),
            result.has_fatal,
        )
        return result

    def fetch_tan_sequence(self, farm_id: str | None = None) -> TanSequence:
        """Fetch a fresh TAN sequence number. Never cached; fetch per formalize."""
        payload = build_tan_sequence_request(
            self._context, farm_id, security=self._credentials.username_token()
        )
        sequence = extract_tan_sequence(self._call(payload))
        logger.info(
            "fetch_tan_sequence completed | farm_id=%s | sequence_number=%d",
            farm_id or "",
            sequence.sequence_number,
        )
        return sequence

    def formalize(self, ticket_id: str, sequence_number: int, tan: str) -> TransactionResult:
        """Commit a validated ticket with a TAN and its sequence number."""
        logger.info(
            "formalize started | ticket_id=%s | sequence_number=%d", ticket_id, sequence_number
        )
        payload = build_formalize_request(
            self._context,
            ticket_id,
            sequence_number,
            tan,
            security=self._credentials.username_token(),
        )
        result = extract_transaction_result(self._call(payload), ticket_id)
        logger.info(
            "formalize completed | ticket_id=%s | result_code=%s | state=%s",
            result.ticket_id,
            result.result_code,
            result.state.value,
        )
        return result

    def cancel(self, ticket_id: str) -> TransactionResult:
        """Withdraw a ticket."""
        payload = build_cancel_request(
            self._context, ticket_id, security=self._credentials.username_token()
        )
        result = extract_transaction_result(self._call(payload), ticket_id)
        logger.info(
            "cancel completed | ticket_id=%s | result_code=%s | state=%s",
            result.ticket_id,
            result.result_code,
            result.state.value,
        )
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _call(self, payload: bytes) -> dict[str, Node]:
        headers = self._credentials.http_headers()
        response = self._transport.post(
            self._endpoint, payload, headers=headers, timeout=self._timeout_s
        )
        return parse_xml(response)


def _coerce_mutation(item: CropFieldMutation | Mapping[str, object], index: int) -> CropFieldMutation:
    if isinstance(item, CropFieldMutation):
        return item
    if not isinstance(item, Mapping):
        msg = f"Mutation {index} must be a CropFieldMutation or a mapping"
        raise ValidationFailedError(msg, field_name="mutations", index=index)
    try:
        return CropFieldMutation.from_dict(item)
    except ModelValidationError as exc:
        raise ValidationFailedError(exc.message, field_name=exc.field_name, index=index) from exc
