"""SOAP request construction for the EDI-Crop service."""

from rvo_connector.soap.builder import (
    MessageContext,
    UsernameToken,
    build_cancel_request,
    build_crop_fields_query,
    build_formalize_request,
    build_mutation_request,
    build_process_status_request,
    build_tan_sequence_request,
    build_validation_result_request,
    format_edicrop_datetime,
)

__all__ = [
    "MessageContext",
    "UsernameToken",
    "build_cancel_request",
    "build_crop_fields_query",
    "build_formalize_request",
    "build_mutation_request",
    "build_process_status_request",
    "build_tan_sequence_request",
    "build_validation_result_request",
    "format_edicrop_datetime",
]
