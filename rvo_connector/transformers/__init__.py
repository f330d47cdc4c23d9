"""Typed views over parsed EDI-Crop responses.

- crop_fields: OpvragenBedrijfspercelen -> GeoJSON feature collection
- mutation: mutation lifecycle response extractors
"""

from rvo_connector.transformers.crop_fields import project_crop_field, project_crop_fields
from rvo_connector.transformers.mutation import (
    extract_mutation_ticket,
    extract_process_status,
    extract_tan_sequence,
    extract_transaction_result,
    extract_validation_result,
    response_body,
)

__all__ = [
    "extract_mutation_ticket",
    "extract_process_status",
    "extract_tan_sequence",
    "extract_transaction_result",
    "extract_validation_result",
    "project_crop_field",
    "project_crop_fields",
    "response_body",
]
