"""Domain models for crop field features and the mutation lifecycle."""

from rvo_connector.models.feature import CropFieldFeature, FeatureCollection, QualityIndicator
from rvo_connector.models.mutation import (
    CropFieldMutation,
    ModelValidationError,
    MutationAction,
    MutationState,
    MutationTicket,
    ProcessStatus,
    TanSequence,
    TransactionResult,
    ValidationMessage,
    ValidationResult,
)

__all__ = [
    "CropFieldFeature",
    "CropFieldMutation",
    "FeatureCollection",
    "ModelValidationError",
    "MutationAction",
    "MutationState",
    "MutationTicket",
    "ProcessStatus",
    "QualityIndicator",
    "TanSequence",
    "TransactionResult",
    "ValidationMessage",
    "ValidationResult",
]
