"""Synchronous payload checks run before any upload or state transition."""

from typing import Optional, Sequence

from rental_inspections.core.config import WorkflowPolicy
from rental_inspections.core.errors import InspectionValidationError
from rental_inspections.models.enums import DisputeType
from rental_inspections.schemas.inspection import (
    DiscrepancySubmit, PostInspectionSubmit, PostReviewSubmit, PreInspectionSubmit, PreReviewSubmit,
)


def non_blank(values: Sequence[str]) -> list[str]:
    return [v.strip() for v in values if v and v.strip()]


def validate_pre_inspection(data: PreInspectionSubmit, policy: WorkflowPolicy) -> None:
    if len(data.photos) > policy.max_pre_inspection_photos:
        raise InspectionValidationError(
            f"At most {policy.max_pre_inspection_photos} photos allowed",
            field="photos",
        )


def validate_pre_review(data: PreReviewSubmit) -> None:
    if not data.accepted:
        raise InspectionValidationError(
            "A pre-review can only accept; report a discrepancy to disagree",
            field="accepted",
        )


def validate_discrepancy(data: DiscrepancySubmit, policy: WorkflowPolicy) -> None:
    if not non_blank(data.issues):
        raise InspectionValidationError("At least one issue is required", field="issues")
    if not data.notes.strip():
        raise InspectionValidationError("Notes are required", field="notes")
    if len(data.photos) > policy.max_dispute_photos:
        raise InspectionValidationError(
            f"At most {policy.max_dispute_photos} photos allowed",
            field="photos",
        )


def validate_post_inspection(data: PostInspectionSubmit, policy: WorkflowPolicy) -> None:
    count = len(data.return_photos)
    if count < policy.min_return_photos:
        raise InspectionValidationError(
            f"At least {policy.min_return_photos} return photos are required",
            field="return_photos",
        )
    if count > policy.max_return_photos:
        raise InspectionValidationError(
            f"At most {policy.max_return_photos} return photos allowed",
            field="return_photos",
        )
    if data.return_location is None:
        raise InspectionValidationError("Return location is required", field="return_location")
    if not data.confirmed:
        raise InspectionValidationError("Return inspection must be confirmed", field="confirmed")


def validate_dispute_fields(
    dispute_type: Optional[DisputeType],
    reason: Optional[str],
    photo_count: int,
    policy: WorkflowPolicy,
    field_prefix: str = "",
) -> None:
    """Shared by owner disputes and the dispute subsystem."""
    if dispute_type is None:
        raise InspectionValidationError("Dispute type is required", field=f"{field_prefix}type")
    if not reason or not reason.strip():
        raise InspectionValidationError("Dispute reason is required", field=f"{field_prefix}reason")
    if photo_count > policy.max_dispute_photos:
        raise InspectionValidationError(
            f"At most {policy.max_dispute_photos} dispute photos allowed",
            field=f"{field_prefix}photos",
        )


def validate_post_review(data: PostReviewSubmit, policy: WorkflowPolicy) -> None:
    """Exactly one of accepted / dispute_raised."""
    if data.accepted == data.dispute_raised:
        raise InspectionValidationError(
            "Post-review must either accept or raise a dispute",
            field="accepted",
        )
    if data.dispute_raised:
        validate_dispute_fields(
            data.dispute_type, data.dispute_reason, len(data.dispute_photos), policy,
            field_prefix="dispute_",
        )
