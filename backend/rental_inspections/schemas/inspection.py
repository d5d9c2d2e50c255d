"""Inspection record and submission schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, computed_field, model_validator

from rental_inspections.schemas.base import BaseSchema, IDMixin, TimestampMixin
from rental_inspections.schemas.condition import ConditionAssessment, GPSLocation, PhotoInput
from rental_inspections.schemas.dispute import Dispute
from rental_inspections.models.enums import (
    DisputeType, InspectionStatus, InspectionTier, InspectionType, Party, PaymentStatus,
    WorkflowAction,
)


# --- Embedded submissions ---

class OwnerPreInspectionData(BaseSchema):
    """Owner's pre-rental condition report. Submitted exactly once."""

    submission_id: UUID
    condition: ConditionAssessment
    photos: list[str] = Field(default_factory=list)
    notes: str = ""
    location: GPSLocation
    timestamp: datetime
    submitted_by: str
    submitted_at: datetime


class RenterPreReview(BaseSchema):
    """Renter's acceptance of the owner's pre-inspection."""

    submission_id: UUID
    accepted: bool
    concerns: list[str] = Field(default_factory=list)
    additional_requests: list[str] = Field(default_factory=list)
    timestamp: datetime


class DiscrepancyReport(BaseSchema):
    """Renter's disagreement with the owner's pre-inspection."""

    submission_id: UUID
    dispute_id: UUID
    issues: list[str]
    photos: list[str] = Field(default_factory=list)
    notes: str
    timestamp: datetime


class RenterPostInspectionData(BaseSchema):
    """Renter's return report, only possible once the booking has ended."""

    submission_id: UUID
    condition: ConditionAssessment
    return_photos: list[str]
    notes: str = ""
    return_location: GPSLocation
    timestamp: datetime
    confirmed: bool
    submitted_by: str
    submitted_at: datetime


class OwnerPostReview(BaseSchema):
    """Owner's single decision on the renter's return report."""

    submission_id: UUID
    accepted: bool
    confirmed_at: Optional[datetime] = None
    dispute_raised: bool = False
    dispute_type: Optional[DisputeType] = None
    dispute_reason: Optional[str] = None
    dispute_evidence: Optional[str] = None
    dispute_photos: list[str] = Field(default_factory=list)
    dispute_id: Optional[UUID] = None


class TransitionEvent(BaseSchema):
    """One applied action in the record's append-only history."""

    action: WorkflowAction
    from_status: InspectionStatus
    to_status: InspectionStatus
    party: Party
    actor_id: Optional[str] = None
    at: datetime
    note: Optional[str] = None


# --- Aggregate root ---

class InspectionRecord(BaseSchema, IDMixin, TimestampMixin):
    """The only writable aggregate of the workflow.

    ``status`` is the single discriminant callers branch on. The boolean
    flags of older clients are derived from it and never stored.
    """

    booking_id: str
    product_id: str
    owner_id: str
    renter_id: str
    inspector_id: Optional[str] = None
    inspection_type: InspectionType
    status: InspectionStatus = InspectionStatus.CREATED
    version: int = 0

    scheduled_at: Optional[datetime] = None
    location: Optional[str] = None
    notes: Optional[str] = None

    owner_pre_inspection_data: Optional[OwnerPreInspectionData] = None
    renter_pre_review: Optional[RenterPreReview] = None
    renter_discrepancy: Optional[DiscrepancyReport] = None
    renter_post_inspection_data: Optional[RenterPostInspectionData] = None
    owner_post_review: Optional[OwnerPostReview] = None
    disputes: list[Dispute] = Field(default_factory=list)

    # Third-party inspection
    is_third_party_inspection: bool = False
    inspection_tier: Optional[InspectionTier] = None
    inspection_cost_cents: Optional[int] = None
    currency: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    payment_receipt_id: Optional[str] = None

    history: list[TransitionEvent] = Field(default_factory=list)
    applied_action_ids: list[str] = Field(default_factory=list)
    closed_at: Optional[datetime] = None

    @computed_field
    @property
    def renter_pre_review_accepted(self) -> bool:
        return self.renter_pre_review is not None and self.renter_pre_review.accepted

    @computed_field
    @property
    def renter_discrepancy_reported(self) -> bool:
        return self.renter_discrepancy is not None

    @computed_field
    @property
    def renter_post_inspection_confirmed(self) -> bool:
        data = self.renter_post_inspection_data
        return data is not None and data.confirmed

    @computed_field
    @property
    def owner_post_review_accepted(self) -> bool:
        return self.owner_post_review is not None and self.owner_post_review.accepted

    @computed_field
    @property
    def owner_dispute_raised(self) -> bool:
        return self.owner_post_review is not None and self.owner_post_review.dispute_raised

    def get_dispute(self, dispute_id: UUID) -> Optional[Dispute]:
        for dispute in self.disputes:
            if dispute.id == dispute_id:
                return dispute
        return None


# --- Requests ---

class InspectionCreate(BaseSchema):
    """Request a new inspection for a booking."""

    booking_id: str = Field(..., min_length=1, max_length=255)
    product_id: str = Field(..., min_length=1, max_length=255)
    owner_id: str = Field(..., min_length=1, max_length=128)
    renter_id: str = Field(..., min_length=1, max_length=128)
    inspection_type: InspectionType = InspectionType.PRE_RENTAL
    scheduled_at: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None
    inspector_id: Optional[str] = Field(None, max_length=128)
    # Third-party inspection
    is_third_party_inspection: bool = False
    inspection_tier: Optional[InspectionTier] = None
    inspection_cost_cents: Optional[int] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

    @model_validator(mode="after")
    def validate_parties_and_pricing(self):
        """Owner and renter differ; third-party inspections carry a price."""
        if self.owner_id == self.renter_id:
            raise ValueError("owner_id and renter_id must differ")
        if self.is_third_party_inspection:
            if self.inspection_tier is None:
                raise ValueError("inspection_tier is required for third-party inspections")
            if self.inspection_cost_cents is None or not self.currency:
                raise ValueError("inspection_cost_cents and currency are required for third-party inspections")
        return self


class PreInspectionSubmit(BaseSchema):
    """Owner's pre-rental inspection payload."""

    condition: ConditionAssessment
    photos: list[PhotoInput] = Field(default_factory=list)
    notes: str = ""
    location: GPSLocation
    timestamp: Optional[datetime] = None


class PreReviewSubmit(BaseSchema):
    """Renter's review of a specific pre-inspection submission."""

    submission_id: UUID
    accepted: bool
    concerns: list[str] = Field(default_factory=list)
    additional_requests: list[str] = Field(default_factory=list)


class DiscrepancySubmit(BaseSchema):
    """Renter's discrepancy report against a specific pre-inspection submission."""

    submission_id: UUID
    issues: list[str] = Field(default_factory=list)
    photos: list[PhotoInput] = Field(default_factory=list)
    notes: str = ""
    dispute_type: DisputeType = DisputeType.CONDITION_DISAGREEMENT


class PostInspectionSubmit(BaseSchema):
    """Renter's post-rental (return) inspection payload."""

    condition: ConditionAssessment
    return_photos: list[PhotoInput] = Field(default_factory=list)
    notes: str = ""
    return_location: Optional[GPSLocation] = None
    confirmed: bool = False
    timestamp: Optional[datetime] = None


class PostReviewSubmit(BaseSchema):
    """Owner's decision on a specific post-inspection submission."""

    submission_id: UUID
    accepted: bool = False
    dispute_raised: bool = False
    dispute_type: Optional[DisputeType] = None
    dispute_reason: Optional[str] = None
    dispute_evidence: Optional[str] = None
    dispute_photos: list[PhotoInput] = Field(default_factory=list)


class InspectionPaymentRequest(BaseSchema):
    """Owner pays for a third-party inspection."""

    payment_method_id: str = Field(..., min_length=1, max_length=255)
    amount_cents: int = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3)
    provider: Optional[str] = Field(None, max_length=50)


# --- Responses ---

class EligibilityResponse(BaseSchema):
    """Whether the post-rental phase is open for an inspection."""

    inspection_id: UUID
    status: InspectionStatus
    post_inspection_eligible: bool
    eligible_at: Optional[datetime] = None
    payment_required: bool = False
    evaluated_at: datetime
