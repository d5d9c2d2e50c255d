"""Dispute schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from rental_inspections.schemas.base import BaseSchema, IDMixin
from rental_inspections.models.enums import (
    DisputeOutcome, DisputePhase, DisputeStatus, DisputeType, OPEN_DISPUTE_STATUSES,
)


class Dispute(BaseSchema, IDMixin):
    """A formal disagreement embedded in its inspection record.

    Append-only: resolution changes ``status`` and the resolution fields,
    never removes the dispute.
    """

    inspection_id: UUID
    phase: DisputePhase
    dispute_type: DisputeType
    reason: str = Field(..., min_length=1)
    evidence: Optional[str] = None
    photos: list[str] = Field(default_factory=list)
    status: DisputeStatus = DisputeStatus.PENDING
    raised_by: str
    created_at: datetime
    review_started_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolution_notes: Optional[str] = None
    agreed_amount_cents: Optional[int] = Field(None, ge=0)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_DISPUTE_STATUSES


class DisputeReviewRequest(BaseSchema):
    """Resolver picks a dispute up for review."""

    notes: Optional[str] = None


class DisputeResolveRequest(BaseSchema):
    """Outcome handed back by an inspector or admin."""

    outcome: DisputeOutcome
    resolution_notes: str = Field(..., min_length=1)
    agreed_amount_cents: Optional[int] = Field(None, ge=0)


class DisputeListResponse(BaseSchema):
    """Dispute queue for resolvers."""

    disputes: list[Dispute]
    total: int
