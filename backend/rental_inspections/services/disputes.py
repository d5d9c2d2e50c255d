"""Dispute subsystem.

Disputes are appended to their inspection record and never removed. Their
resolution is decided outside this service (inspector or admin) and handed
back through ``resolve``.
"""

import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from rental_inspections.core.config import WorkflowPolicy
from rental_inspections.core.errors import DisputeNotFound, InspectionValidationError, InvalidTransition
from rental_inspections.models.enums import (
    DisputeOutcome, DisputePhase, DisputeStatus, DisputeType, InspectionStatus, Party, WorkflowAction,
)
from rental_inspections.schemas.dispute import Dispute
from rental_inspections.schemas.inspection import InspectionRecord
from rental_inspections.services import state_machine
from rental_inspections.services.validation import validate_dispute_fields


def new_dispute(
    inspection_id: UUID,
    phase: DisputePhase,
    dispute_type: Optional[DisputeType],
    reason: Optional[str],
    raised_by: str,
    now: datetime,
    policy: WorkflowPolicy,
    evidence: Optional[str] = None,
    photos: Optional[list[str]] = None,
    dispute_id: Optional[UUID] = None,
) -> Dispute:
    """Build a pending dispute after checking type, reason and photo count."""
    photos = photos or []
    validate_dispute_fields(dispute_type, reason, len(photos), policy)
    return Dispute(
        id=dispute_id or uuid.uuid4(),
        inspection_id=inspection_id,
        phase=phase,
        dispute_type=dispute_type,
        reason=reason.strip(),
        evidence=evidence,
        photos=photos,
        status=DisputeStatus.PENDING,
        raised_by=raised_by,
        created_at=now,
    )


def _find(record: InspectionRecord, dispute_id: UUID) -> Dispute:
    dispute = record.get_dispute(dispute_id)
    if dispute is None:
        raise DisputeNotFound(f"Dispute {dispute_id} not found", dispute_id=str(dispute_id))
    return dispute


def start_review(
    record: InspectionRecord,
    dispute_id: UUID,
    party: Party,
    actor_id: str,
    now: datetime,
    notes: Optional[str] = None,
) -> InspectionRecord:
    """pending -> under_review."""
    state_machine.ensure_allowed(record, WorkflowAction.REVIEW_DISPUTE, party)
    dispute = _find(record, dispute_id)
    if dispute.status != DisputeStatus.PENDING:
        raise InvalidTransition(
            f"Dispute is {dispute.status.value}; only pending disputes can be reviewed",
            status=dispute.status.value,
        )
    reviewed = dispute.model_copy(update={"status": DisputeStatus.UNDER_REVIEW, "review_started_at": now})
    return state_machine.record_dispute_update(
        record, WorkflowAction.REVIEW_DISPUTE, reviewed, party, actor_id, now, note=notes,
    )


def resolve(
    record: InspectionRecord,
    dispute_id: UUID,
    outcome: DisputeOutcome,
    resolution_notes: str,
    agreed_amount_cents: Optional[int],
    party: Party,
    actor_id: str,
    now: datetime,
) -> InspectionRecord:
    """Apply an external resolution to an open dispute.

    A resolved post-rental dispute closes the record. A rejected one leaves
    the record disputed so that a fresh decision can follow. Pre-rental
    discrepancies never move the record; the rental has already proceeded.
    """
    state_machine.ensure_allowed(record, WorkflowAction.RESOLVE_DISPUTE, party)
    dispute = _find(record, dispute_id)
    if not dispute.is_open:
        raise InvalidTransition(
            f"Dispute is already {dispute.status.value}",
            status=dispute.status.value,
        )
    if not resolution_notes or not resolution_notes.strip():
        raise InspectionValidationError("Resolution notes are required", field="resolution_notes")

    status = DisputeStatus.RESOLVED if outcome == DisputeOutcome.RESOLVED else DisputeStatus.REJECTED
    settled = dispute.model_copy(update={
        "status": status,
        "resolved_at": now,
        "resolved_by": actor_id,
        "resolution_notes": resolution_notes.strip(),
        "agreed_amount_cents": agreed_amount_cents,
    })
    updated = state_machine.record_dispute_update(
        record, WorkflowAction.RESOLVE_DISPUTE, settled, party, actor_id, now,
    )
    if (
        outcome == DisputeOutcome.RESOLVED
        and dispute.phase == DisputePhase.POST_RENTAL
        and updated.status == InspectionStatus.POST_DISPUTED
    ):
        updated = state_machine.close(updated, now, note="dispute resolved")
    return updated
