"""Inspection state machine.

Pure transition logic: every function takes the current record plus the
incoming party action and returns a new record, or raises. Nothing here does
I/O; the workflow service owns loading, uploads, persistence and
notifications.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from rental_inspections.core.errors import (
    AlreadyProcessed, InvalidTransition, NotAuthorized, NotEligible, StaleSubmission,
)
from rental_inspections.models.enums import InspectionStatus, Party, PaymentStatus, WorkflowAction
from rental_inspections.schemas.actor import Actor
from rental_inspections.schemas.dispute import Dispute
from rental_inspections.schemas.inspection import (
    DiscrepancyReport, InspectionRecord, OwnerPostReview, OwnerPreInspectionData,
    RenterPostInspectionData, RenterPreReview, TransitionEvent,
)
from rental_inspections.services.eligibility import post_phase_open

S = InspectionStatus
ALL_STATUSES = frozenset(InspectionStatus)
NOT_CLOSED = ALL_STATUSES - {S.CLOSED}


@dataclass(frozen=True)
class Transition:
    """Who may perform an action, from which statuses, and where it leads.

    ``target`` is None for actions that record a fact without moving the
    record (payment confirmation, dispute bookkeeping).
    """

    parties: frozenset[Party]
    sources: frozenset[InspectionStatus]
    target: Optional[InspectionStatus]


def _t(parties, sources, target) -> Transition:
    return Transition(frozenset(parties), frozenset(sources), target)


TRANSITIONS: dict[WorkflowAction, Transition] = {
    WorkflowAction.OPEN_PRE_INSPECTION: _t({Party.SYSTEM}, {S.CREATED}, S.PRE_PENDING),
    WorkflowAction.SUBMIT_PRE_INSPECTION: _t({Party.OWNER}, {S.PRE_PENDING}, S.PRE_SUBMITTED),
    WorkflowAction.ACCEPT_PRE_INSPECTION: _t({Party.RENTER}, {S.PRE_SUBMITTED}, S.PRE_ACCEPTED),
    WorkflowAction.REPORT_DISCREPANCY: _t({Party.RENTER}, {S.PRE_SUBMITTED}, S.PRE_DISCREPANCY),
    WorkflowAction.START_RENTAL: _t(
        {Party.SYSTEM, Party.OWNER, Party.RENTER}, {S.PRE_ACCEPTED, S.PRE_DISCREPANCY}, S.RENTAL_ACTIVE,
    ),
    WorkflowAction.OPEN_POST_INSPECTION: _t({Party.SYSTEM}, {S.RENTAL_ACTIVE}, S.POST_ELIGIBLE),
    WorkflowAction.SUBMIT_POST_INSPECTION: _t({Party.RENTER}, {S.POST_ELIGIBLE}, S.POST_SUBMITTED),
    WorkflowAction.ACCEPT_POST_INSPECTION: _t({Party.OWNER}, {S.POST_SUBMITTED}, S.POST_ACCEPTED),
    WorkflowAction.RAISE_DISPUTE: _t({Party.OWNER}, {S.POST_SUBMITTED}, S.POST_DISPUTED),
    WorkflowAction.CLOSE: _t({Party.SYSTEM}, {S.POST_ACCEPTED, S.POST_DISPUTED}, S.CLOSED),
    WorkflowAction.CONFIRM_PAYMENT: _t({Party.OWNER, Party.SYSTEM}, NOT_CLOSED, None),
    WorkflowAction.REVIEW_DISPUTE: _t({Party.RESOLVER}, ALL_STATUSES, None),
    WorkflowAction.RESOLVE_DISPUTE: _t({Party.RESOLVER}, ALL_STATUSES, None),
}

# Actions taken at most once per record; repeating one is reported as
# AlreadyProcessed rather than as an illegal move.
ONCE_ONLY = frozenset({
    WorkflowAction.SUBMIT_PRE_INSPECTION,
    WorkflowAction.ACCEPT_PRE_INSPECTION,
    WorkflowAction.REPORT_DISCREPANCY,
    WorkflowAction.SUBMIT_POST_INSPECTION,
    WorkflowAction.ACCEPT_POST_INSPECTION,
    WorkflowAction.RAISE_DISPUTE,
})


def resolve_party(record: InspectionRecord, actor: Actor) -> Party:
    """Map an actor onto the role it plays for this record."""
    if actor.user_id == record.owner_id:
        return Party.OWNER
    if actor.user_id == record.renter_id:
        return Party.RENTER
    if actor.is_resolver or (record.inspector_id and actor.user_id == record.inspector_id):
        return Party.RESOLVER
    raise NotAuthorized("Actor is not a party to this inspection")


def has_applied(record: InspectionRecord, action: WorkflowAction) -> bool:
    return any(event.action == action for event in record.history)


def ensure_allowed(record: InspectionRecord, action: WorkflowAction, party: Party) -> Transition:
    """Reject the action unless ``party`` may take it from the current status."""
    transition = TRANSITIONS[action]
    if party not in transition.parties:
        raise NotAuthorized(f"{party.value} cannot perform {action.value}")
    if record.status not in transition.sources:
        if action in ONCE_ONLY and has_applied(record, action):
            raise AlreadyProcessed(f"{action.value} has already been processed for this inspection")
        raise InvalidTransition(
            f"Cannot {action.value} while inspection is {record.status.value}",
            status=record.status.value,
        )
    return transition


def ensure_current_submission(record: InspectionRecord, action: WorkflowAction, submission_id: UUID) -> None:
    """A party may only act on the other party's most recent submission."""
    if action in (WorkflowAction.ACCEPT_PRE_INSPECTION, WorkflowAction.REPORT_DISCREPANCY):
        current = record.owner_pre_inspection_data
    elif action in (WorkflowAction.ACCEPT_POST_INSPECTION, WorkflowAction.RAISE_DISPUTE):
        current = record.renter_post_inspection_data
    else:
        return
    if current is None:
        raise InvalidTransition(f"No submission to review for {action.value}", field="submission_id")
    if current.submission_id != submission_id:
        raise StaleSubmission(
            "Submission is not the latest; refetch the inspection and decide again",
            field="submission_id",
            current_submission_id=str(current.submission_id),
        )


def _advance(
    record: InspectionRecord,
    action: WorkflowAction,
    party: Party,
    actor_id: Optional[str],
    now: datetime,
    note: Optional[str] = None,
    **changes: Any,
) -> InspectionRecord:
    transition = ensure_allowed(record, action, party)
    target = transition.target or record.status
    event = TransitionEvent(
        action=action,
        from_status=record.status,
        to_status=target,
        party=party,
        actor_id=actor_id,
        at=now,
        note=note,
    )
    return record.model_copy(update={
        **changes,
        "status": target,
        "history": [*record.history, event],
        "updated_at": now,
    })


def idempotency_token(action: WorkflowAction, actor_id: str, key: str) -> str:
    """A client key only replays the same action by the same actor."""
    return f"{action.value}:{actor_id}:{key}"


def mark_applied(record: InspectionRecord, token: str) -> InspectionRecord:
    """Remember the idempotency token of the request that produced this state."""
    return record.model_copy(update={"applied_action_ids": [*record.applied_action_ids, token]})


# --- Transitions ---

def open_pre_inspection(record: InspectionRecord, now: datetime) -> InspectionRecord:
    return _advance(record, WorkflowAction.OPEN_PRE_INSPECTION, Party.SYSTEM, None, now)


def submit_pre_inspection(
    record: InspectionRecord,
    data: OwnerPreInspectionData,
    party: Party,
    now: datetime,
) -> InspectionRecord:
    if record.owner_pre_inspection_data is not None:
        raise AlreadyProcessed("Pre-inspection already submitted and is immutable")
    return _advance(
        record, WorkflowAction.SUBMIT_PRE_INSPECTION, party, data.submitted_by, now,
        owner_pre_inspection_data=data,
    )


def accept_pre_inspection(
    record: InspectionRecord,
    review: RenterPreReview,
    party: Party,
    actor_id: str,
    now: datetime,
) -> InspectionRecord:
    ensure_allowed(record, WorkflowAction.ACCEPT_PRE_INSPECTION, party)
    ensure_current_submission(record, WorkflowAction.ACCEPT_PRE_INSPECTION, review.submission_id)
    return _advance(
        record, WorkflowAction.ACCEPT_PRE_INSPECTION, party, actor_id, now,
        renter_pre_review=review,
    )


def report_discrepancy(
    record: InspectionRecord,
    report: DiscrepancyReport,
    dispute: Dispute,
    party: Party,
    actor_id: str,
    now: datetime,
) -> InspectionRecord:
    ensure_allowed(record, WorkflowAction.REPORT_DISCREPANCY, party)
    ensure_current_submission(record, WorkflowAction.REPORT_DISCREPANCY, report.submission_id)
    return _advance(
        record, WorkflowAction.REPORT_DISCREPANCY, party, actor_id, now,
        renter_discrepancy=report,
        disputes=[*record.disputes, dispute],
    )


def start_rental(record: InspectionRecord, party: Party, actor_id: Optional[str], now: datetime) -> InspectionRecord:
    """The rental proceeds whether the pre-inspection was accepted or disputed."""
    return _advance(record, WorkflowAction.START_RENTAL, party, actor_id, now)


def open_post_inspection(
    record: InspectionRecord,
    booking_end: Optional[datetime],
    now: datetime,
) -> InspectionRecord:
    """Eligibility gate: RENTAL_ACTIVE -> POST_ELIGIBLE once the booking ended."""
    ensure_allowed(record, WorkflowAction.OPEN_POST_INSPECTION, Party.SYSTEM)
    if not post_phase_open(record, booking_end, now):
        raise NotEligible(
            "Post-rental inspection opens when the booking ends",
            eligible_at=booking_end,
        )
    return _advance(record, WorkflowAction.OPEN_POST_INSPECTION, Party.SYSTEM, None, now)


def submit_post_inspection(
    record: InspectionRecord,
    data: RenterPostInspectionData,
    party: Party,
    now: datetime,
) -> InspectionRecord:
    if record.renter_post_inspection_data is not None:
        raise AlreadyProcessed("Post-inspection already submitted and is immutable")
    return _advance(
        record, WorkflowAction.SUBMIT_POST_INSPECTION, party, data.submitted_by, now,
        renter_post_inspection_data=data,
    )


def accept_post_inspection(
    record: InspectionRecord,
    review: OwnerPostReview,
    party: Party,
    actor_id: str,
    now: datetime,
) -> InspectionRecord:
    """Owner acceptance closes the rental record automatically."""
    ensure_allowed(record, WorkflowAction.ACCEPT_POST_INSPECTION, party)
    ensure_current_submission(record, WorkflowAction.ACCEPT_POST_INSPECTION, review.submission_id)
    accepted = _advance(
        record, WorkflowAction.ACCEPT_POST_INSPECTION, party, actor_id, now,
        owner_post_review=review,
    )
    return close(accepted, now, note="post-inspection accepted")


def raise_post_dispute(
    record: InspectionRecord,
    review: OwnerPostReview,
    dispute: Dispute,
    party: Party,
    actor_id: str,
    now: datetime,
) -> InspectionRecord:
    ensure_allowed(record, WorkflowAction.RAISE_DISPUTE, party)
    ensure_current_submission(record, WorkflowAction.RAISE_DISPUTE, review.submission_id)
    return _advance(
        record, WorkflowAction.RAISE_DISPUTE, party, actor_id, now,
        owner_post_review=review,
        disputes=[*record.disputes, dispute],
    )


def close(record: InspectionRecord, now: datetime, note: Optional[str] = None) -> InspectionRecord:
    return _advance(record, WorkflowAction.CLOSE, Party.SYSTEM, None, now, note=note, closed_at=now)


def confirm_payment(
    record: InspectionRecord,
    receipt_id: Optional[str],
    party: Party,
    actor_id: Optional[str],
    now: datetime,
) -> InspectionRecord:
    """Record a settled payment; an unopened inspection opens right away."""
    paid = _advance(
        record, WorkflowAction.CONFIRM_PAYMENT, party, actor_id, now,
        note=receipt_id,
        payment_status=PaymentStatus.PAID,
        payment_receipt_id=receipt_id,
    )
    if paid.status == S.CREATED:
        paid = open_pre_inspection(paid, now)
    return paid


def record_dispute_update(
    record: InspectionRecord,
    action: WorkflowAction,
    dispute: Dispute,
    party: Party,
    actor_id: str,
    now: datetime,
    note: Optional[str] = None,
) -> InspectionRecord:
    """Replace one embedded dispute, keeping the list order and history."""
    disputes = [dispute if d.id == dispute.id else d for d in record.disputes]
    note = f"{dispute.id}: {note}" if note else str(dispute.id)
    return _advance(record, action, party, actor_id, now, note=note, disputes=disputes)
