"""Eligibility gates for the post-rental phase and third-party inspections.

Timezone policy: every comparison happens on UTC instants truncated to whole
seconds. Naive datetimes are interpreted as UTC. Calendar components are
never compared individually.
"""

from datetime import datetime, timezone
from typing import Optional

from rental_inspections.core.config import WorkflowPolicy
from rental_inspections.core.errors import PaymentRequired
from rental_inspections.models.enums import InspectionType, PaymentStatus
from rental_inspections.schemas.inspection import InspectionRecord


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_instant(value: datetime) -> datetime:
    """Convert to an aware UTC instant at second precision."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def is_post_inspection_eligible(booking_end: datetime, now: datetime) -> bool:
    """True iff the booking's end instant is at or before ``now``."""
    return normalize_instant(booking_end) <= normalize_instant(now)


def is_post_return_inspection(record: InspectionRecord) -> bool:
    """The explicit post-return flag carried by the inspection type."""
    return record.inspection_type == InspectionType.POST_RENTAL


def post_phase_open(record: InspectionRecord, booking_end: Optional[datetime], now: datetime) -> bool:
    """Either signal opens the post-rental phase; both are never required."""
    if is_post_return_inspection(record):
        return True
    if booking_end is None:
        return False
    return is_post_inspection_eligible(booking_end, now)


def is_third_party_payable(record: InspectionRecord) -> bool:
    """A third-party inspection that has been quoted and not yet charged."""
    return record.is_third_party_inspection and record.payment_status == PaymentStatus.PENDING_PAYMENT


def payment_settled(record: InspectionRecord, policy: WorkflowPolicy) -> bool:
    if not record.is_third_party_inspection or not policy.third_party_requires_payment:
        return True
    return record.payment_status == PaymentStatus.PAID


def ensure_payment_settled(record: InspectionRecord, policy: WorkflowPolicy) -> None:
    """Block owner/renter actions on an unpaid third-party inspection."""
    if not payment_settled(record, policy):
        raise PaymentRequired(
            "Third-party inspection must be paid before submissions or reviews",
            field="payment_status",
            payment_status=record.payment_status.value if record.payment_status else None,
            inspection_cost_cents=record.inspection_cost_cents,
            currency=record.currency,
        )
