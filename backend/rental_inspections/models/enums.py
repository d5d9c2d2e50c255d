"""Enumeration types for the inspection workflow domain model."""

from enum import Enum


class InspectionType(str, Enum):
    """Type of inspection."""
    PRE_RENTAL = "pre_rental"
    POST_RENTAL = "post_rental"  # explicit post-return flag
    DAMAGE_ASSESSMENT = "damage_assessment"
    MAINTENANCE_CHECK = "maintenance_check"
    QUALITY_VERIFICATION = "quality_verification"


class InspectionStatus(str, Enum):
    """Single discriminant for where an inspection record is in its lifecycle."""
    CREATED = "created"
    PRE_PENDING = "pre_pending"            # Waiting for owner pre-inspection
    PRE_SUBMITTED = "pre_submitted"        # Waiting for renter review
    PRE_ACCEPTED = "pre_accepted"
    PRE_DISCREPANCY = "pre_discrepancy"    # Renter disagreed, logged for arbitration
    RENTAL_ACTIVE = "rental_active"
    POST_ELIGIBLE = "post_eligible"        # Booking end reached
    POST_SUBMITTED = "post_submitted"      # Waiting for owner review
    POST_ACCEPTED = "post_accepted"
    POST_DISPUTED = "post_disputed"        # Waiting for external resolution
    CLOSED = "closed"


class ItemCondition(str, Enum):
    """Condition of an item, accessory or the whole product."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    DAMAGED = "damaged"


class DisputeType(str, Enum):
    """Category of a dispute or discrepancy."""
    DAMAGE_ASSESSMENT = "damage_assessment"
    CONDITION_DISAGREEMENT = "condition_disagreement"
    COST_DISPUTE = "cost_dispute"
    PROCEDURE_VIOLATION = "procedure_violation"
    OTHER = "other"


class DisputeStatus(str, Enum):
    """Status of a dispute. Resolution updates status, never deletes."""
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    REJECTED = "rejected"


OPEN_DISPUTE_STATUSES = frozenset({DisputeStatus.PENDING, DisputeStatus.UNDER_REVIEW})


class DisputeOutcome(str, Enum):
    """Result handed back by an external resolver."""
    RESOLVED = "resolved"
    REJECTED = "rejected"


class DisputePhase(str, Enum):
    """Which exchange a dispute was raised against."""
    PRE_RENTAL = "pre_rental"
    POST_RENTAL = "post_rental"


class Party(str, Enum):
    """Who is acting on an inspection record."""
    OWNER = "owner"
    RENTER = "renter"
    RESOLVER = "resolver"  # inspector or admin
    SYSTEM = "system"


class InspectionTier(str, Enum):
    """Third-party inspection service level."""
    STANDARD = "standard"
    ADVANCED = "advanced"


class PaymentStatus(str, Enum):
    """Payment state of a third-party inspection."""
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    FAILED = "failed"


class WorkflowAction(str, Enum):
    """Actions the state machine understands."""
    OPEN_PRE_INSPECTION = "open_pre_inspection"
    SUBMIT_PRE_INSPECTION = "submit_pre_inspection"
    ACCEPT_PRE_INSPECTION = "accept_pre_inspection"
    REPORT_DISCREPANCY = "report_discrepancy"
    START_RENTAL = "start_rental"
    OPEN_POST_INSPECTION = "open_post_inspection"
    SUBMIT_POST_INSPECTION = "submit_post_inspection"
    ACCEPT_POST_INSPECTION = "accept_post_inspection"
    RAISE_DISPUTE = "raise_dispute"
    CLOSE = "close"
    REVIEW_DISPUTE = "review_dispute"
    RESOLVE_DISPUTE = "resolve_dispute"
    CONFIRM_PAYMENT = "confirm_payment"


class NotificationEvent(str, Enum):
    """Events emitted to the notification dispatcher."""
    INSPECTION_CREATED = "inspection_created"
    INSPECTION_PAID = "inspection_paid"
    PRE_INSPECTION_SUBMITTED = "pre_inspection_submitted"
    PRE_INSPECTION_ACCEPTED = "pre_inspection_accepted"
    DISCREPANCY_REPORTED = "discrepancy_reported"
    RENTAL_STARTED = "rental_started"
    POST_INSPECTION_SUBMITTED = "post_inspection_submitted"
    POST_INSPECTION_ACCEPTED = "post_inspection_accepted"
    DISPUTE_RAISED = "dispute_raised"
    DISPUTE_UNDER_REVIEW = "dispute_under_review"
    DISPUTE_RESOLVED = "dispute_resolved"
    DISPUTE_REJECTED = "dispute_rejected"
