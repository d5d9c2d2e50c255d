"""Structured errors raised by the inspection workflow.

Every error carries a ``kind`` (stable, client-facing discriminator), a
human-readable ``message`` and, where applicable, the offending ``field``.
The HTTP layer maps kinds to status codes in one place (see ``main.py``).
"""

from datetime import datetime
from typing import Any, Optional


class InspectionWorkflowError(Exception):
    """Base class for all workflow errors."""

    kind: str = "WorkflowError"
    status_code: int = 400

    def __init__(self, message: str, field: Optional[str] = None, **context: Any):
        super().__init__(message)
        self.message = message
        self.field = field
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.field:
            payload["field"] = self.field
        for key, value in self.context.items():
            payload[key] = value.isoformat() if isinstance(value, datetime) else value
        return payload


class InspectionValidationError(InspectionWorkflowError):
    """Missing or malformed input (photo counts, empty reasons, missing location)."""

    kind = "ValidationError"
    status_code = 422


class InvalidTransition(InspectionWorkflowError):
    """The action is not legal from the record's current status."""

    kind = "InvalidTransition"
    status_code = 400


class NotEligible(InspectionWorkflowError):
    """Post-rental inspection attempted before the booking has ended."""

    kind = "NotEligible"
    status_code = 425

    def __init__(self, message: str, eligible_at: datetime):
        super().__init__(message, eligible_at=eligible_at)
        self.eligible_at = eligible_at


class StaleSubmission(InspectionWorkflowError):
    """The caller acted on a submission or version that is no longer current."""

    kind = "StaleSubmission"
    status_code = 409


class Conflict(InspectionWorkflowError):
    """Optimistic-concurrency failure reported by the inspection store."""

    kind = "Conflict"
    status_code = 409


class AlreadyProcessed(InspectionWorkflowError):
    """The submission has already received its single terminal decision."""

    kind = "AlreadyProcessed"
    status_code = 409


class UploadFailure(InspectionWorkflowError):
    """Attachment store could not persist one or more photos."""

    kind = "UploadFailure"
    status_code = 502


class PaymentRequired(InspectionWorkflowError):
    """Third-party inspection is blocked until its payment settles."""

    kind = "PaymentRequired"
    status_code = 402


class NotAuthorized(InspectionWorkflowError):
    """The actor is not the party allowed to perform the action."""

    kind = "NotAuthorized"
    status_code = 403


class InspectionNotFound(InspectionWorkflowError):
    kind = "InspectionNotFound"
    status_code = 404


class DisputeNotFound(InspectionWorkflowError):
    kind = "DisputeNotFound"
    status_code = 404


class UpstreamUnavailable(InspectionWorkflowError):
    """A required collaborator (bookings, payments) could not be reached."""

    kind = "UpstreamUnavailable"
    status_code = 503
