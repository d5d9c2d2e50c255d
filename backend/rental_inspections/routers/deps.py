"""Router dependencies: workflow service wiring and concurrency headers."""

from typing import Optional

from fastapi import Depends, Header, Response
from sqlalchemy.ext.asyncio import AsyncSession

from rental_inspections.core.config import Settings, get_settings
from rental_inspections.core.database import get_db
from rental_inspections.core.errors import InspectionValidationError
from rental_inspections.schemas.inspection import InspectionRecord
from rental_inspections.services.bookings import HttpBookingLookup
from rental_inspections.services.notifications import HttpNotificationDispatcher
from rental_inspections.services.payments import HttpPaymentGateway
from rental_inspections.services.storage import get_attachment_service
from rental_inspections.services.store import SQLAlchemyInspectionStore
from rental_inspections.services.workflow import InspectionWorkflowService


async def get_workflow_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> InspectionWorkflowService:
    """Build the orchestrator for one request. Overridden in tests."""
    return InspectionWorkflowService(
        store=SQLAlchemyInspectionStore(db),
        attachments=get_attachment_service(),
        bookings=HttpBookingLookup(settings.bookings_api_url, timeout=settings.upstream_timeout_seconds),
        payments=HttpPaymentGateway(settings.payments_api_url, timeout=settings.upstream_timeout_seconds),
        notifier=HttpNotificationDispatcher(
            settings.notifications_api_url,
            timeout=settings.notification_timeout_seconds,
        ),
        policy=settings.workflow_policy(),
    )


def get_expected_version(if_match: Optional[str] = Header(None)) -> Optional[int]:
    """Parse an ``If-Match`` header carrying a record version (quoted or weak)."""
    if not if_match or if_match.strip() == "*":
        return None
    value = if_match.strip()
    if value.startswith("W/"):
        value = value[2:]
    value = value.strip('"')
    try:
        return int(value)
    except ValueError:
        raise InspectionValidationError("If-Match must carry an inspection version", field="If-Match")


def get_idempotency_key(idempotency_key: Optional[str] = Header(None, max_length=255)) -> Optional[str]:
    return idempotency_key.strip() if idempotency_key and idempotency_key.strip() else None


def set_etag(response: Response, record: InspectionRecord) -> InspectionRecord:
    response.headers["ETag"] = f'"{record.version}"'
    return record
