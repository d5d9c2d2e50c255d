"""Services for the rental inspection workflow."""

from rental_inspections.services.bookings import BookingLookup, HttpBookingLookup
from rental_inspections.services.notifications import HttpNotificationDispatcher, NotificationDispatcher
from rental_inspections.services.payments import HttpPaymentGateway, PaymentGateway
from rental_inspections.services.storage import AttachmentService, AttachmentStore, get_attachment_service
from rental_inspections.services.store import InspectionStore, SQLAlchemyInspectionStore
from rental_inspections.services.workflow import InspectionWorkflowService

__all__ = [
    "AttachmentService",
    "AttachmentStore",
    "get_attachment_service",
    "BookingLookup",
    "HttpBookingLookup",
    "PaymentGateway",
    "HttpPaymentGateway",
    "NotificationDispatcher",
    "HttpNotificationDispatcher",
    "InspectionStore",
    "SQLAlchemyInspectionStore",
    "InspectionWorkflowService",
]
