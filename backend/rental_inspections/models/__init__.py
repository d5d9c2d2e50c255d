"""SQLAlchemy models for the inspection workflow."""

from rental_inspections.models.inspection import InspectionRecordRow, InspectionDisputeRow

__all__ = [
    "InspectionRecordRow",
    "InspectionDisputeRow",
]
