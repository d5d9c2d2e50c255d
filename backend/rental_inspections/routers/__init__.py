"""API Routers for the rental inspection workflow."""

from rental_inspections.routers.inspections import router as inspections_router
from rental_inspections.routers.disputes import router as disputes_router

__all__ = [
    "inspections_router",
    "disputes_router",
]
