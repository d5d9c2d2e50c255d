"""Disputes router - resolver queue and outcomes."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from rental_inspections.core.security import get_current_actor
from rental_inspections.models.enums import DisputeStatus
from rental_inspections.routers.deps import get_idempotency_key, get_workflow_service, set_etag
from rental_inspections.schemas.actor import Actor
from rental_inspections.schemas.dispute import DisputeListResponse, DisputeResolveRequest, DisputeReviewRequest
from rental_inspections.schemas.inspection import InspectionRecord
from rental_inspections.services.workflow import InspectionWorkflowService

router = APIRouter(prefix="/disputes", tags=["disputes"])


@router.get("", response_model=DisputeListResponse)
async def list_disputes(
    status: Optional[DisputeStatus] = None,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
):
    """List disputes, optionally filtered by status. Inspectors and admins only."""
    disputes = await service.list_disputes(actor, status)
    return DisputeListResponse(disputes=disputes, total=len(disputes))


@router.post("/{dispute_id}/review", response_model=InspectionRecord)
async def review_dispute(
    dispute_id: UUID,
    data: DisputeReviewRequest,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    """Pick a pending dispute up for review."""
    record = await service.review_dispute(
        dispute_id, actor, notes=data.notes, idempotency_key=idempotency_key,
    )
    return set_etag(response, record)


@router.post("/{dispute_id}/resolve", response_model=InspectionRecord)
async def resolve_dispute(
    dispute_id: UUID,
    data: DisputeResolveRequest,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    """Record the outcome of a dispute decided by an inspector or admin."""
    record = await service.resolve_dispute(
        dispute_id,
        data.outcome,
        data.resolution_notes,
        actor,
        agreed_amount_cents=data.agreed_amount_cents,
        idempotency_key=idempotency_key,
    )
    return set_etag(response, record)
