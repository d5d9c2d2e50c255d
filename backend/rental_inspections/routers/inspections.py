"""Inspections router - pre/post rental condition workflow."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from rental_inspections.core.security import get_current_actor
from rental_inspections.routers.deps import (
    get_expected_version, get_idempotency_key, get_workflow_service, set_etag,
)
from rental_inspections.schemas.actor import Actor
from rental_inspections.schemas.inspection import (
    DiscrepancySubmit,
    EligibilityResponse,
    InspectionCreate,
    InspectionPaymentRequest,
    InspectionRecord,
    PostInspectionSubmit,
    PostReviewSubmit,
    PreInspectionSubmit,
    PreReviewSubmit,
)
from rental_inspections.services.workflow import InspectionWorkflowService

router = APIRouter(prefix="/inspections", tags=["inspections"])


@router.post("", response_model=InspectionRecord, status_code=status.HTTP_201_CREATED)
async def create_inspection(
    data: InspectionCreate,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
):
    """Request an inspection for a booking.

    Self-assessed inspections open for the owner's pre-inspection right away;
    third-party inspections wait for payment.
    """
    record = await service.create_inspection(data, actor)
    return set_etag(response, record)


@router.get("/{inspection_id}", response_model=InspectionRecord)
async def get_inspection(
    inspection_id: UUID,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
):
    """Get an inspection record with its embedded submissions and disputes."""
    record = await service.get_inspection(inspection_id, actor)
    return set_etag(response, record)


@router.get("/{inspection_id}/eligibility", response_model=EligibilityResponse)
async def get_eligibility(
    inspection_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
):
    """Whether the post-rental inspection can be submitted now."""
    return await service.check_eligibility(inspection_id, actor)


@router.post("/{inspection_id}/pre-inspection", response_model=InspectionRecord)
async def submit_pre_inspection(
    inspection_id: UUID,
    data: PreInspectionSubmit,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
    expected_version: Optional[int] = Depends(get_expected_version),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    """Owner documents the item's condition before handover."""
    record = await service.submit_pre_inspection(
        inspection_id, data, actor,
        expected_version=expected_version,
        idempotency_key=idempotency_key,
    )
    return set_etag(response, record)


@router.post("/{inspection_id}/pre-review", response_model=InspectionRecord)
async def submit_pre_review(
    inspection_id: UUID,
    data: PreReviewSubmit,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
    expected_version: Optional[int] = Depends(get_expected_version),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    """Renter accepts the owner's pre-inspection."""
    record = await service.submit_pre_review(
        inspection_id, data, actor,
        expected_version=expected_version,
        idempotency_key=idempotency_key,
    )
    return set_etag(response, record)


@router.post("/{inspection_id}/discrepancy", response_model=InspectionRecord)
async def report_discrepancy(
    inspection_id: UUID,
    data: DiscrepancySubmit,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
    expected_version: Optional[int] = Depends(get_expected_version),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    """Renter disagrees with the owner's pre-inspection."""
    record = await service.report_discrepancy(
        inspection_id, data, actor,
        expected_version=expected_version,
        idempotency_key=idempotency_key,
    )
    return set_etag(response, record)


@router.post("/{inspection_id}/rental-start", response_model=InspectionRecord)
async def start_rental(
    inspection_id: UUID,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
    expected_version: Optional[int] = Depends(get_expected_version),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    record = await service.start_rental(
        inspection_id, actor,
        expected_version=expected_version,
        idempotency_key=idempotency_key,
    )
    return set_etag(response, record)


@router.post("/{inspection_id}/post-inspection", response_model=InspectionRecord)
async def submit_post_inspection(
    inspection_id: UUID,
    data: PostInspectionSubmit,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
    expected_version: Optional[int] = Depends(get_expected_version),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    """Renter documents the item's condition on return."""
    record = await service.submit_post_inspection(
        inspection_id, data, actor,
        expected_version=expected_version,
        idempotency_key=idempotency_key,
    )
    return set_etag(response, record)


@router.post("/{inspection_id}/post-review", response_model=InspectionRecord)
async def submit_post_review(
    inspection_id: UUID,
    data: PostReviewSubmit,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
    expected_version: Optional[int] = Depends(get_expected_version),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    """Owner accepts the return or raises a dispute."""
    record = await service.submit_post_review(
        inspection_id, data, actor,
        expected_version=expected_version,
        idempotency_key=idempotency_key,
    )
    return set_etag(response, record)


@router.post("/{inspection_id}/pay", response_model=InspectionRecord)
async def pay_for_inspection(
    inspection_id: UUID,
    data: InspectionPaymentRequest,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: InspectionWorkflowService = Depends(get_workflow_service),
    expected_version: Optional[int] = Depends(get_expected_version),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    """Owner pays for a third-party inspection."""
    record = await service.pay_for_inspection(
        inspection_id, data, actor,
        expected_version=expected_version,
        idempotency_key=idempotency_key,
    )
    return set_etag(response, record)
