"""Tests for the inspection workflow orchestrator."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from rental_inspections.core.errors import (
    AlreadyProcessed, InspectionNotFound, InspectionValidationError, InvalidTransition, NotAuthorized,
    NotEligible, PaymentRequired, StaleSubmission, UploadFailure, UpstreamUnavailable,
)
from rental_inspections.models.enums import (
    DisputeOutcome, DisputePhase, DisputeStatus, InspectionStatus, InspectionTier, InspectionType,
    ItemCondition, NotificationEvent, PaymentStatus, WorkflowAction,
)
from rental_inspections.schemas.inspection import (
    DiscrepancySubmit, InspectionPaymentRequest, PostReviewSubmit, PreReviewSubmit,
)
from rental_inspections.services.workflow import drain_notifications
from tests.factories import (
    AFTER_END, BEFORE_END, BOOKING_END, CREATED_AT, INSPECTOR, OWNER, RENTER, STRANGER, create_request, photo,
    post_inspection, pre_inspection,
)
from tests.flows import dispute_review, drive_to

S = InspectionStatus


def third_party_request():
    return create_request(
        is_third_party_inspection=True,
        inspection_tier=InspectionTier.STANDARD,
        inspection_cost_cents=4900,
        currency="USD",
        inspector_id="inspector-9",
    )


# =============================================================================
# End-to-end scenarios
# =============================================================================

@pytest.mark.asyncio
async def test_scenario_accepted_return_closes_record(service, notifier):
    rec = await service.create_inspection(create_request(), OWNER, now=CREATED_AT)
    assert rec.status == S.PRE_PENDING

    rec = await service.submit_pre_inspection(rec.id, pre_inspection(photos=1), OWNER)
    assert rec.status == S.PRE_SUBMITTED
    assert rec.owner_pre_inspection_data.condition.overall_condition == ItemCondition.GOOD
    assert len(rec.owner_pre_inspection_data.condition.items) == 3
    assert len(rec.owner_pre_inspection_data.photos) == 1

    rec = await service.submit_pre_review(
        rec.id, PreReviewSubmit(submission_id=rec.owner_pre_inspection_data.submission_id, accepted=True), RENTER,
    )
    assert rec.status == S.PRE_ACCEPTED

    rec = await service.start_rental(rec.id, OWNER)
    assert rec.status == S.RENTAL_ACTIVE

    rec = await service.submit_post_inspection(rec.id, post_inspection(photos=2), RENTER, now=AFTER_END)
    assert rec.status == S.POST_SUBMITTED
    assert WorkflowAction.OPEN_POST_INSPECTION in [e.action for e in rec.history]

    rec = await service.submit_post_review(
        rec.id,
        PostReviewSubmit(submission_id=rec.renter_post_inspection_data.submission_id, accepted=True),
        OWNER,
        now=AFTER_END,
    )
    assert rec.status == S.CLOSED
    assert rec.closed_at == AFTER_END
    assert rec.owner_post_review_accepted
    await drain_notifications()
    assert notifier.events == [
        NotificationEvent.INSPECTION_CREATED,
        NotificationEvent.PRE_INSPECTION_SUBMITTED,
        NotificationEvent.PRE_INSPECTION_ACCEPTED,
        NotificationEvent.RENTAL_STARTED,
        NotificationEvent.POST_INSPECTION_SUBMITTED,
        NotificationEvent.POST_INSPECTION_ACCEPTED,
    ]


@pytest.mark.asyncio
async def test_scenario_post_review_dispute(service):
    rec = await drive_to(service, S.POST_SUBMITTED)

    rec = await service.submit_post_review(rec.id, dispute_review(rec), OWNER, now=AFTER_END)
    assert rec.status == S.POST_DISPUTED
    assert rec.owner_dispute_raised
    [dispute] = rec.disputes
    assert dispute.status == DisputeStatus.PENDING
    assert dispute.phase == DisputePhase.POST_RENTAL
    assert dispute.reason == "scratch on lens"
    assert rec.owner_post_review.dispute_id == dispute.id

    accept = PostReviewSubmit(submission_id=rec.renter_post_inspection_data.submission_id, accepted=True)
    with pytest.raises(InvalidTransition):
        await service.submit_post_review(rec.id, accept, OWNER)
    with pytest.raises(AlreadyProcessed):
        await service.submit_post_review(rec.id, dispute_review(rec, reason="again"), OWNER)

    rec = await service.review_dispute(dispute.id, INSPECTOR)
    assert rec.get_dispute(dispute.id).status == DisputeStatus.UNDER_REVIEW

    rec = await service.resolve_dispute(dispute.id, DisputeOutcome.RESOLVED, "Renter pays repair", INSPECTOR)
    assert rec.status == S.CLOSED
    assert rec.get_dispute(dispute.id).status == DisputeStatus.RESOLVED


@pytest.mark.asyncio
async def test_scenario_discrepancy_does_not_block_rental(service, attachments):
    rec = await drive_to(service, S.PRE_SUBMITTED)

    rec = await service.report_discrepancy(
        rec.id,
        DiscrepancySubmit(
            submission_id=rec.owner_pre_inspection_data.submission_id,
            issues=["dent on the grip", ""],
            notes="Grip is dented, not shown in photos",
            photos=[photo("dent.jpg")],
        ),
        RENTER,
    )
    assert rec.status == S.PRE_DISCREPANCY
    assert rec.renter_discrepancy_reported and not rec.renter_pre_review_accepted
    assert rec.renter_discrepancy.issues == ["dent on the grip"]
    [dispute] = rec.disputes
    assert dispute.phase == DisputePhase.PRE_RENTAL
    assert dispute.photos == rec.renter_discrepancy.photos

    rec = await service.start_rental(rec.id, RENTER)
    assert rec.status == S.RENTAL_ACTIVE

    rec = await service.submit_post_inspection(rec.id, post_inspection(), RENTER, now=AFTER_END)
    assert rec.status == S.POST_SUBMITTED
    assert rec.get_dispute(dispute.id).status == DisputeStatus.PENDING


# =============================================================================
# Eligibility
# =============================================================================

@pytest.mark.asyncio
async def test_post_inspection_before_booking_end_not_eligible(service, store):
    rec = await drive_to(service, S.RENTAL_ACTIVE)

    with pytest.raises(NotEligible) as exc_info:
        await service.submit_post_inspection(rec.id, post_inspection(), RENTER, now=BEFORE_END)
    assert exc_info.value.eligible_at == BOOKING_END
    assert store.records[rec.id].status == S.RENTAL_ACTIVE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "now,eligible",
    [
        (datetime(2026, 3, 1, 6, 59, 59, tzinfo=timezone(timedelta(hours=-5))), False),
        (datetime(2026, 3, 1, 7, 0, 0, tzinfo=timezone(timedelta(hours=-5))), True),
        (datetime(2026, 3, 1, 13, 59, 59, tzinfo=timezone(timedelta(hours=2))), False),
        (datetime(2026, 3, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2))), True),
    ],
)
async def test_eligibility_independent_of_offset(service, bookings, now, eligible):
    bookings.ends["booking-1"] = datetime(2026, 3, 1, 21, 0, 0, tzinfo=timezone(timedelta(hours=9)))
    rec = await drive_to(service, S.RENTAL_ACTIVE)

    if eligible:
        rec = await service.submit_post_inspection(rec.id, post_inspection(), RENTER, now=now)
        assert rec.status == S.POST_SUBMITTED
    else:
        with pytest.raises(NotEligible):
            await service.submit_post_inspection(rec.id, post_inspection(), RENTER, now=now)


@pytest.mark.asyncio
async def test_post_rental_type_is_eligible_before_booking_end(service, bookings):
    rec = await drive_to(service, S.RENTAL_ACTIVE, inspection_type=InspectionType.POST_RENTAL)
    rec = await service.submit_post_inspection(rec.id, post_inspection(), RENTER, now=BEFORE_END)
    assert rec.status == S.POST_SUBMITTED
    assert bookings.calls == []


@pytest.mark.asyncio
async def test_booking_service_down_surfaces(service, bookings, store):
    rec = await drive_to(service, S.RENTAL_ACTIVE)
    bookings.unavailable = True
    with pytest.raises(UpstreamUnavailable):
        await service.submit_post_inspection(rec.id, post_inspection(), RENTER, now=AFTER_END)
    assert store.records[rec.id].status == S.RENTAL_ACTIVE


@pytest.mark.asyncio
async def test_check_eligibility(service):
    rec = await drive_to(service, S.RENTAL_ACTIVE)

    before = await service.check_eligibility(rec.id, RENTER, now=BEFORE_END)
    assert not before.post_inspection_eligible
    assert before.eligible_at == BOOKING_END
    assert before.status == S.RENTAL_ACTIVE

    after = await service.check_eligibility(rec.id, OWNER, now=AFTER_END)
    assert after.post_inspection_eligible
    assert not after.payment_required


@pytest.mark.asyncio
async def test_check_eligibility_before_rental(service, bookings):
    rec = await drive_to(service, S.PRE_SUBMITTED)
    result = await service.check_eligibility(rec.id, RENTER, now=AFTER_END)
    assert not result.post_inspection_eligible
    assert bookings.calls == []


# =============================================================================
# Validation
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("count,ok", [(1, False), (2, True), (20, True), (21, False)])
async def test_return_photo_bounds(service, store, attachments, count, ok):
    rec = await drive_to(service, S.RENTAL_ACTIVE)
    uploaded_before = len(attachments.uploaded)

    if ok:
        rec = await service.submit_post_inspection(rec.id, post_inspection(photos=count), RENTER, now=AFTER_END)
        assert len(rec.renter_post_inspection_data.return_photos) == count
    else:
        with pytest.raises(InspectionValidationError) as exc_info:
            await service.submit_post_inspection(rec.id, post_inspection(photos=count), RENTER, now=AFTER_END)
        assert exc_info.value.field == "return_photos"
        assert store.records[rec.id].status == S.RENTAL_ACTIVE
        assert len(attachments.uploaded) == uploaded_before


@pytest.mark.asyncio
async def test_post_inspection_requires_location_and_confirmation(service):
    rec = await drive_to(service, S.RENTAL_ACTIVE)

    with pytest.raises(InspectionValidationError) as exc_info:
        await service.submit_post_inspection(
            rec.id, post_inspection(return_location=None), RENTER, now=AFTER_END,
        )
    assert exc_info.value.field == "return_location"

    with pytest.raises(InspectionValidationError) as exc_info:
        await service.submit_post_inspection(rec.id, post_inspection(confirmed=False), RENTER, now=AFTER_END)
    assert exc_info.value.field == "confirmed"


@pytest.mark.asyncio
async def test_already_stored_photo_urls_are_kept(service, attachments):
    rec = await drive_to(service, S.RENTAL_ACTIVE)
    data = post_inspection(photos=1)
    data.return_photos.append("https://media.test/already-there.jpg")

    rec = await service.submit_post_inspection(rec.id, data, RENTER, now=AFTER_END)
    assert rec.renter_post_inspection_data.return_photos[1] == "https://media.test/already-there.jpg"
    assert rec.renter_post_inspection_data.return_photos[0] in attachments.uploaded


@pytest.mark.asyncio
async def test_empty_dispute_reason_leaves_record_unchanged(service, store):
    rec = await drive_to(service, S.POST_SUBMITTED)

    with pytest.raises(InspectionValidationError) as exc_info:
        await service.submit_post_review(rec.id, dispute_review(rec, reason="   "), OWNER, now=AFTER_END)
    assert exc_info.value.field == "dispute_reason"

    current = store.records[rec.id]
    assert current.status == S.POST_SUBMITTED
    assert current.version == rec.version
    assert current.disputes == []


@pytest.mark.asyncio
async def test_post_review_must_decide(service):
    rec = await drive_to(service, S.POST_SUBMITTED)
    undecided = PostReviewSubmit(submission_id=rec.renter_post_inspection_data.submission_id)
    with pytest.raises(InspectionValidationError):
        await service.submit_post_review(rec.id, undecided, OWNER)


@pytest.mark.asyncio
async def test_discrepancy_requires_issues_and_notes(service):
    rec = await drive_to(service, S.PRE_SUBMITTED)
    submission_id = rec.owner_pre_inspection_data.submission_id

    with pytest.raises(InspectionValidationError) as exc_info:
        await service.report_discrepancy(
            rec.id, DiscrepancySubmit(submission_id=submission_id, issues=[" "], notes="dent"), RENTER,
        )
    assert exc_info.value.field == "issues"

    with pytest.raises(InspectionValidationError) as exc_info:
        await service.report_discrepancy(
            rec.id, DiscrepancySubmit(submission_id=submission_id, issues=["dent"], notes=""), RENTER,
        )
    assert exc_info.value.field == "notes"


@pytest.mark.asyncio
async def test_blank_discrepancy_issues_are_dropped(service):
    rec = await drive_to(service, S.PRE_SUBMITTED)
    rec = await service.report_discrepancy(
        rec.id,
        DiscrepancySubmit(
            submission_id=rec.owner_pre_inspection_data.submission_id, issues=["dent", "   "], notes="left side",
        ),
        RENTER,
    )
    assert rec.renter_discrepancy.issues == ["dent"]
    assert rec.disputes[0].evidence == "dent"


# =============================================================================
# Concurrency, idempotency and rollback
# =============================================================================

@pytest.mark.asyncio
async def test_concurrent_owner_accepts_exactly_one_wins(service, store):
    rec = await drive_to(service, S.POST_SUBMITTED)
    review = PostReviewSubmit(submission_id=rec.renter_post_inspection_data.submission_id, accepted=True)

    results = await asyncio.gather(
        service.submit_post_review(rec.id, review, OWNER, now=AFTER_END),
        service.submit_post_review(rec.id, review, OWNER, now=AFTER_END),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], (StaleSubmission, AlreadyProcessed))
    assert store.records[rec.id].status == S.CLOSED


@pytest.mark.asyncio
async def test_stale_submission_id_rejected(service):
    rec = await drive_to(service, S.PRE_SUBMITTED)

    with pytest.raises(StaleSubmission):
        await service.submit_pre_review(
            rec.id, PreReviewSubmit(submission_id=uuid.uuid4(), accepted=True), RENTER,
        )


@pytest.mark.asyncio
async def test_expected_version_mismatch(service):
    rec = await drive_to(service, S.PRE_PENDING)
    with pytest.raises(StaleSubmission):
        await service.submit_pre_inspection(rec.id, pre_inspection(), OWNER, expected_version=rec.version + 1)

    rec = await service.submit_pre_inspection(rec.id, pre_inspection(), OWNER, expected_version=rec.version)
    assert rec.status == S.PRE_SUBMITTED


@pytest.mark.asyncio
async def test_idempotent_retry_returns_applied_state(service, attachments, store):
    rec = await drive_to(service, S.PRE_PENDING)

    first = await service.submit_pre_inspection(rec.id, pre_inspection(photos=2), OWNER, idempotency_key="req-1")
    saves = store.saves
    second = await service.submit_pre_inspection(rec.id, pre_inspection(photos=2), OWNER, idempotency_key="req-1")

    assert second.version == first.version
    assert second.owner_pre_inspection_data.submission_id == first.owner_pre_inspection_data.submission_id
    assert store.saves == saves
    assert len(attachments.uploaded) == 2


@pytest.mark.asyncio
async def test_idempotency_key_is_scoped_to_actor_and_action(service, store):
    rec = await drive_to(service, S.PRE_PENDING)
    rec = await service.submit_pre_inspection(rec.id, pre_inspection(), OWNER, idempotency_key="1")
    assert rec.status == S.PRE_SUBMITTED

    with pytest.raises(NotAuthorized):
        await service.submit_pre_review(
            rec.id,
            PreReviewSubmit(submission_id=rec.owner_pre_inspection_data.submission_id, accepted=True),
            STRANGER,
            idempotency_key="1",
        )

    rec = await service.submit_pre_review(
        rec.id,
        PreReviewSubmit(submission_id=rec.owner_pre_inspection_data.submission_id, accepted=True),
        RENTER,
        idempotency_key="1",
    )
    assert rec.status == S.PRE_ACCEPTED
    assert store.records[rec.id].status == S.PRE_ACCEPTED


@pytest.mark.asyncio
async def test_resubmitting_pre_inspection_already_processed(service):
    rec = await drive_to(service, S.PRE_SUBMITTED)
    with pytest.raises(AlreadyProcessed):
        await service.submit_pre_inspection(rec.id, pre_inspection(), OWNER)


@pytest.mark.asyncio
async def test_upload_failure_rolls_back_successful_uploads(service, attachments, store):
    rec = await drive_to(service, S.RENTAL_ACTIVE)
    attachments.fail_on = {"broken.jpg"}
    data = post_inspection(photos=2)
    data.return_photos.append(photo("broken.jpg"))

    with pytest.raises(UploadFailure):
        await service.submit_post_inspection(rec.id, data, RENTER, now=AFTER_END)

    current = store.records[rec.id]
    assert current.status == S.RENTAL_ACTIVE
    assert current.renter_post_inspection_data is None
    assert len(attachments.deleted) == 2
    assert all(url not in attachments.live for url in attachments.deleted)


@pytest.mark.asyncio
async def test_conflicting_save_discards_uploads(service, attachments, store):
    rec = await drive_to(service, S.RENTAL_ACTIVE)
    real_save = store.save

    async def racing_save(record, expected_version):
        # Another writer bumps the version first
        current = store.records[record.id]
        store.records[record.id] = current.model_copy(update={"version": current.version + 1})
        return await real_save(record, expected_version)

    store.save = racing_save
    with pytest.raises(StaleSubmission):
        await service.submit_post_inspection(rec.id, post_inspection(photos=2), RENTER, now=AFTER_END)
    assert len(attachments.deleted) == 2


# =============================================================================
# Authorization, payment and notifications
# =============================================================================

@pytest.mark.asyncio
async def test_wrong_party_rejected(service):
    rec = await drive_to(service, S.PRE_PENDING)
    with pytest.raises(NotAuthorized):
        await service.submit_pre_inspection(rec.id, pre_inspection(), RENTER)
    with pytest.raises(NotAuthorized):
        await service.get_inspection(rec.id, STRANGER)


@pytest.mark.asyncio
async def test_only_owner_creates(service):
    with pytest.raises(NotAuthorized):
        await service.create_inspection(create_request(), RENTER)
    rec = await service.create_inspection(create_request(), INSPECTOR)
    assert rec.status == S.PRE_PENDING


@pytest.mark.asyncio
async def test_missing_inspection(service):
    with pytest.raises(InspectionNotFound):
        await service.get_inspection(uuid.uuid4(), OWNER)


@pytest.mark.asyncio
async def test_third_party_inspection_blocked_until_paid(service, payments):
    rec = await service.create_inspection(third_party_request(), OWNER, now=CREATED_AT)
    assert rec.status == S.CREATED
    assert rec.payment_status == PaymentStatus.PENDING_PAYMENT

    with pytest.raises(PaymentRequired):
        await service.submit_pre_inspection(rec.id, pre_inspection(), OWNER)

    eligibility = await service.check_eligibility(rec.id, OWNER)
    assert eligibility.payment_required

    rec = await service.pay_for_inspection(
        rec.id, InspectionPaymentRequest(payment_method_id="pm_1", amount_cents=4900, currency="usd"), OWNER,
    )
    assert rec.payment_status == PaymentStatus.PAID
    assert rec.payment_receipt_id == "rcpt_1"
    assert rec.status == S.PRE_PENDING
    assert len(payments.charges) == 1

    rec = await service.submit_pre_inspection(rec.id, pre_inspection(), OWNER)
    assert rec.status == S.PRE_SUBMITTED

    with pytest.raises(AlreadyProcessed):
        await service.pay_for_inspection(
            rec.id, InspectionPaymentRequest(payment_method_id="pm_1", amount_cents=4900, currency="USD"), OWNER,
        )


@pytest.mark.asyncio
async def test_payment_amount_must_match(service, payments):
    rec = await service.create_inspection(third_party_request(), OWNER)
    with pytest.raises(InspectionValidationError) as exc_info:
        await service.pay_for_inspection(
            rec.id, InspectionPaymentRequest(payment_method_id="pm_1", amount_cents=100, currency="USD"), OWNER,
        )
    assert exc_info.value.field == "amount_cents"
    assert payments.charges == []


@pytest.mark.asyncio
async def test_declined_payment_keeps_record_unpaid(service, payments, store):
    rec = await service.create_inspection(third_party_request(), OWNER)
    payments.decline = True
    with pytest.raises(PaymentRequired):
        await service.pay_for_inspection(
            rec.id, InspectionPaymentRequest(payment_method_id="pm_1", amount_cents=4900, currency="USD"), OWNER,
        )
    assert store.records[rec.id].payment_status == PaymentStatus.PENDING_PAYMENT


@pytest.mark.asyncio
async def test_self_assessed_inspection_cannot_be_paid(service):
    rec = await drive_to(service, S.PRE_PENDING)
    with pytest.raises(InspectionValidationError):
        await service.pay_for_inspection(
            rec.id, InspectionPaymentRequest(payment_method_id="pm_1", amount_cents=4900, currency="USD"), OWNER,
        )


@pytest.mark.asyncio
async def test_concurrent_payments_charge_once(service, payments, store):
    rec = await service.create_inspection(third_party_request(), OWNER, now=CREATED_AT)
    request = InspectionPaymentRequest(payment_method_id="pm_1", amount_cents=4900, currency="USD")

    results = await asyncio.gather(
        service.pay_for_inspection(rec.id, request, OWNER),
        service.pay_for_inspection(rec.id, request, OWNER),
        return_exceptions=True,
    )

    assert all(not isinstance(r, Exception) for r in results)
    assert len(payments.charges) == 1
    assert len(set(payments.charge_keys)) == 1
    stored = store.records[rec.id]
    assert stored.payment_status == PaymentStatus.PAID
    assert stored.status == S.PRE_PENDING
    assert [e.action for e in stored.history].count(WorkflowAction.CONFIRM_PAYMENT) == 1


@pytest.mark.asyncio
async def test_charge_that_lost_the_save_race_is_still_recorded(service, payments, store):
    rec = await service.create_inspection(third_party_request(), OWNER, now=CREATED_AT)
    original_save = store.save

    async def save_after_unrelated_write(record, expected_version):
        # Another writer bumps the version between the charge and this save
        store.save = original_save
        current = store.records[record.id]
        store.records[record.id] = current.model_copy(update={"version": current.version + 1})
        return await original_save(record, expected_version)

    store.save = save_after_unrelated_write
    rec = await service.pay_for_inspection(
        rec.id, InspectionPaymentRequest(payment_method_id="pm_1", amount_cents=4900, currency="USD"), OWNER,
    )

    assert rec.payment_status == PaymentStatus.PAID
    assert rec.payment_receipt_id == "rcpt_1"
    assert store.records[rec.id].payment_status == PaymentStatus.PAID
    assert len(payments.charges) == 1


@pytest.mark.asyncio
async def test_payment_captured_elsewhere_is_not_charged_again(service, payments):
    rec = await service.create_inspection(third_party_request(), OWNER, now=CREATED_AT)
    payments.settled.add(rec.id)

    rec = await service.pay_for_inspection(
        rec.id, InspectionPaymentRequest(payment_method_id="pm_1", amount_cents=4900, currency="USD"), OWNER,
    )
    assert rec.payment_status == PaymentStatus.PAID
    assert rec.status == S.PRE_PENDING
    assert payments.charges == []


@pytest.mark.asyncio
async def test_payment_gate_picks_up_external_settlement(service, payments, store):
    rec = await service.create_inspection(third_party_request(), OWNER, now=CREATED_AT)
    payments.settled.add(rec.id)

    rec = await service.submit_pre_inspection(rec.id, pre_inspection(), OWNER)
    assert rec.status == S.PRE_SUBMITTED
    assert rec.payment_status == PaymentStatus.PAID
    actions = [e.action for e in rec.history]
    assert actions[-3:] == [
        WorkflowAction.CONFIRM_PAYMENT, WorkflowAction.OPEN_PRE_INSPECTION, WorkflowAction.SUBMIT_PRE_INSPECTION,
    ]
    assert store.records[rec.id].payment_status == PaymentStatus.PAID
    assert payments.charges == []


@pytest.mark.asyncio
async def test_notification_failure_does_not_fail_transition(service, notifier):
    notifier.fail = True
    rec = await drive_to(service, S.PRE_SUBMITTED)
    assert rec.status == S.PRE_SUBMITTED
    await drain_notifications()
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_slow_notifier_does_not_hold_up_transition(service, notifier):
    notifier.delay = 10
    rec = await asyncio.wait_for(service.create_inspection(create_request(), OWNER), timeout=0.2)
    assert rec.status == S.PRE_PENDING
    assert notifier.sent == []

    # Delivery is still bounded by the notification timeout
    await drain_notifications()
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_list_disputes_resolver_only(service):
    rec = await drive_to(service, S.POST_SUBMITTED)
    await service.submit_post_review(rec.id, dispute_review(rec), OWNER)

    with pytest.raises(NotAuthorized):
        await service.list_disputes(OWNER)

    pending = await service.list_disputes(INSPECTOR, DisputeStatus.PENDING)
    assert len(pending) == 1
    assert await service.list_disputes(INSPECTOR, DisputeStatus.RESOLVED) == []


@pytest.mark.asyncio
async def test_rejected_dispute_keeps_record_disputed(service):
    rec = await drive_to(service, S.POST_SUBMITTED)
    rec = await service.submit_post_review(rec.id, dispute_review(rec), OWNER)
    dispute_id = rec.disputes[0].id

    rec = await service.resolve_dispute(dispute_id, DisputeOutcome.REJECTED, "No damage visible", INSPECTOR)
    assert rec.status == S.POST_DISPUTED
    assert rec.disputes[0].status == DisputeStatus.REJECTED


@pytest.mark.asyncio
async def test_parties_cannot_resolve_disputes(service):
    rec = await drive_to(service, S.POST_SUBMITTED)
    rec = await service.submit_post_review(rec.id, dispute_review(rec), OWNER)
    with pytest.raises(NotAuthorized):
        await service.resolve_dispute(rec.disputes[0].id, DisputeOutcome.RESOLVED, "mine", OWNER)
