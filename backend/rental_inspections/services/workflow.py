"""Inspection workflow orchestrator.

The only component that talks to collaborators. Every mutating operation
runs the same pipeline:

1. load the record and resolve the acting party (replaying a request whose
   idempotency key this actor already applied for this action)
2. check version, payment gate and state machine preconditions
3. validate the payload synchronously
4. upload new photos in parallel
5. apply the transition and save it conditioned on the loaded version
6. notify in the background, best-effort

Photos uploaded for a request that does not end up persisted are deleted
again, so the store never holds evidence without a record referencing it.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from rental_inspections.core.config import WorkflowPolicy
from rental_inspections.core.errors import (
    AlreadyProcessed, Conflict, DisputeNotFound, InspectionNotFound, InspectionValidationError,
    InspectionWorkflowError, InvalidTransition, NotAuthorized, PaymentRequired, StaleSubmission,
    UploadFailure,
)
from rental_inspections.models.enums import (
    DisputeOutcome, DisputePhase, DisputeStatus, InspectionStatus, NotificationEvent, Party,
    PaymentStatus, WorkflowAction,
)
from rental_inspections.schemas.actor import Actor
from rental_inspections.schemas.condition import PhotoInput, PhotoUpload
from rental_inspections.schemas.dispute import Dispute
from rental_inspections.schemas.inspection import (
    DiscrepancyReport, DiscrepancySubmit, EligibilityResponse, InspectionCreate,
    InspectionPaymentRequest, InspectionRecord, OwnerPostReview, OwnerPreInspectionData,
    PostInspectionSubmit, PostReviewSubmit, PreInspectionSubmit, PreReviewSubmit,
    RenterPostInspectionData, RenterPreReview,
)
from rental_inspections.services import disputes, state_machine, validation
from rental_inspections.services.bookings import BookingLookup
from rental_inspections.services.eligibility import (
    ensure_payment_settled, is_post_return_inspection, is_third_party_payable, payment_settled,
    post_phase_open, utcnow,
)
from rental_inspections.services.notifications import NotificationDispatcher
from rental_inspections.services.payments import PaymentGateway, PaymentReceipt
from rental_inspections.services.storage import AttachmentStore
from rental_inspections.services.store import InspectionStore

logger = logging.getLogger(__name__)

# Statuses in which the post-rental gate has already been passed
POST_PHASE_STATUSES = frozenset({
    InspectionStatus.POST_ELIGIBLE,
    InspectionStatus.POST_SUBMITTED,
    InspectionStatus.POST_ACCEPTED,
    InspectionStatus.POST_DISPUTED,
    InspectionStatus.CLOSED,
})

# Re-applications of a request whose effect outlived a lost save race
RECONCILE_ATTEMPTS = 3

# Deliveries still in flight; the event loop only keeps weak references to tasks
_pending_notifications: set[asyncio.Task] = set()


@dataclass
class ActionContext:
    """Everything an apply step may read."""

    record: InspectionRecord
    party: Party
    actor: Actor
    now: datetime
    urls: dict[str, list[str]] = field(default_factory=dict)
    prepared: Any = None


Apply = Callable[[ActionContext], InspectionRecord]
Reconcile = Callable[[ActionContext], Optional[InspectionRecord]]


class InspectionWorkflowService:
    """Drives inspection records through their lifecycle."""

    def __init__(
        self,
        store: InspectionStore,
        attachments: AttachmentStore,
        bookings: BookingLookup,
        payments: PaymentGateway,
        notifier: NotificationDispatcher,
        policy: Optional[WorkflowPolicy] = None,
    ):
        self.store = store
        self.attachments = attachments
        self.bookings = bookings
        self.payments = payments
        self.notifier = notifier
        self.policy = policy or WorkflowPolicy()

    # --- Loading ---

    async def _load(self, inspection_id: UUID) -> InspectionRecord:
        record = await self.store.get(inspection_id)
        if record is None:
            raise InspectionNotFound(f"Inspection {inspection_id} not found", inspection_id=str(inspection_id))
        return record

    async def _load_by_dispute(self, dispute_id: UUID) -> InspectionRecord:
        record = await self.store.get_by_dispute(dispute_id)
        if record is None:
            raise DisputeNotFound(f"Dispute {dispute_id} not found", dispute_id=str(dispute_id))
        return record

    # --- Pipeline ---

    async def _execute(
        self,
        load: Callable[[], Awaitable[InspectionRecord]],
        actor: Actor,
        action: WorkflowAction,
        apply: Apply,
        *,
        photos: Optional[dict[str, list[PhotoInput]]] = None,
        validate: Optional[Callable[[], None]] = None,
        submission_id: Optional[UUID] = None,
        prepare: Optional[Callable[[ActionContext], Awaitable[Any]]] = None,
        reconcile: Optional[Reconcile] = None,
        expected_version: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
        event: Optional[NotificationEvent] = None,
        recipients: Optional[Callable[[InspectionRecord], list[str]]] = None,
    ) -> InspectionRecord:
        now = now or utcnow()
        record = await load()
        party = state_machine.resolve_party(record, actor)

        token = None
        if idempotency_key:
            token = state_machine.idempotency_token(action, actor.user_id, idempotency_key)
            if token in record.applied_action_ids:
                logger.info(f"[WORKFLOW] Replayed {action.value} on {record.id} ({idempotency_key})")
                return record

        if expected_version is not None and expected_version != record.version:
            raise StaleSubmission(
                "Inspection has changed since it was read; refetch and decide again",
                expected_version=expected_version,
                current_version=record.version,
            )

        if party in (Party.OWNER, Party.RENTER) and action != WorkflowAction.CONFIRM_PAYMENT:
            record = await self._settle_payment_gate(record, now)

        if action == WorkflowAction.SUBMIT_POST_INSPECTION and party == Party.RENTER:
            record = await self._open_post_phase(record, now)

        try:
            state_machine.ensure_allowed(record, action, party)
            if submission_id is not None:
                state_machine.ensure_current_submission(record, action, submission_id)
            if validate is not None:
                validate()
        except InspectionWorkflowError as e:
            logger.info(f"[WORKFLOW] Rejected {action.value} on {record.id}: {e.kind} {e.message}")
            raise

        ctx = ActionContext(record=record, party=party, actor=actor, now=now)
        if prepare is not None:
            ctx.prepared = await prepare(ctx)

        ctx.urls, uploaded = await self._upload_all(record.id, photos or {})
        try:
            updated = apply(ctx)
        except InspectionWorkflowError:
            await self._discard(uploaded)
            raise
        if token:
            updated = state_machine.mark_applied(updated, token)

        try:
            saved = await self.store.save(updated, record.version)
        except Conflict as e:
            await self._discard(uploaded)
            saved, applied = await self._after_conflict(load, ctx, reconcile, token, e)
            if not applied:
                return saved

        logger.info(
            f"[WORKFLOW] {action.value} by {party.value} on {saved.id}: "
            f"{record.status.value} -> {saved.status.value} (v{saved.version})"
        )
        if event is not None:
            self._notify(event, recipients(saved) if recipients else [], saved)
        return saved

    async def _after_conflict(
        self,
        load: Callable[[], Awaitable[InspectionRecord]],
        ctx: ActionContext,
        reconcile: Optional[Reconcile],
        token: Optional[str],
        error: Conflict,
    ) -> tuple[InspectionRecord, bool]:
        """Settle a lost save race.

        Returns the stored record and whether this request wrote it. A request
        whose effect already happened outside the store (a captured charge) is
        re-applied onto the latest version through ``reconcile``; anything
        else must be decided again by the caller.
        """
        latest = await load()
        for _ in range(RECONCILE_ATTEMPTS):
            if token and token in latest.applied_action_ids:
                return latest, False
            if reconcile is None:
                break
            ctx.record = latest
            updated = reconcile(ctx)
            if updated is None:
                return latest, False
            if token:
                updated = state_machine.mark_applied(updated, token)
            try:
                return await self.store.save(updated, latest.version), True
            except Conflict:
                latest = await load()
        raise StaleSubmission(
            "Inspection was modified concurrently; refetch and decide again",
            current_version=latest.version,
        ) from error

    async def _settle_payment_gate(self, record: InspectionRecord, now: datetime) -> InspectionRecord:
        """Block unpaid third-party inspections, picking up payments captured elsewhere."""
        if payment_settled(record, self.policy):
            return record
        status = await self.payments.get_inspection_payment_status(record.id)
        if status == PaymentStatus.PAID:
            logger.info(f"[PAYMENTS] Inspection {record.id} was paid outside this service; recording it")
            record = state_machine.confirm_payment(record, None, Party.SYSTEM, None, now)
        ensure_payment_settled(record, self.policy)
        return record

    async def _open_post_phase(self, record: InspectionRecord, now: datetime) -> InspectionRecord:
        """Evaluate the eligibility gate lazily, at the moment of the attempt."""
        if record.status != InspectionStatus.RENTAL_ACTIVE:
            return record
        booking_end = None
        if not is_post_return_inspection(record):
            booking = await self.bookings.get_booking(record.booking_id)
            booking_end = booking.end_at
        return state_machine.open_post_inspection(record, booking_end, now)

    async def _upload_all(
        self,
        inspection_id: UUID,
        photos: dict[str, list[PhotoInput]],
    ) -> tuple[dict[str, list[str]], list[str]]:
        """Upload every pending photo concurrently; all or nothing."""
        pending: list[tuple[str, int, PhotoUpload]] = []
        urls: dict[str, list[Optional[str]]] = {}
        for category, inputs in photos.items():
            urls[category] = []
            for index, photo in enumerate(inputs):
                if isinstance(photo, PhotoUpload):
                    urls[category].append(None)
                    pending.append((category, index, photo))
                else:
                    urls[category].append(photo)

        results = await asyncio.gather(
            *(self.attachments.upload(photo, inspection_id, category) for category, _, photo in pending),
            return_exceptions=True,
        )
        uploaded = [r for r in results if isinstance(r, str)]
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.warning(
                f"[WORKFLOW] {len(failures)} of {len(pending)} uploads failed for {inspection_id}; "
                f"rolling back {len(uploaded)}"
            )
            await self._discard(uploaded)
            failure = failures[0]
            if isinstance(failure, InspectionWorkflowError):
                raise failure
            raise UploadFailure("Photo upload failed", field="photos") from failure

        for (category, index, _), url in zip(pending, results):
            urls[category][index] = url
        return {category: list(values) for category, values in urls.items()}, uploaded

    async def _discard(self, uploaded: list[str]) -> None:
        if not uploaded:
            return
        logger.info(f"[WORKFLOW] Discarding {len(uploaded)} unreferenced uploads")
        await asyncio.gather(*(self.attachments.delete(url) for url in uploaded), return_exceptions=True)

    def _notify(self, event: NotificationEvent, recipients: list[str], record: InspectionRecord) -> None:
        """Schedule delivery without holding up the request."""
        payload = {
            "inspection_id": str(record.id),
            "booking_id": record.booking_id,
            "status": record.status.value,
        }
        task = asyncio.create_task(self._deliver(event, recipients, payload, record.id))
        _pending_notifications.add(task)
        task.add_done_callback(_pending_notifications.discard)

    async def _deliver(
        self,
        event: NotificationEvent,
        recipients: list[str],
        payload: dict[str, Any],
        inspection_id: UUID,
    ) -> None:
        try:
            await asyncio.wait_for(
                self.notifier.notify(event, recipients, payload),
                timeout=self.policy.notification_timeout_seconds,
            )
        except Exception as e:
            logger.warning(f"[NOTIFY] {event.value} for {inspection_id} not delivered: {e}")

    # --- Creation and reads ---

    async def create_inspection(
        self,
        data: InspectionCreate,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> InspectionRecord:
        """Owner (or a resolver on their behalf) requests an inspection."""
        if actor.user_id != data.owner_id and not actor.is_resolver:
            raise NotAuthorized("Only the owner can request an inspection for this booking")
        now = now or utcnow()
        record = InspectionRecord(
            id=uuid.uuid4(),
            created_at=now,
            updated_at=now,
            payment_status=PaymentStatus.PENDING_PAYMENT if data.is_third_party_inspection else None,
            **data.model_dump(),
        )
        if payment_settled(record, self.policy):
            record = state_machine.open_pre_inspection(record, now)

        created = await self.store.create(record)
        logger.info(f"[WORKFLOW] Created inspection {created.id} for booking {created.booking_id} ({created.status.value})")
        self._notify(
            NotificationEvent.INSPECTION_CREATED,
            [p for p in (created.renter_id, created.inspector_id) if p],
            created,
        )
        return created

    async def get_inspection(self, inspection_id: UUID, actor: Actor) -> InspectionRecord:
        record = await self._load(inspection_id)
        state_machine.resolve_party(record, actor)
        return record

    async def check_eligibility(
        self,
        inspection_id: UUID,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> EligibilityResponse:
        """Report whether a post-rental inspection could be submitted now."""
        now = now or utcnow()
        record = await self._load(inspection_id)
        state_machine.resolve_party(record, actor)

        eligible_at = None
        if record.status == InspectionStatus.RENTAL_ACTIVE:
            if not is_post_return_inspection(record):
                eligible_at = (await self.bookings.get_booking(record.booking_id)).end_at
            eligible = post_phase_open(record, eligible_at, now)
        else:
            eligible = record.status in POST_PHASE_STATUSES

        return EligibilityResponse(
            inspection_id=record.id,
            status=record.status,
            post_inspection_eligible=eligible,
            eligible_at=eligible_at,
            payment_required=not payment_settled(record, self.policy),
            evaluated_at=now,
        )

    # --- Pre-rental phase ---

    async def submit_pre_inspection(
        self,
        inspection_id: UUID,
        data: PreInspectionSubmit,
        actor: Actor,
        expected_version: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InspectionRecord:
        def apply(ctx: ActionContext) -> InspectionRecord:
            submission = OwnerPreInspectionData(
                submission_id=uuid.uuid4(),
                condition=data.condition,
                photos=ctx.urls["pre"],
                notes=data.notes,
                location=data.location,
                timestamp=data.timestamp or ctx.now,
                submitted_by=ctx.actor.user_id,
                submitted_at=ctx.now,
            )
            return state_machine.submit_pre_inspection(ctx.record, submission, ctx.party, ctx.now)

        return await self._execute(
            lambda: self._load(inspection_id), actor, WorkflowAction.SUBMIT_PRE_INSPECTION, apply,
            photos={"pre": data.photos},
            validate=lambda: validation.validate_pre_inspection(data, self.policy),
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            now=now,
            event=NotificationEvent.PRE_INSPECTION_SUBMITTED,
            recipients=lambda r: [r.renter_id],
        )

    async def submit_pre_review(
        self,
        inspection_id: UUID,
        data: PreReviewSubmit,
        actor: Actor,
        expected_version: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InspectionRecord:
        def apply(ctx: ActionContext) -> InspectionRecord:
            review = RenterPreReview(
                submission_id=data.submission_id,
                accepted=True,
                concerns=data.concerns,
                additional_requests=data.additional_requests,
                timestamp=ctx.now,
            )
            return state_machine.accept_pre_inspection(ctx.record, review, ctx.party, ctx.actor.user_id, ctx.now)

        return await self._execute(
            lambda: self._load(inspection_id), actor, WorkflowAction.ACCEPT_PRE_INSPECTION, apply,
            validate=lambda: validation.validate_pre_review(data),
            submission_id=data.submission_id,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            now=now,
            event=NotificationEvent.PRE_INSPECTION_ACCEPTED,
            recipients=lambda r: [r.owner_id],
        )

    async def report_discrepancy(
        self,
        inspection_id: UUID,
        data: DiscrepancySubmit,
        actor: Actor,
        expected_version: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InspectionRecord:
        def apply(ctx: ActionContext) -> InspectionRecord:
            issues = validation.non_blank(data.issues)
            dispute = disputes.new_dispute(
                inspection_id=ctx.record.id,
                phase=DisputePhase.PRE_RENTAL,
                dispute_type=data.dispute_type,
                reason=data.notes,
                raised_by=ctx.actor.user_id,
                now=ctx.now,
                policy=self.policy,
                evidence="\n".join(issues),
                photos=ctx.urls["discrepancy"],
            )
            report = DiscrepancyReport(
                submission_id=data.submission_id,
                dispute_id=dispute.id,
                issues=issues,
                photos=ctx.urls["discrepancy"],
                notes=data.notes,
                timestamp=ctx.now,
            )
            return state_machine.report_discrepancy(
                ctx.record, report, dispute, ctx.party, ctx.actor.user_id, ctx.now,
            )

        return await self._execute(
            lambda: self._load(inspection_id), actor, WorkflowAction.REPORT_DISCREPANCY, apply,
            photos={"discrepancy": data.photos},
            validate=lambda: validation.validate_discrepancy(data, self.policy),
            submission_id=data.submission_id,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            now=now,
            event=NotificationEvent.DISCREPANCY_REPORTED,
            recipients=lambda r: [p for p in (r.owner_id, r.inspector_id) if p],
        )

    async def start_rental(
        self,
        inspection_id: UUID,
        actor: Actor,
        expected_version: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InspectionRecord:
        """The rental proceeds whatever the pre-review outcome was."""
        return await self._execute(
            lambda: self._load(inspection_id), actor, WorkflowAction.START_RENTAL,
            lambda ctx: state_machine.start_rental(ctx.record, ctx.party, ctx.actor.user_id, ctx.now),
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            now=now,
            event=NotificationEvent.RENTAL_STARTED,
            recipients=lambda r: [r.owner_id, r.renter_id],
        )

    # --- Post-rental phase ---

    async def submit_post_inspection(
        self,
        inspection_id: UUID,
        data: PostInspectionSubmit,
        actor: Actor,
        expected_version: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InspectionRecord:
        def apply(ctx: ActionContext) -> InspectionRecord:
            submission = RenterPostInspectionData(
                submission_id=uuid.uuid4(),
                condition=data.condition,
                return_photos=ctx.urls["return"],
                notes=data.notes,
                return_location=data.return_location,
                timestamp=data.timestamp or ctx.now,
                confirmed=data.confirmed,
                submitted_by=ctx.actor.user_id,
                submitted_at=ctx.now,
            )
            return state_machine.submit_post_inspection(ctx.record, submission, ctx.party, ctx.now)

        return await self._execute(
            lambda: self._load(inspection_id), actor, WorkflowAction.SUBMIT_POST_INSPECTION, apply,
            photos={"return": data.return_photos},
            validate=lambda: validation.validate_post_inspection(data, self.policy),
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            now=now,
            event=NotificationEvent.POST_INSPECTION_SUBMITTED,
            recipients=lambda r: [r.owner_id],
        )

    async def submit_post_review(
        self,
        inspection_id: UUID,
        data: PostReviewSubmit,
        actor: Actor,
        expected_version: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InspectionRecord:
        """Owner accepts the return (closing the record) or raises a dispute."""
        action = WorkflowAction.ACCEPT_POST_INSPECTION if data.accepted else WorkflowAction.RAISE_DISPUTE

        def apply(ctx: ActionContext) -> InspectionRecord:
            if data.accepted:
                review = OwnerPostReview(submission_id=data.submission_id, accepted=True, confirmed_at=ctx.now)
                return state_machine.accept_post_inspection(
                    ctx.record, review, ctx.party, ctx.actor.user_id, ctx.now,
                )
            dispute = disputes.new_dispute(
                inspection_id=ctx.record.id,
                phase=DisputePhase.POST_RENTAL,
                dispute_type=data.dispute_type,
                reason=data.dispute_reason,
                raised_by=ctx.actor.user_id,
                now=ctx.now,
                policy=self.policy,
                evidence=data.dispute_evidence,
                photos=ctx.urls["dispute"],
            )
            review = OwnerPostReview(
                submission_id=data.submission_id,
                accepted=False,
                dispute_raised=True,
                dispute_type=data.dispute_type,
                dispute_reason=dispute.reason,
                dispute_evidence=data.dispute_evidence,
                dispute_photos=ctx.urls["dispute"],
                dispute_id=dispute.id,
            )
            return state_machine.raise_post_dispute(
                ctx.record, review, dispute, ctx.party, ctx.actor.user_id, ctx.now,
            )

        if data.accepted:
            event = NotificationEvent.POST_INSPECTION_ACCEPTED
        else:
            event = NotificationEvent.DISPUTE_RAISED
        return await self._execute(
            lambda: self._load(inspection_id), actor, action, apply,
            photos={"dispute": data.dispute_photos} if data.dispute_raised else None,
            validate=lambda: validation.validate_post_review(data, self.policy),
            submission_id=data.submission_id,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            now=now,
            event=event,
            recipients=lambda r: [p for p in (r.renter_id, r.inspector_id) if p],
        )

    # --- Payment ---

    async def pay_for_inspection(
        self,
        inspection_id: UUID,
        data: InspectionPaymentRequest,
        actor: Actor,
        expected_version: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InspectionRecord:
        """Charge a third-party inspection and open it once paid.

        The charge carries a key derived from the record version it was
        decided against, so concurrent or retried requests capture at most
        once. A charge that loses the save race is still recorded.
        """

        async def charge(ctx: ActionContext) -> PaymentReceipt:
            record = ctx.record
            if not record.is_third_party_inspection:
                raise InspectionValidationError(
                    "Only third-party inspections are paid for",
                    field="is_third_party_inspection",
                )
            if record.payment_status == PaymentStatus.PAID:
                raise AlreadyProcessed("Inspection is already paid")
            if not is_third_party_payable(record):
                raise InvalidTransition(
                    f"Payment is {record.payment_status.value}", field="payment_status",
                )
            if record.inspection_cost_cents is not None and data.amount_cents != record.inspection_cost_cents:
                raise InspectionValidationError(
                    f"Amount must equal the inspection cost of {record.inspection_cost_cents}",
                    field="amount_cents",
                )
            if record.currency and data.currency.upper() != record.currency.upper():
                raise InspectionValidationError(
                    f"Currency must be {record.currency}", field="currency",
                )

            if await self.payments.get_inspection_payment_status(record.id) == PaymentStatus.PAID:
                logger.info(f"[PAYMENTS] Inspection {record.id} already captured; skipping charge")
                return PaymentReceipt(status=PaymentStatus.PAID, amount_cents=data.amount_cents, currency=data.currency)

            receipt = await self.payments.charge(
                record.id, data.payment_method_id, data.amount_cents, data.currency, data.provider,
                idempotency_key=f"inspection-payment:{record.id}:v{record.version}:{data.payment_method_id}",
            )
            logger.info(f"[PAYMENTS] Inspection {record.id} charge {receipt.status.value} ({receipt.receipt_id})")
            if receipt.status != PaymentStatus.PAID:
                raise PaymentRequired(
                    f"Payment {receipt.status.value}", field="payment_method_id", payment_status=receipt.status.value,
                )
            return receipt

        def confirm(ctx: ActionContext) -> InspectionRecord:
            return state_machine.confirm_payment(
                ctx.record, ctx.prepared.receipt_id, ctx.party, ctx.actor.user_id, ctx.now,
            )

        def record_captured(ctx: ActionContext) -> Optional[InspectionRecord]:
            if ctx.record.payment_status == PaymentStatus.PAID:
                return None
            logger.info(f"[PAYMENTS] Recording charge for {ctx.record.id} on v{ctx.record.version} after a lost race")
            return confirm(ctx)

        return await self._execute(
            lambda: self._load(inspection_id), actor, WorkflowAction.CONFIRM_PAYMENT, confirm,
            prepare=charge,
            reconcile=record_captured,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            now=now,
            event=NotificationEvent.INSPECTION_PAID,
            recipients=lambda r: [p for p in (r.owner_id, r.renter_id, r.inspector_id) if p],
        )

    # --- Disputes ---

    async def list_disputes(self, actor: Actor, status: Optional[DisputeStatus] = None) -> list[Dispute]:
        """Dispute queue, visible to inspectors and admins only."""
        if not actor.is_resolver:
            raise NotAuthorized("Only inspectors and admins can list disputes")
        return await self.store.list_disputes(status)

    async def review_dispute(
        self,
        dispute_id: UUID,
        actor: Actor,
        notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InspectionRecord:
        """pending -> under_review."""
        return await self._execute(
            lambda: self._load_by_dispute(dispute_id), actor, WorkflowAction.REVIEW_DISPUTE,
            lambda ctx: disputes.start_review(
                ctx.record, dispute_id, ctx.party, ctx.actor.user_id, ctx.now, notes=notes,
            ),
            idempotency_key=idempotency_key,
            now=now,
            event=NotificationEvent.DISPUTE_UNDER_REVIEW,
            recipients=lambda r: [r.owner_id, r.renter_id],
        )

    async def resolve_dispute(
        self,
        dispute_id: UUID,
        outcome: DisputeOutcome,
        resolution_notes: str,
        actor: Actor,
        agreed_amount_cents: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InspectionRecord:
        """Apply an externally decided outcome to a dispute."""
        if outcome == DisputeOutcome.RESOLVED:
            event = NotificationEvent.DISPUTE_RESOLVED
        else:
            event = NotificationEvent.DISPUTE_REJECTED
        return await self._execute(
            lambda: self._load_by_dispute(dispute_id), actor, WorkflowAction.RESOLVE_DISPUTE,
            lambda ctx: disputes.resolve(
                ctx.record, dispute_id, outcome, resolution_notes, agreed_amount_cents,
                ctx.party, ctx.actor.user_id, ctx.now,
            ),
            idempotency_key=idempotency_key,
            now=now,
            event=event,
            recipients=lambda r: [r.owner_id, r.renter_id],
        )


async def drain_notifications() -> None:
    """Wait for notification deliveries started on the running loop."""
    loop = asyncio.get_running_loop()
    pending = [task for task in _pending_notifications if task.get_loop() is loop]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
