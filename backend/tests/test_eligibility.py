"""Tests for the post-rental eligibility gate and the payment gate."""

from datetime import datetime, timedelta, timezone

import pytest

from rental_inspections.core.config import WorkflowPolicy
from rental_inspections.core.errors import PaymentRequired
from rental_inspections.models.enums import InspectionType, PaymentStatus
from rental_inspections.services.eligibility import (
    ensure_payment_settled, is_post_inspection_eligible, is_third_party_payable, normalize_instant,
    payment_settled, post_phase_open,
)
from tests.factories import BOOKING_END, record

PLUS_TWO = timezone(timedelta(hours=2))
MINUS_FIVE = timezone(timedelta(hours=-5))


class TestIsPostInspectionEligible:
    def test_end_exactly_now_is_eligible(self):
        assert is_post_inspection_eligible(BOOKING_END, BOOKING_END)

    def test_one_second_before_end_is_not_eligible(self):
        assert not is_post_inspection_eligible(BOOKING_END, BOOKING_END - timedelta(seconds=1))

    def test_after_end_is_eligible(self):
        assert is_post_inspection_eligible(BOOKING_END, BOOKING_END + timedelta(days=1))

    def test_sub_second_precision_is_ignored(self):
        end = BOOKING_END.replace(microsecond=900_000)
        now = BOOKING_END.replace(microsecond=100_000)
        assert is_post_inspection_eligible(end, now)

    @pytest.mark.parametrize(
        "now,expected",
        [
            (datetime(2026, 3, 1, 6, 59, 59, tzinfo=MINUS_FIVE), False),
            (datetime(2026, 3, 1, 7, 0, 0, tzinfo=MINUS_FIVE), True),
        ],
    )
    def test_comparison_across_offsets(self, now, expected):
        # 14:00 at +02:00 is 12:00 UTC; 07:00 at -05:00 is 12:00 UTC
        end = datetime(2026, 3, 1, 14, 0, 0, tzinfo=PLUS_TWO)
        assert is_post_inspection_eligible(end, now) is expected

    def test_same_instant_in_two_offsets_agrees(self):
        end_a = BOOKING_END.astimezone(PLUS_TWO)
        end_b = BOOKING_END.astimezone(MINUS_FIVE)
        for now in (BOOKING_END - timedelta(seconds=1), BOOKING_END, BOOKING_END + timedelta(seconds=1)):
            assert is_post_inspection_eligible(end_a, now) == is_post_inspection_eligible(end_b, now)

    def test_calendar_date_alone_is_not_enough(self):
        # Same calendar day, but the end instant is still in the future
        assert not is_post_inspection_eligible(BOOKING_END, BOOKING_END.replace(hour=11, minute=59))

    def test_naive_values_are_utc(self):
        naive_end = BOOKING_END.replace(tzinfo=None)
        assert normalize_instant(naive_end) == BOOKING_END
        assert is_post_inspection_eligible(naive_end, BOOKING_END)
        assert not is_post_inspection_eligible(naive_end, BOOKING_END.astimezone(PLUS_TWO) - timedelta(minutes=1))


class TestPostPhaseOpen:
    def test_booking_end_alone_opens(self):
        assert post_phase_open(record(), BOOKING_END, BOOKING_END)

    def test_post_rental_type_alone_opens(self):
        rec = record(inspection_type=InspectionType.POST_RENTAL)
        assert post_phase_open(rec, BOOKING_END, BOOKING_END - timedelta(days=1))

    def test_both_signals_open(self):
        rec = record(inspection_type=InspectionType.POST_RENTAL)
        assert post_phase_open(rec, BOOKING_END, BOOKING_END + timedelta(days=1))

    def test_neither_signal(self):
        assert not post_phase_open(record(), BOOKING_END, BOOKING_END - timedelta(hours=1))

    def test_unknown_booking_end(self):
        assert not post_phase_open(record(), None, BOOKING_END)


class TestPaymentGate:
    def test_self_assessed_never_payable(self):
        rec = record()
        assert not is_third_party_payable(rec)
        assert payment_settled(rec, WorkflowPolicy())

    def test_pending_third_party_is_payable(self):
        rec = record(
            is_third_party_inspection=True,
            payment_status=PaymentStatus.PENDING_PAYMENT,
            inspection_cost_cents=4900,
            currency="USD",
        )
        assert is_third_party_payable(rec)
        with pytest.raises(PaymentRequired) as exc_info:
            ensure_payment_settled(rec, WorkflowPolicy())
        assert exc_info.value.field == "payment_status"
        assert exc_info.value.to_dict()["inspection_cost_cents"] == 4900

    def test_failed_payment_is_not_payable_but_still_blocks(self):
        rec = record(is_third_party_inspection=True, payment_status=PaymentStatus.FAILED)
        assert not is_third_party_payable(rec)
        with pytest.raises(PaymentRequired):
            ensure_payment_settled(rec, WorkflowPolicy())

    def test_paid_third_party_is_settled(self):
        rec = record(is_third_party_inspection=True, payment_status=PaymentStatus.PAID)
        assert not is_third_party_payable(rec)
        ensure_payment_settled(rec, WorkflowPolicy())

    def test_policy_can_waive_payment(self):
        rec = record(is_third_party_inspection=True, payment_status=PaymentStatus.PENDING_PAYMENT)
        assert payment_settled(rec, WorkflowPolicy(third_party_requires_payment=False))
