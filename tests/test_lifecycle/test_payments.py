"""
Tests for the manual payment state machine.
"""

import math
from types import SimpleNamespace

import pytest

from lifecycle.services.payments import PaymentService
from seating.data_store import DataStore
from seating.models import BookingStatus, PaymentStatus


@pytest.fixture
def pending(payment_service: PaymentService):
    """A pending intent for bk-1."""
    return payment_service.create_payment_intent("bk-1", 5000).data


class TestCreatePaymentIntent:
    """Tests for PaymentService.create_payment_intent()."""

    def test_creates_pending_intent(self, payment_service: PaymentService, store: DataStore):
        result = payment_service.create_payment_intent("bk-1", 5000)

        assert result.success
        assert result.status == 201
        assert result.data.status == "pending"
        assert result.data.amount == 5000
        assert store.find_payment_by_id(result.data.id) is not None

    @pytest.mark.parametrize("booking_id,amount", [
        ("", 0),
        ("", 5000),
        ("bk-1", 0),
        ("bk-1", -10),
        ("bk-1", "5000"),
        ("bk-1", None),
        ("bk-1", True),
        ("bk-1", math.nan),
        ("bk-1", math.inf),
        ("bk-1", -math.inf),
        (None, 5000),
    ])
    def test_invalid_input(self, payment_service: PaymentService, store: DataStore, booking_id, amount):
        result = payment_service.create_payment_intent(booking_id, amount)

        assert not result.success
        assert result.status == 400
        assert result.error == "bookingId and positive amount are required"
        assert store.get_all_payments() == []

    def test_emits_enriched_notification(self, payment_service: PaymentService, payment_notifier):
        result = payment_service.create_payment_intent("bk-1", 5000)

        event = payment_notifier.created[0]
        assert event.payment_id == result.data.id
        assert event.event_id == "evt-1"
        assert event.table_id == "t-1"
        assert event.seats_booked == 2
        assert event.instruction == payment_service.instruction

    def test_unknown_booking_skips_notification(self, payment_service: PaymentService, payment_notifier):
        result = payment_service.create_payment_intent("bk-404", 5000)

        assert result.status == 201
        assert payment_notifier.created == []

    def test_does_not_touch_seats(self, payment_service: PaymentService, store: DataStore):
        payment_service.create_payment_intent("bk-1", 5000)
        assert store.get_event("evt-1").get_table("t-1").seats_available == 2


class TestMarkPaid:
    """Tests for PaymentService.mark_paid()."""

    def test_confirms_payment_and_booking(self, payment_service: PaymentService, store: DataStore, pending, now):
        result = payment_service.mark_paid(pending.id, "admin")

        assert result.status == 200
        assert result.data.status == "paid"
        assert result.data.confirmed_by == "admin"
        assert result.data.confirmed_at == now
        assert result.data.method == "manual"
        assert store.get_booking("bk-1").status == "paid"
        assert store.get_event("evt-1").get_table("t-1").seats_available == 2

    def test_double_confirmation_conflicts(self, payment_service: PaymentService, store: DataStore, pending):
        payment_service.mark_paid(pending.id, "admin")

        result = payment_service.mark_paid(pending.id, "someone-else")

        assert result.status == 409
        assert result.error == "Payment is already paid and cannot be changed"
        assert store.find_payment_by_id(pending.id).confirmed_by == "admin"

    def test_cannot_pay_cancelled_intent(self, payment_service: PaymentService, store: DataStore, pending):
        payment_service.cancel_payment(pending.id)

        result = payment_service.mark_paid(pending.id, "admin")

        assert result.status == 409
        assert result.error == "Cannot pay a cancelled payment"
        assert store.find_payment_by_id(pending.id).status == "cancelled"
        assert store.get_booking("bk-1").status == "reserved"

    def test_unknown_payment(self, payment_service: PaymentService):
        result = payment_service.mark_paid("unknown-id", "admin")

        assert not result.success
        assert result.status == 404
        assert result.error == "Payment not found"

    def test_missing_booking(self, payment_service: PaymentService, store: DataStore):
        intent = payment_service.create_payment_intent("bk-404", 5000).data

        result = payment_service.mark_paid(intent.id, "admin")

        assert result.status == 404
        assert result.error == "Related booking not found"
        assert store.find_payment_by_id(intent.id).status == "pending"

    def test_second_intent_cannot_pay_booking_twice(self, payment_service: PaymentService, store: DataStore):
        first = payment_service.create_payment_intent("bk-1", 5000).data
        retry = payment_service.create_payment_intent("bk-1", 5000).data
        payment_service.mark_paid(first.id, "admin")

        result = payment_service.mark_paid(retry.id, "admin")

        assert result.status == 409
        assert result.error == "Booking is already paid"
        assert store.find_payment_by_id(retry.id).status == "pending"

    @pytest.mark.parametrize("confirmed_by", ["", "   ", None])
    def test_confirmed_by_required(self, payment_service: PaymentService, pending, confirmed_by):
        result = payment_service.mark_paid(pending.id, confirmed_by)

        assert result.status == 400
        assert result.error == "paymentId and confirmedBy are required"

    def test_booking_update_failure_keeps_payment(self, payment_service: PaymentService, store: DataStore,
                                                  pending, monkeypatch):
        """The payment record is the source of truth; the booking write is best effort."""
        def broken(booking_id, status):
            raise RuntimeError("bookings.json is read-only")

        monkeypatch.setattr(store, "update_booking_status", broken)

        result = payment_service.mark_paid(pending.id, "admin")

        assert result.success
        assert store.find_payment_by_id(pending.id).status == "paid"
        assert store.get_booking("bk-1").status == "reserved"

    def test_expired_booking_left_unchanged(self, payment_service: PaymentService, store: DataStore, pending):
        store.update_booking_status("bk-1", BookingStatus.EXPIRED)

        result = payment_service.mark_paid(pending.id, "admin")

        assert result.success
        assert store.get_booking("bk-1").status == "expired"

    def test_emits_confirmation(self, payment_service: PaymentService, pending, payment_notifier):
        payment_service.mark_paid(pending.id, "admin")

        event = payment_notifier.confirmed[0]
        assert event.payment_id == pending.id
        assert event.booking_id == "bk-1"
        assert event.confirmed_by == "admin"

    def test_notifier_failure_does_not_fail_confirmation(self, store: DataStore, failing_bus, clock):
        service = PaymentService(store, notifications=failing_bus, clock=clock)
        intent = service.create_payment_intent("bk-1", 5000).data

        result = service.mark_paid(intent.id, "admin")

        assert result.success
        assert result.data.status == "paid"
        assert store.get_booking("bk-1").status == "paid"


class TestCancelPayment:
    """Tests for PaymentService.cancel_payment()."""

    def test_cancel_pending(self, payment_service: PaymentService, store: DataStore, pending):
        result = payment_service.cancel_payment(pending.id)

        assert result.status == 200
        assert result.data.status == "cancelled"
        assert store.get_booking("bk-1").status == "reserved"

    def test_cannot_cancel_paid(self, payment_service: PaymentService, store: DataStore, pending):
        payment_service.mark_paid(pending.id, "admin")

        result = payment_service.cancel_payment(pending.id)

        assert result.status == 409
        assert result.error == "Cannot cancel a paid payment"
        assert store.find_payment_by_id(pending.id).status == "paid"

    def test_cancel_twice(self, payment_service: PaymentService, pending):
        payment_service.cancel_payment(pending.id)

        result = payment_service.cancel_payment(pending.id)

        assert result.status == 409
        assert result.error == "Payment is already cancelled"

    def test_unknown_payment(self, payment_service: PaymentService):
        assert payment_service.cancel_payment("unknown-id").status == 404

    def test_blank_id(self, payment_service: PaymentService):
        assert payment_service.cancel_payment("").status == 400


class TestListPendingPayments:

    def test_newest_first(self, payment_service: PaymentService, store: DataStore, monkeypatch):
        ticks = iter([1000.0, 1002.0, 1001.0])
        monkeypatch.setattr("seating.data_store.time", SimpleNamespace(time=lambda: next(ticks)))
        store.create_payment_intent("pay-a", "bk-1", 100)
        store.create_payment_intent("pay-b", "bk-1", 100)
        store.create_payment_intent("pay-c", "bk-1", 100)
        store.update_payment_status("pay-c", PaymentStatus.CANCELLED)

        pending = payment_service.list_pending_payments()

        assert [p.id for p in pending] == ["pay-b", "pay-a"]

    def test_never_raises(self, payment_service: PaymentService, store: DataStore, monkeypatch):
        def broken():
            raise RuntimeError("payments.json unreadable")

        monkeypatch.setattr(store, "get_all_payments", broken)

        assert payment_service.list_pending_payments() == []
