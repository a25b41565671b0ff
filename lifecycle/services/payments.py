"""
Payment state machine for manual (out-of-band) payments.

A customer asks for payment instructions, which opens a PENDING intent.
An administrator later confirms the transfer (PAID) or drops the intent
(CANCELLED). Both outcomes are final.

Key rules:
- An intent is confirmed at most once; PAID and CANCELLED are terminal
- An intent cannot be confirmed when its booking is already PAID, which stops
  a second intent (a retry) from paying the same booking twice
- Confirmation never touches table seat counts
- Cancelling an intent leaves the booking alone
"""

import logging
import math
from datetime import datetime
from typing import Callable, Optional
from uuid import uuid4

from lifecycle.events import PaymentConfirmed, PaymentCreated
from lifecycle.notification_bus import NotificationBus
from lifecycle.results import ErrorKind, ServiceResponse
from lifecycle.services.expiration import utcnow
from seating.config import DEFAULT_PAYMENT_INSTRUCTION
from seating.data_store import DataStore
from seating.models import (
    BookingStatus,
    PaymentIntent,
    PaymentStatus,
    payment_transition_allowed,
)

logger = logging.getLogger("payment_service")


class PaymentService:
    """
    Manual payment lifecycle operations.

    Example:
        payments = PaymentService(data_store, notifications=bus)

        created = payments.create_payment_intent("bk-2", 5000)
        payments.mark_paid(created.data.id, confirmed_by="admin")

        # A second confirmation is a conflict, not a crash
        assert payments.mark_paid(created.data.id, "admin").status == 409
    """

    def __init__(
        self,
        data_store: DataStore,
        notifications: Optional[NotificationBus] = None,
        instruction: str = DEFAULT_PAYMENT_INSTRUCTION,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.data_store = data_store
        self.notifications = notifications or NotificationBus()
        self.instruction = instruction
        self.clock = clock

    def _generate_payment_id(self) -> str:
        return f"pay-{uuid4().hex[:12]}"

    @staticmethod
    def _transition_conflict(payment: PaymentIntent, target: PaymentStatus) -> Optional[str]:
        """Conflict message for an illegal transition, None when it is allowed."""
        if payment_transition_allowed(payment.status, target):
            return None
        if target == PaymentStatus.PAID:
            if payment.status == PaymentStatus.PAID:
                return "Payment is already paid and cannot be changed"
            if payment.status == PaymentStatus.CANCELLED:
                return "Cannot pay a cancelled payment"
        if target == PaymentStatus.CANCELLED:
            if payment.status == PaymentStatus.PAID:
                return "Cannot cancel a paid payment"
            if payment.status == PaymentStatus.CANCELLED:
                return "Payment is already cancelled"
        return f"Cannot move payment from {payment.status} to {target.value}"

    # =========================================================================
    # Operations
    # =========================================================================

    def create_payment_intent(
        self,
        booking_id: str,
        amount: float,
    ) -> ServiceResponse[PaymentIntent]:
        """
        Open a pending manual payment for a booking.

        The PaymentCreated notification is enriched with the booking's event,
        table and seats. When the booking cannot be found the intent is still
        created, but no notification goes out.

        Returns:
            201 with the pending intent, 400 when booking_id is blank or
            amount is not a positive number
        """
        if (
            not booking_id
            or not str(booking_id).strip()
            or isinstance(amount, bool)
            or not isinstance(amount, (int, float))
            or (isinstance(amount, float) and not math.isfinite(amount))
            or amount <= 0
        ):
            return ServiceResponse.fail(
                ErrorKind.INVALID_INPUT, "bookingId and positive amount are required"
            )

        try:
            payment_id = self._generate_payment_id()
            payment = self.data_store.create_payment_intent(payment_id, booking_id, amount)
            logger.info(f"Payment {payment_id} created: {amount} for booking {booking_id}")

            booking = self.data_store.get_booking(booking_id)
            if booking is not None:
                self.notifications.emit(PaymentCreated(
                    payment_id=payment_id,
                    booking_id=booking_id,
                    event_id=booking.event_id,
                    table_id=booking.table_id,
                    seats_booked=booking.seats_booked,
                    amount=amount,
                    instruction=self.instruction,
                ))
            else:
                logger.debug(f"Booking {booking_id} not found, PaymentCreated not emitted")

            return ServiceResponse.created(payment)
        except Exception:
            logger.exception(f"Failed to create payment intent for booking {booking_id}")
            return ServiceResponse.fail(ErrorKind.UNEXPECTED, "Failed to create payment intent")

    def mark_paid(self, payment_id: str, confirmed_by: str) -> ServiceResponse[PaymentIntent]:
        """
        Confirm a manual payment.

        Checks, in order: required fields (400), intent exists (404), intent
        is still pending (409), booking exists (404), booking not already paid
        (409). Then the intent is persisted as PAID and the booking is moved
        to PAID.

        The booking write is a compensating update, not a transaction: the
        payment record is the source of truth, so if the booking update fails
        it is logged and the confirmation still succeeds.
        """
        if not payment_id or not confirmed_by or not str(confirmed_by).strip():
            return ServiceResponse.fail(
                ErrorKind.INVALID_INPUT, "paymentId and confirmedBy are required"
            )

        try:
            payment = self.data_store.find_payment_by_id(payment_id)
            if payment is None:
                return ServiceResponse.fail(ErrorKind.NOT_FOUND, "Payment not found")

            conflict = self._transition_conflict(payment, PaymentStatus.PAID)
            if conflict:
                return ServiceResponse.fail(ErrorKind.CONFLICT, conflict)

            booking = self.data_store.get_booking(payment.booking_id)
            if booking is None:
                return ServiceResponse.fail(ErrorKind.NOT_FOUND, "Related booking not found")

            if booking.status == BookingStatus.PAID:
                return ServiceResponse.fail(ErrorKind.CONFLICT, "Booking is already paid")

            confirmed_at = self.clock()
            updated = self.data_store.update_payment_status(
                payment_id,
                PaymentStatus.PAID,
                method="manual",
                confirmed_by=confirmed_by,
                confirmed_at=confirmed_at,
            )
            if updated is None:
                return ServiceResponse.fail(ErrorKind.UNEXPECTED, "Failed to update payment status")

            logger.info(f"Payment {payment_id} confirmed by {confirmed_by}")
            self._mark_booking_paid(payment.booking_id)

            self.notifications.emit(PaymentConfirmed(
                payment_id=payment_id,
                booking_id=payment.booking_id,
                amount=payment.amount,
                confirmed_by=confirmed_by,
                confirmed_at=confirmed_at,
            ))
            return ServiceResponse.ok(updated)
        except Exception:
            logger.exception(f"Failed to mark payment {payment_id} as paid")
            return ServiceResponse.fail(ErrorKind.UNEXPECTED, "Failed to mark payment as paid")

    def _mark_booking_paid(self, booking_id: str) -> None:
        # Best effort: a failure here must not undo the confirmed payment.
        try:
            booking = self.data_store.get_booking(booking_id)
            if booking is None or booking.status != BookingStatus.RESERVED:
                logger.warning(
                    f"Payment confirmed but booking {booking_id} is "
                    f"{booking.status if booking else 'missing'}; booking left unchanged"
                )
                return
            if self.data_store.update_booking_status(booking_id, BookingStatus.PAID) is None:
                logger.error(f"Payment confirmed but booking {booking_id} could not be updated")
        except Exception:
            logger.exception(f"Payment confirmed but booking {booking_id} update failed")

    def cancel_payment(self, payment_id: str) -> ServiceResponse[PaymentIntent]:
        """
        Cancel a pending payment intent.

        Returns:
            200 with the cancelled intent, 400 for a blank ID, 404 when the
            intent does not exist, 409 when it is already paid or cancelled
        """
        if not payment_id:
            return ServiceResponse.fail(ErrorKind.INVALID_INPUT, "paymentId is required")

        try:
            payment = self.data_store.find_payment_by_id(payment_id)
            if payment is None:
                return ServiceResponse.fail(ErrorKind.NOT_FOUND, "Payment not found")

            conflict = self._transition_conflict(payment, PaymentStatus.CANCELLED)
            if conflict:
                return ServiceResponse.fail(ErrorKind.CONFLICT, conflict)

            updated = self.data_store.update_payment_status(payment_id, PaymentStatus.CANCELLED)
            if updated is None:
                return ServiceResponse.fail(ErrorKind.UNEXPECTED, "Failed to update payment status")

            logger.info(f"Payment {payment_id} cancelled")
            return ServiceResponse.ok(updated)
        except Exception:
            logger.exception(f"Failed to cancel payment {payment_id}")
            return ServiceResponse.fail(ErrorKind.UNEXPECTED, "Failed to cancel payment")

    # =========================================================================
    # Queries
    # =========================================================================

    def list_pending_payments(self) -> list[PaymentIntent]:
        """Pending intents, newest first. Never raises."""
        try:
            pending = [
                p for p in self.data_store.get_all_payments()
                if p.status == PaymentStatus.PENDING
            ]
            return sorted(pending, key=lambda p: p.created_at, reverse=True)
        except Exception:
            logger.exception("Failed to list pending payments")
            return []
