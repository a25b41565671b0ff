"""
Booking state machine.

Owns a booking's status transitions and keeps table seat counts consistent
with them:
- reserve() is the only path that takes seats away from a table
- expire() and cancel() are the only paths that give seats back, and never
  above the table's seats_total
- a PAID booking is never reverted

Seat accounting is last-write-wins; there is no locking across concurrent
writers.
"""

import logging
import math
from datetime import datetime
from typing import Callable, Optional
from uuid import uuid4

from lifecycle.events import BookingCancelled, BookingCreated
from lifecycle.notification_bus import NotificationBus
from lifecycle.results import ErrorKind, ServiceResponse
from lifecycle.services.expiration import calculate_booking_expiration, utcnow
from seating.config import get_booking_ttl_minutes
from seating.data_store import DataStore
from seating.models import (
    Booking,
    BookingStatus,
    BookingStatusView,
    CancellationReason,
    PaymentStatus,
    booking_transition_allowed,
)

logger = logging.getLogger("booking_service")


class BookingService:
    """
    Booking lifecycle operations.

    Example:
        bookings = BookingService(data_store, notifications=bus)
        result = bookings.reserve("evt-1", "t-1", seats=2, username="@guest")
        bookings.cancel(result.data.id)
    """

    def __init__(
        self,
        data_store: DataStore,
        notifications: Optional[NotificationBus] = None,
        ttl_minutes: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.data_store = data_store
        self.notifications = notifications or NotificationBus()
        self.ttl_minutes = ttl_minutes if ttl_minutes and ttl_minutes > 0 else get_booking_ttl_minutes()
        self.clock = clock

    # =========================================================================
    # Seat accounting
    # =========================================================================

    def _restore_seats(self, booking: Booking) -> None:
        """
        Give a booking's seats back to its table, clamped to seats_total.

        Bookings without a table, or whose event/table no longer exists, have
        nothing to restore.
        """
        if not booking.table_id or not booking.seats_booked:
            return
        event = self.data_store.get_event(booking.event_id)
        if event is None:
            logger.warning(f"Event {booking.event_id} missing, no seats restored for {booking.id}")
            return
        table = event.get_table(booking.table_id)
        if table is None:
            logger.warning(f"Table {booking.table_id} missing, no seats restored for {booking.id}")
            return
        table.seats_available = min(
            table.seats_total,
            table.seats_available + booking.seats_booked,
        )
        self.data_store.save_events([event])

    def _release(self, booking: Booking, target: BookingStatus) -> Optional[Booking]:
        """
        Move a booking to EXPIRED or CANCELLED and restore its seats.

        The status write happens first: once it lands, a re-run can no longer
        select this booking, so seats are never restored twice.
        """
        current = self.data_store.get_booking(booking.id)
        if current is None:
            logger.warning(f"Booking {booking.id} not found")
            return None
        if not booking_transition_allowed(current.status, target):
            logger.info(f"Refusing {current.status} -> {target.value} for booking {booking.id}")
            return None

        updated = self.data_store.update_booking_status(booking.id, target)
        if updated is None:
            return None
        self._restore_seats(current)
        return updated

    # =========================================================================
    # Transitions
    # =========================================================================

    def expire(self, booking: Booking) -> Optional[Booking]:
        """
        Expire a reserved booking.

        Returns the updated booking, or None when the transition is not legal
        (already paid, cancelled or expired). Does not emit; the sweep does.
        """
        return self._release(booking, BookingStatus.EXPIRED)

    def cancel(
        self,
        booking_id: str,
        reason: CancellationReason = CancellationReason.MANUAL,
    ) -> ServiceResponse[Booking]:
        """
        Cancel a reserved booking (admin path) and restore its seats.

        Returns:
            200 with the cancelled booking, 400 for a blank ID, 404 when the
            booking does not exist, 409 when it is paid or already terminal
        """
        if not booking_id or not booking_id.strip():
            return ServiceResponse.fail(ErrorKind.INVALID_INPUT, "bookingId is required")

        try:
            booking = self.data_store.get_booking(booking_id)
            if booking is None:
                return ServiceResponse.fail(ErrorKind.NOT_FOUND, "Booking not found")

            if booking.status == BookingStatus.PAID:
                return ServiceResponse.fail(
                    ErrorKind.CONFLICT, "Booking is paid and cannot be cancelled"
                )

            updated = self._release(booking, BookingStatus.CANCELLED)
            if updated is None:
                return ServiceResponse.fail(
                    ErrorKind.CONFLICT, f"Booking is already {booking.status}"
                )

            logger.info(f"Booking {booking_id} cancelled ({reason.value})")
            self.notifications.emit(BookingCancelled(
                booking_id=booking.id,
                event_id=booking.event_id,
                reason=reason,
                username=booking.username,
            ))
            return ServiceResponse.ok(updated)
        except Exception:
            logger.exception(f"Failed to cancel booking {booking_id}")
            return ServiceResponse.fail(ErrorKind.UNEXPECTED, "Failed to cancel booking")

    def reserve(
        self,
        event_id: str,
        table_id: str,
        seats: int,
        username: Optional[str] = None,
        total_amount: Optional[float] = None,
    ) -> ServiceResponse[Booking]:
        """
        Hold seats at a table for TTL minutes.

        total_amount defaults to the table's per-seat price times seats.

        Returns:
            201 with the new booking, 400 on bad input, 404 for an unknown
            event or table, 409 when the table lacks free seats
        """
        if not event_id or not table_id:
            return ServiceResponse.fail(ErrorKind.INVALID_INPUT, "eventId and tableId are required")
        if not isinstance(seats, int) or isinstance(seats, bool) or seats <= 0:
            return ServiceResponse.fail(ErrorKind.INVALID_INPUT, "seats must be a positive integer")
        if total_amount is not None and (
            isinstance(total_amount, bool)
            or not isinstance(total_amount, (int, float))
            or (isinstance(total_amount, float) and not math.isfinite(total_amount))
            or total_amount < 0
        ):
            return ServiceResponse.fail(
                ErrorKind.INVALID_INPUT, "totalAmount must be a non-negative number"
            )

        try:
            event = self.data_store.get_event(event_id)
            if event is None:
                return ServiceResponse.fail(ErrorKind.NOT_FOUND, "Event not found")
            table = event.get_table(table_id)
            if table is None:
                return ServiceResponse.fail(ErrorKind.NOT_FOUND, "Table not found")
            if table.seats_available < seats:
                return ServiceResponse.fail(
                    ErrorKind.CONFLICT,
                    f"Only {table.seats_available} seat(s) available at table {table_id}",
                )

            if total_amount is None and table.price is not None:
                total_amount = table.price * seats

            # Built before any write so a rejected booking leaves the table untouched
            created_at = int(self.clock().timestamp() * 1000)
            booking = Booking(
                id=str(uuid4()),
                event_id=event_id,
                table_id=table_id,
                seats_booked=seats,
                status=BookingStatus.RESERVED,
                created_at=created_at,
                expires_at=calculate_booking_expiration(created_at, self.ttl_minutes),
                total_amount=total_amount,
                username=username,
            )

            table.seats_available -= seats
            self.data_store.save_events([event])
            self.data_store.add_booking(booking)
            logger.info(f"Booking {booking.id} reserved {seats} seat(s) at {event_id}/{table_id}")

            self.notifications.emit(BookingCreated(
                booking_id=booking.id,
                event_id=event_id,
                username=username,
                seats=seats,
                total_amount=total_amount,
            ))
            return ServiceResponse.created(booking)
        except Exception:
            logger.exception(f"Failed to reserve seats at {event_id}/{table_id}")
            return ServiceResponse.fail(ErrorKind.UNEXPECTED, "Failed to create booking")

    # =========================================================================
    # Queries
    # =========================================================================

    def get_booking_status(self, booking_id: Optional[str]) -> Optional[BookingStatusView]:
        """
        Booking status together with its most relevant payment.

        The paid intent wins if there is one, otherwise the most recent intent.
        Returns None for a blank or unknown ID. Never raises.
        """
        try:
            if not booking_id or not booking_id.strip():
                return None
            booking = self.data_store.get_booking(booking_id.strip())
            if booking is None:
                return None

            payments = self.data_store.find_payments_by_booking_id(booking.id)
            paid = [p for p in payments if p.status == PaymentStatus.PAID]
            if paid:
                payment = paid[0]
            elif payments:
                payment = max(payments, key=lambda p: p.created_at)
            else:
                payment = None

            return BookingStatusView(
                booking_id=booking.id,
                event_id=booking.event_id,
                status=booking.status,
                seats_booked=booking.seats_booked or None,
                expires_at=booking.expires_at,
                payment=payment,
            )
        except Exception:
            logger.exception(f"Failed to load status of booking {booking_id}")
            return None
