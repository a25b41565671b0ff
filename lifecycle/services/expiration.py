"""
Expiration sweep for abandoned reservations.

A reservation holds seats for BOOKING_TTL_MINUTES. If nobody confirms a
payment for it by then, the sweep expires the booking and gives the seats
back to the table.

Key properties:
- Safe to re-run: an expired booking is no longer RESERVED, so a second pass
  with the same clock value selects nothing and restores nothing
- A booking with a paid payment intent is never expired, whatever its expires_at
- The caller's clock is injectable (now=...) so tests and overlapping timer
  ticks see one consistent instant
- Never raises: an unattended timer has nobody to report to
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

from lifecycle.events import BookingCancelled
from seating.config import get_booking_ttl_minutes
from seating.data_store import DataStore
from seating.models import Booking, BookingStatus, CancellationReason, PaymentStatus

if TYPE_CHECKING:
    from lifecycle.services.bookings import BookingService

logger = logging.getLogger("expiration_sweeper")


# =============================================================================
# TTL helpers
# =============================================================================

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def calculate_booking_expiration(created_at_ms: int, ttl_minutes: Optional[int] = None) -> datetime:
    """
    Expiration instant for a booking created at `created_at_ms` (epoch ms).

    ttl_minutes defaults to BOOKING_TTL_MINUTES from the environment.
    """
    ttl = ttl_minutes if ttl_minutes and ttl_minutes > 0 else get_booking_ttl_minutes()
    created = datetime.fromtimestamp(created_at_ms / 1000, tz=timezone.utc)
    return created + timedelta(minutes=ttl)


def is_booking_expired(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    """True once `expires_at` is at or before `now`."""
    return ensure_utc(expires_at) <= ensure_utc(now or utcnow())


def has_payment_paid(data_store: DataStore, booking_id: str) -> bool:
    """True if any payment intent for the booking reached PAID."""
    return any(
        p.status == PaymentStatus.PAID
        for p in data_store.find_payments_by_booking_id(booking_id)
    )


# =============================================================================
# Sweeper
# =============================================================================

class ExpirationSweeper:
    """
    Finds stale reservations and drives them to EXPIRED.

    Example:
        sweeper = ExpirationSweeper(data_store, booking_service)
        expired = sweeper.expire_stale_bookings()
    """

    def __init__(self, data_store: DataStore, booking_service: "BookingService"):
        self.data_store = data_store
        self.booking_service = booking_service

    @property
    def notifications(self):
        return self.booking_service.notifications

    def is_stale(self, booking: Booking, now: datetime) -> bool:
        """Reserved, past its expiration, and not covered by a paid payment."""
        return (
            booking.status == BookingStatus.RESERVED
            and booking.expires_at is not None
            and is_booking_expired(booking.expires_at, now)
            and not has_payment_paid(self.data_store, booking.id)
        )

    def find_stale_bookings(self, now: Optional[datetime] = None) -> list[Booking]:
        now = now or utcnow()
        return [b for b in self.data_store.get_bookings() if self.is_stale(b, now)]

    def expire_stale_bookings(self, now: Optional[datetime] = None) -> int:
        """
        Expire every stale reservation and restore its seats.

        Each booking is handled on its own: its status write and its seat
        restoration are persisted before the next booking is touched, and a
        failure on one booking is logged without stopping the others.

        Args:
            now: The sweep's notion of the current time (defaults to the wall clock)

        Returns:
            Number of bookings expired by this call (0 on any batch-level error)
        """
        try:
            now = now or utcnow()
            stale = self.find_stale_bookings(now)
            if not stale:
                return 0

            expired_count = 0
            for booking in stale:
                try:
                    updated = self.booking_service.expire(booking)
                    if updated is None:
                        continue
                    expired_count += 1
                    self.notifications.emit(BookingCancelled(
                        booking_id=booking.id,
                        event_id=booking.event_id,
                        reason=CancellationReason.EXPIRED,
                        username=booking.username,
                    ))
                except Exception:
                    logger.exception(f"Failed to expire booking {booking.id}")

            if expired_count:
                logger.info(f"Expired {expired_count} stale booking(s)")
            return expired_count
        except Exception:
            logger.exception("Expiration sweep failed")
            return 0
