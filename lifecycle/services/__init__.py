"""
Lifecycle state machines.

- Bookings: reserve, cancel and expire reservations, keeping seat counts in step
- Expiration: TTL helpers and the sweep that expires abandoned reservations
- Payments: manual payment intents, confirmed or cancelled by an admin

Each service reports what happened through the NotificationBus. None of them
knows which notifier is listening.
"""

from lifecycle.services.bookings import BookingService
from lifecycle.services.expiration import (
    ExpirationSweeper,
    calculate_booking_expiration,
    is_booking_expired,
)
from lifecycle.services.payments import PaymentService

__all__ = [
    "BookingService",
    "ExpirationSweeper",
    "PaymentService",
    "calculate_booking_expiration",
    "is_booking_expired",
]
