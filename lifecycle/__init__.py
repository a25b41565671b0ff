"""
Booking and payment lifecycle engine.

This package implements the state machines behind table reservations:
- Services change booking and payment status and emit lifecycle events
- The notification bus hands those events to pluggable notifiers
- Notifier failures never reach the operation that emitted the event
"""

from lifecycle.events import (
    BookingCancelled,
    BookingCreated,
    LifecycleEvent,
    PaymentConfirmed,
    PaymentCreated,
)
from lifecycle.notification_bus import NotificationBus
from lifecycle.results import ErrorKind, ServiceResponse
from lifecycle.scheduler import ExpirationJob
from lifecycle.services.bookings import BookingService
from lifecycle.services.expiration import ExpirationSweeper
from lifecycle.services.payments import PaymentService

__all__ = [
    "BookingCancelled",
    "BookingCreated",
    "LifecycleEvent",
    "PaymentConfirmed",
    "PaymentCreated",
    "NotificationBus",
    "ErrorKind",
    "ServiceResponse",
    "ExpirationJob",
    "BookingService",
    "ExpirationSweeper",
    "PaymentService",
]
