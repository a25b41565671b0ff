"""
Lifecycle events reported by the booking and payment state machines.

Events are facts about transitions that have already been committed to the
store. They are ephemeral: the engine hands them to the notification bus and
never persists them.

Design decisions:
- Events are named in past tense (BookingCancelled, not CancelBooking)
- Each event carries the identifying fields a downstream message needs, so
  notifiers never have to query back into the store
- Events are immutable (frozen dataclasses)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar, Optional
from uuid import uuid4

from seating.models import CancellationReason


class EventTypes:
    """
    Constants for event type names.

    The notification bus routes on these names.
    """
    BOOKING_CREATED = "BookingCreated"
    BOOKING_CANCELLED = "BookingCancelled"
    PAYMENT_CREATED = "PaymentCreated"
    PAYMENT_CONFIRMED = "PaymentConfirmed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LifecycleEvent:
    """
    Base class for all lifecycle events.

    Attributes:
        notification_id: Unique identifier for this event instance
        occurred_at: When the event was created
    """
    event_type: ClassVar[str] = ""

    def __str__(self) -> str:
        return f"{self.event_type}(id={self.notification_id[:8]})"


# =============================================================================
# Booking Events
# =============================================================================

@dataclass(frozen=True)
class BookingCreated(LifecycleEvent):
    """Published when a reservation starts holding seats."""
    event_type: ClassVar[str] = EventTypes.BOOKING_CREATED

    booking_id: str
    event_id: str
    username: Optional[str] = None
    seats: Optional[int] = None
    total_amount: Optional[float] = None
    notification_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class BookingCancelled(LifecycleEvent):
    """
    Published when a booking releases its seats.

    reason tells an admin cancellation (MANUAL) apart from the sweep (EXPIRED).
    """
    event_type: ClassVar[str] = EventTypes.BOOKING_CANCELLED

    booking_id: str
    event_id: str
    reason: CancellationReason = CancellationReason.MANUAL
    username: Optional[str] = None
    notification_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=_utcnow)


# =============================================================================
# Payment Events
# =============================================================================

@dataclass(frozen=True)
class PaymentCreated(LifecycleEvent):
    """Published when a manual payment intent is opened for a booking."""
    event_type: ClassVar[str] = EventTypes.PAYMENT_CREATED

    payment_id: str
    booking_id: str
    event_id: str
    amount: float
    instruction: str
    table_id: Optional[str] = None
    seats_booked: Optional[int] = None
    method: str = "manual"
    notification_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class PaymentConfirmed(LifecycleEvent):
    """Published when an admin confirms a manual payment."""
    event_type: ClassVar[str] = EventTypes.PAYMENT_CONFIRMED

    payment_id: str
    booking_id: str
    amount: float
    confirmed_by: str
    confirmed_at: datetime
    notification_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=_utcnow)
