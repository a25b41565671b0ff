"""
Domain models for the table booking engine.

These models describe what the storefront sells (events with tables of seats)
and the two records whose lifecycles the engine protects: bookings and
manual payment intents.

Design decisions:
- Using Pydantic for validation and serialization (JSON fixtures round-trip as-is)
- Status values are closed str enums, so they compare equal to the raw strings
  stored on disk
- Legal transitions live in one table per entity, checked by a single function
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, Field, ConfigDict


# =============================================================================
# Enums - Status values and their transition tables
# =============================================================================

class BookingStatus(str, Enum):
    """
    Booking lifecycle states.

    Only RESERVED is non-terminal. A reservation either gets paid, runs out
    of time (EXPIRED) or is cancelled by an administrator.
    """
    RESERVED = "reserved"     # Seats held, waiting for payment
    PAID = "paid"             # Payment confirmed by an admin
    EXPIRED = "expired"       # TTL elapsed without payment
    CANCELLED = "cancelled"   # Cancelled by an admin


class PaymentStatus(str, Enum):
    """Manual payment intent states."""
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CancellationReason(str, Enum):
    """Why a booking stopped holding its seats."""
    MANUAL = "manual"
    EXPIRED = "expired"


BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.RESERVED: frozenset(
        {BookingStatus.PAID, BookingStatus.EXPIRED, BookingStatus.CANCELLED}
    ),
    BookingStatus.PAID: frozenset(),
    BookingStatus.EXPIRED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

# FAILED is accepted when loading records but nothing transitions into it.
PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.CANCELLED}),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
}


def booking_transition_allowed(current: str, target: str) -> bool:
    """Check whether a booking may move from `current` to `target`."""
    return BookingStatus(target) in BOOKING_TRANSITIONS[BookingStatus(current)]


def payment_transition_allowed(current: str, target: str) -> bool:
    """Check whether a payment intent may move from `current` to `target`."""
    return PaymentStatus(target) in PAYMENT_TRANSITIONS[PaymentStatus(current)]


# =============================================================================
# Inventory - Events and their tables
# =============================================================================

class Table(BaseModel):
    """
    A bookable table on an event's seating layout.

    seats_available is the only field the engine mutates. It must always stay
    within [0, seats_total].
    """
    id: str = Field(..., description="Unique table identifier within the event")
    seats_total: int = Field(..., ge=0, description="Physical capacity")
    seats_available: int = Field(..., ge=0, description="Seats not held by any booking")
    number: Optional[int] = Field(default=None, description="Label shown on the seat map")
    price: Optional[float] = Field(default=None, ge=0, description="Price per seat")


class Event(BaseModel):
    """A published event (concert, party, ...) with its tables."""
    id: str = Field(..., description="Unique event identifier")
    title: str = Field(default="", description="Display title")
    tables: list[Table] = Field(default_factory=list)

    def get_table(self, table_id: str) -> Optional[Table]:
        """Find a table on this event by ID."""
        for table in self.tables:
            if table.id == table_id:
                return table
        return None


# =============================================================================
# Booking
# =============================================================================

class Booking(BaseModel):
    """
    A customer's reservation of seats at a table.

    expires_at is only meaningful while the booking is RESERVED; it is
    cleared as soon as the booking reaches a terminal state.
    """
    id: str = Field(..., description="Unique booking identifier")
    event_id: str = Field(..., description="Reference to event")
    table_id: Optional[str] = Field(default=None, description="Reference to table")
    seats_booked: int = Field(default=0, ge=0, description="Seats held at the table")
    status: BookingStatus = Field(default=BookingStatus.RESERVED)
    created_at: int = Field(..., description="Creation time, epoch milliseconds")
    expires_at: Optional[datetime] = Field(
        default=None,
        description="When an unpaid reservation may be reclaimed"
    )
    total_amount: Optional[float] = Field(default=None, ge=0)
    username: Optional[str] = Field(default=None, description="Chat user who reserved")

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    def is_terminal(self) -> bool:
        return not BOOKING_TRANSITIONS[BookingStatus(self.status)]


# =============================================================================
# Payment intent
# =============================================================================

class PaymentIntent(BaseModel):
    """
    An expected manual payment for a booking.

    A payment only references its booking by ID; it never embeds a booking
    snapshot, so the two records can diverge until confirmation reconciles them.
    """
    id: str = Field(..., description="Unique payment identifier")
    booking_id: str = Field(..., description="Associated booking")
    amount: float = Field(..., gt=0, description="Expected amount")
    status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    method: Literal["manual"] = Field(default="manual")
    confirmed_by: Optional[str] = Field(default=None, description="Admin who confirmed")
    confirmed_at: Optional[datetime] = Field(default=None)
    created_at: int = Field(..., description="Creation time, epoch milliseconds")

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


# =============================================================================
# Read models
# =============================================================================

class BookingStatusView(BaseModel):
    """Booking status as shown to an admin: the booking plus its payment, if any."""
    booking_id: str
    event_id: str
    status: BookingStatus
    seats_booked: Optional[int] = None
    expires_at: Optional[datetime] = None
    payment: Optional[PaymentIntent] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)
