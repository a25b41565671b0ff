"""
Shared infrastructure for the table booking engine.

This package contains what the lifecycle engine builds on:
- Domain models (Event, Table, Booking, PaymentIntent) and status enums
- Data store for JSON-backed persistence (the inventory accessor)
- Settings read from the environment
- Admin chat message templates and the Telegram channel
"""

from seating.models import (
    Booking,
    BookingStatus,
    BookingStatusView,
    CancellationReason,
    Event,
    PaymentIntent,
    PaymentStatus,
    Table,
)
from seating.data_store import DataStore, DataStoreError
from seating.config import Settings
from seating.channels import TelegramChannel, SendResult

__all__ = [
    "Booking",
    "BookingStatus",
    "BookingStatusView",
    "CancellationReason",
    "Event",
    "PaymentIntent",
    "PaymentStatus",
    "Table",
    "DataStore",
    "DataStoreError",
    "Settings",
    "TelegramChannel",
    "SendResult",
]
