"""
Shared pytest fixtures for the table booking engine tests.

These fixtures provide consistent test data and reset state between tests.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from lifecycle.notification_bus import NotificationBus
from lifecycle.services.bookings import BookingService
from lifecycle.services.expiration import ExpirationSweeper
from lifecycle.services.payments import PaymentService
from seating.data_store import DataStore
from seating.models import Booking, BookingStatus, Event, Table

NOW = datetime(2025, 3, 14, 20, 0, tzinfo=timezone.utc)


def epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


# =============================================================================
# Recording notifiers
# =============================================================================

class RecordingBookingNotifier:
    """Booking notifier that remembers what it was told."""

    def __init__(self):
        self.created = []
        self.cancelled = []

    async def booking_created(self, event):
        self.created.append(event)

    async def booking_cancelled(self, event):
        self.cancelled.append(event)


class RecordingPaymentNotifier:
    """Payment notifier that remembers what it was told."""

    def __init__(self):
        self.created = []
        self.confirmed = []

    async def payment_created(self, event):
        self.created.append(event)

    async def payment_confirmed(self, event):
        self.confirmed.append(event)


class FailingBookingNotifier:
    """Booking notifier whose every delivery blows up."""

    def __init__(self):
        self.calls = 0

    async def booking_created(self, event):
        self.calls += 1
        raise RuntimeError("telegram is down")

    async def booking_cancelled(self, event):
        self.calls += 1
        raise RuntimeError("telegram is down")


class FailingPaymentNotifier:
    """Payment notifier whose every delivery blows up."""

    async def payment_created(self, event):
        raise RuntimeError("telegram is down")

    async def payment_confirmed(self, event):
        raise RuntimeError("telegram is down")


# =============================================================================
# Clock
# =============================================================================

@pytest.fixture
def now() -> datetime:
    """Fixed 'current time' shared by services and sweeps."""
    return NOW


@pytest.fixture
def clock(now: datetime):
    return lambda: now


# =============================================================================
# Data Store Fixtures
# =============================================================================

@pytest.fixture
def data_dir() -> Path:
    """Path to the JSON fixtures directory."""
    return Path(__file__).parent.parent / "data"


@pytest.fixture
def fixture_store(data_dir: Path) -> DataStore:
    """
    DataStore over the real JSON fixtures.

    persist=False so tests never rewrite the fixture files.
    """
    return DataStore(data_dir=data_dir)


@pytest.fixture
def store(now: datetime) -> DataStore:
    """
    In-memory store with one event and one stale reservation.

    evt-1 / t-1 has 4 seats; bk-1 holds 2 of them and expired a minute ago.
    """
    data_store = DataStore()
    data_store.add_event(Event(
        id="evt-1",
        title="Friday Jazz Night",
        tables=[
            Table(id="t-1", number=1, seats_total=4, seats_available=2, price=2500),
            Table(id="t-2", number=2, seats_total=6, seats_available=6, price=3000),
        ],
    ))
    data_store.add_booking(Booking(
        id="bk-1",
        event_id="evt-1",
        table_id="t-1",
        seats_booked=2,
        status=BookingStatus.RESERVED,
        created_at=epoch_ms(now - timedelta(minutes=16)),
        expires_at=now - timedelta(minutes=1),
        total_amount=5000,
        username="@anna",
    ))
    return data_store


# =============================================================================
# Bus and Service Fixtures
# =============================================================================

@pytest.fixture
def booking_notifier() -> RecordingBookingNotifier:
    return RecordingBookingNotifier()


@pytest.fixture
def payment_notifier() -> RecordingPaymentNotifier:
    return RecordingPaymentNotifier()


@pytest.fixture
def bus(booking_notifier, payment_notifier) -> NotificationBus:
    """Bus wired to recording notifiers."""
    return NotificationBus(booking_notifier=booking_notifier, payment_notifier=payment_notifier)


@pytest.fixture
def booking_service(store: DataStore, bus: NotificationBus, clock) -> BookingService:
    return BookingService(store, notifications=bus, ttl_minutes=15, clock=clock)


@pytest.fixture
def payment_service(store: DataStore, bus: NotificationBus, clock) -> PaymentService:
    return PaymentService(store, notifications=bus, clock=clock)


@pytest.fixture
def sweeper(store: DataStore, booking_service: BookingService) -> ExpirationSweeper:
    return ExpirationSweeper(store, booking_service)


@pytest.fixture
def failing_booking_notifier() -> FailingBookingNotifier:
    return FailingBookingNotifier()


@pytest.fixture
def failing_bus(failing_booking_notifier) -> NotificationBus:
    """Bus whose notifiers raise on every delivery."""
    return NotificationBus(
        booking_notifier=failing_booking_notifier,
        payment_notifier=FailingPaymentNotifier(),
    )
