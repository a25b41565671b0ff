"""
JSON-backed data store for the booking engine.

This module is the inventory accessor: it gives the state machines read and
write access to events (with their table seat counts), bookings and payment
intents.

Design decisions:
- Each collection lives in its own JSON file (events.json, bookings.json,
  payments.json); payments never embed booking snapshots
- Collections are loaded lazily and cached in memory
- Writes update the in-memory cache and, when persist=True, rewrite the file
- A corrupt file is logged and treated as empty unless strict=True

The engine performs no locking. The store is assumed to be the single writer
for its files (one process), which gives read-your-writes within a process.
"""

import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from seating.models import (
    Booking,
    BookingStatus,
    Event,
    PaymentIntent,
    PaymentStatus,
)

logger = logging.getLogger("data_store")

EVENTS_FILE = "events.json"
BOOKINGS_FILE = "bookings.json"
PAYMENTS_FILE = "payments.json"


class DataStoreError(Exception):
    """Raised when a collection file cannot be read or written."""


class DataStore:
    """
    Central data store for events, bookings and payment intents.

    Example:
        store = DataStore(data_dir=Path("data"), persist=False)
        booking = store.get_booking("bk-1")
        store.update_booking_status("bk-1", BookingStatus.EXPIRED)
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        persist: bool = False,
        strict: bool = False,
    ):
        """
        Initialize the data store.

        Args:
            data_dir: Directory holding the JSON collections. None means a purely
                     in-memory store that starts empty.
            persist: Write changes back to the JSON files.
            strict: Raise DataStoreError on corrupt files instead of starting empty.
        """
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self.persist = persist and self.data_dir is not None
        self.strict = strict

        self._events: Optional[dict[str, Event]] = None
        self._bookings: Optional[dict[str, Booking]] = None
        self._payments: Optional[dict[str, PaymentIntent]] = None

    # =========================================================================
    # File I/O
    # =========================================================================

    def _load_json(self, filename: str) -> list[dict]:
        """Load a collection file, returning [] when it does not exist."""
        if self.data_dir is None:
            return []
        filepath = self.data_dir / filename
        if not filepath.exists():
            return []
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            if self.strict:
                raise DataStoreError(f"Cannot read {filepath}: {e}") from e
            logger.error(f"Corrupt collection {filepath}, starting empty: {e}")
            return []
        if not isinstance(data, list):
            if self.strict:
                raise DataStoreError(f"{filepath} must contain a JSON list")
            logger.error(f"Unexpected layout in {filepath}, starting empty")
            return []
        return data

    def _write_json(self, filename: str, records: list[Any]) -> None:
        if not self.persist:
            return
        self.data_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.data_dir / filename
        payload = [r.model_dump(mode="json") for r in records]
        tmp_path = filepath.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            tmp_path.replace(filepath)
        except OSError as e:
            raise DataStoreError(f"Cannot write {filepath}: {e}") from e

    def _parse(self, model, data: list[dict], filename: str) -> dict:
        records = {}
        for raw in data:
            try:
                record = model(**raw)
            except ValidationError as e:
                if self.strict:
                    raise DataStoreError(f"Invalid record in {filename}: {e}") from e
                logger.warning(f"Skipping invalid record in {filename}: {raw.get('id')}")
                continue
            records[record.id] = record
        return records

    def _ensure_events_loaded(self):
        if self._events is None:
            self._events = self._parse(Event, self._load_json(EVENTS_FILE), EVENTS_FILE)

    def _ensure_bookings_loaded(self):
        if self._bookings is None:
            self._bookings = self._parse(Booking, self._load_json(BOOKINGS_FILE), BOOKINGS_FILE)

    def _ensure_payments_loaded(self):
        if self._payments is None:
            self._payments = self._parse(
                PaymentIntent, self._load_json(PAYMENTS_FILE), PAYMENTS_FILE
            )

    # =========================================================================
    # Event Operations
    # =========================================================================

    def get_events(self) -> list[Event]:
        """
        Get all events.

        The returned models are the cached instances: callers mutate table seat
        counts in place and hand the list back to save_events().
        """
        self._ensure_events_loaded()
        return list(self._events.values())

    def get_event(self, event_id: str) -> Optional[Event]:
        """Get an event by ID."""
        self._ensure_events_loaded()
        return self._events.get(event_id)

    def add_event(self, event: Event) -> Event:
        """Insert or replace an event."""
        self._ensure_events_loaded()
        self._events[event.id] = event
        self._write_json(EVENTS_FILE, list(self._events.values()))
        return event

    def save_events(self, events: list[Event]) -> None:
        """Persist seat-count mutations made on the given events."""
        self._ensure_events_loaded()
        for event in events:
            self._events[event.id] = event
        self._write_json(EVENTS_FILE, list(self._events.values()))

    # =========================================================================
    # Booking Operations
    # =========================================================================

    def get_bookings(self) -> list[Booking]:
        """Get all bookings."""
        self._ensure_bookings_loaded()
        return list(self._bookings.values())

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        """Get a booking by ID."""
        self._ensure_bookings_loaded()
        return self._bookings.get(booking_id)

    def add_booking(self, booking: Booking) -> Booking:
        """Store a new booking (used by the reservation path)."""
        self._ensure_bookings_loaded()
        self._bookings[booking.id] = booking
        self._write_json(BOOKINGS_FILE, list(self._bookings.values()))
        return booking

    def update_booking_status(
        self,
        booking_id: str,
        status: BookingStatus,
    ) -> Optional[Booking]:
        """
        Update a booking's status.

        Leaving RESERVED clears expires_at. Returns the updated booking or None
        if not found. Transition legality is the caller's concern.
        """
        self._ensure_bookings_loaded()
        booking = self._bookings.get(booking_id)
        if booking is None:
            return None
        changes: dict[str, Any] = {"status": BookingStatus(status).value}
        if status != BookingStatus.RESERVED:
            changes["expires_at"] = None
        updated = booking.model_copy(update=changes)
        self._bookings[booking_id] = updated
        self._write_json(BOOKINGS_FILE, list(self._bookings.values()))
        return updated

    # =========================================================================
    # Payment Operations
    # =========================================================================

    def create_payment_intent(
        self,
        payment_id: str,
        booking_id: str,
        amount: float,
    ) -> PaymentIntent:
        """Create a new pending payment intent."""
        self._ensure_payments_loaded()
        intent = PaymentIntent(
            id=payment_id,
            booking_id=booking_id,
            amount=amount,
            status=PaymentStatus.PENDING,
            created_at=int(time.time() * 1000),
        )
        self._payments[payment_id] = intent
        self._write_json(PAYMENTS_FILE, list(self._payments.values()))
        return intent

    def find_payment_by_id(self, payment_id: str) -> Optional[PaymentIntent]:
        """Get a payment intent by ID."""
        self._ensure_payments_loaded()
        return self._payments.get(payment_id)

    def find_payments_by_booking_id(self, booking_id: str) -> list[PaymentIntent]:
        """Get all payment intents for a booking (retries included)."""
        self._ensure_payments_loaded()
        return [p for p in self._payments.values() if p.booking_id == booking_id]

    def update_payment_status(
        self,
        payment_id: str,
        status: PaymentStatus,
        method: Optional[str] = None,
        confirmed_by: Optional[str] = None,
        confirmed_at: Optional[datetime] = None,
    ) -> Optional[PaymentIntent]:
        """
        Update a payment intent's status with optional confirmation details.

        Returns the updated intent or None if not found.
        """
        self._ensure_payments_loaded()
        payment = self._payments.get(payment_id)
        if payment is None:
            return None
        changes: dict[str, Any] = {"status": PaymentStatus(status).value}
        if method:
            changes["method"] = method
        if confirmed_by:
            changes["confirmed_by"] = confirmed_by
        if confirmed_at:
            changes["confirmed_at"] = confirmed_at
        updated = payment.model_copy(update=changes)
        self._payments[payment_id] = updated
        self._write_json(PAYMENTS_FILE, list(self._payments.values()))
        return updated

    def get_all_payments(self) -> list[PaymentIntent]:
        """Get all payment intents."""
        self._ensure_payments_loaded()
        return list(self._payments.values())

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def reload(self):
        """
        Drop the in-memory caches so the next read goes back to disk.

        Useful for tests that check what was persisted.
        """
        self._events = None
        self._bookings = None
        self._payments = None
