"""
Tests for the DataStore.

These tests verify that the data store loads the JSON fixtures and provides
the reads and writes the lifecycle services rely on.
"""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from seating.data_store import DataStore, DataStoreError
from seating.models import Booking, BookingStatus, Event, PaymentStatus, Table


class TestDataStoreFixtures:
    """Tests against the bundled JSON fixtures."""

    def test_get_events(self, fixture_store: DataStore):
        """Test retrieving all events."""
        events = fixture_store.get_events()

        assert [e.id for e in events] == ["evt-1", "evt-2"]

    def test_get_event_tables(self, fixture_store: DataStore):
        event = fixture_store.get_event("evt-1")

        assert event is not None
        assert event.title == "Friday Jazz Night"
        table = event.get_table("t-2")
        assert table.seats_total == 6
        assert table.seats_available == 3

    def test_get_booking(self, fixture_store: DataStore):
        """Test retrieving a booking by ID."""
        booking = fixture_store.get_booking("bk-1")

        assert booking is not None
        assert booking.status == "reserved"
        assert booking.seats_booked == 2
        assert booking.expires_at == datetime(2024, 6, 1, 10, 15, tzinfo=timezone.utc)

    def test_get_nonexistent_booking(self, fixture_store: DataStore):
        """Test that getting a nonexistent booking returns None."""
        assert fixture_store.get_booking("nonexistent-id") is None

    def test_find_payments_by_booking_id(self, fixture_store: DataStore):
        payments = fixture_store.find_payments_by_booking_id("bk-4")

        assert [p.id for p in payments] == ["pay-3"]
        assert payments[0].status == PaymentStatus.PAID
        assert payments[0].confirmed_by == "admin"

    def test_get_all_payments(self, fixture_store: DataStore):
        assert len(fixture_store.get_all_payments()) == 3


class TestDataStoreWrites:
    """Tests for in-memory writes."""

    def test_update_booking_status(self, store: DataStore):
        """Leaving RESERVED clears expires_at."""
        updated = store.update_booking_status("bk-1", BookingStatus.EXPIRED)

        assert updated.status == "expired"
        assert updated.expires_at is None
        assert store.get_booking("bk-1").status == "expired"

    def test_update_missing_booking(self, store: DataStore):
        assert store.update_booking_status("bk-404", BookingStatus.PAID) is None

    def test_create_payment_intent(self, store: DataStore):
        intent = store.create_payment_intent("pay-1", "bk-1", 5000)

        assert intent.status == "pending"
        assert intent.created_at > 0
        assert store.find_payment_by_id("pay-1") == intent

    def test_update_payment_status_with_details(self, store: DataStore):
        store.create_payment_intent("pay-1", "bk-1", 5000)
        confirmed_at = datetime(2025, 3, 14, 20, 0, tzinfo=timezone.utc)

        updated = store.update_payment_status(
            "pay-1",
            PaymentStatus.PAID,
            method="manual",
            confirmed_by="admin",
            confirmed_at=confirmed_at,
        )

        assert updated.status == "paid"
        assert updated.confirmed_by == "admin"
        assert updated.confirmed_at == confirmed_at

    def test_update_missing_payment(self, store: DataStore):
        assert store.update_payment_status("pay-404", PaymentStatus.PAID) is None

    def test_save_events_keeps_seat_mutation(self, store: DataStore):
        event = store.get_event("evt-1")
        event.get_table("t-1").seats_available = 4

        store.save_events([event])

        assert store.get_event("evt-1").get_table("t-1").seats_available == 4

    def test_in_memory_store_does_not_write(self, store: DataStore):
        assert store.persist is False
        assert store.data_dir is None


class TestDataStorePersistence:
    """Tests for writing collections back to disk."""

    def test_round_trip_through_files(self, tmp_path: Path):
        store = DataStore(data_dir=tmp_path, persist=True)
        store.add_event(Event(
            id="evt-1",
            tables=[Table(id="t-1", seats_total=4, seats_available=2)],
        ))
        store.add_booking(Booking(id="bk-1", event_id="evt-1", table_id="t-1",
                                  seats_booked=2, created_at=0))
        store.update_booking_status("bk-1", BookingStatus.CANCELLED)

        store.reload()

        assert store.get_booking("bk-1").status == "cancelled"
        assert store.get_event("evt-1").get_table("t-1").seats_available == 2
        raw = json.loads((tmp_path / "bookings.json").read_text(encoding="utf-8"))
        assert raw[0]["status"] == "cancelled"

    def test_persist_false_leaves_disk_alone(self, tmp_path: Path):
        store = DataStore(data_dir=tmp_path, persist=False)
        store.create_payment_intent("pay-1", "bk-1", 100)

        assert not (tmp_path / "payments.json").exists()

    def test_corrupt_file_starts_empty(self, tmp_path: Path):
        (tmp_path / "bookings.json").write_text("{not json", encoding="utf-8")
        store = DataStore(data_dir=tmp_path)

        assert store.get_bookings() == []

    def test_corrupt_file_raises_when_strict(self, tmp_path: Path):
        (tmp_path / "bookings.json").write_text("{not json", encoding="utf-8")
        store = DataStore(data_dir=tmp_path, strict=True)

        with pytest.raises(DataStoreError):
            store.get_bookings()

    def test_invalid_record_is_skipped(self, tmp_path: Path):
        records = [
            {"id": "bk-1", "event_id": "evt-1", "created_at": 0, "status": "reserved"},
            {"id": "bk-2", "event_id": "evt-1", "created_at": 0, "status": "refunded"},
        ]
        (tmp_path / "bookings.json").write_text(json.dumps(records), encoding="utf-8")
        store = DataStore(data_dir=tmp_path)

        assert [b.id for b in store.get_bookings()] == ["bk-1"]
