#!/usr/bin/env python3
"""
Command-line interface for the table booking engine.

Usage:
    uv run python cli.py [command] [options]

Commands:
    sweep       Expire stale reservations now
    pending     List pending manual payments
    status      Show a booking's status and payment
    confirm     Confirm a manual payment
    test        Run the test suite
    serve       Start the API server

Examples:
    uv run python cli.py sweep
    uv run python cli.py status bk-1
    uv run python cli.py confirm pay-1 --by admin
    uv run python cli.py serve
"""

import argparse
import logging
import subprocess
import sys

from lifecycle.notification_bus import NotificationBus
from lifecycle.services.bookings import BookingService
from lifecycle.services.expiration import ExpirationSweeper
from lifecycle.services.payments import PaymentService
from lifecycle.telegram_notifier import build_notification_bus
from seating.config import Settings
from seating.data_store import DataStore
from seating.templates import format_booking_status, format_pending_payments


def _build(settings: Settings, notify: bool) -> tuple[BookingService, PaymentService]:
    store = DataStore(data_dir=settings.data_dir, persist=settings.persist_data)
    bus = build_notification_bus(settings) if notify else NotificationBus()
    bookings = BookingService(store, notifications=bus, ttl_minutes=settings.booking_ttl_minutes)
    payments = PaymentService(store, notifications=bus, instruction=settings.payment_instruction)
    return bookings, payments


def run_sweep(settings: Settings, notify: bool) -> None:
    """Run one expiration sweep."""
    bookings, _ = _build(settings, notify)
    expired = ExpirationSweeper(bookings.data_store, bookings).expire_stale_bookings()
    print(f"Expired {expired} booking(s)")


def run_pending(settings: Settings) -> None:
    """Print pending payments, newest first."""
    _, payments = _build(settings, notify=False)
    print(format_pending_payments(payments.list_pending_payments()))


def run_status(settings: Settings, booking_id: str) -> None:
    """Print a booking's status."""
    bookings, _ = _build(settings, notify=False)
    view = bookings.get_booking_status(booking_id)
    if view is None:
        print(f"Booking not found: {booking_id}")
        sys.exit(1)
    print(format_booking_status(view))


def run_confirm(settings: Settings, payment_id: str, confirmed_by: str, notify: bool) -> None:
    """Confirm a manual payment."""
    _, payments = _build(settings, notify)
    result = payments.mark_paid(payment_id, confirmed_by)
    if not result.success:
        print(f"Error ({result.status}): {result.error}")
        sys.exit(1)
    print(f"Payment {payment_id} confirmed by {confirmed_by}")


def run_tests(args: list[str]) -> None:
    """Run the test suite."""
    cmd = ["uv", "run", "pytest"] + args
    subprocess.run(cmd)


def run_server(host: str, port: int, reload: bool) -> None:
    """Start the API server."""
    cmd = ["uv", "run", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")
    subprocess.run(cmd)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Table Booking Engine CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s sweep
  %(prog)s sweep --no-notify
  %(prog)s pending
  %(prog)s status bk-1
  %(prog)s confirm pay-1 --by admin
  %(prog)s test tests/test_lifecycle
  %(prog)s serve --reload
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Sweep command
    sweep_parser = subparsers.add_parser("sweep", help="Expire stale reservations now")
    sweep_parser.add_argument(
        "--no-notify",
        action="store_true",
        help="Do not post expiration messages to the admin chat",
    )

    # Pending command
    subparsers.add_parser("pending", help="List pending manual payments")

    # Status command
    status_parser = subparsers.add_parser("status", help="Show a booking's status")
    status_parser.add_argument("booking_id", help="Booking ID")

    # Confirm command
    confirm_parser = subparsers.add_parser("confirm", help="Confirm a manual payment")
    confirm_parser.add_argument("payment_id", help="Payment ID")
    confirm_parser.add_argument("--by", dest="confirmed_by", required=True, help="Confirming admin")
    confirm_parser.add_argument(
        "--no-notify",
        action="store_true",
        help="Do not post the confirmation to the admin chat",
    )

    # Test command
    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "sweep":
        run_sweep(Settings.from_env(), notify=not args.no_notify)
    elif args.command == "pending":
        run_pending(Settings.from_env())
    elif args.command == "status":
        run_status(Settings.from_env(), args.booking_id)
    elif args.command == "confirm":
        run_confirm(Settings.from_env(), args.payment_id, args.confirmed_by, notify=not args.no_notify)
    elif args.command == "test":
        run_tests(args.pytest_args)
    elif args.command == "serve":
        run_server(args.host, args.port, args.reload)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
