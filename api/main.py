"""
FastAPI application for the table booking engine.

This application provides:
1. The customer-facing reservation and payment-intent endpoints
2. Admin endpoints to confirm or cancel payments and to inspect or cancel bookings
3. The periodic expiration job, started and stopped with the app

Run with:
    uv run uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)

from lifecycle.notification_bus import NotificationBus
from lifecycle.results import ServiceResponse
from lifecycle.scheduler import ExpirationJob
from lifecycle.services.bookings import BookingService
from lifecycle.services.expiration import ExpirationSweeper
from lifecycle.services.payments import PaymentService
from lifecycle.telegram_notifier import build_notification_bus
from seating.config import Settings
from seating.data_store import DataStore
from seating.models import BookingStatusView, PaymentIntent

logger = logging.getLogger("api")


# Request models
class ReserveRequest(BaseModel):
    """Hold seats at a table."""
    event_id: Optional[str] = Field(default=None, description="Event to book")
    table_id: Optional[str] = Field(default=None, description="Table within the event")
    seats: Any = Field(default=None, description="Number of seats to hold")
    username: Optional[str] = Field(default=None, description="Customer's chat handle")
    total_amount: Optional[float] = Field(default=None, description="Overrides price x seats")


class PaymentRequest(BaseModel):
    """Open a manual payment for a booking."""
    booking_id: Optional[str] = Field(default=None, description="Booking being paid for")
    amount: Any = Field(default=None, description="Amount to pay, must be positive")


class ConfirmPaymentRequest(BaseModel):
    """Admin confirmation of a manual transfer."""
    confirmed_by: Optional[str] = Field(default=None, description="Admin who saw the transfer")


class ExpireResult(BaseModel):
    """Result of an on-demand expiration sweep."""
    expired: int


def _respond(result: ServiceResponse) -> JSONResponse:
    """Map a service envelope to an HTTP response."""
    if not result.success:
        return JSONResponse(status_code=result.status, content={"error": result.error})
    return JSONResponse(status_code=result.status, content=result.data.model_dump(mode="json"))


def create_app(
    store: Optional[DataStore] = None,
    settings: Optional[Settings] = None,
    notifications: Optional[NotificationBus] = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """
    Build the application around one data store and one notification bus.

    Args:
        store: Data store to use (defaults to the JSON files in settings.data_dir)
        settings: Runtime settings (defaults to Settings.from_env())
        notifications: Bus to emit on (defaults to the Telegram admin chat)
        start_scheduler: Run the expiration job for the app's lifetime
    """
    settings = settings or Settings.from_env()
    store = store or DataStore(data_dir=settings.data_dir, persist=settings.persist_data)
    bus = notifications or build_notification_bus(settings)

    booking_service = BookingService(
        store, notifications=bus, ttl_minutes=settings.booking_ttl_minutes
    )
    payment_service = PaymentService(
        store, notifications=bus, instruction=settings.payment_instruction
    )
    sweeper = ExpirationSweeper(store, booking_service)
    job = ExpirationJob(sweeper, interval_seconds=settings.expiration_interval_seconds)

    # Application lifespan
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup and shutdown."""
        logger.info("Starting table booking API")
        if start_scheduler:
            job.start()
        yield
        await job.stop()
        await bus.drain()
        logger.info("Shutting down")

    app = FastAPI(
        title="Table Booking Engine",
        description="""
    Reservation, manual payment and expiration lifecycle for event table bookings.

    ## Endpoints

    - `/bookings` - Reserve seats at a table
    - `/payments` - Open a manual payment for a booking
    - `/admin/payments/*` - Confirm, cancel and list manual payments
    - `/admin/bookings/*` - Inspect, cancel and expire bookings
    """,
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.notifications = bus
    app.state.booking_service = booking_service
    app.state.payment_service = payment_service
    app.state.sweeper = sweeper
    app.state.expiration_job = job

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "table-booking-engine",
            "expiration_job": job.is_running,
        }

    # =========================================================================
    # Customer Endpoints
    # =========================================================================

    @app.post("/bookings", tags=["Bookings"])
    async def reserve_seats(request: ReserveRequest):
        """Hold seats at a table for BOOKING_TTL_MINUTES."""
        return _respond(booking_service.reserve(
            request.event_id,
            request.table_id,
            request.seats,
            username=request.username,
            total_amount=request.total_amount,
        ))

    @app.post("/payments", tags=["Payments"])
    async def create_payment(request: PaymentRequest):
        """
        Open a pending manual payment.

        The admin chat is told about it; the customer transfers the money
        out of band and an admin confirms it later.
        """
        return _respond(payment_service.create_payment_intent(request.booking_id, request.amount))

    # =========================================================================
    # Admin: Payments
    # =========================================================================

    @app.post("/admin/payments/{payment_id}/confirm", tags=["Admin"])
    async def confirm_payment(payment_id: str, request: ConfirmPaymentRequest):
        """Mark a manual payment as received and the booking as paid."""
        return _respond(payment_service.mark_paid(payment_id, request.confirmed_by))

    @app.post("/admin/payments/{payment_id}/cancel", tags=["Admin"])
    async def cancel_payment(payment_id: str):
        """Drop a pending payment. The booking is left as it is."""
        return _respond(payment_service.cancel_payment(payment_id))

    @app.get("/admin/payments/pending", response_model=list[PaymentIntent], tags=["Admin"])
    async def list_pending_payments():
        """Pending payments, newest first."""
        return payment_service.list_pending_payments()

    # =========================================================================
    # Admin: Bookings
    # =========================================================================

    @app.get("/admin/bookings/{booking_id}", response_model=BookingStatusView, tags=["Admin"])
    async def get_booking_status(booking_id: str):
        """Booking status together with its most relevant payment."""
        view = booking_service.get_booking_status(booking_id)
        if view is None:
            return JSONResponse(status_code=404, content={"error": "Booking not found"})
        return view

    @app.post("/admin/bookings/expire", response_model=ExpireResult, tags=["Admin"])
    async def expire_bookings():
        """Run the expiration sweep now instead of waiting for the next tick."""
        return ExpireResult(expired=sweeper.expire_stale_bookings())

    @app.post("/admin/bookings/{booking_id}/cancel", tags=["Admin"])
    async def cancel_booking(booking_id: str):
        """Cancel a reserved booking and give its seats back."""
        return _respond(booking_service.cancel(booking_id))

    return app


app = create_app()
