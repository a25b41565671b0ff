"""
Notification bus for booking and payment lifecycle events.

The state machines report what happened through this bus; a pluggable
notifier decides how (or whether) the outside world hears about it. The
domain never talks to Telegram, email or anything else directly.

Design decisions:
- Two notifier slots, one for booking events and one for payment events,
  injected at construction and defaulting to no-op notifiers
- Fire-and-forget: inside a running event loop, delivery is a detached task;
  the emitting operation returns before the notifier settles
- emit() never raises. A failing notifier is logged and dropped, because the
  state change that produced the event has already been committed
- Deliveries start in emission order; there is no ordering guarantee across
  concurrent callers
"""

import asyncio
from collections import deque
import logging
from typing import Awaitable, Callable, Optional, Protocol

from lifecycle.events import (
    BookingCancelled,
    BookingCreated,
    EventTypes,
    LifecycleEvent,
    PaymentConfirmed,
    PaymentCreated,
)

logger = logging.getLogger("notification_bus")

# Most recent events kept by the in-memory event log
DEFAULT_EVENT_LOG_SIZE = 500


# =============================================================================
# Notifier contracts
# =============================================================================

class BookingEventNotifier(Protocol):
    """Receives booking lifecycle events."""

    async def booking_created(self, event: BookingCreated) -> None: ...

    async def booking_cancelled(self, event: BookingCancelled) -> None: ...


class PaymentEventNotifier(Protocol):
    """Receives payment lifecycle events."""

    async def payment_created(self, event: PaymentCreated) -> None: ...

    async def payment_confirmed(self, event: PaymentConfirmed) -> None: ...


class NoopBookingNotifier:
    """Accepts every booking event and does nothing."""

    async def booking_created(self, event: BookingCreated) -> None:
        return None

    async def booking_cancelled(self, event: BookingCancelled) -> None:
        return None


class NoopPaymentNotifier:
    """Accepts every payment event and does nothing."""

    async def payment_created(self, event: PaymentCreated) -> None:
        return None

    async def payment_confirmed(self, event: PaymentConfirmed) -> None:
        return None


Handler = Callable[[LifecycleEvent], Awaitable[None]]


# =============================================================================
# Bus
# =============================================================================

class NotificationBus:
    """
    Failure-isolated dispatcher from lifecycle events to notifiers.

    Example usage:
        bus = NotificationBus(booking_notifier=TelegramBookingNotifier(channel))
        bus.emit(BookingCancelled(booking_id="bk-1", event_id="evt-1"))
        await bus.drain()   # only needed by tests and shutdown
    """

    def __init__(
        self,
        booking_notifier: Optional[BookingEventNotifier] = None,
        payment_notifier: Optional[PaymentEventNotifier] = None,
        event_log_size: int = DEFAULT_EVENT_LOG_SIZE,
    ):
        self.booking_notifier = booking_notifier or NoopBookingNotifier()
        self.payment_notifier = payment_notifier or NoopPaymentNotifier()

        # Strong references keep detached deliveries alive until they finish
        self._pending: set[asyncio.Task] = set()

        self._event_log: deque[LifecycleEvent] = deque(maxlen=event_log_size)
        self._log_events: bool = True

    def _resolve(self, event: LifecycleEvent) -> Optional[Handler]:
        routes = {
            EventTypes.BOOKING_CREATED: lambda: self.booking_notifier.booking_created,
            EventTypes.BOOKING_CANCELLED: lambda: self.booking_notifier.booking_cancelled,
            EventTypes.PAYMENT_CREATED: lambda: self.payment_notifier.payment_created,
            EventTypes.PAYMENT_CONFIRMED: lambda: self.payment_notifier.payment_confirmed,
        }
        route = routes.get(event.event_type)
        return route() if route else None

    async def _deliver(self, handler: Handler, event: LifecycleEvent) -> None:
        try:
            await handler(event)
        except Exception as e:
            logger.error(f"Notifier failed for {event}: {e!r}")

    def emit(self, event: LifecycleEvent) -> None:
        """
        Hand an event to its notifier without letting the notifier affect the caller.

        With a running event loop the delivery is scheduled as a task and this
        returns immediately. Without one (plain synchronous callers) the
        delivery runs to completion here, still failure-isolated.
        """
        try:
            if self._log_events:
                self._event_log.append(event)

            handler = self._resolve(event)
            if handler is None:
                logger.warning(f"No notifier route for event type '{event.event_type}'")
                return

            logger.info(f"Emitting: {event}")
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None

            if loop is None:
                asyncio.run(self._deliver(handler, event))
                return

            task = loop.create_task(self._deliver(handler, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        except Exception as e:
            logger.error(f"Failed to dispatch {event}: {e!r}")

    async def drain(self) -> None:
        """Wait for every in-flight delivery to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def get_event_log(self) -> list[LifecycleEvent]:
        """
        Get the most recent emitted events, oldest first.

        Useful for debugging and testing.
        """
        return list(self._event_log)

    def clear_event_log(self) -> None:
        """Clear the event log."""
        self._event_log.clear()

    def set_logging(self, enabled: bool) -> None:
        """Enable or disable the event log."""
        self._log_events = enabled
