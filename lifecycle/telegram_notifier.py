"""
Telegram notifiers for booking and payment events.

These are the concrete notifiers plugged into the NotificationBus at start-up.
They turn lifecycle events into admin chat messages using the templates in
seating.templates and hand them to a TelegramChannel.

Errors from the channel propagate out of these methods. The bus catches and
logs them, and the state change that emitted the event is not affected.
"""

import logging
from typing import Optional

from lifecycle.events import (
    BookingCancelled,
    BookingCreated,
    PaymentConfirmed,
    PaymentCreated,
)
from lifecycle.notification_bus import NotificationBus
from seating.channels import TelegramChannel
from seating.config import Settings
from seating.models import CancellationReason
from seating.templates import (
    NotificationType,
    format_amount,
    format_timestamp,
    render_notification,
)

logger = logging.getLogger("telegram_notifier")


class TelegramBookingNotifier:
    """Posts booking created/cancelled messages to the admin chat."""

    def __init__(self, channel: TelegramChannel):
        self.channel = channel

    async def booking_created(self, event: BookingCreated) -> None:
        message = render_notification(
            NotificationType.BOOKING_CREATED,
            booking_id=event.booking_id,
            event_id=event.event_id,
            username=event.username,
            seats=event.seats or None,
            amount=format_amount(event.total_amount) if event.total_amount else None,
        )
        await self.channel.send(message)

    async def booking_cancelled(self, event: BookingCancelled) -> None:
        notification_type = (
            NotificationType.BOOKING_EXPIRED
            if event.reason == CancellationReason.EXPIRED
            else NotificationType.BOOKING_CANCELLED
        )
        message = render_notification(
            notification_type,
            booking_id=event.booking_id,
            event_id=event.event_id,
            username=event.username,
        )
        await self.channel.send(message)


class TelegramPaymentNotifier:
    """Posts payment created/confirmed messages to the admin chat."""

    def __init__(self, channel: TelegramChannel):
        self.channel = channel

    async def payment_created(self, event: PaymentCreated) -> None:
        message = render_notification(
            NotificationType.PAYMENT_CREATED,
            payment_id=event.payment_id,
            booking_id=event.booking_id,
            event_id=event.event_id,
            table_id=event.table_id,
            seats=event.seats_booked or None,
            amount=format_amount(event.amount),
            instruction=event.instruction,
        )
        await self.channel.send(message)

    async def payment_confirmed(self, event: PaymentConfirmed) -> None:
        message = render_notification(
            NotificationType.PAYMENT_CONFIRMED,
            booking_id=event.booking_id,
            amount=format_amount(event.amount),
            confirmed_by=event.confirmed_by,
            confirmed_at=format_timestamp(event.confirmed_at),
        )
        await self.channel.send(message)


def build_notification_bus(
    settings: Settings,
    channel: Optional[TelegramChannel] = None,
) -> NotificationBus:
    """
    Wire both notifier slots to one Telegram admin channel.

    A channel without credentials is disabled, so this is safe to call in
    development: messages are recorded and dropped.
    """
    channel = channel or TelegramChannel(
        bot_token=settings.telegram_bot_token,
        chat_id=settings.telegram_admin_chat_id,
    )
    logger.info(f"Telegram notifications {'enabled' if channel.enabled else 'disabled'}")
    return NotificationBus(
        booking_notifier=TelegramBookingNotifier(channel),
        payment_notifier=TelegramPaymentNotifier(channel),
    )
