"""
Admin chat message templates.

This module renders the human-readable messages the engine's lifecycle
events turn into. Messages use Telegram's HTML parse mode.

Design decisions:
- One template per notification type, each a header plus a list of lines
- A line whose placeholders are all missing (None) is dropped, so optional
  context (username, table, seats) does not leave empty labels behind
- Every substituted value is HTML-escaped
- Admin command replies (pending payments, booking status) are built here
  too so all user-facing text lives in one module
"""

import html
import string
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class NotificationType(str, Enum):
    """Supported notification types."""
    BOOKING_CREATED = "booking_created"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_EXPIRED = "booking_expired"
    PAYMENT_CREATED = "payment_created"
    PAYMENT_CONFIRMED = "payment_confirmed"


CURRENCY = "₽"

_formatter = string.Formatter()


def format_amount(amount: Optional[float]) -> Optional[str]:
    """Render an amount without a trailing .0 for whole numbers."""
    if amount is None:
        return None
    if float(amount).is_integer():
        return f"{int(amount)} {CURRENCY}"
    return f"{amount:.2f} {CURRENCY}"


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime("%d.%m.%Y %H:%M:%S")


def _placeholders(line: str) -> list[str]:
    return [name for _, name, _, _ in _formatter.parse(line) if name]


@dataclass
class NotificationTemplate:
    """
    A message template: a bold header followed by labelled lines.
    """
    notification_type: NotificationType
    header: str
    lines: list[str] = field(default_factory=list)

    def render(self, **context: Any) -> str:
        """
        Render the template with provided variables.

        Lines referencing only missing values are skipped.
        """
        escaped = {
            key: html.escape(str(value)) if value is not None else None
            for key, value in context.items()
        }
        out = [f"<b>{self.header}</b>"]
        for line in self.lines:
            names = _placeholders(line)
            if names and all(escaped.get(name) is None for name in names):
                continue
            out.append(line.format(**{name: escaped.get(name) or "" for name in names}))
        return "\n".join(out) + "\n"


# =============================================================================
# Template Definitions
# =============================================================================

TEMPLATES: dict[NotificationType, NotificationTemplate] = {

    NotificationType.BOOKING_CREATED: NotificationTemplate(
        notification_type=NotificationType.BOOKING_CREATED,
        header="📌 New Booking Created",
        lines=[
            "Booking ID: <code>{booking_id}</code>",
            "Event ID: <code>{event_id}</code>",
            "User: {username}",
            "Seats: {seats}",
            "Amount: {amount}",
        ],
    ),

    NotificationType.BOOKING_CANCELLED: NotificationTemplate(
        notification_type=NotificationType.BOOKING_CANCELLED,
        header="❌ Booking Cancelled",
        lines=[
            "Booking ID: <code>{booking_id}</code>",
            "Event ID: <code>{event_id}</code>",
            "User: {username}",
        ],
    ),

    NotificationType.BOOKING_EXPIRED: NotificationTemplate(
        notification_type=NotificationType.BOOKING_EXPIRED,
        header="⏰ Booking Expired",
        lines=[
            "Booking ID: <code>{booking_id}</code>",
            "Event ID: <code>{event_id}</code>",
            "User: {username}",
            "Reservation was not paid in time, seats released.",
        ],
    ),

    NotificationType.PAYMENT_CREATED: NotificationTemplate(
        notification_type=NotificationType.PAYMENT_CREATED,
        header="💰 New Payment Created",
        lines=[
            "<b>Payment:</b> <code>{payment_id}</code>",
            "<b>Booking:</b> <code>{booking_id}</code>",
            "<b>Event:</b> <code>{event_id}</code>",
            "<b>Table:</b> <code>{table_id}</code>",
            "<b>Seats:</b> {seats}",
            "<b>Amount:</b> <b>{amount}</b>",
            "<b>Method:</b> Manual Transfer",
            "<b>Instruction:</b> {instruction}",
        ],
    ),

    NotificationType.PAYMENT_CONFIRMED: NotificationTemplate(
        notification_type=NotificationType.PAYMENT_CONFIRMED,
        header="✅ Payment Confirmed",
        lines=[
            "<b>Booking:</b> <code>{booking_id}</code>",
            "<b>Amount:</b> <b>{amount}</b>",
            "<b>Confirmed by:</b> {confirmed_by}",
            "<b>Confirmed at:</b> {confirmed_at}",
        ],
    ),
}


# =============================================================================
# Template Access Functions
# =============================================================================

def get_template(notification_type: NotificationType) -> Optional[NotificationTemplate]:
    """Get a template by notification type."""
    return TEMPLATES.get(notification_type)


def render_notification(notification_type: NotificationType, **context) -> str:
    """
    Render a notification message.

    Raises:
        ValueError: If no template exists for the type
    """
    template = get_template(notification_type)
    if not template:
        raise ValueError(f"No template found for notification type: {notification_type}")
    return template.render(**context)


# =============================================================================
# Admin command replies
# =============================================================================

PAYMENT_STATUS_LABELS = {
    "pending": "⏳ Awaiting payment",
    "paid": "✅ Paid",
    "cancelled": "❌ Cancelled",
}

BOOKING_STATUS_LABELS = {
    "reserved": "🟡 Awaiting payment",
    "paid": "✅ Paid",
    "expired": "⏰ Expired",
    "cancelled": "❌ Cancelled",
}


def format_pending_payments(payments: list) -> str:
    """
    Format the admin's list of pending payments.

    Expects payments already sorted (newest first).
    """
    if not payments:
        return "No pending payments"

    blocks = []
    for index, payment in enumerate(payments, start=1):
        created = datetime.fromtimestamp(payment.created_at / 1000)
        blocks.append(
            f"<b>{index}.</b> Payment ID: <code>{html.escape(payment.id)}</code>\n"
            f"   Booking: <code>{html.escape(payment.booking_id)}</code>\n"
            f"   Amount: <b>{format_amount(payment.amount)}</b>\n"
            f"   Created: {format_timestamp(created)}"
        )
    return (
        "<b>⏳ Pending payments</b>\n\n"
        + "\n\n".join(blocks)
        + f"\n\n<i>Total: {len(payments)} pending payment(s)</i>"
    )


def format_booking_status(view, now: Optional[datetime] = None) -> str:
    """Format a booking status view (booking plus payment) for the admin chat."""
    lines = [
        "📋 BOOKING STATUS",
        "=" * 40,
        "",
        f"Booking: {html.escape(view.booking_id)}",
        f"Event: {html.escape(view.event_id)}",
    ]
    if view.seats_booked:
        lines.append(f"Seats: {view.seats_booked}")
    lines.append(f"Status: {BOOKING_STATUS_LABELS.get(view.status, view.status)}")

    if view.expires_at is not None:
        now = now or datetime.now(view.expires_at.tzinfo)
        remaining = (view.expires_at - now).total_seconds()
        if remaining > 0:
            minutes = int(remaining // 60)
            hours, mins = divmod(minutes, 60)
            lines.append(f"⏱ Expires in: {hours}h {mins}m" if hours else f"⏱ Expires in: {mins}m")
        else:
            lines.append("⏱ Expired")

    lines += ["", "💰 PAYMENT", "=" * 40]
    payment = view.payment
    if payment is None:
        lines += [f"Status: {PAYMENT_STATUS_LABELS['pending']}", "Amount: not set"]
    else:
        lines.append(f"Status: {PAYMENT_STATUS_LABELS.get(payment.status, payment.status)}")
        lines.append(f"Amount: {format_amount(payment.amount)}")
        if payment.confirmed_by:
            lines.append(f"Confirmed by: {html.escape(payment.confirmed_by)}")
        if payment.confirmed_at:
            lines.append(f"Time: {format_timestamp(payment.confirmed_at)}")
    return "\n".join(lines) + "\n"
