"""
Notification dispatcher: formats booking and event-update notices and hands
them to the configured transport.

Formatting is pure; the only side effect is NotificationTransport.deliver().
Payloads are the denormalized dicts the booking and event services enqueue,
so a notice reflects the state captured when the job was created, not the
current database state.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Union

from eventbooking.services.interfaces.notification import Notice, NotificationTransport
from eventbooking.core.logging import get_logger

logger = get_logger(__name__)


def format_amount(amount: Union[Decimal, float, int, str]) -> str:
    return f"${Decimal(str(amount)).quantize(Decimal('0.01'))}"


def format_timestamp(value: Union[datetime, str]) -> str:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


class NotificationDispatcher:
    def __init__(self, transport: NotificationTransport):
        self.transport = transport

    def booking_confirmation_notice(self, payload: dict[str, Any]) -> Notice:
        title = payload["event_title"]
        body = "\n".join([
            f"Dear {payload['customer_name']},",
            "",
            "Your booking has been confirmed!",
            "",
            f"Event: {title}",
            f"Number of Tickets: {payload['number_of_tickets']}",
            f"Total Amount: {format_amount(payload['total_amount'])}",
            f"Booking ID: {payload['booking_id']}",
            f"Booking Date: {format_timestamp(payload['booking_date'])}",
            "",
            "Thank you for booking with us!",
        ])
        return Notice(
            recipients=(payload["customer_email"],),
            subject=f"Booking Confirmation - {title}",
            body=body,
        )

    def event_update_notice(self, payload: dict[str, Any]) -> Notice:
        title = payload["event_title"]
        customers = payload.get("customers", [])
        lines = [
            f"Event: {title}",
            f"Updated Fields: {', '.join(payload['updated_fields'])}",
            "",
            f"Notifying {len(customers)} customer(s):",
        ]
        lines.extend(
            f"  {index}. {customer['name']} ({customer['email']})"
            for index, customer in enumerate(customers, start=1)
        )
        lines += [
            "",
            f'The event "{title}" has been updated.',
            "Please check your booking for the latest details.",
        ]
        return Notice(
            recipients=tuple(customer["email"] for customer in customers),
            subject=f"Event Update - {title}",
            body="\n".join(lines),
        )

    async def send_booking_confirmation(self, payload: dict[str, Any]) -> Notice:
        notice = self.booking_confirmation_notice(payload)
        await self.transport.deliver(notice)
        logger.info("booking_confirmation_sent", booking_id=payload["booking_id"])
        return notice

    async def send_event_update_notification(self, payload: dict[str, Any]) -> Notice:
        notice = self.event_update_notice(payload)
        await self.transport.deliver(notice)
        logger.info(
            "event_update_notification_sent",
            event_id=payload.get("event_id"),
            recipients=len(notice.recipients),
        )
        return notice
