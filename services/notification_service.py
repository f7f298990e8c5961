"""
Notification Service for customer messages.

Builds email and SMS messages for reservation confirmations, cancellations,
modifications and waitlist updates. Delivery goes through a pluggable
sender; the default one writes the message to the log. Failures are logged
and never propagate to the caller.
"""
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from core.config import Settings, settings as default_settings
from domain.enums import NotificationKind
from domain.models import WaitlistRecord


logger = logging.getLogger(__name__)


class NotificationPayload(BaseModel):
    """A single outbound message."""

    channel: str  # "email" or "sms"
    sender: str
    to: str
    subject: str = ""
    message: str


EMAIL_TEMPLATES: Dict[NotificationKind, Dict[str, str]] = {
    NotificationKind.RESERVATION: {
        "subject": "Reservation Confirmation",
        "body": (
            "Dear {customer_name},\n\nYour reservation has been confirmed!\n\n"
            "Details:\n- Date: {reservation_date}\n- Time: {reservation_time}\n"
            "- Party Size: {party_size}\n- Table: {table_number}\n"
            "- Confirmation Code: {confirmation_code}\n\n"
            "We look forward to serving you!\n\nBest regards,\n{restaurant_name}"
        ),
    },
    NotificationKind.CANCELLATION: {
        "subject": "Reservation Cancelled",
        "body": (
            "Dear {customer_name},\n\nYour reservation has been cancelled.\n\n"
            "Details:\n- Date: {reservation_date}\n- Time: {reservation_time}\n"
            "- Confirmation Code: {confirmation_code}\n\n"
            "We hope to see you again soon!\n\nBest regards,\n{restaurant_name}"
        ),
    },
    NotificationKind.MODIFICATION: {
        "subject": "Reservation Modified",
        "body": (
            "Dear {customer_name},\n\nYour reservation has been updated.\n\n"
            "New Details:\n- Date: {reservation_date}\n- Time: {reservation_time}\n"
            "- Party Size: {party_size}\n- Table: {table_number}\n\n"
            "Best regards,\n{restaurant_name}"
        ),
    },
    NotificationKind.WAITLIST: {
        "subject": "Added to Waitlist",
        "body": (
            "Dear {customer_name},\n\nYou've been added to our waitlist.\n\n"
            "Details:\n- Date: {waitlist_date}\n- Party Size: {party_size}\n"
            "- Position: {position}\n\n"
            "We'll notify you when a table becomes available.\n\n"
            "Best regards,\n{restaurant_name}"
        ),
    },
}

SMS_TEMPLATES: Dict[NotificationKind, str] = {
    NotificationKind.RESERVATION: (
        "Hi {customer_name}! Your reservation at {restaurant_name} is confirmed for "
        "{reservation_date} at {reservation_time}. Code: {confirmation_code}"
    ),
    NotificationKind.CANCELLATION: (
        "Hi {customer_name}! Your reservation at {restaurant_name} for "
        "{reservation_date} has been cancelled."
    ),
    NotificationKind.MODIFICATION: (
        "Hi {customer_name}! Your reservation at {restaurant_name} has been updated to "
        "{reservation_date} at {reservation_time}."
    ),
    NotificationKind.WAITLIST: (
        "Hi {customer_name}! You're #{position} on the waitlist for {restaurant_name} "
        "on {waitlist_date}."
    ),
}


class _Defaults(dict):
    """Format mapping that leaves unknown placeholders blank."""

    def __missing__(self, key: str) -> str:
        return ""


def log_sender(payload: NotificationPayload) -> None:
    """Default delivery: record the message in the log."""
    logger.info(
        f"{payload.channel.upper()} notification",
        extra={
            "from": payload.sender,
            "to": payload.to,
            "subject": payload.subject,
            "preview": payload.message[:100],
        },
    )


class NotificationService:
    """Service for sending customer notifications."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        sender: Optional[Callable[[NotificationPayload], None]] = None
    ):
        """
        Initialize NotificationService.

        Args:
            config: Application settings
            sender: Callable that delivers one payload
        """
        config = config or default_settings
        self.enabled = config.enable_notifications
        self.from_email = config.notification_from_email
        self.from_phone = config.notification_from_phone
        self.sender = sender or log_sender

    def _build_email(self, kind: NotificationKind, email: str, fields: Dict[str, Any]) -> NotificationPayload:
        template = EMAIL_TEMPLATES[kind]
        return NotificationPayload(
            channel="email",
            sender=self.from_email,
            to=email,
            subject=template["subject"],
            message=template["body"].format_map(_Defaults(fields)),
        )

    def _build_sms(self, kind: NotificationKind, phone: str, fields: Dict[str, Any]) -> NotificationPayload:
        return NotificationPayload(
            channel="sms",
            sender=self.from_phone,
            to=phone,
            message=SMS_TEMPLATES[kind].format_map(_Defaults(fields)),
        )

    def send_confirmation(
        self,
        kind: NotificationKind,
        customer_name: str,
        customer_phone: str,
        customer_email: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Send a confirmation-type message by email (when known) and SMS.

        Returns:
            True if the messages were handed to the sender
        """
        if not self.enabled:
            logger.info("Notifications disabled, skipping...")
            return False

        try:
            fields = {"customer_name": customer_name, **(details or {})}
            if customer_email:
                self.sender(self._build_email(kind, customer_email, fields))
            self.sender(self._build_sms(kind, customer_phone, fields))
            logger.info(f"{kind.value} notification sent to {customer_name}")
            return True
        except Exception as e:
            logger.error(f"Error sending {kind.value} notification: {e}")
            return False

    def notify_waitlist_availability(
        self,
        entry: WaitlistRecord,
        restaurant_name: str,
        available_date: str,
        available_time: str,
        table_number: str
    ) -> bool:
        """Tell a waiting party that a table has opened up."""
        if not self.enabled:
            return False

        try:
            message = (
                f"Great news {entry.customer_name}! A table is now available at "
                f"{restaurant_name} on {available_date} at {available_time} "
                f"(Table {table_number}). Reply within 15 minutes to confirm!"
            )
            self.sender(NotificationPayload(
                channel="sms",
                sender=self.from_phone,
                to=entry.customer_phone,
                message=message,
            ))
            if entry.customer_email:
                self.sender(NotificationPayload(
                    channel="email",
                    sender=self.from_email,
                    to=entry.customer_email,
                    subject="Table Available - Action Required",
                    message=message,
                ))
            logger.info(f"Waitlist availability notification sent to {entry.customer_name}")
            return True
        except Exception as e:
            logger.error(f"Error sending waitlist notification: {e}")
            return False
