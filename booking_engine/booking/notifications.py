"""
Reminder delivery seam.

The lifecycle manager only records *that* a reminder kind went out.
Delivery is delegated to a ``ReminderNotifier``; a notifier signals
failure by raising, which leaves the kind unsent for the next sweep.
"""

import logging
from typing import Protocol

from booking_engine.schemas.booking_schema import Booking, ReminderType

logger = logging.getLogger(__name__)


class ReminderNotifier(Protocol):
    def send(self, booking: Booking, reminder: ReminderType) -> None: ...


class LoggingNotifier:
    """Default notifier: writes each reminder to the log and records it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, ReminderType]] = []

    def send(self, booking: Booking, reminder: ReminderType) -> None:
        recipient = None
        if booking.customer_info is not None:
            if reminder.value.startswith("sms"):
                recipient = booking.customer_info.phone
            else:
                recipient = booking.customer_info.email
        logger.info(
            "Sending %s reminder for booking %s to %s",
            reminder.value, booking.id, recipient or booking.customer_id,
        )
        self.sent.append((booking.id, reminder))
