"""
Finite state machine for booking status.

Bookings only move forward:

    PENDING -> CONFIRMED -> IN_PROGRESS -> COMPLETED
    PENDING | CONFIRMED -> CANCELLED
    CONFIRMED -> NO_SHOW

COMPLETED, CANCELLED and NO_SHOW are terminal. The machine is stateless;
the booking record carries the current status.

Usage:
    status = BookingStateMachine.next_status(BookingStatus.PENDING, BookingTrigger.CONFIRM)
    assert status == BookingStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from enum import Enum

from booking_engine.schemas.booking_schema import BookingStatus

logger = logging.getLogger(__name__)


class BookingTrigger(str, Enum):
    """Events that move a booking between statuses."""
    CONFIRM = "confirm"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"
    MARK_NO_SHOW = "mark_no_show"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: BookingStatus
    to_status: BookingStatus
    trigger: BookingTrigger


class InvalidTransitionError(Exception):
    """Raised when a trigger is not valid from a booking's current status."""


TERMINAL_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.NO_SHOW,
})


class BookingStateMachine:
    """Transition table lookups for booking status."""

    TRANSITIONS: list[Transition] = [
        # --- Happy path ---
        Transition(BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingTrigger.CONFIRM),
        Transition(BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingTrigger.START),
        Transition(BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED, BookingTrigger.COMPLETE),

        # --- Cancellation ---
        Transition(BookingStatus.PENDING, BookingStatus.CANCELLED, BookingTrigger.CANCEL),
        Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingTrigger.CANCEL),

        # --- No-show ---
        Transition(BookingStatus.CONFIRMED, BookingStatus.NO_SHOW, BookingTrigger.MARK_NO_SHOW),
    ]

    @classmethod
    def next_status(cls, current: BookingStatus, trigger: BookingTrigger) -> BookingStatus:
        """
        Resolve the status reached by applying ``trigger`` to ``current``.

        Raises:
            InvalidTransitionError: If no transition exists.
        """
        for t in cls.TRANSITIONS:
            if t.from_status == current and t.trigger == trigger:
                logger.debug(
                    "Booking transition: %s -> %s (trigger: %s)",
                    current.value, t.to_status.value, trigger.value,
                )
                return t.to_status

        valid = [t.value for t in cls.get_valid_triggers(current)]
        raise InvalidTransitionError(
            f"Cannot {trigger.value.replace('_', ' ')} a booking that is "
            f"'{current.value}'. Valid triggers: {valid}"
        )

    @classmethod
    def get_valid_triggers(cls, current: BookingStatus) -> list[BookingTrigger]:
        """Return all triggers valid from ``current``."""
        return [t.trigger for t in cls.TRANSITIONS if t.from_status == current]

    @classmethod
    def can_apply(cls, current: BookingStatus, trigger: BookingTrigger) -> bool:
        return trigger in cls.get_valid_triggers(current)

    @staticmethod
    def is_terminal(status: BookingStatus) -> bool:
        return status in TERMINAL_STATUSES
