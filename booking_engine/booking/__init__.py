from booking_engine.booking.lifecycle import BookingLifecycleManager
from booking_engine.booking.notifications import LoggingNotifier, ReminderNotifier
from booking_engine.booking.state_machine import (
    BookingStateMachine,
    BookingTrigger,
    InvalidTransitionError,
)

__all__ = [
    "BookingLifecycleManager",
    "BookingStateMachine",
    "BookingTrigger",
    "InvalidTransitionError",
    "LoggingNotifier",
    "ReminderNotifier",
]
