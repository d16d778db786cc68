"""Tests for the booking status state machine."""

import pytest

from booking_engine.booking.state_machine import (
    BookingStateMachine,
    BookingTrigger,
    InvalidTransitionError,
)
from booking_engine.schemas.booking_schema import BookingStatus


class TestHappyPath:
    def test_pending_to_confirmed(self):
        assert BookingStateMachine.next_status(
            BookingStatus.PENDING, BookingTrigger.CONFIRM
        ) == BookingStatus.CONFIRMED

    def test_confirmed_to_in_progress(self):
        assert BookingStateMachine.next_status(
            BookingStatus.CONFIRMED, BookingTrigger.START
        ) == BookingStatus.IN_PROGRESS

    def test_in_progress_to_completed(self):
        assert BookingStateMachine.next_status(
            BookingStatus.IN_PROGRESS, BookingTrigger.COMPLETE
        ) == BookingStatus.COMPLETED


class TestCancellationAndNoShow:
    @pytest.mark.parametrize("status", [BookingStatus.PENDING, BookingStatus.CONFIRMED])
    def test_cancel_allowed(self, status):
        assert BookingStateMachine.next_status(
            status, BookingTrigger.CANCEL
        ) == BookingStatus.CANCELLED

    def test_cancel_in_progress_rejected(self):
        with pytest.raises(InvalidTransitionError, match="in_progress"):
            BookingStateMachine.next_status(BookingStatus.IN_PROGRESS, BookingTrigger.CANCEL)

    def test_no_show_from_confirmed(self):
        assert BookingStateMachine.next_status(
            BookingStatus.CONFIRMED, BookingTrigger.MARK_NO_SHOW
        ) == BookingStatus.NO_SHOW

    def test_no_show_from_pending_rejected(self):
        with pytest.raises(InvalidTransitionError):
            BookingStateMachine.next_status(BookingStatus.PENDING, BookingTrigger.MARK_NO_SHOW)


class TestTerminalStates:
    @pytest.mark.parametrize("status", [
        BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW,
    ])
    def test_no_transitions_out(self, status):
        assert BookingStateMachine.is_terminal(status)
        assert BookingStateMachine.get_valid_triggers(status) == []
        for trigger in BookingTrigger:
            with pytest.raises(InvalidTransitionError):
                BookingStateMachine.next_status(status, trigger)

    def test_pending_is_not_terminal(self):
        assert not BookingStateMachine.is_terminal(BookingStatus.PENDING)


class TestForwardOnly:
    def test_no_transition_returns_to_pending(self):
        targets = {t.to_status for t in BookingStateMachine.TRANSITIONS}
        assert BookingStatus.PENDING not in targets

    def test_error_lists_valid_triggers(self):
        with pytest.raises(InvalidTransitionError, match="confirm"):
            BookingStateMachine.next_status(BookingStatus.PENDING, BookingTrigger.COMPLETE)
