"""
Booking lifecycle manager.

Owns every write to a booking: creation with staff auto-assignment,
status transitions, rescheduling, cancellation with fees, and the
reminder sweep. Expected business outcomes (invalid request, no free
staff, lost race, unknown id, illegal transition) come back as a
``BookingResult``; exceptions are reserved for defects.

Every mutation of a booking, and of its staff member's reserved
intervals, happens under that staff member's lock from the availability
calculator. Create and reschedule never wait for a contended lock and
report a conflict instead.
"""

import threading
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional, Union

from booking_engine.availability.calculator import AvailabilityCalculator, StaffBusyError
from booking_engine.booking.confirmation import build_confirmation
from booking_engine.booking.notifications import LoggingNotifier, ReminderNotifier
from booking_engine.booking.state_machine import (
    BookingStateMachine,
    BookingTrigger,
    InvalidTransitionError,
)
from booking_engine.config import AppConfig, settings
from booking_engine.logging_context import get_request_logger
from booking_engine.repository import InMemoryRepository, Repository
from booking_engine.schemas.booking_schema import (
    Booking,
    BookingFilters,
    BookingRequest,
    BookingResult,
    BookingStatus,
    CancelledBy,
    ErrorKind,
    PaymentStatus,
    ReminderType,
)
from booking_engine.schemas.service_schema import Service
from booking_engine.schemas.slot_schema import TimeSlot
from booking_engine.schemas.staff_schema import Staff
from booking_engine.utils import to_naive_local

logger = get_request_logger(__name__)

Clock = Callable[[], datetime]

_CENT = Decimal("0.01")
_MUTABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


def _failure(
    kind: ErrorKind,
    error: str,
    validation_errors: Optional[list[str]] = None,
    alternatives: Optional[list[TimeSlot]] = None,
    booking: Optional[Booking] = None,
) -> BookingResult:
    return BookingResult(
        success=False,
        error=error,
        error_kind=kind,
        validation_errors=validation_errors or [],
        alternatives=alternatives or [],
        booking=booking,
    )


def _find_staff(roster: list[Staff], staff_id: str) -> Optional[Staff]:
    return next((s for s in roster if s.id == staff_id), None)


class BookingLifecycleManager:
    """Creates bookings and drives them through their status machine."""

    def __init__(
        self,
        calculator: AvailabilityCalculator,
        repository: Optional[Repository[Booking]] = None,
        config: AppConfig = settings,
        notifier: Optional[ReminderNotifier] = None,
        clock: Clock = datetime.now,
    ) -> None:
        self._calculator = calculator
        self._repo = repository if repository is not None else InMemoryRepository("booking")
        self._config = config
        self._notifier = notifier if notifier is not None else LoggingNotifier()
        self._clock = clock
        self._sweep_lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #

    def create_booking(
        self,
        request: BookingRequest,
        service: Service,
        available_staff: list[Staff],
    ) -> BookingResult:
        """Validate, assign staff, and commit a booking in ``PENDING``.

        The final conflict check and the commit run under the staff
        member's lock, so two requests for overlapping times cannot both
        succeed.
        """
        now = self._clock()
        errors = self._validate_time(service, request.preferred_time, now)
        if request.service_id != service.id:
            errors.insert(0, f"Request is for service '{request.service_id}', not '{service.id}'")
        if errors:
            logger.debug("Booking request rejected: %s", "; ".join(errors))
            return _failure(ErrorKind.VALIDATION, "Invalid booking request", validation_errors=errors)

        if request.staff_id:
            staff = _find_staff(available_staff, request.staff_id)
            if staff is None:
                return _failure(
                    ErrorKind.NOT_FOUND,
                    f"Staff member '{request.staff_id}' is not available for booking",
                )
            if not self._calculator.can_staff_perform_service(staff, service):
                return _failure(
                    ErrorKind.VALIDATION,
                    f"{staff.name} cannot perform {service.name}",
                    validation_errors=["Staff member lacks the required skills"],
                )
        else:
            assignment = self._calculator.get_optimal_staff_assignment(
                service, available_staff, request.preferred_time,
            )
            if assignment.staff is None:
                logger.debug(
                    "No staff free for %s at %s", service.id, request.preferred_time.isoformat(),
                )
                return _failure(
                    ErrorKind.UNAVAILABLE,
                    "No staff available at the requested time",
                    alternatives=self._find_alternative_slots(service, available_staff, request),
                )
            staff = assignment.staff

        reserved_start, reserved_end = self._calculator.reserved_interval(
            service, request.preferred_time,
        )
        booking: Optional[Booking] = None
        try:
            with self._calculator.staff_lock(staff.id):
                conflicts = self._calculator.check_conflicts(staff, reserved_start, reserved_end)
                if not conflicts:
                    booking = Booking(
                        tenant_id=request.tenant_id,
                        customer_id=request.customer_id,
                        service_id=service.id,
                        staff_id=staff.id,
                        start_time=request.preferred_time,
                        end_time=request.preferred_time + timedelta(minutes=service.duration),
                        buffer_before=service.buffer_before,
                        buffer_after=service.buffer_after,
                        notes=request.notes,
                        price=service.price,
                        currency=service.currency,
                        cancellation_policy=service.effective_cancellation_policy(
                            self._config.cancellation
                        ),
                        customer_info=request.customer_info,
                        created_at=now,
                        updated_at=now,
                    )
                    self._repo.create(booking)
                    self._calculator.add_appointment(staff.id, reserved_start, reserved_end)
        except StaffBusyError:
            conflicts = []

        if booking is None:
            # Auto-assigned staff were free moments ago, so any failure here is a lost race
            if conflicts and request.staff_id:
                kind = ErrorKind.UNAVAILABLE
                error = f"{staff.name} is not available at the requested time"
            else:
                kind = ErrorKind.CONFLICT
                error = "The requested time was taken by another booking"
            logger.info("Booking for %s at %s failed: %s", staff.id, request.preferred_time, kind.value)
            return _failure(
                kind, error,
                alternatives=self._find_alternative_slots(service, available_staff, request),
            )

        confirmation = build_confirmation(booking, service, staff, request.customer_info)
        logger.info(
            "Booking created: %s with %s at %s (code %s)",
            booking.id, staff.id, booking.start_time.isoformat(), confirmation.confirmation_code,
        )
        return BookingResult(success=True, booking=booking, confirmation=confirmation)

    def _validate_time(self, service: Service, start: datetime, now: datetime) -> list[str]:
        errors = []
        if not service.is_active:
            errors.append(f"Service '{service.name}' is not currently bookable")
        if start <= now:
            errors.append("Booking time must be in the future")
        errors.extend(service.validate_booking_time(start, now))
        return errors

    def _find_alternative_slots(
        self,
        service: Service,
        available_staff: list[Staff],
        request: BookingRequest,
    ) -> list[TimeSlot]:
        """Open slots near the customer's alternative times, then the next forward slot."""
        now = self._clock()
        scheduling = self._config.scheduling
        window = timedelta(minutes=scheduling.alternative_window_minutes)
        roster = available_staff
        if request.staff_id:
            roster = [s for s in available_staff if s.id == request.staff_id]

        def bookable(slot: TimeSlot) -> bool:
            return slot.start_time > now and not service.validate_booking_time(slot.start_time, now)

        alternatives: list[TimeSlot] = []
        seen: set[tuple[datetime, str]] = set()

        def add(slot: TimeSlot) -> None:
            key = (slot.start_time, slot.staff_id)
            if key not in seen and bookable(slot):
                seen.add(key)
                alternatives.append(slot)

        for alternative_time in request.alternative_times:
            for slot in self._calculator.calculate_availability(
                service, roster, date=alternative_time.date(), include_unavailable=False,
            ):
                if abs(slot.start_time - alternative_time) < window:
                    add(slot)

        next_slot = self._calculator.find_next_available_slot(
            service, roster, max(request.preferred_time, now),
        )
        if next_slot is not None:
            add(next_slot)

        return alternatives[:scheduling.max_alternatives]

    # ------------------------------------------------------------------ #
    # Cancellation and rescheduling
    # ------------------------------------------------------------------ #

    def cancel_booking(
        self,
        booking_id: str,
        reason: Optional[str] = None,
        cancelled_by: Union[CancelledBy, str] = CancelledBy.CUSTOMER,
    ) -> BookingResult:
        """Cancel a pending or confirmed booking and free its slot.

        The fee comes from the booking's policy snapshot. Once this returns
        success the interval is already retracted.
        """
        cancelled_by = CancelledBy(cancelled_by)
        booking = self._repo.get(booking_id)
        if booking is None:
            return _failure(ErrorKind.NOT_FOUND, f"Booking '{booking_id}' not found")

        with self._calculator.staff_lock(booking.staff_id, blocking=True):
            booking = self._repo.get(booking_id)
            if not BookingStateMachine.can_apply(booking.status, BookingTrigger.CANCEL):
                return _failure(
                    ErrorKind.STATE,
                    f"Cannot cancel a booking that is '{booking.status.value}'",
                    booking=booking,
                )
            if cancelled_by == CancelledBy.CUSTOMER and not booking.cancellation_policy.allow_cancellation:
                return _failure(
                    ErrorKind.VALIDATION,
                    "This booking cannot be cancelled by the customer",
                    validation_errors=["Cancellation is not allowed for this service"],
                    booking=booking,
                )

            now = self._clock()
            fee = self._calculate_cancellation_fee(booking, now)
            cancelled = booking.model_copy(update={
                "status": BookingStatus.CANCELLED,
                "cancellation_reason": reason,
                "cancellation_fee": fee,
                "cancelled_by": cancelled_by,
                "updated_at": now,
            })
            self._repo.update(cancelled)
            self._calculator.remove_appointment(
                booking.staff_id, booking.reserved_start, booking.reserved_end,
            )

        logger.info(
            "Booking cancelled: %s by %s (fee %s %s)",
            booking_id, cancelled_by.value, fee, booking.currency,
        )
        return BookingResult(success=True, booking=cancelled, cancellation_fee=fee)

    def _calculate_cancellation_fee(self, booking: Booking, now: datetime) -> Decimal:
        hours_until_start = (booking.start_time - now).total_seconds() / 3600
        percentage = booking.cancellation_policy.fee_percentage(hours_until_start)
        fee = booking.price * Decimal(str(percentage)) / 100
        return fee.quantize(_CENT)

    def reschedule_booking(
        self,
        booking_id: str,
        new_time: datetime,
        service: Service,
        available_staff: list[Staff],
    ) -> BookingResult:
        """Move a booking to ``new_time`` with the same staff member.

        The new time is checked while the current reservation stays in the
        index, so a failed reschedule leaves booking and index untouched.
        """
        booking = self._repo.get(booking_id)
        if booking is None:
            return _failure(ErrorKind.NOT_FOUND, f"Booking '{booking_id}' not found")
        if booking.status not in _MUTABLE_STATUSES:
            return _failure(
                ErrorKind.STATE,
                f"Cannot reschedule a booking that is '{booking.status.value}'",
                booking=booking,
            )

        new_time = to_naive_local(new_time)
        now = self._clock()
        errors = self._validate_time(service, new_time, now)
        if booking.service_id != service.id:
            errors.insert(0, f"Booking is for service '{booking.service_id}', not '{service.id}'")
        if errors:
            return _failure(
                ErrorKind.VALIDATION, "Invalid reschedule request",
                validation_errors=errors, booking=booking,
            )

        staff = _find_staff(available_staff, booking.staff_id)
        if staff is None:
            return _failure(
                ErrorKind.NOT_FOUND,
                f"Staff member '{booking.staff_id}' is not available for booking",
                booking=booking,
            )

        new_start, new_end = self._calculator.reserved_interval(service, new_time)
        rescheduled: Optional[Booking] = None
        busy = False
        try:
            with self._calculator.staff_lock(staff.id):
                current = self._repo.get(booking_id)
                if current.status not in _MUTABLE_STATUSES:
                    return _failure(
                        ErrorKind.STATE,
                        f"Cannot reschedule a booking that is '{current.status.value}'",
                        booking=current,
                    )
                old_interval = (current.reserved_start, current.reserved_end)
                conflicts = self._calculator.check_conflicts(
                    staff, new_start, new_end, exclude=old_interval,
                )
                if not conflicts:
                    rescheduled = current.model_copy(update={
                        "start_time": new_time,
                        "end_time": new_time + timedelta(minutes=service.duration),
                        "buffer_before": service.buffer_before,
                        "buffer_after": service.buffer_after,
                        "reminders_sent": set(),
                        "updated_at": now,
                    })
                    self._repo.update(rescheduled)
                    self._calculator.remove_appointment(staff.id, *old_interval)
                    self._calculator.add_appointment(staff.id, new_start, new_end)
        except StaffBusyError:
            busy = True

        if rescheduled is None:
            request = BookingRequest(
                tenant_id=booking.tenant_id,
                customer_id=booking.customer_id,
                service_id=service.id,
                staff_id=staff.id,
                preferred_time=new_time,
            )
            alternatives = self._find_alternative_slots(service, available_staff, request)
            current = self._repo.get(booking_id)
            if busy:
                return _failure(
                    ErrorKind.CONFLICT, "Another request is scheduling this staff member",
                    alternatives=alternatives, booking=current,
                )
            logger.debug("Reschedule of %s to %s rejected: slot taken", booking_id, new_time)
            return _failure(
                ErrorKind.UNAVAILABLE, f"{staff.name} is not available at the requested time",
                alternatives=alternatives, booking=current,
            )

        logger.info("Booking rescheduled: %s to %s", booking_id, new_time.isoformat())
        return BookingResult(success=True, booking=rescheduled)

    # ------------------------------------------------------------------ #
    # Status transitions
    # ------------------------------------------------------------------ #

    def confirm_booking(self, booking_id: str) -> BookingResult:
        return self._transition(booking_id, BookingTrigger.CONFIRM)

    def start_booking(self, booking_id: str) -> BookingResult:
        return self._transition(booking_id, BookingTrigger.START)

    def complete_booking(self, booking_id: str) -> BookingResult:
        return self._transition(booking_id, BookingTrigger.COMPLETE)

    def mark_no_show(self, booking_id: str) -> BookingResult:
        return self._transition(booking_id, BookingTrigger.MARK_NO_SHOW)

    def _transition(self, booking_id: str, trigger: BookingTrigger) -> BookingResult:
        booking = self._repo.get(booking_id)
        if booking is None:
            return _failure(ErrorKind.NOT_FOUND, f"Booking '{booking_id}' not found")

        with self._calculator.staff_lock(booking.staff_id, blocking=True):
            booking = self._repo.get(booking_id)
            try:
                status = BookingStateMachine.next_status(booking.status, trigger)
            except InvalidTransitionError as e:
                return _failure(ErrorKind.STATE, str(e), booking=booking)
            updated = booking.model_copy(update={"status": status, "updated_at": self._clock()})
            self._repo.update(updated)

        logger.info("Booking %s is now %s", booking_id, status.value)
        return BookingResult(success=True, booking=updated)

    def update_payment_status(
        self,
        booking_id: str,
        payment_status: Union[PaymentStatus, str],
        payment_id: Optional[str] = None,
    ) -> BookingResult:
        booking = self._repo.get(booking_id)
        if booking is None:
            return _failure(ErrorKind.NOT_FOUND, f"Booking '{booking_id}' not found")

        with self._calculator.staff_lock(booking.staff_id, blocking=True):
            booking = self._repo.get(booking_id)
            changes = {"payment_status": PaymentStatus(payment_status), "updated_at": self._clock()}
            if payment_id is not None:
                changes["payment_id"] = payment_id
            updated = booking.model_copy(update=changes)
            self._repo.update(updated)
        return BookingResult(success=True, booking=updated)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self._repo.get(booking_id)

    def get_bookings_by_tenant(
        self, tenant_id: str, filters: Optional[BookingFilters] = None
    ) -> list[Booking]:
        """Tenant bookings matching every set filter, ordered by start time."""
        filters = filters or BookingFilters()

        def matches(b: Booking) -> bool:
            if b.tenant_id != tenant_id:
                return False
            if filters.status is not None and b.status != filters.status:
                return False
            if filters.staff_id is not None and b.staff_id != filters.staff_id:
                return False
            if filters.customer_id is not None and b.customer_id != filters.customer_id:
                return False
            if filters.date_from is not None and b.start_time < filters.date_from:
                return False
            if filters.date_to is not None and b.start_time > filters.date_to:
                return False
            return True

        return sorted(self._repo.query(matches), key=lambda b: (b.start_time, b.id))

    def get_upcoming_bookings_for_staff(self, staff_id: str, days: int = 7) -> list[Booking]:
        now = self._clock()
        horizon = now + timedelta(days=days)
        upcoming = self._repo.query(
            lambda b: b.staff_id == staff_id
            and b.status in _MUTABLE_STATUSES
            and now <= b.start_time <= horizon
        )
        return sorted(upcoming, key=lambda b: b.start_time)

    # ------------------------------------------------------------------ #
    # Background work
    # ------------------------------------------------------------------ #

    def send_reminders(self) -> int:
        """Sweep confirmed bookings and dispatch due reminders.

        Each reminder kind goes out at most once per booking. A kind whose
        delivery raises stays unsent and is retried by the next sweep.
        Overlapping sweeps are skipped. Returns the number dispatched.
        """
        if not self._sweep_lock.acquire(blocking=False):
            logger.info("Reminder sweep already running, skipping")
            return 0
        try:
            return self._sweep(self._clock())
        finally:
            self._sweep_lock.release()

    def _sweep(self, now: datetime) -> int:
        reminders = self._config.reminders
        windows = [
            (timedelta(hours=reminders.first_reminder_hours), "24h"),
            (timedelta(hours=reminders.final_reminder_hours), "2h"),
        ]
        dispatched = 0
        for booking in self._repo.query(lambda b: b.status == BookingStatus.CONFIRMED):
            until_start = booking.start_time - now
            if until_start <= timedelta():
                continue
            for window, suffix in windows:
                if until_start > window:
                    continue
                for channel in reminders.channel_list:
                    if channel == "sms" and not (booking.customer_info and booking.customer_info.phone):
                        continue
                    kind = ReminderType(f"{channel}_{suffix}")
                    current = self._repo.get(booking.id)
                    if current is None or current.status != BookingStatus.CONFIRMED:
                        break
                    booking = current
                    if kind in booking.reminders_sent:
                        continue
                    try:
                        self._notifier.send(booking, kind)
                    except Exception:
                        logger.exception(
                            "Failed to send %s reminder for booking %s; will retry next sweep",
                            kind.value, booking.id,
                        )
                        continue
                    booking = self._record_reminder(booking.id, kind, now)
                    dispatched += 1

        if dispatched:
            logger.info("Reminder sweep dispatched %d reminder(s)", dispatched)
        return dispatched

    def _record_reminder(self, booking_id: str, kind: ReminderType, now: datetime) -> Booking:
        """Add ``kind`` to ``reminders_sent`` under the staff lock.

        Every other write to a booking replaces the whole record under the
        same lock, so this re-read keeps their changes.
        """
        booking = self._repo.get(booking_id)
        with self._calculator.staff_lock(booking.staff_id, blocking=True):
            booking = self._repo.get(booking_id)
            updated = booking.model_copy(update={
                "reminders_sent": booking.reminders_sent | {kind},
                "updated_at": now,
            })
            self._repo.update(updated)
        return updated

    def restore_index(self) -> int:
        """Re-register every non-cancelled booking's interval with the calculator."""
        restored = 0
        for booking in self._repo.list():
            if booking.status == BookingStatus.CANCELLED:
                continue
            self._calculator.add_appointment(
                booking.staff_id, booking.reserved_start, booking.reserved_end,
            )
            restored += 1
        logger.info("Restored %d booking interval(s) into the availability index", restored)
        return restored
