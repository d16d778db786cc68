"""
Availability calculator: the single source of truth for staff conflicts.

Keeps an in-memory index of reserved intervals per staff member. A
reserved interval is ``[start - buffer_before, start + duration +
buffer_after)``, so its length is the service's total duration. All
intervals are half-open: a booking ending at 10:35 does not collide with
one whose reservation starts at 10:35.

Read-then-write sequences on one staff member's intervals run under that
staff member's lock (``staff_lock``). Acquisition never queues by default:
a contended lock raises ``StaffBusyError`` and the caller decides whether
to retry.
"""

import bisect
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Union

from booking_engine.config import SchedulingConfig, settings
from booking_engine.matching.skill_matching import calculate_skill_match
from booking_engine.schemas.service_schema import Service
from booking_engine.schemas.slot_schema import BookingConflict, ConflictType, TimeSlot
from booking_engine.schemas.staff_schema import Staff
from booking_engine.utils import at_minutes, dates_between, overlaps

logger = logging.getLogger(__name__)

Interval = tuple[datetime, datetime]

# Ranking weights for optimal staff assignment
SKILL_WEIGHT = 0.4
SPECIALIZATION_WEIGHT = 30
CONFLICT_FREE_WEIGHT = 30
DEFAULT_RANGE_DAYS = 7


class StaffBusyError(Exception):
    """Raised when another operation holds a staff member's scheduling lock."""

    def __init__(self, staff_id: str) -> None:
        super().__init__(f"Staff member '{staff_id}' is being scheduled by another request")
        self.staff_id = staff_id


@dataclass
class StaffAssignment:
    """Best staff member for a requested time, if any is free."""
    staff: Optional[Staff]
    score: float
    reasons: list[str] = field(default_factory=list)


class AvailabilityCalculator:
    """Slot generation, conflict detection, and staff assignment."""

    def __init__(self, config: SchedulingConfig = settings.scheduling) -> None:
        self._config = config
        self._appointments: dict[str, list[Interval]] = {}
        self._index_lock = threading.Lock()
        self._staff_locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------ #
    # Locking
    # ------------------------------------------------------------------ #

    @contextmanager
    def staff_lock(self, staff_id: str, blocking: bool = False) -> Iterator[None]:
        """Hold the scheduling lock for one staff member.

        Raises:
            StaffBusyError: If ``blocking`` is False and the lock is held.
        """
        with self._locks_guard:
            lock = self._staff_locks.setdefault(staff_id, threading.Lock())
        if not lock.acquire(blocking=blocking):
            logger.warning("Scheduling lock contended for staff %s", staff_id)
            raise StaffBusyError(staff_id)
        try:
            yield
        finally:
            lock.release()

    # ------------------------------------------------------------------ #
    # Interval index
    # ------------------------------------------------------------------ #

    def add_appointment(self, staff_id: str, start: datetime, end: datetime) -> None:
        """Register a reserved interval. Registering it twice is a no-op."""
        with self._index_lock:
            intervals = self._appointments.setdefault(staff_id, [])
            interval = (start, end)
            position = bisect.bisect_left(intervals, interval)
            if position < len(intervals) and intervals[position] == interval:
                return
            intervals.insert(position, interval)
        logger.debug("Interval added for %s: %s - %s", staff_id, start, end)

    def remove_appointment(self, staff_id: str, start: datetime, end: datetime) -> None:
        """Retract a reserved interval. Unknown intervals are ignored."""
        with self._index_lock:
            intervals = self._appointments.get(staff_id)
            if not intervals:
                return
            interval = (start, end)
            position = bisect.bisect_left(intervals, interval)
            if position < len(intervals) and intervals[position] == interval:
                del intervals[position]
                logger.debug("Interval removed for %s: %s - %s", staff_id, start, end)

    def get_appointments(self, staff_id: str) -> list[Interval]:
        """Snapshot of a staff member's reserved intervals, in start order."""
        with self._index_lock:
            return list(self._appointments.get(staff_id, []))

    def clear(self) -> None:
        with self._index_lock:
            self._appointments.clear()

    def booked_minutes(self, staff_id: str, range_start: datetime, range_end: datetime) -> int:
        """Reserved minutes falling inside ``[range_start, range_end)``."""
        total = timedelta()
        for start, end in self.get_appointments(staff_id):
            overlap = min(end, range_end) - max(start, range_start)
            if overlap > timedelta():
                total += overlap
        return int(total.total_seconds() // 60)

    # ------------------------------------------------------------------ #
    # Conflicts
    # ------------------------------------------------------------------ #

    def check_conflicts(
        self,
        staff: Staff,
        start: datetime,
        end: datetime,
        exclude: Optional[Interval] = None,
    ) -> list[BookingConflict]:
        """Everything overlapping ``[start, end)``: hours, breaks, time off, bookings.

        ``exclude`` skips one registered interval, letting a reschedule test
        a new time without retracting the booking's current reservation.
        """
        conflicts = staff.structural_conflicts(start, end)
        for booked_start, booked_end in self.get_appointments(staff.id):
            if exclude is not None and (booked_start, booked_end) == exclude:
                continue
            if overlaps(start, end, booked_start, booked_end):
                conflicts.append(BookingConflict(
                    type=ConflictType.APPOINTMENT,
                    start_time=booked_start,
                    end_time=booked_end,
                    description="Existing appointment",
                    reason="booked",
                ))
        return conflicts

    @staticmethod
    def reserved_interval(service: Service, start: datetime) -> Interval:
        """Calendar interval a booking of ``service`` at ``start`` occupies."""
        return (
            start - timedelta(minutes=service.buffer_before),
            start + timedelta(minutes=service.duration + service.buffer_after),
        )

    @staticmethod
    def can_staff_perform_service(staff: Staff, service: Service) -> bool:
        return staff.is_active and staff.has_skills(service.required_skills)

    # ------------------------------------------------------------------ #
    # Slot generation
    # ------------------------------------------------------------------ #

    def calculate_availability(
        self,
        service: Service,
        staff_roster: list[Staff],
        date: Optional[Union[date, datetime]] = None,
        date_range: Optional[tuple[date, date]] = None,
        staff_ids: Optional[list[str]] = None,
        include_unavailable: bool = True,
        slot_duration: Optional[int] = None,
    ) -> list[TimeSlot]:
        """Slots for every qualified staff member over a day or date range.

        Slot starts step by the configured granularity from the start of
        each working day. A slot is generated only when its whole reserved
        interval fits the working day; unavailable slots carry the reason
        (``booked``, ``break``, or the time-off type).
        """
        if date is not None:
            day = date.date() if isinstance(date, datetime) else date
            days = [day]
        elif date_range is not None:
            days = dates_between(*date_range)
        else:
            today = datetime.now().date()
            days = dates_between(today, today + timedelta(days=DEFAULT_RANGE_DAYS))

        qualified = [
            s for s in staff_roster
            if self.can_staff_perform_service(s, service)
            and (staff_ids is None or s.id in staff_ids)
        ]

        slots: list[TimeSlot] = []
        for day in days:
            for staff in qualified:
                slots.extend(self._staff_day_slots(
                    service, staff, day, slot_duration or service.duration, include_unavailable,
                ))
        return sorted(slots, key=lambda s: (s.start_time, s.staff_id))

    def _staff_day_slots(
        self,
        service: Service,
        staff: Staff,
        day: date,
        slot_duration: int,
        include_unavailable: bool,
    ) -> list[TimeSlot]:
        working_day = staff.get_working_day(day.weekday())
        if working_day is None or not working_day.is_working:
            return []

        slots = []
        step = self._config.slot_granularity_minutes
        first = working_day.start_minutes
        last = working_day.end_minutes - service.duration - service.buffer_after
        for minutes in range(first, last + 1, step):
            if minutes - service.buffer_before < working_day.start_minutes:
                continue
            start = at_minutes(day, minutes)
            reserved_start, reserved_end = self.reserved_interval(service, start)
            conflicts = self.check_conflicts(staff, reserved_start, reserved_end)
            if conflicts and not include_unavailable:
                continue
            slots.append(TimeSlot(
                start_time=start,
                end_time=start + timedelta(minutes=slot_duration),
                staff_id=staff.id,
                service_id=service.id,
                is_available=not conflicts,
                reason=conflicts[0].reason if conflicts else None,
                price=service.price,
            ))
        return slots

    def find_next_available_slot(
        self,
        service: Service,
        staff_roster: list[Staff],
        from_time: Optional[datetime] = None,
    ) -> Optional[TimeSlot]:
        """Earliest open slot starting at or after ``from_time`` across qualified staff."""
        from_time = from_time or datetime.now()
        lookahead = service.max_advance_booking or self._config.default_lookahead_days
        first_day = from_time.date()
        for day in dates_between(first_day, first_day + timedelta(days=lookahead)):
            candidates = [
                slot
                for slot in self.calculate_availability(
                    service, staff_roster, date=day, include_unavailable=False,
                )
                if slot.start_time >= from_time
            ]
            if candidates:
                return candidates[0]
        return None

    # ------------------------------------------------------------------ #
    # Assignment
    # ------------------------------------------------------------------ #

    def get_utilization(self, staff: Staff, day: date) -> float:
        """Share (0..1) of a day's working minutes already reserved."""
        working_day = staff.get_working_day(day.weekday())
        working = working_day.working_minutes() if working_day else 0
        if working == 0:
            return 0.0
        booked = self.booked_minutes(
            staff.id, at_minutes(day, 0), at_minutes(day + timedelta(days=1), 0),
        )
        return booked / working

    def get_optimal_staff_assignment(
        self,
        service: Service,
        staff_roster: list[Staff],
        requested_time: datetime,
    ) -> StaffAssignment:
        """Pick the best conflict-free qualified staff member for ``requested_time``.

        Ranking: weighted score (skill match, then specialization in the
        service category), then lowest utilization that day, then staff id.
        """
        reserved_start, reserved_end = self.reserved_interval(service, requested_time)
        ranked = []
        for staff in staff_roster:
            if not self.can_staff_perform_service(staff, service):
                continue
            if self.check_conflicts(staff, reserved_start, reserved_end):
                continue

            reasons = ["No scheduling conflicts"]
            match = calculate_skill_match(staff, service)
            score = match.match_score * SKILL_WEIGHT + CONFLICT_FREE_WEIGHT
            if match.match_score > 80:
                reasons.insert(0, "Excellent skill match")
            if service.category and service.category in staff.specializations:
                score += SPECIALIZATION_WEIGHT
                reasons.insert(1, "Relevant specialization")
            utilization = self.get_utilization(staff, requested_time.date())
            ranked.append(((-score, utilization, staff.id), staff, score, reasons))

        if not ranked:
            return StaffAssignment(staff=None, score=-1, reasons=[])

        ranked.sort(key=lambda entry: entry[0])
        _, staff, score, reasons = ranked[0]
        return StaffAssignment(staff=staff, score=score, reasons=reasons)
