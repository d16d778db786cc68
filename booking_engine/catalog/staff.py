"""
Staff directory: roster, skills, working hours, and time off.

Structural availability (hours, breaks, time off) is answered by
``Staff.is_available``; conflicts against existing bookings belong to the
availability calculator, which this module consults only for reporting.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Optional

from booking_engine.repository import InMemoryRepository, Repository
from booking_engine.schemas.slot_schema import DaySlot, StaffDayAvailability, UtilizationReport
from booking_engine.schemas.staff_schema import Staff, TimeOffPeriod, WorkingHours
from booking_engine.utils import at_minutes, dates_between, minutes_to_time

if TYPE_CHECKING:
    from booking_engine.availability.calculator import AvailabilityCalculator

logger = logging.getLogger(__name__)

DAY_GRID_MINUTES = 15

_IMMUTABLE_FIELDS = frozenset({"id", "tenant_id", "created_at"})


class StaffDirectory:
    """CRUD, roster queries, and availability reporting for ``Staff``."""

    def __init__(self, repository: Optional[Repository[Staff]] = None) -> None:
        self._repo = repository if repository is not None else InMemoryRepository("staff")

    # ------------------------------------------------------------------ #
    # CRUD
    # ------------------------------------------------------------------ #

    def create_staff(self, data: dict[str, Any]) -> Staff:
        staff = Staff.model_validate(data)
        self._repo.create(staff)
        logger.info("Staff created: %s (%s)", staff.id, staff.name)
        return staff

    def update_staff(self, staff_id: str, updates: dict[str, Any]) -> Optional[Staff]:
        staff = self._repo.get(staff_id)
        if staff is None:
            return None
        changes = {k: v for k, v in updates.items() if k not in _IMMUTABLE_FIELDS}
        return self._save(staff, changes)

    def get_staff(self, staff_id: str) -> Optional[Staff]:
        return self._repo.get(staff_id)

    def get_staff_by_tenant(self, tenant_id: str) -> list[Staff]:
        return self._repo.query(lambda s: s.tenant_id == tenant_id)

    def get_active_staff(self, tenant_id: str) -> list[Staff]:
        return self._repo.query(lambda s: s.tenant_id == tenant_id and s.is_active)

    def get_staff_with_skills(self, tenant_id: str, skills: list[str]) -> list[Staff]:
        """Active staff holding every one of ``skills``."""
        return self._repo.query(
            lambda s: s.tenant_id == tenant_id and s.is_active and s.has_skills(skills)
        )

    def delete_staff(self, staff_id: str) -> bool:
        deleted = self._repo.delete(staff_id)
        if deleted:
            logger.info("Staff deleted: %s", staff_id)
        return deleted

    # ------------------------------------------------------------------ #
    # Schedule edits
    # ------------------------------------------------------------------ #

    def add_time_off(self, staff_id: str, time_off: dict[str, Any]) -> Optional[Staff]:
        staff = self._repo.get(staff_id)
        if staff is None:
            return None
        period = TimeOffPeriod.model_validate(time_off)
        return self._save(staff, {"time_off": [*staff.time_off, period]})

    def approve_time_off(
        self, staff_id: str, time_off_id: str, approved_by: str
    ) -> Optional[Staff]:
        """Approve a pending time-off period. ``None`` if staff or period is unknown."""
        staff = self._repo.get(staff_id)
        if staff is None:
            return None
        periods = []
        found = False
        for period in staff.time_off:
            if period.id == time_off_id:
                period = period.model_copy(update={"is_approved": True, "approved_by": approved_by})
                found = True
            periods.append(period)
        if not found:
            return None
        return self._save(staff, {"time_off": periods})

    def update_working_hours(
        self, staff_id: str, working_hours: list[WorkingHours]
    ) -> Optional[Staff]:
        staff = self._repo.get(staff_id)
        if staff is None:
            return None
        return self._save(staff, {"working_hours": working_hours})

    def _save(self, staff: Staff, changes: dict[str, Any]) -> Staff:
        merged = {**staff.model_dump(), **changes, "updated_at": datetime.now()}
        updated = Staff.model_validate(merged)
        self._repo.update(updated)
        logger.debug("Staff %s updated: %s", staff.id, ", ".join(sorted(changes)))
        return updated

    # ------------------------------------------------------------------ #
    # Reporting
    # ------------------------------------------------------------------ #

    def get_availability(
        self,
        staff_id: str,
        start_date: date,
        end_date: date,
        calculator: Optional[AvailabilityCalculator] = None,
    ) -> list[StaffDayAvailability]:
        """Day-by-day 15-minute availability grid for one staff member.

        With a ``calculator`` the grid also marks cells covered by existing
        bookings as ``booked``.
        """
        staff = self._repo.get(staff_id)
        if staff is None:
            return []
        return [
            self._day_availability(staff, day, calculator)
            for day in dates_between(start_date, end_date)
        ]

    def _day_availability(
        self, staff: Staff, day: date, calculator: Optional[AvailabilityCalculator]
    ) -> StaffDayAvailability:
        working_day = staff.get_working_day(day.weekday())
        if working_day is None or not working_day.is_working:
            return StaffDayAvailability(
                staff_id=staff.id,
                date=day,
                time_slots=[DaySlot(
                    start_time="00:00", end_time="23:59", is_available=False, reason="not_working",
                )],
            )

        slots = []
        for minutes in range(working_day.start_minutes, working_day.end_minutes, DAY_GRID_MINUTES):
            cell_end = min(minutes + DAY_GRID_MINUTES, working_day.end_minutes)
            start = at_minutes(day, minutes)
            end = at_minutes(day, cell_end)
            if calculator is not None:
                conflicts = calculator.check_conflicts(staff, start, end)
            else:
                conflicts = staff.structural_conflicts(start, end)
            slots.append(DaySlot(
                start_time=minutes_to_time(minutes),
                end_time=minutes_to_time(cell_end),
                is_available=not conflicts,
                reason=conflicts[0].reason if conflicts else None,
            ))

        return StaffDayAvailability(staff_id=staff.id, date=day, time_slots=slots)

    def calculate_utilization(
        self,
        staff_id: str,
        start_date: date,
        end_date: date,
        calculator: AvailabilityCalculator,
    ) -> UtilizationReport:
        """Booked hours as a share of scheduled working hours over a date range."""
        staff = self._repo.get(staff_id)
        if staff is None:
            return UtilizationReport(
                staff_id=staff_id, total_working_hours=0, booked_hours=0, utilization_percentage=0,
            )

        working_minutes = 0
        for day in dates_between(start_date, end_date):
            working_day = staff.get_working_day(day.weekday())
            if working_day is not None:
                working_minutes += working_day.working_minutes()

        range_start = at_minutes(start_date, 0)
        range_end = at_minutes(end_date + timedelta(days=1), 0)
        booked_minutes = calculator.booked_minutes(staff_id, range_start, range_end)

        percentage = (booked_minutes / working_minutes * 100) if working_minutes else 0.0
        return UtilizationReport(
            staff_id=staff_id,
            total_working_hours=working_minutes / 60,
            booked_hours=booked_minutes / 60,
            utilization_percentage=round(percentage, 2),
        )
