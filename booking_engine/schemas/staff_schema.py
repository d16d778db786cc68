"""Staff directory models: skills, weekly working hours, breaks, time off."""

import re
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator

from booking_engine.schemas.slot_schema import AvailabilityCheck, BookingConflict, ConflictType
from booking_engine.utils import at_minutes, dedupe_tags, overlaps, time_to_minutes

_HHMM = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


def _new_staff_id() -> str:
    return f"stf_{uuid.uuid4().hex[:12]}"


def _check_hhmm(value: str) -> str:
    if not _HHMM.match(value):
        raise ValueError(f"time must be HH:MM, got {value!r}")
    return value


HHMM = Annotated[str, AfterValidator(_check_hhmm)]


class BreakPeriod(BaseModel):
    start_time: HHMM
    end_time: HHMM
    name: Optional[str] = None


class WorkingHours(BaseModel):
    """Hours for one weekday. ``day_of_week`` follows ``date.weekday()`` (0 = Monday)."""
    day_of_week: int = Field(ge=0, le=6)
    start_time: HHMM
    end_time: HHMM
    is_working: bool = True
    breaks: list[BreakPeriod] = Field(default_factory=list)

    @model_validator(mode="after")
    def _end_after_start(self) -> "WorkingHours":
        if time_to_minutes(self.end_time) <= time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)

    def working_minutes(self) -> int:
        """Scheduled minutes for the day, excluding breaks."""
        if not self.is_working:
            return 0
        total = self.end_minutes - self.start_minutes
        for brk in self.breaks:
            total -= time_to_minutes(brk.end_time) - time_to_minutes(brk.start_time)
        return max(total, 0)


class TimeOffType(str, Enum):
    VACATION = "vacation"
    SICK = "sick"
    PERSONAL = "personal"
    TRAINING = "training"
    OTHER = "other"


class TimeOffPeriod(BaseModel):
    """Whole-day absence; both dates are inclusive."""
    id: str = Field(default_factory=lambda: f"off_{uuid.uuid4().hex[:12]}")
    start_date: date
    end_date: date
    type: TimeOffType
    reason: Optional[str] = None
    is_approved: bool = False
    approved_by: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "TimeOffPeriod":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    def covers(self, first_day: date, last_day: date) -> bool:
        return self.start_date <= last_day and self.end_date >= first_day


class Staff(BaseModel):
    """A staff member who can be assigned to bookings."""

    id: str = Field(default_factory=_new_staff_id)
    tenant_id: str
    user_id: Optional[str] = None
    name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    skills: list[str] = Field(default_factory=list)
    specializations: list[str] = Field(default_factory=list)
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    commission_rate: Optional[float] = Field(default=None, ge=0, le=100)
    is_active: bool = True
    bio: Optional[str] = Field(default=None, max_length=1000)
    working_hours: list[WorkingHours] = Field(default_factory=list)
    time_off: list[TimeOffPeriod] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("skills", "specializations")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        return dedupe_tags(value)

    @model_validator(mode="after")
    def _one_entry_per_weekday(self) -> "Staff":
        days = [wh.day_of_week for wh in self.working_hours]
        if len(days) != len(set(days)):
            raise ValueError("working_hours must have at most one entry per day_of_week")
        return self

    def get_working_day(self, day_of_week: int) -> Optional[WorkingHours]:
        for wh in self.working_hours:
            if wh.day_of_week == day_of_week:
                return wh
        return None

    def has_skills(self, skills: list[str]) -> bool:
        return all(skill in self.skills for skill in skills)

    def structural_conflicts(self, start: datetime, end: datetime) -> list[BookingConflict]:
        """Working-hours, break, and approved time-off collisions for ``[start, end)``.

        Existing bookings are not considered here; the availability
        calculator layers those on top.
        """
        conflicts: list[BookingConflict] = []
        day = start.date()
        working_day = self.get_working_day(start.weekday())

        if working_day is None or not working_day.is_working:
            conflicts.append(BookingConflict(
                type=ConflictType.OUTSIDE_HOURS,
                start_time=start,
                end_time=end,
                description="Not working on this day",
                reason="not_working",
            ))
        else:
            day_start = at_minutes(day, working_day.start_minutes)
            day_end = at_minutes(day, working_day.end_minutes)
            if start < day_start or end > day_end:
                conflicts.append(BookingConflict(
                    type=ConflictType.OUTSIDE_HOURS,
                    start_time=day_start,
                    end_time=day_end,
                    description="Outside working hours",
                    reason="outside_hours",
                ))
            for brk in working_day.breaks:
                break_start = at_minutes(day, time_to_minutes(brk.start_time))
                break_end = at_minutes(day, time_to_minutes(brk.end_time))
                if overlaps(start, end, break_start, break_end):
                    conflicts.append(BookingConflict(
                        type=ConflictType.BREAK,
                        start_time=break_start,
                        end_time=break_end,
                        description=f"Break time: {brk.name or 'Break'}",
                        reason="break",
                    ))

        last_day = (end - timedelta(microseconds=1)).date()
        for period in self.time_off:
            if period.is_approved and period.covers(day, last_day):
                description = f"Time off: {period.type.value}"
                if period.reason:
                    description += f" ({period.reason})"
                conflicts.append(BookingConflict(
                    type=ConflictType.TIME_OFF,
                    start_time=at_minutes(period.start_date, 0),
                    end_time=at_minutes(period.end_date + timedelta(days=1), 0),
                    description=description,
                    reason=period.type.value,
                ))

        return conflicts

    def is_available(self, date_time: datetime, duration_minutes: int) -> AvailabilityCheck:
        """Structural availability for ``duration_minutes`` starting at ``date_time``."""
        end = date_time + timedelta(minutes=duration_minutes)
        conflicts = self.structural_conflicts(date_time, end)
        if conflicts:
            return AvailabilityCheck(available=False, reason=conflicts[0].description)
        return AvailabilityCheck(available=True)
