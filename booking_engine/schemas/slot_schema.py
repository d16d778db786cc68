"""Time slot, conflict, and day-availability models produced by the calculator."""

from datetime import date, datetime
from enum import Enum
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ConflictType(str, Enum):
    """What an interval collided with."""
    APPOINTMENT = "appointment"
    BREAK = "break"
    TIME_OFF = "time_off"
    OUTSIDE_HOURS = "outside_hours"


class BookingConflict(BaseModel):
    """A reservation overlapping a requested interval."""
    type: ConflictType
    start_time: datetime
    end_time: datetime
    description: str
    reason: str


class AvailabilityCheck(BaseModel):
    """Result of a structural availability check on a staff member."""
    available: bool
    reason: Optional[str] = None


class TimeSlot(BaseModel):
    """A candidate booking interval for one staff member."""
    start_time: datetime
    end_time: datetime
    staff_id: str
    service_id: Optional[str] = None
    is_available: bool = True
    reason: Optional[str] = None
    price: Optional[Decimal] = None


class DaySlot(BaseModel):
    """One cell of a staff member's day grid (HH:MM strings)."""
    start_time: str
    end_time: str
    is_available: bool
    reason: Optional[str] = None


class StaffDayAvailability(BaseModel):
    """Availability grid for a single staff member on a single date."""
    staff_id: str
    date: date
    time_slots: list[DaySlot] = Field(default_factory=list)


class UtilizationReport(BaseModel):
    """Booked versus working hours over a date range."""
    staff_id: str
    total_working_hours: float
    booked_hours: float
    utilization_percentage: float
