from booking_engine.availability.calculator import (
    AvailabilityCalculator,
    StaffAssignment,
    StaffBusyError,
)

__all__ = [
    "AvailabilityCalculator",
    "StaffAssignment",
    "StaffBusyError",
]
