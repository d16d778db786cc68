"""
Engine wiring.

Builds every collaborator once and hands back a ``SchedulingEngine``
holding them. Callers pass the engine (or its parts) to request
handlers; nothing here is a module-level instance.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from booking_engine.availability.calculator import AvailabilityCalculator
from booking_engine.booking.lifecycle import BookingLifecycleManager
from booking_engine.booking.notifications import LoggingNotifier, ReminderNotifier
from booking_engine.catalog.services import ServiceCatalog
from booking_engine.catalog.skills import SkillCatalog
from booking_engine.catalog.staff import StaffDirectory
from booking_engine.config import AppConfig, settings
from booking_engine.matching.skill_matching import SkillMatchingService
from booking_engine.repository import InMemoryRepository
from booking_engine.schemas.booking_schema import BookingRequest, BookingResult, ErrorKind

logger = logging.getLogger(__name__)


@dataclass
class SchedulingEngine:
    config: AppConfig
    services: ServiceCatalog
    skills: SkillCatalog
    staff: StaffDirectory
    matching: SkillMatchingService
    calculator: AvailabilityCalculator
    bookings: BookingLifecycleManager

    def book(self, request: BookingRequest) -> BookingResult:
        """Create a booking, resolving the service and active roster by id."""
        service = self.services.get_service(request.service_id)
        if service is None or service.tenant_id != request.tenant_id:
            return BookingResult(
                success=False,
                error=f"Service '{request.service_id}' not found",
                error_kind=ErrorKind.NOT_FOUND,
            )
        roster = self.staff.get_active_staff(request.tenant_id)
        return self.bookings.create_booking(request, service, roster)


def build_engine(
    config: AppConfig = settings,
    notifier: Optional[ReminderNotifier] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> SchedulingEngine:
    """Construct a fully wired engine backed by in-memory repositories."""
    services = ServiceCatalog(InMemoryRepository("service"), config.default_currency)
    staff = StaffDirectory(InMemoryRepository("staff"))
    calculator = AvailabilityCalculator(config.scheduling)
    bookings = BookingLifecycleManager(
        calculator,
        repository=InMemoryRepository("booking"),
        config=config,
        notifier=notifier or LoggingNotifier(),
        clock=clock,
    )
    logger.info("Engine '%s' ready", config.engine_name)
    return SchedulingEngine(
        config=config,
        services=services,
        skills=SkillCatalog(InMemoryRepository("skill")),
        staff=staff,
        matching=SkillMatchingService(staff, services),
        calculator=calculator,
        bookings=bookings,
    )
