"""Shared test fixtures and helpers."""

from datetime import date, datetime, time, timedelta
from typing import Optional

import pytest

from booking_engine.availability.calculator import AvailabilityCalculator
from booking_engine.booking.lifecycle import BookingLifecycleManager
from booking_engine.booking.notifications import LoggingNotifier
from booking_engine.catalog.services import ServiceCatalog
from booking_engine.catalog.staff import StaffDirectory
from booking_engine.config import AppConfig, SchedulingConfig
from booking_engine.repository import InMemoryRepository
from booking_engine.schemas.booking_schema import BookingRequest, CustomerInfo
from booking_engine.schemas.service_schema import Service
from booking_engine.schemas.staff_schema import Staff

TENANT = "tenant-1"

# Sunday noon; the following Monday is 2030-01-07
NOW = datetime(2030, 1, 6, 12, 0)
MONDAY = date(2030, 1, 7)
WEDNESDAY = date(2030, 1, 9)
FRIDAY = date(2030, 1, 11)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))


class FixedClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


def weekday_hours(
    start: str = "09:00",
    end: str = "17:00",
    breaks: Optional[list[dict]] = None,
    days: range = range(5),
) -> list[dict]:
    """Monday-to-Friday working hours with optional breaks."""
    return [
        {"day_of_week": d, "start_time": start, "end_time": end, "breaks": breaks or []}
        for d in days
    ]


def make_service(**overrides) -> Service:
    data = {
        "tenant_id": TENANT,
        "name": "Haircut",
        "duration": 30,
        "price": "50.00",
        "category": "hair",
    }
    data.update(overrides)
    return Service.model_validate(data)


def make_staff(**overrides) -> Staff:
    data = {
        "tenant_id": TENANT,
        "name": "Alex",
        "working_hours": weekday_hours(),
    }
    data.update(overrides)
    return Staff.model_validate(data)


def make_request(service: Service, when: datetime, **overrides) -> BookingRequest:
    data = {
        "tenant_id": TENANT,
        "customer_id": "cust-1",
        "service_id": service.id,
        "preferred_time": when,
    }
    data.update(overrides)
    return BookingRequest.model_validate(data)


def make_customer(phone: Optional[str] = "+44 7700 900123") -> CustomerInfo:
    return CustomerInfo(name="Jo Bloggs", email="jo@example.com", phone=phone)


@pytest.fixture
def config():
    return AppConfig()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def calculator():
    return AvailabilityCalculator(SchedulingConfig())


@pytest.fixture
def notifier():
    return LoggingNotifier()


@pytest.fixture
def booking_repo():
    return InMemoryRepository("booking")


@pytest.fixture
def lifecycle(calculator, booking_repo, config, notifier, clock):
    return BookingLifecycleManager(
        calculator,
        repository=booking_repo,
        config=config,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def service_catalog():
    return ServiceCatalog()


@pytest.fixture
def staff_directory():
    return StaffDirectory()


@pytest.fixture
def haircut():
    """30 minutes with 5-minute buffers either side and no required skills."""
    return make_service(id="svc_haircut", buffer_before=5, buffer_after=5)


@pytest.fixture
def staff_a():
    return make_staff(id="stf_a", name="Alex")


@pytest.fixture
def staff_b():
    return make_staff(id="stf_b", name="Blake")


def reserved(start: datetime, before: int = 5, after: int = 5, duration: int = 30):
    return (start - timedelta(minutes=before), start + timedelta(minutes=duration + after))
