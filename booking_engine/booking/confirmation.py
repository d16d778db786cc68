"""Confirmation artefacts: short confirmation codes and add-to-calendar links."""

import uuid
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from booking_engine.schemas.booking_schema import (
    Booking,
    BookingConfirmation,
    CalendarLinks,
    CustomerInfo,
)
from booking_engine.schemas.service_schema import Service
from booking_engine.schemas.staff_schema import Staff

CONFIRMATION_CODE_LENGTH = 6

# Floating local time: booking datetimes carry no zone
_CALENDAR_FORMAT = "%Y%m%dT%H%M%S"


def generate_confirmation_code() -> str:
    """Return a 6-character uppercase alphanumeric code, e.g. ``'3FA9C1'``."""
    return uuid.uuid4().hex[:CONFIRMATION_CODE_LENGTH].upper()


def _calendar_time(value: datetime) -> str:
    return value.strftime(_CALENDAR_FORMAT)


def generate_calendar_links(booking: Booking, service: Service, staff: Staff) -> CalendarLinks:
    start = _calendar_time(booking.start_time)
    end = _calendar_time(booking.end_time)
    title = quote(f"{service.name} with {staff.name}", safe="")
    description = quote(f"Booking confirmation: {booking.id}", safe="")

    ics = "\n".join([
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "BEGIN:VEVENT",
        f"DTSTART:{start}",
        f"DTEND:{end}",
        f"SUMMARY:{title}",
        f"DESCRIPTION:{description}",
        "END:VEVENT",
        "END:VCALENDAR",
    ])

    return CalendarLinks(
        google=(
            "https://calendar.google.com/calendar/render?action=TEMPLATE"
            f"&text={title}&dates={start}/{end}&details={description}"
        ),
        outlook=(
            "https://outlook.live.com/calendar/0/deeplink/compose"
            f"?subject={title}&startdt={start}&enddt={end}&body={description}"
        ),
        ics=f"data:text/calendar;charset=utf8,{ics}",
    )


def build_confirmation(
    booking: Booking,
    service: Service,
    staff: Staff,
    customer: Optional[CustomerInfo] = None,
) -> BookingConfirmation:
    return BookingConfirmation(
        booking=booking,
        service=service,
        staff=staff,
        customer=customer,
        confirmation_code=generate_confirmation_code(),
        calendar_links=generate_calendar_links(booking, service, staff),
    )
