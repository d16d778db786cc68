"""Booking records, requests, confirmations, and operation results."""

import re
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from booking_engine.schemas.service_schema import CancellationPolicy, Service
from booking_engine.schemas.slot_schema import TimeSlot
from booking_engine.schemas.staff_schema import Staff
from booking_engine.utils import normalize_phone, to_naive_local

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _new_booking_id() -> str:
    return f"bkg_{uuid.uuid4().hex[:12]}"


class BookingStatus(str, Enum):
    """Lifecycle status of a booking."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PARTIALLY_PAID = "partially_paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class ReminderType(str, Enum):
    EMAIL_24H = "email_24h"
    EMAIL_2H = "email_2h"
    SMS_24H = "sms_24h"
    SMS_2H = "sms_2h"


class CancelledBy(str, Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"


class ErrorKind(str, Enum):
    """Why a lifecycle operation did not succeed."""
    VALIDATION = "validation"
    UNAVAILABLE = "unavailable"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    STATE = "state"


class CustomerInfo(BaseModel):
    """Contact details attached at booking creation for confirmations only."""
    name: str = Field(min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        value = value.strip()
        if not _EMAIL.match(value):
            raise ValueError(f"invalid email address: {value!r}")
        return value

    @field_validator("phone")
    @classmethod
    def _normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return normalize_phone(value) or None


class BookingRequest(BaseModel):
    """A customer's request for an appointment."""
    tenant_id: str
    customer_id: str
    service_id: str
    staff_id: Optional[str] = None
    preferred_time: datetime
    alternative_times: list[datetime] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=1000)
    customer_info: Optional[CustomerInfo] = None

    @field_validator("preferred_time")
    @classmethod
    def _local_preferred_time(cls, value: datetime) -> datetime:
        return to_naive_local(value)

    @field_validator("alternative_times")
    @classmethod
    def _local_alternative_times(cls, value: list[datetime]) -> list[datetime]:
        return [to_naive_local(v) for v in value]


class Booking(BaseModel):
    """A committed booking.

    ``end_time`` is ``start_time + duration``; the buffers are tracked
    separately so the reserved calendar interval can be recomputed.
    """
    id: str = Field(default_factory=_new_booking_id)
    tenant_id: str
    customer_id: str
    service_id: str
    staff_id: str
    start_time: datetime
    end_time: datetime
    buffer_before: int = 0
    buffer_after: int = 0
    status: BookingStatus = BookingStatus.PENDING
    notes: Optional[str] = Field(default=None, max_length=1000)
    customer_notes: Optional[str] = Field(default=None, max_length=500)
    internal_notes: Optional[str] = Field(default=None, max_length=1000)
    price: Decimal = Field(ge=0)
    currency: str = Field(default="GBP", min_length=3, max_length=3)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_id: Optional[str] = None
    cancellation_policy: CancellationPolicy = Field(default_factory=CancellationPolicy)
    cancellation_reason: Optional[str] = Field(default=None, max_length=500)
    cancellation_fee: Optional[Decimal] = Field(default=None, ge=0)
    cancelled_by: Optional[CancelledBy] = None
    reminders_sent: set[ReminderType] = Field(default_factory=set)
    customer_info: Optional[CustomerInfo] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def reserved_start(self) -> datetime:
        return self.start_time - timedelta(minutes=self.buffer_before)

    @property
    def reserved_end(self) -> datetime:
        return self.end_time + timedelta(minutes=self.buffer_after)


class CalendarLinks(BaseModel):
    google: str
    outlook: str
    ics: str


class BookingConfirmation(BaseModel):
    booking: Booking
    service: Service
    staff: Staff
    customer: Optional[CustomerInfo] = None
    confirmation_code: str
    calendar_links: CalendarLinks


class BookingResult(BaseModel):
    """Outcome of a lifecycle operation. Business failures are values, not exceptions."""
    success: bool
    booking: Optional[Booking] = None
    confirmation: Optional[BookingConfirmation] = None
    cancellation_fee: Optional[Decimal] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    validation_errors: list[str] = Field(default_factory=list)
    alternatives: list[TimeSlot] = Field(default_factory=list)


class BookingFilters(BaseModel):
    status: Optional[BookingStatus] = None
    staff_id: Optional[str] = None
    customer_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
