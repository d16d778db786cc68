"""Service catalog models: offerings, cancellation policies, and pricing."""

import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from booking_engine.config import CancellationConfig
from booking_engine.utils import dedupe_tags


def _new_service_id() -> str:
    return f"svc_{uuid.uuid4().hex[:12]}"


class FeeTier(BaseModel):
    """Charge ``percentage`` of the price when fewer than ``within_hours`` remain."""
    within_hours: float = Field(ge=0)
    percentage: float = Field(ge=0, le=100)


def default_fee_tiers() -> list[FeeTier]:
    return [FeeTier(within_hours=2, percentage=100), FeeTier(within_hours=24, percentage=50)]


class CancellationPolicy(BaseModel):
    """Per-service cancellation rules, snapshotted onto each booking.

    ``deadline_hours`` marks the start of the late-cancellation window.
    Inside it the tightest matching fee tier wins; if no tier matches,
    ``late_fee_percentage`` applies. Windows are half-open: exactly two
    hours before start is not "within 2 hours".
    """
    allow_cancellation: bool = True
    deadline_hours: float = Field(default=24, ge=0, le=168)
    fee_tiers: list[FeeTier] = Field(default_factory=default_fee_tiers)
    late_fee_percentage: float = Field(default=0, ge=0, le=100)

    def fee_percentage(self, hours_until_start: float) -> float:
        if hours_until_start >= self.deadline_hours:
            return 0.0
        for tier in sorted(self.fee_tiers, key=lambda t: t.within_hours):
            if hours_until_start < tier.within_hours:
                return tier.percentage
        return self.late_fee_percentage

    @classmethod
    def from_config(cls, config: CancellationConfig) -> "CancellationPolicy":
        return cls(
            deadline_hours=config.default_deadline_hours,
            fee_tiers=[
                FeeTier(within_hours=config.full_fee_within_hours, percentage=100),
                FeeTier(
                    within_hours=config.partial_fee_within_hours,
                    percentage=config.partial_fee_percentage,
                ),
            ],
        )


class Service(BaseModel):
    """A bookable offering."""

    id: str = Field(default_factory=_new_service_id)
    tenant_id: str
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    duration: int = Field(ge=1, le=1440)
    price: Decimal = Field(ge=0)
    currency: str = Field(default="GBP", min_length=3, max_length=3)
    buffer_before: int = Field(default=0, ge=0, le=120)
    buffer_after: int = Field(default=0, ge=0, le=120)
    required_skills: list[str] = Field(default_factory=list)
    category: Optional[str] = Field(default=None, max_length=100)
    is_active: bool = True
    max_advance_booking: Optional[int] = Field(default=None, ge=1, le=365)  # days
    min_advance_booking: Optional[int] = Field(default=None, ge=0, le=168)  # hours
    cancellation_policy: Optional[CancellationPolicy] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("required_skills")
    @classmethod
    def _dedupe_skills(cls, value: list[str]) -> list[str]:
        return dedupe_tags(value)

    @property
    def total_duration(self) -> int:
        """Minutes reserved on a staff calendar: duration plus both buffers."""
        return self.duration + self.buffer_before + self.buffer_after

    def validate_booking_time(
        self, booking_time: datetime, now: Optional[datetime] = None
    ) -> list[str]:
        """Return itemized advance-window violations; empty means valid."""
        now = now or datetime.now()
        errors: list[str] = []

        if self.min_advance_booking:
            min_time = now + timedelta(hours=self.min_advance_booking)
            if booking_time < min_time:
                errors.append(
                    f"Booking must be at least {self.min_advance_booking} hours in advance"
                )

        if self.max_advance_booking:
            max_time = now + timedelta(days=self.max_advance_booking)
            if booking_time > max_time:
                errors.append(
                    f"Booking cannot be more than {self.max_advance_booking} days in advance"
                )

        return errors

    def effective_cancellation_policy(self, config: CancellationConfig) -> CancellationPolicy:
        return self.cancellation_policy or CancellationPolicy.from_config(config)


class PriceVariation(BaseModel):
    name: str
    description: Optional[str] = None
    price_modifier: Decimal
    modifier_type: Literal["percentage", "fixed"] = "fixed"


class Discount(BaseModel):
    """Automatic when ``code`` is unset, otherwise applied only for that code."""
    name: str
    type: Literal["percentage", "fixed"]
    value: Decimal = Field(ge=0)
    code: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None


class ServicePricing(BaseModel):
    service_id: str
    price_type: Literal["fixed", "variable", "tiered"] = "fixed"
    variations: list[PriceVariation] = Field(default_factory=list)
    discounts: list[Discount] = Field(default_factory=list)


class PriceLine(BaseModel):
    type: Literal["base", "variation", "discount"]
    name: str
    amount: Decimal


class PriceBreakdown(BaseModel):
    base_price: Decimal
    variations: Decimal
    discounts: Decimal
    total_price: Decimal
    breakdown: list[PriceLine] = Field(default_factory=list)
