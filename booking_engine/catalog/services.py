"""
Service catalog: bookable offerings, their constraints, and pricing.

Administrative writes validate through pydantic and raise on bad data.
Lookups return ``None`` for unknown ids so callers can report not-found.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from booking_engine.config import settings
from booking_engine.repository import InMemoryRepository, Repository
from booking_engine.schemas.service_schema import (
    PriceBreakdown,
    PriceLine,
    Service,
    ServicePricing,
)

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = frozenset({"id", "tenant_id", "created_at"})


class ServiceCatalog:
    """CRUD and query operations over ``Service`` records."""

    def __init__(
        self,
        repository: Optional[Repository[Service]] = None,
        default_currency: str = settings.default_currency,
    ) -> None:
        self._repo = repository if repository is not None else InMemoryRepository("service")
        self._default_currency = default_currency

    def create_service(self, data: dict[str, Any]) -> Service:
        """Validate and store a new service, priced in the default currency unless given."""
        if not data.get("currency"):
            data = {**data, "currency": self._default_currency}
        service = Service.model_validate(data)
        self._repo.create(service)
        logger.info("Service created: %s (%s)", service.id, service.name)
        return service

    def update_service(self, service_id: str, updates: dict[str, Any]) -> Optional[Service]:
        """Apply a partial update. Returns ``None`` if the service does not exist."""
        service = self._repo.get(service_id)
        if service is None:
            return None

        changes = {k: v for k, v in updates.items() if k not in _IMMUTABLE_FIELDS}
        merged = {**service.model_dump(), **changes, "updated_at": datetime.now()}
        updated = Service.model_validate(merged)
        self._repo.update(updated)
        logger.info("Service updated: %s (%s)", service_id, ", ".join(sorted(changes)))
        return updated

    def get_service(self, service_id: str) -> Optional[Service]:
        return self._repo.get(service_id)

    def get_services_by_tenant(self, tenant_id: str) -> list[Service]:
        return self._repo.query(lambda s: s.tenant_id == tenant_id)

    def get_active_services(self, tenant_id: str) -> list[Service]:
        return self._repo.query(lambda s: s.tenant_id == tenant_id and s.is_active)

    def get_services_by_category(self, tenant_id: str, category: str) -> list[Service]:
        return self._repo.query(
            lambda s: s.tenant_id == tenant_id and s.category == category
        )

    def delete_service(self, service_id: str) -> bool:
        deleted = self._repo.delete(service_id)
        if deleted:
            logger.info("Service deleted: %s", service_id)
        return deleted

    @staticmethod
    def requires_skills(service: Service, staff_skills: list[str]) -> bool:
        """True if ``staff_skills`` cover everything the service requires."""
        return all(skill in staff_skills for skill in service.required_skills)

    @staticmethod
    def calculate_price(
        service: Service,
        pricing: Optional[ServicePricing] = None,
        variations: Optional[list[str]] = None,
        discount_codes: Optional[list[str]] = None,
        now: Optional[datetime] = None,
    ) -> PriceBreakdown:
        """Price a service with selected variations and any valid discounts.

        Percentage discounts apply to base price plus variations. The total
        never drops below zero.
        """
        now = now or datetime.now()
        breakdown = [PriceLine(type="base", name="Base Price", amount=service.price)]

        variation_amount = Decimal("0")
        if pricing and variations:
            for variation_name in variations:
                variation = next(
                    (v for v in pricing.variations if v.name == variation_name), None
                )
                if variation is None:
                    continue
                if variation.modifier_type == "percentage":
                    amount = service.price * variation.price_modifier / 100
                else:
                    amount = variation.price_modifier
                variation_amount += amount
                breakdown.append(PriceLine(type="variation", name=variation.name, amount=amount))

        discount_amount = Decimal("0")
        codes = set(discount_codes or [])
        if pricing:
            for discount in pricing.discounts:
                if discount.valid_from and discount.valid_from > now:
                    continue
                if discount.valid_to and discount.valid_to < now:
                    continue
                if discount.code and discount.code not in codes:
                    continue
                if discount.type == "percentage":
                    amount = (service.price + variation_amount) * discount.value / 100
                else:
                    amount = discount.value
                discount_amount += amount
                breakdown.append(PriceLine(type="discount", name=discount.name, amount=-amount))

        total = service.price + variation_amount - discount_amount
        return PriceBreakdown(
            base_price=service.price,
            variations=variation_amount,
            discounts=discount_amount,
            total_price=max(Decimal("0"), total),
            breakdown=breakdown,
        )
