from booking_engine.catalog.services import ServiceCatalog
from booking_engine.catalog.skills import SkillCatalog
from booking_engine.catalog.staff import StaffDirectory

__all__ = [
    "ServiceCatalog",
    "SkillCatalog",
    "StaffDirectory",
]
