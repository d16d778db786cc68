"""
Skill catalog: the tenant's vocabulary of skills.

Services list required skills and staff list held skills as plain tags;
this catalog describes those tags (category, level, certification) for
administration screens. Writes and deletes are scoped to a tenant.
"""

import logging
from datetime import datetime
from typing import Any, Optional, Union

from booking_engine.repository import InMemoryRepository, Repository
from booking_engine.schemas.skill_schema import Skill, SkillLevel

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = frozenset({"id", "tenant_id", "created_at"})


class SkillCatalog:
    def __init__(self, repository: Optional[Repository[Skill]] = None) -> None:
        self._repo = repository if repository is not None else InMemoryRepository("skill")

    def create_skill(self, tenant_id: str, data: dict[str, Any]) -> Skill:
        skill = Skill.model_validate({**data, "tenant_id": tenant_id})
        self._repo.create(skill)
        logger.info("Skill created: %s (%s)", skill.id, skill.name)
        return skill

    def update_skill(
        self, skill_id: str, tenant_id: str, updates: dict[str, Any]
    ) -> Optional[Skill]:
        """Partial update. ``None`` when the skill is unknown to this tenant."""
        skill = self.get_skill(skill_id, tenant_id)
        if skill is None:
            return None
        changes = {k: v for k, v in updates.items() if k not in _IMMUTABLE_FIELDS}
        merged = {**skill.model_dump(), **changes, "updated_at": datetime.now()}
        updated = Skill.model_validate(merged)
        self._repo.update(updated)
        logger.info("Skill updated: %s (%s)", skill_id, ", ".join(sorted(changes)))
        return updated

    def get_skill(self, skill_id: str, tenant_id: str) -> Optional[Skill]:
        skill = self._repo.get(skill_id)
        if skill is None or skill.tenant_id != tenant_id:
            return None
        return skill

    def get_skills_by_tenant(self, tenant_id: str) -> list[Skill]:
        return self._repo.query(lambda s: s.tenant_id == tenant_id)

    def get_skills_by_category(self, tenant_id: str, category: str) -> list[Skill]:
        return self._repo.query(lambda s: s.tenant_id == tenant_id and s.category == category)

    def get_skills_by_level(self, tenant_id: str, level: Union[SkillLevel, str]) -> list[Skill]:
        level = SkillLevel(level)
        return self._repo.query(lambda s: s.tenant_id == tenant_id and s.level == level)

    def search_skills(self, tenant_id: str, query: str) -> list[Skill]:
        """Case-insensitive substring match on name or description."""
        needle = query.lower()
        return self._repo.query(
            lambda s: s.tenant_id == tenant_id
            and (needle in s.name.lower() or needle in (s.description or "").lower())
        )

    def delete_skill(self, skill_id: str, tenant_id: str) -> bool:
        if self.get_skill(skill_id, tenant_id) is None:
            return False
        deleted = self._repo.delete(skill_id)
        if deleted:
            logger.info("Skill deleted: %s", skill_id)
        return deleted
