"""Skill catalog entries and skill matching models.

``Skill`` is stored by the skill catalog; the matching models are derived on
demand and never persisted.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from booking_engine.schemas.service_schema import Service


def _new_skill_id() -> str:
    return f"skl_{uuid.uuid4().hex[:12]}"


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class Skill(BaseModel):
    """A named skill tag a tenant can require of services and grant to staff."""
    id: str = Field(default_factory=_new_skill_id)
    tenant_id: str
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    category: str = Field(min_length=1, max_length=50)
    level: SkillLevel
    certification_required: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class SkillMatchingOptions(BaseModel):
    """Filters and scoring adjustments for skill matching queries."""
    require_all_skills: bool = False
    allow_overqualified: bool = False
    prefer_exact_match: bool = False
    minimum_match_score: Optional[int] = Field(default=None, ge=0, le=100)


class SkillDetail(BaseModel):
    skill_id: str
    required: bool
    has_skill: bool


class SkillMatch(BaseModel):
    """How well one staff member's skills cover one service's requirements."""
    staff_id: str
    staff_name: str
    match_score: int = Field(ge=0, le=100)
    has_all_required_skills: bool
    missing_skills: list[str] = Field(default_factory=list)
    overqualified_skills: list[str] = Field(default_factory=list)
    skill_details: list[SkillDetail] = Field(default_factory=list)


class ServiceMatch(BaseModel):
    service: Service
    match: SkillMatch


class SkillGap(BaseModel):
    skill_id: str
    services_unlocked: int
    priority: Literal["high", "medium", "low"]


class SkillRecommendation(BaseModel):
    skill_id: str
    reason: str
    impact: str


class SkillGapAnalysis(BaseModel):
    current_skills: list[str]
    available_services: int
    skill_gaps: list[SkillGap] = Field(default_factory=list)
    recommendations: list[SkillRecommendation] = Field(default_factory=list)


class StaffAssignmentSuggestion(BaseModel):
    service_id: str
    recommended_staff: list[SkillMatch] = Field(default_factory=list)
    alternative_staff: list[SkillMatch] = Field(default_factory=list)
