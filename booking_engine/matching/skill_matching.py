"""
Skill matching between staff and services.

Scores are recomputed on every call because skills can change between
requests. Scoring:

    score = held required skills / required skills * 100
    +5 per extra skill (max +20) when overqualification is rewarded
    -2 per extra skill when an exact match is preferred

A service with no required skills is open to everyone at 100.
"""

import logging
import math
from typing import Optional

from booking_engine.catalog.services import ServiceCatalog
from booking_engine.catalog.staff import StaffDirectory
from booking_engine.schemas.service_schema import Service
from booking_engine.schemas.skill_schema import (
    ServiceMatch,
    SkillDetail,
    SkillGap,
    SkillGapAnalysis,
    SkillMatch,
    SkillMatchingOptions,
    SkillRecommendation,
    StaffAssignmentSuggestion,
)
from booking_engine.schemas.staff_schema import Staff

logger = logging.getLogger(__name__)

OVERQUALIFIED_BONUS_PER_SKILL = 5
OVERQUALIFIED_BONUS_CAP = 20
EXACT_MATCH_PENALTY_PER_SKILL = 2
MAX_RECOMMENDATIONS = 5
RECOMMENDED_SCORE = 80
ALTERNATIVE_SCORE = 60

_IMPACT = {
    "high": "High impact - significantly expands service capabilities",
    "medium": "Medium impact - adds valuable service options",
    "low": "Low impact - provides additional flexibility",
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_skill_match(
    staff: Staff, service: Service, options: Optional[SkillMatchingOptions] = None
) -> SkillMatch:
    """Score how well ``staff`` covers ``service.required_skills``."""
    options = options or SkillMatchingOptions()

    if not service.required_skills:
        return SkillMatch(
            staff_id=staff.id,
            staff_name=staff.name,
            match_score=100,
            has_all_required_skills=True,
        )

    missing = [s for s in service.required_skills if s not in staff.skills]
    extra = [s for s in staff.skills if s not in service.required_skills]
    details = [
        SkillDetail(skill_id=s, required=True, has_skill=s in staff.skills)
        for s in service.required_skills
    ]
    details += [SkillDetail(skill_id=s, required=False, has_skill=True) for s in extra]

    held = len(service.required_skills) - len(missing)
    score = held / len(service.required_skills) * 100

    if options.allow_overqualified and extra:
        bonus = min(len(extra) * OVERQUALIFIED_BONUS_PER_SKILL, OVERQUALIFIED_BONUS_CAP)
        score = min(score + bonus, 100)

    if options.prefer_exact_match and extra:
        score = max(score - len(extra) * EXACT_MATCH_PENALTY_PER_SKILL, 0)

    return SkillMatch(
        staff_id=staff.id,
        staff_name=staff.name,
        match_score=_round_half_up(score),
        has_all_required_skills=not missing,
        missing_skills=missing,
        overqualified_skills=extra,
        skill_details=details,
    )


def passes_filters(match: SkillMatch, options: SkillMatchingOptions) -> bool:
    if options.require_all_skills and not match.has_all_required_skills:
        return False
    if options.minimum_match_score is not None and match.match_score < options.minimum_match_score:
        return False
    return True


class SkillMatchingService:
    """Answers "who can perform this service" and "what can this person perform"."""

    def __init__(self, staff_directory: StaffDirectory, service_catalog: ServiceCatalog) -> None:
        self._staff = staff_directory
        self._services = service_catalog

    def find_qualified_staff(
        self,
        tenant_id: str,
        service_id: str,
        options: Optional[SkillMatchingOptions] = None,
    ) -> list[SkillMatch]:
        """Rank active staff for a service, best score first, ties by staff id.

        Raises:
            KeyError: If the service does not exist.
        """
        options = options or SkillMatchingOptions()
        service = self._services.get_service(service_id)
        if service is None:
            raise KeyError(f"Service '{service_id}' not found")

        matches = [
            calculate_skill_match(staff, service, options)
            for staff in self._staff.get_active_staff(tenant_id)
        ]
        matches = [m for m in matches if passes_filters(m, options)]
        return sorted(matches, key=lambda m: (-m.match_score, m.staff_id))

    def find_services_for_staff(
        self,
        tenant_id: str,
        staff_id: str,
        options: Optional[SkillMatchingOptions] = None,
    ) -> list[ServiceMatch]:
        """Rank active services for a staff member, best score first, ties by service id.

        Raises:
            KeyError: If the staff member does not exist.
        """
        options = options or SkillMatchingOptions()
        staff = self._staff.get_staff(staff_id)
        if staff is None:
            raise KeyError(f"Staff member '{staff_id}' not found")

        results = []
        for service in self._services.get_active_services(tenant_id):
            match = calculate_skill_match(staff, service, options)
            if passes_filters(match, options):
                results.append(ServiceMatch(service=service, match=match))
        return sorted(results, key=lambda r: (-r.match.match_score, r.service.id))

    def get_skill_gap_analysis(self, tenant_id: str, staff_id: str) -> SkillGapAnalysis:
        """Skills that would each, on their own, qualify the staff member for more services."""
        staff = self._staff.get_staff(staff_id)
        if staff is None:
            raise KeyError(f"Staff member '{staff_id}' not found")

        services = self._services.get_active_services(tenant_id)
        current = self.find_services_for_staff(
            tenant_id, staff_id, SkillMatchingOptions(require_all_skills=True)
        )

        all_required: list[str] = []
        for service in services:
            for skill in service.required_skills:
                if skill not in all_required:
                    all_required.append(skill)

        gaps = []
        for skill in all_required:
            if skill in staff.skills:
                continue
            unlocked = sum(
                1
                for service in services
                if skill in service.required_skills
                and all(s in staff.skills for s in service.required_skills if s != skill)
            )
            if unlocked == 0:
                continue
            if unlocked >= 5:
                priority = "high"
            elif unlocked >= 2:
                priority = "medium"
            else:
                priority = "low"
            gaps.append(SkillGap(skill_id=skill, services_unlocked=unlocked, priority=priority))

        gaps.sort(key=lambda g: (-g.services_unlocked, g.skill_id))
        recommendations = [
            SkillRecommendation(
                skill_id=gap.skill_id,
                reason=(
                    "Learning this skill would qualify you for "
                    f"{gap.services_unlocked} additional services"
                ),
                impact=_IMPACT[gap.priority],
            )
            for gap in gaps[:MAX_RECOMMENDATIONS]
        ]

        return SkillGapAnalysis(
            current_skills=list(staff.skills),
            available_services=len(current),
            skill_gaps=gaps,
            recommendations=recommendations,
        )

    def suggest_staff_assignments(
        self,
        tenant_id: str,
        service_ids: list[str],
        options: Optional[SkillMatchingOptions] = None,
    ) -> list[StaffAssignmentSuggestion]:
        """Split qualified staff per service into recommended and alternative bands."""
        suggestions = []
        for service_id in service_ids:
            matches = self.find_qualified_staff(tenant_id, service_id, options)
            suggestions.append(StaffAssignmentSuggestion(
                service_id=service_id,
                recommended_staff=[m for m in matches if m.match_score >= RECOMMENDED_SCORE],
                alternative_staff=[
                    m for m in matches if ALTERNATIVE_SCORE <= m.match_score < RECOMMENDED_SCORE
                ],
            ))
        return suggestions
