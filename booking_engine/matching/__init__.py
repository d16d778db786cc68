from booking_engine.matching.skill_matching import SkillMatchingService, calculate_skill_match

__all__ = [
    "SkillMatchingService",
    "calculate_skill_match",
]
