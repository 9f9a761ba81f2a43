from __future__ import annotations

from cvblueprint.types import BlueprintProfile, MergeSummary

PERSONAL_WEIGHT = 0.2
CONTACT_WEIGHT = 0.2
SKILLS_WEIGHT = 0.2
EXPERIENCE_WEIGHT = 0.3
EDUCATION_WEIGHT = 0.1
CONTACT_FIELD_COUNT = 5

LEARNING_BONUS_PER_ITEM = 0.02
LEARNING_BONUS_CAP = 0.2
EXPERIENCE_BONUS_PER_ENTRY = 0.02
EXPERIENCE_BONUS_CAP = 0.1


def calculate_completeness(profile: BlueprintProfile) -> float:
    """Weighted share of populated sections, in [0, 1]."""
    score = 0.0
    if profile.personal.name:
        score += PERSONAL_WEIGHT
    populated = min(CONTACT_FIELD_COUNT, profile.contact.populated_count())
    score += (populated / CONTACT_FIELD_COUNT) * CONTACT_WEIGHT
    if profile.skills:
        score += SKILLS_WEIGHT
    if profile.experience:
        score += EXPERIENCE_WEIGHT
    if profile.education:
        score += EDUCATION_WEIGHT
    # weights sum to 1
    return max(0.0, min(1.0, score))


def calculate_confidence(profile: BlueprintProfile, new_items: int) -> float:
    """Completeness plus bounded bonuses for recent learning and experience depth."""
    base = calculate_completeness(profile)
    learning_bonus = min(LEARNING_BONUS_CAP, max(0, new_items) * LEARNING_BONUS_PER_ITEM)
    experience_bonus = min(EXPERIENCE_BONUS_CAP, len(profile.experience) * EXPERIENCE_BONUS_PER_ENTRY)
    return min(1.0, base + learning_bonus + experience_bonus)


def confidence_impact(summary: MergeSummary) -> float:
    return summary.new_skills * 0.1 + summary.new_experience * 0.2 + summary.new_education * 0.15
