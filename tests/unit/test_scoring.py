from __future__ import annotations

import pytest

from cvblueprint.core.scoring import calculate_completeness, calculate_confidence, confidence_impact
from cvblueprint.types import (
    BlueprintProfile,
    ContactDetails,
    EducationRecord,
    ExperienceRecord,
    MergeSummary,
    PersonalInfo,
    SkillRecord,
)


def _profile(**overrides) -> BlueprintProfile:
    data = {
        "personal": PersonalInfo(name="Ada Lovelace"),
        "contact": ContactDetails(email="ada@example.com", phone="123", location="London"),
        "experience": [ExperienceRecord(role="Engineer", company="Acme", sources=["h1"])],
        "education": [EducationRecord(degree="BSc", institution="UCL", sources=["h1"])],
        "skills": [SkillRecord(name="Python", sources=["h1"])],
    }
    data.update(overrides)
    return BlueprintProfile(**data)


def test_empty_profile_has_zero_scores() -> None:
    profile = BlueprintProfile()

    assert calculate_completeness(profile) == 0.0
    assert calculate_confidence(profile, 0) == 0.0


def test_completeness_weights_sections() -> None:
    profile = _profile()

    # 0.2 name + 3/5 contact * 0.2 + 0.2 skills + 0.3 experience + 0.1 education
    assert calculate_completeness(profile) == pytest.approx(0.92)
    assert calculate_completeness(_profile(education=[])) == pytest.approx(0.82)


def test_confidence_adds_bounded_bonuses() -> None:
    profile = _profile()
    completeness = calculate_completeness(profile)

    assert calculate_confidence(profile, 0) == pytest.approx(completeness + 0.02)
    assert calculate_confidence(profile, 3) == pytest.approx(completeness + 0.06 + 0.02)
    assert calculate_confidence(profile, 500) == 1.0


def test_scores_stay_in_unit_interval() -> None:
    many_roles = [ExperienceRecord(role=f"Role {index}", company="Acme", sources=["h1"]) for index in range(20)]
    profiles = [
        BlueprintProfile(),
        _profile(),
        _profile(experience=many_roles),
        _profile(contact=ContactDetails(email="a", phone="b", location="c", linkedin="d", website="e")),
    ]
    for profile in profiles:
        for new_items in (0, 1, 5, 50):
            completeness = calculate_completeness(profile)
            confidence = calculate_confidence(profile, new_items)
            assert 0.0 <= completeness <= 1.0
            assert 0.0 <= confidence <= 1.0
            assert confidence >= completeness


def test_confidence_impact_weights_new_items() -> None:
    summary = MergeSummary(new_skills=2, new_experience=1, new_education=1)

    assert confidence_impact(summary) == pytest.approx(0.2 + 0.2 + 0.15)
    assert confidence_impact(MergeSummary()) == 0.0
