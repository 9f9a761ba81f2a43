from __future__ import annotations

from cvblueprint.core.provenance import (
    add_source_id,
    contributing_sources,
    describe_entry,
    detach_source,
    find_orphans,
)
from cvblueprint.types import BlueprintProfile, EducationRecord, ExperienceRecord, PersonalInfo, SkillRecord


def _profile() -> BlueprintProfile:
    return BlueprintProfile(
        personal=PersonalInfo(name="Ada"),
        experience=[
            ExperienceRecord(role="Engineer", company="Acme", sources=["h1", "h2"]),
            ExperienceRecord(role="Intern", company="Initech", sources=["h1"]),
        ],
        education=[EducationRecord(degree="BSc", institution="UCL", sources=["h2"])],
        skills=[SkillRecord(name="Python", sources=["h1"]), SkillRecord(name="Go", sources=["h2"])],
    )


def test_detach_drops_sole_contributions_and_keeps_shared_entries() -> None:
    outcome = detach_source(_profile(), "h1")

    profile = outcome.profile
    assert [entry.role for entry in profile.experience] == ["Engineer"]
    assert profile.experience[0].sources == ["h2"]
    assert [skill.name for skill in profile.skills] == ["Go"]
    assert len(profile.education) == 1
    assert outcome.dropped == {"experience": 1, "education": 0, "skills": 1}
    assert outcome.detached == {"experience": 2, "education": 0, "skills": 1}
    assert outcome.dropped_labels == ["experience: Intern at Initech", "skills: Python"]
    assert outcome.profile.education[0].sources == ["h2"]


def test_detach_leaves_input_profile_untouched() -> None:
    original = _profile()

    detach_source(original, "h1")

    assert original.experience[0].sources == ["h1", "h2"]
    assert len(original.skills) == 2


def test_detach_unknown_source_is_unchanged() -> None:
    original = _profile()

    outcome = detach_source(original, "h9")

    assert sum(outcome.detached.values()) == 0
    assert outcome.profile.content_equals(original)


def test_detached_profile_has_no_orphans() -> None:
    outcome = detach_source(detach_source(_profile(), "h1").profile, "h2")

    assert find_orphans(outcome.profile) == []
    assert outcome.profile.experience == []
    assert outcome.profile.personal.name == "Ada"


def test_find_orphans_reports_entries_without_sources() -> None:
    profile = BlueprintProfile(skills=[SkillRecord(name="Python", sources=["h1"]), SkillRecord(name="Rust")])

    orphans = find_orphans(profile)

    assert orphans == ["skills[1] 'Rust' has no sources"]


def test_contributing_sources_and_source_id_helpers() -> None:
    assert contributing_sources(_profile()) == {"h1", "h2"}
    assert add_source_id(["h1"], "h1") == ["h1"]
    assert add_source_id(["h1"], "h2") == ["h1", "h2"]
    assert describe_entry(EducationRecord(degree="BSc", institution="UCL")) == "BSc, UCL"
