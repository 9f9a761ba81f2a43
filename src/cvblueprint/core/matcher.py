"""Semantic matcher collaborators.

A matcher decides which incoming facts are "the same" as facts already in the
blueprint and returns a complete replacement profile. The engine never second
guesses that decision; it only checks the provenance post-conditions.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from cvblueprint.config import Settings, get_settings
from cvblueprint.core.errors import MatcherContractViolation
from cvblueprint.core.provenance import add_source_id
from cvblueprint.llm.router import LLMRouter
from cvblueprint.types import (
    BlueprintProfile,
    EducationRecord,
    ExperienceRecord,
    ExtractedCVInfo,
    MatchResult,
    MergeChange,
    MergeSummary,
    ProvenancedEntry,
    SkillRecord,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class SemanticMatcher(Protocol):
    def match(self, existing: BlueprintProfile, extracted: ExtractedCVInfo, source_id: str) -> MatchResult: ...


class LLMSemanticMatcher:
    def __init__(self, router: LLMRouter | None = None):
        self.router = router or LLMRouter()

    def match(self, existing: BlueprintProfile, extracted: ExtractedCVInfo, source_id: str) -> MatchResult:
        data = self.router.merge_blueprint(
            existing_profile=existing.model_dump(mode="json"),
            new_cv=extracted.model_dump(mode="json") | {"source_hash": source_id},
            source_id=source_id,
        )
        if not data:
            raise MatcherContractViolation("semantic matcher returned no parseable JSON")

        try:
            return MatchResult.model_validate(data)
        except ValidationError as exc:
            logger.warning("Malformed matcher output source_id=%s errors=%s", source_id, exc.error_count())
            raise MatcherContractViolation(
                "semantic matcher returned a malformed profile",
                violations=[str(error["msg"]) for error in exc.errors()],
            ) from exc


class KeyedSemanticMatcher:
    """Deterministic matcher: entries are the same when their normalized keys are equal."""

    def match(self, existing: BlueprintProfile, extracted: ExtractedCVInfo, source_id: str) -> MatchResult:
        profile = existing.model_copy(deep=True)
        changes: list[MergeChange] = []
        updated_fields = self._merge_scalars(profile, extracted, changes)

        incoming_experience = [
            ExperienceRecord(
                role=entry.role,
                company=entry.company,
                duration=entry.duration,
                description=entry.description,
                highlights=entry.highlights,
                sources=[source_id],
            )
            for entry in extracted.experience
        ]
        incoming_education = [
            EducationRecord(
                degree=entry.degree,
                institution=entry.institution,
                year=entry.year,
                sources=[source_id],
            )
            for entry in extracted.education
        ]
        incoming_skills = [SkillRecord(name=name, sources=[source_id]) for name in extracted.skills]

        new_experience, gaps = _merge_entries(profile.experience, incoming_experience, source_id, "experience", changes)
        updated_fields += gaps
        new_education, gaps = _merge_entries(profile.education, incoming_education, source_id, "education", changes)
        updated_fields += gaps
        new_skills, gaps = _merge_entries(profile.skills, incoming_skills, source_id, "skill", changes)
        updated_fields += gaps

        return MatchResult(
            new_profile=profile,
            changes=changes,
            summary=MergeSummary(
                new_skills=new_skills,
                new_experience=new_experience,
                new_education=new_education,
                updated_fields=updated_fields,
            ),
        )

    @staticmethod
    def _merge_scalars(profile: BlueprintProfile, extracted: ExtractedCVInfo, changes: list[MergeChange]) -> int:
        contact = extracted.contact_info
        incoming = {
            ("personal", "name"): extracted.name,
            ("personal", "summary"): extracted.summary,
            ("contact", "email"): contact.email,
            ("contact", "phone"): contact.phone,
            ("contact", "location"): contact.location,
            ("contact", "linkedin"): contact.linkedin,
            ("contact", "website"): contact.website,
        }

        updated = 0
        for (group, name), value in incoming.items():
            value = value.strip()
            target = getattr(profile, group)
            if not value or getattr(target, name) == value:
                continue
            setattr(target, name, value)
            updated += 1
            changes.append(MergeChange(type=group, description=f"Updated {group} {name}", impact=0.05))
        return updated


def identity_key(entry: ProvenancedEntry) -> tuple[str, ...]:
    """Casefolded, whitespace-collapsed fields two entries must share to be merged."""
    if isinstance(entry, ExperienceRecord):
        fields = (entry.role, entry.company, entry.duration)
    elif isinstance(entry, EducationRecord):
        fields = (entry.degree, entry.institution, entry.year)
    elif isinstance(entry, SkillRecord):
        fields = (entry.name,)
    else:
        raise TypeError(f"no identity key for {type(entry).__name__}")
    return tuple(" ".join(value.casefold().split()) for value in fields)


def _merge_entries(
    current: list,
    incoming: list,
    source_id: str,
    label: str,
    changes: list[MergeChange],
) -> tuple[int, int]:
    """Merge ``incoming`` into ``current`` in place. Returns (created, gap_fills)."""
    index: dict[tuple[str, ...], ProvenancedEntry] = {identity_key(entry): entry for entry in current}
    created = 0
    gap_fills = 0

    for entry in incoming:
        key = identity_key(entry)
        if not any(key):
            continue

        match = index.get(key)
        if match is None:
            current.append(entry)
            index[key] = entry
            created += 1
            changes.append(MergeChange(type=label, description=f"Added {label} entry", impact=0.1))
            continue

        if not match.has_source(source_id):
            match.sources = add_source_id(match.sources, source_id)
            match.confidence = min(1.0, 0.6 + 0.2 * len(match.sources))
            changes.append(MergeChange(type=label, description=f"Merged {label} entry from new source", impact=0.02))
        gap_fills += _fill_gaps(match, entry)

    return created, gap_fills


def _fill_gaps(target: ProvenancedEntry, incoming: ProvenancedEntry) -> int:
    filled = 0
    for name, value in incoming.model_dump(exclude={"sources", "confidence"}).items():
        existing = getattr(target, name)
        if isinstance(existing, list):
            merged = existing + [item for item in value if item not in existing]
            if merged != existing:
                setattr(target, name, merged)
                filled += 1
        elif not existing and value:
            setattr(target, name, value)
            filled += 1
    return filled


def build_matcher(settings: Settings | None = None) -> SemanticMatcher:
    settings = settings or get_settings()
    if settings.matcher_backend == "keyed":
        return KeyedSemanticMatcher()
    return LLMSemanticMatcher(LLMRouter(settings))
