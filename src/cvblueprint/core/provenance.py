"""Provenance bookkeeping over blueprint profiles.

Every experience, education and skill entry carries the ids of the source
documents that contributed it. An entry is only ever present while at least
one source still vouches for it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from cvblueprint.types import BlueprintProfile, ProvenancedEntry


@dataclass(slots=True)
class RemovalOutcome:
    profile: BlueprintProfile
    detached: dict[str, int] = field(default_factory=dict)
    dropped: dict[str, int] = field(default_factory=dict)
    dropped_labels: list[str] = field(default_factory=list)


def find_orphans(profile: BlueprintProfile) -> list[str]:
    """Describe every entry that has no contributing source."""
    orphans: list[str] = []
    for section, entries in profile.provenanced_sections().items():
        for index, entry in enumerate(entries):
            if not entry.sources:
                orphans.append(f"{section}[{index}] {describe_entry(entry)!r} has no sources")
    return orphans


def contributing_sources(profile: BlueprintProfile) -> set[str]:
    sources: set[str] = set()
    for entries in profile.provenanced_sections().values():
        for entry in entries:
            sources.update(entry.sources)
    return sources


def detach_source(profile: BlueprintProfile, source_id: str) -> RemovalOutcome:
    """Remove ``source_id`` from every entry and drop entries left without sources."""
    outcome = RemovalOutcome(profile=profile)
    updates: dict[str, list[ProvenancedEntry]] = {}

    for section, entries in profile.provenanced_sections().items():
        kept: list[ProvenancedEntry] = []
        detached = 0
        dropped = 0
        for entry in entries:
            if not entry.has_source(source_id):
                kept.append(entry)
                continue

            remaining = [source for source in entry.sources if source != source_id]
            detached += 1
            if remaining:
                kept.append(entry.model_copy(update={"sources": remaining}, deep=True))
            else:
                dropped += 1
                outcome.dropped_labels.append(f"{section}: {describe_entry(entry)}")

        updates[section] = kept
        outcome.detached[section] = detached
        outcome.dropped[section] = dropped

    outcome.profile = profile.model_copy(update=updates, deep=True)
    return outcome


def add_source_id(source_ids: list[str], source_id: str) -> list[str]:
    if source_id in source_ids:
        return list(source_ids)
    return [*source_ids, source_id]


def describe_entry(entry: ProvenancedEntry) -> str:
    data = entry.model_dump(exclude={"sources", "confidence"})
    if "name" in data:
        return str(data["name"])
    if "role" in data:
        return " at ".join(part for part in (data["role"], data.get("company", "")) if part)
    if "degree" in data:
        return ", ".join(part for part in (data["degree"], data.get("institution", "")) if part)
    return ""
