"""Rule-based completeness report for a single extracted profile.

``validate`` never raises: every absent or empty field becomes a
:class:`FieldFinding` and the report is always well formed. Required rules
(name, email, at least one experience entry, at least one skill) are always
tracked, so the overall score moves in steps of 25.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from cvblueprint.types import (
    ExtractedCVInfo,
    FieldFinding,
    SectionId,
    SectionReport,
    Severity,
    ValidationReport,
)

SECTIONS: tuple[tuple[SectionId, str, tuple[str, ...]], ...] = (
    ("personal", "Personal Info", ("name", "contact", "summary", "seniority_level")),
    ("experience", "Experience", ("experience",)),
    ("education", "Education", ("education",)),
    ("skills", "Skills", ("skills",)),
    ("projects", "Projects", ("projects",)),
    ("certifications", "Certifications", ("certifications",)),
    ("languages", "Languages", ("languages",)),
)

RECOMMENDED_SKILL_COUNT = 5


@dataclass(slots=True)
class _Findings:
    items: list[FieldFinding] = field(default_factory=list)
    required_outcomes: list[bool] = field(default_factory=list)

    def require(self, satisfied: bool, *, field: str, label: str, section: SectionId, message: str) -> None:
        self.required_outcomes.append(satisfied)
        if not satisfied:
            self.items.append(
                FieldFinding(
                    field=field,
                    label=label,
                    section=section,
                    is_required=True,
                    is_missing=True,
                    severity="error",
                    message=message,
                )
            )

    def suggest(
        self,
        *,
        field: str,
        label: str,
        section: SectionId,
        severity: Severity,
        message: str,
        missing: bool = True,
    ) -> None:
        self.items.append(
            FieldFinding(
                field=field,
                label=label,
                section=section,
                is_required=False,
                is_missing=missing,
                severity=severity,
                message=message,
            )
        )


def validate(profile: ExtractedCVInfo) -> ValidationReport:
    findings = _Findings()

    _check_personal(profile, findings)
    _check_experience(profile, findings)
    _check_education(profile, findings)
    _check_skills(profile, findings)
    _check_optional_lists(profile, findings)

    sections = [
        _section_report(section_id, label, tracked, findings.items)
        for section_id, label, tracked in SECTIONS
    ]
    critical_missing = [item for item in findings.items if item.is_required and item.is_missing]

    required_total = len(findings.required_outcomes)
    required_met = sum(1 for outcome in findings.required_outcomes if outcome)
    overall_score = _round_half_up(100 * required_met / required_total) if required_total else 100

    return ValidationReport(
        is_complete=not critical_missing,
        overall_score=overall_score,
        sections=sections,
        critical_missing=critical_missing,
        recommendations=_recommendations(findings.items),
    )


def get_first_incomplete_section_id(report: ValidationReport) -> SectionId | None:
    for section in report.sections:
        if not section.is_complete:
            return section.id
    return None


def get_missing_fields_for_section(report: ValidationReport, section_id: str) -> list[FieldFinding]:
    for section in report.sections:
        if section.id == section_id:
            return [*section.missing_fields, *section.warning_fields]
    return []


def _check_personal(profile: ExtractedCVInfo, findings: _Findings) -> None:
    contact = profile.contact_info

    findings.require(
        bool(profile.name.strip()),
        field="name",
        label="Full Name",
        section="personal",
        message="Your name is required",
    )
    findings.require(
        bool(contact.email.strip()) or "@" in contact.raw,
        field="contact.email",
        label="Email Address",
        section="personal",
        message="Email address is required for job applications",
    )
    if not contact.phone.strip():
        findings.suggest(
            field="contact.phone",
            label="Phone Number",
            section="personal",
            severity="warning",
            message="Adding a phone number helps recruiters contact you",
        )
    if not contact.location.strip():
        findings.suggest(
            field="contact.location",
            label="Location",
            section="personal",
            severity="info",
            message="Location helps match you with relevant opportunities",
        )
    if not contact.linkedin.strip():
        findings.suggest(
            field="contact.linkedin",
            label="LinkedIn Profile",
            section="personal",
            severity="info",
            message="LinkedIn profile strengthens your professional presence",
        )
    if not profile.seniority_level.strip():
        findings.suggest(
            field="seniority_level",
            label="Seniority Level",
            section="personal",
            severity="info",
            message="Seniority level helps match you with appropriate positions",
        )
    if not profile.summary.strip():
        findings.suggest(
            field="summary",
            label="Professional Summary",
            section="personal",
            severity="warning",
            message="A professional summary helps recruiters understand your profile",
        )


def _check_experience(profile: ExtractedCVInfo, findings: _Findings) -> None:
    findings.require(
        bool(profile.experience),
        field="experience",
        label="Work Experience",
        section="experience",
        message="At least one work experience entry is required",
    )
    if not profile.experience:
        return

    without_highlights = [entry for entry in profile.experience if not entry.highlights]
    if without_highlights:
        count = len(without_highlights)
        noun = "entry lacks" if count == 1 else "entries lack"
        findings.suggest(
            field="experience.highlights",
            label="Experience Highlights",
            section="experience",
            severity="warning",
            message=f"{count} experience {noun} key achievements/highlights",
        )

    if any(not entry.duration.strip() for entry in profile.experience):
        findings.suggest(
            field="experience.duration",
            label="Experience Duration",
            section="experience",
            severity="warning",
            message="Some experience entries are missing duration information",
        )


def _check_education(profile: ExtractedCVInfo, findings: _Findings) -> None:
    # some roles don't require formal education
    if not profile.education:
        findings.suggest(
            field="education",
            label="Education",
            section="education",
            severity="warning",
            message="Education information helps match you with relevant positions",
        )


def _check_skills(profile: ExtractedCVInfo, findings: _Findings) -> None:
    findings.require(
        bool(profile.skills),
        field="skills",
        label="Skills",
        section="skills",
        message="Skills are essential for job matching",
    )
    if profile.skills and len(profile.skills) < RECOMMENDED_SKILL_COUNT:
        findings.suggest(
            field="skills",
            label="Skills",
            section="skills",
            severity="info",
            message="Adding more skills improves job matching accuracy",
            missing=False,
        )


def _check_optional_lists(profile: ExtractedCVInfo, findings: _Findings) -> None:
    if not profile.projects:
        findings.suggest(
            field="projects",
            label="Projects",
            section="projects",
            severity="info",
            message="Projects showcase your practical experience",
        )
    if not profile.certifications:
        findings.suggest(
            field="certifications",
            label="Certifications",
            section="certifications",
            severity="info",
            message="Certifications validate your expertise",
        )
    if not profile.languages:
        findings.suggest(
            field="languages",
            label="Languages",
            section="languages",
            severity="info",
            message="Language skills can be valuable for international roles",
        )


def _section_report(
    section_id: SectionId,
    label: str,
    tracked: tuple[str, ...],
    findings: list[FieldFinding],
) -> SectionReport:
    in_section = [item for item in findings if item.section == section_id]
    missing = [item for item in in_section if item.is_missing and item.severity in {"error", "warning"}]
    info = [item for item in in_section if item.severity == "info"]

    total = len(tracked) + len(info)
    completed = total - len(missing)
    percentage = _round_half_up(100 * completed / total) if total else 100

    return SectionReport(
        id=section_id,
        label=label,
        is_complete=not any(item.is_required for item in missing),
        completion_percentage=max(0, min(100, percentage)),
        missing_fields=missing,
        warning_fields=info,
    )


def _recommendations(findings: list[FieldFinding]) -> list[str]:
    recommendations: list[str] = []

    errors = [item for item in findings if item.severity == "error" and item.is_missing]
    warnings = [item for item in findings if item.severity == "warning" and item.is_missing]

    if errors:
        plural = "s" if len(errors) > 1 else ""
        recommendations.append(f"Complete {len(errors)} required field{plural} to enable full analysis")
    if warnings:
        plural = "s" if len(warnings) > 1 else ""
        recommendations.append(f"Add {len(warnings)} recommended field{plural} to improve job matching")
    if any(item.field == "experience.highlights" and item.is_missing for item in findings):
        recommendations.append("Add achievements and highlights to your experience entries")

    return recommendations


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
