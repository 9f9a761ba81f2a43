from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

Severity = Literal["error", "warning", "info"]
ChangeType = Literal["source_added", "source_removed"]
SectionId = Literal[
    "personal",
    "experience",
    "education",
    "skills",
    "projects",
    "certifications",
    "languages",
]


def _aliases(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class ExtractedModel(BaseModel):
    """Base for extractor output; tolerant of nulls, numbers and alias field names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


def _as_text_list(value: Any, *, keys: tuple[str, ...] = ("name",)) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]

    items: list[str] = []
    for raw in value:
        if isinstance(raw, dict):
            raw = next((raw[key] for key in keys if raw.get(key)), "")
        text = str(raw).strip() if raw is not None else ""
        if text:
            items.append(text)
    return items


def _as_bullets(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


class ContactInfo(ExtractedModel):
    email: str = ""
    phone: str = ""
    location: str = ""
    linkedin: str = ""
    github: str = ""
    website: str = ""
    raw: str = ""


class ExperienceEntry(ExtractedModel):
    role: str = Field(default="", validation_alias=_aliases("role", "title", "position"))
    company: str = Field(default="", validation_alias=_aliases("company", "organization", "employer"))
    location: str = ""
    duration: str = Field(default="", validation_alias=_aliases("duration", "dates", "period"))
    description: str = ""
    highlights: list[str] = Field(
        default_factory=list,
        validation_alias=_aliases("highlights", "bullets", "responsibilities", "achievements"),
    )

    @field_validator("highlights", mode="before")
    @classmethod
    def coerce_highlights(cls, value: Any) -> list[str]:
        return _as_bullets(value)


class EducationEntry(ExtractedModel):
    degree: str = ""
    institution: str = Field(default="", validation_alias=_aliases("institution", "school", "university"))
    location: str = ""
    year: str = Field(default="", validation_alias=_aliases("year", "dates", "graduation_year", "duration"))
    gpa: str = ""
    coursework: list[str] = Field(default_factory=list)
    activities: list[str] = Field(default_factory=list)

    @field_validator("coursework", "activities", mode="before")
    @classmethod
    def coerce_lists(cls, value: Any) -> list[str]:
        return _as_bullets(value)


class ProjectEntry(ExtractedModel):
    name: str = Field(default="", validation_alias=_aliases("name", "title"))
    description: str = ""
    technologies: list[str] = Field(default_factory=list, validation_alias=_aliases("technologies", "tech_stack"))
    link: str = Field(default="", validation_alias=_aliases("link", "url"))
    duration: str = Field(default="", validation_alias=_aliases("duration", "dates"))

    @field_validator("technologies", mode="before")
    @classmethod
    def coerce_technologies(cls, value: Any) -> list[str]:
        return _as_text_list(value)


class CertificationEntry(ExtractedModel):
    name: str = ""
    issuer: str = Field(default="", validation_alias=_aliases("issuer", "organization", "authority"))
    year: str = Field(default="", validation_alias=_aliases("year", "date"))


class LeadershipEntry(ExtractedModel):
    role: str = Field(default="", validation_alias=_aliases("role", "title"))
    organization: str = ""
    duration: str = Field(default="", validation_alias=_aliases("duration", "dates"))
    description: str = ""
    highlights: list[str] = Field(default_factory=list, validation_alias=_aliases("highlights", "bullets"))

    @field_validator("highlights", mode="before")
    @classmethod
    def coerce_highlights(cls, value: Any) -> list[str]:
        return _as_bullets(value)


class ExtractedCVInfo(ExtractedModel):
    name: str = Field(default="", validation_alias=_aliases("name", "full_name", "fullName"))
    contact_info: ContactInfo = Field(
        default_factory=ContactInfo,
        validation_alias=_aliases("contact_info", "contactInfo", "contact"),
    )
    summary: str = ""
    seniority_level: str = Field(default="", validation_alias=_aliases("seniority_level", "seniorityLevel"))
    years_of_experience: float | None = Field(
        default=None, validation_alias=_aliases("years_of_experience", "yearsOfExperience")
    )
    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    inferred_skills: list[str] = Field(
        default_factory=list, validation_alias=_aliases("inferred_skills", "inferredSkills")
    )
    projects: list[ProjectEntry] = Field(default_factory=list)
    certifications: list[CertificationEntry] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    leadership: list[LeadershipEntry] = Field(default_factory=list)
    industries: list[str] = Field(default_factory=list)
    primary_functions: list[str] = Field(
        default_factory=list, validation_alias=_aliases("primary_functions", "primaryFunctions")
    )

    @field_validator("contact_info", mode="before")
    @classmethod
    def coerce_contact(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"raw": value}
        return value

    @field_validator("years_of_experience", mode="before")
    @classmethod
    def coerce_years(cls, value: Any) -> float | None:
        try:
            return float(str(value).rstrip("+").strip())
        except (TypeError, ValueError):
            return None

    @field_validator("skills", "inferred_skills", "industries", "primary_functions", mode="before")
    @classmethod
    def coerce_names(cls, value: Any) -> list[str]:
        return _as_text_list(value)

    @field_validator("languages", mode="before")
    @classmethod
    def coerce_languages(cls, value: Any) -> list[str]:
        return _as_text_list(value, keys=("language", "name"))


class ProvenancedEntry(BaseModel):
    """A list-valued blueprint fact together with the sources that contributed it."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    confidence: float = 0.8
    sources: list[str] = Field(default_factory=list)

    @field_validator("sources", mode="before")
    @classmethod
    def dedupe_sources(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        seen: list[str] = []
        for item in value:
            source = str(item).strip()
            if source and source not in seen:
                seen.append(source)
        return seen

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, value: float) -> float:
        return max(0.0, min(1.0, value))

    def has_source(self, source_id: str) -> bool:
        return source_id in self.sources


class ExperienceRecord(ProvenancedEntry):
    role: str = Field(default="", validation_alias=_aliases("role", "title"))
    company: str = ""
    duration: str = Field(default="", validation_alias=_aliases("duration", "dates"))
    description: str = ""
    highlights: list[str] = Field(default_factory=list)

    @field_validator("highlights", mode="before")
    @classmethod
    def coerce_highlights(cls, value: Any) -> list[str]:
        return _as_bullets(value)


class EducationRecord(ProvenancedEntry):
    degree: str = ""
    institution: str = Field(default="", validation_alias=_aliases("institution", "school"))
    year: str = ""


class SkillRecord(ProvenancedEntry):
    name: str

    @model_validator(mode="before")
    @classmethod
    def accept_bare_name(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"name": data}
        return data


class PersonalInfo(BaseModel):
    name: str = ""
    summary: str = ""


class ContactDetails(BaseModel):
    email: str = ""
    phone: str = ""
    location: str = ""
    linkedin: str = ""
    website: str = ""

    def populated_count(self) -> int:
        return sum(1 for value in self.model_dump().values() if value)


class BlueprintProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    personal: PersonalInfo = Field(default_factory=PersonalInfo)
    contact: ContactDetails = Field(default_factory=ContactDetails)
    experience: list[ExperienceRecord] = Field(default_factory=list)
    education: list[EducationRecord] = Field(default_factory=list)
    skills: list[SkillRecord] = Field(default_factory=list)

    def provenanced_sections(self) -> dict[str, list[ProvenancedEntry]]:
        return {
            "experience": list(self.experience),
            "education": list(self.education),
            "skills": list(self.skills),
        }

    def content_equals(self, other: BlueprintProfile) -> bool:
        return self.model_dump(mode="json") == other.model_dump(mode="json")


class Blueprint(BaseModel):
    """Consolidated per-user profile plus the bookkeeping the engine owns."""

    user_id: str
    profile: BlueprintProfile = Field(default_factory=BlueprintProfile)
    version: int = 1
    total_sources_processed: int = 0
    source_ids: list[str] = Field(default_factory=list)
    confidence_score: float = 0.0
    completeness_score: float = 0.0
    last_source_processed_at: datetime | None = None


class MergeChange(BaseModel):
    type: str = "update"
    description: str = ""
    impact: float = 0.0


class MergeSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    new_skills: int = Field(default=0, ge=0, validation_alias=_aliases("new_skills", "newSkills"))
    new_experience: int = Field(default=0, ge=0, validation_alias=_aliases("new_experience", "newExperience"))
    new_education: int = Field(default=0, ge=0, validation_alias=_aliases("new_education", "newEducation"))
    updated_fields: int = Field(default=0, ge=0, validation_alias=_aliases("updated_fields", "updatedFields"))

    @property
    def new_items(self) -> int:
        return self.new_skills + self.new_experience + self.new_education


class MatchResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    new_profile: BlueprintProfile = Field(validation_alias=_aliases("new_profile", "newProfile"))
    changes: list[MergeChange] = Field(default_factory=list)
    summary: MergeSummary = Field(default_factory=MergeSummary)


class AuditRecord(BaseModel):
    user_id: str
    change_type: ChangeType
    source_id: str
    previous_profile: dict[str, Any] = Field(default_factory=dict)
    new_profile: dict[str, Any] = Field(default_factory=dict)
    summary_text: str = ""
    confidence_impact: float = 0.0
    created_at: datetime | None = None


class ConsolidationResult(BaseModel):
    blueprint: Blueprint
    changes: list[MergeChange] = Field(default_factory=list)
    summary: MergeSummary = Field(default_factory=MergeSummary)
    applied: bool = True


class FieldFinding(BaseModel):
    field: str
    label: str
    section: SectionId
    is_required: bool
    is_missing: bool
    severity: Severity
    message: str


class SectionReport(BaseModel):
    id: SectionId
    label: str
    is_complete: bool
    completion_percentage: int
    missing_fields: list[FieldFinding] = Field(default_factory=list)
    warning_fields: list[FieldFinding] = Field(default_factory=list)


class ValidationReport(BaseModel):
    is_complete: bool
    overall_score: int
    sections: list[SectionReport] = Field(default_factory=list)
    critical_missing: list[FieldFinding] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class ModelResponse(BaseModel):
    content: str
    raw: dict[str, Any] = Field(default_factory=dict)
