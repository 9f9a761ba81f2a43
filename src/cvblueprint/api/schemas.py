from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from cvblueprint.types import (
    AuditRecord,
    Blueprint,
    ExtractedCVInfo,
    FieldFinding,
    MergeChange,
    MergeSummary,
    SectionId,
    ValidationReport,
)


class ValidateRequest(BaseModel):
    extracted_info: ExtractedCVInfo


class ValidateResponse(BaseModel):
    report: ValidationReport
    first_incomplete_section: SectionId | None = None
    first_incomplete_fields: list[FieldFinding] = Field(default_factory=list)


class AddSourceRequest(BaseModel):
    extracted_info: ExtractedCVInfo
    source_id: str | None = None
    raw_text: str | None = None


class ConsolidationResponse(BaseModel):
    source_id: str
    applied: bool
    blueprint: Blueprint
    changes: list[MergeChange] = Field(default_factory=list)
    summary: MergeSummary = Field(default_factory=MergeSummary)


class ChangeResponse(BaseModel):
    change_type: str
    source_id: str
    summary_text: str
    confidence_impact: float
    created_at: str | None = None
    previous_profile: dict[str, Any] = Field(default_factory=dict)
    new_profile: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: AuditRecord) -> ChangeResponse:
        return cls(
            change_type=record.change_type,
            source_id=record.source_id,
            summary_text=record.summary_text,
            confidence_impact=record.confidence_impact,
            created_at=record.created_at.isoformat() if record.created_at else None,
            previous_profile=record.previous_profile,
            new_profile=record.new_profile,
        )


class SourceDocumentResponse(BaseModel):
    source_id: str
    merged: bool
    name: str | None = None
    created_at: datetime | None = None
