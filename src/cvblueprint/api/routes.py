from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cvblueprint.api.deps import get_db
from cvblueprint.api.schemas import (
    AddSourceRequest,
    ChangeResponse,
    ConsolidationResponse,
    SourceDocumentResponse,
    ValidateRequest,
    ValidateResponse,
)
from cvblueprint.core.errors import (
    BlueprintError,
    CollaboratorUnavailable,
    ConcurrencyConflict,
    MatcherContractViolation,
    SetupIncomplete,
)
from cvblueprint.core.ingestion import build_engine, ingest_source
from cvblueprint.core.validation import get_first_incomplete_section_id, get_missing_fields_for_section, validate
from cvblueprint.db.repositories import BlueprintRepository
from cvblueprint.types import Blueprint

router = APIRouter(prefix="/api", tags=["api"])


def _http_error(exc: BlueprintError) -> HTTPException:
    if isinstance(exc, ConcurrencyConflict):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, MatcherContractViolation):
        return HTTPException(status_code=502, detail={"message": str(exc), "violations": exc.violations})
    if isinstance(exc, CollaboratorUnavailable):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, SetupIncomplete):
        return HTTPException(status_code=500, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@router.post("/validate", response_model=ValidateResponse)
def validate_profile(payload: ValidateRequest) -> ValidateResponse:
    report = validate(payload.extracted_info)
    section_id = get_first_incomplete_section_id(report)
    return ValidateResponse(
        report=report,
        first_incomplete_section=section_id,
        first_incomplete_fields=get_missing_fields_for_section(report, section_id) if section_id else [],
    )


@router.get("/users/{user_id}/blueprint", response_model=Blueprint)
def get_blueprint(user_id: str, db: Session = Depends(get_db)) -> Blueprint:
    try:
        blueprint = BlueprintRepository(db).get(user_id)
    except BlueprintError as exc:
        raise _http_error(exc) from exc
    if blueprint is None:
        raise HTTPException(status_code=404, detail="Blueprint not found")
    return blueprint


@router.post("/users/{user_id}/blueprint/sources", response_model=ConsolidationResponse)
def add_source(user_id: str, payload: AddSourceRequest, db: Session = Depends(get_db)) -> ConsolidationResponse:
    try:
        source_id, result = ingest_source(
            db,
            user_id,
            payload.extracted_info,
            source_id=payload.source_id,
            raw_text=payload.raw_text,
        )
    except BlueprintError as exc:
        raise _http_error(exc) from exc

    return ConsolidationResponse(
        source_id=source_id,
        applied=result.applied,
        blueprint=result.blueprint,
        changes=result.changes,
        summary=result.summary,
    )


@router.delete("/users/{user_id}/blueprint/sources/{source_id}", response_model=ConsolidationResponse)
def remove_source(user_id: str, source_id: str, db: Session = Depends(get_db)) -> ConsolidationResponse:
    try:
        result = build_engine(db).remove_source(user_id, source_id)
    except BlueprintError as exc:
        raise _http_error(exc) from exc

    return ConsolidationResponse(
        source_id=source_id,
        applied=result.applied,
        blueprint=result.blueprint,
        changes=result.changes,
        summary=result.summary,
    )


@router.get("/users/{user_id}/blueprint/changes", response_model=list[ChangeResponse])
def list_changes(user_id: str, limit: int = 50, db: Session = Depends(get_db)) -> list[ChangeResponse]:
    try:
        records = BlueprintRepository(db).list_changes(user_id, limit=limit)
    except BlueprintError as exc:
        raise _http_error(exc) from exc
    return [ChangeResponse.from_record(record) for record in records]


@router.get("/users/{user_id}/sources", response_model=list[SourceDocumentResponse])
def list_sources(user_id: str, db: Session = Depends(get_db)) -> list[SourceDocumentResponse]:
    repo = BlueprintRepository(db)
    try:
        blueprint = repo.get(user_id)
        rows = repo.list_source_documents(user_id)
    except BlueprintError as exc:
        raise _http_error(exc) from exc

    merged = set(blueprint.source_ids) if blueprint else set()
    return [
        SourceDocumentResponse(
            source_id=row.source_id,
            merged=row.source_id in merged,
            name=(row.extracted_info_json or {}).get("name"),
            created_at=row.created_at,
        )
        for row in rows
    ]
