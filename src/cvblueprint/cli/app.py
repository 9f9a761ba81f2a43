from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn

import typer
import uvicorn

from cvblueprint.api.app import create_app
from cvblueprint.config import get_settings
from cvblueprint.core.errors import BlueprintError
from cvblueprint.core.ingestion import build_engine, ingest_source
from cvblueprint.core.validation import get_first_incomplete_section_id, validate
from cvblueprint.db.init import init_database
from cvblueprint.db.repositories import BlueprintRepository
from cvblueprint.db.session import SessionLocal
from cvblueprint.logging_config import configure_logging
from cvblueprint.types import ConsolidationResult, ExtractedCVInfo

app = typer.Typer(help="CV Blueprint CLI")
blueprint_app = typer.Typer(help="Inspect and update per-user blueprints")

app.add_typer(blueprint_app, name="blueprint")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _load_extracted(file: Path) -> ExtractedCVInfo:
    payload = json.loads(file.read_text(encoding="utf-8"))
    if isinstance(payload, dict) and "extracted_info" in payload:
        payload = payload["extracted_info"]
    return ExtractedCVInfo.model_validate(payload)


def _echo_result(source_id: str, result: ConsolidationResult) -> None:
    typer.echo(
        json.dumps(
            {
                "source_id": source_id,
                "applied": result.applied,
                "version": result.blueprint.version,
                "total_sources_processed": result.blueprint.total_sources_processed,
                "confidence_score": result.blueprint.confidence_score,
                "completeness_score": result.blueprint.completeness_score,
                "changes": [change.description for change in result.changes],
            },
            indent=2,
        )
    )


def _fail(exc: BlueprintError) -> NoReturn:
    typer.echo(json.dumps({"ok": False, "error": type(exc).__name__, "detail": str(exc)}, indent=2), err=True)
    raise typer.Exit(code=1)


@app.command("init")
def init_cmd() -> None:
    """Create the data directory and blueprint tables."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@app.command("validate")
def validate_cmd(file: Path = typer.Option(..., "--file", exists=True, readable=True)) -> None:
    """Score an extracted CV JSON file without touching the database."""
    configure_logging()
    report = validate(_load_extracted(file))
    typer.echo(
        json.dumps(
            {
                **report.model_dump(mode="json"),
                "first_incomplete_section": get_first_incomplete_section_id(report),
            },
            indent=2,
        )
    )


@blueprint_app.command("show")
def blueprint_show(user_id: str = typer.Option(..., "--user-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            blueprint = BlueprintRepository(db).get(user_id)
        except BlueprintError as exc:
            _fail(exc)
        if blueprint is None:
            raise typer.BadParameter(f"no blueprint for user {user_id}")
        typer.echo(json.dumps(blueprint.model_dump(mode="json"), indent=2))


@blueprint_app.command("add-source")
def blueprint_add_source(
    user_id: str = typer.Option(..., "--user-id"),
    file: Path = typer.Option(..., "--file", exists=True, readable=True),
    source_id: str | None = typer.Option(None, "--source-id"),
    raw_text_file: Path | None = typer.Option(None, "--raw-text-file", exists=True, readable=True),
) -> None:
    """Merge an extracted CV JSON file into the user's blueprint."""
    configure_logging()
    ensure_initialized()
    extracted = _load_extracted(file)
    raw_text = raw_text_file.read_text(encoding="utf-8") if raw_text_file else None

    with SessionLocal() as db:
        try:
            resolved, result = ingest_source(db, user_id, extracted, source_id=source_id, raw_text=raw_text)
        except BlueprintError as exc:
            _fail(exc)
        _echo_result(resolved, result)


@blueprint_app.command("remove-source")
def blueprint_remove_source(
    user_id: str = typer.Option(..., "--user-id"),
    source_id: str = typer.Option(..., "--source-id"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            result = build_engine(db).remove_source(user_id, source_id)
        except BlueprintError as exc:
            _fail(exc)
        _echo_result(source_id, result)


@blueprint_app.command("history")
def blueprint_history(
    user_id: str = typer.Option(..., "--user-id"),
    limit: int = typer.Option(20, "--limit"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            records = BlueprintRepository(db).list_changes(user_id, limit=limit)
        except BlueprintError as exc:
            _fail(exc)
        typer.echo(
            json.dumps(
                [
                    {
                        "change_type": record.change_type,
                        "source_id": record.source_id,
                        "summary": record.summary_text,
                        "confidence_impact": record.confidence_impact,
                        "created_at": record.created_at.isoformat() if record.created_at else None,
                    }
                    for record in records
                ],
                indent=2,
            )
        )


@blueprint_app.command("sources")
def blueprint_sources(user_id: str = typer.Option(..., "--user-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = BlueprintRepository(db)
        try:
            blueprint = repo.get(user_id)
            rows = repo.list_source_documents(user_id)
        except BlueprintError as exc:
            _fail(exc)
        merged = set(blueprint.source_ids) if blueprint else set()
        typer.echo(
            json.dumps(
                [{"source_id": row.source_id, "merged": row.source_id in merged} for row in rows],
                indent=2,
            )
        )


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)


if __name__ == "__main__":
    app()
