"""Wiring between a database session, the configured matcher and the engine."""

from __future__ import annotations

import json
import threading

from sqlalchemy.orm import Session

from cvblueprint.config import Settings, get_settings
from cvblueprint.core.consolidation import ConsolidationEngine
from cvblueprint.core.matcher import SemanticMatcher, build_matcher
from cvblueprint.db.repositories import BlueprintRepository, hash_text, source_id_for
from cvblueprint.types import ConsolidationResult, ExtractedCVInfo


def build_engine(
    session: Session,
    *,
    settings: Settings | None = None,
    matcher: SemanticMatcher | None = None,
) -> ConsolidationEngine:
    settings = settings or get_settings()
    return ConsolidationEngine(
        BlueprintRepository(session),
        matcher or build_matcher(settings),
        settings=settings,
    )


def resolve_source_id(extracted: ExtractedCVInfo, *, source_id: str | None = None, raw_text: str | None = None) -> str:
    if source_id and source_id.strip():
        return source_id.strip()
    if raw_text and raw_text.strip():
        return source_id_for(raw_text)
    return hash_text(json.dumps(extracted.model_dump(mode="json"), sort_keys=True))


def ingest_source(
    session: Session,
    user_id: str,
    extracted: ExtractedCVInfo,
    *,
    source_id: str | None = None,
    raw_text: str | None = None,
    settings: Settings | None = None,
    matcher: SemanticMatcher | None = None,
    cancel_event: threading.Event | None = None,
) -> tuple[str, ConsolidationResult]:
    """Merge one extracted document and register it as a known source.

    An applied merge registers the document in the same transaction. A source
    that was already merged is registered here if it is still missing.
    """
    resolved = resolve_source_id(extracted, source_id=source_id, raw_text=raw_text)
    engine = build_engine(session, settings=settings, matcher=matcher)
    result = engine.add_source(user_id, resolved, extracted, cancel_event=cancel_event)
    if not result.applied:
        BlueprintRepository(session).record_source_document(user_id, resolved, extracted)
    return resolved, result
