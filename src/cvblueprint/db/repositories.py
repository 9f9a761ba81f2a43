from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from cvblueprint.core.errors import CollaboratorUnavailable, SetupIncomplete
from cvblueprint.db.base import utcnow
from cvblueprint.db.models import BlueprintChange, CVBlueprint, SourceDocument
from cvblueprint.types import AuditRecord, Blueprint, BlueprintProfile, ExtractedCVInfo

logger = logging.getLogger(__name__)

_MISSING_SCHEMA_MARKERS = ("no such table", "does not exist", "undefined table")
SETUP_HINT = "Database setup incomplete. Run `cvblueprint init` or `alembic upgrade head` to create the blueprint tables."


def hash_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def source_id_for(raw_text: str) -> str:
    """Content-derived id of a processed document."""
    return hash_text(raw_text.strip())


class BlueprintRepository:
    """Per-user blueprint storage with optimistic (version) concurrency."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: str) -> Blueprint | None:
        with self._translate_errors():
            row = self._get_row(user_id)
        return _to_blueprint(row) if row else None

    def get_or_create(self, user_id: str) -> Blueprint:
        with self._translate_errors():
            row = self._get_row(user_id)
            if row is None:
                row = CVBlueprint(
                    user_id=user_id,
                    profile_data=BlueprintProfile().model_dump(mode="json"),
                    source_ids_json=[],
                    blueprint_version=1,
                )
                self.session.add(row)
                try:
                    self.session.commit()
                except IntegrityError:
                    # another request created it first
                    self.session.rollback()
                    row = self._get_row(user_id)
                    if row is None:
                        raise
                else:
                    logger.info("Created blueprint user_id=%s", user_id)
            self.session.refresh(row)
            return _to_blueprint(row)

    def compare_and_swap(
        self,
        user_id: str,
        expected_version: int,
        blueprint: Blueprint,
        audit: AuditRecord | None = None,
        *,
        source_id: str | None = None,
        extracted: ExtractedCVInfo | None = None,
    ) -> bool:
        """Write ``blueprint`` only if the stored version is still ``expected_version``.

        The audit record, when given, commits in the same transaction.
        So does registration of ``extracted`` as source document ``source_id``.
        """
        statement = (
            update(CVBlueprint)
            .where(
                CVBlueprint.user_id == user_id,
                CVBlueprint.blueprint_version == expected_version,
            )
            .values(
                profile_data=blueprint.profile.model_dump(mode="json"),
                source_ids_json=list(blueprint.source_ids),
                blueprint_version=blueprint.version,
                total_sources_processed=blueprint.total_sources_processed,
                confidence_score=blueprint.confidence_score,
                data_completeness=blueprint.completeness_score,
                last_source_processed_at=blueprint.last_source_processed_at,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        with self._translate_errors():
            result = self.session.execute(statement)
            if result.rowcount != 1:
                self.session.rollback()
                logger.debug(
                    "Blueprint version conflict user_id=%s expected_version=%s",
                    user_id,
                    expected_version,
                )
                return False

            if audit is not None:
                self._add_audit(audit)
            if source_id and extracted is not None and self._get_source_row(user_id, source_id) is None:
                self.session.add(_source_row(user_id, source_id, extracted))
            self.session.commit()
        return True

    def append_audit(self, record: AuditRecord) -> AuditRecord:
        with self._translate_errors():
            row = self._add_audit(record)
            self.session.commit()
            self.session.refresh(row)
        return _to_audit(row)

    def list_changes(self, user_id: str, limit: int = 50) -> list[AuditRecord]:
        statement = (
            select(BlueprintChange)
            .where(BlueprintChange.user_id == user_id)
            .order_by(BlueprintChange.id.desc())
            .limit(limit)
        )
        with self._translate_errors():
            rows = list(self.session.scalars(statement).all())
        return [_to_audit(row) for row in rows]

    def record_source_document(self, user_id: str, source_id: str, extracted: ExtractedCVInfo) -> SourceDocument:
        """Register a processed source. Existing rows are returned untouched."""
        with self._translate_errors():
            existing = self._get_source_row(user_id, source_id)
            if existing:
                return existing

            row = _source_row(user_id, source_id, extracted)
            self.session.add(row)
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                existing = self._get_source_row(user_id, source_id)
                if existing is None:
                    raise
                return existing
            self.session.refresh(row)
            return row

    def list_source_documents(self, user_id: str) -> list[SourceDocument]:
        statement = (
            select(SourceDocument)
            .where(SourceDocument.user_id == user_id)
            .order_by(SourceDocument.id.asc())
        )
        with self._translate_errors():
            return list(self.session.scalars(statement).all())

    def _get_row(self, user_id: str) -> CVBlueprint | None:
        statement = (
            select(CVBlueprint)
            .where(CVBlueprint.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return self.session.scalar(statement)

    def _get_source_row(self, user_id: str, source_id: str) -> SourceDocument | None:
        return self.session.scalar(
            select(SourceDocument).where(
                SourceDocument.user_id == user_id,
                SourceDocument.source_id == source_id,
            )
        )

    def _add_audit(self, record: AuditRecord) -> BlueprintChange:
        blueprint_row = self._get_row(record.user_id)
        if blueprint_row is None:
            raise ValueError(f"blueprint for user {record.user_id} not found")

        row = BlueprintChange(
            blueprint_id=blueprint_row.id,
            user_id=record.user_id,
            change_type=record.change_type,
            source_id=record.source_id,
            previous_data=record.previous_profile,
            new_data=record.new_profile,
            changes_summary=record.summary_text,
            confidence_impact=record.confidence_impact,
        )
        self.session.add(row)
        return row

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except (OperationalError, ProgrammingError) as exc:
            self.session.rollback()
            message = str(exc.orig if exc.orig is not None else exc).lower()
            if any(marker in message for marker in _MISSING_SCHEMA_MARKERS):
                raise SetupIncomplete(SETUP_HINT) from exc
            raise CollaboratorUnavailable("persistence gateway", str(exc.orig or exc)) from exc


def _to_blueprint(row: CVBlueprint) -> Blueprint:
    return Blueprint(
        user_id=row.user_id,
        profile=BlueprintProfile.model_validate(row.profile_data or {}),
        version=row.blueprint_version,
        total_sources_processed=row.total_sources_processed,
        source_ids=list(row.source_ids_json or []),
        confidence_score=row.confidence_score,
        completeness_score=row.data_completeness,
        last_source_processed_at=row.last_source_processed_at,
    )


def _source_row(user_id: str, source_id: str, extracted: ExtractedCVInfo) -> SourceDocument:
    return SourceDocument(
        user_id=user_id,
        source_id=source_id,
        extracted_info_json=extracted.model_dump(mode="json"),
    )


def _to_audit(row: BlueprintChange) -> AuditRecord:
    return AuditRecord(
        user_id=row.user_id,
        change_type=row.change_type,
        source_id=row.source_id,
        previous_profile=row.previous_data,
        new_profile=row.new_data,
        summary_text=row.changes_summary,
        confidence_impact=row.confidence_impact,
        created_at=row.created_at,
    )
