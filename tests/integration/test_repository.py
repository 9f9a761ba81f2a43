from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from cvblueprint.core.errors import SetupIncomplete
from cvblueprint.db.base import Base
from cvblueprint.db.repositories import BlueprintRepository, source_id_for
from cvblueprint.db.session import SessionLocal, engine
from cvblueprint.types import AuditRecord, ExtractedCVInfo, PersonalInfo


def test_get_or_create_starts_at_version_one(db: Session) -> None:
    repo = BlueprintRepository(db)

    assert repo.get("user-1") is None
    blueprint = repo.get_or_create("user-1")

    assert blueprint.version == 1
    assert blueprint.total_sources_processed == 0
    assert blueprint.source_ids == []
    assert repo.get_or_create("user-1").version == 1


def test_compare_and_swap_writes_blueprint_and_audit_together(db: Session) -> None:
    repo = BlueprintRepository(db)
    current = repo.get_or_create("user-1")
    profile = current.profile.model_copy(update={"personal": PersonalInfo(name="Ada")})
    updated = current.model_copy(update={"profile": profile, "version": 2, "source_ids": ["h1"]})
    audit = AuditRecord(user_id="user-1", change_type="source_added", source_id="h1", summary_text="Processed CV")

    assert repo.compare_and_swap("user-1", 1, updated, audit) is True

    stored = repo.get("user-1")
    assert stored.version == 2
    assert stored.profile.personal.name == "Ada"
    assert stored.source_ids == ["h1"]
    changes = repo.list_changes("user-1")
    assert [change.source_id for change in changes] == ["h1"]
    assert changes[0].created_at is not None


def test_compare_and_swap_rejects_stale_version(db: Session) -> None:
    repo = BlueprintRepository(db)
    current = repo.get_or_create("user-1")
    assert repo.compare_and_swap("user-1", 1, current.model_copy(update={"version": 2}))

    stale = current.model_copy(update={"version": 2, "source_ids": ["late"]})
    audit = AuditRecord(user_id="user-1", change_type="source_added", source_id="late")

    assert repo.compare_and_swap("user-1", 1, stale, audit) is False
    assert repo.get("user-1").source_ids == []
    assert repo.list_changes("user-1") == []


def test_compare_and_swap_registers_source_document_only_on_success(db: Session) -> None:
    repo = BlueprintRepository(db)
    current = repo.get_or_create("user-1")
    extracted = ExtractedCVInfo(name="Ada")

    assert not repo.compare_and_swap("user-1", 7, current, source_id="h1", extracted=extracted)
    assert repo.list_source_documents("user-1") == []

    updated = current.model_copy(update={"version": 2, "source_ids": ["h1"]})
    assert repo.compare_and_swap("user-1", 1, updated, source_id="h1", extracted=extracted)
    rows = repo.list_source_documents("user-1")
    assert [row.source_id for row in rows] == ["h1"]
    assert rows[0].extracted_info_json["name"] == "Ada"


def test_concurrent_sessions_see_version_conflict() -> None:
    with SessionLocal() as first, SessionLocal() as second:
        left = BlueprintRepository(first)
        right = BlueprintRepository(second)
        seen_left = left.get_or_create("user-1")
        seen_right = right.get_or_create("user-1")

        assert left.compare_and_swap("user-1", seen_left.version, seen_left.model_copy(update={"version": 2}))
        assert not right.compare_and_swap("user-1", seen_right.version, seen_right.model_copy(update={"version": 2}))
        assert right.get("user-1").version == 2


def test_append_audit_is_listed_newest_first(db: Session) -> None:
    repo = BlueprintRepository(db)
    repo.get_or_create("user-1")

    repo.append_audit(AuditRecord(user_id="user-1", change_type="source_added", source_id="h1"))
    stored = repo.append_audit(
        AuditRecord(user_id="user-1", change_type="source_removed", source_id="h1", confidence_impact=-0.1)
    )

    assert stored.created_at is not None
    assert [change.change_type for change in repo.list_changes("user-1")] == ["source_removed", "source_added"]
    assert repo.list_changes("someone-else") == []


def test_source_documents_are_registered_once(db: Session) -> None:
    repo = BlueprintRepository(db)
    extracted = ExtractedCVInfo(name="Ada")

    repo.record_source_document("user-1", "h1", extracted)
    repo.record_source_document("user-1", "h1", ExtractedCVInfo(name="Changed"))

    rows = repo.list_source_documents("user-1")
    assert [row.source_id for row in rows] == ["h1"]
    assert rows[0].extracted_info_json["name"] == "Ada"


def test_missing_tables_raise_setup_incomplete(db: Session) -> None:
    Base.metadata.drop_all(bind=engine)

    with pytest.raises(SetupIncomplete, match="Database setup incomplete"):
        BlueprintRepository(db).get_or_create("user-1")


def test_source_id_is_content_hash() -> None:
    assert source_id_for("  my cv  ") == source_id_for("my cv")
    assert len(source_id_for("my cv")) == 64
