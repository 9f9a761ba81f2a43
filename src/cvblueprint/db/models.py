from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cvblueprint.db.base import Base, TimestampMixin


class CVBlueprint(TimestampMixin, Base):
    __tablename__ = "cv_blueprints"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    profile_data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    source_ids_json: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    blueprint_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    total_sources_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    confidence_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    data_completeness: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    last_source_processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class BlueprintChange(TimestampMixin, Base):
    __tablename__ = "cv_blueprint_changes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    blueprint_id: Mapped[int] = mapped_column(
        ForeignKey("cv_blueprints.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    change_type: Mapped[str] = mapped_column(String(40), nullable=False)
    source_id: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    previous_data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    new_data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    changes_summary: Mapped[str] = mapped_column(Text, default="", nullable=False)
    confidence_impact: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)


class SourceDocument(TimestampMixin, Base):
    __tablename__ = "source_documents"
    __table_args__ = (UniqueConstraint("user_id", "source_id", name="uq_source_documents_user_source"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    source_id: Mapped[str] = mapped_column(String(128), nullable=False)
    extracted_info_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
