"""Blueprint, change log and source document tables

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "cv_blueprints",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False, unique=True),
        sa.Column("profile_data", sa.JSON(), nullable=False),
        sa.Column("source_ids_json", sa.JSON(), nullable=False),
        sa.Column("blueprint_version", sa.Integer(), nullable=False),
        sa.Column("total_sources_processed", sa.Integer(), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=False),
        sa.Column("data_completeness", sa.Float(), nullable=False),
        sa.Column("last_source_processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "cv_blueprint_changes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "blueprint_id",
            sa.Integer(),
            sa.ForeignKey("cv_blueprints.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("change_type", sa.String(length=40), nullable=False),
        sa.Column("source_id", sa.String(length=128), nullable=False),
        sa.Column("previous_data", sa.JSON(), nullable=False),
        sa.Column("new_data", sa.JSON(), nullable=False),
        sa.Column("changes_summary", sa.Text(), nullable=False),
        sa.Column("confidence_impact", sa.Float(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_cv_blueprint_changes_blueprint_id", "cv_blueprint_changes", ["blueprint_id"])
    op.create_index("ix_cv_blueprint_changes_user_id", "cv_blueprint_changes", ["user_id"])
    op.create_table(
        "source_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("source_id", sa.String(length=128), nullable=False),
        sa.Column("extracted_info_json", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "source_id", name="uq_source_documents_user_source"),
    )
    op.create_index("ix_source_documents_user_id", "source_documents", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_source_documents_user_id", table_name="source_documents")
    op.drop_table("source_documents")
    op.drop_index("ix_cv_blueprint_changes_user_id", table_name="cv_blueprint_changes")
    op.drop_index("ix_cv_blueprint_changes_blueprint_id", table_name="cv_blueprint_changes")
    op.drop_table("cv_blueprint_changes")
    op.drop_table("cv_blueprints")
