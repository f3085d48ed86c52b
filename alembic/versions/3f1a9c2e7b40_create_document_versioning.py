"""create_document_versioning

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "3f1a9c2e7b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "document_versions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=False),
        sa.Column("analysis", postgresql.JSONB(), nullable=True),
        sa.Column("parent_version_id", sa.Uuid(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_id", "version_number", name="uq_doc_version_doc_num"),
    )
    op.create_index("ix_document_versions_document_id", "document_versions", ["document_id"])
    op.create_index("ix_document_versions_uploaded_at", "document_versions", ["uploaded_at"])
    op.create_index("ix_document_versions_parent_version_id", "document_versions", ["parent_version_id"])

    op.create_table(
        "document_version_counters",
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("last_version_number", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("document_id"),
    )

    op.create_table(
        "document_comparisons",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("original_version_id", sa.Uuid(), nullable=False),
        sa.Column("compared_version_id", sa.Uuid(), nullable=False),
        sa.Column("original_document_id", sa.Uuid(), nullable=False),
        sa.Column("compared_document_id", sa.Uuid(), nullable=False),
        sa.Column("compared_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("changes", postgresql.JSONB(), nullable=False),
        sa.Column("impact_analysis", postgresql.JSONB(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("original_version_id", "compared_version_id", name="uq_doc_comparison_pair"),
    )
    op.create_index("ix_doc_comparison_compared", "document_comparisons", ["compared_version_id"])
    op.create_index("ix_document_comparisons_original_document_id", "document_comparisons", ["original_document_id"])
    op.create_index("ix_document_comparisons_compared_document_id", "document_comparisons", ["compared_document_id"])
    op.create_index("ix_document_comparisons_compared_at", "document_comparisons", ["compared_at"])


def downgrade() -> None:
    op.drop_index("ix_document_comparisons_compared_at", table_name="document_comparisons")
    op.drop_index("ix_document_comparisons_compared_document_id", table_name="document_comparisons")
    op.drop_index("ix_document_comparisons_original_document_id", table_name="document_comparisons")
    op.drop_index("ix_doc_comparison_compared", table_name="document_comparisons")
    op.drop_table("document_comparisons")
    op.drop_table("document_version_counters")
    op.drop_index("ix_document_versions_parent_version_id", table_name="document_versions")
    op.drop_index("ix_document_versions_uploaded_at", table_name="document_versions")
    op.drop_index("ix_document_versions_document_id", table_name="document_versions")
    op.drop_table("document_versions")
