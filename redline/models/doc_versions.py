"""Document version lineage models — append-only versions, cached comparisons."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from redline.core.database import Base
from redline.models.base import JSONType, ModelMixin, TimestampedModel


class DocumentVersion(TimestampedModel):
    """Immutable snapshot of a document's extracted text and metadata.

    Rows are never updated; they disappear only through the retention sweep.
    ``parent_version_id`` is a weak reference (no FK) so a swept parent leaves
    its children readable.
    """

    __tablename__ = "document_versions"

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    # {page_count, word_count, language, extracted_text}
    # "metadata" is reserved on declarative classes, hence the attribute name
    version_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, nullable=False
    )
    # Opaque analysis payload; only risk_score is read here
    analysis: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    parent_version_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), nullable=True, index=True
    )

    __table_args__ = (
        UniqueConstraint("document_id", "version_number", name="uq_doc_version_doc_num"),
    )

    def __repr__(self) -> str:
        return (
            f"<DocumentVersion(id={self.id}, document_id={self.document_id}, "
            f"v={self.version_number})>"
        )


class DocumentVersionCounter(Base, ModelMixin):
    """Highest version number ever assigned per document.

    Survives retention sweeps so numbers are never reused.
    """

    __tablename__ = "document_version_counters"

    document_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    last_version_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<DocumentVersionCounter(document_id={self.document_id}, "
            f"last={self.last_version_number})>"
        )


class DocumentComparison(TimestampedModel):
    """Cached diff + impact analysis for one ordered pair of versions.

    Written once per ordered pair and never recomputed, even if either
    version's analysis changes later.
    """

    __tablename__ = "document_comparisons"

    original_version_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    compared_version_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    # Denormalised owners so per-document listing survives version deletion
    original_document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True
    )
    compared_document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True
    )
    compared_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    changes: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False)
    # {overall_impact, risk_score_change, significant_changes, summary}
    impact_analysis: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "original_version_id", "compared_version_id", name="uq_doc_comparison_pair"
        ),
        Index("ix_doc_comparison_compared", "compared_version_id"),
    )
