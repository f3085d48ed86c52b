"""Version store — persistence for versions, counters and cached comparisons.

Version numbers come from a per-document counter row that is read, bumped and
written under an in-process lock for that document plus ``SELECT … FOR
UPDATE``, so concurrent uploads of one document never collide and a number is
never handed out twice, even after the versions holding it were swept.
"""

from __future__ import annotations

import threading
import uuid
import weakref
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from redline.core.config import settings
from redline.core.database import session_scope
from redline.core.errors import VersionNotFoundError, VersionValidationError
from redline.models.doc_versions import (
    DocumentComparison,
    DocumentVersion,
    DocumentVersionCounter,
)
from redline.modules.doc_versions.schemas import (
    DocumentChange,
    DocumentComparisonSchema,
    DocumentVersionSchema,
    ImpactAnalysis,
    VersionAnalysis,
    VersionMetadata,
)

logger = structlog.get_logger()

_MAX_NUMBERING_ATTEMPTS = 3


def _version_to_schema(row: DocumentVersion) -> DocumentVersionSchema:
    return DocumentVersionSchema(
        id=row.id,
        document_id=row.document_id,
        version_number=row.version_number,
        filename=row.filename,
        uploaded_at=row.uploaded_at,
        metadata=VersionMetadata.model_validate(row.version_metadata),
        analysis=(
            VersionAnalysis.model_validate(row.analysis) if row.analysis is not None else None
        ),
        parent_version_id=row.parent_version_id,
    )


def _comparison_to_schema(row: DocumentComparison) -> DocumentComparisonSchema:
    return DocumentComparisonSchema(
        id=row.id,
        original_version_id=row.original_version_id,
        compared_version_id=row.compared_version_id,
        compared_at=row.compared_at,
        changes=[DocumentChange.model_validate(c) for c in row.changes],
        impact_analysis=ImpactAnalysis.model_validate(row.impact_analysis),
    )


class VersionStore:
    """Repository for document versions and their cached comparisons."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory
        self._locks: weakref.WeakValueDictionary[uuid.UUID, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    def _session(self):
        return session_scope(self._session_factory)

    def _document_lock(self, document_id: uuid.UUID) -> threading.Lock:
        # Caller keeps a strong reference while holding it; idle locks are collected
        with self._locks_guard:
            lock = self._locks.get(document_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[document_id] = lock
            return lock

    # ── Versions ─────────────────────────────────────────────────────────────

    def create_version(
        self,
        document_id: uuid.UUID,
        filename: str,
        metadata: VersionMetadata | dict[str, Any],
        analysis: VersionAnalysis | dict[str, Any] | None = None,
        parent_version_id: uuid.UUID | None = None,
    ) -> DocumentVersionSchema:
        """Persist a new version with the next number for ``document_id``."""
        meta = VersionMetadata.model_validate(metadata)
        analysis_model = VersionAnalysis.model_validate(analysis) if analysis is not None else None

        lock = self._document_lock(document_id)
        with lock:
            for attempt in range(1, _MAX_NUMBERING_ATTEMPTS + 1):
                try:
                    with self._session() as session:
                        if parent_version_id is not None:
                            self._check_parent(session, document_id, parent_version_id)
                        number = self._reserve_version_number(session, document_id)
                        row = DocumentVersion(
                            document_id=document_id,
                            version_number=number,
                            filename=filename,
                            uploaded_at=datetime.now(timezone.utc),
                            version_metadata=meta.model_dump(mode="json"),
                            analysis=(
                                analysis_model.model_dump(mode="json")
                                if analysis_model is not None
                                else None
                            ),
                            parent_version_id=parent_version_id,
                        )
                        session.add(row)
                        session.flush()
                        version = _version_to_schema(row)
                    break
                except IntegrityError:
                    # Another process numbered this document between our read and write
                    if attempt == _MAX_NUMBERING_ATTEMPTS:
                        raise
                    logger.warning(
                        "doc_version.numbering_conflict",
                        document_id=str(document_id),
                        attempt=attempt,
                    )

        logger.info(
            "doc_version.created",
            document_id=str(document_id),
            version_id=str(version.id),
            version_number=version.version_number,
            parent_version_id=str(parent_version_id) if parent_version_id else None,
        )
        return version

    @staticmethod
    def _check_parent(
        session: Session, document_id: uuid.UUID, parent_version_id: uuid.UUID
    ) -> None:
        parent = session.get(DocumentVersion, parent_version_id)
        if parent is None:
            raise VersionNotFoundError(parent_version_id)
        if parent.document_id != document_id:
            raise VersionValidationError(
                f"Parent version {parent_version_id} belongs to document "
                f"{parent.document_id}, not {document_id}"
            )

    @staticmethod
    def _highest_existing_number(session: Session, document_id: uuid.UUID) -> int:
        result = session.execute(
            select(func.max(DocumentVersion.version_number)).where(
                DocumentVersion.document_id == document_id
            )
        )
        return result.scalar() or 0

    def _reserve_version_number(self, session: Session, document_id: uuid.UUID) -> int:
        counter = session.execute(
            select(DocumentVersionCounter)
            .where(DocumentVersionCounter.document_id == document_id)
            .with_for_update()
        ).scalar_one_or_none()
        if counter is None:
            counter = DocumentVersionCounter(
                document_id=document_id,
                last_version_number=self._highest_existing_number(session, document_id),
            )
            session.add(counter)
        counter.last_version_number += 1
        session.flush()
        return counter.last_version_number

    def get_next_version_number(self, document_id: uuid.UUID) -> int:
        with self._session() as session:
            last = session.execute(
                select(DocumentVersionCounter.last_version_number).where(
                    DocumentVersionCounter.document_id == document_id
                )
            ).scalar_one_or_none()
            if last is None:
                last = self._highest_existing_number(session, document_id)
            return last + 1

    def get_version_by_id(self, version_id: uuid.UUID) -> DocumentVersionSchema | None:
        with self._session() as session:
            row = session.get(DocumentVersion, version_id)
            return _version_to_schema(row) if row is not None else None

    def get_versions_by_document_id(self, document_id: uuid.UUID) -> list[DocumentVersionSchema]:
        with self._session() as session:
            result = session.execute(
                select(DocumentVersion)
                .where(DocumentVersion.document_id == document_id)
                .order_by(DocumentVersion.version_number.asc())
            )
            return [_version_to_schema(row) for row in result.scalars().all()]

    def get_versions_page(
        self, document_id: uuid.UUID, limit: int, offset: int
    ) -> list[DocumentVersionSchema]:
        """Newest-first page of a document's versions."""
        with self._session() as session:
            result = session.execute(
                select(DocumentVersion)
                .where(DocumentVersion.document_id == document_id)
                .order_by(DocumentVersion.version_number.desc())
                .limit(limit)
                .offset(offset)
            )
            return [_version_to_schema(row) for row in result.scalars().all()]

    def count_versions(self, document_id: uuid.UUID) -> int:
        with self._session() as session:
            result = session.execute(
                select(func.count())
                .select_from(DocumentVersion)
                .where(DocumentVersion.document_id == document_id)
            )
            return result.scalar() or 0

    def get_latest_version(self, document_id: uuid.UUID) -> DocumentVersionSchema | None:
        with self._session() as session:
            row = session.execute(
                select(DocumentVersion)
                .where(DocumentVersion.document_id == document_id)
                .order_by(DocumentVersion.version_number.desc())
                .limit(1)
            ).scalar_one_or_none()
            return _version_to_schema(row) if row is not None else None

    def delete_versions_older_than(
        self, cutoff: datetime, batch_size: int | None = None
    ) -> int:
        return self._delete_in_batches(
            DocumentVersion, DocumentVersion.uploaded_at, cutoff, batch_size
        )

    # ── Comparisons ──────────────────────────────────────────────────────────

    def save_comparison(
        self,
        comparison: DocumentComparisonSchema,
        original_document_id: uuid.UUID,
        compared_document_id: uuid.UUID,
    ) -> None:
        """Insert a comparison. Raises ``IntegrityError`` if the pair already exists."""
        with self._session() as session:
            session.add(
                DocumentComparison(
                    id=comparison.id,
                    original_version_id=comparison.original_version_id,
                    compared_version_id=comparison.compared_version_id,
                    original_document_id=original_document_id,
                    compared_document_id=compared_document_id,
                    compared_at=comparison.compared_at,
                    changes=[c.model_dump(mode="json") for c in comparison.changes],
                    impact_analysis=comparison.impact_analysis.model_dump(mode="json"),
                )
            )

    def get_comparison(
        self, original_version_id: uuid.UUID, compared_version_id: uuid.UUID
    ) -> DocumentComparisonSchema | None:
        with self._session() as session:
            row = session.execute(
                select(DocumentComparison)
                .where(
                    DocumentComparison.original_version_id == original_version_id,
                    DocumentComparison.compared_version_id == compared_version_id,
                )
                .order_by(DocumentComparison.compared_at.asc())
                .limit(1)
            ).scalar_one_or_none()
            return _comparison_to_schema(row) if row is not None else None

    def get_comparison_by_id(self, comparison_id: uuid.UUID) -> DocumentComparisonSchema | None:
        with self._session() as session:
            row = session.get(DocumentComparison, comparison_id)
            return _comparison_to_schema(row) if row is not None else None

    def get_comparisons_by_document_id(
        self, document_id: uuid.UUID
    ) -> list[DocumentComparisonSchema]:
        """Every comparison touching ``document_id`` on either side, newest first."""
        with self._session() as session:
            result = session.execute(
                select(DocumentComparison)
                .where(
                    or_(
                        DocumentComparison.original_document_id == document_id,
                        DocumentComparison.compared_document_id == document_id,
                    )
                )
                .order_by(DocumentComparison.compared_at.desc())
            )
            return [_comparison_to_schema(row) for row in result.scalars().all()]

    def delete_comparisons_older_than(
        self, cutoff: datetime, batch_size: int | None = None
    ) -> int:
        return self._delete_in_batches(
            DocumentComparison, DocumentComparison.compared_at, cutoff, batch_size
        )

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _delete_in_batches(
        self,
        model: type[DocumentVersion] | type[DocumentComparison],
        timestamp_column: Any,
        cutoff: datetime,
        batch_size: int | None,
    ) -> int:
        """Hard-delete rows older than ``cutoff``, committing each batch."""
        batch = batch_size or settings.RETENTION_BATCH_SIZE
        total = 0
        while True:
            with self._session() as session:
                ids = list(
                    session.execute(
                        select(model.id).where(timestamp_column < cutoff).limit(batch)
                    ).scalars()
                )
                if not ids:
                    break
                session.execute(delete(model).where(model.id.in_(ids)))
            total += len(ids)
            if len(ids) < batch:
                break
        return total
