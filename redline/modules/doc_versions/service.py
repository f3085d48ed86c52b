"""Document Version Control service — the operations exposed to callers.

``DocumentVersioningService`` wires the store, comparison cache, statistics
aggregator and retention sweeper together. Build one per process and share
it: the per-document and per-pair locks live on these objects.
"""

from __future__ import annotations

import uuid
from functools import lru_cache
from typing import Any

import structlog
from sqlalchemy.orm import Session, sessionmaker

from redline.core.errors import (
    ComparisonNotFoundError,
    VersionNotFoundError,
    VersionValidationError,
)
from redline.modules.doc_versions.comparison import ComparisonCache
from redline.modules.doc_versions.diff_engine import AbortCheck
from redline.modules.doc_versions.retention import RetentionSweeper
from redline.modules.doc_versions.schemas import (
    CleanupResult,
    DocumentComparisonSchema,
    DocumentVersionHistory,
    DocumentVersionSchema,
    VersionAnalysis,
    VersionDifference,
    VersionHistoryQuery,
    VersionMetadata,
    VersionStatistics,
)
from redline.modules.doc_versions.statistics import StatisticsAggregator
from redline.modules.doc_versions.store import VersionStore

logger = structlog.get_logger()


class DocumentVersioningService:
    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        *,
        store: VersionStore | None = None,
        retention_batch_size: int | None = None,
    ) -> None:
        self.store = store or VersionStore(session_factory)
        self.comparisons = ComparisonCache(self.store)
        self.statistics = StatisticsAggregator(self.store, self.comparisons)
        self.retention = RetentionSweeper(self.store, batch_size=retention_batch_size)

    # ── Versions ─────────────────────────────────────────────────────────────

    def create_version(
        self,
        document_id: uuid.UUID,
        filename: str,
        metadata: VersionMetadata | dict[str, Any],
        analysis: VersionAnalysis | dict[str, Any] | None = None,
        parent_version_id: uuid.UUID | None = None,
    ) -> DocumentVersionSchema:
        return self.store.create_version(
            document_id,
            filename,
            metadata,
            analysis=analysis,
            parent_version_id=parent_version_id,
        )

    def get_version(self, version_id: uuid.UUID) -> DocumentVersionSchema:
        version = self.store.get_version_by_id(version_id)
        if version is None:
            raise VersionNotFoundError(version_id)
        return version

    def get_latest_version(self, document_id: uuid.UUID) -> DocumentVersionSchema | None:
        return self.store.get_latest_version(document_id)

    def get_version_history(
        self,
        document_id: uuid.UUID,
        query: VersionHistoryQuery | dict[str, Any] | None = None,
    ) -> DocumentVersionHistory:
        return self.statistics.get_version_history(document_id, query)

    def rollback_to_version(
        self,
        document_id: uuid.UUID,
        target_version_id: uuid.UUID,
        filename: str,
        reason: str | None = None,
    ) -> DocumentVersionSchema:
        """Create a new version whose content is a copy of ``target_version_id``.

        The target must belong to ``document_id``. Metadata and analysis are
        copied and the new version's parent is the target.
        """
        target = self.store.get_version_by_id(target_version_id)
        if target is None:
            raise VersionNotFoundError(target_version_id)
        if target.document_id != document_id:
            raise VersionValidationError(
                f"Version {target_version_id} does not belong to document {document_id}"
            )

        version = self.store.create_version(
            document_id,
            filename,
            target.metadata,
            analysis=target.analysis,
            parent_version_id=target.id,
        )
        logger.info(
            "doc_version.rolled_back",
            document_id=str(document_id),
            target_version_id=str(target_version_id),
            target_version_number=target.version_number,
            new_version_number=version.version_number,
            reason=reason,
        )
        return version

    # ── Comparisons ──────────────────────────────────────────────────────────

    def compare_versions(
        self,
        original_version_id: uuid.UUID,
        compared_version_id: uuid.UUID,
        *,
        should_abort: AbortCheck | None = None,
        timeout: float | None = None,
    ) -> DocumentComparisonSchema:
        return self.comparisons.compare(
            original_version_id,
            compared_version_id,
            should_abort=should_abort,
            timeout=timeout,
        )

    def get_comparison(self, comparison_id: uuid.UUID) -> DocumentComparisonSchema:
        comparison = self.store.get_comparison_by_id(comparison_id)
        if comparison is None:
            raise ComparisonNotFoundError(comparison_id)
        return comparison

    def get_version_differences(self, document_id: uuid.UUID) -> list[VersionDifference]:
        return self.statistics.get_version_differences(document_id)

    def get_version_statistics(self, document_id: uuid.UUID) -> VersionStatistics:
        return self.statistics.get_version_statistics(document_id)

    # ── Retention ────────────────────────────────────────────────────────────

    def cleanup_old_versions(self, retention_days: int | None = None) -> CleanupResult:
        return self.retention.cleanup_old_versions(retention_days)


@lru_cache(maxsize=1)
def get_versioning_service() -> DocumentVersioningService:
    """One service per worker process so its locks are shared by every task."""
    return DocumentVersioningService()
