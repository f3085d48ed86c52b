"""Retention sweep for versions and cached comparisons.

Rows are hard-deleted in ``RETENTION_BATCH_SIZE`` batches, each in its own
transaction, so a sweep never holds a lock long enough to stall uploads.
Version counters are left alone; numbers stay monotonic after a sweep.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog

from redline.core.config import settings
from redline.core.errors import VersionValidationError
from redline.modules.doc_versions.schemas import CleanupResult
from redline.modules.doc_versions.store import VersionStore

logger = structlog.get_logger()


class RetentionSweeper:
    def __init__(self, store: VersionStore, batch_size: int | None = None) -> None:
        self._store = store
        self._batch_size = batch_size or settings.RETENTION_BATCH_SIZE

    def cleanup_old_versions(self, retention_days: int | None = None) -> CleanupResult:
        days = settings.VERSION_RETENTION_DAYS if retention_days is None else retention_days
        if days < 0:
            raise VersionValidationError(f"retention_days must be >= 0, got {days}")

        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        deleted_versions = self._store.delete_versions_older_than(cutoff, self._batch_size)
        deleted_comparisons = self._store.delete_comparisons_older_than(cutoff, self._batch_size)

        logger.info(
            "retention_cleanup",
            table="document_versions",
            retention_days=days,
            cutoff=cutoff.isoformat(),
            deleted_versions=deleted_versions,
            deleted_comparisons=deleted_comparisons,
        )
        return CleanupResult(
            deleted_versions=deleted_versions,
            deleted_comparisons=deleted_comparisons,
            cutoff_date=cutoff,
        )
