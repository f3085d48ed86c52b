"""Version retention — nightly sweep of old versions and cached comparisons.

Runs at ``RETENTION_SWEEP_HOUR_UTC`` (04:00 UTC by default). Rows older than
``VERSION_RETENTION_DAYS`` are hard-deleted in ``RETENTION_BATCH_SIZE`` batches,
each committed on its own so uploads are never blocked behind the sweep.
"""

from __future__ import annotations

import structlog
from celery import shared_task
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()


@shared_task(name="cleanup_old_document_versions", bind=True, max_retries=1)  # type: ignore[misc]
def cleanup_old_document_versions(self, retention_days: int | None = None) -> dict:  # type: ignore[misc]
    """Delete versions and comparisons past the retention window."""
    from redline.modules.doc_versions.service import get_versioning_service

    try:
        result = get_versioning_service().cleanup_old_versions(retention_days)
    except SQLAlchemyError as exc:
        logger.error("retention_error", table="document_versions", error=str(exc))
        raise self.retry(exc=exc, countdown=300)

    return result.model_dump(mode="json")
