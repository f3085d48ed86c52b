"""Celery task: warm the comparison cache after a new upload.

Callers enqueue ``compare_document_versions`` with the previous and new
version ids so the first history or statistics request finds the diff ready.
"""

from __future__ import annotations

import uuid

import structlog
from celery import shared_task
from sqlalchemy.exc import SQLAlchemyError

from redline.core.errors import ComparisonCancelledError, VersionNotFoundError

logger = structlog.get_logger()


@shared_task(name="compare_document_versions", bind=True, max_retries=2)  # type: ignore[misc]
def compare_document_versions(
    self, original_version_id: str, compared_version_id: str
) -> dict:  # type: ignore[misc]
    """Compute (or fetch) the comparison for one ordered version pair."""
    from redline.modules.doc_versions.service import get_versioning_service

    try:
        comparison = get_versioning_service().compare_versions(
            uuid.UUID(original_version_id), uuid.UUID(compared_version_id)
        )
    except VersionNotFoundError as exc:
        # Swept or never existed; nothing to warm
        logger.warning(
            "doc_comparison.task_skipped",
            original_version_id=original_version_id,
            compared_version_id=compared_version_id,
            reason=str(exc),
        )
        return {"status": "not_found", "missing": [str(v) for v in exc.version_ids]}
    except ComparisonCancelledError as exc:
        logger.warning(
            "doc_comparison.task_timed_out",
            original_version_id=original_version_id,
            compared_version_id=compared_version_id,
            reason=str(exc),
        )
        return {"status": "timed_out"}
    except SQLAlchemyError as exc:
        logger.error(
            "doc_comparison.task_error",
            original_version_id=original_version_id,
            compared_version_id=compared_version_id,
            error=str(exc),
        )
        raise self.retry(exc=exc, countdown=30)

    return {
        "status": "ok",
        "comparison_id": str(comparison.id),
        "changes": len(comparison.changes),
    }
