"""Comparison cache — compute-once diff + impact per ordered version pair."""

from __future__ import annotations

import threading
import time
import uuid
import weakref
from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import IntegrityError

from redline.core.config import settings
from redline.core.errors import ComparisonCancelledError, VersionNotFoundError
from redline.modules.doc_versions.diff_engine import AbortCheck, detect_changes
from redline.modules.doc_versions.impact import analyze_impact
from redline.modules.doc_versions.schemas import DocumentComparisonSchema, DocumentVersionSchema
from redline.modules.doc_versions.store import VersionStore

logger = structlog.get_logger()

_PairKey = tuple[uuid.UUID, uuid.UUID]


def compare_documents(
    original: DocumentVersionSchema,
    compared: DocumentVersionSchema,
    should_abort: AbortCheck | None = None,
) -> DocumentComparisonSchema:
    """Diff two versions and analyse the impact without touching storage."""
    changes = detect_changes(
        original.metadata.extracted_text,
        compared.metadata.extracted_text,
        should_abort=should_abort,
    )
    return DocumentComparisonSchema(
        id=uuid.uuid4(),
        original_version_id=original.id,
        compared_version_id=compared.id,
        compared_at=datetime.now(timezone.utc),
        changes=changes,
        impact_analysis=analyze_impact(changes, original.analysis, compared.analysis),
    )


def _with_deadline(should_abort: AbortCheck | None, timeout: float) -> AbortCheck | None:
    """Combine a caller's abort check with a monotonic deadline.

    A non-positive ``timeout`` disables the deadline.
    """
    if timeout <= 0:
        return should_abort
    deadline = time.monotonic() + timeout

    def check() -> bool:
        if should_abort is not None and should_abort():
            return True
        return time.monotonic() > deadline

    return check


class ComparisonCache:
    """Returns the stored comparison for an ordered pair, computing it at most once.

    Concurrent first requests for the same pair inside one process are
    collapsed behind a per-pair lock. Across processes the unique constraint
    on the pair decides the winner and the loser returns the winner's row.
    """

    def __init__(self, store: VersionStore) -> None:
        self._store = store
        self._locks: weakref.WeakValueDictionary[_PairKey, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    def _pair_lock(self, key: _PairKey) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def compare(
        self,
        original_version_id: uuid.UUID,
        compared_version_id: uuid.UUID,
        *,
        should_abort: AbortCheck | None = None,
        timeout: float | None = None,
    ) -> DocumentComparisonSchema:
        cached = self._store.get_comparison(original_version_id, compared_version_id)
        if cached is not None:
            logger.debug(
                "doc_comparison.cache_hit",
                comparison_id=str(cached.id),
                original_version_id=str(original_version_id),
                compared_version_id=str(compared_version_id),
            )
            return cached

        lock = self._pair_lock((original_version_id, compared_version_id))
        with lock:
            # Another thread may have finished while we waited
            cached = self._store.get_comparison(original_version_id, compared_version_id)
            if cached is not None:
                return cached

            original = self._store.get_version_by_id(original_version_id)
            compared = self._store.get_version_by_id(compared_version_id)
            missing = [
                vid
                for vid, version in (
                    (original_version_id, original),
                    (compared_version_id, compared),
                )
                if version is None
            ]
            if missing:
                raise VersionNotFoundError(*missing)

            budget = settings.COMPARISON_TIMEOUT_SECONDS if timeout is None else timeout
            started = time.monotonic()
            try:
                comparison = compare_documents(
                    original, compared, should_abort=_with_deadline(should_abort, budget)
                )
            except ComparisonCancelledError:
                logger.warning(
                    "doc_comparison.cancelled",
                    original_version_id=str(original_version_id),
                    compared_version_id=str(compared_version_id),
                    elapsed_s=round(time.monotonic() - started, 3),
                )
                raise

            try:
                self._store.save_comparison(
                    comparison,
                    original_document_id=original.document_id,
                    compared_document_id=compared.document_id,
                )
            except IntegrityError:
                winner = self._store.get_comparison(original_version_id, compared_version_id)
                if winner is None:
                    raise
                logger.info(
                    "doc_comparison.insert_race_lost",
                    comparison_id=str(winner.id),
                    original_version_id=str(original_version_id),
                    compared_version_id=str(compared_version_id),
                )
                return winner

        logger.info(
            "doc_comparison.computed",
            comparison_id=str(comparison.id),
            original_version_id=str(original_version_id),
            compared_version_id=str(compared_version_id),
            changes=len(comparison.changes),
            significant_changes=len(comparison.impact_analysis.significant_changes),
            overall_impact=comparison.impact_analysis.overall_impact.value,
            elapsed_s=round(time.monotonic() - started, 3),
        )
        return comparison
