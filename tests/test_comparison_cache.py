"""Tests for the compute-once comparison cache."""

from __future__ import annotations

import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, select

from redline.core.errors import (
    ComparisonCancelledError,
    ComparisonNotFoundError,
    VersionNotFoundError,
)
from redline.models.doc_versions import DocumentComparison
from redline.models.enums import ChangeSeverity, ChangeType, ImpactDirection
from redline.modules.doc_versions.service import DocumentVersioningService
from tests.conftest import (
    CONTRACT_V1,
    CONTRACT_V2,
    OTHER_DOCUMENT_ID,
    SAMPLE_DOCUMENT_ID,
    make_metadata,
)


def _comparison_rows(session_factory) -> int:
    with session_factory() as session:
        return session.execute(select(func.count()).select_from(DocumentComparison)).scalar()


@pytest.fixture
def two_versions(service: DocumentVersioningService):
    v1 = service.create_version(
        SAMPLE_DOCUMENT_ID, "v1.pdf", make_metadata(CONTRACT_V1), analysis={"risk_score": "low"}
    )
    v2 = service.create_version(
        SAMPLE_DOCUMENT_ID, "v2.pdf", make_metadata(CONTRACT_V2), analysis={"risk_score": "high"}
    )
    return v1, v2


class TestCompareVersions:
    def test_detects_payment_term_change(self, service: DocumentVersioningService, two_versions):
        v1, v2 = two_versions
        comparison = service.compare_versions(v1.id, v2.id)

        assert comparison.original_version_id == v1.id
        assert comparison.compared_version_id == v2.id
        assert sorted(c.type for c in comparison.changes) == [
            ChangeType.ADDITION,
            ChangeType.DELETION,
        ]
        assert all(c.severity == ChangeSeverity.HIGH for c in comparison.changes)
        assert comparison.impact_analysis.risk_score_change == 2
        assert comparison.impact_analysis.overall_impact == ImpactDirection.UNFAVORABLE

    def test_idempotent_per_ordered_pair(
        self, service: DocumentVersioningService, two_versions, session_factory
    ):
        v1, v2 = two_versions
        first = service.compare_versions(v1.id, v2.id)
        second = service.compare_versions(v1.id, v2.id)

        assert second.id == first.id
        assert [c.id for c in second.changes] == [c.id for c in first.changes]
        assert second.impact_analysis == first.impact_analysis
        assert _comparison_rows(session_factory) == 1

    def test_reverse_pair_cached_separately(
        self, service: DocumentVersioningService, two_versions, session_factory
    ):
        v1, v2 = two_versions
        forward = service.compare_versions(v1.id, v2.id)
        backward = service.compare_versions(v2.id, v1.id)

        assert forward.id != backward.id
        assert backward.impact_analysis.risk_score_change == -2
        assert _comparison_rows(session_factory) == 2

    def test_missing_version_raises_not_found(
        self, service: DocumentVersioningService, two_versions
    ):
        v1, _ = two_versions
        missing = uuid.uuid4()
        with pytest.raises(VersionNotFoundError) as exc_info:
            service.compare_versions(v1.id, missing)
        assert exc_info.value.version_ids == (missing,)

    def test_both_missing_reports_both(self, service: DocumentVersioningService):
        a, b = uuid.uuid4(), uuid.uuid4()
        with pytest.raises(VersionNotFoundError) as exc_info:
            service.compare_versions(a, b)
        assert exc_info.value.version_ids == (a, b)

    def test_cross_document_comparison(self, service: DocumentVersioningService, two_versions):
        v1, _ = two_versions
        other = service.create_version(OTHER_DOCUMENT_ID, "other.pdf", make_metadata(CONTRACT_V1))
        comparison = service.compare_versions(v1.id, other.id)

        assert comparison.changes == []
        for document_id in (SAMPLE_DOCUMENT_ID, OTHER_DOCUMENT_ID):
            listed = service.store.get_comparisons_by_document_id(document_id)
            assert comparison.id in {c.id for c in listed}


class TestCancellation:
    def test_abort_persists_nothing(
        self, service: DocumentVersioningService, two_versions, session_factory
    ):
        v1, v2 = two_versions
        with pytest.raises(ComparisonCancelledError):
            service.compare_versions(v1.id, v2.id, should_abort=lambda: True)

        assert _comparison_rows(session_factory) == 0
        assert service.store.get_comparison(v1.id, v2.id) is None

    def test_can_retry_after_cancellation(self, service: DocumentVersioningService, two_versions):
        v1, v2 = two_versions
        with pytest.raises(ComparisonCancelledError):
            service.compare_versions(v1.id, v2.id, should_abort=lambda: True)

        comparison = service.compare_versions(v1.id, v2.id)
        assert len(comparison.changes) == 2

    def test_non_positive_timeout_disables_deadline(
        self, service: DocumentVersioningService, two_versions
    ):
        v1, v2 = two_versions
        comparison = service.compare_versions(v1.id, v2.id, timeout=0)
        assert len(comparison.changes) == 2

    def test_expired_deadline_persists_nothing(
        self, service: DocumentVersioningService, session_factory
    ):
        original = " ".join(f"Clause {i} covers item {i}." for i in range(2000))
        compared = " ".join(f"Section {i} replaces term {i}." for i in range(2000))
        v1 = service.create_version(SAMPLE_DOCUMENT_ID, "v1.pdf", make_metadata(original))
        v2 = service.create_version(SAMPLE_DOCUMENT_ID, "v2.pdf", make_metadata(compared))

        with pytest.raises(ComparisonCancelledError):
            service.compare_versions(v1.id, v2.id, timeout=1e-6)

        assert _comparison_rows(session_factory) == 0


class TestConcurrentFirstAccess:
    def test_single_comparison_per_pair(
        self, service: DocumentVersioningService, two_versions, session_factory
    ):
        v1, v2 = two_versions
        with ThreadPoolExecutor(max_workers=6) as pool:
            results = list(pool.map(lambda _: service.compare_versions(v1.id, v2.id), range(12)))

        assert len({r.id for r in results}) == 1
        assert _comparison_rows(session_factory) == 1


class TestGetComparison:
    def test_by_id(self, service: DocumentVersioningService, two_versions):
        v1, v2 = two_versions
        comparison = service.compare_versions(v1.id, v2.id)
        assert service.get_comparison(comparison.id).id == comparison.id

    def test_unknown_id(self, service: DocumentVersioningService):
        with pytest.raises(ComparisonNotFoundError):
            service.get_comparison(uuid.uuid4())
