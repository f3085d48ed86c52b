"""Per-document aggregates: consecutive differences, statistics, history."""

from __future__ import annotations

import uuid
from typing import Any

from redline.models.enums import RiskTrend, TimelineEventType
from redline.modules.doc_versions.comparison import ComparisonCache
from redline.modules.doc_versions.schemas import (
    DocumentComparisonSchema,
    DocumentVersionHistory,
    DocumentVersionSchema,
    TimelineEvent,
    VersionDifference,
    VersionHistoryQuery,
    VersionStatistics,
)
from redline.modules.doc_versions.store import VersionStore


def _risk_trend(differences: list[VersionDifference]) -> RiskTrend:
    cumulative = sum(d.risk_score_change for d in differences)
    if cumulative > 0:
        return RiskTrend.INCREASING
    if cumulative < 0:
        return RiskTrend.DECREASING
    return RiskTrend.STABLE


def _most_active_version(differences: list[VersionDifference]) -> int | None:
    if not differences:
        return None
    # Highest change count; ties go to the lowest version number
    return max(differences, key=lambda d: (d.changes_count, -d.to_version)).to_version


def _version_event(version: DocumentVersionSchema) -> TimelineEvent:
    return TimelineEvent(
        type=TimelineEventType.VERSION_CREATED,
        timestamp=version.uploaded_at,
        version_id=version.id,
        version_number=version.version_number,
        description=f"Version {version.version_number} created: {version.filename}",
        metadata={
            "filename": version.filename,
            "parent_version_id": (
                str(version.parent_version_id) if version.parent_version_id else None
            ),
        },
    )


def _comparison_event(
    comparison: DocumentComparisonSchema,
    original: DocumentVersionSchema,
    compared: DocumentVersionSchema,
) -> TimelineEvent:
    impact = comparison.impact_analysis
    return TimelineEvent(
        type=TimelineEventType.COMPARISON_MADE,
        timestamp=comparison.compared_at,
        comparison_id=comparison.id,
        description=(
            f"Compared version {original.version_number} with version "
            f"{compared.version_number}: {len(comparison.changes)} changes"
        ),
        metadata={
            "original_version_id": str(original.id),
            "compared_version_id": str(compared.id),
            "changes": len(comparison.changes),
            "significant_changes": len(impact.significant_changes),
            "overall_impact": impact.overall_impact.value,
        },
    )


class StatisticsAggregator:
    def __init__(self, store: VersionStore, comparisons: ComparisonCache) -> None:
        self._store = store
        self._comparisons = comparisons

    def get_version_differences(self, document_id: uuid.UUID) -> list[VersionDifference]:
        """One entry per consecutive version pair, oldest pair first.

        Comparisons go through the cache, so each pair is diffed at most once.
        """
        versions = self._store.get_versions_by_document_id(document_id)
        differences: list[VersionDifference] = []
        for previous, current in zip(versions, versions[1:]):
            comparison = self._comparisons.compare(previous.id, current.id)
            impact = comparison.impact_analysis
            differences.append(
                VersionDifference(
                    from_version=previous.version_number,
                    to_version=current.version_number,
                    from_version_id=previous.id,
                    to_version_id=current.id,
                    changes_count=len(comparison.changes),
                    significant_changes_count=len(impact.significant_changes),
                    overall_impact=impact.overall_impact,
                    risk_score_change=impact.risk_score_change,
                    compared_at=comparison.compared_at,
                )
            )
        return differences

    def get_version_statistics(self, document_id: uuid.UUID) -> VersionStatistics:
        versions = self._store.get_versions_by_document_id(document_id)
        differences = self.get_version_differences(document_id)

        total_changes = sum(d.changes_count for d in differences)
        return VersionStatistics(
            document_id=document_id,
            total_versions=len(versions),
            total_changes=total_changes,
            total_significant_changes=sum(d.significant_changes_count for d in differences),
            risk_trend=_risk_trend(differences),
            most_active_version=_most_active_version(differences),
            average_changes_per_version=total_changes / max(1, len(differences)),
            first_version=versions[0] if versions else None,
            latest_version=versions[-1] if versions else None,
        )

    def get_version_history(
        self,
        document_id: uuid.UUID,
        query: VersionHistoryQuery | dict[str, Any] | None = None,
    ) -> DocumentVersionHistory:
        """Paged versions (newest first) plus every comparison and a timeline.

        Raises pydantic ``ValidationError`` for an out-of-range ``limit`` or
        ``offset``.
        """
        query = VersionHistoryQuery.model_validate(query or {})

        total = self._store.count_versions(document_id)
        page = self._store.get_versions_page(document_id, query.limit, query.offset)
        if not query.include_analysis:
            page = [v.model_copy(update={"analysis": None}) for v in page]

        all_versions = self._store.get_versions_by_document_id(document_id)
        comparisons = self._store.get_comparisons_by_document_id(document_id)

        return DocumentVersionHistory(
            document_id=document_id,
            versions=page,
            comparisons=comparisons,
            timeline=self._build_timeline(all_versions, comparisons),
            current_version=all_versions[-1] if all_versions else None,
            total=total,
            latest_version=all_versions[-1] if all_versions else None,
            first_version=all_versions[0] if all_versions else None,
            total_comparisons=len(comparisons),
            limit=query.limit,
            offset=query.offset,
            has_more=query.offset + len(page) < total,
        )

    def _build_timeline(
        self,
        versions: list[DocumentVersionSchema],
        comparisons: list[DocumentComparisonSchema],
    ) -> list[TimelineEvent]:
        known = {v.id: v for v in versions}

        def lookup(version_id: uuid.UUID) -> DocumentVersionSchema | None:
            # Cross-document comparisons reference versions outside this lineage
            if version_id not in known:
                version = self._store.get_version_by_id(version_id)
                if version is None:
                    return None
                known[version_id] = version
            return known[version_id]

        events = [_version_event(v) for v in versions]
        for comparison in comparisons:
            original = lookup(comparison.original_version_id)
            compared = lookup(comparison.compared_version_id)
            if original is None or compared is None:
                # One side was swept; the comparison stays listed but has no event
                continue
            events.append(_comparison_event(comparison, original, compared))

        events.sort(key=lambda e: e.timestamp)
        return events
