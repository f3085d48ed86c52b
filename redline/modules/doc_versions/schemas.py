"""Document Version Control — Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from redline.models.enums import (
    ChangeCategory,
    ChangeSeverity,
    ChangeType,
    ImpactDirection,
    RiskTrend,
    TimelineEventType,
)


def _ensure_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored here is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ── Version inputs ────────────────────────────────────────────────────────────


class VersionMetadata(BaseModel):
    """Text-extraction output for one upload. camelCase keys are accepted."""

    model_config = ConfigDict(populate_by_name=True)

    page_count: int = Field(
        default=1, ge=0, validation_alias=AliasChoices("page_count", "pageCount")
    )
    word_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("word_count", "wordCount")
    )
    language: str = "en"
    extracted_text: str = Field(
        default="", validation_alias=AliasChoices("extracted_text", "extractedText")
    )


class VersionAnalysis(BaseModel):
    """Opaque analysis payload. Only ``risk_score`` is interpreted."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    # Any label is stored as sent; unrecognised ones are scored as low
    risk_score: Any = Field(
        default=None, validation_alias=AliasChoices("risk_score", "riskScore")
    )


class DocumentVersionSchema(BaseModel):
    id: uuid.UUID
    document_id: uuid.UUID
    version_number: int
    filename: str
    uploaded_at: datetime
    metadata: VersionMetadata
    analysis: VersionAnalysis | None = None
    parent_version_id: uuid.UUID | None = None

    @field_validator("uploaded_at")
    @classmethod
    def _uploaded_at_utc(cls, value: datetime) -> datetime:
        return _ensure_utc(value)


# ── Changes & impact ─────────────────────────────────────────────────────────


class TextLocation(BaseModel):
    start_index: int
    end_index: int


class DocumentChange(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    type: ChangeType
    original_text: str | None = None
    new_text: str | None = None
    location: TextLocation
    severity: ChangeSeverity
    description: str


class SignificantChange(BaseModel):
    change_id: uuid.UUID
    category: ChangeCategory
    impact: ImpactDirection
    description: str
    recommendation: str | None = None


class ImpactAnalysis(BaseModel):
    overall_impact: ImpactDirection
    risk_score_change: int
    significant_changes: list[SignificantChange] = []
    summary: str


class DocumentComparisonSchema(BaseModel):
    id: uuid.UUID
    original_version_id: uuid.UUID
    compared_version_id: uuid.UUID
    compared_at: datetime
    changes: list[DocumentChange]
    impact_analysis: ImpactAnalysis

    @field_validator("compared_at")
    @classmethod
    def _compared_at_utc(cls, value: datetime) -> datetime:
        return _ensure_utc(value)


# ── Aggregates ───────────────────────────────────────────────────────────────


class VersionDifference(BaseModel):
    from_version: int
    to_version: int
    from_version_id: uuid.UUID
    to_version_id: uuid.UUID
    changes_count: int
    significant_changes_count: int
    overall_impact: ImpactDirection
    risk_score_change: int
    compared_at: datetime


class VersionStatistics(BaseModel):
    document_id: uuid.UUID
    total_versions: int
    total_changes: int
    total_significant_changes: int
    risk_trend: RiskTrend
    most_active_version: int | None
    average_changes_per_version: float
    first_version: DocumentVersionSchema | None
    latest_version: DocumentVersionSchema | None


class TimelineEvent(BaseModel):
    type: TimelineEventType
    timestamp: datetime
    version_id: uuid.UUID | None = None
    version_number: int | None = None
    comparison_id: uuid.UUID | None = None
    description: str
    metadata: dict[str, Any] | None = None


class VersionHistoryQuery(BaseModel):
    limit: int = Field(default=10, ge=1, le=50)
    offset: int = Field(default=0, ge=0)
    include_analysis: bool = False


class DocumentVersionHistory(BaseModel):
    document_id: uuid.UUID
    versions: list[DocumentVersionSchema]
    comparisons: list[DocumentComparisonSchema]
    timeline: list[TimelineEvent]
    current_version: DocumentVersionSchema | None
    total: int
    latest_version: DocumentVersionSchema | None
    first_version: DocumentVersionSchema | None
    total_comparisons: int
    limit: int
    offset: int
    has_more: bool


class CleanupResult(BaseModel):
    deleted_versions: int
    deleted_comparisons: int
    cutoff_date: datetime
