"""SQLAlchemy models package — import all models so Base.metadata is populated."""

from redline.models.base import ModelMixin, TimestampedModel
from redline.models.doc_versions import (
    DocumentComparison,
    DocumentVersion,
    DocumentVersionCounter,
)
from redline.models.enums import (
    ChangeCategory,
    ChangeSeverity,
    ChangeType,
    ImpactDirection,
    RiskScore,
    RiskTrend,
    TimelineEventType,
)

__all__ = [
    "ChangeCategory",
    "ChangeSeverity",
    "ChangeType",
    "DocumentComparison",
    "DocumentVersion",
    "DocumentVersionCounter",
    "ImpactDirection",
    "ModelMixin",
    "RiskScore",
    "RiskTrend",
    "TimelineEventType",
    "TimestampedModel",
]
