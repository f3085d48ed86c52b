"""String enums shared by the version, comparison and impact models."""

import enum


# ── Changes ──────────────────────────────────────────────────────────────────


class ChangeType(str, enum.Enum):
    ADDITION = "addition"
    DELETION = "deletion"
    MODIFICATION = "modification"


class ChangeSeverity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ChangeCategory(str, enum.Enum):
    FINANCIAL = "financial"
    RIGHTS = "rights"
    OBLIGATIONS = "obligations"
    PRIVACY = "privacy"
    LEGAL = "legal"


class ImpactDirection(str, enum.Enum):
    FAVORABLE = "favorable"
    UNFAVORABLE = "unfavorable"
    NEUTRAL = "neutral"


# ── Versions ─────────────────────────────────────────────────────────────────


class RiskScore(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskTrend(str, enum.Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class TimelineEventType(str, enum.Enum):
    VERSION_CREATED = "version_created"
    COMPARISON_MADE = "comparison_made"
