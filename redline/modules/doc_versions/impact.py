"""Impact analysis — deterministic keyword rules, no LLM.

Classifies high-severity changes into legal categories, assigns a polarity
from the change type and derives an overall verdict and a summary sentence.
"""

from __future__ import annotations

from typing import Any

from redline.models.enums import ChangeCategory, ChangeSeverity, ChangeType, ImpactDirection
from redline.modules.doc_versions.schemas import (
    DocumentChange,
    ImpactAnalysis,
    SignificantChange,
    VersionAnalysis,
)

_RISK_VALUES: dict[str, int] = {"low": 1, "medium": 2, "high": 3}
_DEFAULT_RISK_VALUE = 1

# Checked in order; the first category with a matching keyword wins.
CATEGORY_RULES: tuple[tuple[ChangeCategory, tuple[str, ...]], ...] = (
    (ChangeCategory.FINANCIAL, ("payment", "fee", "cost")),
    (ChangeCategory.RIGHTS, ("right", "privilege")),
    (ChangeCategory.OBLIGATIONS, ("obligation", "responsibility", "must")),
    (ChangeCategory.PRIVACY, ("confidential", "privacy", "data")),
    (ChangeCategory.LEGAL, ("liability", "damages", "indemnify")),
)

RECOMMENDATIONS: dict[ChangeCategory, str] = {
    ChangeCategory.FINANCIAL: "Review financial implications carefully before agreeing.",
    ChangeCategory.RIGHTS: "Ensure you understand how this affects your rights.",
    ChangeCategory.OBLIGATIONS: "Consider whether you can fulfill these obligations.",
    ChangeCategory.PRIVACY: "Review privacy implications and data handling requirements.",
    ChangeCategory.LEGAL: "Consider consulting a legal professional about liability implications.",
}

# Polarity of an *added* clause per category. Deletions invert it;
# modifications are treated like additions.
_ADDITION_POLARITY: dict[ChangeCategory, ImpactDirection] = {
    ChangeCategory.FINANCIAL: ImpactDirection.UNFAVORABLE,
    ChangeCategory.RIGHTS: ImpactDirection.FAVORABLE,
    ChangeCategory.OBLIGATIONS: ImpactDirection.UNFAVORABLE,
    ChangeCategory.PRIVACY: ImpactDirection.NEUTRAL,
    ChangeCategory.LEGAL: ImpactDirection.UNFAVORABLE,
}

_INVERTED: dict[ImpactDirection, ImpactDirection] = {
    ImpactDirection.FAVORABLE: ImpactDirection.UNFAVORABLE,
    ImpactDirection.UNFAVORABLE: ImpactDirection.FAVORABLE,
    ImpactDirection.NEUTRAL: ImpactDirection.NEUTRAL,
}

_RISK_DELTA_THRESHOLD = 0.5


def risk_score_to_number(risk_score: Any) -> int:
    """Map a risk label to 1–3; unknown or missing labels count as low."""
    label = getattr(risk_score, "value", risk_score)  # RiskScore members or raw labels
    if not isinstance(label, str):
        return _DEFAULT_RISK_VALUE
    return _RISK_VALUES.get(label, _DEFAULT_RISK_VALUE)


def risk_score_change(
    original_analysis: VersionAnalysis | None,
    compared_analysis: VersionAnalysis | None,
) -> int:
    if original_analysis is None or compared_analysis is None:
        return 0
    return risk_score_to_number(compared_analysis.risk_score) - risk_score_to_number(
        original_analysis.risk_score
    )


def classify_category(text: str) -> ChangeCategory | None:
    lower = text.lower()
    for category, keywords in CATEGORY_RULES:
        if any(keyword in lower for keyword in keywords):
            return category
    return None


def change_polarity(category: ChangeCategory, change_type: ChangeType) -> ImpactDirection:
    polarity = _ADDITION_POLARITY[category]
    if change_type == ChangeType.DELETION:
        return _INVERTED[polarity]
    return polarity


def categorize_change(change: DocumentChange) -> SignificantChange | None:
    """Classify a change, or return None when no category keyword matches."""
    category = classify_category(change.new_text or change.original_text or "")
    if category is None:
        return None
    return SignificantChange(
        change_id=change.id,
        category=category,
        impact=change_polarity(category, change.type),
        description=change.description,
        recommendation=RECOMMENDATIONS[category],
    )


def determine_overall_impact(
    significant_changes: list[SignificantChange],
    risk_delta: float,
) -> ImpactDirection:
    if risk_delta > _RISK_DELTA_THRESHOLD:
        return ImpactDirection.UNFAVORABLE
    if risk_delta < -_RISK_DELTA_THRESHOLD:
        return ImpactDirection.FAVORABLE

    favorable = sum(1 for c in significant_changes if c.impact == ImpactDirection.FAVORABLE)
    unfavorable = sum(1 for c in significant_changes if c.impact == ImpactDirection.UNFAVORABLE)
    if unfavorable > favorable:
        return ImpactDirection.UNFAVORABLE
    if favorable > unfavorable:
        return ImpactDirection.FAVORABLE
    return ImpactDirection.NEUTRAL


def generate_impact_summary(
    changes: list[DocumentChange],
    significant_changes: list[SignificantChange],
    risk_delta: int,
) -> str:
    high_severity = sum(1 for c in changes if c.severity == ChangeSeverity.HIGH)

    summary = f"Found {len(changes)} changes between document versions"
    if high_severity > 0:
        summary += f", including {high_severity} high-severity changes"
    if risk_delta != 0:
        direction = "increased" if risk_delta > 0 else "decreased"
        summary += f". Overall risk level has {direction}"
    if significant_changes:
        # dict preserves first-seen order
        categories = dict.fromkeys(c.category.value for c in significant_changes)
        summary += f". Significant changes affect: {', '.join(categories)}"
    return summary + "."


def analyze_impact(
    changes: list[DocumentChange],
    original_analysis: VersionAnalysis | None = None,
    compared_analysis: VersionAnalysis | None = None,
) -> ImpactAnalysis:
    delta = risk_score_change(original_analysis, compared_analysis)
    significant = [
        sc
        for sc in (
            categorize_change(c) for c in changes if c.severity == ChangeSeverity.HIGH
        )
        if sc is not None
    ]
    return ImpactAnalysis(
        overall_impact=determine_overall_impact(significant, delta),
        risk_score_change=delta,
        significant_changes=significant,
        summary=generate_impact_summary(changes, significant, delta),
    )
