"""Sentence-level diff engine — pure, deterministic, no storage access.

Texts are segmented into sentences, aligned with an LCS table in which two
sentences match when their word-set Jaccard similarity exceeds
``SIMILARITY_THRESHOLD``, and the resulting operations are materialised as
``DocumentChange`` objects with a keyword-derived severity.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass

from redline.core.errors import ComparisonCancelledError
from redline.models.enums import ChangeSeverity, ChangeType
from redline.modules.doc_versions.schemas import DocumentChange, TextLocation

SIMILARITY_THRESHOLD = 0.8

# Boundaries: end punctuation + whitespace before a capital letter, after a
# blank line, after numbered markers ("12. ") and lettered sub-items ("(a) ").
# ``\d\.\s`` is the fixed-width tail of any ``\d+\.\s`` marker.
_SENTENCE_BOUNDARY = re.compile(
    r"(?<=[.!?])\s+(?=[A-Z])|(?<=\n\n)|(?<=\d\.\s)|(?<=\([a-z]\)\s)"
)

# Ordered first-match-wins tables; keep literal for reproducible output.
HIGH_SEVERITY_KEYWORDS: tuple[str, ...] = (
    "liability", "penalty", "termination", "breach", "damages", "indemnify",
    "payment", "fee", "cost", "price", "amount", "obligation", "responsibility",
)
MEDIUM_SEVERITY_KEYWORDS: tuple[str, ...] = (
    "notice", "consent", "approval", "right", "privilege", "access",
    "confidential", "proprietary", "intellectual property",
)

DESCRIPTION_EXCERPT = 100
MODIFICATION_EXCERPT = 50

EQUAL = "equal"

AbortCheck = Callable[[], bool]


@dataclass(frozen=True)
class DiffOperation:
    """One step of the alignment between the two sentence sequences."""

    op: str  # "equal" or a ChangeType value
    text: str | None = None
    original_text: str | None = None
    new_text: str | None = None


# ── Segmentation & similarity ────────────────────────────────────────────────


def split_into_sentences(text: str) -> list[str]:
    """Split legal text into trimmed, non-empty sentence-like segments."""
    if not text:
        return []
    segments = _SENTENCE_BOUNDARY.split(text)
    return [s.strip() for s in segments if s and s.strip()]


def _word_set(text: str) -> frozenset[str]:
    return frozenset(text.lower().split())


def text_similarity(text1: str, text2: str) -> float:
    """Jaccard similarity of the lower-cased, whitespace-split word sets."""
    return _jaccard(_word_set(text1), _word_set(text2))


def _jaccard(words1: frozenset[str], words2: frozenset[str]) -> float:
    union = words1 | words2
    if not union:
        return 1.0
    return len(words1 & words2) / len(union)


# ── Alignment ────────────────────────────────────────────────────────────────


def _check_abort(should_abort: AbortCheck | None) -> None:
    if should_abort is not None and should_abort():
        raise ComparisonCancelledError("Diff computation aborted")


def compute_diff(
    original: list[str],
    compared: list[str],
    should_abort: AbortCheck | None = None,
) -> list[DiffOperation]:
    """Align two sentence sequences and return operations in document order.

    O(n·m) time and memory. ``should_abort`` is polled once per table row and
    once per backtrack step; a True result raises ``ComparisonCancelledError``.
    """
    n, m = len(original), len(compared)
    original_words = [_word_set(s) for s in original]
    compared_words = [_word_set(s) for s in compared]

    def equivalent(i: int, j: int) -> bool:
        return _jaccard(original_words[i], compared_words[j]) > SIMILARITY_THRESHOLD

    dp = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(1, n + 1):
        _check_abort(should_abort)
        row, prev = dp[i], dp[i - 1]
        for j in range(1, m + 1):
            if equivalent(i - 1, j - 1):
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])

    operations: list[DiffOperation] = []
    i, j = n, m
    while i > 0 or j > 0:
        _check_abort(should_abort)
        if i > 0 and j > 0 and equivalent(i - 1, j - 1):
            if original[i - 1] == compared[j - 1]:
                operations.append(DiffOperation(EQUAL, text=original[i - 1]))
            else:
                operations.append(
                    DiffOperation(
                        ChangeType.MODIFICATION.value,
                        original_text=original[i - 1],
                        new_text=compared[j - 1],
                    )
                )
            i -= 1
            j -= 1
        elif i > 0 and (j == 0 or dp[i - 1][j] >= dp[i][j - 1]):
            operations.append(DiffOperation(ChangeType.DELETION.value, text=original[i - 1]))
            i -= 1
        else:
            operations.append(DiffOperation(ChangeType.ADDITION.value, text=compared[j - 1]))
            j -= 1

    operations.reverse()
    return operations


# ── Materialisation ──────────────────────────────────────────────────────────


def assess_severity(text: str) -> ChangeSeverity:
    lower = text.lower()
    if any(keyword in lower for keyword in HIGH_SEVERITY_KEYWORDS):
        return ChangeSeverity.HIGH
    if any(keyword in lower for keyword in MEDIUM_SEVERITY_KEYWORDS):
        return ChangeSeverity.MEDIUM
    return ChangeSeverity.LOW


def calculate_text_location(full_text: str, search_text: str, approximate_index: int) -> TextLocation:
    """Locate ``search_text`` in ``full_text``.

    Falls back to ``approximate_index`` percent of the text length when the
    segment cannot be found verbatim, clamped to the text bounds.
    """
    start = full_text.find(search_text)
    if start == -1:
        start = min(math.floor(approximate_index / 100 * len(full_text)), len(full_text))
    return TextLocation(start_index=start, end_index=start + len(search_text))


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def detect_changes(
    original_text: str,
    compared_text: str,
    should_abort: AbortCheck | None = None,
) -> list[DocumentChange]:
    """Diff two full texts and return the non-equal operations as changes."""
    operations = compute_diff(
        split_into_sentences(original_text),
        split_into_sentences(compared_text),
        should_abort=should_abort,
    )

    changes: list[DocumentChange] = []
    original_index = 0
    compared_index = 0

    for operation in operations:
        if operation.op == ChangeType.DELETION.value:
            text = operation.text or ""
            changes.append(
                DocumentChange(
                    type=ChangeType.DELETION,
                    original_text=text,
                    location=calculate_text_location(original_text, text, original_index),
                    severity=assess_severity(text),
                    description=f'Deleted text: "{truncate_text(text, DESCRIPTION_EXCERPT)}"',
                )
            )
            original_index += 1
        elif operation.op == ChangeType.ADDITION.value:
            text = operation.text or ""
            changes.append(
                DocumentChange(
                    type=ChangeType.ADDITION,
                    new_text=text,
                    location=calculate_text_location(compared_text, text, compared_index),
                    severity=assess_severity(text),
                    description=f'Added text: "{truncate_text(text, DESCRIPTION_EXCERPT)}"',
                )
            )
            compared_index += 1
        elif operation.op == ChangeType.MODIFICATION.value:
            old = operation.original_text or ""
            new = operation.new_text or ""
            changes.append(
                DocumentChange(
                    type=ChangeType.MODIFICATION,
                    original_text=old,
                    new_text=new,
                    location=calculate_text_location(compared_text, new, compared_index),
                    severity=assess_severity(new),
                    description=(
                        f'Modified text from "{truncate_text(old, MODIFICATION_EXCERPT)}" '
                        f'to "{truncate_text(new, MODIFICATION_EXCERPT)}"'
                    ),
                )
            )
            original_index += 1
            compared_index += 1
        else:
            original_index += 1
            compared_index += 1

    return changes
