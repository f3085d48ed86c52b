"""Tests for the sentence-level diff engine."""

from __future__ import annotations

import pytest

from redline.core.errors import ComparisonCancelledError
from redline.models.enums import ChangeSeverity, ChangeType
from redline.modules.doc_versions.diff_engine import (
    EQUAL,
    assess_severity,
    calculate_text_location,
    compute_diff,
    detect_changes,
    split_into_sentences,
    text_similarity,
    truncate_text,
)
from tests.conftest import CONTRACT_V1, CONTRACT_V2


# ── Segmentation ─────────────────────────────────────────────────────────────


class TestSplitIntoSentences:
    def test_splits_on_end_punctuation_before_capital(self):
        text = "The term is one year. The fee is fixed! Is it renewable? Yes."
        assert split_into_sentences(text) == [
            "The term is one year.",
            "The fee is fixed!",
            "Is it renewable?",
            "Yes.",
        ]

    def test_does_not_split_before_lowercase(self):
        assert split_into_sentences("Pay approx. ten units monthly.") == [
            "Pay approx. ten units monthly."
        ]

    def test_splits_after_blank_line(self):
        assert split_into_sentences("Definitions\n\nServices") == ["Definitions", "Services"]

    def test_splits_after_lettered_items(self):
        segments = split_into_sentences("Duties include (a) delivery and (b) payment.")
        assert segments == ["Duties include (a)", "delivery and (b)", "payment."]

    def test_splits_after_numbered_markers(self):
        segments = split_into_sentences("12. Payment terms apply 13. fees are due")
        assert segments == ["12.", "Payment terms apply 13.", "fees are due"]

    def test_empty_and_whitespace_inputs(self):
        assert split_into_sentences("") == []
        assert split_into_sentences("   \n\n  ") == []


# ── Similarity & severity ────────────────────────────────────────────────────


class TestTextSimilarity:
    def test_identical_is_one(self):
        assert text_similarity("hello world", "hello world") == 1.0

    def test_disjoint_is_zero(self):
        assert text_similarity("hello world", "goodbye moon") == 0.0

    def test_partial_overlap(self):
        assert text_similarity("hello world", "hello there") == pytest.approx(1 / 3)

    def test_case_insensitive(self):
        assert text_similarity("Hello World", "hello world") == 1.0


class TestAssessSeverity:
    def test_high(self):
        assert assess_severity("payment due") == ChangeSeverity.HIGH

    def test_medium(self):
        assert assess_severity("notice required") == ChangeSeverity.MEDIUM

    def test_low(self):
        assert assess_severity("general terms") == ChangeSeverity.LOW

    def test_high_wins_over_medium(self):
        assert assess_severity("Notice of termination") == ChangeSeverity.HIGH


# ── Alignment ────────────────────────────────────────────────────────────────


class TestComputeDiff:
    def test_identical_sequences_are_all_equal(self):
        ops = compute_diff(["A one.", "B two."], ["A one.", "B two."])
        assert [op.op for op in ops] == [EQUAL, EQUAL]

    def test_pure_addition(self):
        ops = compute_diff(["A one."], ["A one.", "Brand new clause."])
        assert [op.op for op in ops] == [EQUAL, ChangeType.ADDITION.value]
        assert ops[1].text == "Brand new clause."

    def test_pure_deletion(self):
        ops = compute_diff(["A one.", "Old clause here."], ["A one."])
        assert [op.op for op in ops] == [EQUAL, ChangeType.DELETION.value]

    def test_unrelated_sentences_list_addition_before_deletion(self):
        # Backtracking takes the deletion first, so the reversed order is addition, deletion
        ops = compute_diff(["A x."], ["B y."])
        assert [op.op for op in ops] == [ChangeType.ADDITION.value, ChangeType.DELETION.value]
        assert [ops[0].text, ops[1].text] == ["B y.", "A x."]

    def test_similar_sentences_become_modification(self):
        original = "The supplier shall deliver the goods within thirty days of the order date."
        compared = "The supplier shall deliver the goods within thirty days of the order date!"
        ops = compute_diff([original], [compared])
        assert len(ops) == 1
        assert ops[0].op == ChangeType.MODIFICATION.value
        assert ops[0].original_text == original
        assert ops[0].new_text == compared

    def test_abort_raises(self):
        with pytest.raises(ComparisonCancelledError):
            compute_diff(["A one."], ["B two."], should_abort=lambda: True)


# ── Materialisation ──────────────────────────────────────────────────────────


class TestDetectChanges:
    def test_identical_texts_yield_no_changes(self):
        assert detect_changes(CONTRACT_V1, CONTRACT_V1) == []

    def test_empty_texts_yield_no_changes(self):
        assert detect_changes("", "") == []

    def test_payment_term_change(self):
        changes = detect_changes(
            "Payment due within 30 days of invoice.",
            "Payment due within 15 days of invoice.",
        )
        assert sorted(c.type for c in changes) == [ChangeType.ADDITION, ChangeType.DELETION]

        deletion = next(c for c in changes if c.type == ChangeType.DELETION)
        addition = next(c for c in changes if c.type == ChangeType.ADDITION)
        assert "30 days" in deletion.original_text
        assert "15 days" in addition.new_text
        assert deletion.severity == ChangeSeverity.HIGH
        assert addition.severity == ChangeSeverity.HIGH

    def test_locations_point_into_the_right_text(self):
        changes = detect_changes(CONTRACT_V1, CONTRACT_V2)
        deletion = next(c for c in changes if c.type == ChangeType.DELETION)
        addition = next(c for c in changes if c.type == ChangeType.ADDITION)

        start, end = deletion.location.start_index, deletion.location.end_index
        assert CONTRACT_V1[start:end] == deletion.original_text
        start, end = addition.location.start_index, addition.location.end_index
        assert CONTRACT_V2[start:end] == addition.new_text

    def test_descriptions(self):
        changes = detect_changes("Old clause here.", "")
        assert changes[0].description == 'Deleted text: "Old clause here."'

        changes = detect_changes("", "Fresh clause here.")
        assert changes[0].description == 'Added text: "Fresh clause here."'

    def test_modification_description_truncates_each_side(self):
        original = "The supplier shall deliver the goods within thirty days of the order date."
        compared = "The supplier shall deliver the goods within thirty days of the order date!"
        [change] = detect_changes(original, compared)
        assert change.type == ChangeType.MODIFICATION
        assert change.description == (
            f'Modified text from "{original[:50]}..." to "{compared[:50]}..."'
        )

    def test_every_change_has_unique_id(self):
        changes = detect_changes(CONTRACT_V1, CONTRACT_V2)
        assert len({c.id for c in changes}) == len(changes)

    def test_cancellation(self):
        with pytest.raises(ComparisonCancelledError):
            detect_changes(CONTRACT_V1, CONTRACT_V2, should_abort=lambda: True)


class TestHelpers:
    def test_truncate_text(self):
        assert truncate_text("short", 10) == "short"
        assert truncate_text("a" * 12, 10) == "a" * 10 + "..."

    def test_location_fallback_is_proportional(self):
        location = calculate_text_location("x" * 200, "missing", 10)
        assert location.start_index == 20
        assert location.end_index == 27

    def test_location_fallback_is_clamped(self):
        location = calculate_text_location("abc", "missing", 500)
        assert location.start_index == 3
