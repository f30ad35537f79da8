"""Tests for edufam.grading.ranking module."""

from __future__ import annotations

from edufam.grading.ranking import aggregate, Entry, letter_grade, percentage, rank
from edufam.model import StudentID

A, B, C, D = (StudentID() for _ in range(4))


class TestRank(object):
    """Tests for rank()."""

    def test_ties_get_sequential_positions(self) -> None:
        """80, 80, 70 ranks 1, 2, 3 with the tie broken by input order."""
        ranked = rank([(A, 80), (B, 80), (C, 70)], 100)

        assert [(r.student_id, r.position) for r in ranked] == [(A, 1), (B, 2), (C, 3)]

    def test_tie_order_follows_input_order(self) -> None:
        ranked = rank([(B, 80), (A, 80)], 100)

        assert [r.student_id for r in ranked] == [B, A]

    def test_orders_by_score_descending(self) -> None:
        ranked = rank([(A, 40), (B, 90), (C, 75)], 100)

        assert [(r.student_id, r.position) for r in ranked] == [(B, 1), (C, 2), (A, 3)]

    def test_is_deterministic(self) -> None:
        entries = [(A, 55.5), (B, 55.5), (C, 70), (D, 10)]

        assert rank(entries, 100) == rank(entries, 100)

    def test_percentage_and_letter(self) -> None:
        (ranked,) = rank([(A, 45)], 50)

        assert ranked.percentage == 90.0
        assert ranked.letter_grade == "A+"

    def test_zero_max_score_yields_zero_percentage(self) -> None:
        ranked = rank([(A, 0), (B, 0)], 0)

        assert [r.percentage for r in ranked] == [0.0, 0.0]
        assert [r.position for r in ranked] == [1, 2]

    def test_absent_and_missing_scores_are_unranked(self) -> None:
        ranked = rank([Entry(A, 60), Entry(B, None, is_absent=True), Entry(C, None), Entry(D, 70)], 100)

        assert [(r.student_id, r.position) for r in ranked] == [(D, 1), (A, 2), (B, None), (C, None)]
        absent = ranked[2]
        assert absent.is_absent
        assert absent.percentage is None
        assert absent.letter_grade is None

    def test_empty_cohort(self) -> None:
        assert rank([], 100) == []


class TestAggregate(object):
    """Tests for aggregate()."""

    def test_totals_and_average(self) -> None:
        stats = aggregate([(A, 90), (B, 75), (C, 75)])

        assert stats.total == 240
        assert stats.count == 3
        assert stats.average == 80
        assert stats.highest == 90
        assert stats.lowest == 75

    def test_skips_absent(self) -> None:
        stats = aggregate([Entry(A, 50), Entry(B, None, is_absent=True)])

        assert stats.count == 1
        assert stats.average == 50

    def test_empty(self) -> None:
        stats = aggregate([])

        assert stats.count == 0
        assert stats.average == 0.0
        assert stats.highest is None


class TestLetterGrade(object):
    """Tests for letter_grade() and percentage()."""

    def test_boundaries(self) -> None:
        assert letter_grade(90) == "A+"
        assert letter_grade(89.99) == "A"
        assert letter_grade(70) == "B+"
        assert letter_grade(40) == "C"
        assert letter_grade(19.9) == "E"
        assert letter_grade(0) == "E"

    def test_none(self) -> None:
        assert letter_grade(None) is None

    def test_percentage_rounds_to_two_places(self) -> None:
        assert percentage(1, 3) == 33.33
        assert percentage(5, 0) == 0.0
