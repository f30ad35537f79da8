"""Cohort ranking and aggregate statistics.

Positions are assigned sequentially in score order: two students on the same
score get consecutive positions (80, 80, 70 ranks 1, 2, 3), not a shared one.
Ties keep the order in which the entries were given, so the result is
reproducible for a fixed input.
"""

from __future__ import annotations

import typing as t

from edufam.model import StudentID

# percentage lower bounds, checked from the top
LetterBoundaries: t.Final[tuple[tuple[str, float], ...]] = (
    ("A+", 90.0),
    ("A", 80.0),
    ("B+", 70.0),
    ("B", 60.0),
    ("C+", 50.0),
    ("C", 40.0),
    ("D+", 30.0),
    ("D", 20.0),
    ("E", 0.0),
)


class Entry(t.NamedTuple):
    student_id: StudentID
    score: float | None
    is_absent: bool = False

    @property
    def counts(self) -> bool:
        return not self.is_absent and self.score is not None


class RankedEntry(t.NamedTuple):
    student_id: StudentID
    score: float | None
    percentage: float | None
    position: int | None
    letter_grade: str | None
    is_absent: bool = False


class CohortStatistics(t.NamedTuple):
    total: float
    average: float
    count: int
    highest: float | None = None
    lowest: float | None = None


def percentage(score: float, max_score: float) -> float:
    if max_score <= 0:
        return 0.0
    return round(score / max_score * 100, 2)


def letter_grade(pct: float | None) -> str | None:
    if pct is None:
        return None
    for letter, bound in LetterBoundaries:
        if pct >= bound:
            return letter
    return LetterBoundaries[-1][0]


def rank(entries: t.Iterable[Entry | tuple[StudentID, float | None]], max_score: float) -> list[RankedEntry]:
    """Rank a cohort.

    Returns ranked entries in position order, followed by absent entries in
    their input order.
    """
    normalized = [e if isinstance(e, Entry) else Entry(*e) for e in entries]
    present = [e for e in normalized if e.counts]
    absent = [e for e in normalized if not e.counts]

    # sorted() is stable, which is what keeps tied positions deterministic
    ordered = sorted(present, key=lambda e: t.cast(float, e.score), reverse=True)

    ranked: list[RankedEntry] = []
    for i, e in enumerate(ordered, start=1):
        pct = percentage(t.cast(float, e.score), max_score)
        ranked.append(RankedEntry(e.student_id, e.score, pct, i, letter_grade(pct)))
    for e in absent:
        ranked.append(RankedEntry(e.student_id, None, None, None, None, is_absent=True))
    return ranked


def aggregate(entries: t.Iterable[Entry | tuple[StudentID, float | None]]) -> CohortStatistics:
    scores = [
        t.cast(float, e.score)
        for e in (e if isinstance(e, Entry) else Entry(*e) for e in entries)
        if e.counts
    ]
    if not scores:
        return CohortStatistics(total=0.0, average=0.0, count=0)
    total = sum(scores)
    return CohortStatistics(
        total=total,
        average=total / len(scores),
        count=len(scores),
        highest=max(scores),
        lowest=min(scores),
    )
