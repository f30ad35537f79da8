"""Grade records.

Every read and write here goes through the tenant gate: reads are filtered to
the actor's school and writes are stamped with it.
"""

from __future__ import annotations

import typing as t

import sqlalchemy as sqla

from edufam.core import di
from edufam.grading.scope import resolve_school, scope_query, stamp
from edufam.model import ClassID, ExamType, GradeID, GradeRecord, GradeStatus, SchoolID, StudentID, SubjectID, \
    SubmissionID, TenantContext, UserID

from . import override, Session
from .table import grades

# columns a write may change after creation
_Mutable: t.Final = (
    "submission_id",
    "score",
    "is_absent",
    "percentage",
    "position",
    "letter_grade",
    "status",
    "is_immutable",
    "submitted_at",
    "approved_by",
    "approved_at",
    "released_by",
    "released_at",
    "principal_notes",
)


class Cohort(t.NamedTuple):
    """The records that are ranked against one another."""

    school_id: SchoolID
    class_id: ClassID
    subject_id: SubjectID
    term: str
    exam_type: ExamType

    @classmethod
    def of(cls, grade: GradeRecord) -> Cohort:
        return cls(grade.school_id, grade.class_id, grade.subject_id, grade.term, grade.exam_type)


class GradeCreateParams(t.TypedDict, total=False):
    school_id: SchoolID | None
    submission_id: SubmissionID | None
    student_id: t.Required[StudentID]
    subject_id: t.Required[SubjectID]
    class_id: t.Required[ClassID]
    term: t.Required[str]
    exam_type: t.Required[ExamType]
    max_score: t.Required[float]
    score: float | None
    is_absent: bool
    entry_order: int
    submitted_by: t.Required[UserID]


def get(
    grade_id: GradeID,
    *,
    context: TenantContext,
    with_overrides: bool = False,
    for_update: bool = False,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeRecord | None:
    """Get a grade by ID, or None if it does not exist within the actor's reach."""
    stmt = scope_query(
        sqla.select(grades.__table__).where(grades.grade_id == grade_id),
        context,
        grades.school_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    row = session.execute(stmt).mappings().one_or_none()
    if row is None:
        return None

    grade = GradeRecord(**row)
    if with_overrides:
        grade = grade.evolve(override_history=list(override.find(grade_id=grade.grade_id, session=session)))
    return grade


def find(
    *,
    context: TenantContext,
    school_id: SchoolID | None = None,
    class_id: ClassID | None = None,
    subject_id: SubjectID | None = None,
    student_id: StudentID | None = None,
    term: str | None = None,
    exam_type: ExamType | None = None,
    submission_id: SubmissionID | None = None,
    class_ids: t.Collection[ClassID] | None = None,
    student_ids: t.Collection[StudentID] | None = None,
    statuses: t.Collection[GradeStatus] | None = None,
    for_update: bool = False,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeRecord, ...]:
    """Find grades matching every given criterion.

    `class_ids`, `student_ids` and `statuses` restrict to membership in the
    collection; an empty collection matches nothing.
    """
    stmt = scope_query(sqla.select(grades.__table__), context, grades.school_id)
    stmt = stmt.order_by(grades.class_id, grades.subject_id, grades.position.nulls_last(), grades.student_id)

    if school_id is not None:
        stmt = stmt.where(grades.school_id == school_id)
    if class_id is not None:
        stmt = stmt.where(grades.class_id == class_id)
    if subject_id is not None:
        stmt = stmt.where(grades.subject_id == subject_id)
    if student_id is not None:
        stmt = stmt.where(grades.student_id == student_id)
    if term is not None:
        stmt = stmt.where(grades.term == term)
    if exam_type is not None:
        stmt = stmt.where(grades.exam_type == exam_type)
    if submission_id is not None:
        stmt = stmt.where(grades.submission_id == submission_id)
    if class_ids is not None:
        stmt = stmt.where(grades.class_id.in_(list(class_ids)))
    if student_ids is not None:
        stmt = stmt.where(grades.student_id.in_(list(student_ids)))
    if statuses is not None:
        stmt = stmt.where(grades.status.in_(list(statuses)))
    if for_update:
        stmt = stmt.with_for_update()

    rows = session.execute(stmt).mappings().all()
    return tuple(GradeRecord(**row) for row in rows)


def find_cohort(
    cohort: Cohort,
    *,
    context: TenantContext,
    for_update: bool = False,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeRecord, ...]:
    """All records of a cohort, in the order they were entered."""
    stmt = scope_query(sqla.select(grades.__table__), context, grades.school_id)
    stmt = stmt.where(
        grades.school_id == cohort.school_id,
        grades.class_id == cohort.class_id,
        grades.subject_id == cohort.subject_id,
        grades.term == cohort.term,
        grades.exam_type == cohort.exam_type,
    ).order_by(grades.entry_order, grades.create_time, grades.student_id)
    if for_update:
        stmt = stmt.with_for_update()
    rows = session.execute(stmt).mappings().all()
    return tuple(GradeRecord(**row) for row in rows)


def find_existing(
    cohort: Cohort,
    student_ids: t.Collection[StudentID],
    *,
    context: TenantContext,
    session: Session = di.Provide["storage.persistent.session"],
) -> dict[StudentID, GradeRecord]:
    """Records already entered for `student_ids` in `cohort`, keyed by student."""
    if not student_ids:
        return {}
    return {
        g.student_id: g
        for g in find(
            context=context,
            school_id=cohort.school_id,
            class_id=cohort.class_id,
            subject_id=cohort.subject_id,
            term=cohort.term,
            exam_type=cohort.exam_type,
            student_ids=student_ids,
            session=session,
        )
    }


def last_entry_order(
    cohort: Cohort,
    *,
    context: TenantContext,
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    """The highest entry order used in `cohort` so far, 0 if it is empty."""
    stmt = scope_query(sqla.select(sqla.func.max(grades.entry_order)), context, grades.school_id).where(
        grades.school_id == cohort.school_id,
        grades.class_id == cohort.class_id,
        grades.subject_id == cohort.subject_id,
        grades.term == cohort.term,
        grades.exam_type == cohort.exam_type,
    )
    return session.execute(stmt).scalar_one_or_none() or 0


def create(
    params: GradeCreateParams,
    *,
    context: TenantContext,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeRecord:
    values = stamp(dict(params), context)
    grade = grades(
        grade_id=GradeID(),
        school_id=values["school_id"],
        submission_id=values.get("submission_id"),
        student_id=values["student_id"],
        subject_id=values["subject_id"],
        class_id=values["class_id"],
        term=values["term"],
        exam_type=values["exam_type"],
        max_score=values["max_score"],
        score=values.get("score"),
        is_absent=values.get("is_absent", False),
        entry_order=values.get("entry_order", 0),
        submitted_by=values["submitted_by"],
    )
    session.add(grade)
    session.flush()
    return get(grade.grade_id, context=context, session=session)  # type: ignore[return-value]


def save(
    grade: GradeRecord,
    *,
    context: TenantContext,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeRecord:
    """Persist the mutable fields of `grade`.

    Raises:
        KeyError: If the grade does not exist within the actor's school
    """
    values = {name: getattr(grade, name) for name in _Mutable}
    stmt = sqla.update(grades).where(grades.grade_id == grade.grade_id).values(**values)
    if not context.is_system_admin:
        stmt = stmt.where(grades.school_id == resolve_school(context))

    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Grade {grade.grade_id} not found")

    session.flush()
    return get(grade.grade_id, context=context, session=session)  # type: ignore[return-value]


def count_by_status(
    *,
    context: TenantContext,
    school_id: SchoolID | None = None,
    term: str | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> dict[GradeStatus, int]:
    stmt = scope_query(
        sqla.select(grades.status, sqla.func.count()).group_by(grades.status),
        context,
        grades.school_id,
    )
    if school_id is not None:
        stmt = stmt.where(grades.school_id == school_id)
    if term is not None:
        stmt = stmt.where(grades.term == term)
    counts = {status: 0 for status in GradeStatus}
    for status, n in session.execute(stmt).all():
        counts[status] = n
    return counts
