from __future__ import annotations

import typing as t

import sqlalchemy as sqla

from edufam.core import di
from edufam.grading.scope import resolve_school, scope_query, stamp
from edufam.model import BulkGradeSubmission, SubmissionID, SubmissionStatus, TenantContext, UserID

from . import Session
from .grade import Cohort
from .table import grade_submissions


def get(
    submission_id: SubmissionID | None = None,
    *,
    cohort: Cohort | None = None,
    context: TenantContext,
    for_update: bool = False,
    session: Session = di.Provide["storage.persistent.session"],
) -> BulkGradeSubmission | None:
    """Get a submission by ID or by the cohort it covers.

    Exactly one of submission_id or cohort must be provided.
    """
    if submission_id is None and cohort is None:
        raise ValueError("Either submission_id or cohort must be provided")
    if submission_id is not None and cohort is not None:
        raise ValueError("Only one of submission_id or cohort should be provided")

    stmt = scope_query(sqla.select(grade_submissions.__table__), context, grade_submissions.school_id)
    if submission_id is not None:
        stmt = stmt.where(grade_submissions.submission_id == submission_id)
    else:
        assert cohort is not None
        stmt = stmt.where(
            grade_submissions.school_id == cohort.school_id,
            grade_submissions.class_id == cohort.class_id,
            grade_submissions.subject_id == cohort.subject_id,
            grade_submissions.term == cohort.term,
            grade_submissions.exam_type == cohort.exam_type,
        )
    if for_update:
        stmt = stmt.with_for_update()

    row = session.execute(stmt).mappings().one_or_none()
    return BulkGradeSubmission(**row) if row else None


def create(
    cohort: Cohort,
    *,
    max_score: float,
    submitted_by: UserID,
    context: TenantContext,
    session: Session = di.Provide["storage.persistent.session"],
) -> BulkGradeSubmission:
    values = stamp({"school_id": cohort.school_id}, context)
    submission_id = SubmissionID()
    stmt = sqla.insert(grade_submissions).values(
        submission_id=submission_id,
        school_id=values["school_id"],
        class_id=cohort.class_id,
        subject_id=cohort.subject_id,
        term=cohort.term,
        exam_type=cohort.exam_type,
        max_score=max_score,
        submitted_by=submitted_by,
        status=SubmissionStatus.Draft,
    )
    session.execute(stmt)
    session.flush()
    return get(submission_id, context=context, session=session)  # type: ignore[return-value]


class Aggregates(t.TypedDict):
    status: SubmissionStatus
    total_students: int
    grades_entered: int
    total_score: float
    average_score: float


def save_aggregates(
    submission_id: SubmissionID,
    aggregates: Aggregates,
    *,
    context: TenantContext,
    session: Session = di.Provide["storage.persistent.session"],
) -> BulkGradeSubmission:
    """Store recomputed aggregates for a submission.

    Raises:
        KeyError: If submission_id does not correspond to a submission in the actor's school
    """
    stmt = (
        sqla.update(grade_submissions)
        .where(grade_submissions.submission_id == submission_id)
        .values(**aggregates)
    )
    if not context.is_system_admin:
        stmt = stmt.where(grade_submissions.school_id == resolve_school(context))

    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Submission {submission_id} not found")

    session.flush()
    return get(submission_id, context=context, session=session)  # type: ignore[return-value]
