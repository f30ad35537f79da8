"""Grading workflows over persisted records.

Every operation runs in one transaction and only returns once it has
committed; a failure anywhere leaves the database as it was. Audit entries
are written after the commit and are best effort: losing one is logged, it
never fails the operation it describes.
"""

from __future__ import annotations

import contextlib
import datetime
import logging
import typing as t

import sqlalchemy.exc
from sqlalchemy.orm import Session

from edufam.core import di
from edufam.core.config import GradingSettings
from edufam.lib.retry import CircuitBreaker, CircuitOpenError, retry
from edufam.model import BulkGradeSubmission, BulkValidationPolicy, ClassID, ExamType, GradeID, GradeOverride, \
    GradeRecord, GradeStatus, OverrideID, SchoolID, StudentID, SubjectID, SubmissionID, SubmissionStatus, \
    TenantContext
from edufam.storage import audit as audit_storage
from edufam.storage import grade as grade_storage
from edufam.storage import override as override_storage
from edufam.storage import submission as submission_storage
from edufam.storage.grade import Cohort

from . import guard, lifecycle
from .capability import Action, capabilities_for, ViewScope
from .errors import ImmutableRecordError, InvalidTransitionError, NotFoundError, PermissionDeniedError, RowIssue, \
    ValidationError
from .ranking import aggregate, Entry, rank
from .scope import assert_same_tenant, stamp

logger = logging.getLogger(__name__)

_audit_circuit = CircuitBreaker("audit", threshold=5, reset_after=30.0)


class BulkRow(t.TypedDict, total=False):
    student_id: t.Required[StudentID]
    score: float | None
    is_absent: bool


class BulkUpload(t.TypedDict, total=False):
    school_id: SchoolID | None
    class_id: t.Required[ClassID]
    subject_id: t.Required[SubjectID]
    term: t.Required[str]
    exam_type: t.Required[ExamType]
    max_score: t.Required[float]
    rows: t.Required[t.Sequence[BulkRow]]


class UploadResult(t.NamedTuple):
    submission: BulkGradeSubmission
    grades: tuple[GradeRecord, ...]
    # rows that were left alone: invalid (skip_invalid only) or no longer editable
    skipped: tuple[RowIssue, ...] = ()


class GradeFilter(t.TypedDict, total=False):
    class_id: ClassID
    subject_id: SubjectID
    student_id: StudentID
    term: str
    exam_type: ExamType
    status: GradeStatus


class _AuditRecord(t.TypedDict, total=False):
    action: t.Required[str]
    target: t.Required[str]
    school_id: SchoolID | None
    old_value: dict[str, t.Any] | None
    new_value: dict[str, t.Any] | None


# Bulk upload


def upload_bulk(
    payload: BulkUpload,
    context: TenantContext,
    *,
    settings: GradingSettings | None = None,
    now: datetime.datetime | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> UploadResult:
    """Enter a cohort's scores and rank them.

    New students get draft records; students whose record is still draft are
    edited in place. Records that have moved on (submitted, approved,
    released) are left untouched and reported in `UploadResult.skipped`.

    Raises:
        PermissionDeniedError: if the actor cannot create grades for the class
        ValidationError: if any row is invalid and the policy is `reject_all`
    """
    settings = settings or GradingSettings()
    now = now or _utcnow()

    caps = capabilities_for(context.role)
    if not caps.create:
        raise PermissionDeniedError(context.role.value, Action.Create.value)
    if caps.view_scope is ViewScope.OwnClasses and payload["class_id"] not in context.class_ids:
        raise PermissionDeniedError(context.role.value, Action.Create.value, "you are not assigned to this class")

    school_id = stamp({"school_id": payload.get("school_id")}, context)["school_id"]
    cohort = Cohort(school_id, payload["class_id"], payload["subject_id"], payload["term"], payload["exam_type"])
    max_score = payload["max_score"]

    rows, issues = _validate_rows(payload["rows"], max_score)
    if issues:
        if settings.bulk_validation is BulkValidationPolicy.RejectAll:
            raise ValidationError(issues)
        logger.warning(
            "skipping invalid rows in bulk upload",
            extra={"cohort": cohort._asdict(), "skipped": len(issues), "accepted": len(rows)},
        )

    skipped = list(issues)
    with _transaction(session):
        submission = _open_submission(cohort, max_score, context, session=session)
        if submission.max_score != max_score:
            raise ValidationError([
                RowIssue(-1, None, f"max score must stay {submission.max_score:g} for this submission"),
            ])

        existing = grade_storage.find_existing(
            cohort, [row["student_id"] for _, row in rows], context=context, session=session
        )
        # new rows rank after those already in the cohort, in upload order
        first_entry = grade_storage.last_entry_order(cohort, context=context, session=session) + 1

        touched: set[GradeID] = set()
        for index, row in rows:
            record = existing.get(row["student_id"])
            if record is None:
                created = _insert_grade(
                    {
                        "school_id": school_id,
                        "submission_id": submission.submission_id,
                        "student_id": row["student_id"],
                        "subject_id": cohort.subject_id,
                        "class_id": cohort.class_id,
                        "term": cohort.term,
                        "exam_type": cohort.exam_type,
                        "max_score": max_score,
                        "score": row.get("score"),
                        "is_absent": row.get("is_absent", False),
                        "entry_order": first_entry + index,
                        "submitted_by": context.user_id,
                    },
                    context,
                    session=session,
                )
                if created is not None:
                    touched.add(created.grade_id)
                    continue
                # entered by a concurrent upload; this row edits that record instead
                record = grade_storage.find_existing(
                    cohort, [row["student_id"]], context=context, session=session
                )[row["student_id"]]

            try:
                edited = lifecycle.transition(
                    record,
                    Action.Edit,
                    context,
                    now=now,
                    edit={"score": row.get("score"), "is_absent": row.get("is_absent", False)},
                )
            except (ImmutableRecordError, InvalidTransitionError, PermissionDeniedError) as e:
                skipped.append(RowIssue(index, str(row["student_id"]), str(e)))
                continue
            grade_storage.save(edited.evolve(submission_id=submission.submission_id), context=context, session=session)
            touched.add(edited.grade_id)

        _rerank(cohort, context, recompute=touched, session=session)
        submission = _refresh_submission(submission.submission_id, context, session=session)
        grades = grade_storage.find(context=context, submission_id=submission.submission_id, session=session)

    _audit(
        session,
        context,
        [
            {
                "action": "grades.upload",
                "target": str(submission.submission_id),
                "school_id": submission.school_id,
                "new_value": {
                    "entered": len(touched),
                    "skipped": len(skipped),
                    "max_score": max_score,
                },
            }
        ],
        settings=settings,
    )
    return UploadResult(submission=submission, grades=grades, skipped=tuple(skipped))


def _validate_rows(
    rows: t.Sequence[BulkRow], max_score: float
) -> tuple[list[tuple[int, BulkRow]], list[RowIssue]]:
    """Split rows into (index, row) pairs that may be saved and the issues of those that may not."""
    issues: list[RowIssue] = []
    if isinstance(max_score, bool) or not isinstance(max_score, (int, float)) or max_score < 0:
        return [], [RowIssue(-1, None, "max score must be a number no lower than 0")]

    valid: list[tuple[int, BulkRow]] = []
    seen: set[StudentID] = set()
    for index, row in enumerate(rows):
        student_id = row["student_id"]
        if student_id in seen:
            issues.append(RowIssue(index, str(student_id), "student appears more than once"))
            continue
        seen.add(student_id)

        if row.get("is_absent", False):
            valid.append((index, {**row, "score": None}))
            continue
        try:
            lifecycle.validate_score(row.get("score"), max_score, index=index, student_id=str(student_id))
        except ValidationError as e:
            issues.extend(e.issues)
            continue
        valid.append((index, row))
    return valid, issues


# Workflow transitions


def submit(
    grade_ids: t.Sequence[GradeID],
    context: TenantContext,
    *,
    settings: GradingSettings | None = None,
    now: datetime.datetime | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeRecord, ...]:
    return _transition_many(grade_ids, Action.Submit, context, settings=settings, now=now, session=session)


def approve(
    grade_ids: t.Sequence[GradeID],
    context: TenantContext,
    *,
    settings: GradingSettings | None = None,
    now: datetime.datetime | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeRecord, ...]:
    return _transition_many(grade_ids, Action.Approve, context, settings=settings, now=now, session=session)


def reject(
    grade_ids: t.Sequence[GradeID],
    context: TenantContext,
    reason: str,
    *,
    settings: GradingSettings | None = None,
    now: datetime.datetime | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeRecord, ...]:
    if not reason or not reason.strip():
        raise ValidationError([RowIssue(-1, None, "a reason is required to send grades back")])
    return _transition_many(
        grade_ids, Action.Reject, context, reason=reason.strip(), settings=settings, now=now, session=session
    )


def release(
    grade_ids: t.Sequence[GradeID],
    context: TenantContext,
    *,
    settings: GradingSettings | None = None,
    now: datetime.datetime | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeRecord, ...]:
    return _transition_many(grade_ids, Action.Release, context, settings=settings, now=now, session=session)


def _transition_many(
    grade_ids: t.Sequence[GradeID],
    action: Action,
    context: TenantContext,
    *,
    reason: str | None = None,
    settings: GradingSettings | None,
    now: datetime.datetime | None,
    session: Session,
) -> tuple[GradeRecord, ...]:
    """Apply `action` to every grade or to none of them."""
    now = now or _utcnow()
    ids = list(dict.fromkeys(grade_ids))
    if not ids:
        raise ValidationError([RowIssue(-1, None, "no grades were selected")])

    audit: list[_AuditRecord] = []
    with _transaction(session):
        cohorts: dict[Cohort, None] = {}
        submissions: dict[SubmissionID, None] = {}
        for grade_id in ids:
            grade = _load_for_write(grade_id, context, session=session)
            updated = lifecycle.transition(grade, action, context, now=now, reason=reason)
            grade_storage.save(updated, context=context, session=session)

            cohorts[Cohort.of(updated)] = None
            if updated.submission_id is not None:
                submissions[updated.submission_id] = None
            new_value: dict[str, t.Any] = {"status": updated.status.value}
            if reason:
                new_value["reason"] = reason
            audit.append({
                "action": f"grade.{action.value}",
                "target": str(grade_id),
                "school_id": grade.school_id,
                "old_value": {"status": grade.status.value},
                "new_value": new_value,
            })

        # release never moves positions; released records are locked
        if action in (Action.Submit, Action.Approve, Action.Reject):
            for cohort in cohorts:
                _rerank(cohort, context, session=session)
        for submission_id in submissions:
            _refresh_submission(submission_id, context, session=session)

        results = tuple(_get_or_raise(grade_id, context, session=session) for grade_id in ids)

    _audit(session, context, audit, settings=settings)
    logger.info(
        f"{action.value} applied to grades",
        extra={"user_id": str(context.user_id), "count": len(results)},
    )
    return results


# Single-record edits and corrections


def edit_grade(
    grade_id: GradeID,
    context: TenantContext,
    *,
    score: float | None = None,
    is_absent: bool = False,
    settings: GradingSettings | None = None,
    now: datetime.datetime | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeRecord:
    """Change the score of a draft grade and re-rank its cohort.

    Raises:
        ImmutableRecordError: if the grade has been released
    """
    now = now or _utcnow()
    with _transaction(session):
        grade = _load_for_write(grade_id, context, session=session)
        updated = lifecycle.transition(
            grade, Action.Edit, context, now=now, edit={"score": score, "is_absent": is_absent}
        )
        grade_storage.save(updated, context=context, session=session)
        _rerank(Cohort.of(updated), context, recompute={grade_id}, session=session)
        if updated.submission_id is not None:
            _refresh_submission(updated.submission_id, context, session=session)
        result = _get_or_raise(grade_id, context, session=session)

    _audit(
        session,
        context,
        [
            {
                "action": "grade.edit",
                "target": str(grade_id),
                "school_id": grade.school_id,
                "old_value": {"score": grade.score, "is_absent": grade.is_absent},
                "new_value": {"score": result.score, "is_absent": result.is_absent},
            }
        ],
        settings=settings,
    )
    return result


def request_override(
    grade_id: GradeID,
    context: TenantContext,
    *,
    new_score: float,
    reason: str,
    settings: GradingSettings | None = None,
    now: datetime.datetime | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeOverride:
    """Ask for a correction to a released grade."""
    now = now or _utcnow()
    with _transaction(session):
        grade = _load_for_write(grade_id, context, session=session)
        if not grade.is_immutable:
            raise InvalidTransitionError(grade.status, "request a correction for")
        override = guard.create_override(grade, new_score, reason, context, now=now)
        override = override_storage.create(override, context=context, session=session)

    _audit(
        session,
        context,
        [
            {
                "action": "override.request",
                "target": str(grade_id),
                "school_id": grade.school_id,
                "old_value": {"score": grade.score},
                "new_value": {"score": new_score, "override_id": str(override.override_id), "reason": override.reason},
            }
        ],
        settings=settings,
    )
    return override


def decide_override(
    override_id: OverrideID,
    context: TenantContext,
    *,
    approve: bool,
    settings: GradingSettings | None = None,
    now: datetime.datetime | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeOverride, GradeRecord]:
    """Approve or reject a pending correction.

    Approval moves the grade to the corrected score and re-ranks its cohort in
    the same transaction.
    """
    now = now or _utcnow()
    with _transaction(session):
        override = override_storage.get(override_id, context=context, for_update=True, session=session)
        if override is None:
            raise NotFoundError("correction", str(override_id))
        grade = _load_for_write(override.grade_id, context, session=session)

        decided = guard.decide_override(override, approve, context, now=now)
        decided = override_storage.save_decision(decided, context=context, session=session)
        if approve:
            corrected = guard.apply_override(grade, decided)
            grade_storage.save(corrected, context=context, session=session)
            _rerank(Cohort.of(corrected), context, via_override=True, session=session)
            if corrected.submission_id is not None:
                _refresh_submission(corrected.submission_id, context, session=session)
        result = _get_or_raise(grade.grade_id, context, with_overrides=True, session=session)

    _audit(
        session,
        context,
        [
            {
                "action": f"override.{'approve' if approve else 'reject'}",
                "target": str(grade.grade_id),
                "school_id": grade.school_id,
                "old_value": {"score": grade.score},
                "new_value": {"score": result.score, "override_id": str(override_id)},
            }
        ],
        settings=settings,
    )
    return decided, result


# Reads


def get_grade(
    grade_id: GradeID,
    context: TenantContext,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeRecord:
    """Raises NotFoundError for grades outside the actor's view, as for missing ones."""
    caps = capabilities_for(context.role)
    if not caps.view_detailed:
        raise PermissionDeniedError(context.role.value, "view")
    with _transaction(session):
        grade = _get_or_raise(grade_id, context, with_overrides=True, session=session)
    if not _can_see(grade, context):
        raise NotFoundError("grade", str(grade_id))
    return grade


def find_grades(
    context: TenantContext,
    filters: GradeFilter | None = None,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeRecord, ...]:
    """Grades the actor may see, narrowed by `filters`.

    Teachers see their own classes and parents their children's released
    grades; principals see their whole school.
    """
    caps = capabilities_for(context.role)
    if not caps.view_detailed:
        raise PermissionDeniedError(context.role.value, "view")

    filters = filters or {}
    criteria: dict[str, t.Any] = {
        "class_id": filters.get("class_id"),
        "subject_id": filters.get("subject_id"),
        "student_id": filters.get("student_id"),
        "term": filters.get("term"),
        "exam_type": filters.get("exam_type"),
    }
    if (status := filters.get("status")) is not None:
        criteria["statuses"] = [status]

    match caps.view_scope:
        case ViewScope.OwnClasses:
            criteria["class_ids"] = context.class_ids
        case ViewScope.Children:
            criteria["student_ids"] = context.student_ids
            if status not in (None, GradeStatus.Released):
                return ()
            criteria["statuses"] = [GradeStatus.Released]
        case ViewScope.Nothing:
            return ()
        case _:
            pass

    with _transaction(session):
        return grade_storage.find(context=context, session=session, **criteria)


def get_submission(
    submission_id: SubmissionID,
    context: TenantContext,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[BulkGradeSubmission, tuple[GradeRecord, ...]]:
    caps = capabilities_for(context.role)
    # summary-only roles never see per-student scores
    if not caps.view_detailed or caps.view_scope not in (ViewScope.OwnClasses, ViewScope.School, ViewScope.All):
        raise PermissionDeniedError(context.role.value, "view")
    with _transaction(session):
        submission = submission_storage.get(submission_id, context=context, session=session)
        if submission is None or (
            caps.view_scope is ViewScope.OwnClasses and submission.class_id not in context.class_ids
        ):
            raise NotFoundError("submission", str(submission_id))
        grades = grade_storage.find(context=context, submission_id=submission_id, session=session)
    return submission, grades


def find_overrides(
    grade_id: GradeID,
    context: TenantContext,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeOverride, ...]:
    grade = get_grade(grade_id, context, session=session)
    return tuple(grade.override_history)


# Internals


@contextlib.contextmanager
def _transaction(session: Session) -> t.Iterator[None]:
    # callers that already hold a transaction get a savepoint instead
    if session.in_transaction():
        with session.begin_nested():
            yield
    else:
        with session.begin():
            yield


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def _open_submission(
    cohort: Cohort, max_score: float, context: TenantContext, *, session: Session
) -> BulkGradeSubmission:
    """Lock the cohort's submission, creating it on the first upload."""
    submission = submission_storage.get(cohort=cohort, context=context, for_update=True, session=session)
    if submission is not None:
        return submission
    try:
        with session.begin_nested():
            return submission_storage.create(
                cohort, max_score=max_score, submitted_by=context.user_id, context=context, session=session
            )
    except sqlalchemy.exc.IntegrityError:
        # another upload created it between our read and insert
        logger.info("submission created concurrently", extra={"cohort": cohort._asdict()})
        submission = submission_storage.get(cohort=cohort, context=context, for_update=True, session=session)
        if submission is None:
            raise
        return submission


def _insert_grade(
    params: grade_storage.GradeCreateParams, context: TenantContext, *, session: Session
) -> GradeRecord | None:
    """Create a grade, or return None if another upload entered the same student first."""
    try:
        with session.begin_nested():
            return grade_storage.create(params, context=context, session=session)
    except sqlalchemy.exc.IntegrityError:
        logger.info(
            "grade entered concurrently",
            extra={"student_id": str(params["student_id"]), "class_id": str(params["class_id"])},
        )
        return None


def _get_or_raise(
    grade_id: GradeID, context: TenantContext, *, with_overrides: bool = False, session: Session
) -> GradeRecord:
    grade = grade_storage.get(grade_id, context=context, with_overrides=with_overrides, session=session)
    if grade is None:
        raise NotFoundError("grade", str(grade_id))
    return grade


def _load_for_write(grade_id: GradeID, context: TenantContext, *, session: Session) -> GradeRecord:
    grade = grade_storage.get(grade_id, context=context, for_update=True, session=session)
    if grade is None:
        raise NotFoundError("grade", str(grade_id))
    assert_same_tenant(grade.school_id, context, kind="grade", key=str(grade_id))
    if not _can_see(grade, context):
        raise NotFoundError("grade", str(grade_id))
    return grade


def _can_see(grade: GradeRecord, context: TenantContext) -> bool:
    match capabilities_for(context.role).view_scope:
        case ViewScope.OwnClasses:
            return grade.class_id in context.class_ids or grade.submitted_by == context.user_id
        case ViewScope.Children:
            return grade.student_id in context.student_ids and grade.status is GradeStatus.Released
        case ViewScope.School | ViewScope.All:
            return True
        case _:
            return False


def _rerank(
    cohort: Cohort,
    context: TenantContext,
    *,
    recompute: t.Collection[GradeID] = (),
    via_override: bool = False,
    session: Session,
) -> None:
    """Recompute positions of a cohort from its persisted scores.

    A draft without a percentage was sent back by a reviewer and stays out of
    the ranking until it is edited or resubmitted, unless it is listed in
    `recompute`. Released records keep their position unless the re-rank is
    part of an approved correction.
    """
    members = grade_storage.find_cohort(cohort, context=context, for_update=True, session=session)
    if not members:
        return

    def awaiting(g: GradeRecord) -> bool:
        return g.status is GradeStatus.Draft and g.percentage is None and g.grade_id not in recompute

    ranked = {
        r.student_id: r
        for r in rank(
            [Entry(g.student_id, g.score, g.is_absent) for g in members if not awaiting(g)],
            members[0].max_score,
        )
    }

    for g in members:
        if g.is_immutable and not via_override:
            continue
        r = ranked.get(g.student_id)
        if r is None:
            continue
        changes = {"percentage": r.percentage, "position": r.position, "letter_grade": r.letter_grade}
        if any(getattr(g, k) != v for k, v in changes.items()):
            grade_storage.save(g.evolve(**changes), context=context, session=session)


def _refresh_submission(
    submission_id: SubmissionID, context: TenantContext, *, session: Session
) -> BulkGradeSubmission:
    members = grade_storage.find(context=context, submission_id=submission_id, session=session)
    stats = aggregate(Entry(g.student_id, g.score, g.is_absent) for g in members)
    statuses = {g.status for g in members}

    editable = {GradeStatus.Draft, GradeStatus.Rejected}
    reviewed = {GradeStatus.Approved, GradeStatus.Released}
    if statuses and not statuses & editable and statuses & reviewed:
        status = SubmissionStatus.Approved
    elif statuses & (reviewed | {GradeStatus.PendingApproval}):
        status = SubmissionStatus.Submitted
    else:
        status = SubmissionStatus.Draft

    return submission_storage.save_aggregates(
        submission_id,
        {
            "status": status,
            "total_students": len(members),
            "grades_entered": stats.count,
            "total_score": stats.total,
            "average_score": round(stats.average, 2),
        },
        context=context,
        session=session,
    )


def _audit(
    session: Session,
    context: TenantContext,
    records: list[_AuditRecord],
    *,
    settings: GradingSettings | None,
) -> None:
    """Write audit entries after the fact; failures are logged and swallowed."""
    if not records:
        return
    attempts = (settings or GradingSettings()).audit_retry_attempts

    @retry(attempts, exceptions=(sqlalchemy.exc.OperationalError,))
    def write() -> None:
        with _transaction(session):
            for record in records:
                audit_storage.create(context=context, session=session, **record)

    try:
        _audit_circuit.call(write)
    except CircuitOpenError as e:
        logger.warning(
            "audit sink unavailable, entries dropped",
            extra={"entries": [r["action"] for r in records], "retry_after": e.retry_after},
        )
    except Exception:
        # the operation has already committed
        logger.exception(
            "could not write audit entries",
            extra={"entries": [r["action"] for r in records], "user_id": str(context.user_id)},
        )
