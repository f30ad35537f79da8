"""Released grades are read-only; corrections go through overrides."""

from __future__ import annotations

import datetime

from edufam.model import GradeOverride, GradeRecord, OverrideID, OverrideStatus, TenantContext

from .capability import Action, capabilities_for
from .errors import GradingError, ImmutableRecordError, OverrideDecidedError, PermissionDeniedError, RowIssue, \
    ValidationError
from .ranking import letter_grade, percentage


def assert_mutable(grade: GradeRecord) -> None:
    # no bypass for any role: a released grade only changes through an approved override
    if grade.is_immutable:
        raise ImmutableRecordError(str(grade.grade_id))


def create_override(
    grade: GradeRecord,
    new_score: float,
    reason: str,
    requester: TenantContext,
    *,
    now: datetime.datetime | None = None,
) -> GradeOverride:
    """Open a pending correction request against `grade`.

    Teachers may request corrections to grades they entered; principals may
    request them for any grade of their school.
    """
    caps = capabilities_for(requester.role)
    if not (caps.override or caps.edit):
        raise PermissionDeniedError(requester.role.value, "correct")
    if not caps.override and grade.submitted_by != requester.user_id:
        raise PermissionDeniedError(requester.role.value, "correct", "only the submitting teacher may")
    if not reason.strip():
        raise ValidationError([RowIssue(0, str(grade.student_id), "a reason is required for a correction")])
    if new_score < 0 or new_score > grade.max_score:
        raise ValidationError(
            [RowIssue(0, str(grade.student_id), f"score must be between 0 and {grade.max_score:g}")]
        )

    return GradeOverride(
        override_id=OverrideID(),
        grade_id=grade.grade_id,
        school_id=grade.school_id,
        original_score=grade.score,
        new_score=new_score,
        reason=reason.strip(),
        requested_by=requester.user_id,
        status=OverrideStatus.Pending,
        create_time=now,
    )


def decide_override(
    override: GradeOverride,
    approve: bool,
    actor: TenantContext,
    *,
    now: datetime.datetime,
) -> GradeOverride:
    if not capabilities_for(actor.role).allows(Action.Override):
        raise PermissionDeniedError(actor.role.value, "approve corrections to")
    if override.status is not OverrideStatus.Pending:
        raise OverrideDecidedError(str(override.override_id), override.status)
    return override.evolve(
        status=OverrideStatus.Approved if approve else OverrideStatus.Rejected,
        approved_by=actor.user_id,
        decided_at=now,
    )


def apply_override(grade: GradeRecord, override: GradeOverride) -> GradeRecord:
    """The grade as it reads once `override` is approved.

    The released state and lock are preserved; only the effective score moves.
    Position is recomputed by re-ranking the cohort.
    """
    if override.status is not OverrideStatus.Approved:
        raise GradingError("only approved corrections can be applied")
    pct = percentage(override.new_score, grade.max_score)
    return grade.evolve(
        score=override.new_score,
        is_absent=False,
        percentage=pct,
        letter_grade=letter_grade(pct),
        override_history=[*grade.override_history, override],
    )
