"""Grade record state machine.

    draft ──submit──▶ pending_approval ──approve──▶ approved ──release──▶ released
      ▲                     │
      └──────reject─────────┘

A rejected grade goes back to draft with its derived fields cleared; the
legacy `rejected` status is still accepted as an editable state. `released` is
terminal: the record is locked and only overrides can change it.

`transition()` is pure. It validates the move and returns the updated record,
leaving persistence to the caller.
"""

from __future__ import annotations

import datetime
import typing as t

from edufam.model import GradeRecord, GradeStatus, Role, TenantContext

from .capability import Action, capabilities_for, ViewScope
from .errors import InvalidTransitionError, PermissionDeniedError, RowIssue, ValidationError
from .guard import assert_mutable
from .ranking import letter_grade, percentage

EditableStates: t.Final = frozenset({GradeStatus.Draft, GradeStatus.Rejected})

# action -> states it may start from
Sources: t.Final[t.Mapping[Action, frozenset[GradeStatus]]] = {
    Action.Submit: frozenset({GradeStatus.Draft}),
    Action.Approve: frozenset({GradeStatus.PendingApproval}),
    Action.Reject: frozenset({GradeStatus.PendingApproval}),
    Action.Release: frozenset({GradeStatus.Approved}),
    Action.Edit: EditableStates,
}


class EditParams(t.TypedDict, total=False):
    score: float | None
    is_absent: bool


def transition(
    grade: GradeRecord,
    action: Action,
    actor: TenantContext,
    *,
    now: datetime.datetime,
    reason: str | None = None,
    edit: EditParams | None = None,
) -> GradeRecord:
    """Apply `action` to `grade` on behalf of `actor`.

    Raises:
        ImmutableRecordError: on edit of a released grade, for any actor
        InvalidTransitionError: if `action` cannot start from the current status
        PermissionDeniedError: if the actor's role does not grant `action`
        ValidationError: if an edit carries an out-of-range score
    """
    if action is Action.Edit:
        assert_mutable(grade)

    if action not in Sources or grade.status not in Sources[action]:
        raise InvalidTransitionError(grade.status, action.value)

    authorize(grade, action, actor)

    match action:
        case Action.Submit:
            return grade.evolve(status=GradeStatus.PendingApproval, submitted_at=now)

        case Action.Approve:
            return grade.evolve(
                status=GradeStatus.Approved,
                approved_by=actor.user_id,
                approved_at=now,
            )

        case Action.Reject:
            return grade.evolve(
                status=GradeStatus.Draft,
                approved_by=None,
                approved_at=None,
                percentage=None,
                position=None,
                letter_grade=None,
                principal_notes=reason,
            )

        case Action.Release:
            return grade.evolve(
                status=GradeStatus.Released,
                is_immutable=True,
                released_by=actor.user_id,
                released_at=now,
            )

        case Action.Edit:
            return _edit(grade, edit or {})

        case _:
            raise InvalidTransitionError(grade.status, action.value)


def authorize(grade: GradeRecord, action: Action, actor: TenantContext) -> None:
    caps = capabilities_for(actor.role)
    role = actor.role.value

    if action is Action.Submit:
        # the teacher who entered a grade may always submit it
        if grade.submitted_by == actor.user_id and caps.submit:
            return
        if not caps.submit:
            raise PermissionDeniedError(role, action.value)
        if actor.role is Role.Teacher:
            raise PermissionDeniedError(role, action.value, "only grades you entered can be submitted")
        return

    if not caps.allows(action):
        raise PermissionDeniedError(role, action.value)

    if action is Action.Edit and caps.view_scope is ViewScope.OwnClasses:
        if grade.submitted_by != actor.user_id:
            raise PermissionDeniedError(role, action.value, "only grades you entered can be edited")


def validate_score(score: float | None, max_score: float, *, index: int = 0, student_id: str | None = None) -> None:
    if score is None:
        return
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValidationError([RowIssue(index, student_id, f"score {score!r} is not a number")])
    if score != score:  # NaN
        raise ValidationError([RowIssue(index, student_id, "score is not a number")])
    if score < 0:
        raise ValidationError([RowIssue(index, student_id, "score cannot be negative")])
    if score > max_score:
        raise ValidationError([RowIssue(index, student_id, f"score cannot exceed {max_score:g}")])


def _edit(grade: GradeRecord, params: EditParams) -> GradeRecord:
    is_absent = params.get("is_absent", grade.is_absent)
    score = None if is_absent else params.get("score", grade.score)
    validate_score(score, grade.max_score, student_id=str(grade.student_id))

    pct = percentage(score, grade.max_score) if score is not None else None
    return grade.evolve(
        status=GradeStatus.Draft,
        score=score,
        is_absent=is_absent,
        percentage=pct,
        letter_grade=letter_grade(pct),
        # position is cohort-relative; it is restored when the cohort is re-ranked
        position=None,
    )
