"""Tests for edufam.grading.lifecycle module."""

from __future__ import annotations

import datetime
import typing as t

import pytest

from edufam.grading.capability import Action
from edufam.grading.errors import ImmutableRecordError, InvalidTransitionError, PermissionDeniedError, \
    ValidationError
from edufam.grading.lifecycle import transition, validate_score
from edufam.model import ClassID, ExamType, GradeID, GradeRecord, GradeStatus, Role, SchoolID, StudentID, \
    SubjectID, TenantContext, UserID

NOW = datetime.datetime(2026, 3, 1, 9, 0, tzinfo=datetime.UTC)
SCHOOL = SchoolID()
CLASS = ClassID()

teacher = TenantContext(user_id=UserID(), role=Role.Teacher, school_id=SCHOOL, class_ids=frozenset({CLASS}))
other_teacher = TenantContext(user_id=UserID(), role=Role.Teacher, school_id=SCHOOL, class_ids=frozenset({CLASS}))
principal = TenantContext(user_id=UserID(), role=Role.Principal, school_id=SCHOOL)
owner = TenantContext(user_id=UserID(), role=Role.SchoolOwner, school_id=SCHOOL)
admin = TenantContext(user_id=UserID(), role=Role.SystemAdmin)


def make_grade(**changes: t.Any) -> GradeRecord:
    values: dict[str, t.Any] = {
        "grade_id": GradeID(),
        "school_id": SCHOOL,
        "student_id": StudentID(),
        "subject_id": SubjectID(),
        "class_id": CLASS,
        "term": "2026-T1",
        "exam_type": ExamType.EndTerm,
        "max_score": 100.0,
        "score": 80.0,
        "percentage": 80.0,
        "position": 1,
        "letter_grade": "A",
        "submitted_by": teacher.user_id,
    }
    values.update(changes)
    return GradeRecord(**values)


class TestHappyPath(object):
    """draft -> pending_approval -> approved -> released."""

    def test_full_lifecycle(self) -> None:
        grade = make_grade()

        grade = transition(grade, Action.Submit, teacher, now=NOW)
        assert grade.status is GradeStatus.PendingApproval
        assert grade.submitted_at == NOW

        grade = transition(grade, Action.Approve, principal, now=NOW)
        assert grade.status is GradeStatus.Approved
        assert grade.approved_by == principal.user_id
        assert grade.approved_at == NOW

        grade = transition(grade, Action.Release, principal, now=NOW)
        assert grade.status is GradeStatus.Released
        assert grade.is_immutable
        assert grade.released_by == principal.user_id

    def test_does_not_mutate_input(self) -> None:
        grade = make_grade()

        transition(grade, Action.Submit, teacher, now=NOW)

        assert grade.status is GradeStatus.Draft


class TestReject(object):
    """Tests for the reject transition."""

    def test_reject_returns_to_draft_and_clears_derived_fields(self) -> None:
        grade = make_grade(status=GradeStatus.PendingApproval)

        rejected = transition(grade, Action.Reject, principal, now=NOW, reason="recheck question 4")

        assert rejected.status is GradeStatus.Draft
        assert rejected.percentage is None
        assert rejected.position is None
        assert rejected.letter_grade is None
        assert rejected.principal_notes == "recheck question 4"
        assert rejected.score == 80.0

    def test_teacher_cannot_reject(self) -> None:
        grade = make_grade(status=GradeStatus.PendingApproval)

        with pytest.raises(PermissionDeniedError):
            transition(grade, Action.Reject, teacher, now=NOW, reason="no")


class TestInvalidTransitions(object):
    """Moves the state machine does not allow."""

    @pytest.mark.parametrize(
        "status, action, actor",
        [
            (GradeStatus.Draft, Action.Approve, principal),
            (GradeStatus.Draft, Action.Release, principal),
            (GradeStatus.PendingApproval, Action.Submit, teacher),
            (GradeStatus.PendingApproval, Action.Release, principal),
            (GradeStatus.Approved, Action.Approve, principal),
            (GradeStatus.Approved, Action.Submit, teacher),
            (GradeStatus.Released, Action.Approve, principal),
            (GradeStatus.Released, Action.Reject, principal),
            (GradeStatus.Released, Action.Release, principal),
        ],
    )
    def test_rejected_moves(self, status: GradeStatus, action: Action, actor: TenantContext) -> None:
        grade = make_grade(status=status, is_immutable=status is GradeStatus.Released)

        with pytest.raises(InvalidTransitionError) as exc:
            transition(grade, action, actor, now=NOW)

        assert exc.value.current_status is status
        assert exc.value.requested_action == action.value

    def test_state_is_checked_before_role(self) -> None:
        grade = make_grade(status=GradeStatus.Approved)

        with pytest.raises(InvalidTransitionError):
            transition(grade, Action.Approve, teacher, now=NOW)


class TestPermissions(object):
    """Role checks on transitions."""

    def test_teacher_cannot_approve(self) -> None:
        with pytest.raises(PermissionDeniedError):
            transition(make_grade(status=GradeStatus.PendingApproval), Action.Approve, teacher, now=NOW)

    def test_teacher_cannot_submit_someone_elses_grade(self) -> None:
        with pytest.raises(PermissionDeniedError, match="only grades you entered"):
            transition(make_grade(), Action.Submit, other_teacher, now=NOW)

    def test_principal_cannot_submit(self) -> None:
        with pytest.raises(PermissionDeniedError):
            transition(make_grade(), Action.Submit, principal, now=NOW)

    @pytest.mark.parametrize("actor", [owner, admin])
    def test_non_grading_roles_cannot_release(self, actor: TenantContext) -> None:
        with pytest.raises(PermissionDeniedError):
            transition(make_grade(status=GradeStatus.Approved), Action.Release, actor, now=NOW)


class TestEdit(object):
    """Tests for the edit action."""

    def test_edit_recomputes_percentage(self) -> None:
        edited = transition(make_grade(), Action.Edit, teacher, now=NOW, edit={"score": 35})

        assert edited.score == 35
        assert edited.percentage == 35.0
        assert edited.letter_grade == "D+"
        assert edited.position is None
        assert edited.status is GradeStatus.Draft

    def test_edit_absent_clears_score(self) -> None:
        edited = transition(make_grade(), Action.Edit, teacher, now=NOW, edit={"is_absent": True, "score": 10})

        assert edited.is_absent
        assert edited.score is None
        assert edited.percentage is None

    def test_legacy_rejected_status_is_editable(self) -> None:
        edited = transition(make_grade(status=GradeStatus.Rejected), Action.Edit, teacher, now=NOW, edit={"score": 1})

        assert edited.status is GradeStatus.Draft

    def test_cannot_edit_under_review(self) -> None:
        with pytest.raises(InvalidTransitionError):
            transition(make_grade(status=GradeStatus.PendingApproval), Action.Edit, teacher, now=NOW, edit={})

    def test_teacher_cannot_edit_someone_elses_grade(self) -> None:
        with pytest.raises(PermissionDeniedError):
            transition(make_grade(), Action.Edit, other_teacher, now=NOW, edit={"score": 1})

    def test_principal_may_edit(self) -> None:
        edited = transition(make_grade(), Action.Edit, principal, now=NOW, edit={"score": 99})

        assert edited.score == 99

    def test_out_of_range_score(self) -> None:
        with pytest.raises(ValidationError) as exc:
            transition(make_grade(), Action.Edit, teacher, now=NOW, edit={"score": 101})

        assert "cannot exceed 100" in exc.value.issues[0].message

    @pytest.mark.parametrize("actor", [teacher, principal, admin])
    def test_released_grade_is_locked_for_everyone(self, actor: TenantContext) -> None:
        grade = make_grade(status=GradeStatus.Released, is_immutable=True)

        with pytest.raises(ImmutableRecordError, match="request a correction"):
            transition(grade, Action.Edit, actor, now=NOW, edit={"score": 10})


class TestValidateScore(object):
    """Tests for validate_score()."""

    @pytest.mark.parametrize("score", [None, 0, 0.5, 100])
    def test_accepts(self, score: float | None) -> None:
        validate_score(score, 100)

    @pytest.mark.parametrize(
        "score, message",
        [
            (-1, "cannot be negative"),
            (100.5, "cannot exceed 100"),
            ("80", "is not a number"),
            (True, "is not a number"),
            (float("nan"), "is not a number"),
        ],
    )
    def test_rejects(self, score: t.Any, message: str) -> None:
        with pytest.raises(ValidationError) as exc:
            validate_score(score, 100, index=3, student_id="s1")

        (issue,) = exc.value.issues
        assert issue.index == 3
        assert issue.student_id == "s1"
        assert message in issue.message
