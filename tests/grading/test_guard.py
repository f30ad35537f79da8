"""Tests for edufam.grading.guard module."""

from __future__ import annotations

import datetime
import typing as t

import pytest

from edufam.grading.errors import GradingError, ImmutableRecordError, OverrideDecidedError, PermissionDeniedError, \
    ValidationError
from edufam.grading.guard import apply_override, assert_mutable, create_override, decide_override
from edufam.model import ClassID, ExamType, GradeID, GradeRecord, GradeStatus, OverrideStatus, Role, SchoolID, \
    StudentID, SubjectID, TenantContext, UserID

NOW = datetime.datetime(2026, 4, 2, 12, 0, tzinfo=datetime.UTC)
SCHOOL = SchoolID()

teacher = TenantContext(user_id=UserID(), role=Role.Teacher, school_id=SCHOOL)
other_teacher = TenantContext(user_id=UserID(), role=Role.Teacher, school_id=SCHOOL)
principal = TenantContext(user_id=UserID(), role=Role.Principal, school_id=SCHOOL)
parent = TenantContext(user_id=UserID(), role=Role.Parent, school_id=SCHOOL)


def released_grade(**changes: t.Any) -> GradeRecord:
    values: dict[str, t.Any] = {
        "grade_id": GradeID(),
        "school_id": SCHOOL,
        "student_id": StudentID(),
        "subject_id": SubjectID(),
        "class_id": ClassID(),
        "term": "2026-T1",
        "exam_type": ExamType.MidTerm,
        "max_score": 50.0,
        "score": 30.0,
        "percentage": 60.0,
        "position": 2,
        "letter_grade": "B",
        "status": GradeStatus.Released,
        "is_immutable": True,
        "submitted_by": teacher.user_id,
    }
    values.update(changes)
    return GradeRecord(**values)


class TestAssertMutable(object):
    """Tests for assert_mutable()."""

    def test_released_grade(self) -> None:
        grade = released_grade()

        with pytest.raises(ImmutableRecordError) as exc:
            assert_mutable(grade)

        assert exc.value.grade_id == str(grade.grade_id)

    def test_draft_grade(self) -> None:
        assert_mutable(released_grade(status=GradeStatus.Draft, is_immutable=False))


class TestCreateOverride(object):
    """Tests for create_override()."""

    def test_submitting_teacher_may_request(self) -> None:
        grade = released_grade()

        override = create_override(grade, 40, "  marking error on q3  ", teacher, now=NOW)

        assert override.status is OverrideStatus.Pending
        assert override.grade_id == grade.grade_id
        assert override.school_id == SCHOOL
        assert override.original_score == 30.0
        assert override.new_score == 40
        assert override.reason == "marking error on q3"
        assert override.requested_by == teacher.user_id
        assert override.create_time == NOW

    def test_principal_may_request_for_any_grade(self) -> None:
        override = create_override(released_grade(), 10, "typo", principal)

        assert override.requested_by == principal.user_id

    def test_other_teacher_may_not_request(self) -> None:
        with pytest.raises(PermissionDeniedError, match="only the submitting teacher"):
            create_override(released_grade(), 40, "reason", other_teacher)

    def test_parent_may_not_request(self) -> None:
        with pytest.raises(PermissionDeniedError):
            create_override(released_grade(), 40, "reason", parent)

    def test_reason_is_required(self) -> None:
        with pytest.raises(ValidationError) as exc:
            create_override(released_grade(), 40, "   ", teacher)

        assert "reason is required" in exc.value.issues[0].message

    @pytest.mark.parametrize("new_score", [-1, 50.5])
    def test_score_range(self, new_score: float) -> None:
        with pytest.raises(ValidationError, match="failed validation"):
            create_override(released_grade(), new_score, "reason", teacher)


class TestDecideOverride(object):
    """Tests for decide_override()."""

    def test_approve(self) -> None:
        override = create_override(released_grade(), 45, "remark", teacher)

        decided = decide_override(override, True, principal, now=NOW)

        assert decided.status is OverrideStatus.Approved
        assert decided.approved_by == principal.user_id
        assert decided.decided_at == NOW
        assert override.status is OverrideStatus.Pending

    def test_reject(self) -> None:
        override = create_override(released_grade(), 45, "remark", teacher)

        decided = decide_override(override, False, principal, now=NOW)

        assert decided.status is OverrideStatus.Rejected

    def test_teacher_cannot_decide(self) -> None:
        override = create_override(released_grade(), 45, "remark", teacher)

        with pytest.raises(PermissionDeniedError):
            decide_override(override, True, teacher, now=NOW)

    def test_cannot_decide_twice(self) -> None:
        override = decide_override(create_override(released_grade(), 45, "remark", teacher), False, principal, now=NOW)

        with pytest.raises(OverrideDecidedError, match="already rejected") as exc:
            decide_override(override, True, principal, now=NOW)
        assert exc.value.status is OverrideStatus.Rejected


class TestApplyOverride(object):
    """Tests for apply_override()."""

    def test_moves_score_and_keeps_lock(self) -> None:
        grade = released_grade()
        override = decide_override(create_override(grade, 45, "remark", teacher), True, principal, now=NOW)

        corrected = apply_override(grade, override)

        assert corrected.score == 45
        assert corrected.percentage == 90.0
        assert corrected.letter_grade == "A+"
        assert corrected.status is GradeStatus.Released
        assert corrected.is_immutable
        assert corrected.override_history == [override]

    def test_pending_override_cannot_be_applied(self) -> None:
        grade = released_grade()

        with pytest.raises(GradingError, match="only approved"):
            apply_override(grade, create_override(grade, 45, "remark", teacher))
