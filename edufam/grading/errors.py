"""Grading error taxonomy.

Every error carries a message meant for the person who triggered it; the web
layer forwards `str(error)` as the response detail unchanged.
"""

from __future__ import annotations

import enum
import typing as t

from edufam.model import GradeStatus, OverrideStatus


class GradingError(Exception):
    pass


class TenantScopeReason(enum.Enum):
    NoSchoolAssigned = "no_school_assigned"
    MalformedSchoolId = "malformed_school_id"


class TenantScopeError(GradingError):
    def __init__(self, reason: TenantScopeReason, detail: str | None = None):
        self.reason = reason
        match reason:
            case TenantScopeReason.NoSchoolAssigned:
                message = "your account is not assigned to a school"
            case TenantScopeReason.MalformedSchoolId:
                message = "the school identifier is not valid"
        super().__init__(f"{message}: {detail}" if detail else message)


class PermissionDeniedError(GradingError):
    def __init__(self, role: str, action: str, detail: str | None = None):
        self.role = role
        self.action = action
        message = f"a {role.replace('_', ' ')} is not allowed to {action} grades"
        super().__init__(f"{message}; {detail}" if detail else message)


class InvalidTransitionError(GradingError):
    def __init__(self, current_status: GradeStatus, requested_action: str):
        self.current_status = current_status
        self.requested_action = requested_action
        super().__init__(
            f"cannot {requested_action} a grade that is {current_status.value.replace('_', ' ')}"
        )


class ImmutableRecordError(GradingError):
    def __init__(self, grade_id: str):
        self.grade_id = grade_id
        super().__init__("this grade has been released and is locked; request a correction")


class OverrideDecidedError(GradingError):
    def __init__(self, override_id: str, status: OverrideStatus):
        self.override_id = override_id
        self.status = status
        super().__init__(f"this correction was already {status.value}; request a new one to change the grade again")


class NotFoundError(GradingError):
    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} {key} not found")


class RowIssue(t.NamedTuple):
    """A single rejected row of a bulk upload."""

    index: int
    student_id: str | None
    message: str


class ValidationError(GradingError):
    def __init__(self, issues: t.Sequence[RowIssue]):
        self.issues = tuple(issues)
        n = len(self.issues)
        super().__init__(f"{n} row{'s' if n != 1 else ''} failed validation; nothing was saved")
