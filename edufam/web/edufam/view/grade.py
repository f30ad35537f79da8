"""View models for grade entry and review."""

from __future__ import annotations

import datetime

import pydantic as p

from edufam.model import ClassID, ExamType, GradeID, GradeStatus, SchoolID, StudentID, SubjectID, SubmissionID, \
    UserID

from .override import OverrideResponse
from .submission import SubmissionResponse


class BulkRowRequest(p.BaseModel):
    student_id: StudentID
    score: float | None = None
    is_absent: bool = False


class BulkUploadRequest(p.BaseModel):
    """Scores for one class, subject, term and exam."""

    # only system admins name the school; everyone else writes to their own
    school_id: SchoolID | None = None
    class_id: ClassID
    subject_id: SubjectID
    term: str = p.Field(..., min_length=1, max_length=32)
    exam_type: ExamType
    max_score: float = p.Field(..., ge=0)
    rows: list[BulkRowRequest] = p.Field(..., min_length=1)


class RowIssueResponse(p.BaseModel):
    index: int
    student_id: str | None = None
    message: str


class GradeResponse(p.BaseModel):
    model_config = p.ConfigDict(from_attributes=True)

    grade_id: GradeID
    school_id: SchoolID
    submission_id: SubmissionID | None = None
    student_id: StudentID
    subject_id: SubjectID
    class_id: ClassID
    term: str
    exam_type: ExamType
    max_score: float
    score: float | None = None
    is_absent: bool = False
    percentage: float | None = None
    position: int | None = None
    letter_grade: str | None = None
    status: GradeStatus
    is_immutable: bool
    submitted_by: UserID
    submitted_at: datetime.datetime | None = None
    approved_by: UserID | None = None
    approved_at: datetime.datetime | None = None
    released_by: UserID | None = None
    released_at: datetime.datetime | None = None
    principal_notes: str | None = None
    create_time: datetime.datetime | None = None
    update_time: datetime.datetime | None = None


class GradeDetailResponse(GradeResponse):
    override_history: list[OverrideResponse] = []


class GradeListResponse(p.BaseModel):
    grades: list[GradeResponse]
    total: int


class BulkUploadResponse(p.BaseModel):
    submission: SubmissionResponse
    grades: list[GradeResponse]
    skipped: list[RowIssueResponse] = []


class GradeEditRequest(p.BaseModel):
    score: float | None = None
    is_absent: bool = False

    @p.model_validator(mode="after")
    def _score_or_absent(self) -> GradeEditRequest:
        if self.score is None and not self.is_absent:
            raise ValueError("provide a score or mark the student absent")
        return self


class GradeSelectionRequest(p.BaseModel):
    grade_ids: list[GradeID] = p.Field(..., min_length=1)


class GradeRejectRequest(GradeSelectionRequest):
    reason: str = p.Field(..., min_length=1, max_length=2000)


class OverrideDecisionResponse(p.BaseModel):
    """A decided correction and the grade as it reads afterwards."""

    override: OverrideResponse
    grade: GradeResponse
