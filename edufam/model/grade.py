import datetime
import enum

from .base import WithTimestamps
from .id import ClassID, GradeID, SchoolID, StudentID, SubjectID, SubmissionID, UserID
from .override import GradeOverride


class ExamType(enum.Enum):
    CAT = "CAT"
    MidTerm = "MID_TERM"
    EndTerm = "END_TERM"
    Opener = "OPENER"
    Final = "FINAL"


class GradeStatus(enum.Enum):
    Draft = "draft"
    PendingApproval = "pending_approval"
    Approved = "approved"
    Rejected = "rejected"
    Released = "released"


class GradeRecord(WithTimestamps):
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

    status: GradeStatus = GradeStatus.Draft
    is_immutable: bool = False
    submitted_by: UserID
    submitted_at: datetime.datetime | None = None
    approved_by: UserID | None = None
    approved_at: datetime.datetime | None = None
    released_by: UserID | None = None
    released_at: datetime.datetime | None = None
    principal_notes: str | None = None
    entry_order: int = 0

    override_history: list[GradeOverride] = []
