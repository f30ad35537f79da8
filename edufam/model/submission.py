import enum

from .base import WithTimestamps
from .grade import ExamType
from .id import ClassID, SchoolID, SubjectID, SubmissionID, UserID


class SubmissionStatus(enum.Enum):
    Draft = "draft"
    Submitted = "submitted"
    Approved = "approved"


class BulkGradeSubmission(WithTimestamps):
    submission_id: SubmissionID
    school_id: SchoolID
    class_id: ClassID
    subject_id: SubjectID
    term: str
    exam_type: ExamType
    max_score: float
    submitted_by: UserID

    status: SubmissionStatus = SubmissionStatus.Draft
    total_students: int = 0
    grades_entered: int = 0
    total_score: float = 0.0
    average_score: float = 0.0
