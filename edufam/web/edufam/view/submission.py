"""View models for bulk grade submissions."""

from __future__ import annotations

import datetime

import pydantic as p

from edufam.model import ClassID, ExamType, SchoolID, SubjectID, SubmissionID, SubmissionStatus, UserID


class SubmissionResponse(p.BaseModel):
    model_config = p.ConfigDict(from_attributes=True)

    submission_id: SubmissionID
    school_id: SchoolID
    class_id: ClassID
    subject_id: SubjectID
    term: str
    exam_type: ExamType
    max_score: float
    submitted_by: UserID
    status: SubmissionStatus
    total_students: int
    grades_entered: int
    total_score: float
    average_score: float
    create_time: datetime.datetime | None = None
    update_time: datetime.datetime | None = None
