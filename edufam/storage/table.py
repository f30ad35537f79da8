import datetime
import enum
import typing as t

from sqlalchemy import ForeignKey, func, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, MappedAsDataclass
from sqlalchemy.types import JSON

from edufam.model import AuditEntryID, ClassID, ExamType, GradeID, GradeStatus, OverrideID, OverrideStatus, Role, \
    SchoolID, StudentID, SubjectID, SubmissionID, SubmissionStatus, UserID

from .type import ShortUUIDKeyType, UTCDateTime, ValueEnumMapper


class base(MappedAsDataclass, DeclarativeBase):
    type_annotation_map = {
        SchoolID: ShortUUIDKeyType(SchoolID),
        UserID: ShortUUIDKeyType(UserID),
        StudentID: ShortUUIDKeyType(StudentID),
        SubjectID: ShortUUIDKeyType(SubjectID),
        ClassID: ShortUUIDKeyType(ClassID),
        GradeID: ShortUUIDKeyType(GradeID),
        SubmissionID: ShortUUIDKeyType(SubmissionID),
        OverrideID: ShortUUIDKeyType(OverrideID),
        AuditEntryID: ShortUUIDKeyType(AuditEntryID),
        datetime.datetime: UTCDateTime(),
        dict[str, t.Any]: JSON,
        enum.Enum: ValueEnumMapper,
    }


# Schools & Users


class schools(base):
    __tablename__ = "schools"

    school_id: Mapped[SchoolID] = mapped_column(primary_key=True)
    name: Mapped[str]
    slug: Mapped[str] = mapped_column(unique=True)
    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


class users(base):
    __tablename__ = "users"

    user_id: Mapped[UserID] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(unique=True)
    name: Mapped[str]
    role: Mapped[Role]
    school_id: Mapped[SchoolID | None] = mapped_column(ForeignKey("schools.school_id"), default=None)
    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


# Grades


class grade_submissions(base):
    __tablename__ = "grade_submissions"
    __table_args__ = (UniqueConstraint("school_id", "class_id", "subject_id", "term", "exam_type"),)

    submission_id: Mapped[SubmissionID] = mapped_column(primary_key=True)
    school_id: Mapped[SchoolID] = mapped_column(ForeignKey("schools.school_id"))
    class_id: Mapped[ClassID]
    subject_id: Mapped[SubjectID]
    term: Mapped[str]
    exam_type: Mapped[ExamType]
    max_score: Mapped[float]
    submitted_by: Mapped[UserID] = mapped_column(ForeignKey("users.user_id"))

    status: Mapped[SubmissionStatus] = mapped_column(default=SubmissionStatus.Draft)
    total_students: Mapped[int] = mapped_column(default=0)
    grades_entered: Mapped[int] = mapped_column(default=0)
    total_score: Mapped[float] = mapped_column(default=0.0)
    average_score: Mapped[float] = mapped_column(default=0.0)

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


class grades(base):
    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint("school_id", "student_id", "subject_id", "class_id", "term", "exam_type"),
        Index("ix_grades_cohort", "school_id", "class_id", "subject_id", "term", "exam_type"),
    )

    grade_id: Mapped[GradeID] = mapped_column(primary_key=True)
    school_id: Mapped[SchoolID] = mapped_column(ForeignKey("schools.school_id"))
    student_id: Mapped[StudentID]
    subject_id: Mapped[SubjectID]
    class_id: Mapped[ClassID]
    term: Mapped[str]
    exam_type: Mapped[ExamType]
    max_score: Mapped[float]
    submitted_by: Mapped[UserID] = mapped_column(ForeignKey("users.user_id"))

    submission_id: Mapped[SubmissionID | None] = mapped_column(
        ForeignKey("grade_submissions.submission_id"), default=None
    )
    score: Mapped[float | None] = mapped_column(default=None)
    is_absent: Mapped[bool] = mapped_column(default=False)
    percentage: Mapped[float | None] = mapped_column(default=None)
    position: Mapped[int | None] = mapped_column(default=None)
    letter_grade: Mapped[str | None] = mapped_column(default=None)

    status: Mapped[GradeStatus] = mapped_column(default=GradeStatus.Draft)
    is_immutable: Mapped[bool] = mapped_column(default=False)
    submitted_at: Mapped[datetime.datetime | None] = mapped_column(default=None)
    approved_by: Mapped[UserID | None] = mapped_column(ForeignKey("users.user_id"), default=None)
    approved_at: Mapped[datetime.datetime | None] = mapped_column(default=None)
    released_by: Mapped[UserID | None] = mapped_column(ForeignKey("users.user_id"), default=None)
    released_at: Mapped[datetime.datetime | None] = mapped_column(default=None)
    principal_notes: Mapped[str | None] = mapped_column(default=None)
    # position of the row in the upload that created it; breaks ties between equal scores
    entry_order: Mapped[int] = mapped_column(default=0)

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


class grade_overrides(base):
    __tablename__ = "grade_overrides"

    override_id: Mapped[OverrideID] = mapped_column(primary_key=True)
    grade_id: Mapped[GradeID] = mapped_column(ForeignKey("grades.grade_id"), index=True)
    school_id: Mapped[SchoolID] = mapped_column(ForeignKey("schools.school_id"))
    new_score: Mapped[float]
    reason: Mapped[str]
    requested_by: Mapped[UserID] = mapped_column(ForeignKey("users.user_id"))

    original_score: Mapped[float | None] = mapped_column(default=None)
    approved_by: Mapped[UserID | None] = mapped_column(ForeignKey("users.user_id"), default=None)
    decided_at: Mapped[datetime.datetime | None] = mapped_column(default=None)
    status: Mapped[OverrideStatus] = mapped_column(default=OverrideStatus.Pending)

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())


# Audit


class audit_entries(base):
    __tablename__ = "audit_entries"

    entry_id: Mapped[AuditEntryID] = mapped_column(primary_key=True)
    user_id: Mapped[UserID]
    role: Mapped[Role]
    action: Mapped[str]
    target: Mapped[str]

    school_id: Mapped[SchoolID | None] = mapped_column(default=None, index=True)
    old_value: Mapped[dict[str, t.Any] | None] = mapped_column(default=None)
    new_value: Mapped[dict[str, t.Any] | None] = mapped_column(default=None)

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
