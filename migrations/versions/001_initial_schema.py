"""Initial schema for grading and tenancy

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""

import typing as t

from alembic import op
from sqlalchemy import func as f
from sqlalchemy.schema import Column, ForeignKey, UniqueConstraint
from sqlalchemy.types import Boolean, DateTime, Float, Integer, JSON, String, Text

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | t.Sequence[str] | None = None
depends_on: str | t.Sequence[str] | None = None


def _timestamps() -> list[Column[t.Any]]:
    return [
        Column("create_time", DateTime(timezone=True), server_default=f.now(), nullable=False),
        Column("update_time", DateTime(timezone=True), server_default=f.now(), onupdate=f.now(), nullable=False),
    ]


def upgrade() -> None:
    # Schools
    op.create_table(
        "schools",
        Column("school_id", String(22), primary_key=True),
        Column("name", String, nullable=False),
        Column("slug", String, unique=True, nullable=False),
        *_timestamps(),
    )

    # Users
    op.create_table(
        "users",
        Column("user_id", String(22), primary_key=True),
        Column("email", String, unique=True, nullable=False),
        Column("name", String, nullable=False),
        Column("role", String(32), nullable=False),
        Column("school_id", String(22), ForeignKey("schools.school_id"), nullable=True),
        *_timestamps(),
    )

    # Submissions
    op.create_table(
        "grade_submissions",
        Column("submission_id", String(22), primary_key=True),
        Column("school_id", String(22), ForeignKey("schools.school_id"), nullable=False),
        Column("class_id", String(22), nullable=False),
        Column("subject_id", String(22), nullable=False),
        Column("term", String, nullable=False),
        Column("exam_type", String(32), nullable=False),
        Column("max_score", Float, nullable=False),
        Column("submitted_by", String(22), ForeignKey("users.user_id"), nullable=False),
        Column("status", String(32), nullable=False),
        Column("total_students", Integer, nullable=False),
        Column("grades_entered", Integer, nullable=False),
        Column("total_score", Float, nullable=False),
        Column("average_score", Float, nullable=False),
        *_timestamps(),
        UniqueConstraint("school_id", "class_id", "subject_id", "term", "exam_type"),
    )

    # Grades
    op.create_table(
        "grades",
        Column("grade_id", String(22), primary_key=True),
        Column("school_id", String(22), ForeignKey("schools.school_id"), nullable=False),
        Column("student_id", String(22), nullable=False),
        Column("subject_id", String(22), nullable=False),
        Column("class_id", String(22), nullable=False),
        Column("term", String, nullable=False),
        Column("exam_type", String(32), nullable=False),
        Column("max_score", Float, nullable=False),
        Column("submitted_by", String(22), ForeignKey("users.user_id"), nullable=False),
        Column("submission_id", String(22), ForeignKey("grade_submissions.submission_id"), nullable=True),
        Column("score", Float, nullable=True),
        Column("is_absent", Boolean, nullable=False),
        Column("percentage", Float, nullable=True),
        Column("position", Integer, nullable=True),
        Column("letter_grade", String, nullable=True),
        Column("status", String(32), nullable=False),
        Column("is_immutable", Boolean, nullable=False),
        Column("submitted_at", DateTime(timezone=True), nullable=True),
        Column("approved_by", String(22), ForeignKey("users.user_id"), nullable=True),
        Column("approved_at", DateTime(timezone=True), nullable=True),
        Column("released_by", String(22), ForeignKey("users.user_id"), nullable=True),
        Column("released_at", DateTime(timezone=True), nullable=True),
        Column("principal_notes", Text, nullable=True),
        Column("entry_order", Integer, nullable=False, server_default="0"),
        *_timestamps(),
        UniqueConstraint("school_id", "student_id", "subject_id", "class_id", "term", "exam_type"),
    )
    op.create_index("ix_grades_cohort", "grades", ["school_id", "class_id", "subject_id", "term", "exam_type"])

    # Overrides
    op.create_table(
        "grade_overrides",
        Column("override_id", String(22), primary_key=True),
        Column("grade_id", String(22), ForeignKey("grades.grade_id"), nullable=False),
        Column("school_id", String(22), ForeignKey("schools.school_id"), nullable=False),
        Column("new_score", Float, nullable=False),
        Column("reason", Text, nullable=False),
        Column("requested_by", String(22), ForeignKey("users.user_id"), nullable=False),
        Column("original_score", Float, nullable=True),
        Column("approved_by", String(22), ForeignKey("users.user_id"), nullable=True),
        Column("decided_at", DateTime(timezone=True), nullable=True),
        Column("status", String(32), nullable=False),
        Column("create_time", DateTime(timezone=True), server_default=f.now(), nullable=False),
    )
    op.create_index("ix_grade_overrides_grade_id", "grade_overrides", ["grade_id"])

    # Audit
    op.create_table(
        "audit_entries",
        Column("entry_id", String(22), primary_key=True),
        Column("user_id", String(22), nullable=False),
        Column("role", String(32), nullable=False),
        Column("action", String, nullable=False),
        Column("target", String, nullable=False),
        Column("school_id", String(22), nullable=True),
        Column("old_value", JSON, nullable=True),
        Column("new_value", JSON, nullable=True),
        Column("create_time", DateTime(timezone=True), server_default=f.now(), nullable=False),
    )
    op.create_index("ix_audit_entries_school_id", "audit_entries", ["school_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_entries_school_id", table_name="audit_entries")
    op.drop_table("audit_entries")
    op.drop_index("ix_grade_overrides_grade_id", table_name="grade_overrides")
    op.drop_table("grade_overrides")
    op.drop_index("ix_grades_cohort", table_name="grades")
    op.drop_table("grades")
    op.drop_table("grade_submissions")
    op.drop_table("users")
    op.drop_table("schools")
