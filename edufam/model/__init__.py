__all__ = [
    # Base
    "BaseModel",
    "WithCtime",
    "WithMtime",
    "WithTimestamps",
    # Enums
    "BulkValidationPolicy",
    "DeploymentEnvironment",
    # ID Types
    "AuditEntryID",
    "ClassID",
    "GradeID",
    "OverrideID",
    "SchoolID",
    "StudentID",
    "SubjectID",
    "SubmissionID",
    "UserID",
    # Schools & Users
    "School",
    "User",
    "Role",
    "TenantContext",
    # Grades
    "ExamType",
    "GradeRecord",
    "GradeStatus",
    # Overrides
    "GradeOverride",
    "OverrideStatus",
    # Submissions
    "BulkGradeSubmission",
    "SubmissionStatus",
    # Audit
    "AuditEntry",
]

from .audit import AuditEntry
from .base import BaseModel, WithCtime, WithMtime, WithTimestamps
from .enum import BulkValidationPolicy, DeploymentEnvironment
from .grade import ExamType, GradeRecord, GradeStatus
from .id import AuditEntryID, ClassID, GradeID, OverrideID, SchoolID, StudentID, SubjectID, SubmissionID, UserID
from .override import GradeOverride, OverrideStatus
from .school import School
from .submission import BulkGradeSubmission, SubmissionStatus
from .tenant import TenantContext
from .user import Role, User
