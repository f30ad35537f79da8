import datetime
import enum

from .base import WithCtime
from .id import GradeID, OverrideID, SchoolID, UserID


class OverrideStatus(enum.Enum):
    Pending = "pending"
    Approved = "approved"
    Rejected = "rejected"


class GradeOverride(WithCtime):
    override_id: OverrideID
    grade_id: GradeID
    school_id: SchoolID

    original_score: float | None = None
    new_score: float
    reason: str
    requested_by: UserID
    approved_by: UserID | None = None
    decided_at: datetime.datetime | None = None
    status: OverrideStatus = OverrideStatus.Pending
