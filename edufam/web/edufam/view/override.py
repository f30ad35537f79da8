"""View models for corrections to released grades."""

from __future__ import annotations

import datetime

import pydantic as p

from edufam.model import GradeID, OverrideID, OverrideStatus, SchoolID, UserID


class OverrideCreateRequest(p.BaseModel):
    new_score: float = p.Field(..., ge=0)
    reason: str = p.Field(..., min_length=1, max_length=2000)


class OverrideResponse(p.BaseModel):
    model_config = p.ConfigDict(from_attributes=True)

    override_id: OverrideID
    grade_id: GradeID
    school_id: SchoolID
    original_score: float | None = None
    new_score: float
    reason: str
    requested_by: UserID
    approved_by: UserID | None = None
    decided_at: datetime.datetime | None = None
    status: OverrideStatus
    create_time: datetime.datetime | None = None


class OverrideListResponse(p.BaseModel):
    overrides: list[OverrideResponse]
