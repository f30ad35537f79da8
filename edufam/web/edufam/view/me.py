"""View models for the calling user."""

from __future__ import annotations

import pydantic as p

from edufam.model import Role, SchoolID, UserID


class CapabilitiesResponse(p.BaseModel):
    user_id: UserID
    role: Role
    school_id: SchoolID | None = None
    view_scope: str
    capabilities: dict[str, bool]
