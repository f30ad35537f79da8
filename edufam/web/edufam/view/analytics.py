"""View models for school analytics."""

from __future__ import annotations

import pydantic as p

from edufam.model import GradeStatus, SubjectID


class AnalyticsSummaryResponse(p.BaseModel):
    """Summary of the grades visible to the caller.

    `degraded` is set when the figures could not be computed in time; all
    counts are then zero.
    """

    model_config = p.ConfigDict(from_attributes=True)

    average_percentage: float
    total_grades: int
    distribution: dict[str, int]
    status_counts: dict[GradeStatus, int]
    subject_averages: dict[SubjectID, float]
    pending_overrides: int
    degraded: bool
