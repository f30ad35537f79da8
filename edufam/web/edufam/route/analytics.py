"""School analytics routes."""

from __future__ import annotations

import typing as t

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from edufam.auth import require_any
from edufam.core.config import GradingSettings
from edufam.grading import analytics
from edufam.model import SchoolID, TenantContext

from ..dependencies import get_grading_settings, get_session_factory
from ..view.analytics import AnalyticsSummaryResponse

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/summary", operation_id="get_analytics_summary")
def get_analytics_summary(
    term: str | None = Query(None),
    school_id: SchoolID | None = Query(None),
    context: TenantContext = Depends(require_any("view_summary", "view_detailed")),
    session_factory: t.Callable[[], Session] = Depends(get_session_factory),
    settings: GradingSettings = Depends(get_grading_settings),
) -> AnalyticsSummaryResponse:
    """Grade averages and distribution for the grades visible to the caller.

    Answers within `grading.analytics_timeout_seconds`; when the figures cannot
    be computed in time the response is zeroed and marked `degraded`.
    """
    summary = analytics.summarize(
        context, term=term, school_id=school_id, settings=settings, session_factory=session_factory
    )
    return AnalyticsSummaryResponse.model_validate(summary)
