"""Correction decision routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from edufam.auth import get_tenant_context
from edufam.core.config import GradingSettings
from edufam.grading import service
from edufam.model import OverrideID, TenantContext

from ..dependencies import get_grading_settings, get_session
from ..view.grade import GradeResponse, OverrideDecisionResponse
from ..view.override import OverrideResponse

router = APIRouter(prefix="/api/overrides", tags=["overrides"])


def _decide(
    override_id: OverrideID, approve: bool, context: TenantContext, session: Session, settings: GradingSettings
) -> OverrideDecisionResponse:
    override, grade = service.decide_override(
        override_id, context, approve=approve, settings=settings, session=session
    )
    return OverrideDecisionResponse(
        override=OverrideResponse.model_validate(override),
        grade=GradeResponse.model_validate(grade),
    )


@router.post("/{override_id}/approve", operation_id="approve_override")
def approve_override(
    override_id: OverrideID,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
    settings: GradingSettings = Depends(get_grading_settings),
) -> OverrideDecisionResponse:
    """Apply a correction and re-rank the grade's class."""
    return _decide(override_id, True, context, session, settings)


@router.post("/{override_id}/reject", operation_id="reject_override")
def reject_override(
    override_id: OverrideID,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
    settings: GradingSettings = Depends(get_grading_settings),
) -> OverrideDecisionResponse:
    return _decide(override_id, False, context, session, settings)
