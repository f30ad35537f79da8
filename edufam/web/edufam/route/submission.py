"""Bulk submission routes."""

from __future__ import annotations

import pydantic as p
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from edufam.auth import get_tenant_context
from edufam.grading import service
from edufam.model import SubmissionID, TenantContext

from ..dependencies import get_session
from ..view.grade import GradeResponse
from ..view.submission import SubmissionResponse

router = APIRouter(prefix="/api/submissions", tags=["submissions"])


class SubmissionWithGradesResponse(SubmissionResponse):
    grades: list[GradeResponse] = p.Field(default_factory=list)


@router.get("/{submission_id}", operation_id="get_submission")
def get_submission(
    submission_id: SubmissionID,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
) -> SubmissionWithGradesResponse:
    """A submission with its totals and grades in position order."""
    submission, grades = service.get_submission(submission_id, context, session=session)
    return SubmissionWithGradesResponse(
        **SubmissionResponse.model_validate(submission).model_dump(),
        grades=[GradeResponse.model_validate(g) for g in grades],
    )
