"""Grade entry, review and release routes."""

from __future__ import annotations

import typing as t

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from edufam.auth import get_tenant_context
from edufam.core.config import GradingSettings
from edufam.grading import service
from edufam.model import ClassID, ExamType, GradeID, GradeStatus, StudentID, SubjectID, TenantContext

from ..dependencies import get_grading_settings, get_session
from ..view.grade import BulkUploadRequest, BulkUploadResponse, GradeDetailResponse, GradeEditRequest, \
    GradeListResponse, GradeRejectRequest, GradeResponse, GradeSelectionRequest, RowIssueResponse
from ..view.override import OverrideCreateRequest, OverrideListResponse, OverrideResponse
from ..view.submission import SubmissionResponse

router = APIRouter(prefix="/api/grades", tags=["grades"])


@router.post("/bulk", operation_id="upload_grades", status_code=status.HTTP_201_CREATED)
def upload_grades(
    request: BulkUploadRequest,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
    settings: GradingSettings = Depends(get_grading_settings),
) -> BulkUploadResponse:
    """Enter scores for a class and rank them.

    Rows for students whose grade is already under review or released are
    reported in `skipped` and left unchanged.
    """
    result = service.upload_bulk(
        t.cast(service.BulkUpload, request.model_dump()), context, settings=settings, session=session
    )
    return BulkUploadResponse(
        submission=SubmissionResponse.model_validate(result.submission),
        grades=[GradeResponse.model_validate(g) for g in result.grades],
        skipped=[RowIssueResponse(**issue._asdict()) for issue in result.skipped],
    )


@router.get("", operation_id="list_grades")
def list_grades(
    class_id: ClassID | None = Query(None),
    subject_id: SubjectID | None = Query(None),
    student_id: StudentID | None = Query(None),
    term: str | None = Query(None),
    exam_type: ExamType | None = Query(None),
    grade_status: GradeStatus | None = Query(None, alias="status"),
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
) -> GradeListResponse:
    """List the grades visible to the caller."""
    filters: service.GradeFilter = {}
    if class_id is not None:
        filters["class_id"] = class_id
    if subject_id is not None:
        filters["subject_id"] = subject_id
    if student_id is not None:
        filters["student_id"] = student_id
    if term is not None:
        filters["term"] = term
    if exam_type is not None:
        filters["exam_type"] = exam_type
    if grade_status is not None:
        filters["status"] = grade_status

    grades = service.find_grades(context, filters, session=session)
    return GradeListResponse(grades=[GradeResponse.model_validate(g) for g in grades], total=len(grades))


def _transition(
    action: t.Callable[..., tuple[t.Any, ...]],
    request: GradeSelectionRequest,
    context: TenantContext,
    session: Session,
    settings: GradingSettings,
    **kwargs: t.Any,
) -> GradeListResponse:
    grades = action(request.grade_ids, context, settings=settings, session=session, **kwargs)
    return GradeListResponse(grades=[GradeResponse.model_validate(g) for g in grades], total=len(grades))


@router.post("/submit", operation_id="submit_grades")
def submit_grades(
    request: GradeSelectionRequest,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
    settings: GradingSettings = Depends(get_grading_settings),
) -> GradeListResponse:
    """Send draft grades to the principal for approval."""
    return _transition(service.submit, request, context, session, settings)


@router.post("/approve", operation_id="approve_grades")
def approve_grades(
    request: GradeSelectionRequest,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
    settings: GradingSettings = Depends(get_grading_settings),
) -> GradeListResponse:
    return _transition(service.approve, request, context, session, settings)


@router.post("/reject", operation_id="reject_grades")
def reject_grades(
    request: GradeRejectRequest,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
    settings: GradingSettings = Depends(get_grading_settings),
) -> GradeListResponse:
    """Send grades back to their teacher with a reason."""
    return _transition(service.reject, request, context, session, settings, reason=request.reason)


@router.post("/release", operation_id="release_grades")
def release_grades(
    request: GradeSelectionRequest,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
    settings: GradingSettings = Depends(get_grading_settings),
) -> GradeListResponse:
    """Publish approved grades to parents. Released grades are locked."""
    return _transition(service.release, request, context, session, settings)


@router.get("/{grade_id}", operation_id="get_grade")
def get_grade(
    grade_id: GradeID,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
) -> GradeDetailResponse:
    grade = service.get_grade(grade_id, context, session=session)
    return GradeDetailResponse.model_validate(grade)


@router.patch("/{grade_id}", operation_id="edit_grade")
def edit_grade(
    grade_id: GradeID,
    request: GradeEditRequest,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
    settings: GradingSettings = Depends(get_grading_settings),
) -> GradeResponse:
    """Change the score of a draft grade."""
    grade = service.edit_grade(
        grade_id,
        context,
        score=request.score,
        is_absent=request.is_absent,
        settings=settings,
        session=session,
    )
    return GradeResponse.model_validate(grade)


@router.post("/{grade_id}/overrides", operation_id="request_override", status_code=status.HTTP_201_CREATED)
def request_override(
    grade_id: GradeID,
    request: OverrideCreateRequest,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
    settings: GradingSettings = Depends(get_grading_settings),
) -> OverrideResponse:
    """Ask for a correction to a released grade."""
    override = service.request_override(
        grade_id,
        context,
        new_score=request.new_score,
        reason=request.reason,
        settings=settings,
        session=session,
    )
    return OverrideResponse.model_validate(override)


@router.get("/{grade_id}/overrides", operation_id="list_overrides")
def list_overrides(
    grade_id: GradeID,
    context: TenantContext = Depends(get_tenant_context),
    session: Session = Depends(get_session),
) -> OverrideListResponse:
    overrides = service.find_overrides(grade_id, context, session=session)
    return OverrideListResponse(overrides=[OverrideResponse.model_validate(o) for o in overrides])
