"""View models for the EduFam grading API."""

__all__ = [
    # Grade views
    "BulkRowRequest",
    "BulkUploadRequest",
    "BulkUploadResponse",
    "GradeDetailResponse",
    "GradeEditRequest",
    "GradeListResponse",
    "GradeRejectRequest",
    "GradeResponse",
    "GradeSelectionRequest",
    "RowIssueResponse",
    # Override views
    "OverrideDecisionResponse",
    "OverrideCreateRequest",
    "OverrideListResponse",
    "OverrideResponse",
    # Submission views
    "SubmissionResponse",
    # Analytics views
    "AnalyticsSummaryResponse",
    # Caller views
    "CapabilitiesResponse",
]

from .analytics import AnalyticsSummaryResponse
from .grade import BulkRowRequest, BulkUploadRequest, BulkUploadResponse, GradeDetailResponse, GradeEditRequest, \
    GradeListResponse, GradeRejectRequest, GradeResponse, GradeSelectionRequest, OverrideDecisionResponse, \
    RowIssueResponse
from .me import CapabilitiesResponse
from .override import OverrideCreateRequest, OverrideListResponse, OverrideResponse
from .submission import SubmissionResponse
