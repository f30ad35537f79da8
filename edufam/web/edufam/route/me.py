"""Routes describing the calling user."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from edufam.auth import get_tenant_context
from edufam.grading import capabilities_for
from edufam.model import TenantContext

from ..view.me import CapabilitiesResponse

router = APIRouter(prefix="/api/me", tags=["me"])


@router.get("/capabilities", operation_id="get_capabilities")
def get_capabilities(context: TenantContext = Depends(get_tenant_context)) -> CapabilitiesResponse:
    """What the caller's role may do, for the frontend to show or hide actions."""
    caps = capabilities_for(context.role)
    return CapabilitiesResponse(
        user_id=context.user_id,
        role=context.role,
        school_id=context.school_id,
        view_scope=caps.view_scope.value,
        capabilities={name: value for name, value in caps._asdict().items() if isinstance(value, bool)},
    )
