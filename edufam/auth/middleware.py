"""Authentication dependencies for FastAPI routes."""

from __future__ import annotations

import typing as t

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from edufam.core import di
from edufam.grading.capability import capabilities_for, PermissionSet
from edufam.grading.errors import PermissionDeniedError
from edufam.model import TenantContext

from .jwt import JWTManager

# Security scheme for JWT bearer tokens
bearer_scheme = HTTPBearer(auto_error=False)


@di.inject
def _jwt_manager(manager: JWTManager = di.Provide["auth.jwt_manager"]) -> JWTManager:
    return manager


def get_jwt_manager() -> JWTManager:
    """Token verifier from the DI container."""
    return _jwt_manager()


def get_tenant_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
) -> TenantContext:
    """Dependency to get the tenant context of the calling user.

    Raises:
        HTTPException 401: If no token is provided or the token is invalid
        TenantScopeError: If the token names a malformed school
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = jwt_manager.decode_token(credentials.credentials)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token_data.to_context()


def require_any(*flags: str) -> t.Callable[..., TenantContext]:
    """Dependency factory requiring at least one of the named capability flags.

    Usage:
        @router.get("/summary")
        def summary(context: TenantContext = Depends(require_any("view_summary", "view_detailed"))):
            ...
    """
    unknown = set(flags) - set(PermissionSet._fields)
    if unknown:
        raise ValueError(f"unknown capabilities: {sorted(unknown)}")

    def check(context: TenantContext = Depends(get_tenant_context)) -> TenantContext:
        caps = capabilities_for(context.role)
        if not any(getattr(caps, f) for f in flags):
            raise PermissionDeniedError(context.role.value, "view")
        return context

    return check
