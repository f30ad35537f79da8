"""Authentication utilities."""

__all__ = [
    "JWTManager",
    "TokenData",
    "bearer_scheme",
    "get_jwt_manager",
    "get_tenant_context",
    "require_any",
]

from .jwt import JWTManager, TokenData
from .middleware import bearer_scheme, get_jwt_manager, get_tenant_context, require_any
