"""Persistence, one module per aggregate.

Functions return domain models rather than rows. Those holding school data
take the caller's `TenantContext` and filter or stamp by its school. Modules
load on first attribute access.
"""

import importlib
import sys
import types
import typing as t

from sqlalchemy.orm import Session

__all__ = [
    "Session",
    "audit",
    "grade",
    "override",
    "school",
    "submission",
    "user",
]

if t.TYPE_CHECKING:
    from . import audit, grade, override, school, submission, user


def __getattr__(name: str) -> types.ModuleType:
    if name not in __all__:
        raise AttributeError(f"module {__name__} has no attribute {name}")
    module = importlib.import_module(f"{__name__}.{name}")
    setattr(sys.modules[__name__], name, module)
    return module
