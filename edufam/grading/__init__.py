"""Grading rules: who may do what, to which records, in which order.

The modules here are pure apart from `service` and `analytics`, which
orchestrate storage and are imported explicitly by their callers.
"""

__all__ = [
    # Capabilities
    "Action",
    "PermissionSet",
    "ViewScope",
    "capabilities_for",
    # Errors
    "GradingError",
    "ImmutableRecordError",
    "InvalidTransitionError",
    "NotFoundError",
    "OverrideDecidedError",
    "PermissionDeniedError",
    "RowIssue",
    "TenantScopeError",
    "TenantScopeReason",
    "ValidationError",
    # Ranking
    "CohortStatistics",
    "Entry",
    "RankedEntry",
    "aggregate",
    "rank",
    # Lifecycle & guard
    "assert_mutable",
    "transition",
]

from .capability import Action, capabilities_for, PermissionSet, ViewScope
from .errors import GradingError, ImmutableRecordError, InvalidTransitionError, NotFoundError, OverrideDecidedError, \
    PermissionDeniedError, RowIssue, TenantScopeError, TenantScopeReason, ValidationError
from .guard import assert_mutable
from .lifecycle import transition
from .ranking import aggregate, CohortStatistics, Entry, rank, RankedEntry
