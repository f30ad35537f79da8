"""School-level grade analytics.

Analytics are advisory: a slow or failing read degrades to an empty summary
flagged `degraded` instead of failing the request.
"""

from __future__ import annotations

import collections
import concurrent.futures
import logging
import typing as t

import pydantic as p
import sqlalchemy.exc
from sqlalchemy.orm import Session

from edufam.core import di
from edufam.core.config import GradingSettings
from edufam.lib.retry import CircuitBreaker, CircuitOpenError
from edufam.model import BaseModel, GradeRecord, GradeStatus, OverrideStatus, SchoolID, SubjectID, TenantContext
from edufam.storage import grade as grade_storage
from edufam.storage import override as override_storage

from .capability import capabilities_for, ViewScope
from .errors import PermissionDeniedError
from .scope import resolve_school

logger = logging.getLogger(__name__)

# trips on data source failures only
_read_circuit = CircuitBreaker(
    "analytics", threshold=3, reset_after=60.0, exceptions=(sqlalchemy.exc.SQLAlchemyError,)
)

# lower percentage bound of each band, checked from the top
Bands: t.Final[tuple[tuple[str, float], ...]] = (
    ("excellent", 80.0),
    ("good", 70.0),
    ("satisfactory", 60.0),
    ("needs_improvement", 40.0),
    ("failing", 0.0),
)


class AnalyticsSummary(BaseModel):
    average_percentage: float = 0.0
    total_grades: int = 0
    distribution: dict[str, int] = p.Field(default_factory=lambda: {band: 0 for band, _ in Bands})
    status_counts: dict[GradeStatus, int] = p.Field(default_factory=lambda: {s: 0 for s in GradeStatus})
    subject_averages: dict[SubjectID, float] = {}
    pending_overrides: int = 0
    degraded: bool = False


def band(pct: float) -> str:
    for name, bound in Bands:
        if pct >= bound:
            return name
    return Bands[-1][0]


def summarize(
    context: TenantContext,
    *,
    term: str | None = None,
    school_id: SchoolID | None = None,
    settings: GradingSettings | None = None,
    timeout: float | None = None,
    session_factory: t.Callable[[], Session] = di.ProviderOf["storage.persistent.session"],
) -> AnalyticsSummary:
    """Summarize the grades the actor can see.

    Reads run on a worker thread with their own session and are abandoned
    after `timeout` seconds (`grading.analytics_timeout_seconds` by default).

    Raises:
        PermissionDeniedError: if the role may see neither summaries nor grades
        TenantScopeError: if the actor has no usable school
    """
    caps = capabilities_for(context.role)
    if not (caps.view_summary or caps.view_detailed):
        raise PermissionDeniedError(context.role.value, "view analytics for")
    if not context.is_system_admin:
        resolve_school(context)
    if timeout is None:
        timeout = (settings or GradingSettings()).analytics_timeout_seconds

    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="analytics")
    try:
        future = executor.submit(_read_circuit.call, _compute, context, term, school_id, session_factory)
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        _read_circuit.record_failure()
        logger.warning("analytics timed out", extra={"timeout": timeout, "user_id": str(context.user_id)})
    except CircuitOpenError as e:
        logger.warning("analytics unavailable", extra={"retry_after": e.retry_after})
    except sqlalchemy.exc.SQLAlchemyError:
        logger.exception("analytics query failed", extra={"user_id": str(context.user_id)})
    finally:
        # a timed-out read is left to finish on its own
        executor.shutdown(wait=False)
    return AnalyticsSummary(degraded=True)


def _compute(
    context: TenantContext,
    term: str | None,
    school_id: SchoolID | None,
    session_factory: t.Callable[[], Session],
) -> AnalyticsSummary:
    caps = capabilities_for(context.role)
    criteria: dict[str, t.Any] = {"school_id": school_id, "term": term}
    match caps.view_scope:
        case ViewScope.OwnClasses:
            criteria["class_ids"] = context.class_ids
        case ViewScope.Children:
            criteria["student_ids"] = context.student_ids
            criteria["statuses"] = [GradeStatus.Released]
        case ViewScope.Nothing:
            return AnalyticsSummary()
        case _:
            pass

    with session_factory() as session, session.begin():
        grades = grade_storage.find(context=context, session=session, **criteria)
        pending = 0
        if caps.override:
            pending = override_storage.count(
                context=context, status=OverrideStatus.Pending, school_id=school_id, session=session
            )
    return _summary_of(grades, pending_overrides=pending)


def _summary_of(grades: t.Iterable[GradeRecord], *, pending_overrides: int = 0) -> AnalyticsSummary:
    summary = AnalyticsSummary(pending_overrides=pending_overrides)
    by_subject: dict[SubjectID, list[float]] = collections.defaultdict(list)
    percentages: list[float] = []

    for g in grades:
        summary.total_grades += 1
        summary.status_counts[g.status] += 1
        if g.percentage is None or g.is_absent:
            continue
        percentages.append(g.percentage)
        by_subject[g.subject_id].append(g.percentage)
        summary.distribution[band(g.percentage)] += 1

    if percentages:
        summary.average_percentage = round(sum(percentages) / len(percentages), 2)
    summary.subject_averages = {k: round(sum(v) / len(v), 2) for k, v in by_subject.items()}
    return summary
