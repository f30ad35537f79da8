from __future__ import annotations

import typing as t

import sqlalchemy as sqla

from edufam.core import di
from edufam.lib import NotSet
from edufam.model import School, SchoolID

from . import Session
from .table import schools


@t.overload
def get(
    school_id: SchoolID,
    *,
    session: Session = ...,
) -> School | None: ...


@t.overload
def get(
    school_id: None = ...,
    *,
    slug: str,
    session: Session = ...,
) -> School | None: ...


def get(
    school_id: SchoolID | None = None,
    *,
    slug: str | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> School | None:
    """Get a school by ID or slug.

    Exactly one of school_id or slug must be provided.
    """
    if school_id is None and slug is None:
        raise ValueError("Either school_id or slug must be provided")
    if school_id is not None and slug is not None:
        raise ValueError("Only one of school_id or slug should be provided")

    if school_id is not None:
        stmt = sqla.select(schools.__table__).where(schools.school_id == school_id)
    else:
        stmt = sqla.select(schools.__table__).where(schools.slug == slug)

    row = session.execute(stmt).mappings().one_or_none()
    return School(**row) if row else None


def find(*, session: Session = di.Provide["storage.persistent.session"]) -> tuple[School, ...]:
    stmt = sqla.select(schools.__table__).order_by(schools.name)
    rows = session.execute(stmt).mappings().all()
    return tuple(School(**row) for row in rows)


def create(
    *,
    name: str,
    slug: str,
    session: Session = di.Provide["storage.persistent.session"],
) -> School:
    school_id = SchoolID()
    stmt = sqla.insert(schools).values(school_id=school_id, name=name, slug=slug)
    session.execute(stmt)
    session.flush()
    return get(school_id, session=session)  # type: ignore[return-value]


def update(
    school_id: SchoolID,
    *,
    name: str | NotSet = NotSet(),
    slug: str | NotSet = NotSet(),
    session: Session = di.Provide["storage.persistent.session"],
) -> School:
    """Update a school.

    Raises:
        KeyError: If school_id does not correspond to a school
    """
    values: dict[str, t.Any] = {}
    if not isinstance(name, NotSet):
        values["name"] = name
    if not isinstance(slug, NotSet):
        values["slug"] = slug

    # with no changes this still verifies the school exists
    stmt = sqla.update(schools).where(schools.school_id == school_id).values(**(values or {"school_id": school_id}))
    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"School {school_id} not found")

    session.flush()
    return get(school_id, session=session)  # type: ignore[return-value]
