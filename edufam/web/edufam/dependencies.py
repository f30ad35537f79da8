"""FastAPI dependency providers for the EduFam web application."""

from __future__ import annotations

import typing as t

from fastapi import Depends
from sqlalchemy.orm import Session

from edufam.core import di
from edufam.core.config import GradingSettings


@di.inject
def _session_factory(
    factory: t.Callable[[], Session] = di.ProviderOf["storage.persistent.session"],
) -> t.Callable[[], Session]:
    return factory


def get_session_factory() -> t.Callable[[], Session]:
    """Get the database session factory from DI container."""
    return _session_factory()


def get_session(factory: t.Callable[[], Session] = Depends(get_session_factory)) -> t.Iterator[Session]:
    """One database session per request, closed once the response is sent."""
    session = factory()
    try:
        yield session
    finally:
        session.close()


@di.inject
def _grading_settings(
    settings: GradingSettings = di.Provide["config.grading", di.as_(GradingSettings)],
) -> GradingSettings:
    return settings


def get_grading_settings() -> GradingSettings:
    """Get grading policy settings from DI container."""
    return _grading_settings()
