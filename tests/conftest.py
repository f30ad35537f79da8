"""Pytest fixtures for EduFam tests.

The container boots in the Test environment, which points storage at an
in-memory SQLite database. The schema is created once per session; every test
runs inside an outer transaction on the shared connection that is rolled back
afterwards.

Usage:
    def test_something(db_session: Session, school_factory, grade_factory):
        school = school_factory()
        ...
"""

from __future__ import annotations

import datetime
import os
import typing as t
from pathlib import Path

import pydantic as p
import pytest
import sqlalchemy
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import edufam
from edufam.auth import get_jwt_manager, JWTManager
from edufam.core import EduFamContainer, TimestampProvider
from edufam.core.config import GradingSettings
from edufam.model import ClassID, DeploymentEnvironment, ExamType, GradeRecord, Role, School, SchoolID, \
    StudentID, SubjectID, TenantContext, User, UserID
from edufam.storage import grade as grade_storage
from edufam.storage import school as school_storage
from edufam.storage import user as user_storage
from edufam.storage.table import base


@pytest.fixture(scope="session")
def container() -> t.Generator[EduFamContainer]:
    """Boot the DI container for the test session."""
    ct = EduFamContainer()
    root = Path(os.path.dirname(edufam.__file__)).parent

    EduFamContainer.boot(
        ct,
        debug=True,
        env=DeploymentEnvironment.Test,
        config_root=p.FileUrl(f"file://{root}/config"),
        override=(),
    )
    base.metadata.create_all(ct.storage().persistent().engine())

    yield ct

    ct.shutdown_resources()


@pytest.fixture
def db_connection(container: EduFamContainer) -> t.Generator[sqlalchemy.Connection]:
    """The shared connection, inside a transaction rolled back after the test."""
    engine = container.storage().persistent().engine()
    connection = engine.connect()
    transaction = connection.begin()

    yield connection

    transaction.rollback()
    connection.close()


@pytest.fixture
def session_factory(db_connection: sqlalchemy.Connection) -> t.Callable[[], Session]:
    """Sessions on the test connection.

    `join_transaction_mode="create_savepoint"` makes `session.begin()` open a
    savepoint, so code under test commits into the outer transaction.
    """

    def make_session() -> Session:
        return Session(bind=db_connection, autobegin=False, join_transaction_mode="create_savepoint")

    return make_session


@pytest.fixture
def db_session(session_factory: t.Callable[[], Session]) -> t.Generator[Session]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def jwt_manager(container: EduFamContainer) -> JWTManager:
    return container.auth().jwt_manager()


@pytest.fixture
def grading_settings() -> GradingSettings:
    return GradingSettings()


@pytest.fixture(scope="session")
def app(container: EduFamContainer) -> FastAPI:
    """Create the FastAPI application for testing."""
    from edufam.core.config.web import EduFamWebSettings
    from edufam.web.edufam.main import _create_app  # pyright: ignore[reportPrivateUsage]

    container.wire(
        modules=[
            "edufam.web.edufam.main",
            "edufam.web.edufam.dependencies",
            "edufam.auth.middleware",
        ]
    )
    return _create_app(
        config=EduFamWebSettings(**container.config.web.edufam()),
        env=DeploymentEnvironment.Test,
    )


@pytest.fixture
def client(
    app: FastAPI,
    session_factory: t.Callable[[], Session],
    jwt_manager: JWTManager,
    grading_settings: GradingSettings,
) -> t.Generator[TestClient]:
    """A TestClient whose requests share the test's connection."""
    from edufam.web.edufam.dependencies import get_grading_settings, get_session_factory

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_jwt_manager] = lambda: jwt_manager
    app.dependency_overrides[get_grading_settings] = lambda: grading_settings

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def utcnow() -> TimestampProvider:
    return lambda: datetime.datetime.now(datetime.UTC)


# Factories


@pytest.fixture
def school_factory(db_session: Session) -> t.Callable[..., School]:
    """Create schools with unique slugs."""

    def create_school(name: str = "Test School", slug: str | None = None) -> School:
        if slug is None:
            slug = f"test-school-{SchoolID().key[:8].lower()}"
        with db_session.begin():
            return school_storage.create(name=name, slug=slug, session=db_session)

    return create_school


@pytest.fixture
def user_factory(db_session: Session) -> t.Callable[..., User]:
    """Create users; every user but a system admin needs a school."""

    def create_user(
        role: Role = Role.Teacher,
        school_id: SchoolID | None = None,
        email: str | None = None,
        name: str = "Test User",
    ) -> User:
        if email is None:
            email = f"{role.value}.{UserID().key[:8].lower()}@example.com"
        with db_session.begin():
            return user_storage.create(email=email, name=name, role=role, school_id=school_id, session=db_session)

    return create_user


class Actors(t.NamedTuple):
    """A school with one user of each working role, and their contexts."""

    school: School
    teacher: TenantContext
    principal: TenantContext
    owner: TenantContext
    parent: TenantContext
    class_id: ClassID
    subject_id: SubjectID
    students: tuple[StudentID, ...]


@pytest.fixture
def actors_factory(
    school_factory: t.Callable[..., School],
    user_factory: t.Callable[..., User],
) -> t.Callable[..., Actors]:
    def create_actors(n_students: int = 3) -> Actors:
        school = school_factory()
        class_id = ClassID()
        students = tuple(StudentID() for _ in range(n_students))

        def context(role: Role, **kwargs: t.Any) -> TenantContext:
            u = user_factory(role=role, school_id=school.school_id)
            return TenantContext(user_id=u.user_id, role=role, school_id=school.school_id, **kwargs)

        return Actors(
            school=school,
            teacher=context(Role.Teacher, class_ids=frozenset({class_id})),
            principal=context(Role.Principal),
            owner=context(Role.SchoolOwner),
            parent=context(Role.Parent, student_ids=frozenset(students[:1])),
            class_id=class_id,
            subject_id=SubjectID(),
            students=students,
        )

    return create_actors


@pytest.fixture
def actors(actors_factory: t.Callable[..., Actors]) -> Actors:
    return actors_factory()


@pytest.fixture
def grade_factory(db_session: Session) -> t.Callable[..., GradeRecord]:
    """Insert a grade directly, bypassing the workflow.

    Keyword arguments beyond the creation fields are written with
    `grade_storage.save`, e.g. `status=GradeStatus.Released, is_immutable=True`.
    """

    def create_grade(
        context: TenantContext,
        *,
        student_id: StudentID | None = None,
        class_id: ClassID | None = None,
        subject_id: SubjectID | None = None,
        term: str = "2026-T1",
        exam_type: ExamType = ExamType.EndTerm,
        max_score: float = 100.0,
        score: float | None = 50.0,
        entry_order: int = 0,
        **changes: t.Any,
    ) -> GradeRecord:
        with db_session.begin():
            grade = grade_storage.create(
                {
                    "student_id": student_id or StudentID(),
                    "class_id": class_id or ClassID(),
                    "subject_id": subject_id or SubjectID(),
                    "term": term,
                    "exam_type": exam_type,
                    "max_score": max_score,
                    "score": score,
                    "entry_order": entry_order,
                    "submitted_by": context.user_id,
                },
                context=context,
                session=db_session,
            )
            if changes:
                grade = grade_storage.save(grade.evolve(**changes), context=context, session=db_session)
            return grade

    return create_grade


def bearer(jwt_manager: JWTManager, context: TenantContext) -> dict[str, str]:
    """Authorization header carrying `context`."""
    token = jwt_manager.create_access_token(
        user_id=context.user_id,
        role=context.role,
        school_id=context.school_id,
        class_ids=context.class_ids,
        student_ids=context.student_ids,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(jwt_manager: JWTManager) -> t.Callable[[TenantContext], dict[str, str]]:
    return lambda context: bearer(jwt_manager, context)

