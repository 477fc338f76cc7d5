"""Shared pytest fixtures: in-memory database, seeded directory and API client."""

import os
import uuid
from datetime import timedelta
from types import SimpleNamespace

import pytest

# Settings are read at import time; give the test run its own environment
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.api import deps
from app.config import settings
from app.core.security import create_access_token
from app.database import Base
from app.main import app as fastapi_app
from app.models import (
    User, Director, Instructor, Student, Cohort, Subject, LearningSpace, space_enrollments,
)
from app.models.enums import DistributionType, GroupFormationMode, UserRole
from app.schemas.coursework import WorkCreate
from app.schemas.principal import Principal
from app.services.work_service import WorkService
from app.utils.time import get_utc_now


@pytest.fixture
async def engine():
    """Fresh in-memory schema per test; StaticPool keeps the single connection alive."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def _account(db: AsyncSession, role: UserRole, label: str, profile_cls, **profile_fields):
    user = User(
        email=f"{label}_{uuid.uuid4().hex[:8]}@test.example.com",
        first_name=label.capitalize(),
        last_name="Test",
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    profile = profile_cls(user_id=user.id, **profile_fields)
    db.add(profile)
    await db.flush()
    return SimpleNamespace(
        account_id=user.id,
        profile_id=profile.id,
        principal=Principal(account_id=user.id, role=role),
    )


@pytest.fixture
async def directory(db: AsyncSession):
    """
    One cohort and subject, a learning space taught by one instructor, a
    director and three enrolled students (plus one outsider, not enrolled).
    """
    cohort = Cohort(name="BSc 3 Computer Science", year=2024)
    subject = Subject(code=f"INFO{uuid.uuid4().hex[:4]}", name="Object-Oriented Programming")
    db.add_all([cohort, subject])
    await db.flush()

    director = await _account(db, UserRole.DIRECTOR, "director", Director)
    instructor = await _account(db, UserRole.INSTRUCTOR, "instructor", Instructor, specialty="Computer Science")
    students = [
        await _account(db, UserRole.STUDENT, f"student{i}", Student, cohort_id=cohort.id)
        for i in range(1, 4)
    ]
    outsider = await _account(db, UserRole.STUDENT, "outsider", Student, cohort_id=None)

    space = LearningSpace(
        name="OOP - BSc 3",
        subject_id=subject.id,
        cohort_id=cohort.id,
        instructor_id=instructor.profile_id,
    )
    db.add(space)
    await db.flush()
    for student in students:
        await db.execute(
            insert(space_enrollments).values(space_id=space.id, student_id=student.profile_id)
        )
    await db.commit()

    return SimpleNamespace(
        cohort_id=cohort.id,
        subject_id=subject.id,
        space_id=space.id,
        director=director,
        instructor=instructor,
        students=students,
        outsider=outsider,
    )


@pytest.fixture
def make_work(db: AsyncSession, directory):
    """Factory publishing a work in the seeded space, open from yesterday for a week by default."""

    async def _make(
        distribution_type: DistributionType = DistributionType.INDIVIDUAL,
        group_formation_mode: GroupFormationMode = None,
        start_at=None,
        end_at=None,
        title: str = "Lab 1 - Classes and Objects",
    ):
        now = get_utc_now()
        data = WorkCreate(
            title=title,
            instructions="Model a library as a class hierarchy.",
            distribution_type=distribution_type,
            group_formation_mode=group_formation_mode,
            start_at=start_at or now - timedelta(days=1),
            end_at=end_at or now + timedelta(days=7),
        )
        return await WorkService.create_work(db, directory.space_id, directory.instructor.principal, data)

    return _make


def auth_headers(account) -> dict:
    token = create_access_token(account.principal.account_id, account.principal.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api_base() -> str:
    """Base URL for API requests."""
    return f"http://test{settings.API_V1_PREFIX}"


@pytest.fixture
async def async_client(api_base: str, session_factory):
    """Async HTTP client bound to the app, with get_db pointed at the test database."""

    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[deps.get_db] = _get_test_db
    transport = ASGITransport(app=fastapi_app)
    client = AsyncClient(transport=transport, base_url=api_base, timeout=30.0)
    yield client
    await client.aclose()
    fastapi_app.dependency_overrides.clear()
