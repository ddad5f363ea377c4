"""Pytest fixtures for P4P engine tests."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from p4p_engine.calculators.pay_period import period_containing
from p4p_engine.calculators.types import (
    AssignmentRecord,
    EmployeeRecord,
    JobRecord,
    JobStatus,
    P4PRules,
)
from p4p_engine.config import Settings, WagePolicy, get_settings
from p4p_engine.models import (
    Base,
    Employee,
    Incident,
    Job,
    JobAssignment,
    P4PConfiguration,
)
from p4p_engine.repository import SqlAlchemyP4PRepository

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def _test_environment(monkeypatch):
    """Pin settings read from the environment and reset the settings cache."""
    monkeypatch.setenv("DATABASE_URL", TEST_DATABASE_URL)
    monkeypatch.setenv("ENGINE_VERSION", "1.0.0")
    monkeypatch.setenv("DEFAULT_MINIMUM_HOURLY_RATE", "23.00")
    monkeypatch.setenv("WAGE_FLOOR_POLICY", "employee_rate")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="1.0.0",
        default_minimum_hourly_rate=Decimal("23.00"),
        wage_floor_policy=WagePolicy.EMPLOYEE_RATE,
        log_level="INFO",
    )


# ===== Pure record fixtures =====


@pytest.fixture
def rules() -> P4PRules:
    """Default landscaping policy."""
    return P4PRules(
        job_type="landscaping",
        minimum_hourly_rate=Decimal("18.00"),
        revenue_share_percent=Decimal("33"),
        seasonal_bonus_percent=Decimal("7"),
        training_bonus_per_hour=Decimal("4"),
        large_job_hour_threshold=Decimal("49"),
        large_job_bonus_per_hour=Decimal("1.50"),
    )


@pytest.fixture
def employee() -> EmployeeRecord:
    return EmployeeRecord(
        employee_id=uuid4(),
        name="Alice Smith",
        base_hourly_rate=Decimal("18.00"),
        position="Crew Member",
    )


@pytest.fixture
def completed_job() -> JobRecord:
    """Completed single-day job outside the seasonal window."""
    return JobRecord(
        job_id=uuid4(),
        job_type="landscaping",
        budgeted_hours=Decimal("16"),
        labor_revenue=Decimal("2400.00"),
        status=JobStatus.COMPLETED,
        completed_at=datetime(2024, 7, 15, 16, 30),
    )


@pytest.fixture
def make_assignment():
    """Factory for assignments on a job."""

    def _make(job: JobRecord, employee_id=None, **kwargs) -> AssignmentRecord:
        values = {"hours_worked": Decimal("8"), "jobsite_hours": Decimal("7")}
        values.update(kwargs)
        return AssignmentRecord(
            assignment_id=uuid4(),
            job_id=job.job_id,
            employee_id=employee_id or uuid4(),
            **values,
        )

    return _make


# ===== Database fixtures =====


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(session: AsyncSession) -> SqlAlchemyP4PRepository:
    return SqlAlchemyP4PRepository(session)


@pytest.fixture
async def test_config(session: AsyncSession) -> P4PConfiguration:
    """Active landscaping configuration."""
    config = P4PConfiguration(
        config_id=uuid4(),
        job_type="landscaping",
        revenue_share_percent=Decimal("33.00"),
        seasonal_bonus_percent=Decimal("7.00"),
        minimum_hourly_rate=Decimal("18.00"),
        training_bonus_per_hour=Decimal("4.00"),
        large_job_hour_threshold=Decimal("49.00"),
        large_job_bonus_per_hour=Decimal("1.50"),
        seasonal_start_month=3,
        seasonal_end_month=5,
        is_active=True,
    )
    session.add(config)
    await session.flush()
    return config


@pytest.fixture
async def test_employees(session: AsyncSession) -> list[Employee]:
    """Create three active crew members at $18/hr."""
    employees = [
        Employee(
            employee_id=uuid4(),
            name=name,
            position="Crew Member",
            base_hourly_rate=Decimal("18.00"),
            is_active=True,
        )
        for name in ("Alice Smith", "Bob Jones", "Carol White")
    ]
    session.add_all(employees)
    await session.flush()
    return employees


@pytest.fixture
def add_job(session: AsyncSession):
    """Factory inserting a job row."""

    async def _add(**kwargs) -> Job:
        values = {
            "job_id": uuid4(),
            "job_type": "landscaping",
            "category": "single_day",
            "status": "pending",
            "budgeted_hours": Decimal("16.00"),
            "labor_revenue": Decimal("2400.00"),
            "is_seasonal_eligible": False,
        }
        values.update(kwargs)
        job = Job(**values)
        session.add(job)
        await session.flush()
        return job

    return _add


@pytest.fixture
def add_assignment(session: AsyncSession):
    """Factory inserting an assignment row attributed to its work date period."""

    async def _add(job: Job, employee: Employee, **kwargs) -> JobAssignment:
        work_date = kwargs.pop("work_date", None) or job.start_date or date(2024, 7, 15)
        period = period_containing(work_date)
        values = {
            "assignment_id": uuid4(),
            "job_id": job.job_id,
            "employee_id": employee.employee_id,
            "hours_worked": Decimal("8.00"),
            "jobsite_hours": Decimal("7.00"),
            "work_date": work_date,
            "pay_period_type": period.period_type.value,
            "pay_period_start": period.start,
            "pay_period_end": period.end,
        }
        values.update(kwargs)
        assignment = JobAssignment(**values)
        session.add(assignment)
        await session.flush()
        return assignment

    return _add


@pytest.fixture
def add_incident(session: AsyncSession):
    """Factory inserting an incident row."""

    async def _add(employee: Employee, incident_type: str, **kwargs) -> Incident:
        values = {
            "incident_id": uuid4(),
            "employee_id": employee.employee_id,
            "incident_type": incident_type,
            "cost": Decimal("0.00"),
            "is_resolved": False,
        }
        values.update(kwargs)
        incident = Incident(**values)
        session.add(incident)
        await session.flush()
        return incident

    return _add
