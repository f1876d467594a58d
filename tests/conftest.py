"""Pytest fixtures for payroll engine tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from hris_payroll.calculators.rate_tables import RATE_TABLES_2024, StatutoryRateTables
from hris_payroll.models import (
    AttendanceRecord,
    Base,
    CompensationStructure,
    Employee,
    MaritalStatus,
)
from hris_payroll.schemas import CompensationCreate
from hris_payroll.services.compensation_service import CompensationService
from hris_payroll.services.payroll_service import PayrollService

# In-memory SQLite shared across the connections of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def rates() -> StatutoryRateTables:
    return RATE_TABLES_2024


@pytest_asyncio.fixture
async def engine():
    """Create a fresh test database per test."""
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


@pytest_asyncio.fixture
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


@pytest_asyncio.fixture
async def employee(session: AsyncSession) -> Employee:
    """Single employee who joined in January 2022."""
    emp = Employee(
        employee_number="EMP-001",
        full_name="Budi Santoso",
        marital_status=MaritalStatus.SINGLE.value,
        join_date=date(2022, 1, 10),
    )
    session.add(emp)
    await session.flush()
    return emp


@pytest_asyncio.fixture
async def compensation(
    session: AsyncSession, employee: Employee, rates: StatutoryRateTables
) -> CompensationStructure:
    """10,000,000 basic salary with 1,000,000 in allowances."""
    service = CompensationService(session, rates)
    return await service.create_structure(
        CompensationCreate(
            employee_id=employee.employee_id,
            basic_salary=Decimal("10000000"),
            transport_allowance=Decimal("500000"),
            meal_allowance=Decimal("300000"),
            housing_allowance=Decimal("0"),
            position_allowance=Decimal("200000"),
            effective_date=date(2024, 1, 1),
        )
    )


@pytest_asyncio.fixture
async def march_attendance(session: AsyncSession, employee: Employee) -> list[AttendanceRecord]:
    """March 2024: three days present (one late), 3.5 overtime hours.

    An April row is included to check that other months are ignored.
    """
    rows = [
        (date(2024, 3, 1), "present", Decimal("2")),
        (date(2024, 3, 4), "late", Decimal("1.5")),
        (date(2024, 3, 5), "absent", Decimal("0")),
        (date(2024, 3, 6), "sick", Decimal("0")),
        (date(2024, 3, 7), "present", Decimal("0")),
        (date(2024, 4, 1), "present", Decimal("5")),
    ]
    records = [
        AttendanceRecord(
            employee_id=employee.employee_id,
            attendance_date=day,
            status=status,
            overtime_hours=hours,
        )
        for day, status, hours in rows
    ]
    session.add_all(records)
    await session.flush()
    return records


@pytest.fixture
def payroll_service(session: AsyncSession, rates: StatutoryRateTables) -> PayrollService:
    return PayrollService(session, rates)
