"""Attendance aggregation for a payroll period."""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.calculators.types import ZERO, AttendanceSummary, to_decimal
from hris_payroll.exceptions import PayrollValidationError
from hris_payroll.models import AttendanceRecord


class AttendanceStatus(str, Enum):
    """Attendance status values."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"
    SICK = "sick"
    LEAVE = "leave"


# Statuses that count as a day present
PRESENT_STATUSES = (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)


def validate_period(month: int, year: int) -> None:
    """Raise PayrollValidationError unless (month, year) is a real payroll period."""
    if not 1 <= month <= 12:
        raise PayrollValidationError(f"month must be between 1 and 12, got {month}")
    if not 1 <= year <= 9999:
        raise PayrollValidationError(f"year out of range: {year}")


def period_bounds(month: int, year: int) -> tuple[date, date]:
    """First and last calendar date of a month."""
    validate_period(month, year)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def count_working_days(month: int, year: int) -> int:
    """Number of Monday-Friday dates in the month.

    Company holidays are not subtracted.
    """
    validate_period(month, year)
    return sum(
        1
        for week in calendar.monthcalendar(year, month)
        for weekday, day in enumerate(week)
        if day and weekday < calendar.SATURDAY
    )


class AttendanceAggregator:
    """Reduces a month of attendance rows to payroll figures."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_records(
        self, employee_id: UUID, month: int, year: int
    ) -> list[AttendanceRecord]:
        """Attendance rows for an employee within a month, oldest first."""
        start, end = period_bounds(month, year)
        result = await self.session.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.attendance_date >= start,
                AttendanceRecord.attendance_date <= end,
            )
            .order_by(AttendanceRecord.attendance_date)
        )
        return list(result.scalars().all())

    async def aggregate(self, employee_id: UUID, month: int, year: int) -> AttendanceSummary:
        """Working days, present days and total overtime hours for a month.

        Present days count rows marked present or late. Overtime hours are
        summed across every row in the month regardless of status.
        """
        records = await self.get_records(employee_id, month, year)

        present_days = sum(1 for r in records if r.status in PRESENT_STATUSES)
        total_overtime: Decimal = sum(
            (to_decimal(r.overtime_hours or 0) for r in records), ZERO
        )

        return AttendanceSummary(
            working_days=count_working_days(month, year),
            present_days=present_days,
            total_overtime_hours=total_overtime,
        )
