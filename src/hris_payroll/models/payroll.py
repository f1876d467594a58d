"""Compensation, attendance and payroll record models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris_payroll.exceptions import PayrollValidationError
from hris_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from hris_payroll.models.employee import Employee


ZERO = Decimal("0")


class PayrollStatus(str, Enum):
    """Payroll record status values."""

    DRAFT = "draft"
    PROCESSED = "processed"
    PAID = "paid"

    @classmethod
    def parse(cls, value: str | PayrollStatus) -> PayrollStatus:
        """Parse a status, raising PayrollValidationError for unknown values."""
        try:
            return cls(value)
        except ValueError:
            raise PayrollValidationError(
                f"Unknown payroll status '{value}' "
                f"(expected one of: {', '.join(s.value for s in cls)})"
            ) from None


# ===== Compensation =====


class CompensationStructure(Base, TimestampMixin):
    """Salary structure with a snapshot of statutory contributions.

    The eight contribution columns are computed from ``basic_salary`` when the
    structure is created or its basic salary changes. Payroll generation reads
    them as-is and never recomputes them.
    """

    __tablename__ = "compensation_structure"

    compensation_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    basic_salary: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    transport_allowance: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    meal_allowance: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    housing_allowance: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    position_allowance: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)

    # Statutory contribution snapshot
    bpjs_kes_employee: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    bpjs_kes_employer: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    jht_employee: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    jht_employer: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    jkk: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    jkm: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    jp_employee: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    jp_employer: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)

    effective_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        CheckConstraint("basic_salary > 0", name="compensation_basic_salary_positive"),
        Index("ix_compensation_employee_effective", "employee_id", "effective_date"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="compensation_structures")

    @property
    def total_allowances(self) -> Decimal:
        return (
            self.transport_allowance
            + self.meal_allowance
            + self.housing_allowance
            + self.position_allowance
        )

    @property
    def social_insurance_employee(self) -> Decimal:
        """Employee share of BPJS Ketenagakerjaan withheld from pay (JHT + JP)."""
        return self.jht_employee + self.jp_employee


# ===== Attendance =====


class AttendanceRecord(Base, TimestampMixin):
    """One day of attendance for an employee."""

    __tablename__ = "attendance_record"

    attendance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="present")
    clock_in: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    clock_out: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=ZERO)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('present', 'absent', 'late', 'excused', 'sick', 'leave')",
            name="attendance_status_check",
        ),
        CheckConstraint("overtime_hours >= 0", name="attendance_overtime_non_negative"),
        Index("ix_attendance_employee_date", "employee_id", "attendance_date"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="attendance_records")


# ===== Payroll =====


class PayrollRecord(Base, TimestampMixin):
    """Monthly payroll result for one employee.

    Fields fall into three groups:

    - locked facts, written once at generation (attendance counts, basic
      salary, allowances and the three statutory deductions);
    - editable adjustments (overtime pay, THR, other deductions), which may be
      overwritten while the record is not paid;
    - derived totals (gross, total deductions, net), always recomputed from
      the other two groups.
    """

    __tablename__ = "payroll_record"

    LOCKED_FIELDS = frozenset({
        "working_days",
        "present_days",
        "basic_salary",
        "total_allowances",
        "health_deduction",
        "social_insurance_deduction",
        "income_tax",
        "rate_table_version",
    })
    ADJUSTABLE_FIELDS = frozenset({
        "overtime_pay",
        "thr",
        "other_deductions",
    })

    payroll_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    period_month: Mapped[int] = mapped_column(Integer, nullable=False)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    working_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    present_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    basic_salary: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    total_allowances: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    overtime_pay: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    thr: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    gross_salary: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)

    health_deduction: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    social_insurance_deduction: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=ZERO
    )
    income_tax: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    other_deductions: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    net_salary: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PayrollStatus.DRAFT.value
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rate_table_version: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "employee_id",
            "period_month",
            "period_year",
            name="payroll_record_employee_period_unique",
        ),
        CheckConstraint(
            "period_month BETWEEN 1 AND 12",
            name="payroll_record_month_check",
        ),
        CheckConstraint(
            "status IN ('draft', 'processed', 'paid')",
            name="payroll_record_status_check",
        ),
        Index("ix_payroll_record_period", "period_year", "period_month"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="payroll_records")

    @property
    def period_label(self) -> str:
        return f"{self.period_year}-{self.period_month:02d}"
