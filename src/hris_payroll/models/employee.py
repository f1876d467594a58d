"""Employee directory model."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from hris_payroll.models.payroll import (
        AttendanceRecord,
        CompensationStructure,
        PayrollRecord,
    )


class MaritalStatus(str, Enum):
    """Marital status used for PTKP resolution."""

    SINGLE = "single"
    MARRIED = "married"


class Employee(Base, TimestampMixin):
    """Employee record as seen by the payroll engine."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    marital_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MaritalStatus.SINGLE.value
    )
    join_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    __table_args__ = (
        CheckConstraint(
            "marital_status IN ('single', 'married')",
            name="employee_marital_status_check",
        ),
        CheckConstraint(
            "status IN ('active', 'terminated', 'on_leave')",
            name="employee_status_check",
        ),
    )

    # Relationships
    compensation_structures: Mapped[list[CompensationStructure]] = relationship(
        back_populates="employee"
    )
    attendance_records: Mapped[list[AttendanceRecord]] = relationship(
        back_populates="employee"
    )
    payroll_records: Mapped[list[PayrollRecord]] = relationship(back_populates="employee")
