"""ORM models for the payroll engine."""

from hris_payroll.models.base import Base, TimestampMixin
from hris_payroll.models.employee import Employee, MaritalStatus
from hris_payroll.models.payroll import (
    AttendanceRecord,
    CompensationStructure,
    PayrollRecord,
    PayrollStatus,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Employee",
    "MaritalStatus",
    "AttendanceRecord",
    "CompensationStructure",
    "PayrollRecord",
    "PayrollStatus",
]
