"""Payroll engine services."""

from hris_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollStateMachine,
    PayrollStatus,
)
from hris_payroll.services.attendance_service import AttendanceAggregator, count_working_days
from hris_payroll.services.compensation_service import CompensationService
from hris_payroll.services.payroll_service import PayrollService

__all__ = [
    "AttendanceAggregator",
    "CompensationService",
    "InvalidTransitionError",
    "PayrollService",
    "PayrollStateMachine",
    "PayrollStatus",
    "count_working_days",
]
