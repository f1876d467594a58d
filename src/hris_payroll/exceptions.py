"""Typed failures raised by the payroll engine."""

from __future__ import annotations

from typing import Any


class PayrollError(Exception):
    """Base class for all payroll engine errors."""


class NotFoundError(PayrollError):
    """Raised when an employee, compensation structure or payroll record is missing."""

    def __init__(self, entity: str, identifier: Any, hint: str | None = None):
        self.entity = entity
        self.identifier = identifier
        self.hint = hint
        msg = f"{entity} {identifier} not found"
        if hint:
            msg += f", {hint}"
        super().__init__(msg)


class ConflictError(PayrollError):
    """Raised when an operation conflicts with the current state of a record."""


class DuplicatePayrollError(ConflictError):
    """Raised when a payroll record already exists for the employee and period."""

    def __init__(self, employee_id: Any, month: int, year: int):
        self.employee_id = employee_id
        self.month = month
        self.year = year
        super().__init__(
            f"Payroll already exists for employee {employee_id} "
            f"in period {month:02d}/{year}"
        )


class PayrollValidationError(PayrollError, ValueError):
    """Raised for malformed input: bad period, unknown status, negative amounts."""
